import logging

import uvicorn

from admissions.api.app import app
from admissions.config import Config
from admissions.db.database import Base, engine
from admissions.db import models  # noqa: F401  registers tables on Base

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def initialize_database():
    """
    Creates all tables defined by models that inherit from Base.
    """
    logger.info("Creating database tables...")
    # Checks every class inheriting from Base and creates the missing tables.
    Base.metadata.create_all(bind=engine)
    logger.info("Tables created successfully.")


def main():
    initialize_database()
    uvicorn.run(app, host=Config.HOST, port=Config.PORT)


if __name__ == "__main__":
    main()
