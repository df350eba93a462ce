from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from admissions.config import Config

DATABASE_URL = Config.DATABASE_URL

# SQLite (local development) hands connections across FastAPI's worker threads
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    connect_args=connect_args,
    pool_pre_ping=True,
    echo=False  # Set to True to see SQL queries in console
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

Base = declarative_base()


def get_db():
    """
    Dependency yielding the session one request works in.
    Every registry operation of the request shares it; it is closed afterwards.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
