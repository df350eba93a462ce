import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from admissions.db.database import get_db
from admissions.services.intake import IntakeCollector
from admissions.services.registry import ApplicationRegistry

logger = logging.getLogger(__name__)


def get_registry(db: Session = Depends(get_db)) -> ApplicationRegistry:
    return ApplicationRegistry(db)


def get_collector(registry: ApplicationRegistry = Depends(get_registry)) -> IntakeCollector:
    return IntakeCollector(registry)


def require_reviewer(x_reviewer_id: Optional[str] = Header(default=None)) -> str:
    """
    The identity provider in front of this service authenticates reviewers and
    forwards their id in X-Reviewer-Id. Requests without it never came through
    that gate.
    """
    if not x_reviewer_id or not x_reviewer_id.strip():
        logger.warning("Rejected review request without a reviewer identity")
        raise HTTPException(status_code=403, detail="Reviewer access required")
    return x_reviewer_id.strip()
