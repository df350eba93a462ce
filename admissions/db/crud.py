import logging
from contextlib import contextmanager
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from admissions.errors import StoreUnavailableError
from .models import Application, ReferenceSequence, StatusChange

logger = logging.getLogger(__name__)


class DuplicateReferenceCode(Exception):
    """Another writer took the reference code between reading the sequence and inserting."""


@contextmanager
def store_round_trip(db: Session, action: str):
    """
    Run one store round trip. Any SQLAlchemy failure is rolled back and
    surfaced as StoreUnavailableError so callers can offer a retry.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Store failure while trying to %s: %s", action, exc)
        raise StoreUnavailableError(f"Could not {action}; please try again") from exc


def next_sequence(db: Session, code_stem: str) -> int:
    """
    Stage the next sequence number for code_stem in the session and return it.
    The increment is only committed together with the application that uses it.
    A new counter starts after the highest sequence already stored for the stem.
    """
    with store_round_trip(db, "read the application sequence"):
        counter = db.get(ReferenceSequence, code_stem)
        if counter is None:
            highest = (
                db.query(func.max(Application.sequence))
                .filter(Application.reference_code.like(f"{code_stem}%"))
                .scalar()
            )
            counter = ReferenceSequence(code_stem=code_stem, last_value=highest or 0)
            db.add(counter)
        counter.last_value += 1
        return counter.last_value


def db_create_application(db: Session, values: dict) -> Application:
    """
    Persist an application row and return the created model instance.
    Raises DuplicateReferenceCode when the reference code (or the cycle counter)
    was taken by a concurrent writer.
    """
    db_obj = Application(**values)
    with store_round_trip(db, "save the application"):
        db.add(db_obj)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise DuplicateReferenceCode(values.get("reference_code")) from exc
        db.refresh(db_obj)
    return db_obj


def get_application_by_id(db: Session, application_id: str) -> Optional[Application]:
    """
    Retrieve an application by its ID.
    Returns None if not found.
    """
    with store_round_trip(db, "load the application"):
        return db.query(Application).filter(Application.id == application_id).first()


def list_applications(db: Session) -> List[Application]:
    """All applications, newest first."""
    with store_round_trip(db, "load applications"):
        return (
            db.query(Application)
            .order_by(Application.applied_at.desc(), Application.sequence.desc())
            .all()
        )


def save_application(db: Session, db_obj: Application) -> Application:
    """Commit pending changes to db_obj (and anything added alongside it)."""
    with store_round_trip(db, "update the application"):
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
    return db_obj


def db_delete_application(db: Session, db_obj: Application) -> None:
    with store_round_trip(db, "delete the application"):
        db.delete(db_obj)
        db.commit()


def get_status_changes(db: Session, application_id: str) -> List[StatusChange]:
    with store_round_trip(db, "load the status history"):
        return (
            db.query(StatusChange)
            .filter(StatusChange.application_id == application_id)
            .order_by(StatusChange.id)
            .all()
        )
