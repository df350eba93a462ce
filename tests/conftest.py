import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")

from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from admissions.api.app import app
from admissions.api.dependencies import get_registry
from admissions.api.schemas.intake import ApplicationDraft, DocumentAttachment
from admissions.db import models  # noqa: F401
from admissions.db.database import Base, get_db
from admissions.services.notifications import get_notifier
from admissions.services.registry import ApplicationRegistry


class FakeClock:
    """Callable clock the tests move forward by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def engine():
    # one shared in-memory database per test
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 15, 9, 30, 0))


@pytest.fixture
def registry(db_session, clock):
    return ApplicationRegistry(db_session, clock=clock, code_prefix="LHS", cycle_year=2024)


@pytest.fixture
def notifier():
    n = Mock()
    n.publish = Mock()
    return n


@pytest.fixture
def client(session_factory, clock, notifier):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    def override_get_registry(db=Depends(get_db)):
        return ApplicationRegistry(db, clock=clock, code_prefix="LHS", cycle_year=2024)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_registry] = override_get_registry
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def reviewer_headers():
    return {"X-Reviewer-Id": "admin@lhs.example"}


@pytest.fixture
def application_payload():
    return {
        "student_name": "Rohan Kumar",
        "date_of_birth": "2014-03-02",
        "gender": "Male",
        "category": "General",
        "applying_for_class": "5",
        "previous_school": "St. Mary School",
        "marks_obtained": "85%",
        "father_name": "Mohan Kumar",
        "phone": "+91 98765 43210",
        "email": "rohan@example.com",
        "mother_name": "Sunita Devi",
        "address": "Bara Chakia, East Champaran",
        "documents": ["Birth Certificate", "Previous Marksheet", "Photograph"],
    }


def _attachment(name, size=150_000):
    return DocumentAttachment(filename=name, size_bytes=size, content_type="image/jpeg")


@pytest.fixture
def complete_draft():
    return ApplicationDraft(
        student_name="Priya Singh",
        date_of_birth="2011-07-19",
        gender="Female",
        category="OBC",
        applying_for_class="8",
        previous_school="DAV Public School",
        marks_obtained="92%",
        father_name="Ramesh Singh",
        father_phone="+91 98765 43211",
        father_email="priya@example.com",
        mother_name="Geeta Singh",
        address="Motihari, East Champaran",
        city="Motihari",
        pincode="845401",
        documents={
            "birth_certificate": _attachment("birth.pdf"),
            "previous_marksheet": _attachment("marks.pdf"),
            "photograph": _attachment("photo.jpg"),
        },
        declaration_accepted=True,
    )
