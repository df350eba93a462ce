from sqlalchemy import Column, String, Integer, Boolean, Date, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from .database import Base
import uuid


class Application(Base):
    __tablename__ = "applications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    reference_code = Column(String(32), unique=True, nullable=False, index=True)
    sequence = Column(Integer, nullable=False)

    # Student
    student_name = Column(String(255), nullable=False)
    date_of_birth = Column(Date)
    gender = Column(String(20))
    nationality = Column(String(100))
    religion = Column(String(50))
    category = Column(String(10))

    # Academic
    applying_for_class = Column(String(20), nullable=False)
    previous_school = Column(String(255))
    previous_class = Column(String(20))
    marks_obtained = Column(String(20))
    board = Column(String(100))

    # Parents; phone and email are the father's
    father_name = Column(String(255), nullable=False)
    father_occupation = Column(String(255))
    phone = Column(String(32), nullable=False)
    email = Column(String(255))
    mother_name = Column(String(255))
    mother_occupation = Column(String(255))
    mother_phone = Column(String(32))
    mother_email = Column(String(255))

    # Contact
    address = Column(Text)
    city = Column(String(100))
    pincode = Column(String(10))
    emergency_contact = Column(String(32))

    documents = Column(JSON, nullable=False, default=list)

    # Review process
    status = Column(String(20), nullable=False, default="pending")
    priority = Column(String(10), nullable=False, default="medium")
    is_paid = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=False, default="")
    applied_at = Column(DateTime, nullable=False)
    interaction_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=False)
    version = Column(Integer, nullable=False, default=1)

    status_changes = relationship(
        "StatusChange",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="StatusChange.id",
    )


class StatusChange(Base):
    __tablename__ = "status_changes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(String(36), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    from_status = Column(String(20), nullable=False)
    to_status = Column(String(20), nullable=False)
    changed_at = Column(DateTime, nullable=False)
    changed_by = Column(String(255), nullable=True)
    # set when the move is outside the usual review workflow, e.g. approved -> pending
    flagged = Column(Boolean, nullable=False, default=False)

    application = relationship("Application", back_populates="status_changes")


class ReferenceSequence(Base):
    """Last reference-code sequence handed out per admission cycle, e.g. "LHS-2024-"."""

    __tablename__ = "reference_sequences"

    code_stem = Column(String(32), primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)
