from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    REJECTED = "rejected"
    WAITLISTED = "waitlisted"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Category(str, Enum):
    GENERAL = "General"
    OBC = "OBC"
    SC = "SC"
    ST = "ST"
    EWS = "EWS"


ALL = "All"

REQUIRED_FIELDS = ["student_name", "applying_for_class", "father_name", "phone"]


class ApplicationCreate(BaseModel):
    student_name: str = Field(..., min_length=1)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    nationality: Optional[str] = None
    religion: Optional[str] = None
    category: Optional[Category] = None

    applying_for_class: str = Field(..., min_length=1)
    previous_school: Optional[str] = None
    previous_class: Optional[str] = None
    marks_obtained: Optional[str] = None
    board: Optional[str] = None

    father_name: str = Field(..., min_length=1)
    father_occupation: Optional[str] = None
    phone: str = Field(..., min_length=1)
    email: Optional[str] = None
    mother_name: Optional[str] = None
    mother_occupation: Optional[str] = None
    mother_phone: Optional[str] = None
    mother_email: Optional[str] = None

    address: Optional[str] = None
    city: Optional[str] = None
    pincode: Optional[str] = None
    emergency_contact: Optional[str] = None

    documents: List[str] = Field(default_factory=list)
    priority: Priority = Priority.MEDIUM

    @model_validator(mode="before")
    def check_required_fields(cls, values):
        """
        Ensure required keys are present and not empty.
        This provides a clearer single error message when required fields are missing.
        """
        if not isinstance(values, dict):
            return values
        missing = []
        for key in REQUIRED_FIELDS:
            if key not in values or values.get(key) is None:
                missing.append(key)
            elif isinstance(values.get(key), str) and values.get(key).strip() == "":
                missing.append(key)
        if missing:
            raise ValueError(f"Missing or empty required field(s): {', '.join(missing)}")
        return values


class ApplicationPatch(BaseModel):
    """
    Editable subset of an application.

    There is deliberately no field for the reference code, applied date,
    status, payment flag or notes: those keys are dropped when present in a
    payload. Status, payment and notes have their own operations.
    """

    model_config = ConfigDict(extra="ignore")

    student_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    nationality: Optional[str] = None
    religion: Optional[str] = None
    category: Optional[Category] = None
    applying_for_class: Optional[str] = None
    previous_school: Optional[str] = None
    previous_class: Optional[str] = None
    marks_obtained: Optional[str] = None
    board: Optional[str] = None
    father_name: Optional[str] = None
    father_occupation: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    mother_name: Optional[str] = None
    mother_occupation: Optional[str] = None
    mother_phone: Optional[str] = None
    mother_email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    pincode: Optional[str] = None
    emergency_contact: Optional[str] = None
    documents: Optional[List[str]] = None
    priority: Optional[Priority] = None

    @field_validator(*REQUIRED_FIELDS)
    def not_blank(cls, value):
        if value is None or value.strip() == "":
            raise ValueError("must not be empty")
        return value

    @field_validator("documents", "priority")
    def not_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    reference_code: str
    student_name: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    nationality: Optional[str] = None
    religion: Optional[str] = None
    category: Optional[str] = None
    applying_for_class: str
    previous_school: Optional[str] = None
    previous_class: Optional[str] = None
    marks_obtained: Optional[str] = None
    board: Optional[str] = None
    father_name: str
    father_occupation: Optional[str] = None
    phone: str
    email: Optional[str] = None
    mother_name: Optional[str] = None
    mother_occupation: Optional[str] = None
    mother_phone: Optional[str] = None
    mother_email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    pincode: Optional[str] = None
    emergency_contact: Optional[str] = None
    documents: List[str]
    status: ApplicationStatus
    priority: Priority
    is_paid: bool
    notes: str
    applied_at: datetime
    interaction_at: Optional[datetime] = None
    version: int


class ApplicationFilter(BaseModel):
    """Conjunction of four predicates; "All" (or an empty search) matches everything."""

    search: str = ""
    status: str = ALL
    applying_for_class: str = ALL
    priority: str = ALL

    @field_validator("status")
    def known_status(cls, value):
        if value != ALL and value not in {s.value for s in ApplicationStatus}:
            raise ValueError(f"Unknown status: {value}")
        return value

    @field_validator("priority")
    def known_priority(cls, value):
        if value != ALL and value not in {p.value for p in Priority}:
            raise ValueError(f"Unknown priority: {value}")
        return value


class ApplicationStats(BaseModel):
    total: int = 0
    pending: int = 0
    reviewed: int = 0
    approved: int = 0
    rejected: int = 0
    waitlisted: int = 0
    today: int = 0
    approval_rate: float = 0.0
    by_class: Dict[str, int] = Field(default_factory=dict)


class StatusUpdateRequest(BaseModel):
    status: ApplicationStatus
    expected_version: Optional[int] = None


class PaymentUpdateRequest(BaseModel):
    is_paid: bool
    expected_version: Optional[int] = None


class NoteRequest(BaseModel):
    text: str
    expected_version: Optional[int] = None


class StatusChangeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    from_status: ApplicationStatus
    to_status: ApplicationStatus
    changed_at: datetime
    changed_by: Optional[str] = None
    flagged: bool


class MutationResponse(BaseModel):
    message: str
    application: ApplicationResponse
