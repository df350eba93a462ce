from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class DocumentAttachment(BaseModel):
    """
    A file the applicant attached to the form. The binary itself lives on the
    asset host; only its metadata travels with the draft.
    """

    filename: str = Field(..., min_length=1)
    size_bytes: int = Field(..., ge=0)
    content_type: Optional[str] = None
    url: Optional[str] = None
    asset_id: Optional[str] = None


class ApplicationDraft(BaseModel):
    """Everything the online form collects. Any field may still be blank mid-flow."""

    # Step 1: Student Information
    student_name: str = ""
    date_of_birth: str = ""
    gender: str = ""
    nationality: str = ""
    religion: str = ""
    category: str = ""

    # Step 2: Academic Information
    applying_for_class: str = ""
    previous_school: str = ""
    previous_class: str = ""
    marks_obtained: str = ""
    board: str = ""

    # Step 3: Parent Information
    father_name: str = ""
    father_occupation: str = ""
    father_phone: str = ""
    father_email: str = ""
    mother_name: str = ""
    mother_occupation: str = ""
    mother_phone: str = ""
    mother_email: str = ""

    # Step 4: Contact Information
    address: str = ""
    city: str = ""
    pincode: str = ""
    emergency_contact: str = ""

    # Step 5: Documents
    documents: Dict[str, DocumentAttachment] = Field(default_factory=dict)
    declaration_accepted: bool = False


class StepDefinition(BaseModel):
    number: int
    title: str
    required_fields: List[str]


class StepResponse(BaseModel):
    step: int


class SubmissionResponse(BaseModel):
    id: str
    reference_code: str
    message: str
