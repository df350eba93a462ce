import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from pydantic import ValidationError as SchemaValidationError

from admissions.api.schemas.applications import ApplicationCreate, Category
from admissions.api.schemas.intake import ApplicationDraft, StepDefinition
from admissions.config import AdmissionConfig
from admissions.db.models import Application
from admissions.errors import ValidationError, from_schema_error

logger = logging.getLogger(__name__)

FIRST_STEP = 1
LAST_STEP = 5


@dataclass(frozen=True)
class DocumentType:
    field: str
    label: str
    mandatory: bool


DOCUMENT_TYPES = (
    DocumentType("birth_certificate", "Birth Certificate", True),
    DocumentType("previous_marksheet", "Previous Marksheet", True),
    DocumentType("aadhaar_card", "Aadhaar Card", False),
    DocumentType("photograph", "Photograph", True),
)


@dataclass(frozen=True)
class Step:
    number: int
    title: str
    required_fields: Tuple[str, ...]


STEPS = (
    Step(1, "Student Information", ("student_name", "date_of_birth", "gender")),
    Step(2, "Academic Information", ("applying_for_class", "previous_school")),
    Step(3, "Parent Information", ("father_name", "father_phone", "mother_name")),
    Step(4, "Contact Information", ("address", "city", "pincode")),
    Step(5, "Documents", tuple(d.field for d in DOCUMENT_TYPES if d.mandatory) + ("declaration_accepted",)),
)


def _label(field: str) -> str:
    return field.replace("_", " ").capitalize()


def _optional(value: str) -> Optional[str]:
    return value.strip() or None


class IntakeCollector:
    """
    The online admission form: five ordered steps accumulating one draft.

    Moving forward checks the current step's required fields; moving back is
    never checked. Nothing reaches the registry until ``submit``.
    """

    def __init__(self, registry, max_document_bytes: Optional[int] = None):
        self.registry = registry
        self.max_document_bytes = max_document_bytes or AdmissionConfig.MAX_DOCUMENT_BYTES

    def steps(self) -> List[StepDefinition]:
        return [
            StepDefinition(number=s.number, title=s.title, required_fields=list(s.required_fields))
            for s in STEPS
        ]

    def _step(self, number: int) -> Step:
        if number < FIRST_STEP or number > LAST_STEP:
            raise ValidationError(f"There is no step {number}", field="step", step=number)
        return STEPS[number - 1]

    def validate_step(self, number: int, draft: ApplicationDraft) -> None:
        """Raise ValidationError naming the first unmet requirement of the step."""
        step = self._step(number)
        if number == LAST_STEP:
            self._validate_documents(step, draft)
            return
        for field in step.required_fields:
            if not getattr(draft, field).strip():
                raise ValidationError(
                    f"{_label(field)} is required to complete {step.title}",
                    field=field,
                    step=number,
                )

    def _validate_documents(self, step: Step, draft: ApplicationDraft) -> None:
        for doc_type in DOCUMENT_TYPES:
            if doc_type.mandatory and doc_type.field not in draft.documents:
                raise ValidationError(
                    f"{doc_type.label} must be attached to complete {step.title}",
                    field=doc_type.field,
                    step=step.number,
                )
        for field, attachment in draft.documents.items():
            if attachment.size_bytes > self.max_document_bytes:
                raise ValidationError(
                    f"{attachment.filename} is larger than {self.max_document_bytes // (1024 * 1024)} MB",
                    field=field,
                    step=step.number,
                )
        if not draft.declaration_accepted:
            raise ValidationError(
                "Please accept the declaration that the information provided is accurate",
                field="declaration_accepted",
                step=step.number,
            )

    def advance(self, current_step: int, draft: ApplicationDraft) -> int:
        self.validate_step(current_step, draft)
        if current_step == LAST_STEP:
            raise ValidationError("Documents is the final step; submit the application instead",
                                  field="step", step=current_step)
        return current_step + 1

    def back(self, current_step: int) -> int:
        return max(current_step - 1, FIRST_STEP)

    def to_application(self, draft: ApplicationDraft) -> ApplicationCreate:
        """Map the form's fields onto the registry's creation payload."""
        category = draft.category.strip()
        try:
            category = Category(category) if category else None
        except ValueError as exc:
            raise ValidationError(f"Unknown category: {draft.category}", field="category", step=1) from exc

        labels = [d.label for d in DOCUMENT_TYPES if d.field in draft.documents]
        # any extra attachments keep their own key as the label
        labels += [_label(k) for k in draft.documents if k not in {d.field for d in DOCUMENT_TYPES}]

        try:
            return ApplicationCreate(
                student_name=draft.student_name.strip(),
                date_of_birth=_optional(draft.date_of_birth),
                gender=_optional(draft.gender),
                nationality=_optional(draft.nationality),
                religion=_optional(draft.religion),
                category=category,
                applying_for_class=draft.applying_for_class.strip(),
                previous_school=_optional(draft.previous_school),
                previous_class=_optional(draft.previous_class),
                marks_obtained=_optional(draft.marks_obtained),
                board=_optional(draft.board),
                father_name=draft.father_name.strip(),
                father_occupation=_optional(draft.father_occupation),
                phone=draft.father_phone.strip(),
                email=_optional(draft.father_email),
                mother_name=_optional(draft.mother_name),
                mother_occupation=_optional(draft.mother_occupation),
                mother_phone=_optional(draft.mother_phone),
                mother_email=_optional(draft.mother_email),
                address=_optional(draft.address),
                city=_optional(draft.city),
                pincode=_optional(draft.pincode),
                emergency_contact=_optional(draft.emergency_contact),
                documents=labels,
            )
        except SchemaValidationError as exc:
            raise from_schema_error(exc) from exc

    def submit(self, draft: ApplicationDraft, current_step: int = LAST_STEP) -> Application:
        """
        Validate every step and hand the finished draft to the registry.

        Registry failures propagate unchanged; the draft is never modified,
        so the caller can submit it again.
        """
        if current_step != LAST_STEP:
            raise ValidationError("Applications can only be submitted from the Documents step",
                                  field="step", step=current_step)
        for step in STEPS:
            self.validate_step(step.number, draft)

        application = self.registry.create(self.to_application(draft))
        logger.info("Submitted application %s for %s", application.reference_code, application.student_name)
        return application
