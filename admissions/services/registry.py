import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple, Union

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.orm import Session

from admissions.api.schemas.applications import (
    ApplicationCreate,
    ApplicationFilter,
    ApplicationPatch,
    ApplicationStats,
    ApplicationStatus,
)
from admissions.config import AdmissionConfig
from admissions.db import crud
from admissions.db.models import Application, StatusChange
from admissions.errors import (
    ConfirmationRequiredError,
    ConflictError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
    from_schema_error,
)
from admissions.services.export import applications_to_csv, export_filename
from admissions.services.filters import compute_stats, filter_applications

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 3

# Moves a reviewer would normally make. Anything else is still applied,
# but logged and flagged in the status history.
STANDARD_TRANSITIONS = {
    ApplicationStatus.PENDING: {
        ApplicationStatus.REVIEWED,
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WAITLISTED,
    },
    ApplicationStatus.REVIEWED: {
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WAITLISTED,
    },
    ApplicationStatus.WAITLISTED: {
        ApplicationStatus.REVIEWED,
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
    },
    ApplicationStatus.APPROVED: set(),
    ApplicationStatus.REJECTED: set(),
}


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every datetime column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_non_standard_transition(current: ApplicationStatus, target: ApplicationStatus) -> bool:
    if current == target:
        return False
    return target not in STANDARD_TRANSITIONS[current]


class ApplicationRegistry:
    """
    Owns the stored applications and every change made to them.

    One registry wraps one database session. Filtered lists and stats are
    recomputed from the store on every call and never cached.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow,
                 code_prefix: Optional[str] = None, cycle_year: Optional[int] = None):
        self.db = db
        self.clock = clock
        self.code_prefix = code_prefix or AdmissionConfig.CODE_PREFIX
        self.cycle_year = cycle_year or AdmissionConfig.CYCLE_YEAR

    # ---------- creation ----------

    def _code_stem(self) -> str:
        return f"{self.code_prefix}-{self.cycle_year}-"

    def create(self, data: Union[ApplicationCreate, dict]) -> Application:
        if not isinstance(data, ApplicationCreate):
            try:
                data = ApplicationCreate.model_validate(data)
            except SchemaValidationError as exc:
                raise from_schema_error(exc) from exc

        now = self.clock()
        values = data.model_dump()
        values["category"] = data.category.value if data.category else None
        values["priority"] = data.priority.value
        values.update(
            status=ApplicationStatus.PENDING.value,
            is_paid=False,
            notes="",
            applied_at=now,
            updated_at=now,
            version=1,
        )

        stem = self._code_stem()
        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            sequence = crud.next_sequence(self.db, stem)
            values["sequence"] = sequence
            values["reference_code"] = f"{stem}{sequence:03d}"
            try:
                db_app = crud.db_create_application(self.db, dict(values))
            except crud.DuplicateReferenceCode:
                logger.warning("Reference code %s already taken (attempt %d)", values["reference_code"], attempt)
                continue
            logger.info("Created application %s (%s)", db_app.reference_code, db_app.id)
            return db_app
        raise StoreUnavailableError("Could not assign a reference code; please try again")

    # ---------- reads ----------

    def get(self, application_id: str) -> Application:
        db_app = crud.get_application_by_id(self.db, application_id)
        if db_app is None:
            raise NotFoundError(application_id)
        return db_app

    def list(self, filt: Union[ApplicationFilter, dict, None] = None) -> List[Application]:
        if filt is None:
            filt = ApplicationFilter()
        elif isinstance(filt, dict):
            try:
                filt = ApplicationFilter.model_validate(filt)
            except SchemaValidationError as exc:
                raise from_schema_error(exc) from exc
        return list(filter_applications(crud.list_applications(self.db), filt))

    def stats(self) -> ApplicationStats:
        return compute_stats(crud.list_applications(self.db), self.clock().date())

    def history(self, application_id: str) -> List[StatusChange]:
        self.get(application_id)
        return crud.get_status_changes(self.db, application_id)

    def export_csv(self) -> Tuple[str, str]:
        """All applications regardless of any filter, as (filename, csv text)."""
        content = applications_to_csv(crud.list_applications(self.db))
        return export_filename(self.clock().date()), content

    # ---------- mutations ----------

    def _check_version(self, db_app: Application, expected_version: Optional[int]) -> None:
        if expected_version is not None and expected_version != db_app.version:
            raise ConflictError(
                f"Application {db_app.reference_code} was changed by someone else "
                f"(version {db_app.version}, expected {expected_version}); reload and retry"
            )

    def _touch(self, db_app: Application, now: datetime) -> None:
        db_app.updated_at = now
        db_app.version = (db_app.version or 0) + 1

    def update_status(self, application_id: str, new_status: Union[ApplicationStatus, str],
                      changed_by: Optional[str] = None, expected_version: Optional[int] = None) -> Application:
        try:
            target = ApplicationStatus(new_status)
        except ValueError as exc:
            raise ValidationError(f"Unknown status: {new_status}", field="status") from exc

        db_app = self.get(application_id)
        self._check_version(db_app, expected_version)

        current = ApplicationStatus(db_app.status)
        flagged = is_non_standard_transition(current, target)
        if flagged:
            logger.warning(
                "Non-standard status change on %s: %s -> %s by %s",
                db_app.reference_code, current.value, target.value, changed_by or "unknown",
            )

        now = self.clock()
        db_app.status = target.value
        db_app.interaction_at = now
        self._touch(db_app, now)
        db_app.status_changes.append(StatusChange(
            from_status=current.value,
            to_status=target.value,
            changed_at=now,
            changed_by=changed_by,
            flagged=flagged,
        ))
        return crud.save_application(self.db, db_app)

    def set_payment(self, application_id: str, paid: bool,
                    expected_version: Optional[int] = None) -> Application:
        db_app = self.get(application_id)
        self._check_version(db_app, expected_version)
        db_app.is_paid = bool(paid)
        self._touch(db_app, self.clock())
        return crud.save_application(self.db, db_app)

    def append_note(self, application_id: str, text: str,
                    expected_version: Optional[int] = None) -> Application:
        """
        Append a timestamped entry to the notes log. Earlier entries are kept
        verbatim; an empty or whitespace-only note is rejected.
        """
        if text is None or not text.strip():
            raise ValidationError("Note text must not be empty", field="text")

        db_app = self.get(application_id)
        self._check_version(db_app, expected_version)
        now = self.clock()
        entry = f"{now:%Y-%m-%d %H:%M:%S}: {text.strip()}"
        db_app.notes = f"{db_app.notes}\n{entry}" if db_app.notes else entry
        self._touch(db_app, now)
        return crud.save_application(self.db, db_app)

    def edit(self, application_id: str, patch: Union[ApplicationPatch, dict],
             expected_version: Optional[int] = None) -> Application:
        if not isinstance(patch, ApplicationPatch):
            try:
                patch = ApplicationPatch.model_validate(patch)
            except SchemaValidationError as exc:
                raise from_schema_error(exc) from exc

        db_app = self.get(application_id)
        self._check_version(db_app, expected_version)

        changes = patch.model_dump(exclude_unset=True)
        if not changes:
            return db_app
        for key, value in changes.items():
            if key in ("category", "priority") and value is not None:
                value = value.value
            setattr(db_app, key, value)
        self._touch(db_app, self.clock())
        return crud.save_application(self.db, db_app)

    def delete(self, application_id: str, confirm: bool = False,
               expected_version: Optional[int] = None) -> str:
        """
        Hard-delete an application. Without ``confirm`` nothing is removed and
        ConfirmationRequiredError is raised so the caller can ask the reviewer.
        """
        db_app = self.get(application_id)
        if not confirm:
            raise ConfirmationRequiredError(
                f"Deleting application {db_app.reference_code} cannot be undone; confirm to proceed"
            )
        self._check_version(db_app, expected_version)
        reference_code = db_app.reference_code
        crud.db_delete_application(self.db, db_app)
        logger.info("Deleted application %s (%s)", reference_code, application_id)
        return reference_code
