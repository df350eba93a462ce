from typing import Optional


class AdmissionError(Exception):
    """Base class for every failure the admissions service reports to a caller."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AdmissionError):
    """Missing or malformed input. The caller corrects it and resubmits."""

    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None, step: Optional[int] = None):
        super().__init__(message)
        self.field = field
        self.step = step


class NotFoundError(AdmissionError):
    status_code = 404

    def __init__(self, application_id: str):
        super().__init__("Application not found")
        self.application_id = application_id


class StoreUnavailableError(AdmissionError):
    """The database round trip failed. Nothing is retried automatically."""

    status_code = 503


class ConflictError(AdmissionError):
    status_code = 409


class ConfirmationRequiredError(AdmissionError):
    status_code = 409


def from_schema_error(exc) -> ValidationError:
    """Turn the first error of a pydantic ValidationError into a domain ValidationError."""
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    message = first.get("msg", "Invalid application")
    if field:
        message = f"{field}: {message}"
    return ValidationError(message, field=field)
