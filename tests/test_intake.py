from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from admissions.api.schemas.intake import DocumentAttachment
from admissions.errors import StoreUnavailableError, ValidationError
from admissions.services.intake import STEPS, IntakeCollector


@pytest.fixture
def registry_mock():
    r = Mock()
    r.create = Mock(return_value=SimpleNamespace(id="app-1", reference_code="LHS-2024-001", student_name="Priya Singh"))
    return r


@pytest.fixture
def collector(registry_mock):
    return IntakeCollector(registry_mock, max_document_bytes=2 * 1024 * 1024)


STEP_FIELDS = [
    (1, "student_name"),
    (1, "date_of_birth"),
    (1, "gender"),
    (2, "applying_for_class"),
    (2, "previous_school"),
    (3, "father_name"),
    (3, "father_phone"),
    (3, "mother_name"),
    (4, "address"),
    (4, "city"),
    (4, "pincode"),
]


@pytest.mark.parametrize("step,field", STEP_FIELDS)
def test_advance_rejects_blank_required_field(collector, complete_draft, step, field):
    draft = complete_draft.model_copy(update={field: "   "})

    with pytest.raises(ValidationError) as exc_info:
        collector.advance(step, draft)

    assert exc_info.value.step == step
    assert exc_info.value.field == field
    # draft is left as it was
    assert getattr(draft, field) == "   "


@pytest.mark.parametrize("step", [1, 2, 3, 4])
def test_advance_moves_to_next_step_when_required_fields_present(collector, complete_draft, step):
    assert collector.advance(step, complete_draft) == step + 1


def test_advance_ignores_optional_fields(collector, complete_draft):
    draft = complete_draft.model_copy(update={"nationality": "", "religion": "", "category": "", "board": ""})
    assert collector.advance(1, draft) == 2
    assert collector.advance(2, draft) == 3


def test_advance_names_first_missing_field(collector, complete_draft):
    draft = complete_draft.model_copy(update={"father_name": "", "mother_name": ""})

    with pytest.raises(ValidationError) as exc_info:
        collector.advance(3, draft)

    assert exc_info.value.field == "father_name"
    assert "Parent Information" in exc_info.value.message


def test_back_is_never_guarded(collector):
    assert collector.back(4) == 3
    assert collector.back(1) == 1


def test_advance_rejects_unknown_step(collector, complete_draft):
    with pytest.raises(ValidationError):
        collector.advance(6, complete_draft)


def test_documents_step_requires_mandatory_files(collector, complete_draft):
    documents = dict(complete_draft.documents)
    documents.pop("previous_marksheet")
    draft = complete_draft.model_copy(update={"documents": documents})

    with pytest.raises(ValidationError) as exc_info:
        collector.validate_step(5, draft)

    assert exc_info.value.field == "previous_marksheet"
    assert exc_info.value.step == 5


def test_documents_step_rejects_files_over_limit(collector, complete_draft):
    documents = dict(complete_draft.documents)
    documents["aadhaar_card"] = DocumentAttachment(filename="aadhaar.png", size_bytes=2 * 1024 * 1024 + 1)
    draft = complete_draft.model_copy(update={"documents": documents})

    with pytest.raises(ValidationError) as exc_info:
        collector.validate_step(5, draft)

    assert exc_info.value.field == "aadhaar_card"


def test_documents_step_accepts_file_at_limit(collector, complete_draft):
    documents = dict(complete_draft.documents)
    documents["photograph"] = DocumentAttachment(filename="photo.jpg", size_bytes=2 * 1024 * 1024)
    draft = complete_draft.model_copy(update={"documents": documents})

    collector.validate_step(5, draft)


def test_documents_step_requires_declaration(collector, complete_draft):
    draft = complete_draft.model_copy(update={"declaration_accepted": False})

    with pytest.raises(ValidationError) as exc_info:
        collector.validate_step(5, draft)

    assert exc_info.value.field == "declaration_accepted"


def test_cannot_advance_past_documents(collector, complete_draft):
    with pytest.raises(ValidationError):
        collector.advance(5, complete_draft)


def test_steps_lists_all_five_in_order(collector):
    steps = collector.steps()
    assert [s.number for s in steps] == [1, 2, 3, 4, 5]
    assert steps[2].required_fields == ["father_name", "father_phone", "mother_name"]
    assert len(STEPS) == 5


def test_submit_hands_mapped_application_to_registry(collector, registry_mock, complete_draft):
    result = collector.submit(complete_draft)

    assert result.reference_code == "LHS-2024-001"
    registry_mock.create.assert_called_once()
    payload = registry_mock.create.call_args[0][0]
    assert payload.student_name == "Priya Singh"
    assert payload.phone == "+91 98765 43211"
    assert payload.email == "priya@example.com"
    assert payload.category.value == "OBC"
    assert payload.documents == ["Birth Certificate", "Previous Marksheet", "Photograph"]
    assert payload.religion is None


def test_submit_only_from_documents_step(collector, registry_mock, complete_draft):
    with pytest.raises(ValidationError):
        collector.submit(complete_draft, current_step=4)
    registry_mock.create.assert_not_called()


def test_submit_without_declaration_writes_nothing(collector, registry_mock, complete_draft):
    draft = complete_draft.model_copy(update={"declaration_accepted": False})

    with pytest.raises(ValidationError):
        collector.submit(draft)
    registry_mock.create.assert_not_called()


def test_submit_keeps_draft_when_store_unavailable(collector, registry_mock, complete_draft):
    registry_mock.create.side_effect = StoreUnavailableError("Could not save the application; please try again")
    before = complete_draft.model_dump()

    with pytest.raises(StoreUnavailableError):
        collector.submit(complete_draft)

    assert complete_draft.model_dump() == before

    # retry succeeds with the very same draft
    registry_mock.create.side_effect = None
    assert collector.submit(complete_draft).reference_code == "LHS-2024-001"


def test_submit_rejects_unknown_category(collector, registry_mock, complete_draft):
    draft = complete_draft.model_copy(update={"category": "Other"})

    with pytest.raises(ValidationError) as exc_info:
        collector.submit(draft)

    assert exc_info.value.field == "category"
    registry_mock.create.assert_not_called()


def test_submit_rejects_malformed_birth_date(collector, registry_mock, complete_draft):
    draft = complete_draft.model_copy(update={"date_of_birth": "nineteenth of July"})

    with pytest.raises(ValidationError) as exc_info:
        collector.submit(draft)

    assert exc_info.value.field == "date_of_birth"
    registry_mock.create.assert_not_called()
