import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from admissions.api.dependencies import get_registry, require_reviewer
from admissions.api.schemas.applications import (
    ALL,
    ApplicationCreate,
    ApplicationPatch,
    ApplicationResponse,
    ApplicationStats,
    MutationResponse,
    NoteRequest,
    PaymentUpdateRequest,
    StatusChangeResponse,
    StatusUpdateRequest,
)
from admissions.services.notifications import get_notifier
from admissions.services.registry import ApplicationRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/applications", tags=["review"], dependencies=[Depends(require_reviewer)])


def _mutation(message: str, db_app) -> MutationResponse:
    return MutationResponse(message=message, application=ApplicationResponse.model_validate(db_app))


@router.get("", response_model=List[ApplicationResponse])
async def list_applications(
    search: str = "",
    status: str = ALL,
    applying_for_class: str = Query(ALL, alias="class"),
    priority: str = ALL,
    registry: ApplicationRegistry = Depends(get_registry),
):
    return registry.list({
        "search": search,
        "status": status,
        "applying_for_class": applying_for_class,
        "priority": priority,
    })


@router.post("", status_code=201, response_model=MutationResponse)
async def create_application(
    payload: ApplicationCreate,
    registry: ApplicationRegistry = Depends(get_registry),
    notifier=Depends(get_notifier),
    reviewer: str = Depends(require_reviewer),
):
    db_app = registry.create(payload)
    logger.info("Reviewer %s entered application %s", reviewer, db_app.reference_code)
    message = f"Application {db_app.reference_code} created"
    notifier.publish("application_submitted", message, application_id=db_app.id, reference_code=db_app.reference_code)
    return _mutation(message, db_app)


@router.get("/stats", response_model=ApplicationStats)
async def application_stats(registry: ApplicationRegistry = Depends(get_registry)):
    return registry.stats()


@router.get("/export")
async def export_applications(registry: ApplicationRegistry = Depends(get_registry)):
    filename, content = registry.export_csv()
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(application_id: str, registry: ApplicationRegistry = Depends(get_registry)):
    return registry.get(application_id)


@router.get("/{application_id}/history", response_model=List[StatusChangeResponse])
async def get_status_history(application_id: str, registry: ApplicationRegistry = Depends(get_registry)):
    return registry.history(application_id)


@router.patch("/{application_id}", response_model=MutationResponse)
async def edit_application(
    application_id: str,
    patch: ApplicationPatch,
    expected_version: Optional[int] = None,
    registry: ApplicationRegistry = Depends(get_registry),
    notifier=Depends(get_notifier),
):
    db_app = registry.edit(application_id, patch, expected_version=expected_version)
    message = "Application updated successfully"
    notifier.publish("application_updated", message, application_id=db_app.id)
    return _mutation(message, db_app)


@router.put("/{application_id}/status", response_model=MutationResponse)
async def update_status(
    application_id: str,
    payload: StatusUpdateRequest,
    registry: ApplicationRegistry = Depends(get_registry),
    notifier=Depends(get_notifier),
    reviewer: str = Depends(require_reviewer),
):
    db_app = registry.update_status(
        application_id, payload.status, changed_by=reviewer, expected_version=payload.expected_version
    )
    message = f"Status updated to {db_app.status}"
    notifier.publish("status_updated", message, application_id=db_app.id, status=db_app.status)
    return _mutation(message, db_app)


@router.put("/{application_id}/payment", response_model=MutationResponse)
async def update_payment(
    application_id: str,
    payload: PaymentUpdateRequest,
    registry: ApplicationRegistry = Depends(get_registry),
    notifier=Depends(get_notifier),
):
    db_app = registry.set_payment(application_id, payload.is_paid, expected_version=payload.expected_version)
    message = "Payment status updated"
    notifier.publish("payment_updated", message, application_id=db_app.id, is_paid=db_app.is_paid)
    return _mutation(message, db_app)


@router.post("/{application_id}/notes", response_model=MutationResponse)
async def add_note(
    application_id: str,
    payload: NoteRequest,
    registry: ApplicationRegistry = Depends(get_registry),
    notifier=Depends(get_notifier),
):
    db_app = registry.append_note(application_id, payload.text, expected_version=payload.expected_version)
    message = "Note added"
    notifier.publish("note_added", message, application_id=db_app.id)
    return _mutation(message, db_app)


@router.delete("/{application_id}")
async def delete_application(
    application_id: str,
    confirm: bool = False,
    expected_version: Optional[int] = None,
    registry: ApplicationRegistry = Depends(get_registry),
    notifier=Depends(get_notifier),
    reviewer: str = Depends(require_reviewer),
):
    reference_code = registry.delete(application_id, confirm=confirm, expected_version=expected_version)
    logger.info("Reviewer %s deleted application %s", reviewer, reference_code)
    message = "Application deleted"
    notifier.publish("application_deleted", message, application_id=application_id, reference_code=reference_code)
    return {"message": message, "id": application_id, "reference_code": reference_code}
