from typing import List

from fastapi import APIRouter, Depends

from admissions.api.dependencies import get_collector
from admissions.api.schemas.intake import ApplicationDraft, StepDefinition, StepResponse, SubmissionResponse
from admissions.services.intake import IntakeCollector
from admissions.services.notifications import get_notifier

router = APIRouter(prefix="/admissions", tags=["intake"])


@router.get("/steps", response_model=List[StepDefinition])
async def list_steps(collector: IntakeCollector = Depends(get_collector)):
    return collector.steps()


@router.post("/steps/{step}/advance", response_model=StepResponse)
async def advance_step(step: int, draft: ApplicationDraft, collector: IntakeCollector = Depends(get_collector)):
    return StepResponse(step=collector.advance(step, draft))


@router.post("/steps/{step}/back", response_model=StepResponse)
async def previous_step(step: int, collector: IntakeCollector = Depends(get_collector)):
    return StepResponse(step=collector.back(step))


@router.post("/submit", status_code=201, response_model=SubmissionResponse)
async def submit_application(
    draft: ApplicationDraft,
    collector: IntakeCollector = Depends(get_collector),
    notifier=Depends(get_notifier),
):
    db_app = collector.submit(draft)
    message = "Application submitted successfully! We will contact you soon."
    notifier.publish(
        "application_submitted",
        message,
        application_id=db_app.id,
        reference_code=db_app.reference_code,
        email=db_app.email,
        phone=db_app.phone,
    )
    return SubmissionResponse(id=db_app.id, reference_code=db_app.reference_code, message=message)
