import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from admissions.api.routes import intake, review
from admissions.errors import AdmissionError, ValidationError
from admissions.services.notifications import close_notifier

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    close_notifier()


app = FastAPI(title="School Admissions Service", lifespan=lifespan)
app.include_router(intake.router)
app.include_router(review.router)


@app.exception_handler(AdmissionError)
async def admission_error_handler(request: Request, exc: AdmissionError):
    body = {"detail": exc.message}
    if isinstance(exc, ValidationError):
        body["field"] = exc.field
        body["step"] = exc.step
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)


@app.get("/health-check/")
async def health_check():
    return {"admissions": "Health Check OK"}
