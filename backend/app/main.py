import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.settings import settings, validate_settings
from app.db.session import engine
from app.models import Base
from app.routers.appointments import router as appointments_router
from app.routers.availability import router as availability_router
from app.routers.blackouts import router as blackouts_router
from app.routers.lunch_exceptions import router as lunch_exceptions_router
from app.services.errors import (
    AppointmentConflict,
    BlackoutConflict,
    BlackoutHasConflicts,
    NotFound,
    OutOfScope,
    SchedulingError,
    SelfOverlap,
)

app = FastAPI(title="Clinic Scheduling API", version="0.1.0")
logger = logging.getLogger("clinic_scheduling.startup")

ERROR_STATUS: dict[type[SchedulingError], int] = {
    NotFound: 404,
    OutOfScope: 403,
    BlackoutHasConflicts: 409,
    BlackoutConflict: 409,
    AppointmentConflict: 409,
    SelfOverlap: 409,
}


def status_for(exc: SchedulingError) -> int:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    payload = {"detail": exc.message, "code": exc.code}
    payload.update(exc.details())
    return JSONResponse(status_code=status_for(exc), content=payload)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = request.headers.get("x-request-id")
    logger.exception("Unhandled server error", extra={"request_id": request_id})
    payload = {"detail": "Internal server error"}
    if request_id:
        payload["request_id"] = request_id
    return JSONResponse(status_code=500, content=payload)


@app.on_event("startup")
def startup():
    validate_settings(settings)
    Base.metadata.create_all(bind=engine)
    logger.info("Clinic scheduling API started (timezone %s).", settings.clinic_timezone)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(appointments_router)
app.include_router(availability_router)
app.include_router(blackouts_router)
app.include_router(lunch_exceptions_router)
