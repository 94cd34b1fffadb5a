from datetime import datetime
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException, status
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.core.settings import settings
from app.db.session import get_db
from app.services.actor import Actor, Role
from app.services.blackouts import BlackoutConflictResolver
from app.services.availability import AvailabilityService
from app.services.events import EventSink, LoggingEventSink
from app.services.lunch_exceptions import LunchExceptionService
from app.services.scheduler import AppointmentScheduler
from app.services.sql_store import SqlAlchemyStore
from app.services.store import SchedulingStore

JWT_SECRET = settings.jwt_secret
JWT_ALG = settings.jwt_alg

_event_sink = LoggingEventSink()


def _optional_int(value) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def get_current_actor(authorization: str | None = Header(default=None)) -> Actor:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])
        sub = payload.get("sub")
        if not sub:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
        return Actor(
            user_id=int(sub),
            role=Role(payload.get("role")),
            clinic_id=_optional_int(payload.get("clinic_id")),
            doctor_id=_optional_int(payload.get("doctor_id")),
        )
    except (JWTError, ValueError, TypeError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def get_store(db: Session = Depends(get_db)) -> SchedulingStore:
    return SqlAlchemyStore(db)


def get_event_sink() -> EventSink:
    return _event_sink


def get_clock() -> Optional[Callable[[], datetime]]:
    return None


def get_scheduler(
    store: SchedulingStore = Depends(get_store),
    events: EventSink = Depends(get_event_sink),
    clock: Optional[Callable[[], datetime]] = Depends(get_clock),
) -> AppointmentScheduler:
    return AppointmentScheduler(store, settings, events, clock)


def get_availability(
    store: SchedulingStore = Depends(get_store),
    clock: Optional[Callable[[], datetime]] = Depends(get_clock),
) -> AvailabilityService:
    return AvailabilityService(store, settings, clock)


def get_blackout_resolver(
    store: SchedulingStore = Depends(get_store),
    clock: Optional[Callable[[], datetime]] = Depends(get_clock),
) -> BlackoutConflictResolver:
    return BlackoutConflictResolver(store, settings, clock)


def get_lunch_exceptions(store: SchedulingStore = Depends(get_store)) -> LunchExceptionService:
    return LunchExceptionService(store)
