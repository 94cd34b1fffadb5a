from __future__ import annotations

import logging
from datetime import date

from app.models.schedule import LunchBreakException
from app.services.actor import Actor, Role, ensure_clinic_scope, ensure_doctor_scope
from app.services.errors import InvalidLunchWindow, InvalidWindow, NotFound, OutOfScope
from app.services.intervals import to_minutes
from app.services.store import SchedulingStore

logger = logging.getLogger("clinic_scheduling.lunch_exceptions")


def validate_lunch_window(lunch_start: str, lunch_end: str) -> None:
    try:
        start, end = to_minutes(lunch_start), to_minutes(lunch_end)
    except InvalidWindow as exc:
        raise InvalidLunchWindow(exc.message) from exc
    if start >= end:
        raise InvalidLunchWindow("Lunch break must end after it starts")


class LunchExceptionService:
    """One-day lunch overrides, scoped to a whole clinic or a single doctor."""

    def __init__(self, store: SchedulingStore) -> None:
        self.store = store

    def _check_scope(self, actor: Actor, clinic_id: int | None, doctor_id: int | None) -> None:
        if (clinic_id is None) == (doctor_id is None):
            raise InvalidWindow("Exactly one of clinic_id or doctor_id is required")
        if doctor_id is not None:
            doctor = self.store.get_doctor(doctor_id)
            if doctor is None:
                raise NotFound("doctor", doctor_id)
            ensure_doctor_scope(actor, doctor)
            if actor.role == Role.doctor and actor.doctor_id != doctor.id:
                raise OutOfScope("Doctors can only change their own lunch breaks")
            return
        ensure_clinic_scope(actor, clinic_id)
        if actor.role == Role.doctor:
            raise OutOfScope("Doctors cannot change the clinic lunch break")

    def upsert(
        self,
        actor: Actor,
        day: date,
        lunch_start: str,
        lunch_end: str,
        clinic_id: int | None = None,
        doctor_id: int | None = None,
    ) -> LunchBreakException:
        self._check_scope(actor, clinic_id, doctor_id)
        validate_lunch_window(lunch_start, lunch_end)

        row = self.store.get_lunch_exception(day, clinic_id=clinic_id, doctor_id=doctor_id)
        if row is None:
            row = LunchBreakException(
                day=day,
                clinic_id=clinic_id,
                doctor_id=doctor_id,
                lunch_start=lunch_start,
                lunch_end=lunch_end,
                active=True,
            )
        else:
            row.lunch_start = lunch_start
            row.lunch_end = lunch_end
        self.store.save(row)
        logger.info(
            "Lunch exception %s on %s set to %s-%s (clinic %s, doctor %s)",
            row.id,
            day,
            lunch_start,
            lunch_end,
            clinic_id,
            doctor_id,
        )
        return row

    def list_for_clinic(
        self, actor: Actor, clinic_id: int, date_from: date | None = None, date_to: date | None = None
    ) -> list[LunchBreakException]:
        ensure_clinic_scope(actor, clinic_id)
        return self.store.list_lunch_exceptions(clinic_id=clinic_id, date_from=date_from, date_to=date_to)

    def list_for_doctor(
        self, actor: Actor, doctor_id: int, date_from: date | None = None, date_to: date | None = None
    ) -> list[LunchBreakException]:
        doctor = self.store.get_doctor(doctor_id)
        if doctor is None:
            raise NotFound("doctor", doctor_id)
        ensure_doctor_scope(actor, doctor)
        return self.store.list_lunch_exceptions(doctor_id=doctor.id, date_from=date_from, date_to=date_to)

    def remove(self, actor: Actor, exception_id: int) -> LunchBreakException:
        row = self.store.get_lunch_exception_by_id(exception_id)
        if row is None or not row.active:
            raise NotFound("lunch exception", exception_id)
        self._check_scope(actor, row.clinic_id, row.doctor_id)
        row.active = False
        self.store.save(row)
        logger.info("Lunch exception %s removed by user %s", row.id, actor.user_id)
        return row
