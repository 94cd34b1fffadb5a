from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import date, datetime
from typing import Protocol

from app.models.appointment import Appointment
from app.models.blackout import BlackoutPeriod
from app.models.doctor import Doctor
from app.models.patient import Patient
from app.models.schedule import LunchBreakException, WeeklySchedule
from app.models.service import Service


class SchedulingStore(Protocol):
    """Read/write contract the scheduling engine depends on."""

    def get_doctor(self, doctor_id: int) -> Doctor | None:
        raise NotImplementedError

    def get_service(self, service_id: int) -> Service | None:
        raise NotImplementedError

    def get_patient(self, patient_id: int) -> Patient | None:
        raise NotImplementedError

    def get_weekly_schedule(self, doctor_id: int, weekday: int) -> WeeklySchedule | None:
        raise NotImplementedError

    def get_lunch_exception(
        self,
        day: date,
        clinic_id: int | None = None,
        doctor_id: int | None = None,
    ) -> LunchBreakException | None:
        raise NotImplementedError

    def list_lunch_exceptions(
        self,
        clinic_id: int | None = None,
        doctor_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[LunchBreakException]:
        raise NotImplementedError

    def get_lunch_exception_by_id(self, exception_id: int) -> LunchBreakException | None:
        raise NotImplementedError

    def get_appointment(self, appointment_id: int) -> Appointment | None:
        raise NotImplementedError

    def list_appointments(
        self,
        doctor_id: int,
        start: datetime,
        end: datetime,
        exclude_cancelled: bool = True,
        exclude_inactive: bool = True,
    ) -> list[Appointment]:
        """Appointments of a doctor starting in [start, end), ordered by start."""
        raise NotImplementedError

    def get_blackout(self, blackout_id: int) -> BlackoutPeriod | None:
        raise NotImplementedError

    def list_blackouts(
        self,
        doctor_id: int,
        start: datetime,
        end: datetime,
        active_only: bool = True,
    ) -> list[BlackoutPeriod]:
        """Blackouts of a doctor intersecting [start, end), ordered by start."""
        raise NotImplementedError

    def list_doctor_blackouts(self, doctor_id: int, active_only: bool = True) -> list[BlackoutPeriod]:
        raise NotImplementedError

    def list_clinic_blackouts(self, clinic_id: int, active_only: bool = True) -> list[BlackoutPeriod]:
        raise NotImplementedError

    def save(self, *objects: object) -> None:
        """Persist all objects in a single commit: all or nothing."""
        raise NotImplementedError

    def doctor_lock(self, doctor_id: int) -> AbstractContextManager[None]:
        """Serialize check-then-write sequences for one doctor."""
        raise NotImplementedError
