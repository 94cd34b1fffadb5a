from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterator

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.appointment import Appointment, AppointmentStatus
from app.models.blackout import BlackoutPeriod
from app.models.doctor import Doctor
from app.models.patient import Patient
from app.models.schedule import LunchBreakException, WeeklySchedule
from app.models.service import Service
from app.services.store import SchedulingStore


class SqlAlchemyStore(SchedulingStore):
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_doctor(self, doctor_id: int) -> Doctor | None:
        return self.db.get(Doctor, doctor_id)

    def get_service(self, service_id: int) -> Service | None:
        return self.db.get(Service, service_id)

    def get_patient(self, patient_id: int) -> Patient | None:
        return self.db.get(Patient, patient_id)

    def get_weekly_schedule(self, doctor_id: int, weekday: int) -> WeeklySchedule | None:
        stmt = select(WeeklySchedule).where(
            WeeklySchedule.doctor_id == doctor_id,
            WeeklySchedule.weekday == weekday,
        )
        return self.db.scalar(stmt)

    def get_lunch_exception(
        self,
        day: date,
        clinic_id: int | None = None,
        doctor_id: int | None = None,
    ) -> LunchBreakException | None:
        stmt = select(LunchBreakException).where(
            LunchBreakException.day == day,
            LunchBreakException.active.is_(True),
        )
        stmt = self._scope(stmt, clinic_id, doctor_id)
        return self.db.scalar(stmt.order_by(LunchBreakException.id.desc()).limit(1))

    def list_lunch_exceptions(
        self,
        clinic_id: int | None = None,
        doctor_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[LunchBreakException]:
        stmt = select(LunchBreakException).where(LunchBreakException.active.is_(True))
        stmt = self._scope(stmt, clinic_id, doctor_id)
        if date_from:
            stmt = stmt.where(LunchBreakException.day >= date_from)
        if date_to:
            stmt = stmt.where(LunchBreakException.day <= date_to)
        return list(self.db.scalars(stmt.order_by(LunchBreakException.day.asc())))

    def get_lunch_exception_by_id(self, exception_id: int) -> LunchBreakException | None:
        return self.db.get(LunchBreakException, exception_id)

    def get_appointment(self, appointment_id: int) -> Appointment | None:
        return self.db.get(Appointment, appointment_id)

    def list_appointments(
        self,
        doctor_id: int,
        start: datetime,
        end: datetime,
        exclude_cancelled: bool = True,
        exclude_inactive: bool = True,
    ) -> list[Appointment]:
        stmt = select(Appointment).where(
            Appointment.doctor_id == doctor_id,
            Appointment.starts_at >= start,
            Appointment.starts_at < end,
        )
        if exclude_cancelled:
            stmt = stmt.where(Appointment.status != AppointmentStatus.cancelado)
        if exclude_inactive:
            stmt = stmt.where(Appointment.active.is_(True))
        return list(self.db.scalars(stmt.order_by(Appointment.starts_at.asc())).unique())

    def get_blackout(self, blackout_id: int) -> BlackoutPeriod | None:
        return self.db.get(BlackoutPeriod, blackout_id)

    def list_blackouts(
        self,
        doctor_id: int,
        start: datetime,
        end: datetime,
        active_only: bool = True,
    ) -> list[BlackoutPeriod]:
        stmt = select(BlackoutPeriod).where(
            BlackoutPeriod.doctor_id == doctor_id,
            BlackoutPeriod.starts_at < end,
            BlackoutPeriod.ends_at > start,
        )
        if active_only:
            stmt = stmt.where(BlackoutPeriod.active.is_(True))
        return list(self.db.scalars(stmt.order_by(BlackoutPeriod.starts_at.asc())))

    def list_doctor_blackouts(self, doctor_id: int, active_only: bool = True) -> list[BlackoutPeriod]:
        stmt = select(BlackoutPeriod).where(BlackoutPeriod.doctor_id == doctor_id)
        if active_only:
            stmt = stmt.where(BlackoutPeriod.active.is_(True))
        return list(self.db.scalars(stmt.order_by(BlackoutPeriod.starts_at.asc())))

    def list_clinic_blackouts(self, clinic_id: int, active_only: bool = True) -> list[BlackoutPeriod]:
        stmt = (
            select(BlackoutPeriod)
            .join(Doctor, Doctor.id == BlackoutPeriod.doctor_id)
            .where(Doctor.clinic_id == clinic_id)
        )
        if active_only:
            stmt = stmt.where(BlackoutPeriod.active.is_(True))
        return list(self.db.scalars(stmt.order_by(BlackoutPeriod.starts_at.asc())))

    def save(self, *objects: object) -> None:
        self.db.add_all(objects)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        for obj in objects:
            self.db.refresh(obj)

    @contextmanager
    def doctor_lock(self, doctor_id: int) -> Iterator[None]:
        # Row lock held until the surrounding transaction commits or rolls back.
        self.db.execute(select(Doctor.id).where(Doctor.id == doctor_id).with_for_update())
        try:
            yield
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def _scope(stmt, clinic_id: int | None, doctor_id: int | None):
        if doctor_id is not None:
            return stmt.where(
                LunchBreakException.doctor_id == doctor_id,
                LunchBreakException.clinic_id.is_(None),
            )
        return stmt.where(
            LunchBreakException.clinic_id == clinic_id,
            LunchBreakException.doctor_id.is_(None),
        )
