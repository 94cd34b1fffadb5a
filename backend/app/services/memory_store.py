from __future__ import annotations

import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterator

from app.models.appointment import Appointment, AppointmentStatus
from app.models.blackout import BlackoutPeriod
from app.models.clinic import Clinic
from app.models.doctor import Doctor
from app.models.history import HistoryRecord
from app.models.patient import Patient
from app.models.schedule import LunchBreakException, WeeklySchedule
from app.models.service import Service
from app.services.store import SchedulingStore


class InMemoryStore(SchedulingStore):
    """Dictionary-backed store holding transient model instances."""

    def __init__(self) -> None:
        self._tables: dict[type, dict[int, object]] = defaultdict(dict)
        self._locks: dict[int, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    @property
    def history(self) -> list[HistoryRecord]:
        return list(self._tables[HistoryRecord].values())  # type: ignore[arg-type]

    def get_doctor(self, doctor_id: int) -> Doctor | None:
        return self._tables[Doctor].get(doctor_id)  # type: ignore[return-value]

    def get_service(self, service_id: int) -> Service | None:
        return self._tables[Service].get(service_id)  # type: ignore[return-value]

    def get_patient(self, patient_id: int) -> Patient | None:
        return self._tables[Patient].get(patient_id)  # type: ignore[return-value]

    def get_weekly_schedule(self, doctor_id: int, weekday: int) -> WeeklySchedule | None:
        for row in self._tables[WeeklySchedule].values():
            if row.doctor_id == doctor_id and row.weekday == weekday:
                return row  # type: ignore[return-value]
        return None

    def get_lunch_exception(
        self,
        day: date,
        clinic_id: int | None = None,
        doctor_id: int | None = None,
    ) -> LunchBreakException | None:
        matches = [
            row
            for row in self.list_lunch_exceptions(clinic_id=clinic_id, doctor_id=doctor_id)
            if row.day == day
        ]
        return max(matches, key=lambda row: row.id) if matches else None

    def list_lunch_exceptions(
        self,
        clinic_id: int | None = None,
        doctor_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[LunchBreakException]:
        rows: list[LunchBreakException] = []
        for row in self._tables[LunchBreakException].values():
            if not row.active:
                continue
            if doctor_id is not None:
                if row.doctor_id != doctor_id or row.clinic_id is not None:
                    continue
            elif row.clinic_id != clinic_id or row.doctor_id is not None:
                continue
            if date_from and row.day < date_from:
                continue
            if date_to and row.day > date_to:
                continue
            rows.append(row)
        return sorted(rows, key=lambda row: row.day)

    def get_lunch_exception_by_id(self, exception_id: int) -> LunchBreakException | None:
        return self._tables[LunchBreakException].get(exception_id)  # type: ignore[return-value]

    def get_appointment(self, appointment_id: int) -> Appointment | None:
        return self._tables[Appointment].get(appointment_id)  # type: ignore[return-value]

    def list_appointments(
        self,
        doctor_id: int,
        start: datetime,
        end: datetime,
        exclude_cancelled: bool = True,
        exclude_inactive: bool = True,
    ) -> list[Appointment]:
        rows: list[Appointment] = []
        for appt in self._tables[Appointment].values():
            if appt.doctor_id != doctor_id or not (start <= appt.starts_at < end):
                continue
            if exclude_cancelled and appt.status == AppointmentStatus.cancelado:
                continue
            if exclude_inactive and not appt.active:
                continue
            rows.append(appt)
        return sorted(rows, key=lambda appt: appt.starts_at)

    def get_blackout(self, blackout_id: int) -> BlackoutPeriod | None:
        return self._tables[BlackoutPeriod].get(blackout_id)  # type: ignore[return-value]

    def list_blackouts(
        self,
        doctor_id: int,
        start: datetime,
        end: datetime,
        active_only: bool = True,
    ) -> list[BlackoutPeriod]:
        return [
            row
            for row in self.list_doctor_blackouts(doctor_id, active_only=active_only)
            if row.starts_at < end and row.ends_at > start
        ]

    def list_doctor_blackouts(self, doctor_id: int, active_only: bool = True) -> list[BlackoutPeriod]:
        rows = [
            row
            for row in self._tables[BlackoutPeriod].values()
            if row.doctor_id == doctor_id and (row.active or not active_only)
        ]
        return sorted(rows, key=lambda row: row.starts_at)

    def list_clinic_blackouts(self, clinic_id: int, active_only: bool = True) -> list[BlackoutPeriod]:
        doctor_ids = {doc.id for doc in self._tables[Doctor].values() if doc.clinic_id == clinic_id}
        rows = [
            row
            for row in self._tables[BlackoutPeriod].values()
            if row.doctor_id in doctor_ids and (row.active or not active_only)
        ]
        return sorted(rows, key=lambda row: row.starts_at)

    def save(self, *objects: object) -> None:
        for obj in objects:
            table = self._tables[type(obj)]
            if getattr(obj, "id", None) is None:
                obj.id = max(table, default=0) + 1  # type: ignore[attr-defined]
            if isinstance(obj, Appointment):
                # Keep relationships in step with foreign keys, as a flush would.
                obj.service = self.get_service(obj.service_id)
                obj.doctor = self.get_doctor(obj.doctor_id)
                obj.patient = self.get_patient(obj.patient_id)
            table[obj.id] = obj  # type: ignore[attr-defined]

    def add(self, *objects: object) -> None:
        """Seed helper for tests and fixtures."""
        for obj in objects:
            if isinstance(obj, (Clinic, Doctor, Service, Patient)):
                if getattr(obj, "active", True) is None:
                    obj.active = True  # type: ignore[attr-defined]
        self.save(*objects)

    @contextmanager
    def doctor_lock(self, doctor_id: int) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks[doctor_id]
        with lock:
            yield
