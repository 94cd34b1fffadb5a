from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from app.core.settings import Settings
from app.models.appointment import Appointment
from app.models.blackout import BlackoutPeriod
from app.models.doctor import Doctor
from app.services.actor import Actor, ensure_clinic_scope, ensure_doctor_scope
from app.services.availability import AvailabilityService
from app.services.errors import BlackoutHasConflicts, NotFound
from app.services.intervals import to_local, validate_period
from app.services.store import SchedulingStore

logger = logging.getLogger("clinic_scheduling.blackouts")


@dataclass
class BlackoutResult:
    blackout: BlackoutPeriod
    conflicting: list[dict[str, Any]] = field(default_factory=list)

    @property
    def advisory(self) -> str | None:
        if not self.conflicting:
            return None
        return (
            f"Blackout saved; {len(self.conflicting)} appointment(s) now overlap it "
            "and should be rescheduled"
        )


def describe_conflict(appt: Appointment) -> dict[str, Any]:
    return {
        "id": appt.id,
        "starts_at": appt.starts_at.isoformat(),
        "ends_at": appt.ends_at.isoformat(),
        "status": appt.status.value,
        "patient_id": appt.patient_id,
        "patient_name": appt.patient.name if appt.patient is not None else None,
        "service_id": appt.service_id,
        "service_name": appt.service.name if appt.service is not None else None,
    }


class BlackoutConflictResolver:
    def __init__(
        self,
        store: SchedulingStore,
        settings: Settings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.tz = settings.tz
        self.availability = AvailabilityService(store, settings, clock)
        self.detector = self.availability.detector

    def _load_blackout(self, actor: Actor, blackout_id: int) -> BlackoutPeriod:
        row = self.store.get_blackout(blackout_id)
        if row is None or not row.active:
            raise NotFound("blackout", blackout_id)
        doctor = self.store.get_doctor(row.doctor_id)
        if doctor is None:
            raise NotFound("doctor", row.doctor_id)
        ensure_doctor_scope(actor, doctor)
        return row

    def suggestions_for(
        self,
        doctor: Doctor,
        conflicts: list[Appointment],
        starts_at: datetime,
        ends_at: datetime,
        ignore_blackout_id: int | None = None,
    ) -> dict[int, list[dict[str, Any]]]:
        first_day = self.availability.now().date() + timedelta(days=1)
        suggestions: dict[int, list[dict[str, Any]]] = {}
        for appt in conflicts:
            days = self.availability.next_available_days(
                doctor,
                appt.duration_minutes,
                first_day,
                skip_days=[to_local(appt.starts_at, self.tz).date()],
                extra_busy=[(starts_at, ends_at)],
                ignore_blackout_id=ignore_blackout_id,
            )
            suggestions[appt.id] = [day.as_dict() for day in days]
        return suggestions

    def _check(
        self,
        doctor: Doctor,
        starts_at: datetime,
        ends_at: datetime,
        ignore_conflicts: bool,
        ignore_blackout_id: int | None = None,
    ) -> list[dict[str, Any]]:
        conflicts = self.detector.appointments_in_period(doctor.id, starts_at, ends_at)
        if not conflicts:
            return []
        described = [describe_conflict(appt) for appt in conflicts]
        if ignore_conflicts:
            logger.warning(
                "Blackout for doctor %s saved over %s appointment(s) with conflicts ignored",
                doctor.id,
                len(conflicts),
            )
            return described
        suggestions = self.suggestions_for(doctor, conflicts, starts_at, ends_at, ignore_blackout_id)
        raise BlackoutHasConflicts(described, suggestions)

    def create(
        self,
        actor: Actor,
        *,
        doctor_id: int,
        starts_at: datetime,
        ends_at: datetime,
        reason: str | None = None,
        ignore_conflicts: bool = False,
    ) -> BlackoutResult:
        doctor = self.availability.load_doctor(actor, doctor_id)
        start, end = to_local(starts_at, self.tz), to_local(ends_at, self.tz)
        validate_period(start, end)
        conflicting = self._check(doctor, start, end, ignore_conflicts)

        row = BlackoutPeriod(doctor_id=doctor.id, starts_at=start, ends_at=end, reason=reason, active=True)
        self.store.save(row)
        logger.info("Blackout %s created for doctor %s (%s - %s)", row.id, doctor.id, start, end)
        return BlackoutResult(row, conflicting)

    def update(
        self,
        actor: Actor,
        blackout_id: int,
        *,
        starts_at: datetime | None = None,
        ends_at: datetime | None = None,
        reason: str | None = None,
        ignore_conflicts: bool = False,
    ) -> BlackoutResult:
        row = self._load_blackout(actor, blackout_id)
        doctor = self.availability.load_doctor(actor, row.doctor_id)
        start = to_local(starts_at, self.tz) if starts_at is not None else to_local(row.starts_at, self.tz)
        end = to_local(ends_at, self.tz) if ends_at is not None else to_local(row.ends_at, self.tz)
        validate_period(start, end)
        conflicting = self._check(doctor, start, end, ignore_conflicts, ignore_blackout_id=row.id)

        row.starts_at = start
        row.ends_at = end
        if reason is not None:
            row.reason = reason
        self.store.save(row)
        logger.info("Blackout %s updated (%s - %s)", row.id, start, end)
        return BlackoutResult(row, conflicting)

    def remove(self, actor: Actor, blackout_id: int) -> BlackoutPeriod:
        row = self._load_blackout(actor, blackout_id)
        row.active = False
        self.store.save(row)
        logger.info("Blackout %s removed by user %s", row.id, actor.user_id)
        return row

    def list_for_doctor(self, actor: Actor, doctor_id: int) -> list[BlackoutPeriod]:
        doctor = self.availability.load_doctor(actor, doctor_id)
        return self.store.list_doctor_blackouts(doctor.id)

    def list_for_clinic(self, actor: Actor, clinic_id: int) -> list[BlackoutPeriod]:
        ensure_clinic_scope(actor, clinic_id)
        return self.store.list_clinic_blackouts(clinic_id)
