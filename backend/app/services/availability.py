from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Iterable

from app.core.settings import Settings
from app.models.doctor import Doctor
from app.models.service import Service
from app.services.actor import Actor, ensure_clinic_scope, ensure_doctor_scope
from app.services.conflicts import ConflictDetector, Interval
from app.services.errors import NotFound
from app.services.intervals import at_minute, overlaps, to_time_string
from app.services.slots import SlotPolicy, SlotSequence, filter_lead_time, step_for
from app.services.store import SchedulingStore
from app.services.working_hours import WorkingHoursResolver, fallback_working_hours

logger = logging.getLogger("clinic_scheduling.availability")

# Minimum step when the assistant policy falls back to the default window.
FALLBACK_MIN_STEP_MINUTES = 30


class AvailabilityPolicy(str, enum.Enum):
    staff = "staff"
    assistant = "assistant"


@dataclass(frozen=True)
class DaySlots:
    day: date
    slots: list[str]

    def as_dict(self) -> dict:
        return {"date": self.day.isoformat(), "slots": list(self.slots)}


class AvailabilityService:
    def __init__(
        self,
        store: SchedulingStore,
        settings: Settings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.tz = settings.tz
        self.resolver = WorkingHoursResolver(store)
        self.detector = ConflictDetector(store, self.tz, settings.blackout_margin_hours)
        self._clock = clock or (lambda: datetime.now(self.tz))

    def now(self) -> datetime:
        return self._clock().astimezone(self.tz)

    def load_doctor(self, actor: Actor, doctor_id: int) -> Doctor:
        doctor = self.store.get_doctor(doctor_id)
        if doctor is None or not doctor.active:
            raise NotFound("doctor", doctor_id)
        ensure_doctor_scope(actor, doctor)
        return doctor

    def load_service(self, actor: Actor, service_id: int) -> Service:
        service = self.store.get_service(service_id)
        if service is None or not service.active:
            raise NotFound("service", service_id)
        ensure_clinic_scope(actor, service.clinic_id)
        return service

    def available_slots(
        self,
        actor: Actor,
        doctor_id: int,
        service_id: int,
        day: date,
        policy: AvailabilityPolicy = AvailabilityPolicy.staff,
    ) -> list[str]:
        doctor = self.load_doctor(actor, doctor_id)
        service = self.load_service(actor, service_id)
        slots = self.free_slots(doctor, service.duration_minutes, day, policy)
        logger.debug(
            "Doctor %s service %s on %s (%s): %s free slots",
            doctor.id,
            service.id,
            day,
            policy.value,
            len(slots),
        )
        return slots

    def _policy_window(self, doctor: Doctor, duration: int, day: date, policy: AvailabilityPolicy):
        hours = self.resolver.resolve(doctor, day)
        if hours is not None:
            slot_policy = SlotPolicy.dense if policy == AvailabilityPolicy.assistant else SlotPolicy.duration
            return hours, step_for(slot_policy, duration, self.settings.dense_step_minutes)
        if policy != AvailabilityPolicy.assistant or self.resolver.is_blocked_day(doctor, day):
            return None, None
        logger.info("Doctor %s has no schedule on %s; using the fallback window", doctor.id, day)
        return fallback_working_hours(self.settings), max(duration, FALLBACK_MIN_STEP_MINUTES)

    def free_slots(
        self,
        doctor: Doctor,
        duration: int,
        day: date,
        policy: AvailabilityPolicy = AvailabilityPolicy.staff,
        extra_busy: Iterable[Interval] = (),
        ignore_blackout_id: int | None = None,
    ) -> list[str]:
        hours, step = self._policy_window(doctor, duration, day, policy)
        if hours is None:
            return []
        candidates = filter_lead_time(
            SlotSequence(hours, duration, step), day, self.now(), self.settings.min_lead_minutes
        )
        if not candidates:
            return []
        busy = self.detector.busy_intervals(doctor.id, day, ignore_blackout_id)
        busy.extend(extra_busy)
        free: list[str] = []
        for minutes in candidates:
            start = at_minute(day, minutes, self.tz)
            end = start + timedelta(minutes=duration)
            if any(overlaps(start, end, busy_start, busy_end) for busy_start, busy_end in busy):
                continue
            free.append(to_time_string(minutes))
        return free

    def next_available_days(
        self,
        doctor: Doctor,
        duration: int,
        first_day: date,
        skip_days: Iterable[date] = (),
        extra_busy: Iterable[Interval] = (),
        policy: AvailabilityPolicy = AvailabilityPolicy.staff,
        ignore_blackout_id: int | None = None,
    ) -> list[DaySlots]:
        """Scan forward day by day for dates with at least one free slot."""
        skipped = set(skip_days)
        busy = list(extra_busy)
        found: list[DaySlots] = []
        for offset in range(self.settings.suggestion_scan_days):
            day = first_day + timedelta(days=offset)
            if day in skipped:
                continue
            slots = self.free_slots(doctor, duration, day, policy, busy, ignore_blackout_id)
            if slots:
                found.append(DaySlots(day, slots[: self.settings.suggestion_max_slots]))
            if len(found) >= self.settings.suggestion_max_days:
                break
        return found
