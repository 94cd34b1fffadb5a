from __future__ import annotations

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from app.models.appointment import Appointment
from app.models.blackout import BlackoutPeriod
from app.services.intervals import day_bounds, overlaps, to_local
from app.services.store import SchedulingStore

Interval = tuple[datetime, datetime]


class ConflictDetector:
    def __init__(self, store: SchedulingStore, tz: ZoneInfo, margin_hours: int = 8) -> None:
        self.store = store
        self.tz = tz
        self.margin = timedelta(hours=margin_hours)

    def appointment_conflicts(
        self,
        doctor_id: int,
        starts_at: datetime,
        duration_minutes: int,
        exclude_id: int | None = None,
    ) -> list[Appointment]:
        """Active, non-cancelled appointments of the same civil day overlapping the candidate."""
        local_start = to_local(starts_at, self.tz)
        ends_at = local_start + timedelta(minutes=duration_minutes)
        day_start, day_end = day_bounds(local_start.date(), self.tz)
        rows = self.store.list_appointments(doctor_id, day_start, day_end)
        return [
            appt
            for appt in rows
            if appt.id != exclude_id and overlaps(local_start, ends_at, appt.starts_at, appt.ends_at)
        ]

    def blackout_conflicts(self, doctor_id: int, starts_at: datetime, ends_at: datetime) -> list[BlackoutPeriod]:
        # The widened query tolerates periods that span midnight; the precise test follows.
        rows = self.store.list_blackouts(doctor_id, starts_at - self.margin, ends_at + self.margin)
        return [row for row in rows if overlaps(starts_at, ends_at, row.starts_at, row.ends_at)]

    def appointments_in_period(self, doctor_id: int, starts_at: datetime, ends_at: datetime) -> list[Appointment]:
        rows = self.store.list_appointments(doctor_id, starts_at - self.margin, ends_at + self.margin)
        return [appt for appt in rows if overlaps(starts_at, ends_at, appt.starts_at, appt.ends_at)]

    def busy_intervals(self, doctor_id: int, day: date, ignore_blackout_id: int | None = None) -> list[Interval]:
        """Everything that blocks booking on a civil day: appointments and blackouts."""
        day_start, day_end = day_bounds(day, self.tz)
        busy: list[Interval] = [
            (appt.starts_at, appt.ends_at) for appt in self.store.list_appointments(doctor_id, day_start, day_end)
        ]
        busy.extend(
            (row.starts_at, row.ends_at)
            for row in self.blackout_conflicts(doctor_id, day_start, day_end)
            if row.id != ignore_blackout_id
        )
        return busy
