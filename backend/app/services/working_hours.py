from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional

from app.core.settings import Settings
from app.models.doctor import Doctor
from app.models.schedule import WeeklySchedule
from app.services.errors import (
    BlockedDay,
    InvalidLunchWindow,
    InvalidWindow,
    LunchBreakConflict,
    OutsideWorkingHours,
)
from app.services.intervals import minute_of_day, overlaps, to_minutes, to_time_string, weekday_index
from app.services.store import SchedulingStore

RawWindow = tuple[str, str]
LunchLookup = Callable[[], Optional[RawWindow]]


@dataclass(frozen=True)
class WorkingHours:
    """Effective window for one doctor on one date, in minutes of the day."""

    window_start: int
    window_end: int
    lunch_start: int | None = None
    lunch_end: int | None = None

    @property
    def has_lunch(self) -> bool:
        return self.lunch_start is not None and self.lunch_end is not None

    def overlaps_lunch(self, start: int, end: int) -> bool:
        if not self.has_lunch:
            return False
        return overlaps(start, end, self.lunch_start, self.lunch_end)

    def contains(self, start: int, end: int) -> bool:
        return self.window_start <= start and end <= self.window_end

    def window_label(self) -> tuple[str, str]:
        return to_time_string(self.window_start), to_time_string(self.window_end)

    def lunch_label(self) -> tuple[str, str]:
        return to_time_string(self.lunch_start), to_time_string(self.lunch_end)


def fallback_working_hours(settings: Settings) -> WorkingHours:
    """Permissive 09:00-18:00 window used only by the assistant availability policy."""
    return WorkingHours(
        window_start=to_minutes(settings.fallback_window_start),
        window_end=to_minutes(settings.fallback_window_end),
    )


def _complete(start: str | None, end: str | None) -> RawWindow | None:
    # A level with only one bound set does not define a lunch window.
    if start and end:
        return start, end
    return None


def first_window(chain: list[LunchLookup]) -> RawWindow | None:
    for lookup in chain:
        window = lookup()
        if window is not None:
            return window
    return None


class WorkingHoursResolver:
    def __init__(self, store: SchedulingStore) -> None:
        self.store = store

    def is_blocked_day(self, doctor: Doctor, day: date) -> bool:
        return weekday_index(day) in doctor.blocked_weekday_set

    def lunch_chain(self, doctor: Doctor, day: date, schedule: WeeklySchedule | None) -> list[LunchLookup]:
        """Lunch sources, most specific first."""

        def doctor_exception() -> RawWindow | None:
            row = self.store.get_lunch_exception(day, doctor_id=doctor.id)
            return _complete(row.lunch_start, row.lunch_end) if row else None

        def clinic_exception() -> RawWindow | None:
            row = self.store.get_lunch_exception(day, clinic_id=doctor.clinic_id)
            return _complete(row.lunch_start, row.lunch_end) if row else None

        def weekly_schedule() -> RawWindow | None:
            return _complete(schedule.lunch_start, schedule.lunch_end) if schedule else None

        def doctor_default() -> RawWindow | None:
            return _complete(doctor.default_lunch_start, doctor.default_lunch_end)

        return [doctor_exception, clinic_exception, weekly_schedule, doctor_default]

    def resolve_lunch(
        self, doctor: Doctor, day: date, schedule: WeeklySchedule | None
    ) -> tuple[int, int] | None:
        window = first_window(self.lunch_chain(doctor, day, schedule))
        if window is None:
            return None
        try:
            start, end = to_minutes(window[0]), to_minutes(window[1])
        except InvalidWindow as exc:
            raise InvalidLunchWindow(f"Invalid lunch window {window[0]}-{window[1]}") from exc
        if start >= end:
            raise InvalidLunchWindow(f"Lunch window {window[0]}-{window[1]} ends before it starts")
        return start, end

    def resolve(self, doctor: Doctor, day: date) -> WorkingHours | None:
        """Working window and lunch for a date, or None when the doctor does not work."""
        if self.is_blocked_day(doctor, day):
            return None
        schedule = self.store.get_weekly_schedule(doctor.id, weekday_index(day))
        if schedule is None:
            return None
        window_start, window_end = to_minutes(schedule.start), to_minutes(schedule.end)
        if window_start >= window_end:
            raise InvalidWindow(f"Working hours {schedule.start}-{schedule.end} end before they start")
        lunch = self.resolve_lunch(doctor, day, schedule)
        if lunch is None:
            return WorkingHours(window_start, window_end)
        return WorkingHours(window_start, window_end, lunch[0], lunch[1])

    def ensure_bookable(self, doctor: Doctor, starts_at: datetime, duration_minutes: int) -> WorkingHours:
        """Raise unless [starts_at, +duration) fits the doctor's hours for that day.

        ``starts_at`` must already be in the clinic's civil zone.
        """
        day = starts_at.date()
        if self.is_blocked_day(doctor, day):
            raise BlockedDay(weekday_index(day))
        hours = self.resolve(doctor, day)
        if hours is None:
            raise OutsideWorkingHours("Doctor has no working hours on this day")
        start = minute_of_day(starts_at)
        end = start + duration_minutes
        if not hours.contains(start, end):
            window_start, window_end = hours.window_label()
            raise OutsideWorkingHours(
                f"Requested time falls outside working hours ({window_start}-{window_end})",
                window_start,
                window_end,
            )
        if hours.overlaps_lunch(start, end):
            lunch_start, lunch_end = hours.lunch_label()
            raise LunchBreakConflict(lunch_start, lunch_end)
        return hours
