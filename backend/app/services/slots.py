from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Iterable, Iterator

from app.services.errors import InvalidWindow
from app.services.intervals import minute_of_day, to_time_string
from app.services.working_hours import WorkingHours

DENSE_STEP_MINUTES = 15


class SlotPolicy(str, enum.Enum):
    duration = "duration"
    dense = "dense"


def step_for(policy: SlotPolicy, duration_minutes: int, dense_step: int = DENSE_STEP_MINUTES) -> int:
    if policy == SlotPolicy.dense:
        return dense_step
    return duration_minutes


class SlotSequence:
    """Candidate start minutes for one working day, ascending.

    Iterating is lazy and can be repeated; each pass starts from the top of
    the window.
    """

    def __init__(self, hours: WorkingHours, duration_minutes: int, step_minutes: int | None = None) -> None:
        if duration_minutes <= 0:
            raise InvalidWindow("Service duration must be positive")
        step = step_minutes if step_minutes is not None else duration_minutes
        if step <= 0:
            raise InvalidWindow("Slot step must be positive")
        self.hours = hours
        self.duration = duration_minutes
        self.step = step

    def __iter__(self) -> Iterator[int]:
        hours = self.hours
        current = hours.window_start
        while current + self.duration <= hours.window_end:
            if hours.overlaps_lunch(current, current + self.duration):
                current = hours.lunch_end
                continue
            yield current
            current += self.step

    def times(self) -> list[str]:
        return [to_time_string(minutes) for minutes in self]


def filter_lead_time(slots: Iterable[int], day: date, now: datetime, lead_minutes: int) -> list[int]:
    """Drop starts closer than ``lead_minutes`` to ``now`` (both in civil time)."""
    today = now.date()
    if day > today:
        return list(slots)
    if day < today:
        return []
    limit = minute_of_day(now) + lead_minutes
    return [minutes for minutes in slots if minutes >= limit]
