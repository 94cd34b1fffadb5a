"""Typed failures raised by the scheduling engine.

Every error carries a stable ``code`` and a ``details()`` payload with the
resolved values the caller needs to render a precise message. None of them
leak query internals.
"""

from __future__ import annotations

from typing import Any


class SchedulingError(Exception):
    """Base class for all scheduling validation failures."""

    code = "scheduling_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def details(self) -> dict[str, Any]:
        return {}


class NotFound(SchedulingError):
    code = "not_found"

    def __init__(self, entity: str, entity_id: int | None = None) -> None:
        super().__init__(f"{entity.capitalize()} not found")
        self.entity = entity
        self.entity_id = entity_id

    def details(self) -> dict[str, Any]:
        return {"entity": self.entity, "id": self.entity_id}


class OutOfScope(SchedulingError):
    code = "out_of_scope"


class InvalidWindow(SchedulingError):
    code = "invalid_window"


class InvalidLunchWindow(InvalidWindow):
    code = "invalid_lunch_window"


class LunchBreakConflict(SchedulingError):
    code = "lunch_break_conflict"

    def __init__(self, lunch_start: str, lunch_end: str) -> None:
        super().__init__(f"Requested time overlaps the lunch break ({lunch_start}-{lunch_end})")
        self.lunch_start = lunch_start
        self.lunch_end = lunch_end

    def details(self) -> dict[str, Any]:
        return {"lunch_start": self.lunch_start, "lunch_end": self.lunch_end}


class BlockedDay(SchedulingError):
    code = "blocked_day"

    def __init__(self, weekday: int) -> None:
        super().__init__("Doctor does not accept appointments on this weekday")
        self.weekday = weekday

    def details(self) -> dict[str, Any]:
        return {"weekday": self.weekday}


class OutsideWorkingHours(SchedulingError):
    code = "outside_working_hours"

    def __init__(self, message: str, window_start: str | None = None, window_end: str | None = None) -> None:
        super().__init__(message)
        self.window_start = window_start
        self.window_end = window_end

    def details(self) -> dict[str, Any]:
        return {"window_start": self.window_start, "window_end": self.window_end}


class BlackoutConflict(SchedulingError):
    code = "blackout_conflict"

    def __init__(self, blackout_ids: list[int]) -> None:
        super().__init__("Doctor is unavailable during the requested time")
        self.blackout_ids = blackout_ids

    def details(self) -> dict[str, Any]:
        return {"blackout_ids": self.blackout_ids}


class AppointmentConflict(SchedulingError):
    code = "appointment_conflict"

    def __init__(self, appointment_ids: list[int]) -> None:
        super().__init__("Requested time overlaps another appointment")
        self.appointment_ids = appointment_ids

    def details(self) -> dict[str, Any]:
        return {"appointment_ids": self.appointment_ids}


class SelfOverlap(SchedulingError):
    code = "self_overlap"

    def __init__(self) -> None:
        super().__init__("New time overlaps the appointment's current slot")


class InvalidCancellation(SchedulingError):
    code = "invalid_cancellation"


class InvalidStatusTransition(SchedulingError):
    code = "invalid_status_transition"

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot move appointment from {current} to {requested}")
        self.current = current
        self.requested = requested

    def details(self) -> dict[str, Any]:
        return {"current": self.current, "requested": self.requested}


class InvalidFinalization(SchedulingError):
    code = "invalid_finalization"


class BlackoutHasConflicts(SchedulingError):
    """Resolvable by retrying with ``ignore_conflicts``."""

    code = "blackout_has_conflicts"

    def __init__(self, conflicts: list[dict[str, Any]], suggestions: dict[int, list[dict[str, Any]]]) -> None:
        super().__init__(
            f"Blackout overlaps {len(conflicts)} scheduled appointment(s); "
            "reschedule them or retry with ignore_conflicts"
        )
        self.conflicts = conflicts
        self.suggestions = suggestions

    def details(self) -> dict[str, Any]:
        return {
            "conflicting_appointments": self.conflicts,
            "suggestions": {str(key): value for key, value in self.suggestions.items()},
        }
