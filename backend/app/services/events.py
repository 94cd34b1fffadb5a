from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy import inspect

from app.models.appointment import Appointment

logger = logging.getLogger("clinic_scheduling.events")


class AppointmentAction(str, enum.Enum):
    created = "created"
    updated = "updated"
    deleted = "deleted"
    finalized = "finalized"
    encaixe_confirmed = "encaixe_confirmed"
    canceled = "canceled"


@dataclass(frozen=True)
class AppointmentEvent:
    id: int
    doctor_id: int
    clinic_id: int | None
    action: AppointmentAction
    snapshot: dict[str, Any] = field(default_factory=dict)


class EventSink(Protocol):
    def emit(self, event: AppointmentEvent) -> None:
        raise NotImplementedError


def snapshot_model(obj: Any | None) -> dict | None:
    if obj is None:
        return None
    data: dict[str, Any] = {}
    mapper = inspect(obj).mapper
    for column in mapper.columns:
        key = column.key
        value = getattr(obj, key)
        if hasattr(value, "value"):
            value = value.value
        data[key] = value
    return data


def snapshot_appointment(appt: Appointment) -> dict[str, Any]:
    data = snapshot_model(appt) or {}
    data["ends_at"] = appt.ends_at
    data["doctor"] = snapshot_model(appt.doctor)
    data["service"] = snapshot_model(appt.service)
    data["patient"] = snapshot_model(appt.patient)
    return data


class LoggingEventSink:
    """Default sink; delivery to clients happens outside the engine."""

    def emit(self, event: AppointmentEvent) -> None:
        logger.info(
            "Appointment event %s for appointment %s (doctor %s, clinic %s)",
            event.action.value,
            event.id,
            event.doctor_id,
            event.clinic_id,
        )


class RecordingEventSink:
    def __init__(self) -> None:
        self.events: list[AppointmentEvent] = []

    def emit(self, event: AppointmentEvent) -> None:
        self.events.append(event)

    @property
    def actions(self) -> list[str]:
        return [event.action.value for event in self.events]


def emit_appointment_event(sink: EventSink, appt: Appointment, action: AppointmentAction) -> None:
    clinic_id = appt.doctor.clinic_id if appt.doctor is not None else None
    event = AppointmentEvent(
        id=appt.id,
        doctor_id=appt.doctor_id,
        clinic_id=clinic_id,
        action=action,
        snapshot=snapshot_appointment(appt),
    )
    try:
        sink.emit(event)
    except Exception:
        # Delivery is fire-and-forget; the write already succeeded.
        logger.exception("Failed to emit %s event for appointment %s", action.value, appt.id)
