from __future__ import annotations

import enum
from dataclasses import dataclass

from app.models.doctor import Doctor
from app.services.errors import OutOfScope


class Role(str, enum.Enum):
    superadmin = "superadmin"
    admin = "admin"
    doctor = "doctor"
    secretary = "secretary"
    assistant = "assistant"


ADMIN_ROLES = frozenset({Role.superadmin, Role.admin})


@dataclass(frozen=True)
class Actor:
    """Caller identity as resolved by the auth layer."""

    user_id: int
    role: Role
    clinic_id: int | None = None
    doctor_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def ensure_clinic_scope(actor: Actor, clinic_id: int | None) -> None:
    if actor.role == Role.superadmin:
        return
    if actor.clinic_id is None or actor.clinic_id != clinic_id:
        raise OutOfScope("Not allowed to act on another clinic")


def ensure_doctor_scope(actor: Actor, doctor: Doctor) -> None:
    ensure_clinic_scope(actor, doctor.clinic_id)
