from __future__ import annotations

import enum
from datetime import datetime, timedelta

from sqlalchemy import Boolean, CheckConstraint, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin


class AppointmentStatus(str, enum.Enum):
    pendente = "pendente"
    pendente_ia = "pendente_ia"
    encaixe_pendente = "encaixe_pendente"
    confirmado = "confirmado"
    finalizado = "finalizado"
    cancelado = "cancelado"


TERMINAL_STATUSES = frozenset({AppointmentStatus.finalizado, AppointmentStatus.cancelado})

# Statuses a caller may pick when booking a regular (non-encaixe) appointment.
INITIAL_STATUSES = frozenset(
    {AppointmentStatus.pendente, AppointmentStatus.pendente_ia, AppointmentStatus.confirmado}
)

# Transitions reachable through a plain update. Confirming an encaixe,
# finalizing and cancelling have their own operations with extra rules.
UPDATE_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.pendente: frozenset({AppointmentStatus.pendente_ia, AppointmentStatus.confirmado}),
    AppointmentStatus.pendente_ia: frozenset({AppointmentStatus.pendente, AppointmentStatus.confirmado}),
    AppointmentStatus.encaixe_pendente: frozenset(),
    AppointmentStatus.confirmado: frozenset(),
    AppointmentStatus.finalizado: frozenset(),
    AppointmentStatus.cancelado: frozenset(),
}

# Statuses a cancelled appointment may be reopened into by an administrator.
REOPEN_STATUSES = frozenset({AppointmentStatus.pendente, AppointmentStatus.confirmado})


class Appointment(Base, TimestampMixin):
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint(
            "status <> 'encaixe_pendente' OR is_encaixe",
            name="ck_appointments_encaixe_status",
        ),
        CheckConstraint(
            "NOT confirmed_by_doctor OR is_encaixe",
            name="ck_appointments_confirmation_needs_encaixe",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    doctor_id: Mapped[int] = mapped_column(ForeignKey("doctors.id"), nullable=False, index=True)
    service_id: Mapped[int] = mapped_column(ForeignKey("services.id"), nullable=False)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"), nullable=False, index=True)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus, name="appointment_status"),
        default=AppointmentStatus.pendente,
        nullable=False,
    )
    is_encaixe: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    confirmed_by_doctor: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    cancel_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    cancelled_by_user_id: Mapped[int | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    doctor = relationship("Doctor", lazy="joined")
    service = relationship("Service", lazy="joined")
    patient = relationship("Patient", lazy="joined")

    @property
    def duration_minutes(self) -> int:
        return self.service.duration_minutes

    @property
    def ends_at(self) -> datetime:
        return self.starts_at + timedelta(minutes=self.duration_minutes)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def clear_cancellation(self) -> None:
        self.cancel_reason = None
        self.cancelled_by_user_id = None
        self.cancelled_at = None
