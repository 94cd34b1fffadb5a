from __future__ import annotations

from sqlalchemy import JSON, Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class Doctor(Base, TimestampMixin):
    __tablename__ = "doctors"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"), nullable=False, index=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # HH:MM fallbacks, used when neither an exception nor the weekly row sets a lunch window.
    default_lunch_start: Mapped[str | None] = mapped_column(String(5), nullable=True)
    default_lunch_end: Mapped[str | None] = mapped_column(String(5), nullable=True)
    # Weekday indexes (0 = Sunday) with no bookings at all.
    blocked_weekdays: Mapped[list[int]] = mapped_column(JSON, default=list, nullable=False)

    @property
    def blocked_weekday_set(self) -> set[int]:
        return {int(day) for day in (self.blocked_weekdays or [])}
