from __future__ import annotations

from datetime import date

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class WeeklySchedule(Base, TimestampMixin):
    __tablename__ = "weekly_schedules"
    __table_args__ = (
        UniqueConstraint("doctor_id", "weekday", name="uq_weekly_schedules_doctor_weekday"),
        CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_weekly_schedules_weekday"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    doctor_id: Mapped[int] = mapped_column(ForeignKey("doctors.id"), nullable=False, index=True)
    weekday: Mapped[int] = mapped_column(Integer, nullable=False)
    start: Mapped[str] = mapped_column(String(5), nullable=False)
    end: Mapped[str] = mapped_column(String(5), nullable=False)
    lunch_start: Mapped[str | None] = mapped_column(String(5), nullable=True)
    lunch_end: Mapped[str | None] = mapped_column(String(5), nullable=True)


class LunchBreakException(Base, TimestampMixin):
    __tablename__ = "lunch_break_exceptions"
    __table_args__ = (
        CheckConstraint(
            "(clinic_id IS NULL) <> (doctor_id IS NULL)",
            name="ck_lunch_break_exceptions_single_scope",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    day: Mapped[date] = mapped_column("date", Date, nullable=False, index=True)
    clinic_id: Mapped[int | None] = mapped_column(ForeignKey("clinics.id"), nullable=True)
    doctor_id: Mapped[int | None] = mapped_column(ForeignKey("doctors.id"), nullable=True)
    lunch_start: Mapped[str] = mapped_column(String(5), nullable=False)
    lunch_end: Mapped[str] = mapped_column(String(5), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
