from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.appointment import AppointmentStatus


class PatientSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    phone: Optional[str] = None


class ServiceSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    duration_minutes: int


class AppointmentCreate(BaseModel):
    doctor_id: int
    service_id: int
    patient_id: int
    starts_at: datetime
    is_encaixe: bool = False
    status: Optional[AppointmentStatus] = None


class AppointmentUpdate(BaseModel):
    doctor_id: Optional[int] = None
    service_id: Optional[int] = None
    patient_id: Optional[int] = None
    starts_at: Optional[datetime] = None
    status: Optional[AppointmentStatus] = None
    cancel_reason: Optional[str] = None


class AppointmentCancel(BaseModel):
    reason: str = Field(min_length=1)


class AppointmentFinalize(BaseModel):
    summary: str = Field(min_length=1)
    duration_minutes_override: Optional[int] = Field(default=None, gt=0)


class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    service: ServiceSummary
    patient: PatientSummary
    starts_at: datetime
    ends_at: datetime
    status: AppointmentStatus
    is_encaixe: bool
    confirmed_by_doctor: bool
    cancel_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by_user_id: Optional[int] = None
