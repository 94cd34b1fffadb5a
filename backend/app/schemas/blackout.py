from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class BlackoutCreate(BaseModel):
    doctor_id: int
    starts_at: datetime
    ends_at: datetime
    reason: Optional[str] = None


class BlackoutUpdate(BaseModel):
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    reason: Optional[str] = None


class BlackoutOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    starts_at: datetime
    ends_at: datetime
    reason: Optional[str] = None
    active: bool


class BlackoutWriteOut(BaseModel):
    blackout: BlackoutOut
    advisory: Optional[str] = None
    conflicting_appointments: list[dict[str, Any]] = []
