import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LunchExceptionUpsert(BaseModel):
    date: dt.date
    lunch_start: str
    lunch_end: str
    clinic_id: Optional[int] = None
    doctor_id: Optional[int] = None


class LunchExceptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: dt.date = Field(validation_alias="day")
    lunch_start: str
    lunch_end: str
    clinic_id: Optional[int] = None
    doctor_id: Optional[int] = None
