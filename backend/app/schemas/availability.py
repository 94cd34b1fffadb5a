import datetime as dt

from pydantic import BaseModel

from app.services.availability import AvailabilityPolicy


class AvailabilityOut(BaseModel):
    doctor_id: int
    service_id: int
    date: dt.date
    policy: AvailabilityPolicy
    slots: list[str]
