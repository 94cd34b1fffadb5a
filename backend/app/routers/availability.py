from datetime import date

from fastapi import APIRouter, Depends, Query

from app.deps import get_availability, get_current_actor
from app.schemas.availability import AvailabilityOut
from app.services.actor import Actor, Role
from app.services.availability import AvailabilityPolicy, AvailabilityService

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("", response_model=AvailabilityOut)
def get_availability_slots(
    doctor_id: int,
    service_id: int,
    day: date = Query(alias="date"),
    policy: AvailabilityPolicy | None = Query(default=None),
    actor: Actor = Depends(get_current_actor),
    availability: AvailabilityService = Depends(get_availability),
):
    if policy is None:
        policy = AvailabilityPolicy.assistant if actor.role == Role.assistant else AvailabilityPolicy.staff
    slots = availability.available_slots(actor, doctor_id, service_id, day, policy)
    return AvailabilityOut(doctor_id=doctor_id, service_id=service_id, date=day, policy=policy, slots=slots)
