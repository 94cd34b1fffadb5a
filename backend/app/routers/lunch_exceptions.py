from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status

from app.deps import get_current_actor, get_lunch_exceptions
from app.schemas.lunch_exception import LunchExceptionOut, LunchExceptionUpsert
from app.services.actor import Actor
from app.services.lunch_exceptions import LunchExceptionService

router = APIRouter(prefix="/lunch-exceptions", tags=["lunch-exceptions"])


@router.put("", response_model=LunchExceptionOut)
def upsert_lunch_exception(
    payload: LunchExceptionUpsert,
    actor: Actor = Depends(get_current_actor),
    service: LunchExceptionService = Depends(get_lunch_exceptions),
):
    return service.upsert(
        actor,
        payload.date,
        payload.lunch_start,
        payload.lunch_end,
        clinic_id=payload.clinic_id,
        doctor_id=payload.doctor_id,
    )


@router.get("/clinic/{clinic_id}", response_model=list[LunchExceptionOut])
def list_clinic_lunch_exceptions(
    clinic_id: int,
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    actor: Actor = Depends(get_current_actor),
    service: LunchExceptionService = Depends(get_lunch_exceptions),
):
    return service.list_for_clinic(actor, clinic_id, date_from, date_to)


@router.get("/doctor/{doctor_id}", response_model=list[LunchExceptionOut])
def list_doctor_lunch_exceptions(
    doctor_id: int,
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    actor: Actor = Depends(get_current_actor),
    service: LunchExceptionService = Depends(get_lunch_exceptions),
):
    return service.list_for_doctor(actor, doctor_id, date_from, date_to)


@router.delete("/{exception_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_lunch_exception(
    exception_id: int,
    actor: Actor = Depends(get_current_actor),
    service: LunchExceptionService = Depends(get_lunch_exceptions),
):
    service.remove(actor, exception_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
