from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status

from app.deps import get_current_actor, get_scheduler
from app.schemas.appointment import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentFinalize,
    AppointmentOut,
    AppointmentUpdate,
)
from app.services.actor import Actor
from app.services.scheduler import AppointmentScheduler

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("", response_model=list[AppointmentOut])
def list_appointments(
    doctor_id: int,
    date_from: date = Query(alias="from"),
    date_to: date = Query(alias="to"),
    include_cancelled: bool = Query(default=True),
    actor: Actor = Depends(get_current_actor),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    return scheduler.list_for_doctor(actor, doctor_id, date_from, date_to, include_cancelled)


@router.post("", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
def create_appointment(
    payload: AppointmentCreate,
    actor: Actor = Depends(get_current_actor),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    return scheduler.create(
        actor,
        doctor_id=payload.doctor_id,
        service_id=payload.service_id,
        patient_id=payload.patient_id,
        starts_at=payload.starts_at,
        is_encaixe=payload.is_encaixe,
        status=payload.status,
    )


@router.get("/{appointment_id}", response_model=AppointmentOut)
def get_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    return scheduler.get(actor, appointment_id)


@router.patch("/{appointment_id}", response_model=AppointmentOut)
def update_appointment(
    appointment_id: int,
    payload: AppointmentUpdate,
    actor: Actor = Depends(get_current_actor),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    return scheduler.update(actor, appointment_id, **payload.model_dump(exclude_unset=True))


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    scheduler.remove(actor, appointment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{appointment_id}/confirm-encaixe", response_model=AppointmentOut)
def confirm_encaixe(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    return scheduler.confirm_encaixe(actor, appointment_id)


@router.post("/{appointment_id}/cancel", response_model=AppointmentOut)
def cancel_appointment(
    appointment_id: int,
    payload: AppointmentCancel,
    actor: Actor = Depends(get_current_actor),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    return scheduler.cancel(actor, appointment_id, payload.reason)


@router.post("/{appointment_id}/finalize", response_model=AppointmentOut)
def finalize_appointment(
    appointment_id: int,
    payload: AppointmentFinalize,
    actor: Actor = Depends(get_current_actor),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    return scheduler.finalize(actor, appointment_id, payload.summary, payload.duration_minutes_override)
