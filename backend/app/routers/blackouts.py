from fastapi import APIRouter, Depends, Query, Response, status

from app.deps import get_blackout_resolver, get_current_actor
from app.schemas.blackout import BlackoutCreate, BlackoutOut, BlackoutUpdate, BlackoutWriteOut
from app.services.actor import Actor
from app.services.blackouts import BlackoutConflictResolver, BlackoutResult

router = APIRouter(prefix="/blackouts", tags=["blackouts"])


def _write_out(result: BlackoutResult) -> BlackoutWriteOut:
    return BlackoutWriteOut(
        blackout=BlackoutOut.model_validate(result.blackout),
        advisory=result.advisory,
        conflicting_appointments=result.conflicting,
    )


@router.get("/doctor/{doctor_id}", response_model=list[BlackoutOut])
def list_doctor_blackouts(
    doctor_id: int,
    actor: Actor = Depends(get_current_actor),
    resolver: BlackoutConflictResolver = Depends(get_blackout_resolver),
):
    return resolver.list_for_doctor(actor, doctor_id)


@router.get("/clinic/{clinic_id}", response_model=list[BlackoutOut])
def list_clinic_blackouts(
    clinic_id: int,
    actor: Actor = Depends(get_current_actor),
    resolver: BlackoutConflictResolver = Depends(get_blackout_resolver),
):
    return resolver.list_for_clinic(actor, clinic_id)


@router.post("", response_model=BlackoutWriteOut, status_code=status.HTTP_201_CREATED)
def create_blackout(
    payload: BlackoutCreate,
    ignore_conflicts: bool = Query(default=False),
    actor: Actor = Depends(get_current_actor),
    resolver: BlackoutConflictResolver = Depends(get_blackout_resolver),
):
    result = resolver.create(
        actor,
        doctor_id=payload.doctor_id,
        starts_at=payload.starts_at,
        ends_at=payload.ends_at,
        reason=payload.reason,
        ignore_conflicts=ignore_conflicts,
    )
    return _write_out(result)


@router.patch("/{blackout_id}", response_model=BlackoutWriteOut)
def update_blackout(
    blackout_id: int,
    payload: BlackoutUpdate,
    ignore_conflicts: bool = Query(default=False),
    actor: Actor = Depends(get_current_actor),
    resolver: BlackoutConflictResolver = Depends(get_blackout_resolver),
):
    result = resolver.update(
        actor,
        blackout_id,
        starts_at=payload.starts_at,
        ends_at=payload.ends_at,
        reason=payload.reason,
        ignore_conflicts=ignore_conflicts,
    )
    return _write_out(result)


@router.delete("/{blackout_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_blackout(
    blackout_id: int,
    actor: Actor = Depends(get_current_actor),
    resolver: BlackoutConflictResolver = Depends(get_blackout_resolver),
):
    resolver.remove(actor, blackout_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
