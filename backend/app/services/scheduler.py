from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Callable

from app.core.settings import Settings
from app.models.appointment import (
    INITIAL_STATUSES,
    REOPEN_STATUSES,
    UPDATE_TRANSITIONS,
    Appointment,
    AppointmentStatus,
)
from app.models.doctor import Doctor
from app.models.history import HistoryRecord
from app.models.patient import Patient
from app.services.actor import Actor, Role, ensure_clinic_scope, ensure_doctor_scope
from app.services.availability import AvailabilityService
from app.services.errors import (
    AppointmentConflict,
    BlackoutConflict,
    InvalidCancellation,
    InvalidFinalization,
    InvalidStatusTransition,
    NotFound,
    OutOfScope,
    SelfOverlap,
)
from app.services.events import AppointmentAction, EventSink, LoggingEventSink, emit_appointment_event
from app.services.intervals import day_bounds, ensure_whole_minute, overlaps, to_local
from app.services.store import SchedulingStore

logger = logging.getLogger("clinic_scheduling.scheduler")


class AppointmentScheduler:
    """Create, reschedule and move appointments through their lifecycle.

    Every operation validates fully before it writes; a rejected call
    persists nothing and emits no event.
    """

    def __init__(
        self,
        store: SchedulingStore,
        settings: Settings,
        events: EventSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.tz = settings.tz
        self.events = events or LoggingEventSink()
        self.availability = AvailabilityService(store, settings, clock)
        self.resolver = self.availability.resolver
        self.detector = self.availability.detector

    def _load_patient(self, actor: Actor, patient_id: int) -> Patient:
        patient = self.store.get_patient(patient_id)
        if patient is None or not patient.active:
            raise NotFound("patient", patient_id)
        ensure_clinic_scope(actor, patient.clinic_id)
        return patient

    def _doctor_of(self, appt: Appointment) -> Doctor:
        doctor = self.store.get_doctor(appt.doctor_id)
        if doctor is None:
            raise NotFound("doctor", appt.doctor_id)
        return doctor

    def _validate_slot(
        self,
        doctor: Doctor,
        starts_at: datetime,
        duration_minutes: int,
        is_encaixe: bool,
        exclude_id: int | None = None,
    ) -> None:
        self.resolver.ensure_bookable(doctor, starts_at, duration_minutes)
        ends_at = starts_at + timedelta(minutes=duration_minutes)
        blackouts = self.detector.blackout_conflicts(doctor.id, starts_at, ends_at)
        if blackouts:
            raise BlackoutConflict([row.id for row in blackouts])
        if is_encaixe:
            return
        conflicts = self.detector.appointment_conflicts(doctor.id, starts_at, duration_minutes, exclude_id)
        if conflicts:
            raise AppointmentConflict([appt.id for appt in conflicts])

    @staticmethod
    def _initial_status(
        actor: Actor, is_encaixe: bool, requested: AppointmentStatus | None
    ) -> AppointmentStatus:
        if is_encaixe:
            return AppointmentStatus.encaixe_pendente
        if requested is not None:
            if requested not in INITIAL_STATUSES:
                raise InvalidStatusTransition("new", requested.value)
            return requested
        if actor.role == Role.assistant:
            return AppointmentStatus.pendente_ia
        return AppointmentStatus.pendente

    def _emit(self, appt: Appointment, action: AppointmentAction) -> None:
        emit_appointment_event(self.events, appt, action)

    def create(
        self,
        actor: Actor,
        *,
        doctor_id: int,
        service_id: int,
        patient_id: int,
        starts_at: datetime,
        is_encaixe: bool = False,
        status: AppointmentStatus | None = None,
    ) -> Appointment:
        doctor = self.availability.load_doctor(actor, doctor_id)
        service = self.availability.load_service(actor, service_id)
        patient = self._load_patient(actor, patient_id)
        start = ensure_whole_minute(to_local(starts_at, self.tz))
        initial_status = self._initial_status(actor, is_encaixe, status)

        with self.store.doctor_lock(doctor.id):
            self._validate_slot(doctor, start, service.duration_minutes, is_encaixe)
            appt = Appointment(
                doctor_id=doctor.id,
                service_id=service.id,
                patient_id=patient.id,
                starts_at=start,
                status=initial_status,
                is_encaixe=is_encaixe,
                confirmed_by_doctor=False,
                active=True,
            )
            self.store.save(appt)

        logger.info(
            "Appointment %s created for doctor %s at %s (%s)",
            appt.id,
            doctor.id,
            start.isoformat(),
            initial_status.value,
        )
        self._emit(appt, AppointmentAction.created)
        return appt

    def get(self, actor: Actor, appointment_id: int) -> Appointment:
        appt = self.store.get_appointment(appointment_id)
        if appt is None or not appt.active:
            raise NotFound("appointment", appointment_id)
        ensure_doctor_scope(actor, self._doctor_of(appt))
        return appt

    def list_for_doctor(
        self,
        actor: Actor,
        doctor_id: int,
        date_from: date,
        date_to: date,
        include_cancelled: bool = True,
    ) -> list[Appointment]:
        doctor = self.availability.load_doctor(actor, doctor_id)
        start, _ = day_bounds(date_from, self.tz)
        _, end = day_bounds(date_to, self.tz)
        return self.store.list_appointments(doctor.id, start, end, exclude_cancelled=not include_cancelled)

    def update(
        self,
        actor: Actor,
        appointment_id: int,
        *,
        starts_at: datetime | None = None,
        doctor_id: int | None = None,
        service_id: int | None = None,
        patient_id: int | None = None,
        status: AppointmentStatus | None = None,
        cancel_reason: str | None = None,
    ) -> Appointment:
        appt = self.get(actor, appointment_id)
        if appt.status == AppointmentStatus.finalizado:
            raise InvalidStatusTransition(appt.status.value, (status or appt.status).value)

        old_doctor = self._doctor_of(appt)
        old_start = to_local(appt.starts_at, self.tz)
        old_duration = appt.duration_minutes

        doctor = old_doctor
        if doctor_id is not None and doctor_id != appt.doctor_id:
            doctor = self.availability.load_doctor(actor, doctor_id)
        service = appt.service
        if service_id is not None and service_id != appt.service_id:
            service = self.availability.load_service(actor, service_id)
        patient = None
        if patient_id is not None and patient_id != appt.patient_id:
            patient = self._load_patient(actor, patient_id)
        new_start = ensure_whole_minute(to_local(starts_at, self.tz)) if starts_at is not None else old_start

        start_changed = new_start != old_start
        time_changed = start_changed or doctor is not old_doctor or service is not appt.service

        if status == AppointmentStatus.cancelado and appt.status != AppointmentStatus.cancelado:
            if time_changed or patient is not None:
                raise InvalidCancellation("Cancellation cannot be combined with other changes")
            return self.cancel(actor, appointment_id, cancel_reason)

        reopening = appt.status == AppointmentStatus.cancelado and status not in (None, AppointmentStatus.cancelado)
        if reopening:
            # A reopened encaixe waits for the doctor again.
            allowed = {AppointmentStatus.encaixe_pendente} if appt.is_encaixe else REOPEN_STATUSES
            if not actor.is_admin or status not in allowed:
                raise InvalidStatusTransition(appt.status.value, status.value)
        elif appt.status == AppointmentStatus.cancelado and time_changed:
            raise InvalidStatusTransition(appt.status.value, "rescheduled")
        elif status is not None and status != appt.status and status not in UPDATE_TRANSITIONS[appt.status]:
            raise InvalidStatusTransition(appt.status.value, status.value)
        elif appt.is_encaixe and status == AppointmentStatus.confirmado and not appt.confirmed_by_doctor:
            raise InvalidStatusTransition(appt.status.value, status.value)

        if cancel_reason is not None and not reopening:
            if appt.status != AppointmentStatus.cancelado:
                raise InvalidCancellation("Only cancelled appointments carry a cancellation reason")
            if not cancel_reason.strip():
                raise InvalidCancellation("A cancellation reason is required")

        def apply() -> None:
            appt.starts_at = new_start
            if doctor is not old_doctor:
                appt.doctor_id = doctor.id
                appt.doctor = doctor
            if service is not appt.service:
                appt.service_id = service.id
                appt.service = service
            if patient is not None:
                appt.patient_id = patient.id
                appt.patient = patient
            if status is not None:
                appt.status = status
                if status == AppointmentStatus.encaixe_pendente:
                    appt.confirmed_by_doctor = False
            if appt.status == AppointmentStatus.cancelado:
                if cancel_reason is not None:
                    appt.cancel_reason = cancel_reason.strip()
            else:
                appt.clear_cancellation()

        if time_changed or reopening:
            with self.store.doctor_lock(doctor.id):
                self._validate_slot(
                    doctor, new_start, service.duration_minutes, appt.is_encaixe, exclude_id=appt.id
                )
                if start_changed and doctor is old_doctor and new_start.date() == old_start.date():
                    old_end = old_start + timedelta(minutes=old_duration)
                    new_end = new_start + timedelta(minutes=service.duration_minutes)
                    if overlaps(old_start, old_end, new_start, new_end):
                        raise SelfOverlap()
                apply()
                self.store.save(appt)
        else:
            apply()
            self.store.save(appt)

        logger.info("Appointment %s updated (rescheduled=%s, reopened=%s)", appt.id, time_changed, reopening)
        self._emit(appt, AppointmentAction.updated)
        return appt

    def confirm_encaixe(self, actor: Actor, appointment_id: int) -> Appointment:
        appt = self.get(actor, appointment_id)
        if not appt.is_encaixe or appt.status != AppointmentStatus.encaixe_pendente:
            raise InvalidStatusTransition(appt.status.value, AppointmentStatus.confirmado.value)
        if not actor.is_admin and actor.doctor_id != appt.doctor_id:
            raise OutOfScope("Only the appointment's doctor can confirm an encaixe")

        appt.status = AppointmentStatus.confirmado
        appt.confirmed_by_doctor = True
        self.store.save(appt)
        logger.info("Encaixe %s confirmed by user %s", appt.id, actor.user_id)
        self._emit(appt, AppointmentAction.encaixe_confirmed)
        return appt

    def cancel(self, actor: Actor, appointment_id: int, reason: str | None) -> Appointment:
        reason = (reason or "").strip()
        if not reason:
            raise InvalidCancellation("A cancellation reason is required")
        appt = self.get(actor, appointment_id)
        if appt.is_terminal:
            raise InvalidStatusTransition(appt.status.value, AppointmentStatus.cancelado.value)
        now = self.availability.now()
        if appt.starts_at < now and not actor.is_admin:
            raise InvalidCancellation("Only administrators can cancel past appointments")

        appt.status = AppointmentStatus.cancelado
        appt.cancel_reason = reason
        appt.cancelled_by_user_id = actor.user_id
        appt.cancelled_at = now
        self.store.save(appt)
        logger.info("Appointment %s cancelled by user %s", appt.id, actor.user_id)
        self._emit(appt, AppointmentAction.canceled)
        return appt

    def finalize(
        self,
        actor: Actor,
        appointment_id: int,
        summary: str | None,
        duration_minutes_override: int | None = None,
    ) -> Appointment:
        summary = (summary or "").strip()
        if not summary:
            raise InvalidFinalization("A visit summary is required to finalize")
        if duration_minutes_override is not None and duration_minutes_override <= 0:
            raise InvalidFinalization("Duration override must be positive")
        appt = self.get(actor, appointment_id)
        if appt.status != AppointmentStatus.confirmado:
            raise InvalidStatusTransition(appt.status.value, AppointmentStatus.finalizado.value)

        appt.status = AppointmentStatus.finalizado
        record = HistoryRecord(
            patient_id=appt.patient_id,
            appointment_id=appt.id,
            summary=summary,
            performed_at=self.availability.now(),
            duration_minutes_override=duration_minutes_override,
        )
        self.store.save(appt, record)
        logger.info("Appointment %s finalized with history record %s", appt.id, record.id)
        self._emit(appt, AppointmentAction.finalized)
        return appt

    def remove(self, actor: Actor, appointment_id: int) -> Appointment:
        appt = self.get(actor, appointment_id)
        appt.active = False
        self.store.save(appt)
        logger.info("Appointment %s removed by user %s", appt.id, actor.user_id)
        self._emit(appt, AppointmentAction.deleted)
        return appt
