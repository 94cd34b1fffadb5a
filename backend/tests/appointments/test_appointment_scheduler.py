import threading
from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from app.models.appointment import AppointmentStatus
from app.models.blackout import BlackoutPeriod
from app.services.errors import (
    AppointmentConflict,
    BlackoutConflict,
    BlockedDay,
    InvalidStatusTransition,
    InvalidWindow,
    LunchBreakConflict,
    NotFound,
    OutOfScope,
    OutsideWorkingHours,
)
from app.services.scheduler import AppointmentScheduler

TZ = ZoneInfo("America/Sao_Paulo")


def at(day, hour, minute=0):
    return datetime(2025, 3, day, hour, minute, tzinfo=TZ)


def book(scheduler, actor, starts_at, **kwargs):
    params = {"doctor_id": 1, "service_id": 1, "patient_id": 1, "starts_at": starts_at}
    params.update(kwargs)
    return scheduler.create(actor, **params)


def day_appointments(store, doctor_id=1, day=10):
    return store.list_appointments(doctor_id, at(day, 0), at(day + 1, 0), exclude_cancelled=False)


def test_create_defaults_to_pending(scheduler, secretary, events):
    appt = book(scheduler, secretary, at(10, 10))

    assert appt.id is not None
    assert appt.status == AppointmentStatus.pendente
    assert appt.ends_at == at(10, 10, 30)
    assert not appt.is_encaixe
    assert events.actions == ["created"]
    assert events.events[0].clinic_id == 1
    assert events.events[0].snapshot["service"]["duration_minutes"] == 30


def test_assistant_bookings_start_as_pending_ia(scheduler, assistant):
    assert book(scheduler, assistant, at(10, 10)).status == AppointmentStatus.pendente_ia


def test_caller_status_is_honored_when_initial(scheduler, secretary):
    appt = book(scheduler, secretary, at(10, 10), status=AppointmentStatus.confirmado)
    assert appt.status == AppointmentStatus.confirmado

    with pytest.raises(InvalidStatusTransition):
        book(scheduler, secretary, at(10, 11), status=AppointmentStatus.finalizado)


def test_overlap_is_rejected_unless_encaixe(scheduler, secretary, store):
    first = book(scheduler, secretary, at(10, 10))

    with pytest.raises(AppointmentConflict) as exc:
        book(scheduler, secretary, at(10, 10, 15))
    assert exc.value.appointment_ids == [first.id]

    encaixe = book(scheduler, secretary, at(10, 10, 15), is_encaixe=True)
    assert encaixe.status == AppointmentStatus.encaixe_pendente
    assert encaixe.is_encaixe
    assert not encaixe.confirmed_by_doctor
    assert len(day_appointments(store)) == 2


def test_adjacent_appointments_do_not_conflict(scheduler, secretary):
    book(scheduler, secretary, at(10, 10))
    book(scheduler, secretary, at(10, 10, 30))
    book(scheduler, secretary, at(10, 9, 30))


def test_same_request_twice_books_once(scheduler, secretary, store, events):
    book(scheduler, secretary, at(10, 10))
    with pytest.raises(AppointmentConflict):
        book(scheduler, secretary, at(10, 10))
    assert len(day_appointments(store)) == 1
    assert events.actions == ["created"]


def test_lunch_break_is_enforced(scheduler, secretary):
    with pytest.raises(LunchBreakConflict) as exc:
        book(scheduler, secretary, at(10, 11, 45))
    assert exc.value.details() == {"lunch_start": "12:00", "lunch_end": "13:00"}

    book(scheduler, secretary, at(10, 11, 30))
    book(scheduler, secretary, at(10, 13, 0))


def test_encaixe_still_respects_lunch(scheduler, secretary):
    with pytest.raises(LunchBreakConflict):
        book(scheduler, secretary, at(10, 12, 0), is_encaixe=True)


def test_blocked_weekday_is_rejected(scheduler, secretary, store):
    store.get_doctor(1).blocked_weekdays = [1]
    with pytest.raises(BlockedDay):
        book(scheduler, secretary, at(10, 10))


def test_day_without_schedule_is_rejected(scheduler, secretary):
    with pytest.raises(OutsideWorkingHours):
        book(scheduler, secretary, at(9, 10))


def test_booking_past_closing_time_is_rejected(scheduler, secretary):
    with pytest.raises(OutsideWorkingHours):
        book(scheduler, secretary, at(10, 16, 30), service_id=2)


def test_blackout_blocks_even_encaixe(scheduler, secretary, store):
    blackout = BlackoutPeriod(doctor_id=1, starts_at=at(10, 9), ends_at=at(10, 12), active=True)
    store.save(blackout)

    with pytest.raises(BlackoutConflict) as exc:
        book(scheduler, secretary, at(10, 10), is_encaixe=True)
    assert exc.value.blackout_ids == [blackout.id]


def test_failed_create_writes_nothing(scheduler, secretary, store, events):
    with pytest.raises(LunchBreakConflict):
        book(scheduler, secretary, at(10, 12, 0))
    assert day_appointments(store) == []
    assert events.events == []


def test_naive_start_is_clinic_local_time(scheduler, secretary):
    appt = book(scheduler, secretary, datetime(2025, 3, 10, 10, 0))
    assert appt.starts_at == at(10, 10)


def test_scope_and_missing_entities(scheduler, secretary, outsider):
    with pytest.raises(OutOfScope):
        book(scheduler, outsider, at(10, 10))
    with pytest.raises(NotFound):
        book(scheduler, secretary, at(10, 10), doctor_id=99)
    with pytest.raises(NotFound):
        book(scheduler, secretary, at(10, 10), service_id=99)
    with pytest.raises(NotFound):
        book(scheduler, secretary, at(10, 10), patient_id=99)


def test_inactive_service_cannot_be_booked(scheduler, secretary, store):
    store.get_service(1).active = False
    with pytest.raises(NotFound):
        book(scheduler, secretary, at(10, 10))


def test_list_for_doctor(scheduler, secretary):
    first = book(scheduler, secretary, at(10, 10))
    second = book(scheduler, secretary, at(11, 9))
    book(scheduler, secretary, at(12, 9))
    scheduler.cancel(secretary, second.id, "Remarcado por telefone")

    all_rows = scheduler.list_for_doctor(secretary, 1, date(2025, 3, 10), date(2025, 3, 11))
    assert [appt.id for appt in all_rows] == [first.id, second.id]

    active_rows = scheduler.list_for_doctor(
        secretary, 1, date(2025, 3, 10), date(2025, 3, 11), include_cancelled=False
    )
    assert [appt.id for appt in active_rows] == [first.id]


def test_event_sink_failure_does_not_fail_the_write(store, test_settings, clock, secretary):
    class BrokenSink:
        def emit(self, event):
            raise ConnectionError("socket closed")

    scheduler = AppointmentScheduler(store, test_settings, BrokenSink(), clock)
    appt = book(scheduler, secretary, at(10, 10))
    assert store.get_appointment(appt.id) is appt


def test_start_with_seconds_is_rejected(scheduler, secretary, store):
    with pytest.raises(InvalidWindow):
        book(scheduler, secretary, datetime(2025, 3, 10, 16, 30, 30, tzinfo=TZ))
    assert day_appointments(store) == []


def test_parallel_bookings_of_one_slot_admit_a_single_winner(scheduler, secretary, store):
    workers = 8
    barrier = threading.Barrier(workers)
    results = []
    results_lock = threading.Lock()

    def attempt(patient_id):
        barrier.wait()
        try:
            book(scheduler, secretary, at(10, 10), patient_id=patient_id)
            outcome = "ok"
        except AppointmentConflict:
            outcome = "conflict"
        with results_lock:
            results.append(outcome)

    threads = [threading.Thread(target=attempt, args=(1 + n % 2,)) for n in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert sorted(results) == ["conflict"] * (workers - 1) + ["ok"]
    assert len(day_appointments(store)) == 1
