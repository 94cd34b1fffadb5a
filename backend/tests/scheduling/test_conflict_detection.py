from datetime import date, datetime
from zoneinfo import ZoneInfo

from app.models.appointment import Appointment, AppointmentStatus
from app.models.blackout import BlackoutPeriod
from app.services.conflicts import ConflictDetector

TZ = ZoneInfo("America/Sao_Paulo")


def at(day, hour, minute=0):
    return datetime(2025, 3, day, hour, minute, tzinfo=TZ)


def seed_appointment(store, starts_at, status=AppointmentStatus.pendente, active=True, service_id=1):
    appt = Appointment(
        doctor_id=1,
        service_id=service_id,
        patient_id=1,
        starts_at=starts_at,
        status=status,
        is_encaixe=False,
        confirmed_by_doctor=False,
        active=active,
    )
    store.save(appt)
    return appt


def seed_blackout(store, starts_at, ends_at, active=True):
    row = BlackoutPeriod(doctor_id=1, starts_at=starts_at, ends_at=ends_at, active=active)
    store.save(row)
    return row


def test_overlapping_appointment_conflicts(store):
    existing = seed_appointment(store, at(10, 10))
    detector = ConflictDetector(store, TZ)

    assert [appt.id for appt in detector.appointment_conflicts(1, at(10, 10, 15), 30)] == [existing.id]
    assert detector.appointment_conflicts(1, at(10, 10, 30), 30) == []
    assert detector.appointment_conflicts(1, at(10, 9, 30), 30) == []


def test_exclude_id_skips_the_appointment_itself(store):
    existing = seed_appointment(store, at(10, 10))
    detector = ConflictDetector(store, TZ)
    assert detector.appointment_conflicts(1, at(10, 10, 15), 30, exclude_id=existing.id) == []


def test_cancelled_and_removed_appointments_do_not_conflict(store):
    seed_appointment(store, at(10, 10), status=AppointmentStatus.cancelado)
    seed_appointment(store, at(10, 11), active=False)
    detector = ConflictDetector(store, TZ)

    assert detector.appointment_conflicts(1, at(10, 10), 30) == []
    assert detector.appointment_conflicts(1, at(10, 11), 30) == []


def test_other_doctors_do_not_conflict(store):
    seed_appointment(store, at(10, 10))
    assert ConflictDetector(store, TZ).appointment_conflicts(2, at(10, 10), 30) == []


def test_blackout_spanning_midnight_is_found(store):
    blackout = seed_blackout(store, at(9, 22), at(10, 9))
    detector = ConflictDetector(store, TZ)

    assert [row.id for row in detector.blackout_conflicts(1, at(10, 8, 30), at(10, 9))] == [blackout.id]
    assert detector.blackout_conflicts(1, at(10, 9), at(10, 9, 30)) == []


def test_inactive_blackout_is_ignored(store):
    seed_blackout(store, at(10, 9), at(10, 12), active=False)
    assert ConflictDetector(store, TZ).blackout_conflicts(1, at(10, 10), at(10, 10, 30)) == []


def test_appointments_in_period(store):
    inside = seed_appointment(store, at(10, 10))
    seed_appointment(store, at(10, 8, 30))
    seed_appointment(store, at(10, 14))
    rows = ConflictDetector(store, TZ).appointments_in_period(1, at(10, 9), at(10, 12))
    assert [appt.id for appt in rows] == [inside.id]


def test_busy_intervals_include_appointments_and_blackouts(store):
    seed_appointment(store, at(10, 10), service_id=2)
    seed_blackout(store, at(10, 15), at(10, 16))
    busy = ConflictDetector(store, TZ).busy_intervals(1, date(2025, 3, 10))
    assert sorted(busy) == [(at(10, 10), at(10, 11)), (at(10, 15), at(10, 16))]
