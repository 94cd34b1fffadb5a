from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.core.settings import Settings
from app.deps import JWT_ALG, JWT_SECRET, get_clock, get_event_sink, get_store
from app.main import app
from app.models.clinic import Clinic
from app.models.doctor import Doctor
from app.models.patient import Patient
from app.models.schedule import WeeklySchedule
from app.models.service import Service
from app.services.actor import Actor, Role
from app.services.availability import AvailabilityService
from app.services.blackouts import BlackoutConflictResolver
from app.services.events import RecordingEventSink
from app.services.lunch_exceptions import LunchExceptionService
from app.services.memory_store import InMemoryStore
from app.services.scheduler import AppointmentScheduler

TZ = ZoneInfo("America/Sao_Paulo")

# Wednesday; weekday index 3 with Sunday as 0.
NOW = datetime(2025, 3, 5, 8, 0, tzinfo=TZ)


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.current = now

    def __call__(self) -> datetime:
        return self.current


@pytest.fixture
def test_settings():
    return Settings(app_env="test", clinic_timezone="America/Sao_Paulo")


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def store():
    store = InMemoryStore()
    store.add(
        Clinic(id=1, name="Clinica Centro"),
        Clinic(id=2, name="Clinica Norte"),
        Doctor(
            id=1,
            name="Dra. Ana Souza",
            clinic_id=1,
            active=True,
            default_lunch_start="12:00",
            default_lunch_end="13:00",
            blocked_weekdays=[],
        ),
        Doctor(id=2, name="Dr. Bruno Lima", clinic_id=2, active=True, blocked_weekdays=[]),
        Service(id=1, clinic_id=1, name="Consulta", duration_minutes=30, active=True),
        Service(id=2, clinic_id=1, name="Avaliacao", duration_minutes=60, active=True),
        Patient(id=1, clinic_id=1, name="Maria Oliveira", phone="11999990000", active=True),
        Patient(id=2, clinic_id=1, name="Joao Pereira", active=True),
    )
    # Monday to Friday.
    for weekday in range(1, 6):
        store.add(
            WeeklySchedule(
                doctor_id=1,
                weekday=weekday,
                start="08:00",
                end="17:00",
                lunch_start="12:00",
                lunch_end="13:00",
            ),
            WeeklySchedule(doctor_id=2, weekday=weekday, start="08:00", end="17:00"),
        )
    return store


@pytest.fixture
def events():
    return RecordingEventSink()


@pytest.fixture
def admin():
    return Actor(user_id=1, role=Role.admin, clinic_id=1)


@pytest.fixture
def secretary():
    return Actor(user_id=2, role=Role.secretary, clinic_id=1)


@pytest.fixture
def doctor_actor():
    return Actor(user_id=3, role=Role.doctor, clinic_id=1, doctor_id=1)


@pytest.fixture
def assistant():
    return Actor(user_id=4, role=Role.assistant, clinic_id=1)


@pytest.fixture
def outsider():
    return Actor(user_id=5, role=Role.secretary, clinic_id=2)


@pytest.fixture
def scheduler(store, test_settings, events, clock):
    return AppointmentScheduler(store, test_settings, events, clock)


@pytest.fixture
def availability(store, test_settings, clock):
    return AvailabilityService(store, test_settings, clock)


@pytest.fixture
def blackout_resolver(store, test_settings, clock):
    return BlackoutConflictResolver(store, test_settings, clock)


@pytest.fixture
def lunch_exceptions(store):
    return LunchExceptionService(store)


@pytest.fixture
def client(store, events, clock):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_event_sink] = lambda: events
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(actor: Actor) -> dict[str, str]:
        claims = {"sub": str(actor.user_id), "role": actor.role.value}
        if actor.clinic_id is not None:
            claims["clinic_id"] = actor.clinic_id
        if actor.doctor_id is not None:
            claims["doctor_id"] = actor.doctor_id
        token = jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALG)
        return {"Authorization": f"Bearer {token}"}

    return _headers
