from app.models.base import Base
from app.models.clinic import Clinic
from app.models.doctor import Doctor
from app.models.service import Service
from app.models.patient import Patient
from app.models.schedule import LunchBreakException, WeeklySchedule
from app.models.appointment import Appointment, AppointmentStatus
from app.models.blackout import BlackoutPeriod
from app.models.history import HistoryRecord

__all__ = [
    "Base",
    "Clinic",
    "Doctor",
    "Service",
    "Patient",
    "WeeklySchedule",
    "LunchBreakException",
    "Appointment",
    "AppointmentStatus",
    "BlackoutPeriod",
    "HistoryRecord",
]
