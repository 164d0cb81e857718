"""
Repository layer for database access.

Each repository encapsulates the SQL for one area of the schema and maps
rows to plain dicts. Services never build SQL themselves.
"""
from repositories.base import Database
from repositories.user_repository import UserRepository
from repositories.access_repository import AccessRepository, ROLE_GRANTS, USER_GRANTS
from repositories.clinic_repository import ClinicRepository
from repositories.catalog_repository import CatalogRepository
from repositories.user_location_repository import UserLocationRepository
from repositories.doctor_repository import DoctorRepository
from repositories.staff_repository import StaffRepository
from repositories.patient_repository import PatientRepository
from repositories.appointment_repository import AppointmentRepository
from repositories.schedule_repository import ScheduleRepository
from repositories.task_repository import TaskRepository
from repositories.form_repository import FormRepository

__all__ = [
    "Database",
    "UserRepository",
    "AccessRepository",
    "ROLE_GRANTS",
    "USER_GRANTS",
    "ClinicRepository",
    "CatalogRepository",
    "UserLocationRepository",
    "DoctorRepository",
    "StaffRepository",
    "PatientRepository",
    "AppointmentRepository",
    "ScheduleRepository",
    "TaskRepository",
    "FormRepository",
]
