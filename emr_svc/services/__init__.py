"""
Service layer for business logic.

Services receive repositories and helpers through their constructors and
raise domain exceptions from core.exceptions; they never build SQL.

Note: The pure scheduling helpers and the email notifier are not
re-exported here. Import them directly from their modules:
- from services.scheduling import compute_slots
- from services.notification_service import EmailNotifier
"""
from services.upload_service import UploadService
from services.auth_service import AuthService
from services.user_service import UserService
from services.access_service import AccessService
from services.clinic_service import ClinicService
from services.doctor_service import DoctorService
from services.staff_service import StaffService
from services.schedule_service import ScheduleService
from services.appointment_service import AppointmentService
from services.patient_service import PatientService
from services.task_service import TaskService
from services.form_service import FormService
from services.seed_service import SeedService

__all__ = [
    "UploadService",
    "AuthService",
    "UserService",
    "AccessService",
    "ClinicService",
    "DoctorService",
    "StaffService",
    "ScheduleService",
    "AppointmentService",
    "PatientService",
    "TaskService",
    "FormService",
    "SeedService",
]
