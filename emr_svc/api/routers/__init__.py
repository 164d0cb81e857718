"""
API routers module.

This module contains all API route definitions organized by domain.
"""
from api.routers.health import router as health_router
from api.routers.auth import router as auth_router
from api.routers.users import router as users_router
from api.routers.access import router as access_router
from api.routers.clinics import router as clinics_router
from api.routers.doctors import router as doctors_router
from api.routers.doctor_schedules import router as doctor_schedules_router
from api.routers.staff import router as staff_router
from api.routers.schedules import router as schedules_router
from api.routers.appointments import router as appointments_router
from api.routers.patients import router as patients_router
from api.routers.tasks import router as tasks_router
from api.routers.forms import router as forms_router
from api.routers.meta import router as meta_router

__all__ = [
    "health_router",
    "auth_router",
    "users_router",
    "access_router",
    "clinics_router",
    "doctors_router",
    "doctor_schedules_router",
    "staff_router",
    "schedules_router",
    "appointments_router",
    "patients_router",
    "tasks_router",
    "forms_router",
    "meta_router",
]
