"""
FastAPI Dependency Injection configuration for the EMR Service API.

This module provides the dependency injection (DI) infrastructure following
the Dependency Inversion Principle. It enables:
- Clean separation between API, Service, and Repository layers
- Easy testing with fake dependencies via app.dependency_overrides
- Centralized configuration of all dependencies

Architecture Flow:
    API Layer (Routers)
         ↓ Depends()
    Service Layer (Business Logic)
         ↓ Injected
    Repository Layer (Data Access)
         ↓ Injected
    Database (SQLite Connection)

Service providers take their collaborators as ``Depends()`` parameters, so
overriding a repository provider in a test also changes what every service
built on it receives.

Usage in Routers:
    from core.dependencies import get_patient_service

    @router.get("/{patient_id}")
    async def get_patient(
        patient_id: int,
        patient_service: PatientService = Depends(get_patient_service)
    ):
        return patient_service.get_patient(patient_id)

Testing:
    app.dependency_overrides[get_database] = lambda: test_database
"""
import logging
from typing import Optional

from fastapi import Depends

from core.config import settings

logger = logging.getLogger(__name__)


# =============================================================================
# DATABASE DEPENDENCY
# =============================================================================

# Lazy import to avoid circular dependencies
# The Database class is imported when first needed
_database_instance: Optional["Database"] = None


def get_database() -> "Database":
    """
    Get the database instance (singleton).

    The schema is created on first use. WAL mode and the busy timeout are
    applied to every connection the instance hands out.

    Returns:
        Database: The configured database instance.
    """
    global _database_instance

    if _database_instance is None:
        from repositories.base import Database

        logger.info(f"Initializing database: {settings.database_path}")
        _database_instance = Database(
            db_path=settings.database_path,
            busy_timeout=settings.emr_svc_db_busy_timeout
        )
        logger.info("Database initialized successfully")

    return _database_instance


def reset_database() -> None:
    """
    Reset the database instance (for testing only).

    This allows tests to inject a fresh database instance.
    """
    global _database_instance
    _database_instance = None


# =============================================================================
# REPOSITORY DEPENDENCIES
# =============================================================================

def get_user_repository(db=Depends(get_database)) -> "UserRepository":
    """
    Get a UserRepository instance with database injected.

    Returns:
        UserRepository: Repository for users and password reset tokens.
    """
    from repositories import UserRepository

    return UserRepository(db=db)


def get_access_repository(db=Depends(get_database)) -> "AccessRepository":
    """
    Get an AccessRepository instance with database injected.

    Returns:
        AccessRepository: Roles, modules, operations and permission grants.
    """
    from repositories import AccessRepository

    return AccessRepository(db=db)


def get_clinic_repository(db=Depends(get_database)) -> "ClinicRepository":
    from repositories import ClinicRepository

    return ClinicRepository(db=db)


def get_catalog_repository(db=Depends(get_database)) -> "CatalogRepository":
    from repositories import CatalogRepository

    return CatalogRepository(db=db)


def get_user_location_repository(db=Depends(get_database)) -> "UserLocationRepository":
    from repositories import UserLocationRepository

    return UserLocationRepository(db=db)


def get_doctor_repository(db=Depends(get_database)) -> "DoctorRepository":
    from repositories import DoctorRepository

    return DoctorRepository(db=db)


def get_staff_repository(db=Depends(get_database)) -> "StaffRepository":
    from repositories import StaffRepository

    return StaffRepository(db=db)


def get_patient_repository(db=Depends(get_database)) -> "PatientRepository":
    """
    Get a PatientRepository instance with database injected.

    Returns:
        PatientRepository: Repository for patients and their clinical sub-records.
    """
    from repositories import PatientRepository

    return PatientRepository(db=db)


def get_appointment_repository(db=Depends(get_database)) -> "AppointmentRepository":
    from repositories import AppointmentRepository

    return AppointmentRepository(db=db)


def get_schedule_repository(db=Depends(get_database)) -> "ScheduleRepository":
    from repositories import ScheduleRepository

    return ScheduleRepository(db=db)


def get_task_repository(db=Depends(get_database)) -> "TaskRepository":
    from repositories import TaskRepository

    return TaskRepository(db=db)


def get_form_repository(db=Depends(get_database)) -> "FormRepository":
    from repositories import FormRepository

    return FormRepository(db=db)


# =============================================================================
# SECURITY & INFRASTRUCTURE DEPENDENCIES
# =============================================================================

def get_password_hasher() -> "PasswordHasher":
    from core.security import PasswordHasher

    return PasswordHasher(rounds=settings.emr_svc_bcrypt_rounds)


def get_token_manager() -> "TokenManager":
    """
    Get a TokenManager configured from settings.

    Returns:
        TokenManager: Issues and verifies access tokens.
    """
    from core.security import TokenManager

    return TokenManager(
        secret=settings.emr_svc_jwt_secret,
        algorithm=settings.emr_svc_jwt_algorithm,
        expire_hours=settings.emr_svc_jwt_expire_hours,
        remember_days=settings.emr_svc_jwt_remember_days,
    )


def get_notifier() -> "EmailNotifier":
    """
    Get the outbound email notifier.

    The default notifier queues Celery tasks. Tests override this with a
    recording fake.
    """
    from services.notification_service import EmailNotifier

    return EmailNotifier(frontend_url=settings.emr_svc_frontend_url)


def get_upload_service() -> "UploadService":
    """
    Get an UploadService instance.

    UploadService handles task attachment files and is configured via settings.

    Returns:
        UploadService: Service for attachment upload operations.
    """
    from services import UploadService

    return UploadService(
        upload_dir=settings.emr_svc_upload_dir,
        max_size=settings.emr_svc_upload_max_size,
        max_files=settings.emr_svc_max_attachments,
    )


# =============================================================================
# SERVICE DEPENDENCIES
# =============================================================================

def get_auth_service(
    user_repo=Depends(get_user_repository),
    access_repo=Depends(get_access_repository),
    hasher=Depends(get_password_hasher),
    token_manager=Depends(get_token_manager),
    notifier=Depends(get_notifier),
) -> "AuthService":
    """
    Get an AuthService instance with its collaborators injected.

    Returns:
        AuthService: Login, token verification and password reset.
    """
    from services import AuthService

    return AuthService(
        user_repository=user_repo,
        access_repository=access_repo,
        hasher=hasher,
        token_manager=token_manager,
        notifier=notifier,
        reset_token_ttl_minutes=settings.emr_svc_reset_token_ttl_minutes,
    )


def get_user_service(
    user_repo=Depends(get_user_repository),
    hasher=Depends(get_password_hasher),
) -> "UserService":
    from services import UserService

    return UserService(user_repository=user_repo, hasher=hasher)


def get_access_service(
    access_repo=Depends(get_access_repository),
    user_repo=Depends(get_user_repository),
) -> "AccessService":
    """
    Get an AccessService instance.

    Returns:
        AccessService: Role/module/operation catalog and permission matrix.
    """
    from services import AccessService

    return AccessService(access_repository=access_repo, user_repository=user_repo)


def get_clinic_service(
    clinic_repo=Depends(get_clinic_repository),
    catalog_repo=Depends(get_catalog_repository),
    user_location_repo=Depends(get_user_location_repository),
) -> "ClinicService":
    from services import ClinicService

    return ClinicService(
        clinic_repository=clinic_repo,
        catalog_repository=catalog_repo,
        user_location_repository=user_location_repo,
    )


def get_doctor_service(
    doctor_repo=Depends(get_doctor_repository),
    hasher=Depends(get_password_hasher),
) -> "DoctorService":
    from services import DoctorService

    return DoctorService(doctor_repository=doctor_repo, hasher=hasher)


def get_staff_service(
    staff_repo=Depends(get_staff_repository),
    hasher=Depends(get_password_hasher),
) -> "StaffService":
    from services import StaffService

    return StaffService(staff_repository=staff_repo, hasher=hasher)


def get_schedule_service(schedule_repo=Depends(get_schedule_repository)) -> "ScheduleService":
    from services import ScheduleService

    return ScheduleService(schedule_repository=schedule_repo)


def get_appointment_service(
    appointment_repo=Depends(get_appointment_repository),
    doctor_repo=Depends(get_doctor_repository),
) -> "AppointmentService":
    """
    Get an AppointmentService instance.

    The doctor repository is needed for working hours and time off when
    computing available slots.
    """
    from services import AppointmentService

    return AppointmentService(appointment_repository=appointment_repo, doctor_repository=doctor_repo)


def get_patient_service(
    patient_repo=Depends(get_patient_repository),
    hasher=Depends(get_password_hasher),
    notifier=Depends(get_notifier),
) -> "PatientService":
    """
    Get a PatientService instance with repository injected.

    Returns:
        PatientService: Service for patient operations.
    """
    from services import PatientService

    return PatientService(patient_repository=patient_repo, hasher=hasher, notifier=notifier)


def get_task_service(
    task_repo=Depends(get_task_repository),
    user_repo=Depends(get_user_repository),
    upload_service=Depends(get_upload_service),
) -> "TaskService":
    from services import TaskService

    return TaskService(
        task_repository=task_repo,
        user_repository=user_repo,
        upload_service=upload_service,
    )


def get_form_service(form_repo=Depends(get_form_repository)) -> "FormService":
    from services import FormService

    return FormService(form_repository=form_repo)


def get_seed_service(db=Depends(get_database)) -> "SeedService":
    """
    Get a SeedService bound to the seed catalog.

    Called directly (with an explicit ``db``) from the application lifespan;
    there is no HTTP route that seeds.
    """
    from core.seed_catalog import get_seed_catalog
    from repositories import AccessRepository, ClinicRepository, UserRepository
    from services import SeedService

    return SeedService(
        access_repository=AccessRepository(db=db),
        clinic_repository=ClinicRepository(db=db),
        user_repository=UserRepository(db=db),
        hasher=get_password_hasher(),
        catalog=get_seed_catalog(),
        superadmin_password=settings.emr_svc_superadmin_password or None,
    )


# =============================================================================
# DEPENDENCY OVERRIDE HELPERS (FOR TESTING)
# =============================================================================

class DependencyOverrides:
    """
    Context manager for temporarily overriding dependencies in tests.

    Usage:
        with DependencyOverrides(app) as overrides:
            overrides.set(get_notifier, lambda: fake_notifier)
            # Run tests with overridden dependency
        # Dependencies restored after context exits
    """

    def __init__(self, app):
        self.app = app
        self._original_overrides = {}

    def __enter__(self):
        self._original_overrides = self.app.dependency_overrides.copy()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.app.dependency_overrides = self._original_overrides

    def set(self, dependency, override):
        """Set a dependency override."""
        self.app.dependency_overrides[dependency] = override

    def clear(self):
        """Clear all overrides."""
        self.app.dependency_overrides = self._original_overrides.copy()
