"""
Core module for application configuration, logging, and shared infrastructure.

This module provides:
- Settings: Application configuration via pydantic-settings
- Dependency injection: FastAPI Depends() functions for services and repositories
- Exceptions: Domain-specific exception classes with HTTP status codes
- Datetime utilities: UTC timestamps, calendar dates and HH:MM times

Authentication dependencies live in core.auth and are imported from there
directly by the routers.
"""
from core.config import settings, Settings

# Dependency injection - import functions for FastAPI Depends()
from core.dependencies import (
    get_database,
    reset_database,
    get_user_repository,
    get_access_repository,
    get_clinic_repository,
    get_catalog_repository,
    get_user_location_repository,
    get_doctor_repository,
    get_staff_repository,
    get_patient_repository,
    get_appointment_repository,
    get_schedule_repository,
    get_task_repository,
    get_form_repository,
    get_password_hasher,
    get_token_manager,
    get_notifier,
    get_upload_service,
    get_auth_service,
    get_user_service,
    get_access_service,
    get_clinic_service,
    get_doctor_service,
    get_staff_service,
    get_schedule_service,
    get_appointment_service,
    get_patient_service,
    get_task_service,
    get_form_service,
    get_seed_service,
)

# Exception classes for consistent error handling
from core.exceptions import (
    EMRServiceError,
    NotFoundError,
    DuplicateResourceError,
    ValidationFailedError,
    AppointmentConflictError,
    MissingModuleOperationsError,
    AuthenticationError,
    AccountDeactivatedError,
    PermissionDeniedError,
    InvalidResetTokenError,
    DatabaseError,
    UploadError,
    InvalidFileTypeError,
    FileTooLargeError,
    TooManyFilesError,
    ExternalServiceError,
    EmailDeliveryError,
    setup_exception_handlers,
)

# UTC datetime utilities
from core.datetime_utils import (
    utc_now,
    to_utc,
    parse_datetime,
    format_iso,
    now_iso,
    today_iso,
    parse_date,
    parse_time,
    minutes_to_time,
    weekday_index,
    weekday_name,
)
from core.config import (
    DATABASE_PATH,
    API_HOST,
    API_PORT,
    API_RELOAD,
    UPLOAD_DIR,
    UPLOAD_MAX_SIZE,
    MAX_ATTACHMENTS,
    REDIS_URL,
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    CELERY_TASK_SERIALIZER,
    CELERY_RESULT_SERIALIZER,
    CELERY_ACCEPT_CONTENT,
    CELERY_TIMEZONE,
    CELERY_ENABLE_UTC,
)

__all__ = [
    # Settings
    "settings",
    "Settings",
    # Dependency injection
    "get_database",
    "reset_database",
    "get_user_repository",
    "get_access_repository",
    "get_clinic_repository",
    "get_catalog_repository",
    "get_user_location_repository",
    "get_doctor_repository",
    "get_staff_repository",
    "get_patient_repository",
    "get_appointment_repository",
    "get_schedule_repository",
    "get_task_repository",
    "get_form_repository",
    "get_password_hasher",
    "get_token_manager",
    "get_notifier",
    "get_upload_service",
    "get_auth_service",
    "get_user_service",
    "get_access_service",
    "get_clinic_service",
    "get_doctor_service",
    "get_staff_service",
    "get_schedule_service",
    "get_appointment_service",
    "get_patient_service",
    "get_task_service",
    "get_form_service",
    "get_seed_service",
    # Exceptions
    "EMRServiceError",
    "NotFoundError",
    "DuplicateResourceError",
    "ValidationFailedError",
    "AppointmentConflictError",
    "MissingModuleOperationsError",
    "AuthenticationError",
    "AccountDeactivatedError",
    "PermissionDeniedError",
    "InvalidResetTokenError",
    "DatabaseError",
    "UploadError",
    "InvalidFileTypeError",
    "FileTooLargeError",
    "TooManyFilesError",
    "ExternalServiceError",
    "EmailDeliveryError",
    "setup_exception_handlers",
    # Datetime utilities
    "utc_now",
    "to_utc",
    "parse_datetime",
    "format_iso",
    "now_iso",
    "today_iso",
    "parse_date",
    "parse_time",
    "minutes_to_time",
    "weekday_index",
    "weekday_name",
    # Module-level config constants
    "DATABASE_PATH",
    "API_HOST",
    "API_PORT",
    "API_RELOAD",
    "UPLOAD_DIR",
    "UPLOAD_MAX_SIZE",
    "MAX_ATTACHMENTS",
    "REDIS_URL",
    "CELERY_BROKER_URL",
    "CELERY_RESULT_BACKEND",
    "CELERY_TASK_SERIALIZER",
    "CELERY_RESULT_SERIALIZER",
    "CELERY_ACCEPT_CONTENT",
    "CELERY_TIMEZONE",
    "CELERY_ENABLE_UTC",
]
