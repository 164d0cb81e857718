"""
Configuration module for the EMR Service API.
Uses Pydantic BaseSettings for validation - app fails fast if required config is missing.
"""
import sys
import logging
from pathlib import Path
from typing import List

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings with validation.
    Required fields will cause the app to fail fast if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database Configuration
    emr_svc_db_dir: str = Field(default="data", description="Database directory")
    emr_svc_db_file: str = Field(default="emr.db", description="Database filename")
    emr_svc_db_busy_timeout: int = Field(default=5000, description="SQLite busy timeout in milliseconds")

    # API Configuration
    emr_svc_host: str = Field(default="0.0.0.0", description="API host")
    emr_svc_port: int = Field(default=8000, description="API port")
    emr_svc_reload: bool = Field(default=False, description="Enable hot reload")
    emr_svc_cors_origins: str = Field(default="*", description="Allowed CORS origins (comma-separated)")
    emr_svc_frontend_url: str = Field(
        default="http://localhost:5173",
        description="Base URL of the web client, used for links in outgoing email",
    )
    emr_svc_seed_on_startup: bool = Field(default=True, description="Seed roles, modules and superadmin at startup")
    emr_svc_superadmin_password: str = Field(
        default="",
        description="Initial superadmin password; the seed catalog default is used when empty",
    )

    # Task attachment upload configuration
    emr_svc_upload_dir: str = Field(default="uploads", description="Attachment directory")
    emr_svc_upload_max_size: int = Field(default=10485760, description="Max attachment size in bytes (10MB)")
    emr_svc_max_attachments: int = Field(default=10, description="Max files per attachment upload")

    # Redis & Celery Configuration
    emr_svc_redis_url: str = Field(default="redis://localhost:6379", description="Redis URL")
    emr_svc_redis_db: int = Field(default=0, description="Redis database number")
    emr_svc_celery_task_serializer: str = Field(default="json", description="Celery task serializer")
    emr_svc_celery_result_serializer: str = Field(default="json", description="Celery result serializer")
    emr_svc_celery_accept_content: str = Field(default="json", description="Celery accepted content types (comma-separated)")
    emr_svc_celery_timezone: str = Field(default="UTC", description="Celery timezone")
    emr_svc_celery_enable_utc: bool = Field(default=True, description="Enable UTC for Celery")

    # Authentication Configuration
    emr_svc_jwt_secret: str = Field(
        ...,  # Required - no default means fail fast if missing
        description="Secret used to sign access tokens",
        min_length=32,
    )
    emr_svc_jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    emr_svc_jwt_expire_hours: int = Field(default=24, description="Access token lifetime in hours")
    emr_svc_jwt_remember_days: int = Field(default=30, description="Access token lifetime with remember-me, in days")
    emr_svc_bcrypt_rounds: int = Field(default=12, description="bcrypt cost factor")
    emr_svc_reset_token_ttl_minutes: int = Field(default=60, description="Password reset token lifetime")

    # SMTP Configuration (optional - email is skipped when host is empty)
    emr_svc_smtp_host: str = Field(default="", description="SMTP server host")
    emr_svc_smtp_port: int = Field(default=587, description="SMTP server port")
    emr_svc_smtp_user: str = Field(default="", description="SMTP username")
    emr_svc_smtp_password: str = Field(default="", description="SMTP password")
    emr_svc_smtp_from: str = Field(default="no-reply@emr.local", description="From address for outgoing email")
    emr_svc_smtp_use_tls: bool = Field(default=True, description="Use STARTTLS when talking to the SMTP server")

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """
        Validate secrets and related settings at startup and fail fast with clear error messages.
        """
        errors = []

        if self.emr_svc_jwt_algorithm not in ("HS256", "HS384", "HS512"):
            errors.append(
                f"EMR_SVC_JWT_ALGORITHM must be an HMAC algorithm, got '{self.emr_svc_jwt_algorithm}'"
            )

        if self.emr_svc_smtp_user and not self.emr_svc_smtp_password:
            errors.append("EMR_SVC_SMTP_USER is set but EMR_SVC_SMTP_PASSWORD is not")

        if not self.emr_svc_smtp_host:
            logger.warning(
                "EMR_SVC_SMTP_HOST not set - welcome and password reset emails will be skipped"
            )

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            logger.critical(error_msg)
            sys.exit(1)

        return self

    @property
    def database_path(self) -> str:
        """Get the full database path."""
        return str(Path(self.emr_svc_db_dir) / self.emr_svc_db_file)

    @property
    def celery_broker_url(self) -> str:
        """Get the Celery broker URL with database selection."""
        return f"{self.emr_svc_redis_url}/{self.emr_svc_redis_db}"

    @property
    def celery_result_backend(self) -> str:
        """Get the Celery result backend URL with database selection."""
        return f"{self.emr_svc_redis_url}/{self.emr_svc_redis_db}"

    @property
    def celery_accept_content_list(self) -> List[str]:
        """Get the Celery accepted content types as a list."""
        return [c.strip() for c in self.emr_svc_celery_accept_content.split(",")]

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.emr_svc_cors_origins.split(",") if o.strip()]

    def ensure_directories(self) -> None:
        """Ensure required directories exist."""
        Path(self.emr_svc_db_dir).mkdir(parents=True, exist_ok=True)
        Path(self.emr_svc_upload_dir).mkdir(parents=True, exist_ok=True)


# Create global settings instance - fails fast if required config is missing
settings = Settings()

# Ensure directories exist on import
settings.ensure_directories()

# Module-level exports used across the service
DATABASE_PATH = settings.database_path
DATABASE_BUSY_TIMEOUT = settings.emr_svc_db_busy_timeout

API_HOST = settings.emr_svc_host
API_PORT = settings.emr_svc_port
API_RELOAD = settings.emr_svc_reload

UPLOAD_DIR = settings.emr_svc_upload_dir
UPLOAD_MAX_SIZE = settings.emr_svc_upload_max_size
MAX_ATTACHMENTS = settings.emr_svc_max_attachments

REDIS_URL = settings.emr_svc_redis_url
CELERY_BROKER_URL = settings.celery_broker_url
CELERY_RESULT_BACKEND = settings.celery_result_backend
CELERY_TASK_SERIALIZER = settings.emr_svc_celery_task_serializer
CELERY_RESULT_SERIALIZER = settings.emr_svc_celery_result_serializer
CELERY_ACCEPT_CONTENT = settings.celery_accept_content_list
CELERY_TIMEZONE = settings.emr_svc_celery_timezone
CELERY_ENABLE_UTC = settings.emr_svc_celery_enable_utc

JWT_SECRET = settings.emr_svc_jwt_secret
JWT_ALGORITHM = settings.emr_svc_jwt_algorithm
