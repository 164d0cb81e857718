"""
Domain exception hierarchy and FastAPI error handlers for the EMR service.

Services raise these exceptions; the handler registered by
setup_exception_handlers() turns them into JSON responses of the form
``{"detail": "...", "context": {...}}``.

Usage:
    from core.exceptions import NotFoundError

    raise NotFoundError("Patient", patient_id)
"""
import logging
from typing import Any, Dict, Iterable, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# =============================================================================
# BASE EXCEPTION
# =============================================================================

class EMRServiceError(Exception):
    """
    Base exception for all EMR service domain errors.

    Carries an HTTP status code, a human-readable detail message and
    optional keyword context that is echoed back to the client.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "An unexpected error occurred"

    def __init__(
        self,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs: Any
    ):
        """
        Initialize the exception.

        Args:
            detail: Human-readable error message. Uses class default if not provided.
            status_code: HTTP status code. Uses class default if not provided.
            **kwargs: Additional context to include in error response.
        """
        self.detail = detail or self.__class__.detail
        self.status_code = status_code or self.__class__.status_code
        self.context = {k: v for k, v in kwargs.items() if v is not None}
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        result: Dict[str, Any] = {"detail": self.detail}
        if self.context:
            result["context"] = self.context
        return result


# =============================================================================
# RESOURCE EXCEPTIONS
# =============================================================================

class NotFoundError(EMRServiceError):
    """Raised when a requested resource does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    detail = "Resource not found"

    def __init__(self, resource: Optional[str] = None, identifier: Any = None, **kwargs: Any):
        if resource and identifier is not None:
            detail = f"{resource} {identifier} not found"
        elif resource:
            detail = f"{resource} not found"
        else:
            detail = self.detail
        super().__init__(detail=detail, resource=resource, identifier=identifier, **kwargs)


class DuplicateResourceError(EMRServiceError):
    """Raised when a unique constraint would be violated."""

    status_code = status.HTTP_409_CONFLICT
    detail = "Resource already exists"

    def __init__(self, resource: Optional[str] = None, field: Optional[str] = None,
                 value: Any = None, **kwargs: Any):
        if resource and field:
            detail = f"{resource} with this {field} already exists"
        elif resource:
            detail = f"{resource} already exists"
        else:
            detail = self.detail
        super().__init__(detail=detail, resource=resource, field=field, value=value, **kwargs)


class ValidationFailedError(EMRServiceError):
    """Raised when input passes schema validation but breaks a business rule."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid request data"


class AppointmentConflictError(ValidationFailedError):
    """Raised when a doctor is already booked for an overlapping time range."""

    detail = "This time slot conflicts with an existing appointment"


class MissingModuleOperationsError(ValidationFailedError):
    """Raised when a permission assignment references unknown module-operations."""

    detail = "One or more module operations do not exist"

    def __init__(self, missing_ids: Iterable[int], **kwargs: Any):
        missing = sorted(set(missing_ids))
        super().__init__(
            detail=f"Module operations not found: {', '.join(str(i) for i in missing)}",
            missing_ids=missing,
            **kwargs
        )


# =============================================================================
# AUTHENTICATION / AUTHORIZATION EXCEPTIONS
# =============================================================================

class AuthenticationError(EMRServiceError):
    """Raised when credentials or tokens are missing or invalid."""

    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid credentials"


class AccountDeactivatedError(AuthenticationError):
    """Raised when a user with a non-active status tries to authenticate."""

    detail = "Account is deactivated"


class PermissionDeniedError(EMRServiceError):
    """Raised when an authenticated user lacks a module/operation grant."""

    status_code = status.HTTP_403_FORBIDDEN
    detail = "You do not have permission to perform this action"

    def __init__(self, module: Optional[str] = None, operation: Optional[str] = None, **kwargs: Any):
        detail = (
            f"Permission denied: {operation} on {module}"
            if module and operation else self.detail
        )
        super().__init__(detail=detail, module=module, operation=operation, **kwargs)


class InvalidResetTokenError(EMRServiceError):
    """Raised when a password reset token is unknown, used, or expired."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid or expired reset token"


# =============================================================================
# DATABASE EXCEPTIONS
# =============================================================================

class DatabaseError(EMRServiceError):
    """Raised when a database operation fails."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Database operation failed"

    def __init__(self, operation: Optional[str] = None, **kwargs: Any):
        detail = f"Database error during {operation}" if operation else self.detail
        super().__init__(detail=detail, operation=operation, **kwargs)


# =============================================================================
# UPLOAD EXCEPTIONS
# =============================================================================

class UploadError(EMRServiceError):
    """Base exception for attachment upload errors."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Upload failed"


class InvalidFileTypeError(UploadError):
    """Raised when an uploaded file has a disallowed type or extension."""

    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    detail = "Unsupported file type"


class FileTooLargeError(UploadError):
    """Raised when an uploaded file exceeds the size limit."""

    status_code = 413
    detail = "File size exceeds maximum allowed"


class TooManyFilesError(UploadError):
    """Raised when more files are sent than a single upload accepts."""

    detail = "Too many files in one upload"


# =============================================================================
# EXTERNAL SERVICE EXCEPTIONS
# =============================================================================

class ExternalServiceError(EMRServiceError):
    """Raised when an external service call fails."""

    status_code = status.HTTP_502_BAD_GATEWAY
    detail = "External service error"


class EmailDeliveryError(ExternalServiceError):
    """Raised when the SMTP server rejects or drops a message."""

    detail = "Email delivery failed"


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

async def emr_service_exception_handler(
    request: Request,
    exc: EMRServiceError
) -> JSONResponse:
    """Log a domain error and return its JSON representation."""
    logger.warning(
        f"EMRServiceError: {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
            "context": exc.context
        }
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=headers
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions with a generic error response.

    Logs the full exception for debugging but returns a safe error message.
    """
    logger.exception(
        f"Unhandled exception: {exc}",
        extra={
            "path": request.url.path,
            "method": request.method
        }
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An internal server error occurred"}
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(EMRServiceError, emr_service_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
