"""
Authentication and authorization dependencies for the EMR Service API.

Requests authenticate with a JWT in the ``Authorization: Bearer <token>``
header. Authorization is a module/operation check against the permission
matrix: a user may act if their role or a direct user grant covers the
(module, operation) pair. Super admins bypass the check.

Usage in routers:
    router = APIRouter(
        prefix="/api/v1/patients",
        dependencies=[Depends(require_module_access("Patient Management"))],
    )

    @router.post("/{id}/approve", dependencies=[Depends(require_permission("Patient Management", "Approve"))])
    async def approve(...): ...
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.dependencies import get_access_repository, get_token_manager, get_user_repository
from core.exceptions import AccountDeactivatedError, AuthenticationError, PermissionDeniedError
from core.security import TokenManager, is_super_admin

logger = logging.getLogger(__name__)

# Maps the HTTP method of a request to the operation it needs on a module
METHOD_OPERATIONS = {
    "GET": "Read",
    "HEAD": "Read",
    "POST": "Create",
    "PUT": "Update",
    "PATCH": "Update",
    "DELETE": "Delete",
}

bearer_scheme = HTTPBearer(
    auto_error=False,
    description="JWT issued by POST /api/v1/auth/login. Send as 'Authorization: Bearer <token>'.",
)


@dataclass(frozen=True)
class CurrentUser:
    """The authenticated user making the request."""
    id: int
    email: str
    username: str
    user_type: str
    clinic_id: Optional[int] = None
    role_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def is_super_admin(self) -> bool:
        return is_super_admin(self.username, self.user_type)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    token_manager: TokenManager = Depends(get_token_manager),
    user_repo=Depends(get_user_repository),
) -> CurrentUser:
    """
    Resolve the bearer token to an active user.

    Args:
        credentials: Parsed Authorization header, if any.
        token_manager: Decodes and verifies the JWT.
        user_repo: Loads the user named by the token's ``sub`` claim.

    Returns:
        CurrentUser: The authenticated user.

    Raises:
        AuthenticationError: 401 if the token is missing, invalid, expired,
            or names a user that no longer exists.
        AccountDeactivatedError: 401 if the user is not active.
    """
    if credentials is None or not credentials.credentials:
        logger.warning("API request without bearer token")
        raise AuthenticationError("Not authenticated")

    try:
        payload = token_manager.decode(credentials.credentials)
    except ValueError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise AuthenticationError("Invalid or expired token")

    user = user_repo.get_by_id(payload.user_id)
    if user is None:
        logger.warning(f"Token refers to unknown user {payload.user_id}")
        raise AuthenticationError("Invalid or expired token")
    if user["status"] != "active":
        raise AccountDeactivatedError()

    return CurrentUser(
        id=user["id"],
        email=user["email"],
        username=user["username"],
        user_type=user["user_type"],
        clinic_id=user.get("clinic_id"),
        role_id=user.get("role_id"),
        first_name=user.get("first_name"),
        last_name=user.get("last_name"),
    )


def _check(current_user: CurrentUser, access_repo, module: str, operation: str) -> CurrentUser:
    if current_user.is_super_admin:
        return current_user
    if not access_repo.has_permission(current_user.id, module, operation):
        logger.warning(
            f"Permission denied for user {current_user.id}: {operation} on {module}",
            extra={"user_id": current_user.id, "module": module, "operation": operation},
        )
        raise PermissionDeniedError(module=module, operation=operation)
    return current_user


def require_permission(module: str, operation: str) -> Callable:
    """
    Build a dependency that requires a specific module-operation grant.

    Args:
        module: Module name, e.g. "Patient Management".
        operation: Operation name, e.g. "Approve".

    Returns:
        A FastAPI dependency returning the CurrentUser when allowed.
    """
    async def dependency(
        current_user: CurrentUser = Depends(get_current_user),
        access_repo=Depends(get_access_repository),
    ) -> CurrentUser:
        return _check(current_user, access_repo, module, operation)

    return dependency


def require_module_access(module: str) -> Callable:
    """
    Build a router-level dependency whose operation follows the HTTP method
    (GET -> Read, POST -> Create, PUT/PATCH -> Update, DELETE -> Delete).
    """
    async def dependency(
        request: Request,
        current_user: CurrentUser = Depends(get_current_user),
        access_repo=Depends(get_access_repository),
    ) -> CurrentUser:
        operation = METHOD_OPERATIONS.get(request.method, "Read")
        return _check(current_user, access_repo, module, operation)

    return dependency
