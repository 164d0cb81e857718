"""
Service layer for authentication.

Handles login, token verification and the forgot/reset password flow.

Architecture:
    API Layer (routers/auth) → AuthService → UserRepository / AccessRepository

Dependency Injection:
    AuthService receives repositories, the password hasher, the token
    manager and the email notifier via constructor injection.
    Use core.dependencies.get_auth_service() in routers with Depends().
"""
import logging
from datetime import timedelta

from core.datetime_utils import format_iso, parse_datetime, utc_now
from core.exceptions import AccountDeactivatedError, AuthenticationError, InvalidResetTokenError, NotFoundError
from core.security import PasswordHasher, TokenManager, TokenPayload, generate_reset_token, is_super_admin
from repositories import AccessRepository, UserRepository
from schemas import LoginResponse, ModuleOperationResponse, UserResponse, VerifyTokenResponse

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account exists for that email, a password reset link has been sent"


class AuthService:
    """
    Service layer for authentication flows.

    Login failures for unknown emails and wrong passwords produce the same
    error so that the endpoint does not reveal which accounts exist.
    """

    def __init__(
        self,
        user_repository: UserRepository,
        access_repository: AccessRepository,
        hasher: PasswordHasher,
        token_manager: TokenManager,
        notifier,
        reset_token_ttl_minutes: int = 60,
    ):
        """
        Initialize the auth service.

        Args:
            user_repository: Users and reset tokens.
            access_repository: Effective permissions for verify-token.
            hasher: bcrypt password hasher.
            token_manager: JWT issue/decode.
            notifier: Queues password reset emails.
            reset_token_ttl_minutes: Reset token lifetime.
        """
        self._users = user_repository
        self._access = access_repository
        self._hasher = hasher
        self._tokens = token_manager
        self._notifier = notifier
        self._reset_ttl = reset_token_ttl_minutes

    def login(self, email: str, password: str, remember_me: bool = False) -> LoginResponse:
        """
        Authenticate a user and issue an access token.

        Args:
            email: Account email (case-insensitive).
            password: Plain text password.
            remember_me: Issue a long-lived token.

        Returns:
            LoginResponse: Token, lifetime in seconds and the user summary.

        Raises:
            AuthenticationError: Unknown email or wrong password.
            AccountDeactivatedError: The account is not active.
        """
        credentials = self._users.get_credentials(email)
        if credentials is None or not self._hasher.verify(password, credentials.get("password_hash")):
            logger.warning("Failed login attempt", extra={"email": email})
            self._record_login_failure()
            raise AuthenticationError("Invalid credentials")

        if credentials["status"] != "active":
            logger.warning("Login attempt on deactivated account", extra={"user_id": credentials["id"]})
            raise AccountDeactivatedError()

        token = self._tokens.create(
            TokenPayload(
                user_id=credentials["id"],
                email=credentials["email"],
                username=credentials["username"],
                user_type=credentials["user_type"],
                clinic_id=credentials.get("clinic_id"),
            ),
            remember_me=remember_me,
        )
        self._users.touch_last_login(credentials["id"])
        user = self._users.get_by_id(credentials["id"])

        logger.info(f"User logged in: {user['email']} (id={user['id']})")
        return LoginResponse(
            access_token=token,
            expires_in=int(self._tokens.lifetime(remember_me).total_seconds()),
            user=UserResponse(**user),
            is_super_admin=is_super_admin(user["username"], user["user_type"]),
        )

    def verify(self, user_id: int) -> VerifyTokenResponse:
        """
        Describe the already-authenticated user with their permissions.

        Raises:
            NotFoundError: If the user vanished after the token was checked.
        """
        user = self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        permissions = [ModuleOperationResponse(**p) for p in self._access.effective_permissions(user_id)]
        return VerifyTokenResponse(
            user=UserResponse(**user),
            is_super_admin=is_super_admin(user["username"], user["user_type"]),
            permissions=permissions,
        )

    def forgot_password(self, email: str) -> str:
        """
        Start a password reset.

        Always returns the same message whether or not the account exists.
        Earlier unused tokens for the user are invalidated.
        """
        user = self._users.get_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return FORGOT_PASSWORD_MESSAGE

        token = generate_reset_token()
        expires_at = format_iso(utc_now() + timedelta(minutes=self._reset_ttl))
        self._users.create_reset_token(user["id"], token, expires_at)
        self._notifier.send_password_reset(user["email"], token, self._reset_ttl)
        logger.info(f"Password reset token issued for user {user['id']}")
        return FORGOT_PASSWORD_MESSAGE

    def reset_password(self, token: str, new_password: str) -> None:
        """
        Complete a password reset.

        Raises:
            InvalidResetTokenError: Unknown, used or expired token.
        """
        record = self._users.get_reset_token(token)
        if record is None or record["used"]:
            raise InvalidResetTokenError()
        if parse_datetime(record["expires_at"]) <= utc_now():
            logger.info(f"Expired reset token used for user {record['user_id']}")
            raise InvalidResetTokenError()

        if not self._users.consume_reset_token(record["id"], record["user_id"], self._hasher.hash(new_password)):
            raise InvalidResetTokenError()
        logger.info(f"Password reset completed for user {record['user_id']}")

    @staticmethod
    def _record_login_failure() -> None:
        from core.middleware import get_metrics_collector
        get_metrics_collector().record_login_failure()
