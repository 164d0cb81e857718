"""
Password hashing and access token helpers.

Passwords are hashed with bcrypt; access tokens are HMAC-signed JWTs
issued with python-jose.

Example:
    >>> hasher = PasswordHasher(rounds=4)
    >>> hashed = hasher.hash("secret-password")
    >>> hasher.verify("secret-password", hashed)
    True
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from core.config import settings
from core.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class PasswordHasher:
    """bcrypt password hashing with a configurable cost factor."""

    def __init__(self, rounds: Optional[int] = None) -> None:
        """
        Args:
            rounds: bcrypt cost factor. Defaults to EMR_SVC_BCRYPT_ROUNDS.
        """
        self._rounds = rounds if rounds is not None else settings.emr_svc_bcrypt_rounds

    def hash(self, password: str) -> str:
        """
        Hash a password.

        Raises:
            ValueError: If password is empty.
        """
        if not password:
            raise ValueError("Password cannot be empty")
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify(self, password: str, password_hash: Optional[str]) -> bool:
        """Return True if ``password`` matches ``password_hash``."""
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError as e:
            # Malformed hash stored for the user
            logger.warning(f"Password verification failed: {e}")
            return False


# =============================================================================
# ACCESS TOKENS
# =============================================================================

@dataclass(frozen=True)
class TokenPayload:
    """Claims carried by an access token."""
    user_id: int
    email: str
    username: str
    user_type: str
    clinic_id: Optional[int]


class TokenManager:
    """
    Issue and decode signed access tokens.

    Tokens last ``expire_hours`` by default, or ``remember_days`` when the
    user asked to be remembered at login.
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        expire_hours: Optional[int] = None,
        remember_days: Optional[int] = None,
    ):
        self._secret = secret or settings.emr_svc_jwt_secret
        self._algorithm = algorithm or settings.emr_svc_jwt_algorithm
        self._expire = timedelta(hours=expire_hours or settings.emr_svc_jwt_expire_hours)
        self._remember = timedelta(days=remember_days or settings.emr_svc_jwt_remember_days)

    def lifetime(self, remember_me: bool = False) -> timedelta:
        return self._remember if remember_me else self._expire

    def create(self, payload: TokenPayload, remember_me: bool = False) -> str:
        now = utc_now()
        claims: Dict[str, Any] = {
            "sub": str(payload.user_id),
            "email": payload.email,
            "username": payload.username,
            "user_type": payload.user_type,
            "clinic_id": payload.clinic_id,
            "iat": now,
            "exp": now + self.lifetime(remember_me),
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> TokenPayload:
        """
        Decode and verify a token.

        Raises:
            ValueError: If the signature is invalid, the token expired,
                or required claims are missing.
        """
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as e:
            raise ValueError(f"Invalid token: {e}") from e

        try:
            return TokenPayload(
                user_id=int(claims["sub"]),
                email=claims.get("email", ""),
                username=claims.get("username", ""),
                user_type=claims.get("user_type", ""),
                clinic_id=claims.get("clinic_id"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError("Token is missing required claims") from e


def generate_reset_token() -> str:
    """64 hex characters of randomness for password reset links."""
    return secrets.token_hex(32)


SUPER_ADMIN_TYPES = frozenset({"SuperAdmin", "Superadmin", "Admin"})


def is_super_admin(username: Optional[str], user_type: Optional[str]) -> bool:
    """Super admins bypass module/operation permission checks."""
    return username == "superadmin" or (user_type or "") in SUPER_ADMIN_TYPES
