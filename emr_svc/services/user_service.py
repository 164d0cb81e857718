"""
Service layer for user account management.
"""
import logging
import sqlite3
from typing import List, Optional

from core.exceptions import DuplicateResourceError, NotFoundError, ValidationFailedError
from core.security import PasswordHasher
from repositories import UserRepository
from schemas import UserCreate, UserResponse, UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    """Business logic for user CRUD and status changes."""

    def __init__(self, user_repository: UserRepository, hasher: PasswordHasher):
        """
        Args:
            user_repository: Injected via core.dependencies.get_user_service().
            hasher: Hashes passwords of new accounts.
        """
        self._repo = user_repository
        self._hasher = hasher

    def list_users(self, clinic_id: Optional[int] = None, user_type: Optional[str] = None,
                   status: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[UserResponse]:
        rows = self._repo.list(clinic_id=clinic_id, user_type=user_type, status=status, limit=limit, offset=offset)
        return [UserResponse(**r) for r in rows]

    def get_user(self, user_id: int) -> UserResponse:
        user = self._repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return UserResponse(**user)

    def create_user(self, data: UserCreate) -> UserResponse:
        """
        Create a user account with a bcrypt-hashed password.

        Raises:
            DuplicateResourceError: If the email or username is taken.
        """
        username = data.username or data.email
        if self._repo.email_or_username_taken(data.email, username):
            raise DuplicateResourceError("User", "email or username")

        fields = data.model_dump(exclude={"password", "username"})
        fields["username"] = username
        fields["password_hash"] = self._hasher.hash(data.password)

        created = self._repo.create(fields)
        if created is None:
            raise DuplicateResourceError("User", "email or username")
        logger.info(f"User created: {created['email']} (id={created['id']})")
        return UserResponse(**created)

    def update_user(self, user_id: int, data: UserUpdate) -> UserResponse:
        """
        Patch a user's profile fields.

        Raises:
            NotFoundError: If the user does not exist.
            DuplicateResourceError: If the new email or username is taken.
        """
        existing = self._repo.get_by_id(user_id)
        if existing is None:
            raise NotFoundError("User", user_id)

        fields = data.model_dump(exclude_unset=True)
        if not fields:
            return UserResponse(**existing)

        email = fields.get("email", existing["email"])
        username = fields.get("username", existing["username"])
        if self._repo.email_or_username_taken(email, username, exclude_user_id=user_id):
            raise DuplicateResourceError("User", "email or username")

        updated = self._repo.update(user_id, fields)
        if updated is None:
            raise DuplicateResourceError("User", "email or username")
        return UserResponse(**updated)

    def set_status(self, user_id: int, status: str) -> UserResponse:
        if self._repo.get_by_id(user_id) is None:
            raise NotFoundError("User", user_id)
        updated = self._repo.update(user_id, {"status": status})
        logger.info(f"User {user_id} status set to {status}")
        return UserResponse(**updated)

    def delete_user(self, user_id: int) -> None:
        """
        Raises:
            NotFoundError: If the user does not exist.
            ValidationFailedError: If other records still reference the user.
        """
        try:
            deleted = self._repo.delete(user_id)
        except sqlite3.IntegrityError:
            raise ValidationFailedError(
                "User is still referenced by other records (tasks, appointments or forms)",
                user_id=user_id,
            )
        if not deleted:
            raise NotFoundError("User", user_id)
        logger.info(f"User deleted: {user_id}")
