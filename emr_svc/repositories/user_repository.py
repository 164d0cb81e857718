"""
Repository for user accounts and password reset tokens.

Every person who logs in (super admin, doctor, staff, patient) has a row in
``users``. Public reads never return ``password_hash``; only
get_credentials() does, for the login flow.
"""
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from core.datetime_utils import now_iso
from repositories.base import Database, build_update, row_to_dict

logger = logging.getLogger(__name__)

PUBLIC_COLUMNS = (
    "id", "username", "email", "user_type", "clinic_id", "role_id",
    "first_name", "last_name", "phone", "status", "last_login_at",
    "created_at", "updated_at",
)
UPDATABLE_COLUMNS = (
    "username", "email", "user_type", "clinic_id", "role_id",
    "first_name", "last_name", "phone", "status",
)
_SELECT_PUBLIC = ", ".join(f"u.{c}" for c in PUBLIC_COLUMNS)


def insert_user_row(cursor: sqlite3.Cursor, data: Dict[str, Any]) -> int:
    """
    Insert a user using an open cursor and return the new id.

    Used by repositories that create a user together with a profile row
    (patients, staff, doctors) inside a single transaction.

    Raises:
        sqlite3.IntegrityError: If the email or username is already taken.
    """
    now = now_iso()
    cursor.execute(
        """
        INSERT INTO users
            (username, email, password_hash, user_type, clinic_id, role_id,
             first_name, last_name, phone, status, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            data["username"], data["email"], data["password_hash"], data["user_type"],
            data.get("clinic_id"), data.get("role_id"), data.get("first_name"),
            data.get("last_name"), data.get("phone"), data.get("status", "active"),
            now, now,
        ),
    )
    return cursor.lastrowid


def update_user_row(cursor: sqlite3.Cursor, user_id: int, fields: Dict[str, Any]) -> None:
    """Apply a partial update to a user using an open cursor."""
    set_clause, params = build_update(fields, UPDATABLE_COLUMNS)
    if not set_clause:
        return
    cursor.execute(
        f"UPDATE users SET {set_clause}, updated_at = ? WHERE id = ?",
        (*params, now_iso(), user_id),
    )


class UserRepository:
    """Repository for user CRUD, login bookkeeping and reset tokens."""

    def __init__(self, db: Database):
        """
        Args:
            db: Database instance, injected via core.dependencies.get_user_repository().
        """
        self._db = db

    # ------------------------------------------------------------------ users

    def create(self, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Create a user.

        Args:
            data: Column values; must include username, email, password_hash
                and user_type.

        Returns:
            The created user, or None if the email or username already exists.
        """
        conn = self._db.get_connection()
        try:
            cursor = conn.cursor()
            user_id = insert_user_row(cursor, data)
            conn.commit()
            logger.info(f"Created user: {data['email']} (ID: {user_id})")
        except sqlite3.IntegrityError:
            logger.debug(f"User already exists: {data.get('email')}")
            return None
        finally:
            conn.close()
        return self.get_by_id(user_id)

    def get_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            row = conn.execute(
                f"SELECT {_SELECT_PUBLIC} FROM users u WHERE u.id = ?", (user_id,)
            ).fetchone()
            return row_to_dict(row)
        finally:
            conn.close()

    def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            row = conn.execute(
                f"SELECT {_SELECT_PUBLIC} FROM users u WHERE lower(u.email) = lower(?)", (email,)
            ).fetchone()
            return row_to_dict(row)
        finally:
            conn.close()

    def get_credentials(self, email: str) -> Optional[Dict[str, Any]]:
        """Return the user row including password_hash, for authentication only."""
        conn = self._db.get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM users WHERE lower(email) = lower(?)", (email,)
            ).fetchone()
            return row_to_dict(row)
        finally:
            conn.close()

    def email_or_username_taken(self, email: str, username: str,
                                exclude_user_id: Optional[int] = None) -> bool:
        conn = self._db.get_connection()
        try:
            row = conn.execute(
                """
                SELECT 1 FROM users
                WHERE (lower(email) = lower(?) OR username = ?) AND id != ?
                LIMIT 1
                """,
                (email, username, exclude_user_id or 0),
            ).fetchone()
            return row is not None
        finally:
            conn.close()

    def list(
        self,
        clinic_id: Optional[int] = None,
        user_type: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """List users ordered by last then first name."""
        query = f"""
            SELECT {_SELECT_PUBLIC}, r.name AS role_name
            FROM users u LEFT JOIN roles r ON r.id = u.role_id
            WHERE 1 = 1
        """
        params: List[Any] = []
        if clinic_id is not None:
            query += " AND u.clinic_id = ?"
            params.append(clinic_id)
        if user_type:
            query += " AND u.user_type = ?"
            params.append(user_type)
        if status:
            query += " AND u.status = ?"
            params.append(status)
        query += " ORDER BY u.last_name, u.first_name, u.id LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        conn = self._db.get_connection()
        try:
            return [row_to_dict(r) for r in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    def list_assignable(self, clinic_id: Optional[int]) -> List[Dict[str, Any]]:
        """Active users of a clinic ordered by first then last name."""
        query = f"SELECT {_SELECT_PUBLIC} FROM users u WHERE u.status = 'active'"
        params: List[Any] = []
        if clinic_id is not None:
            query += " AND u.clinic_id = ?"
            params.append(clinic_id)
        query += " ORDER BY u.first_name, u.last_name"
        conn = self._db.get_connection()
        try:
            return [row_to_dict(r) for r in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    def update(self, user_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Apply a partial update.

        Returns:
            The updated user, or None if the new email/username collides.
        """
        conn = self._db.get_connection()
        try:
            update_user_row(conn.cursor(), user_id, fields)
            conn.commit()
        except sqlite3.IntegrityError:
            logger.debug(f"Update of user {user_id} violates a unique constraint")
            return None
        finally:
            conn.close()
        return self.get_by_id(user_id)

    def delete(self, user_id: int) -> bool:
        """
        Delete a user.

        Raises:
            sqlite3.IntegrityError: If rows that do not cascade still reference
                the user (for example tasks they created).
        """
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def touch_last_login(self, user_id: int) -> None:
        conn = self._db.get_connection()
        try:
            conn.execute("UPDATE users SET last_login_at = ? WHERE id = ?", (now_iso(), user_id))
            conn.commit()
        finally:
            conn.close()

    def set_password_hash(self, user_id: int, password_hash: str) -> None:
        conn = self._db.get_connection()
        try:
            conn.execute(
                "UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
                (password_hash, now_iso(), user_id),
            )
            conn.commit()
        finally:
            conn.close()

    # ------------------------------------------------------- reset tokens

    def create_reset_token(self, user_id: int, token: str, expires_at: str) -> None:
        """Store a new reset token after invalidating the user's unused ones."""
        conn = self._db.get_connection()
        try:
            conn.execute(
                "UPDATE password_reset_tokens SET used = 1 WHERE user_id = ? AND used = 0",
                (user_id,),
            )
            conn.execute(
                """
                INSERT INTO password_reset_tokens (user_id, token, expires_at, used, created_at)
                VALUES (?, ?, ?, 0, ?)
                """,
                (user_id, token, expires_at, now_iso()),
            )
            conn.commit()
        finally:
            conn.close()

    def get_reset_token(self, token: str) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM password_reset_tokens WHERE token = ?", (token,)
            ).fetchone()
            return row_to_dict(row, bool_fields=("used",))
        finally:
            conn.close()

    def consume_reset_token(self, token_id: int, user_id: int, password_hash: str) -> bool:
        """
        Mark a token used and set the new password in one transaction.

        Returns:
            False if the token was consumed concurrently.
        """
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                "UPDATE password_reset_tokens SET used = 1 WHERE id = ? AND used = 0",
                (token_id,),
            )
            if cursor.rowcount == 0:
                conn.rollback()
                return False
            conn.execute(
                "UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
                (password_hash, now_iso(), user_id),
            )
            conn.commit()
            return True
        finally:
            conn.close()
