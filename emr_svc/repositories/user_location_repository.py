"""
Repository for user-to-location assignments.

A user may work at several locations of a clinic; at most one assignment
per user is primary.
"""
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from core.datetime_utils import now_iso
from repositories.base import Database, row_to_dict

logger = logging.getLogger(__name__)

_SELECT = """
    SELECT ul.*, l.name AS location_name, u.first_name, u.last_name, u.email
    FROM user_locations ul
    JOIN clinic_locations l ON l.id = ul.location_id
    JOIN users u ON u.id = ul.user_id
"""


class UserLocationRepository:
    """Data access for user_locations."""

    def __init__(self, db: Database):
        self._db = db

    def _map(self, row) -> Optional[Dict[str, Any]]:
        return row_to_dict(row, bool_fields=("is_primary",))

    def assign(self, user_id: int, clinic_id: int, location_id: int,
               is_primary: bool = False, notes: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Assign a user to a location.

        Returns:
            The assignment, or None if the user is already assigned there.
        """
        conn = self._db.get_connection()
        try:
            if is_primary:
                conn.execute("UPDATE user_locations SET is_primary = 0 WHERE user_id = ?", (user_id,))
            cursor = conn.execute(
                """
                INSERT INTO user_locations (user_id, clinic_id, location_id, is_primary, status, notes, created_at)
                VALUES (?, ?, ?, ?, 'active', ?, ?)
                """,
                (user_id, clinic_id, location_id, int(is_primary), notes, now_iso()),
            )
            conn.commit()
            assignment_id = cursor.lastrowid
        except sqlite3.IntegrityError:
            conn.rollback()
            return None
        finally:
            conn.close()
        return self.get(assignment_id)

    def get(self, assignment_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return self._map(conn.execute(_SELECT + " WHERE ul.id = ?", (assignment_id,)).fetchone())
        finally:
            conn.close()

    def list_for_user(self, user_id: int) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            rows = conn.execute(
                _SELECT + " WHERE ul.user_id = ? ORDER BY ul.is_primary DESC, l.name", (user_id,)
            ).fetchall()
            return [self._map(r) for r in rows]
        finally:
            conn.close()

    def list_for_location(self, location_id: int) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            rows = conn.execute(
                _SELECT + " WHERE ul.location_id = ? ORDER BY u.last_name, u.first_name", (location_id,)
            ).fetchall()
            return [self._map(r) for r in rows]
        finally:
            conn.close()

    def set_primary(self, user_id: int, location_id: int) -> bool:
        """
        Make one assignment primary and clear the flag on the others.

        Returns:
            False if the user is not assigned to the location.
        """
        conn = self._db.get_connection()
        try:
            exists = conn.execute(
                "SELECT 1 FROM user_locations WHERE user_id = ? AND location_id = ?",
                (user_id, location_id),
            ).fetchone()
            if not exists:
                return False
            conn.execute("UPDATE user_locations SET is_primary = 0 WHERE user_id = ?", (user_id,))
            conn.execute(
                "UPDATE user_locations SET is_primary = 1 WHERE user_id = ? AND location_id = ?",
                (user_id, location_id),
            )
            conn.commit()
            return True
        finally:
            conn.close()

    def update_status(self, assignment_id: int, status: str, notes: Optional[str] = None) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            conn.execute(
                "UPDATE user_locations SET status = ?, notes = COALESCE(?, notes) WHERE id = ?",
                (status, notes, assignment_id),
            )
            conn.commit()
        finally:
            conn.close()
        return self.get(assignment_id)

    def remove(self, assignment_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM user_locations WHERE id = ?", (assignment_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def has_access(self, user_id: int, location_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            row = conn.execute(
                "SELECT 1 FROM user_locations WHERE user_id = ? AND location_id = ? AND status = 'active'",
                (user_id, location_id),
            ).fetchone()
            return row is not None
        finally:
            conn.close()
