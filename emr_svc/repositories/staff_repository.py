"""
Repository for clinic staff members.

Each staff row belongs to a user; creating staff creates the user in the
same transaction.
"""
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from core.datetime_utils import now_iso
from repositories.base import Database, build_update, row_to_dict
from repositories.user_repository import insert_user_row, update_user_row

logger = logging.getLogger(__name__)

STAFF_COLUMNS = (
    "clinic_id", "location_id", "employee_id", "role_id", "department", "employment_status",
    "start_date", "end_date", "supervisor_id", "salary", "hourly_rate",
    "emergency_contact_name", "emergency_contact_phone", "emergency_contact_relation",
    "address", "date_of_birth", "gender", "notes", "status",
)

_SELECT = """
    SELECT s.*, u.first_name, u.last_name, u.email, u.phone, u.username,
           r.name AS role_name, l.name AS location_name
    FROM staff s
    JOIN users u ON u.id = s.user_id
    LEFT JOIN roles r ON r.id = s.role_id
    LEFT JOIN clinic_locations l ON l.id = s.location_id
"""


class StaffRepository:
    """Data access for the staff table."""

    def __init__(self, db: Database):
        self._db = db

    def create(self, user: Dict[str, Any], data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Create the user and the staff profile atomically.

        Returns:
            The staff member, or None if the email, username or employee_id is taken.
        """
        columns = [c for c in STAFF_COLUMNS if c in data]
        now = now_iso()
        conn = self._db.get_connection()
        try:
            cursor = conn.cursor()
            user_id = insert_user_row(cursor, user)
            cursor.execute(
                f"""
                INSERT INTO staff (user_id, {", ".join(columns)}, created_at, updated_at)
                VALUES (?, {", ".join("?" for _ in columns)}, ?, ?)
                """,
                (user_id, *[data[c] for c in columns], now, now),
            )
            conn.commit()
            staff_id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            conn.rollback()
            logger.debug(f"Staff creation rejected: {e}")
            return None
        finally:
            conn.close()
        return self.get(staff_id)

    def get(self, staff_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return row_to_dict(conn.execute(_SELECT + " WHERE s.id = ?", (staff_id,)).fetchone())
        finally:
            conn.close()

    def employee_id_taken(self, employee_id: str, exclude_staff_id: Optional[int] = None) -> bool:
        conn = self._db.get_connection()
        try:
            row = conn.execute(
                "SELECT 1 FROM staff WHERE employee_id = ? AND id != ?", (employee_id, exclude_staff_id or 0)
            ).fetchone()
            return row is not None
        finally:
            conn.close()

    def list(self, clinic_id: Optional[int] = None, department: Optional[str] = None,
             status: Optional[str] = None, location_id: Optional[int] = None) -> List[Dict[str, Any]]:
        query = _SELECT + " WHERE 1 = 1"
        params: List[Any] = []
        for column, value in (("s.clinic_id", clinic_id), ("s.department", department),
                              ("s.status", status), ("s.location_id", location_id)):
            if value is not None:
                query += f" AND {column} = ?"
                params.append(value)
        query += " ORDER BY u.last_name, u.first_name"
        conn = self._db.get_connection()
        try:
            return [row_to_dict(r) for r in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    def update(self, staff_id: int, user_id: int, user_fields: Dict[str, Any],
               staff_fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Patch user and staff columns together; None on unique violations."""
        set_clause, params = build_update(staff_fields, STAFF_COLUMNS)
        conn = self._db.get_connection()
        try:
            cursor = conn.cursor()
            update_user_row(cursor, user_id, user_fields)
            if set_clause:
                cursor.execute(
                    f"UPDATE staff SET {set_clause}, updated_at = ? WHERE id = ?",
                    (*params, now_iso(), staff_id),
                )
            conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            return None
        finally:
            conn.close()
        return self.get(staff_id)

    def delete(self, staff_id: int) -> bool:
        """Delete the staff member together with their user account."""
        conn = self._db.get_connection()
        try:
            row = conn.execute("SELECT user_id FROM staff WHERE id = ?", (staff_id,)).fetchone()
            if row is None:
                return False
            conn.execute("UPDATE staff SET supervisor_id = NULL WHERE supervisor_id = ?", (staff_id,))
            conn.execute("DELETE FROM staff WHERE id = ?", (staff_id,))
            conn.execute("DELETE FROM users WHERE id = ?", (row["user_id"],))
            conn.commit()
            return True
        except sqlite3.IntegrityError:
            conn.rollback()
            raise
        finally:
            conn.close()

    def stats(self, clinic_id: Optional[int] = None) -> Dict[str, Any]:
        where = " WHERE clinic_id = ?" if clinic_id is not None else ""
        params = (clinic_id,) if clinic_id is not None else ()
        conn = self._db.get_connection()
        try:
            totals = conn.execute(
                f"""
                SELECT COUNT(*) AS total,
                       COALESCE(SUM(CASE WHEN status = 'active' THEN 1 ELSE 0 END), 0) AS active
                FROM staff{where}
                """,
                params,
            ).fetchone()
            departments = conn.execute(
                f"SELECT department, COUNT(*) AS n FROM staff{where} GROUP BY department ORDER BY department",
                params,
            ).fetchall()
        finally:
            conn.close()
        return {
            "total": totals["total"],
            "active": totals["active"],
            "inactive": totals["total"] - totals["active"],
            "by_department": {r["department"]: r["n"] for r in departments},
        }

    def list_supervisors(self, clinic_id: int, exclude_staff_id: Optional[int] = None) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            rows = conn.execute(
                _SELECT + " WHERE s.clinic_id = ? AND s.status = 'active' AND s.id != ?"
                " ORDER BY u.last_name, u.first_name",
                (clinic_id, exclude_staff_id or 0),
            ).fetchall()
            return [row_to_dict(r) for r in rows]
        finally:
            conn.close()
