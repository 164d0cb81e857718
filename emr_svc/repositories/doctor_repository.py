"""
Repository for doctors, their weekly working hours and their time off.
"""
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from core.datetime_utils import now_iso
from repositories.base import Database, build_update, row_to_dict
from repositories.user_repository import insert_user_row

logger = logging.getLogger(__name__)

DOCTOR_COLUMNS = ("clinic_id", "location_id", "specialty", "license_number", "status")
SCHEDULE_COLUMNS = ("day_of_week", "start_time", "end_time", "break_start", "break_end", "is_active", "notes")
TIME_OFF_COLUMNS = ("start_date", "end_date", "reason", "is_approved", "notes")

_DOCTOR_SELECT = """
    SELECT d.*, u.first_name, u.last_name, u.email, u.phone, l.name AS location_name
    FROM doctors d
    JOIN users u ON u.id = d.user_id
    LEFT JOIN clinic_locations l ON l.id = d.location_id
"""


class DoctorRepository:
    """Data access for doctors, doctor_schedules and doctor_time_off."""

    def __init__(self, db: Database):
        self._db = db

    # ---------------------------------------------------------------- doctors

    def create(self, data: Dict[str, Any], new_user: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Create a doctor profile, optionally creating its user in the same transaction.

        Args:
            data: Doctor columns. Must contain ``user_id`` unless ``new_user`` is given.
            new_user: User columns for a new account (password already hashed).

        Returns:
            The doctor, or None if the user is taken or already a doctor.
        """
        now = now_iso()
        conn = self._db.get_connection()
        try:
            cursor = conn.cursor()
            user_id = insert_user_row(cursor, new_user) if new_user else data["user_id"]
            cursor.execute(
                """
                INSERT INTO doctors (user_id, clinic_id, location_id, specialty, license_number,
                                     status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (user_id, data.get("clinic_id"), data.get("location_id"), data.get("specialty"),
                 data.get("license_number"), data.get("status", "active"), now, now),
            )
            conn.commit()
            doctor_id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            conn.rollback()
            logger.debug(f"Doctor creation rejected: {e}")
            return None
        finally:
            conn.close()
        return self.get(doctor_id)

    def get(self, doctor_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return row_to_dict(conn.execute(_DOCTOR_SELECT + " WHERE d.id = ?", (doctor_id,)).fetchone())
        finally:
            conn.close()

    def list(self, clinic_id: Optional[int] = None, location_id: Optional[int] = None,
             specialty: Optional[str] = None) -> List[Dict[str, Any]]:
        query = _DOCTOR_SELECT + " WHERE 1 = 1"
        params: List[Any] = []
        if clinic_id is not None:
            query += " AND d.clinic_id = ?"
            params.append(clinic_id)
        if location_id is not None:
            query += " AND d.location_id = ?"
            params.append(location_id)
        if specialty:
            query += " AND lower(d.specialty) = lower(?)"
            params.append(specialty)
        query += " ORDER BY u.last_name, u.first_name"
        conn = self._db.get_connection()
        try:
            return [row_to_dict(r) for r in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    def update(self, doctor_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        set_clause, params = build_update(fields, DOCTOR_COLUMNS)
        if set_clause:
            conn = self._db.get_connection()
            try:
                conn.execute(
                    f"UPDATE doctors SET {set_clause}, updated_at = ? WHERE id = ?",
                    (*params, now_iso(), doctor_id),
                )
                conn.commit()
            finally:
                conn.close()
        return self.get(doctor_id)

    def delete(self, doctor_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM doctors WHERE id = ?", (doctor_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # -------------------------------------------------------------- schedules

    def _schedule(self, row) -> Optional[Dict[str, Any]]:
        return row_to_dict(row, bool_fields=("is_active",))

    def create_schedule(self, doctor_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        now = now_iso()
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO doctor_schedules (doctor_id, day_of_week, start_time, end_time, break_start,
                                              break_end, is_active, notes, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (doctor_id, data["day_of_week"], data["start_time"], data["end_time"],
                 data.get("break_start"), data.get("break_end"), int(data.get("is_active", True)),
                 data.get("notes"), now, now),
            )
            conn.commit()
            schedule_id = cursor.lastrowid
        finally:
            conn.close()
        return self.get_schedule(schedule_id)

    def get_schedule(self, schedule_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return self._schedule(
                conn.execute("SELECT * FROM doctor_schedules WHERE id = ?", (schedule_id,)).fetchone()
            )
        finally:
            conn.close()

    def list_schedules(self, doctor_id: int) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM doctor_schedules WHERE doctor_id = ? ORDER BY day_of_week, start_time",
                (doctor_id,),
            ).fetchall()
            return [self._schedule(r) for r in rows]
        finally:
            conn.close()

    def get_active_schedule_for_day(self, doctor_id: int, day_of_week: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            row = conn.execute(
                """
                SELECT * FROM doctor_schedules
                WHERE doctor_id = ? AND day_of_week = ? AND is_active = 1
                ORDER BY start_time LIMIT 1
                """,
                (doctor_id, day_of_week),
            ).fetchone()
            return self._schedule(row)
        finally:
            conn.close()

    def update_schedule(self, schedule_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        set_clause, params = build_update(fields, SCHEDULE_COLUMNS)
        if set_clause:
            conn = self._db.get_connection()
            try:
                conn.execute(
                    f"UPDATE doctor_schedules SET {set_clause}, updated_at = ? WHERE id = ?",
                    (*params, now_iso(), schedule_id),
                )
                conn.commit()
            finally:
                conn.close()
        return self.get_schedule(schedule_id)

    def delete_schedule(self, schedule_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM doctor_schedules WHERE id = ?", (schedule_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # --------------------------------------------------------------- time off

    def _time_off(self, row) -> Optional[Dict[str, Any]]:
        return row_to_dict(row, bool_fields=("is_approved",))

    def create_time_off(self, doctor_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO doctor_time_off (doctor_id, start_date, end_date, reason, is_approved, notes, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (doctor_id, data["start_date"], data["end_date"], data["reason"],
                 int(data.get("is_approved", False)), data.get("notes"), now_iso()),
            )
            conn.commit()
            time_off_id = cursor.lastrowid
        finally:
            conn.close()
        return self.get_time_off(time_off_id)

    def get_time_off(self, time_off_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return self._time_off(
                conn.execute("SELECT * FROM doctor_time_off WHERE id = ?", (time_off_id,)).fetchone()
            )
        finally:
            conn.close()

    def list_time_off(self, doctor_id: int, from_date: Optional[str] = None) -> List[Dict[str, Any]]:
        """All time off for a doctor, or only entries ending on/after ``from_date``."""
        query = "SELECT * FROM doctor_time_off WHERE doctor_id = ?"
        params: List[Any] = [doctor_id]
        if from_date:
            query += " AND end_date >= ?"
            params.append(from_date)
        query += " ORDER BY start_date"
        conn = self._db.get_connection()
        try:
            return [self._time_off(r) for r in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    def has_time_off(self, doctor_id: int, on_date: str, approved_only: bool = False) -> bool:
        query = "SELECT 1 FROM doctor_time_off WHERE doctor_id = ? AND start_date <= ? AND end_date >= ?"
        if approved_only:
            query += " AND is_approved = 1"
        conn = self._db.get_connection()
        try:
            return conn.execute(query + " LIMIT 1", (doctor_id, on_date, on_date)).fetchone() is not None
        finally:
            conn.close()

    def update_time_off(self, time_off_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        set_clause, params = build_update(fields, TIME_OFF_COLUMNS)
        if set_clause:
            conn = self._db.get_connection()
            try:
                conn.execute(f"UPDATE doctor_time_off SET {set_clause} WHERE id = ?", (*params, time_off_id))
                conn.commit()
            finally:
                conn.close()
        return self.get_time_off(time_off_id)

    def delete_time_off(self, time_off_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM doctor_time_off WHERE id = ?", (time_off_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()
