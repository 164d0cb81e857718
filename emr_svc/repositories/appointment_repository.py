"""
Repository for appointments.

Times are stored as zero-padded 'HH:MM' strings, so lexical comparison in
SQL matches chronological order.
"""
import logging
from typing import Any, Dict, List, Optional

from core.datetime_utils import now_iso
from repositories.base import Database, build_update, row_to_dict

logger = logging.getLogger(__name__)

APPOINTMENT_COLUMNS = (
    "clinic_id", "patient_id", "doctor_id", "location_id", "date", "start_time",
    "end_time", "type", "status", "notes",
)

_SELECT = """
    SELECT a.*,
           TRIM(COALESCE(pu.first_name, '') || ' ' || COALESCE(pu.last_name, '')) AS patient_name,
           p.medical_record_number,
           TRIM(COALESCE(du.first_name, '') || ' ' || COALESCE(du.last_name, '')) AS doctor_name,
           l.name AS location_name,
           c.name AS clinic_name
    FROM appointments a
    JOIN patients p ON p.id = a.patient_id
    JOIN users pu ON pu.id = p.user_id
    JOIN doctors d ON d.id = a.doctor_id
    JOIN users du ON du.id = d.user_id
    JOIN clinics c ON c.id = a.clinic_id
    LEFT JOIN clinic_locations l ON l.id = a.location_id
"""


class AppointmentRepository:
    """Data access for appointments."""

    def __init__(self, db: Database):
        self._db = db

    def create(self, data: Dict[str, Any], created_by: Optional[int]) -> Dict[str, Any]:
        now = now_iso()
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO appointments (clinic_id, patient_id, doctor_id, location_id, date, start_time,
                                          end_time, type, status, notes, created_by, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["clinic_id"], data["patient_id"], data["doctor_id"], data.get("location_id"),
                    data["date"], data["start_time"], data["end_time"], data.get("type", "onsite"),
                    data.get("status", "scheduled"), data.get("notes"), created_by, now, now,
                ),
            )
            conn.commit()
            appointment_id = cursor.lastrowid
        finally:
            conn.close()
        return self.get(appointment_id)

    def get(self, appointment_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return row_to_dict(conn.execute(_SELECT + " WHERE a.id = ?", (appointment_id,)).fetchone())
        finally:
            conn.close()

    def list(
        self,
        clinic_id: Optional[int] = None,
        location_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        on_date: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """List appointments, newest date first and latest start first within a date."""
        query = _SELECT + " WHERE 1 = 1"
        params: List[Any] = []
        for column, value in (
            ("a.clinic_id", clinic_id), ("a.location_id", location_id), ("a.doctor_id", doctor_id),
            ("a.patient_id", patient_id), ("a.date", on_date), ("a.status", status),
        ):
            if value is not None:
                query += f" AND {column} = ?"
                params.append(value)
        query += " ORDER BY a.date DESC, a.start_time DESC"
        conn = self._db.get_connection()
        try:
            return [row_to_dict(r) for r in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    def find_conflict(self, doctor_id: int, on_date: str, start_time: str, end_time: str,
                      exclude_id: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """
        First scheduled appointment of the doctor on the date overlapping
        [start_time, end_time), ignoring ``exclude_id``.
        """
        conn = self._db.get_connection()
        try:
            row = conn.execute(
                """
                SELECT * FROM appointments
                WHERE doctor_id = ? AND date = ? AND status = 'scheduled'
                  AND start_time < ? AND end_time > ?
                  AND id != ?
                ORDER BY start_time
                LIMIT 1
                """,
                (doctor_id, on_date, end_time, start_time, exclude_id or 0),
            ).fetchone()
            return row_to_dict(row)
        finally:
            conn.close()

    def list_booked_ranges(self, doctor_id: int, on_date: str) -> List[Dict[str, str]]:
        """(start_time, end_time) of the doctor's scheduled appointments on a date."""
        conn = self._db.get_connection()
        try:
            rows = conn.execute(
                """
                SELECT start_time, end_time FROM appointments
                WHERE doctor_id = ? AND date = ? AND status = 'scheduled'
                ORDER BY start_time
                """,
                (doctor_id, on_date),
            ).fetchall()
            return [row_to_dict(r) for r in rows]
        finally:
            conn.close()

    def update(self, appointment_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        set_clause, params = build_update(fields, APPOINTMENT_COLUMNS)
        if set_clause:
            conn = self._db.get_connection()
            try:
                conn.execute(
                    f"UPDATE appointments SET {set_clause}, updated_at = ? WHERE id = ?",
                    (*params, now_iso(), appointment_id),
                )
                conn.commit()
            finally:
                conn.close()
        return self.get(appointment_id)

    def delete(self, appointment_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM appointments WHERE id = ?", (appointment_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()
