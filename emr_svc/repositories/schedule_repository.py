"""
Repository for per-user weekly schedules (``user_schedules``).
"""
import logging
from typing import Any, Dict, List, Optional

from core.datetime_utils import now_iso
from repositories.base import Database, build_update, row_to_dict, to_json

logger = logging.getLogger(__name__)

SCHEDULE_COLUMNS = (
    "clinic_id", "user_id", "user_type", "weekly_schedule", "slot_duration",
    "is_active", "effective_from", "effective_to",
)

_SELECT = """
    SELECT s.*, u.first_name, u.last_name
    FROM user_schedules s
    JOIN users u ON u.id = s.user_id
"""

_ACTIVE_FILTER = """
    s.is_active = 1 AND s.effective_from <= ?
    AND (s.effective_to IS NULL OR s.effective_to >= ?)
"""


class ScheduleRepository:
    """Data access for user_schedules."""

    def __init__(self, db: Database):
        self._db = db

    def _map(self, row) -> Optional[Dict[str, Any]]:
        return row_to_dict(row, bool_fields=("is_active",), json_fields=("weekly_schedule",))

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        now = now_iso()
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO user_schedules (clinic_id, user_id, user_type, weekly_schedule, slot_duration,
                                            is_active, effective_from, effective_to, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["clinic_id"], data["user_id"], data["user_type"], to_json(data["weekly_schedule"]),
                    data.get("slot_duration", 30), int(data.get("is_active", True)),
                    data["effective_from"], data.get("effective_to"), now, now,
                ),
            )
            conn.commit()
            schedule_id = cursor.lastrowid
        finally:
            conn.close()
        return self.get(schedule_id)

    def get(self, schedule_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return self._map(conn.execute(_SELECT + " WHERE s.id = ?", (schedule_id,)).fetchone())
        finally:
            conn.close()

    def list(self, clinic_id: Optional[int] = None, user_id: Optional[int] = None,
             user_type: Optional[str] = None) -> List[Dict[str, Any]]:
        query = _SELECT + " WHERE 1 = 1"
        params: List[Any] = []
        for column, value in (("s.clinic_id", clinic_id), ("s.user_id", user_id), ("s.user_type", user_type)):
            if value is not None:
                query += f" AND {column} = ?"
                params.append(value)
        query += " ORDER BY s.effective_from DESC, s.id DESC"
        conn = self._db.get_connection()
        try:
            return [self._map(r) for r in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    def list_active(self, on_date: str, clinic_id: Optional[int] = None,
                    user_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """Schedules in effect on ``on_date``."""
        query = _SELECT + " WHERE" + _ACTIVE_FILTER
        params: List[Any] = [on_date, on_date]
        if clinic_id is not None:
            query += " AND s.clinic_id = ?"
            params.append(clinic_id)
        if user_id is not None:
            query += " AND s.user_id = ?"
            params.append(user_id)
        query += " ORDER BY s.effective_from DESC, s.id DESC"
        conn = self._db.get_connection()
        try:
            return [self._map(r) for r in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    def update(self, schedule_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        set_clause, params = build_update(fields, SCHEDULE_COLUMNS, json_columns=("weekly_schedule",))
        if set_clause:
            conn = self._db.get_connection()
            try:
                conn.execute(
                    f"UPDATE user_schedules SET {set_clause}, updated_at = ? WHERE id = ?",
                    (*params, now_iso(), schedule_id),
                )
                conn.commit()
            finally:
                conn.close()
        return self.get(schedule_id)

    def delete(self, schedule_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM user_schedules WHERE id = ?", (schedule_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()
