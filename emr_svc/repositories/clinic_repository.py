"""
Repository for clinics, clinic settings, locations, location services and
location schedules.
"""
import logging
from typing import Any, Dict, List, Optional

from core.datetime_utils import now_iso
from repositories.base import Database, build_update, row_to_dict, to_json

logger = logging.getLogger(__name__)

CLINIC_COLUMNS = ("name", "address", "phone", "email", "type", "group_npi", "tax_id", "time_zone")
SETTINGS_COLUMNS = (
    "practice_logo", "primary_color", "enable_sms", "enable_voice", "reminder_hours",
    "reminder_minutes", "accepted_insurances", "enable_online_payments",
)
SETTINGS_BOOLS = ("enable_sms", "enable_voice", "enable_online_payments")
LOCATION_COLUMNS = ("name", "address", "phone", "hours")
SERVICE_COLUMNS = ("service_name", "service_category", "description", "is_active")
SCHEDULE_COLUMNS = (
    "schedule_name", "weekly_schedule", "time_zone", "effective_from",
    "effective_to", "is_active", "notes",
)

DEFAULT_SETTINGS: Dict[str, Any] = {
    "practice_logo": None,
    "primary_color": "#0066cc",
    "enable_sms": True,
    "enable_voice": False,
    "reminder_hours": 24,
    "reminder_minutes": 0,
    "accepted_insurances": [],
    "enable_online_payments": False,
}


class ClinicRepository:
    """Data access for clinic configuration."""

    def __init__(self, db: Database):
        self._db = db

    # ---------------------------------------------------------------- clinics

    def create_clinic(self, data: Dict[str, Any]) -> Dict[str, Any]:
        now = now_iso()
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO clinics (name, address, phone, email, type, group_npi, tax_id,
                                     time_zone, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["name"], data.get("address"), data.get("phone"), data.get("email"),
                    data.get("type", "single"), data.get("group_npi"), data.get("tax_id"),
                    data.get("time_zone") or "America/New_York", now, now,
                ),
            )
            conn.commit()
            clinic_id = cursor.lastrowid
        finally:
            conn.close()
        logger.info(f"Created clinic: {data['name']} (ID: {clinic_id})")
        return self.get_clinic(clinic_id)

    def get_clinic(self, clinic_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return row_to_dict(conn.execute("SELECT * FROM clinics WHERE id = ?", (clinic_id,)).fetchone())
        finally:
            conn.close()

    def get_clinic_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return row_to_dict(conn.execute("SELECT * FROM clinics WHERE name = ?", (name,)).fetchone())
        finally:
            conn.close()

    def list_clinics(self) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return [row_to_dict(r) for r in conn.execute("SELECT * FROM clinics ORDER BY name").fetchall()]
        finally:
            conn.close()

    def update_clinic(self, clinic_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        set_clause, params = build_update(fields, CLINIC_COLUMNS)
        if set_clause:
            conn = self._db.get_connection()
            try:
                conn.execute(
                    f"UPDATE clinics SET {set_clause}, updated_at = ? WHERE id = ?",
                    (*params, now_iso(), clinic_id),
                )
                conn.commit()
            finally:
                conn.close()
        return self.get_clinic(clinic_id)

    def delete_clinic(self, clinic_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM clinics WHERE id = ?", (clinic_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # --------------------------------------------------------------- settings

    def get_settings(self, clinic_id: int) -> Dict[str, Any]:
        """Return stored settings, or the defaults if none were saved yet."""
        conn = self._db.get_connection()
        try:
            row = conn.execute("SELECT * FROM clinic_settings WHERE clinic_id = ?", (clinic_id,)).fetchone()
        finally:
            conn.close()
        if row is None:
            return {"clinic_id": clinic_id, **DEFAULT_SETTINGS, "updated_at": None}
        data = row_to_dict(row, bool_fields=SETTINGS_BOOLS, json_fields=("accepted_insurances",))
        data.pop("id", None)
        return data

    def upsert_settings(self, clinic_id: int, fields: Dict[str, Any]) -> Dict[str, Any]:
        merged = {**self.get_settings(clinic_id), **fields}
        values = [
            to_json(merged[c]) if c == "accepted_insurances"
            else (int(merged[c]) if isinstance(merged[c], bool) else merged[c])
            for c in SETTINGS_COLUMNS
        ]
        conn = self._db.get_connection()
        try:
            conn.execute(
                f"""
                INSERT INTO clinic_settings (clinic_id, {", ".join(SETTINGS_COLUMNS)}, updated_at)
                VALUES (?, {", ".join("?" for _ in SETTINGS_COLUMNS)}, ?)
                ON CONFLICT (clinic_id) DO UPDATE SET
                    {", ".join(f"{c} = excluded.{c}" for c in SETTINGS_COLUMNS)},
                    updated_at = excluded.updated_at
                """,
                (clinic_id, *values, now_iso()),
            )
            conn.commit()
        finally:
            conn.close()
        return self.get_settings(clinic_id)

    # -------------------------------------------------------------- locations

    def create_location(self, clinic_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        now = now_iso()
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO clinic_locations (clinic_id, name, address, phone, hours, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (clinic_id, data["name"], data.get("address"), data.get("phone"),
                 to_json(data.get("hours")), now, now),
            )
            conn.commit()
            location_id = cursor.lastrowid
        finally:
            conn.close()
        return self.get_location(location_id)

    def get_location(self, location_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            row = conn.execute("SELECT * FROM clinic_locations WHERE id = ?", (location_id,)).fetchone()
            return row_to_dict(row, json_fields=("hours",))
        finally:
            conn.close()

    def list_locations(self, clinic_id: int) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM clinic_locations WHERE clinic_id = ? ORDER BY name", (clinic_id,)
            ).fetchall()
            return [row_to_dict(r, json_fields=("hours",)) for r in rows]
        finally:
            conn.close()

    def update_location(self, location_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        set_clause, params = build_update(fields, LOCATION_COLUMNS, json_columns=("hours",))
        if set_clause:
            conn = self._db.get_connection()
            try:
                conn.execute(
                    f"UPDATE clinic_locations SET {set_clause}, updated_at = ? WHERE id = ?",
                    (*params, now_iso(), location_id),
                )
                conn.commit()
            finally:
                conn.close()
        return self.get_location(location_id)

    def delete_location(self, location_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM clinic_locations WHERE id = ?", (location_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # ------------------------------------------------------ location services

    def create_service(self, location_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO clinic_location_services
                    (location_id, service_name, service_category, description, is_active, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (location_id, data["service_name"], data.get("service_category"),
                 data.get("description"), int(data.get("is_active", True)), now_iso()),
            )
            conn.commit()
            service_id = cursor.lastrowid
        finally:
            conn.close()
        return self.get_service(service_id)

    def get_service(self, service_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            row = conn.execute("SELECT * FROM clinic_location_services WHERE id = ?", (service_id,)).fetchone()
            return row_to_dict(row, bool_fields=("is_active",))
        finally:
            conn.close()

    def list_services(self, location_id: int, active_only: bool = False) -> List[Dict[str, Any]]:
        query = "SELECT * FROM clinic_location_services WHERE location_id = ?"
        if active_only:
            query += " AND is_active = 1"
        query += " ORDER BY service_category, service_name"
        conn = self._db.get_connection()
        try:
            return [row_to_dict(r, bool_fields=("is_active",)) for r in conn.execute(query, (location_id,))]
        finally:
            conn.close()

    def update_service(self, service_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        set_clause, params = build_update(fields, SERVICE_COLUMNS)
        if set_clause:
            conn = self._db.get_connection()
            try:
                conn.execute(f"UPDATE clinic_location_services SET {set_clause} WHERE id = ?", (*params, service_id))
                conn.commit()
            finally:
                conn.close()
        return self.get_service(service_id)

    def delete_service(self, service_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM clinic_location_services WHERE id = ?", (service_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # ----------------------------------------------------- location schedules

    def _schedule(self, row) -> Optional[Dict[str, Any]]:
        return row_to_dict(row, bool_fields=("is_active",), json_fields=("weekly_schedule",))

    def create_schedule(self, location_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        now = now_iso()
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO clinic_location_schedules
                    (location_id, schedule_name, weekly_schedule, time_zone, effective_from,
                     effective_to, is_active, notes, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    location_id, data["schedule_name"], to_json(data["weekly_schedule"]),
                    data.get("time_zone") or "America/New_York", data["effective_from"],
                    data.get("effective_to"), int(data.get("is_active", True)), data.get("notes"),
                    now, now,
                ),
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
                conn.execute("SELECT * FROM clinic_location_schedules WHERE id = ?", (schedule_id,)).fetchone()
            )
        finally:
            conn.close()

    def list_schedules(self, location_id: int) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM clinic_location_schedules WHERE location_id = ? ORDER BY effective_from DESC",
                (location_id,),
            ).fetchall()
            return [self._schedule(r) for r in rows]
        finally:
            conn.close()

    def get_current_schedule(self, location_id: int, on_date: str) -> Optional[Dict[str, Any]]:
        """Active schedule in effect on ``on_date``, latest effective_from first."""
        conn = self._db.get_connection()
        try:
            row = conn.execute(
                """
                SELECT * FROM clinic_location_schedules
                WHERE location_id = ? AND is_active = 1
                  AND effective_from <= ?
                  AND (effective_to IS NULL OR effective_to >= ?)
                ORDER BY effective_from DESC, id DESC
                LIMIT 1
                """,
                (location_id, on_date, on_date),
            ).fetchone()
            return self._schedule(row)
        finally:
            conn.close()

    def list_schedules_in_range(self, location_id: int, start: str, end: str) -> List[Dict[str, Any]]:
        """Schedules whose effective window overlaps [start, end]."""
        conn = self._db.get_connection()
        try:
            rows = conn.execute(
                """
                SELECT * FROM clinic_location_schedules
                WHERE location_id = ?
                  AND effective_from <= ?
                  AND (effective_to IS NULL OR effective_to >= ?)
                ORDER BY effective_from
                """,
                (location_id, end, start),
            ).fetchall()
            return [self._schedule(r) for r in rows]
        finally:
            conn.close()

    def update_schedule(self, schedule_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        set_clause, params = build_update(fields, SCHEDULE_COLUMNS, json_columns=("weekly_schedule",))
        if set_clause:
            conn = self._db.get_connection()
            try:
                conn.execute(
                    f"UPDATE clinic_location_schedules SET {set_clause}, updated_at = ? WHERE id = ?",
                    (*params, now_iso(), schedule_id),
                )
                conn.commit()
            finally:
                conn.close()
        return self.get_schedule(schedule_id)

    def delete_schedule(self, schedule_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM clinic_location_schedules WHERE id = ?", (schedule_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()
