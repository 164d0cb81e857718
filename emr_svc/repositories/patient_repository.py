"""
Repository for patients and their clinical sub-records.

A patient is a ``users`` row (user_type 'Patient') plus a ``patients`` row.
Clinical data lives in child tables:

- patient_vitals, patient_medical_history: one current row, upserted
- patient_surgical_history, patient_medications, patient_diagnostics,
  patient_insurance, patient_clinic_notes, patient_prior_visits:
  append-only lists

All SQL is encapsulated here; PatientService never builds queries.
"""
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from core.datetime_utils import now_iso
from repositories.base import Database, build_update, row_to_dict
from repositories.user_repository import insert_user_row, update_user_row

logger = logging.getLogger(__name__)

PATIENT_COLUMNS = (
    "clinic_id", "status", "date_of_birth", "gender", "mobile_phone", "home_phone", "ssn",
    "ethnicity", "race", "preferred_language", "street_address", "city", "state", "zip_code",
)

# Single-row sub-records: the latest row is replaced on update.
UPSERT_TABLES = {
    "vitals": ("patient_vitals", (
        "height", "weight", "blood_pressure", "heart_rate", "temperature",
        "respiratory_rate", "oxygen_saturation",
    ), "recorded_at"),
    "medical_history": ("patient_medical_history", (
        "conditions", "allergies", "family_history", "social_history", "notes",
    ), "updated_at"),
}

# List sub-records: new items are appended.
LIST_TABLES = {
    "surgical_history": ("patient_surgical_history", ("procedure", "surgery_date", "surgeon", "notes")),
    "medications": ("patient_medications", ("name", "dosage", "frequency", "start_date", "end_date", "is_active")),
    "diagnostics": ("patient_diagnostics", ("test_name", "result", "test_date", "notes")),
    "insurance": ("patient_insurance", ("provider_name", "policy_number", "group_number", "is_primary", "is_active")),
    "clinic_notes": ("patient_clinic_notes", ("note", "author_id")),
    "prior_visits": ("patient_prior_visits", ("visit_date", "reason", "provider", "notes")),
}

_BOOL_FIELDS = ("is_active", "is_primary")

_SELECT = """
    SELECT p.*, u.username, u.email, u.first_name, u.last_name, u.phone, u.status AS user_status,
           c.name AS clinic_name
    FROM patients p
    JOIN users u ON u.id = p.user_id
    LEFT JOIN clinics c ON c.id = p.clinic_id
"""


class PatientRepository:
    """
    Repository for patient CRUD and clinical sub-records.

    Instantiate via core.dependencies.get_patient_repository().
    """

    def __init__(self, db: Database):
        self._db = db

    # ------------------------------------------------------------ identifiers

    def mrn_exists(self, mrn: str) -> bool:
        conn = self._db.get_connection()
        try:
            return conn.execute(
                "SELECT 1 FROM patients WHERE medical_record_number = ?", (mrn,)
            ).fetchone() is not None
        finally:
            conn.close()

    def last_emr_number_with_prefix(self, prefix: str) -> Optional[str]:
        """Highest EMR number issued for a YYYYMM prefix, or None."""
        conn = self._db.get_connection()
        try:
            row = conn.execute(
                "SELECT MAX(emr_number) AS last FROM patients WHERE emr_number LIKE ?", (f"{prefix}%",)
            ).fetchone()
            return row["last"]
        finally:
            conn.close()

    # ------------------------------------------------------------------ writes

    def _write_nested(self, cursor: sqlite3.Cursor, patient_id: int, nested: Dict[str, Any]) -> None:
        now = now_iso()
        for key, (table, columns, stamp) in UPSERT_TABLES.items():
            item = nested.get(key)
            if not item:
                continue
            values = [item.get(c) for c in columns]
            latest = cursor.execute(
                f"SELECT id FROM {table} WHERE patient_id = ? ORDER BY id DESC LIMIT 1", (patient_id,)
            ).fetchone()
            if latest:
                cursor.execute(
                    f"UPDATE {table} SET {', '.join(f'{c} = ?' for c in columns)}, {stamp} = ? WHERE id = ?",
                    (*values, now, latest["id"]),
                )
            else:
                cursor.execute(
                    f"INSERT INTO {table} (patient_id, {', '.join(columns)}, {stamp}) "
                    f"VALUES (?, {', '.join('?' for _ in columns)}, ?)",
                    (patient_id, *values, now),
                )

        for key, (table, columns) in LIST_TABLES.items():
            for item in nested.get(key) or []:
                present = [c for c in columns if item.get(c) is not None]
                cursor.execute(
                    f"INSERT INTO {table} (patient_id, {''.join(c + ', ' for c in present)}created_at) "
                    f"VALUES (?, {''.join('?, ' for _ in present)}?)",
                    (patient_id, *[
                        int(item[c]) if isinstance(item[c], bool) else item[c] for c in present
                    ], now),
                )

    def create(self, user: Dict[str, Any], patient: Dict[str, Any],
               nested: Optional[Dict[str, Any]] = None) -> Optional[int]:
        """
        Create the user, patient and any nested sub-records in one transaction.

        Args:
            user: User columns, password already hashed.
            patient: Patient columns including medical_record_number and emr_number.
            nested: Optional sub-records keyed as in UPSERT_TABLES / LIST_TABLES.

        Returns:
            The new patient id.

        Raises:
            sqlite3.IntegrityError: On a unique or foreign key violation; the
                message names the failing constraint.
        """
        now = now_iso()
        columns = ["medical_record_number", "emr_number"] + [c for c in PATIENT_COLUMNS if patient.get(c) is not None]
        conn = self._db.get_connection()
        try:
            cursor = conn.cursor()
            user_id = insert_user_row(cursor, user)
            cursor.execute(
                f"""
                INSERT INTO patients (user_id, {", ".join(columns)}, created_at, updated_at)
                VALUES (?, {", ".join("?" for _ in columns)}, ?, ?)
                """,
                (user_id, *[patient[c] for c in columns], now, now),
            )
            patient_id = cursor.lastrowid
            self._write_nested(cursor, patient_id, nested or {})
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info(f"Created patient {patient['medical_record_number']} (ID: {patient_id})")
        return patient_id

    def update(self, patient_id: int, user_id: int, user_fields: Dict[str, Any],
               patient_fields: Dict[str, Any], nested: Optional[Dict[str, Any]] = None) -> bool:
        """
        Patch user and patient columns and write nested sub-records atomically.

        Returns:
            False on a unique constraint violation (e.g. email taken).
        """
        set_clause, params = build_update(patient_fields, PATIENT_COLUMNS)
        conn = self._db.get_connection()
        try:
            cursor = conn.cursor()
            update_user_row(cursor, user_id, user_fields)
            if set_clause:
                cursor.execute(
                    f"UPDATE patients SET {set_clause}, updated_at = ? WHERE id = ?",
                    (*params, now_iso(), patient_id),
                )
            self._write_nested(cursor, patient_id, nested or {})
            conn.commit()
            return True
        except sqlite3.IntegrityError:
            conn.rollback()
            return False
        finally:
            conn.close()

    def delete(self, patient_id: int) -> bool:
        """Delete the patient (sub-records cascade) and its user account."""
        conn = self._db.get_connection()
        try:
            row = conn.execute("SELECT user_id FROM patients WHERE id = ?", (patient_id,)).fetchone()
            if row is None:
                return False
            conn.execute("DELETE FROM patients WHERE id = ?", (patient_id,))
            conn.execute("DELETE FROM users WHERE id = ?", (row["user_id"],))
            conn.commit()
            return True
        except sqlite3.IntegrityError:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ------------------------------------------------------------------- reads

    def get(self, patient_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return row_to_dict(conn.execute(_SELECT + " WHERE p.id = ?", (patient_id,)).fetchone())
        finally:
            conn.close()

    def list(self, clinic_id: Optional[int] = None, status: Optional[str] = None,
             limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
        query = _SELECT + " WHERE 1 = 1"
        params: List[Any] = []
        if clinic_id is not None:
            query += " AND p.clinic_id = ?"
            params.append(clinic_id)
        if status:
            query += " AND p.status = ?"
            params.append(status)
        query += " ORDER BY p.created_at DESC, p.id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        conn = self._db.get_connection()
        try:
            return [row_to_dict(r) for r in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    def search_by_mrn(self, term: str, clinic_id: Optional[int] = None, limit: int = 50) -> List[Dict[str, Any]]:
        """Case-insensitive substring match on medical_record_number."""
        query = _SELECT + " WHERE lower(p.medical_record_number) LIKE lower(?)"
        params: List[Any] = [f"%{term}%"]
        if clinic_id is not None:
            query += " AND p.clinic_id = ?"
            params.append(clinic_id)
        query += " ORDER BY p.medical_record_number LIMIT ?"
        params.append(limit)
        conn = self._db.get_connection()
        try:
            return [row_to_dict(r) for r in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    def get_clinical_summary(self, patient_id: int, notes_limit: int) -> Dict[str, Any]:
        """
        Load the clinical sub-records shown with a patient.

        Returns latest vitals and medical history, surgical history, active
        medications, diagnostics, active insurance, prior visits and the
        newest ``notes_limit`` clinic notes.
        """
        conn = self._db.get_connection()
        try:
            def one(sql: str) -> Optional[Dict[str, Any]]:
                return row_to_dict(conn.execute(sql, (patient_id,)).fetchone())

            def many(sql: str, *extra: Any) -> List[Dict[str, Any]]:
                return [
                    row_to_dict(r, bool_fields=_BOOL_FIELDS)
                    for r in conn.execute(sql, (patient_id, *extra)).fetchall()
                ]

            return {
                "vitals": one("SELECT * FROM patient_vitals WHERE patient_id = ? ORDER BY id DESC LIMIT 1"),
                "medical_history": one(
                    "SELECT * FROM patient_medical_history WHERE patient_id = ? ORDER BY id DESC LIMIT 1"
                ),
                "surgical_history": many(
                    "SELECT * FROM patient_surgical_history WHERE patient_id = ? ORDER BY surgery_date DESC, id DESC"
                ),
                "medications": many(
                    "SELECT * FROM patient_medications WHERE patient_id = ? AND is_active = 1 ORDER BY id"
                ),
                "diagnostics": many(
                    "SELECT * FROM patient_diagnostics WHERE patient_id = ? ORDER BY test_date DESC, id DESC"
                ),
                "insurance": many(
                    "SELECT * FROM patient_insurance WHERE patient_id = ? AND is_active = 1 "
                    "ORDER BY is_primary DESC, id"
                ),
                "clinic_notes": many(
                    "SELECT * FROM patient_clinic_notes WHERE patient_id = ? ORDER BY id DESC LIMIT ?",
                    notes_limit,
                ),
                "prior_visits": many(
                    "SELECT * FROM patient_prior_visits WHERE patient_id = ? ORDER BY visit_date DESC, id DESC"
                ),
            }
        finally:
            conn.close()
