"""
Repository for the shared medical specialty and insurance provider catalogs
and their per-clinic links.
"""
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from repositories.base import Database, row_to_dict

logger = logging.getLogger(__name__)


class CatalogRepository:
    """Specialties, insurance providers and which clinics use them."""

    def __init__(self, db: Database):
        self._db = db

    # ------------------------------------------------------------ specialties

    def create_specialty(self, name: str, description: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Returns None if a specialty with this name exists."""
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                "INSERT INTO medical_specialties (name, description) VALUES (?, ?)", (name, description)
            )
            conn.commit()
            row = conn.execute("SELECT * FROM medical_specialties WHERE id = ?", (cursor.lastrowid,)).fetchone()
            return row_to_dict(row)
        except sqlite3.IntegrityError:
            return None
        finally:
            conn.close()

    def get_specialty(self, specialty_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return row_to_dict(
                conn.execute("SELECT * FROM medical_specialties WHERE id = ?", (specialty_id,)).fetchone()
            )
        finally:
            conn.close()

    def list_specialties(self) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return [row_to_dict(r) for r in conn.execute("SELECT * FROM medical_specialties ORDER BY name")]
        finally:
            conn.close()

    def add_clinic_specialty(self, clinic_id: int, specialty_id: int, is_primary: bool,
                             notes: Optional[str]) -> bool:
        """
        Link a specialty to a clinic. Marking it primary clears any other
        primary specialty of the clinic.

        Returns:
            False if the link already exists.
        """
        conn = self._db.get_connection()
        try:
            if is_primary:
                conn.execute("UPDATE clinic_specialties SET is_primary = 0 WHERE clinic_id = ?", (clinic_id,))
            conn.execute(
                "INSERT INTO clinic_specialties (clinic_id, specialty_id, is_primary, notes) VALUES (?, ?, ?, ?)",
                (clinic_id, specialty_id, int(is_primary), notes),
            )
            conn.commit()
            return True
        except sqlite3.IntegrityError:
            conn.rollback()
            return False
        finally:
            conn.close()

    def list_clinic_specialties(self, clinic_id: int) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            rows = conn.execute(
                """
                SELECT cs.id, cs.clinic_id, cs.specialty_id, s.name AS specialty_name,
                       cs.is_primary, cs.notes
                FROM clinic_specialties cs
                JOIN medical_specialties s ON s.id = cs.specialty_id
                WHERE cs.clinic_id = ?
                ORDER BY cs.is_primary DESC, s.name
                """,
                (clinic_id,),
            ).fetchall()
            return [row_to_dict(r, bool_fields=("is_primary",)) for r in rows]
        finally:
            conn.close()

    def remove_clinic_specialty(self, clinic_id: int, specialty_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                "DELETE FROM clinic_specialties WHERE clinic_id = ? AND specialty_id = ?",
                (clinic_id, specialty_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # ---------------------------------------------------- insurance providers

    def create_provider(self, name: str, payer_id: Optional[str] = None,
                        phone: Optional[str] = None) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                "INSERT INTO insurance_providers (name, payer_id, phone) VALUES (?, ?, ?)",
                (name, payer_id, phone),
            )
            conn.commit()
            row = conn.execute("SELECT * FROM insurance_providers WHERE id = ?", (cursor.lastrowid,)).fetchone()
            return row_to_dict(row)
        except sqlite3.IntegrityError:
            return None
        finally:
            conn.close()

    def get_provider(self, provider_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return row_to_dict(
                conn.execute("SELECT * FROM insurance_providers WHERE id = ?", (provider_id,)).fetchone()
            )
        finally:
            conn.close()

    def list_providers(self) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return [row_to_dict(r) for r in conn.execute("SELECT * FROM insurance_providers ORDER BY name")]
        finally:
            conn.close()

    def add_clinic_insurance(self, clinic_id: int, provider_id: int, notes: Optional[str]) -> bool:
        conn = self._db.get_connection()
        try:
            conn.execute(
                "INSERT INTO clinic_insurances (clinic_id, provider_id, notes) VALUES (?, ?, ?)",
                (clinic_id, provider_id, notes),
            )
            conn.commit()
            return True
        except sqlite3.IntegrityError:
            return False
        finally:
            conn.close()

    def list_clinic_insurances(self, clinic_id: int) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            rows = conn.execute(
                """
                SELECT ci.id, ci.clinic_id, ci.provider_id, p.name AS provider_name,
                       p.payer_id, p.phone, ci.notes
                FROM clinic_insurances ci
                JOIN insurance_providers p ON p.id = ci.provider_id
                WHERE ci.clinic_id = ?
                ORDER BY p.name
                """,
                (clinic_id,),
            ).fetchall()
            return [row_to_dict(r) for r in rows]
        finally:
            conn.close()

    def remove_clinic_insurance(self, clinic_id: int, provider_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                "DELETE FROM clinic_insurances WHERE clinic_id = ? AND provider_id = ?",
                (clinic_id, provider_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()
