"""
Repository for form templates and their submissions.
"""
import logging
from typing import Any, Dict, List, Optional

from core.datetime_utils import now_iso
from repositories.base import Database, build_update, row_to_dict, to_json

logger = logging.getLogger(__name__)


class FormRepository:
    """Data access for form_templates and form_submissions."""

    def __init__(self, db: Database):
        self._db = db

    # -------------------------------------------------------------- templates

    def create_template(self, data: Dict[str, Any], created_by: Optional[int]) -> Dict[str, Any]:
        now = now_iso()
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO form_templates (title, description, fields, clinic_id, created_by, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (data["title"], data.get("description"), to_json(data["fields"]), data.get("clinic_id"),
                 created_by, now, now),
            )
            conn.commit()
            template_id = cursor.lastrowid
        finally:
            conn.close()
        return self.get_template(template_id)

    def get_template(self, template_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            row = conn.execute("SELECT * FROM form_templates WHERE id = ?", (template_id,)).fetchone()
            return row_to_dict(row, json_fields=("fields",))
        finally:
            conn.close()

    def list_templates(self, clinic_id: Optional[int] = None) -> List[Dict[str, Any]]:
        query = "SELECT * FROM form_templates"
        params: List[Any] = []
        if clinic_id is not None:
            query += " WHERE clinic_id = ? OR clinic_id IS NULL"
            params.append(clinic_id)
        query += " ORDER BY title"
        conn = self._db.get_connection()
        try:
            return [row_to_dict(r, json_fields=("fields",)) for r in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    def update_template(self, template_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        set_clause, params = build_update(fields, ("title", "description", "fields", "clinic_id"),
                                          json_columns=("fields",))
        if set_clause:
            conn = self._db.get_connection()
            try:
                conn.execute(
                    f"UPDATE form_templates SET {set_clause}, updated_at = ? WHERE id = ?",
                    (*params, now_iso(), template_id),
                )
                conn.commit()
            finally:
                conn.close()
        return self.get_template(template_id)

    def delete_template(self, template_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM form_templates WHERE id = ?", (template_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # ------------------------------------------------------------ submissions

    def create_submission(self, template_id: int, values: Dict[str, Any], user_id: Optional[int]) -> Dict[str, Any]:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                'INSERT INTO form_submissions (form_template_id, "values", user_id, submitted_at) VALUES (?, ?, ?, ?)',
                (template_id, to_json(values), user_id, now_iso()),
            )
            conn.commit()
            submission_id = cursor.lastrowid
        finally:
            conn.close()
        return self.get_submission(submission_id)

    def get_submission(self, submission_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            row = conn.execute("SELECT * FROM form_submissions WHERE id = ?", (submission_id,)).fetchone()
            return row_to_dict(row, json_fields=("values",))
        finally:
            conn.close()

    def list_submissions(self, template_id: int) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM form_submissions WHERE form_template_id = ? ORDER BY submitted_at DESC, id DESC",
                (template_id,),
            ).fetchall()
            return [row_to_dict(r, json_fields=("values",)) for r in rows]
        finally:
            conn.close()

    def delete_submission(self, submission_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM form_submissions WHERE id = ?", (submission_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()
