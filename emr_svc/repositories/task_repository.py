"""
Repository for tasks, task comments, task history and task attachments.

History rows are written in the same transaction as the change they
describe, so the audit trail never disagrees with the task row.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.datetime_utils import now_iso
from repositories.base import Database, build_update, row_to_dict

logger = logging.getLogger(__name__)

TASK_STATUSES = ("open", "in_progress", "completed", "closed")
TASK_PRIORITIES = ("low", "medium", "high", "urgent")
EDITABLE_COLUMNS = ("title", "description", "priority", "assigned_to", "start_date", "due_date")

# (field_name, old_value, new_value)
HistoryChange = Tuple[Optional[str], Optional[str], Optional[str]]

_SELECT = """
    SELECT t.*,
           TRIM(COALESCE(cu.first_name, '') || ' ' || COALESCE(cu.last_name, '')) AS created_by_name,
           TRIM(COALESCE(au.first_name, '') || ' ' || COALESCE(au.last_name, '')) AS assigned_to_name,
           (SELECT COUNT(*) FROM task_comments tc WHERE tc.task_id = t.id) AS comment_count
    FROM tasks t
    JOIN users cu ON cu.id = t.created_by
    LEFT JOIN users au ON au.id = t.assigned_to
"""


def _stringify(value: Any) -> Optional[str]:
    return None if value is None else str(value)


class TaskRepository:
    """Data access for the task board."""

    def __init__(self, db: Database):
        self._db = db

    # ------------------------------------------------------------------ tasks

    def create(self, data: Dict[str, Any], created_by: int) -> Dict[str, Any]:
        """Insert a task and its 'created' history entry."""
        now = now_iso()
        conn = self._db.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO tasks (title, description, status, priority, clinic_id, created_by,
                                   assigned_to, start_date, due_date, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["title"], data.get("description"), data.get("status") or "open",
                    data.get("priority") or "medium", data.get("clinic_id"), created_by,
                    data.get("assigned_to"), data.get("start_date"), data.get("due_date"), now, now,
                ),
            )
            task_id = cursor.lastrowid
            self._insert_history(cursor, task_id, "created", [(None, None, data["title"])], created_by, now)
            conn.commit()
        finally:
            conn.close()
        return self.get(task_id)

    def get(self, task_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return row_to_dict(conn.execute(_SELECT + " WHERE t.id = ?", (task_id,)).fetchone())
        finally:
            conn.close()

    def list(
        self,
        clinic_id: Optional[int] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        query = _SELECT + " WHERE 1 = 1"
        params: List[Any] = []
        for column, value in (("t.clinic_id", clinic_id), ("t.status", status),
                              ("t.priority", priority), ("t.assigned_to", assigned_to)):
            if value is not None:
                query += f" AND {column} = ?"
                params.append(value)
        query += " ORDER BY t.created_at DESC, t.id DESC"
        conn = self._db.get_connection()
        try:
            return [row_to_dict(r) for r in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    def update(self, task_id: int, fields: Dict[str, Any], changes: Sequence[HistoryChange],
               changed_by: int) -> Optional[Dict[str, Any]]:
        """Apply edits and write one 'edited' history row per change."""
        set_clause, params = build_update(fields, EDITABLE_COLUMNS)
        now = now_iso()
        conn = self._db.get_connection()
        try:
            cursor = conn.cursor()
            if set_clause:
                cursor.execute(
                    f"UPDATE tasks SET {set_clause}, updated_at = ? WHERE id = ?",
                    (*params, now, task_id),
                )
            self._insert_history(cursor, task_id, "edited", changes, changed_by, now)
            conn.commit()
        finally:
            conn.close()
        return self.get(task_id)

    def update_status(self, task_id: int, old_status: str, new_status: str,
                      changed_by: int) -> Optional[Dict[str, Any]]:
        """Set the status; history is written only when the value changes."""
        now = now_iso()
        conn = self._db.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE tasks SET status = ?, updated_at = ? WHERE id = ?", (new_status, now, task_id)
            )
            if old_status != new_status:
                self._insert_history(
                    cursor, task_id, "status_changed", [("status", old_status, new_status)], changed_by, now
                )
            conn.commit()
        finally:
            conn.close()
        return self.get(task_id)

    def delete(self, task_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def stats(self, clinic_id: Optional[int] = None) -> Dict[str, Any]:
        where = " WHERE clinic_id = ?" if clinic_id is not None else ""
        params = (clinic_id,) if clinic_id is not None else ()
        conn = self._db.get_connection()
        try:
            by_status = conn.execute(
                f"SELECT status AS k, COUNT(*) AS n FROM tasks{where} GROUP BY status", params
            ).fetchall()
            by_priority = conn.execute(
                f"SELECT priority AS k, COUNT(*) AS n FROM tasks{where} GROUP BY priority", params
            ).fetchall()
        finally:
            conn.close()
        status_counts = {s: 0 for s in TASK_STATUSES}
        status_counts.update({r["k"]: r["n"] for r in by_status})
        priority_counts = {p: 0 for p in TASK_PRIORITIES}
        priority_counts.update({r["k"]: r["n"] for r in by_priority})
        return {
            "total": sum(status_counts.values()),
            "by_status": status_counts,
            "by_priority": priority_counts,
        }

    # ---------------------------------------------------------------- history

    @staticmethod
    def _insert_history(cursor, task_id: int, action: str, changes: Sequence[HistoryChange],
                        changed_by: int, when: str) -> None:
        cursor.executemany(
            """
            INSERT INTO task_history (task_id, action, field_name, old_value, new_value, changed_by, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (task_id, action, field, _stringify(old), _stringify(new), changed_by, when)
                for field, old, new in changes
            ],
        )

    def list_history(self, task_id: int) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            rows = conn.execute(
                """
                SELECT h.*, TRIM(COALESCE(u.first_name, '') || ' ' || COALESCE(u.last_name, '')) AS changed_by_name
                FROM task_history h
                LEFT JOIN users u ON u.id = h.changed_by
                WHERE h.task_id = ?
                ORDER BY h.id DESC
                """,
                (task_id,),
            ).fetchall()
            return [row_to_dict(r) for r in rows]
        finally:
            conn.close()

    # --------------------------------------------------------------- comments

    _COMMENT_SELECT = """
        SELECT c.*, u.first_name, u.last_name, u.email
        FROM task_comments c JOIN users u ON u.id = c.user_id
    """

    def add_comment(self, task_id: int, user_id: int, comment: str) -> Dict[str, Any]:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                "INSERT INTO task_comments (task_id, user_id, comment, created_at) VALUES (?, ?, ?, ?)",
                (task_id, user_id, comment, now_iso()),
            )
            conn.commit()
            comment_id = cursor.lastrowid
        finally:
            conn.close()
        return self.get_comment(comment_id)

    def get_comment(self, comment_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return row_to_dict(conn.execute(self._COMMENT_SELECT + " WHERE c.id = ?", (comment_id,)).fetchone())
        finally:
            conn.close()

    def list_comments(self, task_id: int) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            rows = conn.execute(self._COMMENT_SELECT + " WHERE c.task_id = ? ORDER BY c.id", (task_id,)).fetchall()
            return [row_to_dict(r) for r in rows]
        finally:
            conn.close()

    def delete_comment(self, comment_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM task_comments WHERE id = ?", (comment_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # ------------------------------------------------------------ attachments

    def add_attachments(self, task_id: int, files: Sequence[Dict[str, Any]], uploaded_by: int) -> List[Dict[str, Any]]:
        now = now_iso()
        conn = self._db.get_connection()
        try:
            ids = []
            for f in files:
                cursor = conn.execute(
                    """
                    INSERT INTO task_attachments (task_id, original_name, stored_name, content_type, size,
                                                  uploaded_by, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (task_id, f["original_name"], f["stored_name"], f["content_type"], f["size"], uploaded_by, now),
                )
                ids.append(cursor.lastrowid)
            conn.commit()
        finally:
            conn.close()
        return [self.get_attachment(i) for i in ids]

    def get_attachment(self, attachment_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return row_to_dict(
                conn.execute("SELECT * FROM task_attachments WHERE id = ?", (attachment_id,)).fetchone()
            )
        finally:
            conn.close()

    def list_attachments(self, task_id: int) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM task_attachments WHERE task_id = ? ORDER BY id", (task_id,)
            ).fetchall()
            return [row_to_dict(r) for r in rows]
        finally:
            conn.close()

    def delete_attachment(self, attachment_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM task_attachments WHERE id = ?", (attachment_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()
