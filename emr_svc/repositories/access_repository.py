"""
Repository for roles, modules, operations and the permission matrix.

A module-operation is one (module, operation) pair, e.g.
("Patient Management", "Read"). Grants attach module-operations either to a
role (``role_permissions``) or directly to a user (``user_access``). The two
grant tables share the same shape, so the grant methods take a
``GrantTarget`` describing which table and owner column to use.
"""
import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set

from core.datetime_utils import now_iso
from repositories.base import Database, build_update, row_to_dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GrantTarget:
    table: str
    owner_column: str


ROLE_GRANTS = GrantTarget(table="role_permissions", owner_column="role_id")
USER_GRANTS = GrantTarget(table="user_access", owner_column="user_id")

_MODULE_OPERATION_SELECT = """
    SELECT mo.id AS module_operation_id, m.id AS module_id, m.name AS module_name,
           o.id AS operation_id, o.name AS operation_name
    FROM module_operations mo
    JOIN modules m ON m.id = mo.module_id
    JOIN operations o ON o.id = mo.operation_id
"""


class AccessRepository:
    """Data access for the access-control catalog and grants."""

    def __init__(self, db: Database):
        self._db = db

    # ------------------------------------------------------------------ roles

    def create_role(self, name: str, description: Optional[str], is_practice_role: bool) -> Optional[Dict[str, Any]]:
        """Create a role; returns None when the name is taken."""
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                "INSERT INTO roles (name, description, is_practice_role, created_at) VALUES (?, ?, ?, ?)",
                (name, description, int(is_practice_role), now_iso()),
            )
            conn.commit()
            role_id = cursor.lastrowid
        except sqlite3.IntegrityError:
            return None
        finally:
            conn.close()
        return self.get_role(role_id)

    def get_role(self, role_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            row = conn.execute("SELECT * FROM roles WHERE id = ?", (role_id,)).fetchone()
            return row_to_dict(row, bool_fields=("is_practice_role",))
        finally:
            conn.close()

    def get_role_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            row = conn.execute("SELECT * FROM roles WHERE name = ?", (name,)).fetchone()
            return row_to_dict(row, bool_fields=("is_practice_role",))
        finally:
            conn.close()

    def list_roles(self, is_practice_role: Optional[bool] = None) -> List[Dict[str, Any]]:
        query = "SELECT * FROM roles"
        params: List[Any] = []
        if is_practice_role is not None:
            query += " WHERE is_practice_role = ?"
            params.append(int(is_practice_role))
        query += " ORDER BY name"
        conn = self._db.get_connection()
        try:
            return [
                row_to_dict(r, bool_fields=("is_practice_role",))
                for r in conn.execute(query, params).fetchall()
            ]
        finally:
            conn.close()

    def update_role(self, role_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        set_clause, params = build_update(fields, ("name", "description", "is_practice_role"))
        if set_clause:
            conn = self._db.get_connection()
            try:
                conn.execute(f"UPDATE roles SET {set_clause} WHERE id = ?", (*params, role_id))
                conn.commit()
            except sqlite3.IntegrityError:
                return None
            finally:
                conn.close()
        return self.get_role(role_id)

    def delete_role(self, role_id: int) -> bool:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute("DELETE FROM roles WHERE id = ?", (role_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # ------------------------------------------------- modules & operations

    def _create_named(self, table: str, name: str, description: Optional[str]) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                f"INSERT INTO {table} (name, description) VALUES (?, ?)", (name, description)
            )
            conn.commit()
            row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (cursor.lastrowid,)).fetchone()
            return row_to_dict(row)
        except sqlite3.IntegrityError:
            return None
        finally:
            conn.close()

    def _list_named(self, table: str) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return [row_to_dict(r) for r in conn.execute(f"SELECT * FROM {table} ORDER BY id").fetchall()]
        finally:
            conn.close()

    def _get_named(self, table: str, name: str) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            return row_to_dict(conn.execute(f"SELECT * FROM {table} WHERE name = ?", (name,)).fetchone())
        finally:
            conn.close()

    def create_module(self, name: str, description: Optional[str] = None) -> Optional[Dict[str, Any]]:
        return self._create_named("modules", name, description)

    def list_modules(self) -> List[Dict[str, Any]]:
        return self._list_named("modules")

    def get_module_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        return self._get_named("modules", name)

    def create_operation(self, name: str, description: Optional[str] = None) -> Optional[Dict[str, Any]]:
        return self._create_named("operations", name, description)

    def list_operations(self) -> List[Dict[str, Any]]:
        return self._list_named("operations")

    def get_operation_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        return self._get_named("operations", name)

    def create_module_operation(self, module_id: int, operation_id: int) -> Optional[Dict[str, Any]]:
        """Link a module and an operation; returns None if the pair exists or ids are unknown."""
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                "INSERT INTO module_operations (module_id, operation_id) VALUES (?, ?)",
                (module_id, operation_id),
            )
            conn.commit()
            row = conn.execute(
                _MODULE_OPERATION_SELECT + " WHERE mo.id = ?", (cursor.lastrowid,)
            ).fetchone()
            return row_to_dict(row)
        except sqlite3.IntegrityError:
            return None
        finally:
            conn.close()

    def get_module_operation(self, module_id: int, operation_id: int) -> Optional[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            row = conn.execute(
                _MODULE_OPERATION_SELECT + " WHERE mo.module_id = ? AND mo.operation_id = ?",
                (module_id, operation_id),
            ).fetchone()
            return row_to_dict(row)
        finally:
            conn.close()

    def list_module_operations(self) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            rows = conn.execute(_MODULE_OPERATION_SELECT + " ORDER BY m.id, o.id").fetchall()
            return [row_to_dict(r) for r in rows]
        finally:
            conn.close()

    def find_missing_module_operations(self, ids: Iterable[int]) -> Set[int]:
        """Return the subset of ``ids`` with no module_operations row."""
        wanted = set(ids)
        if not wanted:
            return set()
        placeholders = ", ".join("?" for _ in wanted)
        conn = self._db.get_connection()
        try:
            rows = conn.execute(
                f"SELECT id FROM module_operations WHERE id IN ({placeholders})", tuple(wanted)
            ).fetchall()
        finally:
            conn.close()
        return wanted - {r["id"] for r in rows}

    # ----------------------------------------------------------------- grants

    def list_grants(self, target: GrantTarget, owner_id: int) -> List[Dict[str, Any]]:
        conn = self._db.get_connection()
        try:
            rows = conn.execute(
                _MODULE_OPERATION_SELECT
                + f" JOIN {target.table} g ON g.module_operation_id = mo.id"
                + f" WHERE g.{target.owner_column} = ? ORDER BY m.id, o.id",
                (owner_id,),
            ).fetchall()
            return [row_to_dict(r) for r in rows]
        finally:
            conn.close()

    def add_grants(self, target: GrantTarget, owner_id: int, module_operation_ids: Iterable[int]) -> int:
        """Insert grants, ignoring ones that already exist. Returns the number added."""
        conn = self._db.get_connection()
        try:
            added = 0
            for mo_id in set(module_operation_ids):
                cursor = conn.execute(
                    f"INSERT OR IGNORE INTO {target.table} ({target.owner_column}, module_operation_id) "
                    "VALUES (?, ?)",
                    (owner_id, mo_id),
                )
                added += cursor.rowcount
            conn.commit()
            return added
        finally:
            conn.close()

    def replace_grants(self, target: GrantTarget, owner_id: int, module_operation_ids: Iterable[int]) -> int:
        """Replace the owner's whole grant set in one transaction."""
        conn = self._db.get_connection()
        try:
            conn.execute(f"DELETE FROM {target.table} WHERE {target.owner_column} = ?", (owner_id,))
            ids = set(module_operation_ids)
            conn.executemany(
                f"INSERT INTO {target.table} ({target.owner_column}, module_operation_id) VALUES (?, ?)",
                [(owner_id, mo_id) for mo_id in ids],
            )
            conn.commit()
            return len(ids)
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()

    def remove_grants(self, target: GrantTarget, owner_id: int, module_operation_ids: Iterable[int]) -> int:
        ids = list(set(module_operation_ids))
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                f"DELETE FROM {target.table} WHERE {target.owner_column} = ? "
                f"AND module_operation_id IN ({placeholders})",
                (owner_id, *ids),
            )
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    def clear_grants(self, target: GrantTarget, owner_id: int) -> int:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                f"DELETE FROM {target.table} WHERE {target.owner_column} = ?", (owner_id,)
            )
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    def count_grants(self, target: GrantTarget, owner_id: int) -> int:
        conn = self._db.get_connection()
        try:
            row = conn.execute(
                f"SELECT COUNT(*) AS n FROM {target.table} WHERE {target.owner_column} = ?",
                (owner_id,),
            ).fetchone()
            return row["n"]
        finally:
            conn.close()

    def has_permission(self, user_id: int, module_name: str, operation_name: str) -> bool:
        """
        True if the user's role or a direct user grant covers the module-operation.
        """
        conn = self._db.get_connection()
        try:
            row = conn.execute(
                """
                SELECT 1
                FROM module_operations mo
                JOIN modules m ON m.id = mo.module_id
                JOIN operations o ON o.id = mo.operation_id
                WHERE m.name = ? AND o.name = ?
                  AND (
                    EXISTS (
                        SELECT 1 FROM role_permissions rp
                        JOIN users u ON u.role_id = rp.role_id
                        WHERE u.id = ? AND rp.module_operation_id = mo.id
                    )
                    OR EXISTS (
                        SELECT 1 FROM user_access ua
                        WHERE ua.user_id = ? AND ua.module_operation_id = mo.id
                    )
                  )
                LIMIT 1
                """,
                (module_name, operation_name, user_id, user_id),
            ).fetchone()
            return row is not None
        finally:
            conn.close()

    def effective_permissions(self, user_id: int) -> List[Dict[str, Any]]:
        """Union of role and direct grants for a user."""
        conn = self._db.get_connection()
        try:
            rows = conn.execute(
                _MODULE_OPERATION_SELECT
                + """
                WHERE mo.id IN (
                    SELECT rp.module_operation_id FROM role_permissions rp
                    JOIN users u ON u.role_id = rp.role_id WHERE u.id = ?
                    UNION
                    SELECT ua.module_operation_id FROM user_access ua WHERE ua.user_id = ?
                )
                ORDER BY m.id, o.id
                """,
                (user_id, user_id),
            ).fetchall()
            return [row_to_dict(r) for r in rows]
        finally:
            conn.close()
