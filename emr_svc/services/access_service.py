"""
Service layer for the access-control catalog and permission matrix.

Roles and users both hold grants on module-operations. The role and user
grant endpoints behave identically, so every grant method takes a
``GrantTarget`` (ROLE_GRANTS or USER_GRANTS) and an owner id.

Architecture:
    API Layer (routers/access) → AccessService → AccessRepository → Database
"""
import logging
from collections import OrderedDict
from typing import Iterable, List, Optional

from core.exceptions import DuplicateResourceError, MissingModuleOperationsError, NotFoundError, ValidationFailedError
from core.security import is_super_admin
from repositories import ROLE_GRANTS, AccessRepository, UserRepository
from repositories.access_repository import GrantTarget
from schemas import (
    GrantCount,
    GrantResult,
    ModuleOperationResponse,
    ModuleWithOperations,
    NamedItemResponse,
    PermissionCheckResponse,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
)

logger = logging.getLogger(__name__)


class AccessService:
    """
    Business logic for roles, modules, operations and grants.

    Grant changes validate that the owner exists (404) and that every
    module-operation id exists (400 listing the missing ids) before
    touching the grant tables.
    """

    def __init__(self, access_repository: AccessRepository, user_repository: UserRepository):
        self._repo = access_repository
        self._users = user_repository

    # ------------------------------------------------------------------ roles

    def list_roles(self, is_practice_role: Optional[bool] = None) -> List[RoleResponse]:
        return [RoleResponse(**r) for r in self._repo.list_roles(is_practice_role)]

    def get_role(self, role_id: int) -> RoleResponse:
        role = self._repo.get_role(role_id)
        if role is None:
            raise NotFoundError("Role", role_id)
        return RoleResponse(**role)

    def create_role(self, data: RoleCreate) -> RoleResponse:
        role = self._repo.create_role(data.name, data.description, data.is_practice_role)
        if role is None:
            raise DuplicateResourceError("Role", "name", data.name)
        logger.info(f"Role created: {role['name']} (id={role['id']})")
        return RoleResponse(**role)

    def update_role(self, role_id: int, data: RoleUpdate) -> RoleResponse:
        existing = self._repo.get_role(role_id)
        if existing is None:
            raise NotFoundError("Role", role_id)
        fields = data.model_dump(exclude_unset=True)
        if not fields:
            return RoleResponse(**existing)
        role = self._repo.update_role(role_id, fields)
        if role is None:
            raise DuplicateResourceError("Role", "name", fields.get("name"))
        return RoleResponse(**role)

    def delete_role(self, role_id: int) -> None:
        if not self._repo.delete_role(role_id):
            raise NotFoundError("Role", role_id)
        logger.info(f"Role deleted: {role_id}")

    # ------------------------------------------------- modules & operations

    def list_modules(self) -> List[NamedItemResponse]:
        return [NamedItemResponse(**m) for m in self._repo.list_modules()]

    def create_module(self, name: str, description: Optional[str] = None) -> NamedItemResponse:
        module = self._repo.create_module(name, description)
        if module is None:
            raise DuplicateResourceError("Module", "name", name)
        return NamedItemResponse(**module)

    def list_operations(self) -> List[NamedItemResponse]:
        return [NamedItemResponse(**o) for o in self._repo.list_operations()]

    def create_operation(self, name: str, description: Optional[str] = None) -> NamedItemResponse:
        operation = self._repo.create_operation(name, description)
        if operation is None:
            raise DuplicateResourceError("Operation", "name", name)
        return NamedItemResponse(**operation)

    def list_module_operations(self) -> List[ModuleOperationResponse]:
        return [ModuleOperationResponse(**mo) for mo in self._repo.list_module_operations()]

    def create_module_operation(self, module_id: int, operation_id: int) -> ModuleOperationResponse:
        """
        Raises:
            DuplicateResourceError: If the pair already exists.
            ValidationFailedError: If the module or operation does not exist.
        """
        created = self._repo.create_module_operation(module_id, operation_id)
        if created is not None:
            return ModuleOperationResponse(**created)
        if self._repo.get_module_operation(module_id, operation_id) is not None:
            raise DuplicateResourceError("Module operation")
        raise ValidationFailedError(
            "Module or operation does not exist", module_id=module_id, operation_id=operation_id
        )

    def get_matrix(self) -> List[ModuleWithOperations]:
        """Modules grouped with their operations and module_operation ids."""
        grouped: "OrderedDict[int, dict]" = OrderedDict()
        for row in self._repo.list_module_operations():
            entry = grouped.setdefault(
                row["module_id"],
                {"module_id": row["module_id"], "module_name": row["module_name"], "operations": []},
            )
            entry["operations"].append({
                "module_operation_id": row["module_operation_id"],
                "operation_id": row["operation_id"],
                "operation_name": row["operation_name"],
            })
        return [ModuleWithOperations(**m) for m in grouped.values()]

    # ----------------------------------------------------------------- grants

    def _require_owner(self, target: GrantTarget, owner_id: int) -> None:
        if target is ROLE_GRANTS:
            if self._repo.get_role(owner_id) is None:
                raise NotFoundError("Role", owner_id)
        elif self._users.get_by_id(owner_id) is None:
            raise NotFoundError("User", owner_id)

    def _require_module_operations(self, ids: Iterable[int]) -> None:
        missing = self._repo.find_missing_module_operations(ids)
        if missing:
            raise MissingModuleOperationsError(missing)

    def list_grants(self, target: GrantTarget, owner_id: int) -> List[ModuleOperationResponse]:
        self._require_owner(target, owner_id)
        return [ModuleOperationResponse(**g) for g in self._repo.list_grants(target, owner_id)]

    def add_grants(self, target: GrantTarget, owner_id: int, ids: List[int]) -> GrantResult:
        """Grant module-operations; ones already granted are ignored."""
        self._require_owner(target, owner_id)
        self._require_module_operations(ids)
        added = self._repo.add_grants(target, owner_id, ids)
        logger.info(f"Added {added} grants to {target.owner_column}={owner_id}")
        return GrantResult(owner_id=owner_id, affected=added, total=self._repo.count_grants(target, owner_id))

    def replace_grants(self, target: GrantTarget, owner_id: int, ids: List[int]) -> GrantResult:
        """Replace the whole grant set in one transaction."""
        self._require_owner(target, owner_id)
        self._require_module_operations(ids)
        total = self._repo.replace_grants(target, owner_id, ids)
        logger.info(f"Replaced grants of {target.owner_column}={owner_id} with {total} entries")
        return GrantResult(owner_id=owner_id, affected=total, total=total)

    def remove_grants(self, target: GrantTarget, owner_id: int, ids: List[int]) -> GrantResult:
        self._require_owner(target, owner_id)
        removed = self._repo.remove_grants(target, owner_id, ids)
        return GrantResult(owner_id=owner_id, affected=removed, total=self._repo.count_grants(target, owner_id))

    def clear_grants(self, target: GrantTarget, owner_id: int) -> GrantResult:
        self._require_owner(target, owner_id)
        removed = self._repo.clear_grants(target, owner_id)
        return GrantResult(owner_id=owner_id, affected=removed, total=0)

    def count_grants(self, target: GrantTarget, owner_id: int) -> GrantCount:
        self._require_owner(target, owner_id)
        return GrantCount(owner_id=owner_id, count=self._repo.count_grants(target, owner_id))

    # ------------------------------------------------------------------ check

    def check_permission(self, user_id: int, module: str, operation: str) -> PermissionCheckResponse:
        """
        Whether the user may perform ``operation`` on ``module``.

        Super admins are always allowed; otherwise a role or user grant must exist.
        """
        user = self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        allowed = (
            is_super_admin(user["username"], user["user_type"])
            or self._repo.has_permission(user_id, module, operation)
        )
        return PermissionCheckResponse(user_id=user_id, module=module, operation=operation, allowed=allowed)


