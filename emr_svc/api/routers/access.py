"""
Access router - roles, modules, operations and the permission matrix.

Role permissions (/roles/{id}/permissions) and per-user access
(/users/{id}/access) expose the same six grant endpoints; both sets are
registered by _register_grant_routes.

All endpoints require the "User Management" module permission matching
the HTTP method.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.auth import require_module_access
from core.dependencies import get_access_service
from repositories import ROLE_GRANTS, USER_GRANTS
from repositories.access_repository import GrantTarget
from schemas import (
    GrantCount,
    GrantResult,
    ModuleOperationCreate,
    ModuleOperationIds,
    ModuleOperationResponse,
    ModuleWithOperations,
    NamedItemCreate,
    NamedItemResponse,
    PermissionCheckResponse,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
)
from services import AccessService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/access",
    tags=["Access Control"],
    dependencies=[Depends(require_module_access("User Management"))],
)


# =============================================================================
# ROLES
# =============================================================================

@router.get(
    "/roles",
    response_model=List[RoleResponse],
    summary="List roles",
    description="List roles. Filter with is_practice_role=true for clinic roles or false for system roles."
)
async def list_roles(
    is_practice_role: Optional[bool] = Query(None),
    access_service: AccessService = Depends(get_access_service),
):
    return access_service.list_roles(is_practice_role)


@router.post("/roles", response_model=RoleResponse, status_code=201, summary="Create a role")
async def create_role(role: RoleCreate, access_service: AccessService = Depends(get_access_service)):
    return access_service.create_role(role)


@router.get("/roles/{role_id}", response_model=RoleResponse, summary="Get a role")
async def get_role(role_id: int, access_service: AccessService = Depends(get_access_service)):
    return access_service.get_role(role_id)


@router.put("/roles/{role_id}", response_model=RoleResponse, summary="Update a role")
async def update_role(role_id: int, role: RoleUpdate, access_service: AccessService = Depends(get_access_service)):
    return access_service.update_role(role_id, role)


@router.delete("/roles/{role_id}", status_code=204, summary="Delete a role")
async def delete_role(role_id: int, access_service: AccessService = Depends(get_access_service)):
    access_service.delete_role(role_id)


# =============================================================================
# MODULES & OPERATIONS
# =============================================================================

@router.get("/modules", response_model=List[NamedItemResponse], summary="List modules")
async def list_modules(access_service: AccessService = Depends(get_access_service)):
    return access_service.list_modules()


@router.post("/modules", response_model=NamedItemResponse, status_code=201, summary="Create a module")
async def create_module(body: NamedItemCreate, access_service: AccessService = Depends(get_access_service)):
    return access_service.create_module(body.name, body.description)


@router.get("/operations", response_model=List[NamedItemResponse], summary="List operations")
async def list_operations(access_service: AccessService = Depends(get_access_service)):
    return access_service.list_operations()


@router.post("/operations", response_model=NamedItemResponse, status_code=201, summary="Create an operation")
async def create_operation(body: NamedItemCreate, access_service: AccessService = Depends(get_access_service)):
    return access_service.create_operation(body.name, body.description)


@router.get("/module-operations", response_model=List[ModuleOperationResponse], summary="List module-operations")
async def list_module_operations(access_service: AccessService = Depends(get_access_service)):
    return access_service.list_module_operations()


@router.post(
    "/module-operations",
    response_model=ModuleOperationResponse,
    status_code=201,
    summary="Link a module and an operation",
    description="Returns 409 if the pair exists and 400 if the module or operation does not."
)
async def create_module_operation(body: ModuleOperationCreate,
                                  access_service: AccessService = Depends(get_access_service)):
    return access_service.create_module_operation(body.module_id, body.operation_id)


@router.get(
    "/modules-operations",
    response_model=List[ModuleWithOperations],
    summary="Permission matrix",
    description="Modules grouped with their operations and the module_operation_id to toggle for each."
)
async def get_matrix(access_service: AccessService = Depends(get_access_service)):
    return access_service.get_matrix()


# =============================================================================
# GRANTS
# =============================================================================

def _register_grant_routes(path: str, target: GrantTarget, owner: str) -> None:
    """Add list/add/replace/remove/clear/count endpoints for one grant table."""

    @router.get(path, response_model=List[ModuleOperationResponse], summary=f"List {owner} grants",
                name=f"list_{owner}_grants")
    async def list_grants(owner_id: int, access_service: AccessService = Depends(get_access_service)):
        return access_service.list_grants(target, owner_id)

    @router.post(
        path, response_model=GrantResult, summary=f"Grant module-operations to a {owner}",
        description="Unknown ids are rejected with 400 listing them; ids already granted are ignored.",
        name=f"add_{owner}_grants",
    )
    async def add_grants(owner_id: int, body: ModuleOperationIds,
                         access_service: AccessService = Depends(get_access_service)):
        return access_service.add_grants(target, owner_id, body.module_operation_ids)

    @router.put(path, response_model=GrantResult, summary=f"Replace all grants of a {owner}",
                name=f"replace_{owner}_grants")
    async def replace_grants(owner_id: int, body: ModuleOperationIds,
                             access_service: AccessService = Depends(get_access_service)):
        return access_service.replace_grants(target, owner_id, body.module_operation_ids)

    @router.delete(path, response_model=GrantResult, summary=f"Revoke listed grants of a {owner}",
                   name=f"remove_{owner}_grants")
    async def remove_grants(owner_id: int, body: ModuleOperationIds,
                            access_service: AccessService = Depends(get_access_service)):
        return access_service.remove_grants(target, owner_id, body.module_operation_ids)

    @router.delete(f"{path}/all", response_model=GrantResult, summary=f"Revoke every grant of a {owner}",
                   name=f"clear_{owner}_grants")
    async def clear_grants(owner_id: int, access_service: AccessService = Depends(get_access_service)):
        return access_service.clear_grants(target, owner_id)

    @router.get(f"{path}/count", response_model=GrantCount, summary=f"Count grants of a {owner}",
                name=f"count_{owner}_grants")
    async def count_grants(owner_id: int, access_service: AccessService = Depends(get_access_service)):
        return access_service.count_grants(target, owner_id)


_register_grant_routes("/roles/{owner_id}/permissions", ROLE_GRANTS, "role")
_register_grant_routes("/users/{owner_id}/access", USER_GRANTS, "user")


# =============================================================================
# PERMISSION CHECK
# =============================================================================

@router.get(
    "/users/{user_id}/check",
    response_model=PermissionCheckResponse,
    summary="Check a permission",
    description="Whether the user may perform the operation on the module, through a super admin "
                "account, their role or a direct grant."
)
async def check_permission(
    user_id: int,
    module: str = Query(..., example="Patient Management"),
    operation: str = Query(..., example="Read"),
    access_service: AccessService = Depends(get_access_service),
):
    return access_service.check_permission(user_id, module, operation)
