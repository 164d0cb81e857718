"""
Pydantic schemas for roles, modules, operations and permission grants.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from schemas.common import PartialUpdate


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Unique role name", example="Nurse")
    description: Optional[str] = Field(None, max_length=500)
    is_practice_role: bool = Field(True, description="True for clinic roles, False for system roles")


class RoleUpdate(PartialUpdate):
    not_null = ("name", "is_practice_role")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    is_practice_role: Optional[bool] = None


class RoleResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    is_practice_role: bool
    created_at: str


class NamedItemCreate(BaseModel):
    """Body for creating a module or an operation."""
    name: str = Field(..., min_length=1, max_length=100, example="Patient Management")
    description: Optional[str] = Field(None, max_length=500)


class NamedItemResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None


class ModuleOperationCreate(BaseModel):
    module_id: int = Field(..., gt=0)
    operation_id: int = Field(..., gt=0)


class ModuleOperationResponse(BaseModel):
    module_operation_id: int
    module_id: int
    module_name: str
    operation_id: int
    operation_name: str


class OperationEntry(BaseModel):
    module_operation_id: int
    operation_id: int
    operation_name: str


class ModuleWithOperations(BaseModel):
    """One row of the access matrix: a module and every operation it exposes."""
    module_id: int
    module_name: str
    operations: List[OperationEntry]


class ModuleOperationIds(BaseModel):
    """Set of module-operation ids to grant, replace or revoke."""
    module_operation_ids: List[int] = Field(..., description="Module-operation ids", example=[1, 2, 3])


class GrantResult(BaseModel):
    owner_id: int
    affected: int = Field(..., description="Number of grants added, replaced or removed")
    total: int = Field(..., description="Grants the owner holds after the change")


class GrantCount(BaseModel):
    owner_id: int
    count: int


class PermissionCheckResponse(BaseModel):
    user_id: int
    module: str
    operation: str
    allowed: bool
