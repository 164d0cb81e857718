"""
Users router - user account management endpoints.

All endpoints require the "User Management" module permission matching the
HTTP method (GET → Read, POST → Create, PUT/PATCH → Update, DELETE → Delete).

Architecture:
    HTTP Request → Router (this file) → UserService → UserRepository → Database
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.auth import require_module_access
from core.dependencies import get_user_service
from schemas import UserCreate, UserResponse, UserStatusUpdate, UserUpdate
from schemas.common import UserStatus
from services import UserService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/users",
    tags=["Users"],
    dependencies=[Depends(require_module_access("User Management"))],
)

DEFAULT_QUERY_LIMIT = 100
MAX_QUERY_LIMIT = 500


@router.get(
    "",
    response_model=List[UserResponse],
    summary="List users",
    description=f"List users, optionally filtered by clinic, type or status. Default limit is {DEFAULT_QUERY_LIMIT}."
)
async def list_users(
    clinic_id: Optional[int] = Query(None, description="Only users of this clinic"),
    user_type: Optional[str] = Query(None, description="Only users of this type", example="Doctor"),
    status: Optional[UserStatus] = Query(None),
    limit: int = Query(DEFAULT_QUERY_LIMIT, ge=1, le=MAX_QUERY_LIMIT),
    offset: int = Query(0, ge=0),
    user_service: UserService = Depends(get_user_service),
):
    return user_service.list_users(clinic_id=clinic_id, user_type=user_type, status=status,
                                   limit=limit, offset=offset)


@router.post(
    "",
    response_model=UserResponse,
    status_code=201,
    summary="Create a user",
    description="Create a user account. The username defaults to the email. Returns 409 if either is taken."
)
async def create_user(user: UserCreate, user_service: UserService = Depends(get_user_service)):
    return user_service.create_user(user)


@router.get("/{user_id}", response_model=UserResponse, summary="Get a user")
async def get_user(user_id: int, user_service: UserService = Depends(get_user_service)):
    return user_service.get_user(user_id)


@router.put("/{user_id}", response_model=UserResponse, summary="Update a user")
async def update_user(user_id: int, user: UserUpdate, user_service: UserService = Depends(get_user_service)):
    return user_service.update_user(user_id, user)


@router.patch(
    "/{user_id}/status",
    response_model=UserResponse,
    summary="Activate or deactivate a user",
    description="Inactive users cannot log in and their existing tokens stop working."
)
async def set_user_status(user_id: int, body: UserStatusUpdate,
                          user_service: UserService = Depends(get_user_service)):
    return user_service.set_status(user_id, body.status)


@router.delete("/{user_id}", status_code=204, summary="Delete a user")
async def delete_user(user_id: int, user_service: UserService = Depends(get_user_service)):
    user_service.delete_user(user_id)
