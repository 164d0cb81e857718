"""
Staff router - clinic staff members and their login accounts.

Creating a staff member also creates the user they log in with; the
user is active only while the staff status is active.

Requires the "User Management" module permission matching the HTTP method.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.auth import require_module_access
from core.dependencies import get_staff_service
from schemas import StaffCreate, StaffResponse, StaffStatsResponse, StaffUpdate
from schemas.common import Department, StaffStatus
from services import StaffService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/staff",
    tags=["Staff"],
    dependencies=[Depends(require_module_access("User Management"))],
)


@router.get("", response_model=List[StaffResponse], summary="List staff members")
async def list_staff(
    clinic_id: Optional[int] = Query(None),
    department: Optional[Department] = Query(None),
    status: Optional[StaffStatus] = Query(None),
    location_id: Optional[int] = Query(None),
    staff_service: StaffService = Depends(get_staff_service),
):
    return staff_service.list_staff(clinic_id=clinic_id, department=department, status=status,
                                    location_id=location_id)


@router.post(
    "",
    response_model=StaffResponse,
    status_code=201,
    summary="Create a staff member",
    description="Creates the staff row and a Staff user account. Returns 409 if the employee_id, "
                "email or username is taken."
)
async def create_staff(staff: StaffCreate, staff_service: StaffService = Depends(get_staff_service)):
    return staff_service.create_staff(staff)


@router.get(
    "/stats",
    response_model=StaffStatsResponse,
    summary="Staff statistics",
    description="Totals by status and department, optionally for one clinic."
)
async def get_stats(
    clinic_id: Optional[int] = Query(None),
    staff_service: StaffService = Depends(get_staff_service),
):
    return staff_service.get_stats(clinic_id)


@router.get(
    "/supervisors",
    response_model=List[StaffResponse],
    summary="Possible supervisors",
    description="Active staff of the clinic, excluding exclude_staff_id when given."
)
async def list_supervisors(
    clinic_id: int = Query(...),
    exclude_staff_id: Optional[int] = Query(None),
    staff_service: StaffService = Depends(get_staff_service),
):
    return staff_service.list_supervisors(clinic_id, exclude_staff_id)


@router.get("/{staff_id}", response_model=StaffResponse, summary="Get a staff member")
async def get_staff(staff_id: int, staff_service: StaffService = Depends(get_staff_service)):
    return staff_service.get_staff(staff_id)


@router.put("/{staff_id}", response_model=StaffResponse, summary="Update a staff member")
async def update_staff(staff_id: int, staff: StaffUpdate, staff_service: StaffService = Depends(get_staff_service)):
    return staff_service.update_staff(staff_id, staff)


@router.delete("/{staff_id}", status_code=204, summary="Delete a staff member",
               description="Deletes the staff row and its user account.")
async def delete_staff(staff_id: int, staff_service: StaffService = Depends(get_staff_service)):
    staff_service.delete_staff(staff_id)
