"""
Schedules router - weekly schedule documents for clinic users.

Managing schedules requires the "Appointment Management" module
permission matching the HTTP method. The /my endpoints only need a
valid token and operate on the caller's own schedules.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.auth import CurrentUser, get_current_user, require_module_access
from core.dependencies import get_schedule_service
from schemas import DaySlotsResponse, UserScheduleCreate, UserScheduleResponse, UserScheduleUpdate
from schemas.common import DATE_REGEX
from services import ScheduleService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/schedules", tags=["Schedules"])

MANAGE = [Depends(require_module_access("Appointment Management"))]


@router.get(
    "",
    response_model=List[UserScheduleResponse],
    dependencies=MANAGE,
    summary="List schedules",
    description="List schedules, optionally for one clinic, user or user type."
)
async def list_schedules(
    clinic_id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    user_type: Optional[str] = Query(None, example="Doctor"),
    schedule_service: ScheduleService = Depends(get_schedule_service),
):
    return schedule_service.list_schedules(clinic_id=clinic_id, user_id=user_id, user_type=user_type)


@router.post(
    "",
    response_model=UserScheduleResponse,
    status_code=201,
    dependencies=MANAGE,
    summary="Create a schedule",
    description="Enabled days need start < end and any break inside the day. "
                "slot_duration is one of 10, 15, 20, 30, 45 or 60."
)
async def create_schedule(schedule: UserScheduleCreate,
                          schedule_service: ScheduleService = Depends(get_schedule_service)):
    return schedule_service.create_schedule(schedule)


@router.get(
    "/active",
    response_model=List[UserScheduleResponse],
    dependencies=MANAGE,
    summary="Schedules in effect",
    description="Active schedules whose effective window contains the date (default today)."
)
async def list_active_schedules(
    clinic_id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    date: Optional[str] = Query(None, pattern=DATE_REGEX),
    schedule_service: ScheduleService = Depends(get_schedule_service),
):
    return schedule_service.list_active(clinic_id=clinic_id, user_id=user_id, on_date=date)


@router.get("/my/active", response_model=List[UserScheduleResponse], summary="My schedules in effect today")
async def my_active_schedules(
    current_user: CurrentUser = Depends(get_current_user),
    schedule_service: ScheduleService = Depends(get_schedule_service),
):
    return schedule_service.list_active(user_id=current_user.id)


@router.get("/my/all", response_model=List[UserScheduleResponse], summary="All my schedules")
async def my_schedules(
    current_user: CurrentUser = Depends(get_current_user),
    schedule_service: ScheduleService = Depends(get_schedule_service),
):
    return schedule_service.list_schedules(user_id=current_user.id)


@router.get("/{schedule_id}", response_model=UserScheduleResponse, dependencies=MANAGE, summary="Get a schedule")
async def get_schedule(schedule_id: int, schedule_service: ScheduleService = Depends(get_schedule_service)):
    return schedule_service.get_schedule(schedule_id)


@router.put("/{schedule_id}", response_model=UserScheduleResponse, dependencies=MANAGE,
            summary="Update a schedule")
async def update_schedule(schedule_id: int, schedule: UserScheduleUpdate,
                          schedule_service: ScheduleService = Depends(get_schedule_service)):
    return schedule_service.update_schedule(schedule_id, schedule)


@router.delete("/{schedule_id}", status_code=204, dependencies=MANAGE, summary="Delete a schedule")
async def delete_schedule(schedule_id: int, schedule_service: ScheduleService = Depends(get_schedule_service)):
    schedule_service.delete_schedule(schedule_id)


@router.get(
    "/{schedule_id}/slots",
    response_model=DaySlotsResponse,
    dependencies=MANAGE,
    summary="Slots for a date",
    description="Split the weekday's working hours into slot_duration steps, skipping the break. "
                "Empty when the schedule is inactive or not in effect on the date."
)
async def get_day_slots(
    schedule_id: int,
    date: str = Query(..., pattern=DATE_REGEX),
    schedule_service: ScheduleService = Depends(get_schedule_service),
):
    return schedule_service.day_slots(schedule_id, date)
