"""
Doctor schedules router - weekly working hours and time off.

Rows use day_of_week 0..6 with 0=Sunday. These feed appointment slot
computation, so the router requires the "Appointment Management" module
permission matching the HTTP method.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, Query

from core.auth import require_module_access
from core.dependencies import get_doctor_service
from schemas import (
    AvailabilityResponse,
    DoctorScheduleCreate,
    DoctorScheduleResponse,
    DoctorScheduleUpdate,
    TimeOffCheckResponse,
    TimeOffCreate,
    TimeOffResponse,
    TimeOffUpdate,
)
from schemas.common import DATE_REGEX, TIME_REGEX
from services import DoctorService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/doctors",
    tags=["Doctor Schedules"],
    dependencies=[Depends(require_module_access("Appointment Management"))],
)


# =============================================================================
# WEEKLY HOURS
# =============================================================================

@router.get("/{doctor_id}/schedules", response_model=List[DoctorScheduleResponse],
            summary="List a doctor's working hours")
async def list_schedules(doctor_id: int, doctor_service: DoctorService = Depends(get_doctor_service)):
    return doctor_service.list_schedules(doctor_id)


@router.post(
    "/{doctor_id}/schedules",
    response_model=DoctorScheduleResponse,
    status_code=201,
    summary="Add working hours",
    description="Requires start_time < end_time. A break must lie inside working hours."
)
async def create_schedule(doctor_id: int, schedule: DoctorScheduleCreate,
                          doctor_service: DoctorService = Depends(get_doctor_service)):
    return doctor_service.create_schedule(doctor_id, schedule)


@router.put("/schedules/{schedule_id}", response_model=DoctorScheduleResponse, summary="Update working hours")
async def update_schedule(schedule_id: int, schedule: DoctorScheduleUpdate,
                          doctor_service: DoctorService = Depends(get_doctor_service)):
    return doctor_service.update_schedule(schedule_id, schedule)


@router.delete("/schedules/{schedule_id}", status_code=204, summary="Delete working hours")
async def delete_schedule(schedule_id: int, doctor_service: DoctorService = Depends(get_doctor_service)):
    doctor_service.delete_schedule(schedule_id)


@router.get(
    "/{doctor_id}/availability",
    response_model=AvailabilityResponse,
    summary="Check availability",
    description="True when an active row covers the weekday and time and the time is outside the break."
)
async def check_availability(
    doctor_id: int,
    day_of_week: int = Query(..., ge=0, le=6, description="0=Sunday .. 6=Saturday"),
    time: str = Query(..., pattern=TIME_REGEX, example="10:30"),
    doctor_service: DoctorService = Depends(get_doctor_service),
):
    return doctor_service.check_availability(doctor_id, day_of_week, time)


# =============================================================================
# TIME OFF
# =============================================================================

@router.get(
    "/{doctor_id}/time-off",
    response_model=List[TimeOffResponse],
    summary="List time off",
    description="With upcoming_only=true, only entries ending today or later."
)
async def list_time_off(
    doctor_id: int,
    upcoming_only: bool = Query(False),
    doctor_service: DoctorService = Depends(get_doctor_service),
):
    return doctor_service.list_time_off(doctor_id, upcoming_only=upcoming_only)


@router.post("/{doctor_id}/time-off", response_model=TimeOffResponse, status_code=201,
             summary="Request time off")
async def create_time_off(doctor_id: int, time_off: TimeOffCreate,
                          doctor_service: DoctorService = Depends(get_doctor_service)):
    return doctor_service.create_time_off(doctor_id, time_off)


@router.get(
    "/{doctor_id}/time-off/check",
    response_model=TimeOffCheckResponse,
    summary="Check time off on a date",
    description="True when any time off entry covers the date, approved or not."
)
async def check_time_off(
    doctor_id: int,
    date: str = Query(..., pattern=DATE_REGEX),
    doctor_service: DoctorService = Depends(get_doctor_service),
):
    return doctor_service.check_time_off(doctor_id, date)


@router.put("/time-off/{time_off_id}", response_model=TimeOffResponse, summary="Update time off")
async def update_time_off(time_off_id: int, time_off: TimeOffUpdate,
                          doctor_service: DoctorService = Depends(get_doctor_service)):
    return doctor_service.update_time_off(time_off_id, time_off)


@router.patch("/time-off/{time_off_id}/approve", response_model=TimeOffResponse, summary="Approve time off")
async def approve_time_off(time_off_id: int, doctor_service: DoctorService = Depends(get_doctor_service)):
    return doctor_service.approve_time_off(time_off_id)


@router.delete("/time-off/{time_off_id}", status_code=204, summary="Delete time off")
async def delete_time_off(time_off_id: int, doctor_service: DoctorService = Depends(get_doctor_service)):
    doctor_service.delete_time_off(time_off_id)
