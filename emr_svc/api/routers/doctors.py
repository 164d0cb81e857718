"""
Doctors router - doctor profiles.

A doctor is a user with a profile row holding clinic, location,
specialty and license. Creating a doctor either links an existing user
or creates a new "Doctor" user from the supplied details.

Requires the "User Management" module permission matching the HTTP method.
Working hours and time off live in doctor_schedules.py.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.auth import require_module_access
from core.dependencies import get_doctor_service
from schemas import DoctorCreate, DoctorResponse, DoctorUpdate
from services import DoctorService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/doctors",
    tags=["Doctors"],
    dependencies=[Depends(require_module_access("User Management"))],
)


@router.get(
    "",
    response_model=List[DoctorResponse],
    summary="List doctors",
    description="List doctors with their user name and email, optionally filtered by clinic, location or specialty."
)
async def list_doctors(
    clinic_id: Optional[int] = Query(None),
    location_id: Optional[int] = Query(None),
    specialty: Optional[str] = Query(None, example="Cardiology"),
    doctor_service: DoctorService = Depends(get_doctor_service),
):
    return doctor_service.list_doctors(clinic_id=clinic_id, location_id=location_id, specialty=specialty)


@router.post(
    "",
    response_model=DoctorResponse,
    status_code=201,
    summary="Create a doctor",
    description="Pass user_id to attach a profile to an existing user, or user to create a new Doctor account. "
                "Returns 409 if the new account's email or username is taken."
)
async def create_doctor(doctor: DoctorCreate, doctor_service: DoctorService = Depends(get_doctor_service)):
    return doctor_service.create_doctor(doctor)


@router.get("/{doctor_id}", response_model=DoctorResponse, summary="Get a doctor")
async def get_doctor(doctor_id: int, doctor_service: DoctorService = Depends(get_doctor_service)):
    return doctor_service.get_doctor(doctor_id)


@router.put("/{doctor_id}", response_model=DoctorResponse, summary="Update a doctor")
async def update_doctor(doctor_id: int, doctor: DoctorUpdate,
                        doctor_service: DoctorService = Depends(get_doctor_service)):
    return doctor_service.update_doctor(doctor_id, doctor)


@router.delete("/{doctor_id}", status_code=204, summary="Delete a doctor")
async def delete_doctor(doctor_id: int, doctor_service: DoctorService = Depends(get_doctor_service)):
    doctor_service.delete_doctor(doctor_id)
