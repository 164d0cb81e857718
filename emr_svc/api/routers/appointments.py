"""
Appointments router - booking, cancellation and free slot lookup.

A doctor cannot hold two scheduled appointments with overlapping
[start_time, end_time) ranges on the same date; such requests get 400
with the id of the conflicting appointment.

Requires the "Appointment Management" module permission matching the
HTTP method.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.auth import CurrentUser, get_current_user, require_module_access
from core.dependencies import get_appointment_service
from schemas import AppointmentCreate, AppointmentResponse, AppointmentUpdate, Slot
from schemas.common import DATE_REGEX, AppointmentStatus
from services import AppointmentService

logger = logging.getLogger(__name__)

MODULE = "Appointment Management"

router = APIRouter(
    prefix="/api/v1/appointments",
    tags=["Appointments"],
    dependencies=[Depends(require_module_access(MODULE))],
)


@router.get(
    "",
    response_model=List[AppointmentResponse],
    summary="List appointments",
    description="Newest first (date, then start time), with patient, doctor, location and clinic names."
)
async def list_appointments(
    clinic_id: Optional[int] = Query(None),
    location_id: Optional[int] = Query(None),
    doctor_id: Optional[int] = Query(None),
    patient_id: Optional[int] = Query(None),
    date: Optional[str] = Query(None, pattern=DATE_REGEX),
    status: Optional[AppointmentStatus] = Query(None),
    appointment_service: AppointmentService = Depends(get_appointment_service),
):
    return appointment_service.list_appointments(
        clinic_id=clinic_id, location_id=location_id, doctor_id=doctor_id,
        patient_id=patient_id, on_date=date, status=status,
    )


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=201,
    summary="Book an appointment",
    description="Returns 400 when start_time is not before end_time or the doctor is already booked."
)
async def create_appointment(
    appointment: AppointmentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    appointment_service: AppointmentService = Depends(get_appointment_service),
):
    return appointment_service.create_appointment(appointment, created_by=current_user.id)


@router.get(
    "/available-slots",
    response_model=List[Slot],
    summary="Free slots of a doctor",
    description="30-minute slots inside the doctor's working hours for the weekday (09:00-17:00 "
                "without a schedule row), minus the break and booked ranges. Empty on approved time off."
)
async def available_slots(
    doctor_id: int = Query(...),
    date: str = Query(..., pattern=DATE_REGEX),
    location_id: Optional[int] = Query(None),
    appointment_service: AppointmentService = Depends(get_appointment_service),
):
    return appointment_service.available_slots(doctor_id, date, location_id)


@router.get("/slots/{doctor_id}/{date}/{location_id}", response_model=List[Slot],
            summary="Free slots of a doctor (path form)")
async def available_slots_by_path(
    doctor_id: int,
    date: str,
    location_id: int,
    appointment_service: AppointmentService = Depends(get_appointment_service),
):
    return appointment_service.available_slots(doctor_id, date, location_id)


@router.get("/{appointment_id}", response_model=AppointmentResponse, summary="Get an appointment")
async def get_appointment(appointment_id: int,
                          appointment_service: AppointmentService = Depends(get_appointment_service)):
    return appointment_service.get_appointment(appointment_id)


@router.put(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    summary="Update an appointment",
    description="Conflicts are re-checked against the merged values while the appointment stays scheduled."
)
async def update_appointment(appointment_id: int, appointment: AppointmentUpdate,
                             appointment_service: AppointmentService = Depends(get_appointment_service)):
    return appointment_service.update_appointment(appointment_id, appointment)


@router.patch("/{appointment_id}/cancel", response_model=AppointmentResponse,
              summary="Cancel an appointment", description="Frees the slot for new bookings.")
async def cancel_appointment(appointment_id: int,
                             appointment_service: AppointmentService = Depends(get_appointment_service)):
    return appointment_service.cancel_appointment(appointment_id)


@router.patch("/{appointment_id}/complete", response_model=AppointmentResponse,
              summary="Mark an appointment completed")
async def complete_appointment(appointment_id: int,
                               appointment_service: AppointmentService = Depends(get_appointment_service)):
    return appointment_service.complete_appointment(appointment_id)


@router.delete("/{appointment_id}", status_code=204, summary="Delete an appointment")
async def delete_appointment(appointment_id: int,
                             appointment_service: AppointmentService = Depends(get_appointment_service)):
    appointment_service.delete_appointment(appointment_id)
