"""
Service layer for appointment booking and slot availability.

Architecture:
    API Layer (routers/appointments) → AppointmentService → AppointmentRepository
                                                          → DoctorRepository
"""
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from core.datetime_utils import is_valid_date, weekday_index
from core.exceptions import AppointmentConflictError, NotFoundError, ValidationFailedError
from repositories import AppointmentRepository, DoctorRepository
from schemas import AppointmentCreate, AppointmentResponse, AppointmentUpdate, Slot
from services.scheduling import APPOINTMENT_SLOT_MINUTES, compute_slots, doctor_working_day, remove_booked

logger = logging.getLogger(__name__)


class AppointmentService:
    """
    Business logic for appointments.

    A doctor cannot hold two ``scheduled`` appointments with overlapping
    [start_time, end_time) ranges on the same date. Cancelled and completed
    appointments never block a slot.
    """

    def __init__(self, appointment_repository: AppointmentRepository, doctor_repository: DoctorRepository):
        self._repo = appointment_repository
        self._doctors = doctor_repository

    def _require(self, appointment_id: int) -> Dict[str, Any]:
        appointment = self._repo.get(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        return appointment

    def _check_slot(self, doctor_id: int, on_date: str, start_time: str, end_time: str,
                    exclude_id: Optional[int] = None) -> None:
        if start_time >= end_time:
            raise ValidationFailedError("start_time must be before end_time")
        conflict = self._repo.find_conflict(doctor_id, on_date, start_time, end_time, exclude_id=exclude_id)
        if conflict is not None:
            raise AppointmentConflictError(conflicting_appointment_id=conflict["id"])

    def list_appointments(self, clinic_id: Optional[int] = None, location_id: Optional[int] = None,
                          doctor_id: Optional[int] = None, patient_id: Optional[int] = None,
                          on_date: Optional[str] = None, status: Optional[str] = None) -> List[AppointmentResponse]:
        rows = self._repo.list(
            clinic_id=clinic_id, location_id=location_id, doctor_id=doctor_id,
            patient_id=patient_id, on_date=on_date, status=status,
        )
        return [AppointmentResponse(**a) for a in rows]

    def get_appointment(self, appointment_id: int) -> AppointmentResponse:
        return AppointmentResponse(**self._require(appointment_id))

    def create_appointment(self, data: AppointmentCreate, created_by: Optional[int] = None) -> AppointmentResponse:
        """
        Book an appointment.

        Raises:
            ValidationFailedError: start not before end, or unknown patient/doctor/clinic.
            AppointmentConflictError: The doctor is already booked in that range.
        """
        self._check_slot(data.doctor_id, data.date, data.start_time, data.end_time)
        try:
            appointment = self._repo.create(data.model_dump(), created_by)
        except sqlite3.IntegrityError:
            raise ValidationFailedError(
                "Unknown clinic, patient, doctor or location",
                clinic_id=data.clinic_id, patient_id=data.patient_id, doctor_id=data.doctor_id,
            )
        logger.info(
            f"Appointment {appointment['id']} booked: doctor {data.doctor_id} on {data.date} "
            f"{data.start_time}-{data.end_time}"
        )
        return AppointmentResponse(**appointment)

    def update_appointment(self, appointment_id: int, data: AppointmentUpdate) -> AppointmentResponse:
        """
        Patch an appointment, re-checking conflicts against the merged values
        while it stays scheduled.
        """
        existing = self._require(appointment_id)
        fields = data.model_dump(exclude_unset=True)
        merged = {**existing, **fields}
        if merged["status"] == "scheduled":
            self._check_slot(
                merged["doctor_id"], merged["date"], merged["start_time"], merged["end_time"],
                exclude_id=appointment_id,
            )
        elif merged["start_time"] >= merged["end_time"]:
            raise ValidationFailedError("start_time must be before end_time")

        try:
            updated = self._repo.update(appointment_id, fields)
        except sqlite3.IntegrityError:
            raise ValidationFailedError("Unknown patient, doctor or location")
        return AppointmentResponse(**updated)

    def cancel_appointment(self, appointment_id: int) -> AppointmentResponse:
        """Mark the appointment cancelled, which frees its slot."""
        self._require(appointment_id)
        logger.info(f"Appointment {appointment_id} cancelled")
        return AppointmentResponse(**self._repo.update(appointment_id, {"status": "cancelled"}))

    def complete_appointment(self, appointment_id: int) -> AppointmentResponse:
        self._require(appointment_id)
        return AppointmentResponse(**self._repo.update(appointment_id, {"status": "completed"}))

    def delete_appointment(self, appointment_id: int) -> None:
        if not self._repo.delete(appointment_id):
            raise NotFoundError("Appointment", appointment_id)
        logger.info(f"Appointment deleted: {appointment_id}")

    def available_slots(self, doctor_id: int, on_date: str, location_id: Optional[int] = None) -> List[Slot]:
        """
        Free 30-minute slots of a doctor on a date.

        Approved time off covering the date yields no slots. Otherwise the
        working window is the doctor's active schedule row for the weekday
        (09:00-17:00 without one), minus the break and any range already
        taken by a scheduled appointment.

        Args:
            doctor_id: The doctor to check.
            on_date: Date in YYYY-MM-DD form.
            location_id: Accepted for API compatibility; schedules are per doctor.

        Returns:
            List of Slot in time order.
        """
        if not is_valid_date(on_date):
            raise ValidationFailedError("date must be YYYY-MM-DD", date=on_date)
        if self._doctors.get(doctor_id) is None:
            raise NotFoundError("Doctor", doctor_id)

        if self._doctors.has_time_off(doctor_id, on_date, approved_only=True):
            logger.debug(f"Doctor {doctor_id} has approved time off on {on_date}")
            return []

        row = self._doctors.get_active_schedule_for_day(doctor_id, weekday_index(on_date))
        slots = compute_slots(doctor_working_day(row), APPOINTMENT_SLOT_MINUTES)
        free = remove_booked(slots, self._repo.list_booked_ranges(doctor_id, on_date))
        return [Slot(**s) for s in free]
