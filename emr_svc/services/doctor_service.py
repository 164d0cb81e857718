"""
Service layer for doctors, their weekly working hours and their time off.
"""
import logging
from typing import Any, Dict, List, Optional

from core.datetime_utils import today_iso
from core.exceptions import DuplicateResourceError, NotFoundError, ValidationFailedError
from core.security import PasswordHasher
from repositories import DoctorRepository
from schemas import (
    AvailabilityResponse,
    DoctorCreate,
    DoctorResponse,
    DoctorScheduleCreate,
    DoctorScheduleResponse,
    DoctorScheduleUpdate,
    DoctorUpdate,
    TimeOffCheckResponse,
    TimeOffCreate,
    TimeOffResponse,
    TimeOffUpdate,
)
from services.scheduling import is_available, validate_working_hours

logger = logging.getLogger(__name__)

DOCTOR_USER_TYPE = "Doctor"


class DoctorService:
    """
    Business logic for doctor profiles, schedules and time off.

    A doctor profile is attached to an existing user, or created together
    with a new ``Doctor`` user in a single transaction.
    """

    def __init__(self, doctor_repository: DoctorRepository, hasher: PasswordHasher):
        self._repo = doctor_repository
        self._hasher = hasher

    # ---------------------------------------------------------------- doctors

    def list_doctors(self, clinic_id: Optional[int] = None, location_id: Optional[int] = None,
                     specialty: Optional[str] = None) -> List[DoctorResponse]:
        rows = self._repo.list(clinic_id=clinic_id, location_id=location_id, specialty=specialty)
        return [DoctorResponse(**d) for d in rows]

    def _require_doctor(self, doctor_id: int) -> Dict[str, Any]:
        doctor = self._repo.get(doctor_id)
        if doctor is None:
            raise NotFoundError("Doctor", doctor_id)
        return doctor

    def get_doctor(self, doctor_id: int) -> DoctorResponse:
        return DoctorResponse(**self._require_doctor(doctor_id))

    def create_doctor(self, data: DoctorCreate) -> DoctorResponse:
        """
        Create a doctor profile.

        Raises:
            DuplicateResourceError: The user is already a doctor, or the new
                user's email/username is taken.
        """
        profile = data.model_dump(exclude={"user"})
        new_user = None
        if data.user is not None:
            account = data.user
            new_user = {
                "username": account.username or account.email,
                "email": account.email,
                "password_hash": self._hasher.hash(account.password),
                "user_type": DOCTOR_USER_TYPE,
                "clinic_id": data.clinic_id,
                "role_id": account.role_id,
                "first_name": account.first_name,
                "last_name": account.last_name,
                "phone": account.phone,
            }

        doctor = self._repo.create(profile, new_user=new_user)
        if doctor is None:
            raise DuplicateResourceError("Doctor", "user")
        logger.info(f"Doctor created: {doctor['email']} (id={doctor['id']})")
        return DoctorResponse(**doctor)

    def update_doctor(self, doctor_id: int, data: DoctorUpdate) -> DoctorResponse:
        self._require_doctor(doctor_id)
        return DoctorResponse(**self._repo.update(doctor_id, data.model_dump(exclude_unset=True)))

    def delete_doctor(self, doctor_id: int) -> None:
        if not self._repo.delete(doctor_id):
            raise NotFoundError("Doctor", doctor_id)
        logger.info(f"Doctor deleted: {doctor_id}")

    # -------------------------------------------------------------- schedules

    def list_schedules(self, doctor_id: int) -> List[DoctorScheduleResponse]:
        self._require_doctor(doctor_id)
        return [DoctorScheduleResponse(**s) for s in self._repo.list_schedules(doctor_id)]

    def create_schedule(self, doctor_id: int, data: DoctorScheduleCreate) -> DoctorScheduleResponse:
        """
        Add a weekly working-hours row.

        Raises:
            ValidationFailedError: start not before end, or a break outside working hours.
        """
        self._require_doctor(doctor_id)
        validate_working_hours(data.start_time, data.end_time, data.break_start, data.break_end)
        schedule = self._repo.create_schedule(doctor_id, data.model_dump())
        logger.info(f"Schedule added for doctor {doctor_id} on day {data.day_of_week}")
        return DoctorScheduleResponse(**schedule)

    def update_schedule(self, schedule_id: int, data: DoctorScheduleUpdate) -> DoctorScheduleResponse:
        existing = self._repo.get_schedule(schedule_id)
        if existing is None:
            raise NotFoundError("Doctor schedule", schedule_id)
        fields = data.model_dump(exclude_unset=True)
        merged = {**existing, **fields}
        validate_working_hours(merged["start_time"], merged["end_time"], merged.get("break_start"), merged.get("break_end"))
        return DoctorScheduleResponse(**self._repo.update_schedule(schedule_id, fields))

    def delete_schedule(self, schedule_id: int) -> None:
        if not self._repo.delete_schedule(schedule_id):
            raise NotFoundError("Doctor schedule", schedule_id)

    def check_availability(self, doctor_id: int, day_of_week: int, time: str) -> AvailabilityResponse:
        """Whether the doctor works at ``time`` on ``day_of_week`` (0=Sunday)."""
        self._require_doctor(doctor_id)
        row = self._repo.get_active_schedule_for_day(doctor_id, day_of_week)
        return AvailabilityResponse(
            doctor_id=doctor_id, day_of_week=day_of_week, time=time, available=is_available(row, time)
        )

    # --------------------------------------------------------------- time off

    def list_time_off(self, doctor_id: int, upcoming_only: bool = False) -> List[TimeOffResponse]:
        """All time off, or only entries that end today or later."""
        self._require_doctor(doctor_id)
        from_date = today_iso() if upcoming_only else None
        return [TimeOffResponse(**t) for t in self._repo.list_time_off(doctor_id, from_date)]

    def create_time_off(self, doctor_id: int, data: TimeOffCreate) -> TimeOffResponse:
        self._require_doctor(doctor_id)
        if data.end_date < data.start_date:
            raise ValidationFailedError("end_date must not be before start_date")
        time_off = self._repo.create_time_off(doctor_id, data.model_dump())
        logger.info(f"Time off recorded for doctor {doctor_id}: {data.start_date}..{data.end_date}")
        return TimeOffResponse(**time_off)

    def update_time_off(self, time_off_id: int, data: TimeOffUpdate) -> TimeOffResponse:
        existing = self._repo.get_time_off(time_off_id)
        if existing is None:
            raise NotFoundError("Time off", time_off_id)
        fields = data.model_dump(exclude_unset=True)
        if fields.get("end_date", existing["end_date"]) < fields.get("start_date", existing["start_date"]):
            raise ValidationFailedError("end_date must not be before start_date")
        return TimeOffResponse(**self._repo.update_time_off(time_off_id, fields))

    def approve_time_off(self, time_off_id: int) -> TimeOffResponse:
        if self._repo.get_time_off(time_off_id) is None:
            raise NotFoundError("Time off", time_off_id)
        logger.info(f"Time off {time_off_id} approved")
        return TimeOffResponse(**self._repo.update_time_off(time_off_id, {"is_approved": True}))

    def delete_time_off(self, time_off_id: int) -> None:
        if not self._repo.delete_time_off(time_off_id):
            raise NotFoundError("Time off", time_off_id)

    def check_time_off(self, doctor_id: int, on_date: str) -> TimeOffCheckResponse:
        """Whether any time off entry covers ``on_date``."""
        self._require_doctor(doctor_id)
        return TimeOffCheckResponse(
            doctor_id=doctor_id, date=on_date, has_time_off=self._repo.has_time_off(doctor_id, on_date)
        )
