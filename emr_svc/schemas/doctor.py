"""
Pydantic schemas for doctors, their weekly working hours and time off.
"""
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

from schemas.common import DATE_REGEX, TIME_REGEX, PartialUpdate, TimeOffReason


class DoctorAccount(BaseModel):
    """User details used to create a new Doctor account alongside the profile."""
    email: EmailStr = Field(..., example="dr.lee@clinic.com")
    password: str = Field(..., min_length=8, max_length=128)
    username: Optional[str] = Field(None, min_length=3, max_length=100)
    first_name: Optional[str] = Field(None, max_length=100, example="Alex")
    last_name: Optional[str] = Field(None, max_length=100, example="Lee")
    phone: Optional[str] = Field(None, max_length=30)
    role_id: Optional[int] = None


class DoctorCreate(BaseModel):
    """Schema for creating a doctor.

    Exactly one of ``user_id`` (link an existing user) or ``user``
    (create a new Doctor user) must be given.
    """
    user_id: Optional[int] = Field(None, gt=0, description="Existing user to attach the profile to")
    user: Optional[DoctorAccount] = Field(None, description="Details for a new Doctor user")
    clinic_id: Optional[int] = None
    location_id: Optional[int] = None
    specialty: Optional[str] = Field(None, max_length=100, example="Cardiology")
    license_number: Optional[str] = Field(None, max_length=50)
    status: str = Field("active", max_length=20)

    @model_validator(mode="after")
    def check_user_source(self) -> "DoctorCreate":
        if (self.user_id is None) == (self.user is None):
            raise ValueError("Provide exactly one of user_id or user")
        return self


class DoctorUpdate(PartialUpdate):
    not_null = ("status",)

    clinic_id: Optional[int] = None
    location_id: Optional[int] = None
    specialty: Optional[str] = Field(None, max_length=100)
    license_number: Optional[str] = Field(None, max_length=50)
    status: Optional[str] = Field(None, max_length=20)


class DoctorResponse(BaseModel):
    id: int
    user_id: int
    clinic_id: Optional[int] = None
    location_id: Optional[int] = None
    location_name: Optional[str] = None
    specialty: Optional[str] = None
    license_number: Optional[str] = None
    status: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    created_at: str
    updated_at: str


# =============================================================================
# WEEKLY WORKING HOURS
# =============================================================================

class DoctorScheduleCreate(BaseModel):
    """One working-hours row: a weekday (0=Sunday) with optional break."""
    day_of_week: int = Field(..., ge=0, le=6, description="0=Sunday .. 6=Saturday", example=1)
    start_time: str = Field(..., pattern=TIME_REGEX, example="09:00")
    end_time: str = Field(..., pattern=TIME_REGEX, example="17:00")
    break_start: Optional[str] = Field(None, pattern=TIME_REGEX, example="12:00")
    break_end: Optional[str] = Field(None, pattern=TIME_REGEX, example="13:00")
    is_active: bool = True
    notes: Optional[str] = Field(None, max_length=1000)


class DoctorScheduleUpdate(PartialUpdate):
    not_null = ("day_of_week", "start_time", "end_time", "is_active")

    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    start_time: Optional[str] = Field(None, pattern=TIME_REGEX)
    end_time: Optional[str] = Field(None, pattern=TIME_REGEX)
    break_start: Optional[str] = Field(None, pattern=TIME_REGEX)
    break_end: Optional[str] = Field(None, pattern=TIME_REGEX)
    is_active: Optional[bool] = None
    notes: Optional[str] = Field(None, max_length=1000)


class DoctorScheduleResponse(BaseModel):
    id: int
    doctor_id: int
    day_of_week: int
    start_time: str
    end_time: str
    break_start: Optional[str] = None
    break_end: Optional[str] = None
    is_active: bool
    notes: Optional[str] = None
    created_at: str
    updated_at: str


class AvailabilityResponse(BaseModel):
    doctor_id: int
    day_of_week: int
    time: str
    available: bool


# =============================================================================
# TIME OFF
# =============================================================================

class TimeOffCreate(BaseModel):
    start_date: str = Field(..., pattern=DATE_REGEX, example="2025-07-01")
    end_date: str = Field(..., pattern=DATE_REGEX, example="2025-07-05")
    reason: TimeOffReason = Field(..., example="Vacation")
    is_approved: bool = False
    notes: Optional[str] = Field(None, max_length=1000)


class TimeOffUpdate(PartialUpdate):
    not_null = ("start_date", "end_date", "reason", "is_approved")

    start_date: Optional[str] = Field(None, pattern=DATE_REGEX)
    end_date: Optional[str] = Field(None, pattern=DATE_REGEX)
    reason: Optional[TimeOffReason] = None
    is_approved: Optional[bool] = None
    notes: Optional[str] = Field(None, max_length=1000)


class TimeOffResponse(BaseModel):
    id: int
    doctor_id: int
    start_date: str
    end_date: str
    reason: str
    is_approved: bool
    notes: Optional[str] = None
    created_at: str


class TimeOffCheckResponse(BaseModel):
    doctor_id: int
    date: str
    has_time_off: bool
