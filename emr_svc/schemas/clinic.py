"""
Pydantic schemas for clinics and their configuration: settings, locations,
location services, location schedules, specialties, insurance providers
and user-location assignments.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from schemas.common import DATE_REGEX, ClinicType, PartialUpdate, UserLocationStatus
from schemas.schedule import DaySchedule, WeeklySchedule, check_weekday_keys


# =============================================================================
# CLINICS
# =============================================================================

class ClinicBase(BaseModel):
    address: Optional[str] = Field(None, max_length=500)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    group_npi: Optional[str] = Field(None, max_length=20, description="Group National Provider Identifier")
    tax_id: Optional[str] = Field(None, max_length=20)
    time_zone: Optional[str] = Field(None, max_length=64, example="America/New_York")


class ClinicCreate(ClinicBase):
    """Schema for creating a clinic."""
    name: str = Field(..., min_length=1, max_length=200, example="Downtown Family Practice")
    type: ClinicType = Field("single", description="'group' for multi-provider practices, else 'single'")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Downtown Family Practice",
                "type": "group",
                "address": "12 Main St, Springfield",
                "phone": "555-0100",
                "time_zone": "America/New_York",
            }
        }


class ClinicUpdate(ClinicBase, PartialUpdate):
    not_null = ("name", "type", "time_zone")

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[ClinicType] = None


class ClinicResponse(BaseModel):
    id: int
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    type: str
    group_npi: Optional[str] = None
    tax_id: Optional[str] = None
    time_zone: str
    created_at: str
    updated_at: str


class ClinicSettingsUpdate(PartialUpdate):
    not_null = (
        "primary_color", "enable_sms", "enable_voice", "reminder_hours",
        "reminder_minutes", "accepted_insurances", "enable_online_payments",
    )

    practice_logo: Optional[str] = Field(None, max_length=500, description="Logo URL or path")
    primary_color: Optional[str] = Field(None, pattern=r"^#[0-9a-fA-F]{6}$", example="#0066cc")
    enable_sms: Optional[bool] = None
    enable_voice: Optional[bool] = None
    reminder_hours: Optional[int] = Field(None, ge=0, le=168)
    reminder_minutes: Optional[int] = Field(None, ge=0, le=59)
    accepted_insurances: Optional[List[str]] = None
    enable_online_payments: Optional[bool] = None


class ClinicSettingsResponse(BaseModel):
    clinic_id: int
    practice_logo: Optional[str] = None
    primary_color: str
    enable_sms: bool
    enable_voice: bool
    reminder_hours: int
    reminder_minutes: int
    accepted_insurances: List[str]
    enable_online_payments: bool
    updated_at: Optional[str] = None


# =============================================================================
# LOCATIONS
# =============================================================================

class LocationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, example="Main Campus")
    address: Optional[str] = Field(None, max_length=500)
    phone: Optional[str] = Field(None, max_length=30)
    hours: Optional[WeeklySchedule] = Field(None, description="Weekly opening hours")

    @field_validator("hours")
    @classmethod
    def check_hours(cls, value: Optional[WeeklySchedule]) -> Optional[WeeklySchedule]:
        return check_weekday_keys(value) if value is not None else value


class LocationUpdate(PartialUpdate):
    not_null = ("name",)

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    address: Optional[str] = Field(None, max_length=500)
    phone: Optional[str] = Field(None, max_length=30)
    hours: Optional[WeeklySchedule] = None

    @field_validator("hours")
    @classmethod
    def check_hours(cls, value: Optional[WeeklySchedule]) -> Optional[WeeklySchedule]:
        return check_weekday_keys(value) if value is not None else value


class LocationResponse(BaseModel):
    id: int
    clinic_id: int
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    hours: Optional[Dict[str, DaySchedule]] = None
    created_at: str
    updated_at: str


class LocationServiceCreate(BaseModel):
    service_name: str = Field(..., min_length=1, max_length=200, example="X-Ray")
    service_category: Optional[str] = Field(None, max_length=100, example="Imaging")
    description: Optional[str] = Field(None, max_length=1000)
    is_active: bool = True


class LocationServiceUpdate(PartialUpdate):
    not_null = ("service_name", "is_active")

    service_name: Optional[str] = Field(None, min_length=1, max_length=200)
    service_category: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    is_active: Optional[bool] = None


class LocationServiceResponse(BaseModel):
    id: int
    location_id: int
    service_name: str
    service_category: Optional[str] = None
    description: Optional[str] = None
    is_active: bool
    created_at: str


class LocationScheduleCreate(BaseModel):
    """Schema for a location's weekly opening schedule."""
    schedule_name: str = Field(..., min_length=1, max_length=200, example="Summer hours")
    weekly_schedule: WeeklySchedule
    time_zone: Optional[str] = Field(None, max_length=64)
    effective_from: str = Field(..., pattern=DATE_REGEX, example="2025-06-01")
    effective_to: Optional[str] = Field(None, pattern=DATE_REGEX, example="2025-08-31")
    is_active: bool = True
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("weekly_schedule")
    @classmethod
    def check_days(cls, value: WeeklySchedule) -> WeeklySchedule:
        return check_weekday_keys(value)


class LocationScheduleUpdate(PartialUpdate):
    not_null = ("schedule_name", "weekly_schedule", "time_zone", "effective_from", "is_active")

    schedule_name: Optional[str] = Field(None, min_length=1, max_length=200)
    weekly_schedule: Optional[WeeklySchedule] = None
    time_zone: Optional[str] = Field(None, max_length=64)
    effective_from: Optional[str] = Field(None, pattern=DATE_REGEX)
    effective_to: Optional[str] = Field(None, pattern=DATE_REGEX)
    is_active: Optional[bool] = None
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("weekly_schedule")
    @classmethod
    def check_days(cls, value: Optional[WeeklySchedule]) -> Optional[WeeklySchedule]:
        return check_weekday_keys(value) if value is not None else value


class LocationScheduleResponse(BaseModel):
    id: int
    location_id: int
    schedule_name: str
    weekly_schedule: Dict[str, DaySchedule]
    time_zone: str
    effective_from: str
    effective_to: Optional[str] = None
    is_active: bool
    notes: Optional[str] = None
    created_at: str
    updated_at: str


# =============================================================================
# SPECIALTIES & INSURANCE
# =============================================================================

class SpecialtyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, example="Cardiology")
    description: Optional[str] = Field(None, max_length=1000)


class SpecialtyResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None


class ClinicSpecialtyAssign(BaseModel):
    specialty_id: int = Field(..., gt=0)
    is_primary: bool = False
    notes: Optional[str] = Field(None, max_length=1000)


class ClinicSpecialtyResponse(BaseModel):
    id: int
    clinic_id: int
    specialty_id: int
    specialty_name: str
    is_primary: bool
    notes: Optional[str] = None


class InsuranceProviderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, example="Blue Shield")
    payer_id: Optional[str] = Field(None, max_length=50)
    phone: Optional[str] = Field(None, max_length=30)


class InsuranceProviderResponse(BaseModel):
    id: int
    name: str
    payer_id: Optional[str] = None
    phone: Optional[str] = None


class ClinicInsuranceAssign(BaseModel):
    provider_id: int = Field(..., gt=0)
    notes: Optional[str] = Field(None, max_length=1000)


class ClinicInsuranceResponse(BaseModel):
    id: int
    clinic_id: int
    provider_id: int
    provider_name: str
    payer_id: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None


# =============================================================================
# USER LOCATIONS
# =============================================================================

class UserLocationAssign(BaseModel):
    user_id: int = Field(..., gt=0)
    location_id: int = Field(..., gt=0)
    is_primary: bool = False
    notes: Optional[str] = Field(None, max_length=1000)


class UserLocationStatusUpdate(BaseModel):
    status: UserLocationStatus
    notes: Optional[str] = Field(None, max_length=1000)


class UserLocationResponse(BaseModel):
    id: int
    user_id: int
    clinic_id: int
    location_id: int
    location_name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    is_primary: bool
    status: str
    notes: Optional[str] = None
    created_at: str


class LocationAccessResponse(BaseModel):
    user_id: int
    location_id: int
    has_access: bool
