"""
Pydantic schemas for weekly schedule documents and user schedules.

A weekly schedule is a JSON object keyed by lowercase weekday name:

    {
        "monday": {"enabled": true, "start": "09:00", "end": "17:00",
                   "break_start": "12:00", "break_end": "13:00"},
        "sunday": {"enabled": false}
    }

Format checks happen here; cross-field rules (start before end, break
inside the day) are enforced by services.scheduling.validate_weekly_schedule.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from core.datetime_utils import WEEKDAY_NAMES
from schemas.common import DATE_REGEX, SLOT_DURATIONS, TIME_REGEX, PartialUpdate


class DaySchedule(BaseModel):
    enabled: bool = Field(True, description="Whether the day is a working day")
    start: Optional[str] = Field(None, pattern=TIME_REGEX, example="09:00")
    end: Optional[str] = Field(None, pattern=TIME_REGEX, example="17:00")
    break_start: Optional[str] = Field(None, pattern=TIME_REGEX, example="12:00")
    break_end: Optional[str] = Field(None, pattern=TIME_REGEX, example="13:00")


WeeklySchedule = Dict[str, DaySchedule]


def check_weekday_keys(value: Dict[str, DaySchedule]) -> Dict[str, DaySchedule]:
    unknown = sorted(set(value) - set(WEEKDAY_NAMES))
    if unknown:
        raise ValueError(f"Unknown weekday(s): {', '.join(unknown)}")
    return value


class UserScheduleBase(BaseModel):
    weekly_schedule: WeeklySchedule
    slot_duration: int = Field(30, description=f"Slot length in minutes, one of {SLOT_DURATIONS}")
    is_active: bool = True
    effective_from: str = Field(..., pattern=DATE_REGEX, example="2025-01-01")
    effective_to: Optional[str] = Field(None, pattern=DATE_REGEX)

    @field_validator("weekly_schedule")
    @classmethod
    def check_days(cls, value: WeeklySchedule) -> WeeklySchedule:
        return check_weekday_keys(value)

    @field_validator("slot_duration")
    @classmethod
    def check_slot_duration(cls, value: int) -> int:
        if value not in SLOT_DURATIONS:
            raise ValueError(f"slot_duration must be one of {SLOT_DURATIONS}")
        return value


class UserScheduleCreate(UserScheduleBase):
    """Schema for creating a user's weekly schedule."""
    clinic_id: int = Field(..., gt=0)
    user_id: int = Field(..., gt=0)
    user_type: str = Field(..., min_length=1, max_length=50, example="Doctor")

    class Config:
        json_schema_extra = {
            "example": {
                "clinic_id": 1,
                "user_id": 5,
                "user_type": "Doctor",
                "slot_duration": 30,
                "effective_from": "2025-01-01",
                "weekly_schedule": {
                    "monday": {"enabled": True, "start": "09:00", "end": "17:00",
                               "break_start": "12:00", "break_end": "13:00"},
                },
            }
        }


class UserScheduleUpdate(PartialUpdate):
    not_null = ("weekly_schedule", "slot_duration", "is_active", "effective_from")

    weekly_schedule: Optional[WeeklySchedule] = None
    slot_duration: Optional[int] = None
    is_active: Optional[bool] = None
    effective_from: Optional[str] = Field(None, pattern=DATE_REGEX)
    effective_to: Optional[str] = Field(None, pattern=DATE_REGEX)

    @field_validator("weekly_schedule")
    @classmethod
    def check_days(cls, value: Optional[WeeklySchedule]) -> Optional[WeeklySchedule]:
        return check_weekday_keys(value) if value is not None else value

    @field_validator("slot_duration")
    @classmethod
    def check_slot_duration(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value not in SLOT_DURATIONS:
            raise ValueError(f"slot_duration must be one of {SLOT_DURATIONS}")
        return value


class UserScheduleResponse(BaseModel):
    id: int
    clinic_id: int
    user_id: int
    user_type: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    weekly_schedule: Dict[str, DaySchedule]
    slot_duration: int
    is_active: bool
    effective_from: str
    effective_to: Optional[str] = None
    created_at: str
    updated_at: str


class Slot(BaseModel):
    """A bookable [start, end) interval."""
    start: str = Field(..., example="09:00")
    end: str = Field(..., example="09:30")


class DaySlotsResponse(BaseModel):
    date: str
    weekday: str
    slots: List[Slot]
