"""
Pydantic schemas for appointments.
"""
from typing import Optional

from pydantic import BaseModel, Field

from schemas.common import DATE_REGEX, TIME_REGEX, AppointmentStatus, AppointmentType, PartialUpdate


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment.

    The doctor must not already have a scheduled appointment overlapping
    ``[start_time, end_time)`` on the same date.
    """
    clinic_id: int = Field(..., gt=0)
    patient_id: int = Field(..., gt=0)
    doctor_id: int = Field(..., gt=0)
    location_id: Optional[int] = Field(None, gt=0)
    date: str = Field(..., pattern=DATE_REGEX, description="YYYY-MM-DD", example="2025-03-14")
    start_time: str = Field(..., pattern=TIME_REGEX, description="HH:MM (24h)", example="09:00")
    end_time: str = Field(..., pattern=TIME_REGEX, description="HH:MM (24h)", example="09:30")
    type: AppointmentType = "onsite"
    notes: Optional[str] = Field(None, max_length=2000)

    class Config:
        json_schema_extra = {
            "example": {
                "clinic_id": 1,
                "patient_id": 3,
                "doctor_id": 2,
                "location_id": 1,
                "date": "2025-03-14",
                "start_time": "09:00",
                "end_time": "09:30",
                "type": "onsite",
            }
        }


class AppointmentUpdate(PartialUpdate):
    not_null = ("patient_id", "doctor_id", "date", "start_time", "end_time", "type", "status")

    patient_id: Optional[int] = Field(None, gt=0)
    doctor_id: Optional[int] = Field(None, gt=0)
    location_id: Optional[int] = Field(None, gt=0)
    date: Optional[str] = Field(None, pattern=DATE_REGEX)
    start_time: Optional[str] = Field(None, pattern=TIME_REGEX)
    end_time: Optional[str] = Field(None, pattern=TIME_REGEX)
    type: Optional[AppointmentType] = None
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = Field(None, max_length=2000)


class AppointmentResponse(BaseModel):
    id: int
    clinic_id: int
    clinic_name: Optional[str] = None
    patient_id: int
    patient_name: Optional[str] = None
    medical_record_number: Optional[str] = None
    doctor_id: int
    doctor_name: Optional[str] = None
    location_id: Optional[int] = None
    location_name: Optional[str] = None
    date: str
    start_time: str
    end_time: str
    type: str
    status: str
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: str
    updated_at: str
