"""
Pydantic schemas for clinic staff members.
"""
from typing import Dict, Optional

from pydantic import BaseModel, EmailStr, Field

from schemas.common import DATE_REGEX, Department, EmploymentStatus, Gender, PartialUpdate, StaffStatus


class StaffProfile(BaseModel):
    location_id: Optional[int] = None
    role_id: Optional[int] = None
    start_date: Optional[str] = Field(None, pattern=DATE_REGEX)
    end_date: Optional[str] = Field(None, pattern=DATE_REGEX)
    supervisor_id: Optional[int] = None
    salary: Optional[float] = Field(None, ge=0)
    hourly_rate: Optional[float] = Field(None, ge=0)
    emergency_contact_name: Optional[str] = Field(None, max_length=200)
    emergency_contact_phone: Optional[str] = Field(None, max_length=30)
    emergency_contact_relation: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    date_of_birth: Optional[str] = Field(None, pattern=DATE_REGEX)
    gender: Optional[Gender] = None
    notes: Optional[str] = Field(None, max_length=2000)


class StaffCreate(StaffProfile):
    """Schema for creating a staff member and their login account."""
    email: EmailStr = Field(..., example="sam.jones@clinic.com")
    password: str = Field(..., min_length=8, max_length=128)
    username: Optional[str] = Field(None, min_length=3, max_length=100)
    first_name: str = Field(..., min_length=1, max_length=100, example="Sam")
    last_name: str = Field(..., min_length=1, max_length=100, example="Jones")
    phone: Optional[str] = Field(None, max_length=30)
    clinic_id: int = Field(..., gt=0)
    employee_id: str = Field(..., min_length=1, max_length=50, example="EMP-0042")
    department: Department = Field(..., example="Reception")
    employment_status: EmploymentStatus = "Full-time"
    status: StaffStatus = "active"

    class Config:
        json_schema_extra = {
            "example": {
                "email": "sam.jones@clinic.com",
                "password": "changeme123",
                "first_name": "Sam",
                "last_name": "Jones",
                "clinic_id": 1,
                "employee_id": "EMP-0042",
                "department": "Reception",
                "employment_status": "Full-time",
            }
        }


class StaffUpdate(StaffProfile, PartialUpdate):
    not_null = ("email", "clinic_id", "employee_id", "department", "employment_status", "status")

    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    clinic_id: Optional[int] = Field(None, gt=0)
    employee_id: Optional[str] = Field(None, min_length=1, max_length=50)
    department: Optional[Department] = None
    employment_status: Optional[EmploymentStatus] = None
    status: Optional[StaffStatus] = None


class StaffResponse(BaseModel):
    id: int
    user_id: int
    clinic_id: int
    location_id: Optional[int] = None
    location_name: Optional[str] = None
    employee_id: str
    role_id: Optional[int] = None
    role_name: Optional[str] = None
    department: str
    employment_status: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    supervisor_id: Optional[int] = None
    salary: Optional[float] = None
    hourly_rate: Optional[float] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    emergency_contact_relation: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    notes: Optional[str] = None
    status: str
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    created_at: str
    updated_at: str


class StaffStatsResponse(BaseModel):
    total: int
    active: int
    inactive: int
    by_department: Dict[str, int]
