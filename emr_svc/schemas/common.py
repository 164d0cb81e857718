"""
Shared enumerations and small response models used across the API.
"""
from typing import ClassVar, Literal, Tuple

from pydantic import BaseModel, Field, model_validator

TIME_REGEX = r"^([01]\d|2[0-3]):[0-5]\d$"
DATE_REGEX = r"^\d{4}-\d{2}-\d{2}$"

PATIENT_STATUSES = ("active", "inactive", "discharged")
GENDERS = ("Male", "Female", "Other", "Prefer not to say")
USER_STATUSES = ("active", "inactive")
STAFF_STATUSES = ("active", "inactive", "terminated")
DEPARTMENTS = ("Administration", "Reception", "Nursing", "Medical", "Housekeeping", "Management", "Other")
EMPLOYMENT_STATUSES = ("Full-time", "Part-time", "Contract", "Temporary", "Intern")
TIME_OFF_REASONS = ("Vacation", "Sick Leave", "Conference", "Training", "Personal", "Emergency", "Other")
APPOINTMENT_TYPES = ("onsite", "online")
APPOINTMENT_STATUSES = ("scheduled", "cancelled", "completed")
TASK_STATUSES = ("open", "in_progress", "completed", "closed")
TASK_PRIORITIES = ("low", "medium", "high", "urgent")
CLINIC_TYPES = ("group", "single")
USER_LOCATION_STATUSES = ("active", "inactive", "transferred")
FORM_FIELD_TYPES = ("text", "email", "number", "textarea", "date", "checkbox", "radio", "select")
SLOT_DURATIONS = (10, 15, 20, 30, 45, 60)

PatientStatus = Literal["active", "inactive", "discharged"]
Gender = Literal["Male", "Female", "Other", "Prefer not to say"]
UserStatus = Literal["active", "inactive"]
StaffStatus = Literal["active", "inactive", "terminated"]
Department = Literal["Administration", "Reception", "Nursing", "Medical", "Housekeeping", "Management", "Other"]
EmploymentStatus = Literal["Full-time", "Part-time", "Contract", "Temporary", "Intern"]
TimeOffReason = Literal["Vacation", "Sick Leave", "Conference", "Training", "Personal", "Emergency", "Other"]
AppointmentType = Literal["onsite", "online"]
AppointmentStatus = Literal["scheduled", "cancelled", "completed"]
TaskStatus = Literal["open", "in_progress", "completed", "closed"]
TaskPriority = Literal["low", "medium", "high", "urgent"]
ClinicType = Literal["group", "single"]
UserLocationStatus = Literal["active", "inactive", "transferred"]
FormFieldType = Literal["text", "email", "number", "textarea", "date", "checkbox", "radio", "select"]


class MessageResponse(BaseModel):
    """Plain acknowledgement."""
    message: str = Field(..., description="Human-readable result", example="Logged out successfully")


class CountResponse(BaseModel):
    count: int = Field(..., ge=0, description="Number of affected or matching rows")


class PartialUpdate(BaseModel):
    """
    Base for partial update bodies.

    Every field may be omitted. Fields named in ``not_null`` back NOT NULL
    columns, so an explicit null for them is rejected with a 422 instead
    of reaching the database.
    """
    not_null: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_explicit_nulls(self):
        nulls = [name for name in self.not_null if name in self.model_fields_set and getattr(self, name) is None]
        if nulls:
            raise ValueError(f"Field(s) cannot be null: {', '.join(nulls)}")
        return self
