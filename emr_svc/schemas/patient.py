"""
Pydantic schemas for patients and their clinical sub-records.

Clinical sub-records are nested in create and update payloads:
``vitals`` and ``medical_history`` replace the current record, the list
fields append new entries.
"""
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from schemas.common import DATE_REGEX, Gender, PartialUpdate, PatientStatus


# =============================================================================
# CLINICAL SUB-RECORDS
# =============================================================================

class VitalsIn(BaseModel):
    height: Optional[str] = Field(None, max_length=20, example="175 cm")
    weight: Optional[str] = Field(None, max_length=20, example="72 kg")
    blood_pressure: Optional[str] = Field(None, max_length=20, example="120/80")
    heart_rate: Optional[str] = Field(None, max_length=20, example="68")
    temperature: Optional[str] = Field(None, max_length=20, example="36.8")
    respiratory_rate: Optional[str] = Field(None, max_length=20)
    oxygen_saturation: Optional[str] = Field(None, max_length=20, example="98%")


class MedicalHistoryIn(BaseModel):
    conditions: Optional[str] = Field(None, max_length=4000)
    allergies: Optional[str] = Field(None, max_length=4000, example="Penicillin")
    family_history: Optional[str] = Field(None, max_length=4000)
    social_history: Optional[str] = Field(None, max_length=4000)
    notes: Optional[str] = Field(None, max_length=4000)


class SurgicalHistoryIn(BaseModel):
    procedure: str = Field(..., min_length=1, max_length=500, example="Appendectomy")
    surgery_date: Optional[str] = Field(None, pattern=DATE_REGEX)
    surgeon: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=2000)


class MedicationIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, example="Metformin")
    dosage: Optional[str] = Field(None, max_length=100, example="500 mg")
    frequency: Optional[str] = Field(None, max_length=100, example="twice daily")
    start_date: Optional[str] = Field(None, pattern=DATE_REGEX)
    end_date: Optional[str] = Field(None, pattern=DATE_REGEX)
    is_active: bool = True


class DiagnosticIn(BaseModel):
    test_name: str = Field(..., min_length=1, max_length=200, example="HbA1c")
    result: Optional[str] = Field(None, max_length=1000, example="6.1%")
    test_date: Optional[str] = Field(None, pattern=DATE_REGEX)
    notes: Optional[str] = Field(None, max_length=2000)


class InsuranceIn(BaseModel):
    provider_name: str = Field(..., min_length=1, max_length=200, example="Blue Shield")
    policy_number: Optional[str] = Field(None, max_length=100)
    group_number: Optional[str] = Field(None, max_length=100)
    is_primary: bool = False
    is_active: bool = True


class ClinicNoteIn(BaseModel):
    note: str = Field(..., min_length=1, max_length=10000)


class PriorVisitIn(BaseModel):
    visit_date: Optional[str] = Field(None, pattern=DATE_REGEX)
    reason: Optional[str] = Field(None, max_length=500)
    provider: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=2000)


class ClinicalRecordsIn(BaseModel):
    vitals: Optional[VitalsIn] = None
    medical_history: Optional[MedicalHistoryIn] = None
    surgical_history: List[SurgicalHistoryIn] = Field(default_factory=list)
    medications: List[MedicationIn] = Field(default_factory=list)
    diagnostics: List[DiagnosticIn] = Field(default_factory=list)
    insurance: List[InsuranceIn] = Field(default_factory=list)
    clinic_notes: List[ClinicNoteIn] = Field(default_factory=list)
    prior_visits: List[PriorVisitIn] = Field(default_factory=list)


# =============================================================================
# PATIENTS
# =============================================================================

class PatientDemographics(BaseModel):
    clinic_id: Optional[int] = None
    date_of_birth: Optional[str] = Field(None, pattern=DATE_REGEX, example="1980-04-12")
    gender: Optional[Gender] = None
    mobile_phone: Optional[str] = Field(None, max_length=30)
    home_phone: Optional[str] = Field(None, max_length=30)
    ssn: Optional[str] = Field(None, max_length=20)
    ethnicity: Optional[str] = Field(None, max_length=100)
    race: Optional[str] = Field(None, max_length=100)
    preferred_language: Optional[str] = Field(None, max_length=50, example="English")
    street_address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)


class PatientCreate(PatientDemographics, ClinicalRecordsIn):
    """Schema for registering a patient.

    Creates a Patient login (username = email) and the patient record.
    The medical record number and EMR number are generated by the server.
    """
    email: EmailStr = Field(..., example="john.doe@example.com")
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100, example="John")
    last_name: str = Field(..., min_length=1, max_length=100, example="Doe")
    status: PatientStatus = "active"

    class Config:
        json_schema_extra = {
            "example": {
                "email": "john.doe@example.com",
                "password": "changeme123",
                "first_name": "John",
                "last_name": "Doe",
                "clinic_id": 1,
                "date_of_birth": "1980-04-12",
                "gender": "Male",
                "vitals": {"blood_pressure": "120/80", "heart_rate": "68"},
                "medications": [{"name": "Metformin", "dosage": "500 mg"}],
            }
        }


class PatientUpdate(PatientDemographics, ClinicalRecordsIn, PartialUpdate):
    not_null = ("email", "status", "preferred_language")

    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    status: Optional[PatientStatus] = None


class PatientResponse(BaseModel):
    """Patient with the clinical summary attached.

    Sub-record lists are returned as stored rows (including ids and
    timestamps), so they are typed loosely.
    """
    id: int
    user_id: int
    clinic_id: Optional[int] = None
    clinic_name: Optional[str] = None
    medical_record_number: str
    emr_number: str
    status: str
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    mobile_phone: Optional[str] = None
    home_phone: Optional[str] = None
    ssn: Optional[str] = None
    ethnicity: Optional[str] = None
    race: Optional[str] = None
    preferred_language: str
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    created_at: str
    updated_at: str
    vitals: Optional[dict] = None
    medical_history: Optional[dict] = None
    surgical_history: List[dict] = Field(default_factory=list)
    medications: List[dict] = Field(default_factory=list)
    diagnostics: List[dict] = Field(default_factory=list)
    insurance: List[dict] = Field(default_factory=list)
    clinic_notes: List[dict] = Field(default_factory=list)
    prior_visits: List[dict] = Field(default_factory=list)


class PatientSearchResult(BaseModel):
    id: int
    medical_record_number: str
    emr_number: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    clinic_id: Optional[int] = None
    status: str
