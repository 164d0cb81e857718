"""
Pydantic schemas for API request/response validation.

This module re-exports the models used at API boundaries.
"""
from schemas.common import MessageResponse, CountResponse
from schemas.user import UserCreate, UserUpdate, UserStatusUpdate, UserResponse
from schemas.auth import (
    LoginRequest,
    LoginResponse,
    VerifyTokenResponse,
    ForgotPasswordRequest,
    ResetPasswordRequest,
)
from schemas.access import (
    RoleCreate,
    RoleUpdate,
    RoleResponse,
    NamedItemCreate,
    NamedItemResponse,
    ModuleOperationCreate,
    ModuleOperationResponse,
    ModuleWithOperations,
    ModuleOperationIds,
    GrantResult,
    GrantCount,
    PermissionCheckResponse,
)
from schemas.clinic import (
    ClinicCreate,
    ClinicUpdate,
    ClinicResponse,
    ClinicSettingsUpdate,
    ClinicSettingsResponse,
    LocationCreate,
    LocationUpdate,
    LocationResponse,
    LocationServiceCreate,
    LocationServiceUpdate,
    LocationServiceResponse,
    LocationScheduleCreate,
    LocationScheduleUpdate,
    LocationScheduleResponse,
    SpecialtyCreate,
    SpecialtyResponse,
    ClinicSpecialtyAssign,
    ClinicSpecialtyResponse,
    InsuranceProviderCreate,
    InsuranceProviderResponse,
    ClinicInsuranceAssign,
    ClinicInsuranceResponse,
    UserLocationAssign,
    UserLocationStatusUpdate,
    UserLocationResponse,
    LocationAccessResponse,
)
from schemas.schedule import (
    DaySchedule,
    UserScheduleCreate,
    UserScheduleUpdate,
    UserScheduleResponse,
    Slot,
    DaySlotsResponse,
)
from schemas.doctor import (
    DoctorCreate,
    DoctorUpdate,
    DoctorResponse,
    DoctorScheduleCreate,
    DoctorScheduleUpdate,
    DoctorScheduleResponse,
    AvailabilityResponse,
    TimeOffCreate,
    TimeOffUpdate,
    TimeOffResponse,
    TimeOffCheckResponse,
)
from schemas.staff import StaffCreate, StaffUpdate, StaffResponse, StaffStatsResponse
from schemas.patient import PatientCreate, PatientUpdate, PatientResponse, PatientSearchResult
from schemas.appointment import AppointmentCreate, AppointmentUpdate, AppointmentResponse
from schemas.task import (
    TaskCreate,
    TaskUpdate,
    TaskStatusUpdate,
    TaskResponse,
    TaskStatsResponse,
    CommentCreate,
    CommentResponse,
    HistoryEntry,
    AttachmentResponse,
    AssignableUser,
)
from schemas.form import (
    FormField,
    FormTemplateCreate,
    FormTemplateUpdate,
    FormTemplateResponse,
    FormSubmissionCreate,
    FormSubmissionResponse,
)
from schemas.meta import MetaOptionsResponse

__all__ = [
    # Common
    "MessageResponse",
    "CountResponse",
    # Users & auth
    "UserCreate",
    "UserUpdate",
    "UserStatusUpdate",
    "UserResponse",
    "LoginRequest",
    "LoginResponse",
    "VerifyTokenResponse",
    "ForgotPasswordRequest",
    "ResetPasswordRequest",
    # Access control
    "RoleCreate",
    "RoleUpdate",
    "RoleResponse",
    "NamedItemCreate",
    "NamedItemResponse",
    "ModuleOperationCreate",
    "ModuleOperationResponse",
    "ModuleWithOperations",
    "ModuleOperationIds",
    "GrantResult",
    "GrantCount",
    "PermissionCheckResponse",
    # Clinics
    "ClinicCreate",
    "ClinicUpdate",
    "ClinicResponse",
    "ClinicSettingsUpdate",
    "ClinicSettingsResponse",
    "LocationCreate",
    "LocationUpdate",
    "LocationResponse",
    "LocationServiceCreate",
    "LocationServiceUpdate",
    "LocationServiceResponse",
    "LocationScheduleCreate",
    "LocationScheduleUpdate",
    "LocationScheduleResponse",
    "SpecialtyCreate",
    "SpecialtyResponse",
    "ClinicSpecialtyAssign",
    "ClinicSpecialtyResponse",
    "InsuranceProviderCreate",
    "InsuranceProviderResponse",
    "ClinicInsuranceAssign",
    "ClinicInsuranceResponse",
    "UserLocationAssign",
    "UserLocationStatusUpdate",
    "UserLocationResponse",
    "LocationAccessResponse",
    # Schedules
    "DaySchedule",
    "UserScheduleCreate",
    "UserScheduleUpdate",
    "UserScheduleResponse",
    "Slot",
    "DaySlotsResponse",
    # Doctors
    "DoctorCreate",
    "DoctorUpdate",
    "DoctorResponse",
    "DoctorScheduleCreate",
    "DoctorScheduleUpdate",
    "DoctorScheduleResponse",
    "AvailabilityResponse",
    "TimeOffCreate",
    "TimeOffUpdate",
    "TimeOffResponse",
    "TimeOffCheckResponse",
    # Staff
    "StaffCreate",
    "StaffUpdate",
    "StaffResponse",
    "StaffStatsResponse",
    # Patients
    "PatientCreate",
    "PatientUpdate",
    "PatientResponse",
    "PatientSearchResult",
    # Appointments
    "AppointmentCreate",
    "AppointmentUpdate",
    "AppointmentResponse",
    # Tasks
    "TaskCreate",
    "TaskUpdate",
    "TaskStatusUpdate",
    "TaskResponse",
    "TaskStatsResponse",
    "CommentCreate",
    "CommentResponse",
    "HistoryEntry",
    "AttachmentResponse",
    "AssignableUser",
    # Forms
    "FormField",
    "FormTemplateCreate",
    "FormTemplateUpdate",
    "FormTemplateResponse",
    "FormSubmissionCreate",
    "FormSubmissionResponse",
    # Meta
    "MetaOptionsResponse",
]
