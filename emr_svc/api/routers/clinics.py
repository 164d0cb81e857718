"""
Clinics router - clinic configuration endpoints.

Covers clinics and their settings, locations, location services and
schedules, the specialty and insurance catalogs, and user-to-location
assignments. All endpoints require the "Clinic Management" module
permission matching the HTTP method.

Static paths (/specialties, /locations/..., /user-locations/...) are
declared before /{clinic_id} so they are not captured by it.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.auth import require_module_access
from core.dependencies import get_clinic_service
from schemas import (
    ClinicCreate,
    ClinicInsuranceAssign,
    ClinicInsuranceResponse,
    ClinicResponse,
    ClinicSettingsResponse,
    ClinicSettingsUpdate,
    ClinicSpecialtyAssign,
    ClinicSpecialtyResponse,
    ClinicUpdate,
    InsuranceProviderCreate,
    InsuranceProviderResponse,
    LocationAccessResponse,
    LocationCreate,
    LocationResponse,
    LocationScheduleCreate,
    LocationScheduleResponse,
    LocationScheduleUpdate,
    LocationServiceCreate,
    LocationServiceResponse,
    LocationServiceUpdate,
    LocationUpdate,
    SpecialtyCreate,
    SpecialtyResponse,
    UserLocationAssign,
    UserLocationResponse,
    UserLocationStatusUpdate,
)
from schemas.common import DATE_REGEX
from services import ClinicService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/clinics",
    tags=["Clinics"],
    dependencies=[Depends(require_module_access("Clinic Management"))],
)


# =============================================================================
# GLOBAL CATALOGS
# =============================================================================

@router.get("/specialties", response_model=List[SpecialtyResponse], summary="List medical specialties")
async def list_specialties(clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.list_specialties()


@router.post("/specialties", response_model=SpecialtyResponse, status_code=201, summary="Create a specialty")
async def create_specialty(body: SpecialtyCreate, clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.create_specialty(body)


@router.get("/insurance-providers", response_model=List[InsuranceProviderResponse],
            summary="List insurance providers")
async def list_providers(clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.list_providers()


@router.post("/insurance-providers", response_model=InsuranceProviderResponse, status_code=201,
             summary="Create an insurance provider")
async def create_provider(body: InsuranceProviderCreate, clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.create_provider(body)


# =============================================================================
# LOCATIONS
# =============================================================================

@router.get("/locations/{location_id}", response_model=LocationResponse, summary="Get a location")
async def get_location(location_id: int, clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.get_location(location_id)


@router.put(
    "/locations/{location_id}",
    response_model=LocationResponse,
    summary="Update a location",
    description="The hours document is validated like a weekly schedule."
)
async def update_location(location_id: int, body: LocationUpdate,
                          clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.update_location(location_id, body)


@router.delete("/locations/{location_id}", status_code=204, summary="Delete a location")
async def delete_location(location_id: int, clinic_service: ClinicService = Depends(get_clinic_service)):
    clinic_service.delete_location(location_id)


@router.get("/locations/{location_id}/services", response_model=List[LocationServiceResponse],
            summary="List services offered at a location")
async def list_services(
    location_id: int,
    active_only: bool = Query(False, description="Only active services"),
    clinic_service: ClinicService = Depends(get_clinic_service),
):
    return clinic_service.list_services(location_id, active_only=active_only)


@router.post("/locations/{location_id}/services", response_model=LocationServiceResponse, status_code=201,
             summary="Add a service to a location")
async def create_service(location_id: int, body: LocationServiceCreate,
                         clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.create_service(location_id, body)


@router.put("/services/{service_id}", response_model=LocationServiceResponse, summary="Update a location service")
async def update_service(service_id: int, body: LocationServiceUpdate,
                         clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.update_service(service_id, body)


@router.delete("/services/{service_id}", status_code=204, summary="Delete a location service")
async def delete_service(service_id: int, clinic_service: ClinicService = Depends(get_clinic_service)):
    clinic_service.delete_service(service_id)


@router.get("/locations/{location_id}/schedules", response_model=List[LocationScheduleResponse],
            summary="List location schedules")
async def list_location_schedules(location_id: int, clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.list_schedules(location_id)


@router.post(
    "/locations/{location_id}/schedules",
    response_model=LocationScheduleResponse,
    status_code=201,
    summary="Create a location schedule",
    description="Enabled days need start < end and any break inside working hours."
)
async def create_location_schedule(location_id: int, body: LocationScheduleCreate,
                                   clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.create_schedule(location_id, body)


@router.get(
    "/locations/{location_id}/schedules/current",
    response_model=LocationScheduleResponse,
    summary="Schedule in effect",
    description="The active schedule in effect on the date (default today), latest effective_from first."
)
async def get_current_location_schedule(
    location_id: int,
    date: Optional[str] = Query(None, pattern=DATE_REGEX),
    clinic_service: ClinicService = Depends(get_clinic_service),
):
    return clinic_service.get_current_schedule(location_id, date)


@router.get(
    "/locations/{location_id}/schedules/range",
    response_model=List[LocationScheduleResponse],
    summary="Schedules overlapping a date range"
)
async def list_location_schedules_in_range(
    location_id: int,
    start: str = Query(..., pattern=DATE_REGEX),
    end: str = Query(..., pattern=DATE_REGEX),
    clinic_service: ClinicService = Depends(get_clinic_service),
):
    return clinic_service.list_schedules_in_range(location_id, start, end)


@router.get("/schedules/{schedule_id}", response_model=LocationScheduleResponse, summary="Get a location schedule")
async def get_location_schedule(schedule_id: int, clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.get_schedule(schedule_id)


@router.put("/schedules/{schedule_id}", response_model=LocationScheduleResponse,
            summary="Update a location schedule")
async def update_location_schedule(schedule_id: int, body: LocationScheduleUpdate,
                                   clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.update_schedule(schedule_id, body)


@router.delete("/schedules/{schedule_id}", status_code=204, summary="Delete a location schedule")
async def delete_location_schedule(schedule_id: int, clinic_service: ClinicService = Depends(get_clinic_service)):
    clinic_service.delete_schedule(schedule_id)


# =============================================================================
# USER LOCATIONS
# =============================================================================

@router.get("/locations/{location_id}/users", response_model=List[UserLocationResponse],
            summary="Users assigned to a location")
async def list_location_users(location_id: int, clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.list_location_users(location_id)


@router.post("/user-locations", response_model=UserLocationResponse, status_code=201,
             summary="Assign a user to a location")
async def assign_user_location(body: UserLocationAssign, clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.assign_user_location(body)


@router.get(
    "/user-locations/check",
    response_model=LocationAccessResponse,
    summary="Check location access",
    description="True when the user has an active assignment at the location."
)
async def check_location_access(
    user_id: int = Query(...),
    location_id: int = Query(...),
    clinic_service: ClinicService = Depends(get_clinic_service),
):
    return clinic_service.check_location_access(user_id, location_id)


@router.get("/user-locations/user/{user_id}", response_model=List[UserLocationResponse],
            summary="Locations of a user")
async def list_user_locations(user_id: int, clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.list_user_locations(user_id)


@router.put(
    "/user-locations/user/{user_id}/primary/{location_id}",
    response_model=List[UserLocationResponse],
    summary="Set a user's primary location",
    description="Clears the primary flag on the user's other locations in the same transaction."
)
async def set_primary_location(user_id: int, location_id: int,
                               clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.set_primary_location(user_id, location_id)


@router.patch("/user-locations/{assignment_id}/status", response_model=UserLocationResponse,
              summary="Update an assignment's status")
async def update_user_location_status(assignment_id: int, body: UserLocationStatusUpdate,
                                      clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.update_user_location_status(assignment_id, body.status, body.notes)


@router.delete("/user-locations/{assignment_id}", status_code=204, summary="Remove a location assignment")
async def remove_user_location(assignment_id: int, clinic_service: ClinicService = Depends(get_clinic_service)):
    clinic_service.remove_user_location(assignment_id)


# =============================================================================
# CLINICS
# =============================================================================

@router.get("", response_model=List[ClinicResponse], summary="List clinics")
async def list_clinics(clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.list_clinics()


@router.post("", response_model=ClinicResponse, status_code=201, summary="Create a clinic")
async def create_clinic(body: ClinicCreate, clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.create_clinic(body)


@router.get("/{clinic_id}", response_model=ClinicResponse, summary="Get a clinic")
async def get_clinic(clinic_id: int, clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.get_clinic(clinic_id)


@router.put("/{clinic_id}", response_model=ClinicResponse, summary="Update a clinic")
async def update_clinic(clinic_id: int, body: ClinicUpdate, clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.update_clinic(clinic_id, body)


@router.delete("/{clinic_id}", status_code=204, summary="Delete a clinic")
async def delete_clinic(clinic_id: int, clinic_service: ClinicService = Depends(get_clinic_service)):
    clinic_service.delete_clinic(clinic_id)


@router.get(
    "/{clinic_id}/settings",
    response_model=ClinicSettingsResponse,
    summary="Get clinic settings",
    description="Returns the defaults when the clinic has never saved settings."
)
async def get_settings(clinic_id: int, clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.get_settings(clinic_id)


@router.put("/{clinic_id}/settings", response_model=ClinicSettingsResponse, summary="Save clinic settings")
async def update_settings(clinic_id: int, body: ClinicSettingsUpdate,
                          clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.update_settings(clinic_id, body)


@router.get("/{clinic_id}/locations", response_model=List[LocationResponse], summary="List a clinic's locations")
async def list_locations(clinic_id: int, clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.list_locations(clinic_id)


@router.post("/{clinic_id}/locations", response_model=LocationResponse, status_code=201,
             summary="Create a location")
async def create_location(clinic_id: int, body: LocationCreate,
                          clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.create_location(clinic_id, body)


@router.get("/{clinic_id}/specialties", response_model=List[ClinicSpecialtyResponse],
            summary="Specialties offered by a clinic")
async def list_clinic_specialties(clinic_id: int, clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.list_clinic_specialties(clinic_id)


@router.post("/{clinic_id}/specialties", response_model=List[ClinicSpecialtyResponse], status_code=201,
             summary="Add a specialty to a clinic")
async def add_clinic_specialty(clinic_id: int, body: ClinicSpecialtyAssign,
                               clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.add_clinic_specialty(clinic_id, body.specialty_id, body.is_primary, body.notes)


@router.delete("/{clinic_id}/specialties/{specialty_id}", status_code=204,
               summary="Remove a specialty from a clinic")
async def remove_clinic_specialty(clinic_id: int, specialty_id: int,
                                  clinic_service: ClinicService = Depends(get_clinic_service)):
    clinic_service.remove_clinic_specialty(clinic_id, specialty_id)


@router.get("/{clinic_id}/insurances", response_model=List[ClinicInsuranceResponse],
            summary="Insurance accepted by a clinic")
async def list_clinic_insurances(clinic_id: int, clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.list_clinic_insurances(clinic_id)


@router.post("/{clinic_id}/insurances", response_model=List[ClinicInsuranceResponse], status_code=201,
             summary="Accept an insurance provider")
async def add_clinic_insurance(clinic_id: int, body: ClinicInsuranceAssign,
                               clinic_service: ClinicService = Depends(get_clinic_service)):
    return clinic_service.add_clinic_insurance(clinic_id, body.provider_id, body.notes)


@router.delete("/{clinic_id}/insurances/{provider_id}", status_code=204,
               summary="Stop accepting an insurance provider")
async def remove_clinic_insurance(clinic_id: int, provider_id: int,
                                  clinic_service: ClinicService = Depends(get_clinic_service)):
    clinic_service.remove_clinic_insurance(clinic_id, provider_id)
