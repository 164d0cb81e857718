"""
Service layer for clinic configuration.

Covers clinics and their settings, locations, location services, location
schedules, the specialty and insurance catalogs, and user-to-location
assignments.
"""
import logging
from typing import Any, Dict, List, Optional

from core.datetime_utils import today_iso
from core.exceptions import DuplicateResourceError, NotFoundError, ValidationFailedError
from repositories import CatalogRepository, ClinicRepository, UserLocationRepository
from schemas import (
    ClinicCreate,
    ClinicInsuranceResponse,
    ClinicResponse,
    ClinicSettingsResponse,
    ClinicSettingsUpdate,
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
)
from services.scheduling import validate_effective_window, validate_weekly_schedule

logger = logging.getLogger(__name__)


class ClinicService:
    """Business logic for clinic configuration."""

    def __init__(
        self,
        clinic_repository: ClinicRepository,
        catalog_repository: CatalogRepository,
        user_location_repository: UserLocationRepository,
    ):
        self._clinics = clinic_repository
        self._catalog = catalog_repository
        self._user_locations = user_location_repository

    # ---------------------------------------------------------------- clinics

    def list_clinics(self) -> List[ClinicResponse]:
        return [ClinicResponse(**c) for c in self._clinics.list_clinics()]

    def _require_clinic(self, clinic_id: int) -> Dict[str, Any]:
        clinic = self._clinics.get_clinic(clinic_id)
        if clinic is None:
            raise NotFoundError("Clinic", clinic_id)
        return clinic

    def get_clinic(self, clinic_id: int) -> ClinicResponse:
        return ClinicResponse(**self._require_clinic(clinic_id))

    def create_clinic(self, data: ClinicCreate) -> ClinicResponse:
        clinic = self._clinics.create_clinic(data.model_dump())
        return ClinicResponse(**clinic)

    def update_clinic(self, clinic_id: int, data: ClinicUpdate) -> ClinicResponse:
        self._require_clinic(clinic_id)
        clinic = self._clinics.update_clinic(clinic_id, data.model_dump(exclude_unset=True))
        return ClinicResponse(**clinic)

    def delete_clinic(self, clinic_id: int) -> None:
        if not self._clinics.delete_clinic(clinic_id):
            raise NotFoundError("Clinic", clinic_id)
        logger.info(f"Clinic deleted: {clinic_id}")

    # --------------------------------------------------------------- settings

    def get_settings(self, clinic_id: int) -> ClinicSettingsResponse:
        """Return the clinic's settings, or the defaults when none are stored."""
        self._require_clinic(clinic_id)
        return ClinicSettingsResponse(**self._clinics.get_settings(clinic_id))

    def update_settings(self, clinic_id: int, data: ClinicSettingsUpdate) -> ClinicSettingsResponse:
        self._require_clinic(clinic_id)
        settings = self._clinics.upsert_settings(clinic_id, data.model_dump(exclude_unset=True))
        logger.info(f"Settings updated for clinic {clinic_id}")
        return ClinicSettingsResponse(**settings)

    # -------------------------------------------------------------- locations

    def list_locations(self, clinic_id: int) -> List[LocationResponse]:
        self._require_clinic(clinic_id)
        return [LocationResponse(**loc) for loc in self._clinics.list_locations(clinic_id)]

    def _require_location(self, location_id: int) -> Dict[str, Any]:
        location = self._clinics.get_location(location_id)
        if location is None:
            raise NotFoundError("Location", location_id)
        return location

    def get_location(self, location_id: int) -> LocationResponse:
        return LocationResponse(**self._require_location(location_id))

    def create_location(self, clinic_id: int, data: LocationCreate) -> LocationResponse:
        self._require_clinic(clinic_id)
        fields = data.model_dump()
        if fields.get("hours"):
            validate_weekly_schedule(fields["hours"])
        location = self._clinics.create_location(clinic_id, fields)
        logger.info(f"Location created: {location['name']} (id={location['id']}, clinic={clinic_id})")
        return LocationResponse(**location)

    def update_location(self, location_id: int, data: LocationUpdate) -> LocationResponse:
        self._require_location(location_id)
        fields = data.model_dump(exclude_unset=True)
        if fields.get("hours"):
            validate_weekly_schedule(fields["hours"])
        return LocationResponse(**self._clinics.update_location(location_id, fields))

    def delete_location(self, location_id: int) -> None:
        if not self._clinics.delete_location(location_id):
            raise NotFoundError("Location", location_id)

    # ------------------------------------------------------ location services

    def list_services(self, location_id: int, active_only: bool = False) -> List[LocationServiceResponse]:
        self._require_location(location_id)
        return [LocationServiceResponse(**s) for s in self._clinics.list_services(location_id, active_only)]

    def create_service(self, location_id: int, data: LocationServiceCreate) -> LocationServiceResponse:
        self._require_location(location_id)
        return LocationServiceResponse(**self._clinics.create_service(location_id, data.model_dump()))

    def update_service(self, service_id: int, data: LocationServiceUpdate) -> LocationServiceResponse:
        if self._clinics.get_service(service_id) is None:
            raise NotFoundError("Location service", service_id)
        return LocationServiceResponse(
            **self._clinics.update_service(service_id, data.model_dump(exclude_unset=True))
        )

    def delete_service(self, service_id: int) -> None:
        if not self._clinics.delete_service(service_id):
            raise NotFoundError("Location service", service_id)

    # ----------------------------------------------------- location schedules

    def list_schedules(self, location_id: int) -> List[LocationScheduleResponse]:
        self._require_location(location_id)
        return [LocationScheduleResponse(**s) for s in self._clinics.list_schedules(location_id)]

    def get_schedule(self, schedule_id: int) -> LocationScheduleResponse:
        schedule = self._clinics.get_schedule(schedule_id)
        if schedule is None:
            raise NotFoundError("Location schedule", schedule_id)
        return LocationScheduleResponse(**schedule)

    def create_schedule(self, location_id: int, data: LocationScheduleCreate) -> LocationScheduleResponse:
        """
        Raises:
            NotFoundError: Unknown location.
            ValidationFailedError: Inconsistent hours or effective window.
        """
        self._require_location(location_id)
        fields = data.model_dump()
        validate_weekly_schedule(fields["weekly_schedule"])
        validate_effective_window(fields["effective_from"], fields.get("effective_to"))
        schedule = self._clinics.create_schedule(location_id, fields)
        logger.info(f"Location schedule created: {schedule['schedule_name']} (location={location_id})")
        return LocationScheduleResponse(**schedule)

    def update_schedule(self, schedule_id: int, data: LocationScheduleUpdate) -> LocationScheduleResponse:
        existing = self._clinics.get_schedule(schedule_id)
        if existing is None:
            raise NotFoundError("Location schedule", schedule_id)
        fields = data.model_dump(exclude_unset=True)
        if fields.get("weekly_schedule"):
            validate_weekly_schedule(fields["weekly_schedule"])
        validate_effective_window(
            fields.get("effective_from", existing["effective_from"]),
            fields.get("effective_to", existing["effective_to"]),
        )
        return LocationScheduleResponse(**self._clinics.update_schedule(schedule_id, fields))

    def delete_schedule(self, schedule_id: int) -> None:
        if not self._clinics.delete_schedule(schedule_id):
            raise NotFoundError("Location schedule", schedule_id)

    def get_current_schedule(self, location_id: int, on_date: Optional[str] = None) -> LocationScheduleResponse:
        """
        The active schedule in effect today (or on ``on_date``).

        Raises:
            NotFoundError: If no schedule is in effect.
        """
        self._require_location(location_id)
        schedule = self._clinics.get_current_schedule(location_id, on_date or today_iso())
        if schedule is None:
            raise NotFoundError("Current schedule for location", location_id)
        return LocationScheduleResponse(**schedule)

    def list_schedules_in_range(self, location_id: int, start: str, end: str) -> List[LocationScheduleResponse]:
        if end < start:
            raise ValidationFailedError("end must not be before start")
        self._require_location(location_id)
        return [
            LocationScheduleResponse(**s)
            for s in self._clinics.list_schedules_in_range(location_id, start, end)
        ]

    # ------------------------------------------------------------ specialties

    def list_specialties(self) -> List[SpecialtyResponse]:
        return [SpecialtyResponse(**s) for s in self._catalog.list_specialties()]

    def create_specialty(self, data: SpecialtyCreate) -> SpecialtyResponse:
        specialty = self._catalog.create_specialty(data.name, data.description)
        if specialty is None:
            raise DuplicateResourceError("Specialty", "name", data.name)
        return SpecialtyResponse(**specialty)

    def list_clinic_specialties(self, clinic_id: int) -> List[ClinicSpecialtyResponse]:
        self._require_clinic(clinic_id)
        return [ClinicSpecialtyResponse(**s) for s in self._catalog.list_clinic_specialties(clinic_id)]

    def add_clinic_specialty(self, clinic_id: int, specialty_id: int, is_primary: bool = False,
                             notes: Optional[str] = None) -> List[ClinicSpecialtyResponse]:
        self._require_clinic(clinic_id)
        if self._catalog.get_specialty(specialty_id) is None:
            raise NotFoundError("Specialty", specialty_id)
        if not self._catalog.add_clinic_specialty(clinic_id, specialty_id, is_primary, notes):
            raise DuplicateResourceError("Clinic specialty")
        return self.list_clinic_specialties(clinic_id)

    def remove_clinic_specialty(self, clinic_id: int, specialty_id: int) -> None:
        if not self._catalog.remove_clinic_specialty(clinic_id, specialty_id):
            raise NotFoundError("Clinic specialty", specialty_id)

    # -------------------------------------------------------------- insurance

    def list_providers(self) -> List[InsuranceProviderResponse]:
        return [InsuranceProviderResponse(**p) for p in self._catalog.list_providers()]

    def create_provider(self, data: InsuranceProviderCreate) -> InsuranceProviderResponse:
        provider = self._catalog.create_provider(data.name, data.payer_id, data.phone)
        if provider is None:
            raise DuplicateResourceError("Insurance provider", "name", data.name)
        return InsuranceProviderResponse(**provider)

    def list_clinic_insurances(self, clinic_id: int) -> List[ClinicInsuranceResponse]:
        self._require_clinic(clinic_id)
        return [ClinicInsuranceResponse(**i) for i in self._catalog.list_clinic_insurances(clinic_id)]

    def add_clinic_insurance(self, clinic_id: int, provider_id: int,
                             notes: Optional[str] = None) -> List[ClinicInsuranceResponse]:
        self._require_clinic(clinic_id)
        if self._catalog.get_provider(provider_id) is None:
            raise NotFoundError("Insurance provider", provider_id)
        if not self._catalog.add_clinic_insurance(clinic_id, provider_id, notes):
            raise DuplicateResourceError("Clinic insurance")
        return self.list_clinic_insurances(clinic_id)

    def remove_clinic_insurance(self, clinic_id: int, provider_id: int) -> None:
        if not self._catalog.remove_clinic_insurance(clinic_id, provider_id):
            raise NotFoundError("Clinic insurance", provider_id)

    # --------------------------------------------------------- user locations

    def assign_user_location(self, data: UserLocationAssign) -> UserLocationResponse:
        """
        Assign a user to a location of the location's clinic.

        Raises:
            NotFoundError: Unknown location.
            DuplicateResourceError: The user is already assigned there (or does not exist).
        """
        location = self._require_location(data.location_id)
        assignment = self._user_locations.assign(
            data.user_id, location["clinic_id"], data.location_id, data.is_primary, data.notes
        )
        if assignment is None:
            raise DuplicateResourceError("User location assignment")
        logger.info(f"User {data.user_id} assigned to location {data.location_id}")
        return UserLocationResponse(**assignment)

    def list_user_locations(self, user_id: int) -> List[UserLocationResponse]:
        return [UserLocationResponse(**a) for a in self._user_locations.list_for_user(user_id)]

    def list_location_users(self, location_id: int) -> List[UserLocationResponse]:
        self._require_location(location_id)
        return [UserLocationResponse(**a) for a in self._user_locations.list_for_location(location_id)]

    def set_primary_location(self, user_id: int, location_id: int) -> List[UserLocationResponse]:
        """Make ``location_id`` the user's only primary location."""
        if not self._user_locations.set_primary(user_id, location_id):
            raise NotFoundError("User location assignment")
        return self.list_user_locations(user_id)

    def update_user_location_status(self, assignment_id: int, status: str,
                                    notes: Optional[str] = None) -> UserLocationResponse:
        if self._user_locations.get(assignment_id) is None:
            raise NotFoundError("User location assignment", assignment_id)
        return UserLocationResponse(**self._user_locations.update_status(assignment_id, status, notes))

    def remove_user_location(self, assignment_id: int) -> None:
        if not self._user_locations.remove(assignment_id):
            raise NotFoundError("User location assignment", assignment_id)

    def check_location_access(self, user_id: int, location_id: int) -> LocationAccessResponse:
        return LocationAccessResponse(
            user_id=user_id,
            location_id=location_id,
            has_access=self._user_locations.has_access(user_id, location_id),
        )
