"""
Meta router - enumerations for client dropdowns.

Exposes every fixed value set the API validates against, so clients
do not hardcode them. No authentication required for read-only metadata.
"""
import logging

from fastapi import APIRouter

from core.datetime_utils import WEEKDAY_NAMES
from schemas import MetaOptionsResponse
from schemas.common import (
    APPOINTMENT_STATUSES,
    APPOINTMENT_TYPES,
    CLINIC_TYPES,
    DEPARTMENTS,
    EMPLOYMENT_STATUSES,
    FORM_FIELD_TYPES,
    GENDERS,
    PATIENT_STATUSES,
    SLOT_DURATIONS,
    STAFF_STATUSES,
    TASK_PRIORITIES,
    TASK_STATUSES,
    TIME_OFF_REASONS,
    USER_LOCATION_STATUSES,
    USER_STATUSES,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/meta",
    tags=["Metadata"],
    # No authentication - these are public read-only endpoints
)


@router.get(
    "/options",
    response_model=MetaOptionsResponse,
    summary="Enumerated values",
    description="Statuses, types, departments, reasons and other fixed value sets used across the API."
)
async def get_options() -> MetaOptionsResponse:
    return MetaOptionsResponse(
        patient_statuses=list(PATIENT_STATUSES),
        genders=list(GENDERS),
        user_statuses=list(USER_STATUSES),
        staff_statuses=list(STAFF_STATUSES),
        departments=list(DEPARTMENTS),
        employment_statuses=list(EMPLOYMENT_STATUSES),
        time_off_reasons=list(TIME_OFF_REASONS),
        appointment_types=list(APPOINTMENT_TYPES),
        appointment_statuses=list(APPOINTMENT_STATUSES),
        task_statuses=list(TASK_STATUSES),
        task_priorities=list(TASK_PRIORITIES),
        clinic_types=list(CLINIC_TYPES),
        user_location_statuses=list(USER_LOCATION_STATUSES),
        form_field_types=list(FORM_FIELD_TYPES),
        slot_durations=list(SLOT_DURATIONS),
        weekdays=list(WEEKDAY_NAMES),
    )
