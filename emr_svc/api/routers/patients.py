"""
Patients router - patient registration, charts and MRN search.

Registering a patient creates their "Patient" user, generates the
medical record and EMR numbers, stores any nested clinical records in
the same transaction and queues a welcome email.

Requires the "Patient Management" module permission matching the HTTP
method.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.auth import CurrentUser, get_current_user, require_module_access
from core.dependencies import get_patient_service
from schemas import PatientCreate, PatientResponse, PatientSearchResult, PatientUpdate
from schemas.common import PatientStatus
from services import PatientService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/patients",
    tags=["Patients"],
    dependencies=[Depends(require_module_access("Patient Management"))],
)

DEFAULT_QUERY_LIMIT = 100
MAX_QUERY_LIMIT = 500


@router.get(
    "",
    response_model=List[PatientResponse],
    summary="List patients",
    description="Each patient carries summary records and the latest 5 clinic notes."
)
async def list_patients(
    clinic_id: Optional[int] = Query(None),
    status: Optional[PatientStatus] = Query(None),
    limit: int = Query(DEFAULT_QUERY_LIMIT, ge=1, le=MAX_QUERY_LIMIT),
    offset: int = Query(0, ge=0),
    patient_service: PatientService = Depends(get_patient_service),
):
    return patient_service.list_patients(clinic_id=clinic_id, status=status, limit=limit, offset=offset)


@router.post(
    "",
    response_model=PatientResponse,
    status_code=201,
    summary="Register a patient",
    description="Returns 409 if the email is already registered. A failure to queue the welcome "
                "email does not fail the request."
)
async def create_patient(
    patient: PatientCreate,
    current_user: CurrentUser = Depends(get_current_user),
    patient_service: PatientService = Depends(get_patient_service),
):
    return patient_service.create_patient(patient, author_id=current_user.id)


@router.get(
    "/search",
    response_model=List[PatientSearchResult],
    summary="Search by medical record number",
    description="Case-insensitive substring match on the MRN."
)
async def search_patients(
    mrn: str = Query(..., min_length=1, example="MRN2503"),
    clinic_id: Optional[int] = Query(None),
    patient_service: PatientService = Depends(get_patient_service),
):
    return patient_service.search_by_mrn(mrn, clinic_id=clinic_id)


@router.get("/meta/status-options", response_model=List[str], summary="Patient status values")
async def status_options():
    return PatientService.status_options()


@router.get(
    "/{patient_id}",
    response_model=PatientResponse,
    summary="Get a patient chart",
    description="Includes latest vitals and history, active medications and insurance, "
                "and the latest 10 clinic notes."
)
async def get_patient(patient_id: int, patient_service: PatientService = Depends(get_patient_service)):
    return patient_service.get_patient(patient_id)


@router.put(
    "/{patient_id}",
    response_model=PatientResponse,
    summary="Update a patient",
    description="Patches user and patient fields, replaces the latest vitals and medical history, "
                "and appends any list items."
)
async def update_patient(
    patient_id: int,
    patient: PatientUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    patient_service: PatientService = Depends(get_patient_service),
):
    return patient_service.update_patient(patient_id, patient, author_id=current_user.id)


@router.delete("/{patient_id}", status_code=204, summary="Delete a patient",
               description="Removes the patient, every clinical record and the user account.")
async def delete_patient(patient_id: int, patient_service: PatientService = Depends(get_patient_service)):
    patient_service.delete_patient(patient_id)
