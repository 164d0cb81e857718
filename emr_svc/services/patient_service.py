"""
Patient Service - Business logic for patient records.

This service handles:
- Patient registration with generated MRN and EMR numbers
- Clinical sub-records (vitals, history, medications, ...) in one transaction
- Welcome emails through the notifier
- MRN search

Architecture:
    API Layer (routers/patients) → PatientService → PatientRepository → Database
                                                  → EmailNotifier → Celery
"""
import logging
import random
import sqlite3
from typing import Any, Dict, List, Optional

from core.datetime_utils import utc_now
from core.exceptions import DatabaseError, DuplicateResourceError, NotFoundError, ValidationFailedError
from core.security import PasswordHasher
from repositories import PatientRepository
from schemas import PatientCreate, PatientResponse, PatientSearchResult, PatientUpdate
from schemas.common import PATIENT_STATUSES
from schemas.patient import ClinicalRecordsIn, PatientDemographics
from services.notification_service import EmailNotifier

logger = logging.getLogger(__name__)

PATIENT_USER_TYPE = "Patient"
DETAIL_NOTES_LIMIT = 10
LIST_NOTES_LIMIT = 5
MRN_ATTEMPTS = 20
CREATE_ATTEMPTS = 3

# Unique columns filled by the generators; a collision on these is retried
GENERATED_IDENTIFIERS = ("patients.medical_record_number", "patients.emr_number")

NESTED_FIELDS = tuple(ClinicalRecordsIn.model_fields)
PATIENT_FIELDS = tuple(PatientDemographics.model_fields) + ("status",)
USER_FIELDS = ("email", "first_name", "last_name")


class PatientService:
    """
    Service for patient operations.

    Depends on PatientRepository for storage, PasswordHasher for the
    patient login and EmailNotifier for the welcome email.
    """

    def __init__(self, patient_repository: PatientRepository, hasher: PasswordHasher,
                 notifier: EmailNotifier):
        self._repo = patient_repository
        self._hasher = hasher
        self._notifier = notifier

    # ------------------------------------------------------------ identifiers

    def _generate_mrn(self) -> str:
        """
        MRN{yy}{mm}{4 random digits}, retried until unused.

        Raises:
            DatabaseError: If no free number was found.
        """
        now = utc_now()
        prefix = f"MRN{now:%y%m}"
        for _ in range(MRN_ATTEMPTS):
            mrn = f"{prefix}{random.randint(0, 9999):04d}"
            if not self._repo.mrn_exists(mrn):
                return mrn
        raise DatabaseError("medical record number generation")

    def _generate_emr_number(self) -> str:
        """YYYYMM followed by the 4-digit sequence of the month."""
        prefix = f"{utc_now():%Y%m}"
        last = self._repo.last_emr_number_with_prefix(prefix)
        sequence = int(last[len(prefix):]) + 1 if last else 1
        return f"{prefix}{sequence:04d}"

    @staticmethod
    def _nested(data: ClinicalRecordsIn, author_id: Optional[int]) -> Dict[str, Any]:
        nested = data.model_dump(include=set(NESTED_FIELDS))
        for note in nested["clinic_notes"]:
            note["author_id"] = author_id
        return nested

    def _response(self, patient: Dict[str, Any], notes_limit: int) -> PatientResponse:
        return PatientResponse(**patient, **self._repo.get_clinical_summary(patient["id"], notes_limit))

    # ------------------------------------------------------------------- CRUD

    def create_patient(self, data: PatientCreate, author_id: Optional[int] = None) -> PatientResponse:
        """
        Register a patient.

        Creates the Patient user, the patient row and every nested
        sub-record atomically, then queues the welcome email.

        Args:
            data: Validated registration payload.
            author_id: User recorded as author of any clinic notes.

        Returns:
            PatientResponse with the clinical summary.

        Raises:
            DuplicateResourceError: If the email is already registered.
            ValidationFailedError: If clinic_id does not exist.
            DatabaseError: If no unused MRN/EMR number pair could be stored.
        """
        user = {
            "username": data.email,
            "email": data.email,
            "password_hash": self._hasher.hash(data.password),
            "user_type": PATIENT_USER_TYPE,
            "clinic_id": data.clinic_id,
            "first_name": data.first_name,
            "last_name": data.last_name,
            "phone": data.mobile_phone,
        }
        patient = data.model_dump(include=set(PATIENT_FIELDS))
        nested = self._nested(data, author_id)

        for _ in range(CREATE_ATTEMPTS):
            patient["medical_record_number"] = self._generate_mrn()
            patient["emr_number"] = self._generate_emr_number()
            try:
                patient_id = self._repo.create(user, patient, nested)
                break
            except sqlite3.IntegrityError as e:
                message = str(e)
                if "users.email" in message or "users.username" in message:
                    raise DuplicateResourceError("User", "email", data.email)
                if "FOREIGN KEY" in message:
                    raise ValidationFailedError("Unknown clinic", clinic_id=data.clinic_id)
                if not any(column in message for column in GENERATED_IDENTIFIERS):
                    raise DatabaseError("patient creation", error=message) from e
                logger.warning(f"Patient identifier collision, retrying: {message}")
        else:
            raise DatabaseError("patient identifier generation")

        # A queueing failure is logged by the notifier
        self._notifier.send_welcome(data.email, data.first_name)
        return self._response(self._repo.get(patient_id), DETAIL_NOTES_LIMIT)

    def get_patient(self, patient_id: int) -> PatientResponse:
        patient = self._repo.get(patient_id)
        if patient is None:
            raise NotFoundError("Patient", patient_id)
        return self._response(patient, DETAIL_NOTES_LIMIT)

    def list_patients(self, clinic_id: Optional[int] = None, status: Optional[str] = None,
                      limit: int = 100, offset: int = 0) -> List[PatientResponse]:
        rows = self._repo.list(clinic_id=clinic_id, status=status, limit=limit, offset=offset)
        return [self._response(p, LIST_NOTES_LIMIT) for p in rows]

    def update_patient(self, patient_id: int, data: PatientUpdate,
                       author_id: Optional[int] = None) -> PatientResponse:
        """
        Patch a patient.

        Vitals and medical history replace the current record; list items
        are appended.

        Raises:
            NotFoundError: Unknown patient.
            DuplicateResourceError: The new email is taken.
        """
        existing = self._repo.get(patient_id)
        if existing is None:
            raise NotFoundError("Patient", patient_id)

        fields = data.model_dump(exclude_unset=True, exclude=set(NESTED_FIELDS))
        user_fields = {k: v for k, v in fields.items() if k in USER_FIELDS}
        if "email" in user_fields:
            user_fields["username"] = user_fields["email"]
        if "mobile_phone" in fields:
            user_fields["phone"] = fields["mobile_phone"]
        patient_fields = {k: v for k, v in fields.items() if k in PATIENT_FIELDS}

        ok = self._repo.update(
            patient_id, existing["user_id"], user_fields, patient_fields, self._nested(data, author_id)
        )
        if not ok:
            raise DuplicateResourceError("User", "email", fields.get("email"))
        return self._response(self._repo.get(patient_id), DETAIL_NOTES_LIMIT)

    def delete_patient(self, patient_id: int) -> None:
        """Delete the patient, its sub-records and its user account."""
        if not self._repo.delete(patient_id):
            raise NotFoundError("Patient", patient_id)
        logger.info(f"Patient deleted: {patient_id}")

    def search_by_mrn(self, term: str, clinic_id: Optional[int] = None) -> List[PatientSearchResult]:
        return [PatientSearchResult(**p) for p in self._repo.search_by_mrn(term, clinic_id=clinic_id)]

    @staticmethod
    def status_options() -> List[str]:
        return list(PATIENT_STATUSES)
