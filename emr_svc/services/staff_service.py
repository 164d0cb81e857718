"""
Service layer for clinic staff members.
"""
import logging
import sqlite3
from typing import List, Optional

from core.exceptions import DuplicateResourceError, NotFoundError, ValidationFailedError
from core.security import PasswordHasher
from repositories import StaffRepository
from schemas import StaffCreate, StaffResponse, StaffStatsResponse, StaffUpdate
from schemas.staff import StaffProfile

logger = logging.getLogger(__name__)

STAFF_USER_TYPE = "Staff"
USER_FIELDS = ("email", "first_name", "last_name", "phone", "clinic_id", "role_id")
STAFF_ONLY_FIELDS = tuple(StaffProfile.model_fields) + (
    "clinic_id", "employee_id", "department", "employment_status", "status",
)


class StaffService:
    """Business logic for staff members and their login accounts."""

    def __init__(self, staff_repository: StaffRepository, hasher: PasswordHasher):
        self._repo = staff_repository
        self._hasher = hasher

    def list_staff(self, clinic_id: Optional[int] = None, department: Optional[str] = None,
                   status: Optional[str] = None, location_id: Optional[int] = None) -> List[StaffResponse]:
        rows = self._repo.list(clinic_id=clinic_id, department=department, status=status, location_id=location_id)
        return [StaffResponse(**s) for s in rows]

    def get_staff(self, staff_id: int) -> StaffResponse:
        staff = self._repo.get(staff_id)
        if staff is None:
            raise NotFoundError("Staff member", staff_id)
        return StaffResponse(**staff)

    def create_staff(self, data: StaffCreate) -> StaffResponse:
        """
        Create a staff member together with their user account.

        Raises:
            DuplicateResourceError: employee_id, email or username already taken.
        """
        if self._repo.employee_id_taken(data.employee_id):
            raise DuplicateResourceError("Staff member", "employee_id", data.employee_id)

        user = {
            "username": data.username or data.email,
            "email": data.email,
            "password_hash": self._hasher.hash(data.password),
            "user_type": STAFF_USER_TYPE,
            "clinic_id": data.clinic_id,
            "role_id": data.role_id,
            "first_name": data.first_name,
            "last_name": data.last_name,
            "phone": data.phone,
            "status": "active" if data.status == "active" else "inactive",
        }
        profile = data.model_dump(include=set(STAFF_ONLY_FIELDS))

        staff = self._repo.create(user, profile)
        if staff is None:
            raise DuplicateResourceError("User", "email or username")
        logger.info(f"Staff member created: {staff['email']} (id={staff['id']})")
        return StaffResponse(**staff)

    def update_staff(self, staff_id: int, data: StaffUpdate) -> StaffResponse:
        """
        Patch staff and user fields together.

        Raises:
            NotFoundError: Unknown staff member.
            DuplicateResourceError: employee_id or email already taken.
        """
        existing = self._repo.get(staff_id)
        if existing is None:
            raise NotFoundError("Staff member", staff_id)

        fields = data.model_dump(exclude_unset=True)
        if "employee_id" in fields and self._repo.employee_id_taken(fields["employee_id"], exclude_staff_id=staff_id):
            raise DuplicateResourceError("Staff member", "employee_id", fields["employee_id"])

        user_fields = {k: v for k, v in fields.items() if k in USER_FIELDS}
        if "status" in fields:
            # Only active staff may log in
            user_fields["status"] = "active" if fields["status"] == "active" else "inactive"
        staff_fields = {k: v for k, v in fields.items() if k in STAFF_ONLY_FIELDS}

        updated = self._repo.update(staff_id, existing["user_id"], user_fields, staff_fields)
        if updated is None:
            raise DuplicateResourceError("User", "email")
        return StaffResponse(**updated)

    def delete_staff(self, staff_id: int) -> None:
        """Delete the staff member and their user account."""
        try:
            deleted = self._repo.delete(staff_id)
        except sqlite3.IntegrityError:
            raise ValidationFailedError("Staff member is still referenced by other records", staff_id=staff_id)
        if not deleted:
            raise NotFoundError("Staff member", staff_id)
        logger.info(f"Staff member deleted: {staff_id}")

    def get_stats(self, clinic_id: Optional[int] = None) -> StaffStatsResponse:
        return StaffStatsResponse(**self._repo.stats(clinic_id))

    def list_supervisors(self, clinic_id: int, exclude_staff_id: Optional[int] = None) -> List[StaffResponse]:
        return [StaffResponse(**s) for s in self._repo.list_supervisors(clinic_id, exclude_staff_id)]
