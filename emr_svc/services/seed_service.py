"""
Bootstrap seeding of the access-control catalog, default clinic and superadmin.

Every step looks rows up by name and only creates what is missing, so
seed() can run on every startup.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from core.security import PasswordHasher
from core.seed_catalog import SeedCatalog
from repositories import ROLE_GRANTS, AccessRepository, ClinicRepository, UserRepository

logger = logging.getLogger(__name__)


@dataclass
class SeedReport:
    """What a seed run created. Empty lists mean everything already existed."""
    roles: List[str] = field(default_factory=list)
    modules: List[str] = field(default_factory=list)
    operations: List[str] = field(default_factory=list)
    module_operations: int = 0
    grants: Dict[str, int] = field(default_factory=dict)
    clinic_id: Optional[int] = None
    superadmin_created: bool = False


class SeedService:
    """Applies a SeedCatalog to the database."""

    def __init__(
        self,
        access_repository: AccessRepository,
        clinic_repository: ClinicRepository,
        user_repository: UserRepository,
        hasher: PasswordHasher,
        catalog: SeedCatalog,
        superadmin_password: Optional[str] = None,
    ):
        """
        Args:
            superadmin_password: Overrides the catalog password when set.
        """
        self._access = access_repository
        self._clinics = clinic_repository
        self._users = user_repository
        self._hasher = hasher
        self._catalog = catalog
        self._superadmin_password = superadmin_password or catalog.superadmin.password

    def seed(self) -> SeedReport:
        report = SeedReport()

        role_ids = {}
        for role in self._catalog.roles:
            existing = self._access.get_role_by_name(role.name)
            if existing is None:
                existing = self._access.create_role(role.name, role.description, role.is_practice_role)
                report.roles.append(role.name)
            role_ids[role.name] = existing["id"]

        module_ids = []
        for module in self._catalog.modules:
            existing = self._access.get_module_by_name(module.name)
            if existing is None:
                existing = self._access.create_module(module.name, module.description)
                report.modules.append(module.name)
            module_ids.append(existing["id"])

        operation_ids = []
        for operation in self._catalog.operations:
            existing = self._access.get_operation_by_name(operation.name)
            if existing is None:
                existing = self._access.create_operation(operation.name, operation.description)
                report.operations.append(operation.name)
            operation_ids.append(existing["id"])

        module_operation_ids = []
        for module_id in module_ids:
            for operation_id in operation_ids:
                pair = self._access.create_module_operation(module_id, operation_id)
                if pair is not None:
                    report.module_operations += 1
                else:
                    pair = self._access.get_module_operation(module_id, operation_id)
                module_operation_ids.append(pair["module_operation_id"])

        for role in self._catalog.roles:
            if role.grant_all:
                added = self._access.add_grants(ROLE_GRANTS, role_ids[role.name], module_operation_ids)
                report.grants[role.name] = added

        clinic = self._clinics.get_clinic_by_name(self._catalog.clinic["name"])
        if clinic is None:
            clinic = self._clinics.create_clinic(self._catalog.clinic)
            logger.info(f"Created default clinic: {clinic['name']}")
        report.clinic_id = clinic["id"]

        admin = self._catalog.superadmin
        if not self._users.email_or_username_taken(admin.email, admin.username):
            self._users.create({
                "username": admin.username,
                "email": admin.email,
                "password_hash": self._hasher.hash(self._superadmin_password),
                "user_type": admin.user_type,
                "clinic_id": clinic["id"],
                "role_id": role_ids[admin.role],
                "first_name": admin.first_name,
                "last_name": admin.last_name,
            })
            report.superadmin_created = True
            logger.info(f"Created superadmin user: {admin.email}")

        logger.info(
            f"Seed complete: {len(report.roles)} roles, {len(report.modules)} modules, "
            f"{len(report.operations)} operations, {report.module_operations} module operations created"
        )
        return report
