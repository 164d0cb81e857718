"""
Seed catalog - the bootstrap roles, modules, operations, default clinic and
superadmin account.

YAML access is encapsulated here; no other module reads seed_data.yaml
directly. The catalog is parsed once and cached.

Usage:
    from core.seed_catalog import get_seed_catalog

    catalog = get_seed_catalog()
    for module in catalog.modules:
        ...
"""
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamedEntry:
    """A module or operation definition."""
    name: str
    description: Optional[str] = None


@dataclass(frozen=True)
class RoleEntry:
    """
    A role definition.

    Attributes:
        name: Unique role name
        description: Human-readable description
        is_practice_role: True for clinic roles, False for system roles
        grant_all: Grant every module-operation to this role when seeding
    """
    name: str
    description: Optional[str]
    is_practice_role: bool
    grant_all: bool = False


@dataclass(frozen=True)
class SuperAdminEntry:
    username: str
    email: str
    password: str
    user_type: str
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


@dataclass(frozen=True)
class SeedCatalog:
    roles: Tuple[RoleEntry, ...]
    modules: Tuple[NamedEntry, ...]
    operations: Tuple[NamedEntry, ...]
    clinic: Dict[str, Any]
    superadmin: SuperAdminEntry


def _get_seed_path() -> Path:
    return Path(__file__).parent / "seed_data.yaml"


def _load_yaml(path: Path) -> Dict[str, Any]:
    """
    Raises:
        FileNotFoundError: If the seed file is missing
        yaml.YAMLError: If it cannot be parsed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error("Seed data file not found", extra={"path": str(path)})
        raise
    except yaml.YAMLError as e:
        logger.error("Failed to parse seed data", extra={"path": str(path), "error": str(e)})
        raise


def _named(entries: List[Dict[str, Any]], section: str) -> Tuple[NamedEntry, ...]:
    result = []
    seen = set()
    for index, raw in enumerate(entries or []):
        if not raw.get("name"):
            raise ValueError(f"{section} entry at index {index} is missing 'name'")
        if raw["name"] in seen:
            raise ValueError(f"Duplicate {section} name: {raw['name']}")
        seen.add(raw["name"])
        result.append(NamedEntry(name=raw["name"], description=raw.get("description")))
    return tuple(result)


def parse_catalog(raw: Dict[str, Any]) -> SeedCatalog:
    """
    Validate raw YAML data and build a SeedCatalog.

    Raises:
        ValueError: If required sections or fields are missing.
    """
    for section in ("roles", "modules", "operations", "clinic", "superadmin"):
        if section not in raw:
            raise ValueError(f"Seed data is missing section: '{section}'")

    roles = tuple(
        RoleEntry(
            name=r["name"],
            description=r.get("description"),
            is_practice_role=bool(r.get("is_practice_role", True)),
            grant_all=bool(r.get("grant_all", False)),
        )
        for r in raw["roles"]
    )

    admin = raw["superadmin"]
    missing = [k for k in ("username", "email", "password", "user_type", "role") if not admin.get(k)]
    if missing:
        raise ValueError(f"superadmin entry is missing: {', '.join(missing)}")
    if admin["role"] not in {r.name for r in roles}:
        raise ValueError(f"superadmin role '{admin['role']}' is not defined in roles")

    if not raw["clinic"].get("name"):
        raise ValueError("clinic entry is missing 'name'")

    return SeedCatalog(
        roles=roles,
        modules=_named(raw["modules"], "module"),
        operations=_named(raw["operations"], "operation"),
        clinic=dict(raw["clinic"]),
        superadmin=SuperAdminEntry(
            username=admin["username"],
            email=admin["email"],
            password=str(admin["password"]),
            user_type=admin["user_type"],
            role=admin["role"],
            first_name=admin.get("first_name"),
            last_name=admin.get("last_name"),
        ),
    )


@lru_cache(maxsize=1)
def get_seed_catalog() -> SeedCatalog:
    """Load, validate and cache the seed catalog."""
    path = _get_seed_path()
    catalog = parse_catalog(_load_yaml(path))
    logger.info(
        f"Loaded seed catalog: {len(catalog.roles)} roles, {len(catalog.modules)} modules, "
        f"{len(catalog.operations)} operations"
    )
    return catalog
