"""
Tests for the bootstrap seed of roles, modules, operations and the superadmin.
"""
from core.seed_catalog import get_seed_catalog
from services import SeedService


def _service(access_repo, clinic_repo, user_repo, hasher):
    return SeedService(
        access_repository=access_repo,
        clinic_repository=clinic_repo,
        user_repository=user_repo,
        hasher=hasher,
        catalog=get_seed_catalog(),
        superadmin_password="superadmin123",
    )


def test_first_run_creates_catalog(access_repo, clinic_repo, user_repo, hasher):
    report = _service(access_repo, clinic_repo, user_repo, hasher).seed()
    assert len(report.modules) == 8
    assert len(report.operations) == 8
    assert report.module_operations == 64
    assert report.grants == {"SuperAdmin": 64}
    assert report.superadmin_created is True
    assert clinic_repo.get_clinic(report.clinic_id)["name"] == "EMR System Clinic"


def test_seed_is_idempotent(access_repo, clinic_repo, user_repo, hasher):
    first = _service(access_repo, clinic_repo, user_repo, hasher).seed()
    second = _service(access_repo, clinic_repo, user_repo, hasher).seed()

    assert second.roles == [] and second.modules == [] and second.operations == []
    assert second.module_operations == 0
    assert second.grants == {"SuperAdmin": 0}
    assert second.superadmin_created is False
    assert second.clinic_id == first.clinic_id


def test_superadmin_password_is_hashed(seed, user_repo, hasher):
    credentials = user_repo.get_credentials("superadmin@emr.com")
    assert credentials["password_hash"] != "superadmin123"
    assert hasher.verify("superadmin123", credentials["password_hash"])
