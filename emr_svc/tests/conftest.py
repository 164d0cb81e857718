"""
Shared pytest fixtures for API tests.

Key patterns:

1. Database Isolation: Each test gets a fresh temporary database, seeded
   with the role/module/operation catalog and the superadmin account
2. DI Override: app.dependency_overrides swaps the database, password
   hasher, email notifier and upload directory for test instances
3. Auth Override: the `client` fixture acts as the seeded superadmin;
   `anon_client` goes through real bearer token authentication

Fixture Hierarchy:
    temp_db → seed → repositories → services → test_app → client
"""
import os
import tempfile

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Settings are read at import time; configure them before any config import
TEST_JWT_SECRET = "test-jwt-secret-for-the-emr-test-suite-0123456789"
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="emr-test-")
os.environ.setdefault("EMR_SVC_JWT_SECRET", TEST_JWT_SECRET)
os.environ.setdefault("EMR_SVC_DB_DIR", _TEST_DATA_DIR)
os.environ.setdefault("EMR_SVC_UPLOAD_DIR", os.path.join(_TEST_DATA_DIR, "uploads"))
os.environ.setdefault("EMR_SVC_SEED_ON_STARTUP", "false")
os.environ.setdefault("EMR_SVC_BCRYPT_ROUNDS", "4")

from core import dependencies as deps
from core.auth import CurrentUser, get_current_user
from core.exceptions import setup_exception_handlers
from core.security import PasswordHasher, TokenManager
from core.seed_catalog import get_seed_catalog
from repositories import (
    AccessRepository,
    AppointmentRepository,
    ClinicRepository,
    DoctorRepository,
    PatientRepository,
    TaskRepository,
    UserRepository,
)
from repositories.base import Database
from services import (
    AppointmentService,
    DoctorService,
    PatientService,
    SeedService,
    TaskService,
    UploadService,
)

SUPERADMIN_PASSWORD = "superadmin123"


class RecordingNotifier:
    """Stands in for EmailNotifier and remembers what would have been queued."""

    def __init__(self):
        self.welcome = []
        self.resets = []

    def send_welcome(self, email, first_name=None):
        self.welcome.append({"email": email, "first_name": first_name})
        return f"welcome-{len(self.welcome)}"

    def send_password_reset(self, email, token, ttl_minutes):
        self.resets.append({"email": email, "token": token, "ttl_minutes": ttl_minutes})
        return f"reset-{len(self.resets)}"


@pytest.fixture
def temp_db():
    """
    Create a temporary database for testing.

    This fixture creates a fresh SQLite database in a temp file,
    ensuring complete isolation between tests.
    """
    fd, db_path = tempfile.mkstemp(suffix='.db')
    os.close(fd)

    db = Database(db_path=db_path)
    yield db

    # Cleanup
    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(db_path + suffix):
            os.unlink(db_path + suffix)


@pytest.fixture
def hasher():
    """bcrypt at its lowest cost factor to keep tests fast."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def token_manager():
    return TokenManager(secret=TEST_JWT_SECRET, algorithm="HS256", expire_hours=1, remember_days=30)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def upload_service(tmp_path):
    return UploadService(upload_dir=str(tmp_path / "uploads"), max_size=1024 * 1024, max_files=10)


# =============================================================================
# REPOSITORIES
# =============================================================================

@pytest.fixture
def user_repo(temp_db):
    return UserRepository(db=temp_db)


@pytest.fixture
def access_repo(temp_db):
    return AccessRepository(db=temp_db)


@pytest.fixture
def clinic_repo(temp_db):
    return ClinicRepository(db=temp_db)


@pytest.fixture
def doctor_repo(temp_db):
    return DoctorRepository(db=temp_db)


@pytest.fixture
def patient_repo(temp_db):
    return PatientRepository(db=temp_db)


@pytest.fixture
def appointment_repo(temp_db):
    return AppointmentRepository(db=temp_db)


@pytest.fixture
def task_repo(temp_db):
    return TaskRepository(db=temp_db)


# =============================================================================
# SEED & IDENTITY
# =============================================================================

@pytest.fixture
def seed(access_repo, clinic_repo, user_repo, hasher):
    """Apply the seed catalog: roles, modules, operations, clinic and superadmin."""
    service = SeedService(
        access_repository=access_repo,
        clinic_repository=clinic_repo,
        user_repository=user_repo,
        hasher=hasher,
        catalog=get_seed_catalog(),
        superadmin_password=SUPERADMIN_PASSWORD,
    )
    return service.seed()


@pytest.fixture
def superadmin(seed, user_repo):
    """The seeded superadmin as a CurrentUser."""
    user = user_repo.get_by_email(get_seed_catalog().superadmin.email)
    return CurrentUser(
        id=user["id"],
        email=user["email"],
        username=user["username"],
        user_type=user["user_type"],
        clinic_id=user.get("clinic_id"),
        role_id=user.get("role_id"),
        first_name=user.get("first_name"),
        last_name=user.get("last_name"),
    )


@pytest.fixture
def clinic_id(seed):
    return seed.clinic_id


@pytest.fixture
def make_user(user_repo, hasher, clinic_id):
    """Factory creating active users directly in the repository."""
    counter = {"n": 0}

    def _make(user_type="Staff", password="password123", **fields):
        counter["n"] += 1
        email = fields.pop("email", f"user{counter['n']}@clinic.com")
        data = {
            "username": email,
            "email": email,
            "password_hash": hasher.hash(password),
            "user_type": user_type,
            "clinic_id": clinic_id,
            "status": "active",
            "first_name": "Test",
            "last_name": f"User{counter['n']}",
        }
        data.update(fields)
        return user_repo.create(data)

    return _make


# =============================================================================
# SERVICES
# =============================================================================

@pytest.fixture
def doctor_service(doctor_repo, hasher):
    return DoctorService(doctor_repository=doctor_repo, hasher=hasher)


@pytest.fixture
def patient_service(patient_repo, hasher, notifier):
    return PatientService(patient_repository=patient_repo, hasher=hasher, notifier=notifier)


@pytest.fixture
def appointment_service(appointment_repo, doctor_repo):
    return AppointmentService(appointment_repository=appointment_repo, doctor_repository=doctor_repo)


@pytest.fixture
def task_service(task_repo, user_repo, upload_service):
    return TaskService(task_repository=task_repo, user_repository=user_repo, upload_service=upload_service)


# =============================================================================
# APPLICATION
# =============================================================================

def _build_app(temp_db, hasher, token_manager, notifier, upload_service) -> FastAPI:
    from api.routers import (
        access_router,
        appointments_router,
        auth_router,
        clinics_router,
        doctor_schedules_router,
        doctors_router,
        forms_router,
        health_router,
        meta_router,
        patients_router,
        schedules_router,
        staff_router,
        tasks_router,
        users_router,
    )

    app = FastAPI(title="EMR Service API Test")

    # Register exception handlers (same as production)
    setup_exception_handlers(app)

    # Repositories and services resolve through get_database, so replacing
    # the infrastructure dependencies is enough to isolate every route
    app.dependency_overrides[deps.get_database] = lambda: temp_db
    app.dependency_overrides[deps.get_password_hasher] = lambda: hasher
    app.dependency_overrides[deps.get_token_manager] = lambda: token_manager
    app.dependency_overrides[deps.get_notifier] = lambda: notifier
    app.dependency_overrides[deps.get_upload_service] = lambda: upload_service

    # Include the real routers (not test copies)
    for router in (
        health_router, auth_router, users_router, access_router, clinics_router,
        doctors_router, doctor_schedules_router, staff_router, schedules_router,
        appointments_router, patients_router, tasks_router, forms_router, meta_router,
    ):
        app.include_router(router)
    return app


@pytest.fixture
def test_app(temp_db, hasher, token_manager, notifier, upload_service, superadmin):
    """
    FastAPI app with real routers whose requests run as the superadmin.

    Overriding get_current_user skips token handling; permission checks
    still run and pass because the user is a super admin.
    """
    app = _build_app(temp_db, hasher, token_manager, notifier, upload_service)
    app.dependency_overrides[get_current_user] = lambda: superadmin

    yield app

    # Cleanup: Clear dependency overrides
    app.dependency_overrides.clear()


@pytest.fixture
def client(test_app):
    """Create a test client for the API."""
    return TestClient(test_app)


@pytest.fixture
def auth_app(temp_db, hasher, token_manager, notifier, upload_service, seed):
    """FastAPI app that authenticates every request from its bearer token."""
    app = _build_app(temp_db, hasher, token_manager, notifier, upload_service)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def anon_client(auth_app):
    """Client without credentials; tests log in or attach tokens themselves."""
    return TestClient(auth_app)


@pytest.fixture
def login(anon_client):
    """Log in and return Authorization headers for the account."""
    def _login(email, password):
        response = anon_client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login
