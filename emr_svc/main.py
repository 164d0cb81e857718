"""
FastAPI application entry point for the EMR Service API.

This module configures and creates the FastAPI application with:
- Structured JSON Logging: Request/response logging for Grafana/Loki
- Request ID Propagation: UUID-based request tracking across logs
- Dependency Injection: Services and repositories injected via Depends()
- Authentication: JWT bearer tokens checked against role and user grants
- Exception Handling: Consistent error responses via setup_exception_handlers()
- Lifespan Management: Database initialization and catalog seeding

Architecture Overview:
    ┌─────────────────────────────────────────────────────────────┐
    │                     FastAPI Application                      │
    ├─────────────────────────────────────────────────────────────┤
    │  Middleware Stack (order matters!)                          │
    │    ├── LoggingMiddleware  - Request logging & metrics       │
    │    └── CORSMiddleware     - Cross-origin support            │
    ├─────────────────────────────────────────────────────────────┤
    │  Routers (api/routers/)    ← require_permission per route   │
    │    ├── health.py       - /health, /ready, /metrics          │
    │    ├── auth.py         - Login, token check, password reset │
    │    ├── users.py        - User accounts                      │
    │    ├── access.py       - Roles, modules, grants             │
    │    ├── clinics.py      - Clinics, locations, catalogs       │
    │    ├── doctors.py      - Doctor profiles                    │
    │    ├── doctor_schedules.py - Working hours & time off       │
    │    ├── staff.py        - Staff members                      │
    │    ├── schedules.py    - Weekly schedule documents          │
    │    ├── appointments.py - Booking & free slots               │
    │    ├── patients.py     - Patient charts                     │
    │    ├── tasks.py        - Kanban tasks & attachments         │
    │    ├── forms.py        - Form templates & submissions       │
    │    └── meta.py         - Enumerations for dropdowns         │
    ├─────────────────────────────────────────────────────────────┤
    │  Services (services/)     ← Injected via Depends()          │
    ├─────────────────────────────────────────────────────────────┤
    │  Repositories (repositories/)   ← Injected into Services    │
    ├─────────────────────────────────────────────────────────────┤
    │  Database (SQLite)              ← Injected into Repositories│
    └─────────────────────────────────────────────────────────────┘
                 │
                 └── Celery worker (tasks/email_tasks.py) sends
                     welcome and password reset emails via Redis

Observability Features:
    - Structured JSON logs for Grafana Loki
    - Request ID in logs and X-Request-ID response header
    - /health endpoint for liveness probes
    - /ready endpoint for readiness probes (checks DB, Redis)
    - /metrics endpoint for Prometheus scraping
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

# Makes the Redis-backed app current so shared email tasks queue to it
import celery_app  # noqa: F401
from core.config import API_HOST, API_PORT, API_RELOAD, settings
from core.dependencies import get_database, get_seed_service
from core.exceptions import setup_exception_handlers
from core.logging_config import setup_logging
from core.middleware import LoggingMiddleware
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


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application.

    Startup:
        - Configures structured JSON logging
        - Initializes the database (triggers schema creation)
        - Seeds roles, modules, operations, the default clinic and the
          superadmin account when EMR_SVC_SEED_ON_STARTUP is true

    Shutdown:
        - Logs shutdown message
    """
    # =========================================================================
    # STARTUP
    # =========================================================================

    # Configure structured logging FIRST (before any other logging)
    setup_logging(level="INFO", json_format=True)

    logger = logging.getLogger(__name__)
    logger.info("Starting EMR Service API...")

    db = get_database()
    logger.info("Database initialized", extra={"db_path": db.db_path})

    if settings.emr_svc_seed_on_startup:
        report = get_seed_service(db).seed()
        logger.info(
            "Seed catalog applied",
            extra={
                "roles_created": len(report.roles),
                "module_operations_created": report.module_operations,
                "superadmin_created": report.superadmin_created,
            }
        )

    yield  # Application runs here

    # =========================================================================
    # SHUTDOWN
    # =========================================================================
    logger.info("EMR Service API shutting down...")


app = FastAPI(
    title="EMR Service API",
    description="REST API for clinic management: users and access control, clinics and locations, "
                "doctors and staff, schedules, appointments, patient charts, kanban tasks and forms.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================
# EMRServiceError and its subclasses are converted to JSON error responses.
setup_exception_handlers(app)

# =============================================================================
# MIDDLEWARE
# =============================================================================
# Middleware is executed in REVERSE order of registration.

# 1. CORS Middleware (innermost - closest to routes)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 2. Logging Middleware (outermost - captures all requests)
app.add_middleware(LoggingMiddleware)

# =============================================================================
# ROUTERS
# =============================================================================
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(access_router)
app.include_router(clinics_router)
app.include_router(doctors_router)
app.include_router(doctor_schedules_router)
app.include_router(staff_router)
app.include_router(schedules_router)
app.include_router(appointments_router)
app.include_router(patients_router)
app.include_router(tasks_router)
app.include_router(forms_router)
app.include_router(meta_router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=API_HOST,
        port=API_PORT,
        reload=API_RELOAD
    )
