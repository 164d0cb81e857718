"""
Health, readiness, and metrics endpoints for operational visibility.

This module provides:
- /health: Liveness probe (is the app running?)
- /ready: Readiness probe (are the database and email broker reachable?)
- /metrics: Prometheus-compatible metrics
- /metrics/json: The same metrics as JSON

No authentication is required; these endpoints are meant for container
health checks and scrapers.
"""
import logging
import time
from typing import Any, Dict, List, Optional

import redis
from fastapi import APIRouter, Response
from pydantic import BaseModel

from core.config import REDIS_URL
from core.datetime_utils import now_iso
from core.middleware import get_metrics_collector

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health & Observability"])

SERVICE_NAME = "EMR Service API"
SERVICE_VERSION = "1.0.0"


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class HealthResponse(BaseModel):
    """Response model for /health endpoint."""
    status: str  # "healthy"
    version: str
    timestamp: str  # ISO 8601 UTC


class DependencyStatus(BaseModel):
    """Status of a single dependency."""
    name: str
    status: str  # "ok", "degraded", "unavailable"
    latency_ms: Optional[float] = None
    message: Optional[str] = None


class ReadyResponse(BaseModel):
    """Response model for /ready endpoint."""
    status: str  # "ready", "degraded", "not_ready"
    dependencies: List[DependencyStatus]
    timestamp: str


class MetricsResponse(BaseModel):
    """Response model for JSON metrics endpoint."""
    http_requests_total: int
    http_requests_2xx_total: int
    http_requests_4xx_total: int
    http_requests_5xx_total: int
    http_request_duration_ms_p50: float
    http_request_duration_ms_p95: float
    http_request_duration_ms_p99: float
    background_tasks_success_total: int
    background_tasks_failure_total: int
    auth_login_failures_total: int


# =============================================================================
# HEALTH ENDPOINT (LIVENESS)
# =============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness probe",
    description="Check if the application is running. Returns immediately without checking dependencies."
)
async def health_check() -> HealthResponse:
    """
    Liveness probe - is the application process alive?

    Does no I/O; dependency checks belong to /ready.
    """
    return HealthResponse(status="healthy", version=SERVICE_VERSION, timestamp=now_iso())


# =============================================================================
# READINESS ENDPOINT
# =============================================================================

async def _check_database() -> DependencyStatus:
    """Run a trivial query against SQLite."""
    from core.dependencies import get_database

    start = time.perf_counter()
    try:
        conn = get_database().get_connection()
        try:
            conn.execute("SELECT 1")
        finally:
            conn.close()
        return DependencyStatus(
            name="database",
            status="ok",
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
            message="SQLite connection healthy"
        )
    except Exception as e:
        logger.error("Database health check failed", extra={"error": str(e)})
        return DependencyStatus(
            name="database",
            status="unavailable",
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
            message=f"Connection failed: {type(e).__name__}"
        )


async def _check_broker() -> DependencyStatus:
    """
    Ping the Redis broker used for email delivery.

    A down broker only delays emails, so it is reported as "degraded".
    """
    start = time.perf_counter()
    try:
        client = redis.from_url(REDIS_URL, socket_timeout=2)
        client.ping()
        return DependencyStatus(
            name="celery_broker",
            status="ok",
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
            message="Redis broker healthy"
        )
    except Exception as e:
        logger.warning("Celery broker health check failed", extra={"error": str(e)})
        return DependencyStatus(
            name="celery_broker",
            status="degraded",
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
            message=f"Broker unavailable: {type(e).__name__}"
        )


@router.get(
    "/ready",
    response_model=ReadyResponse,
    summary="Readiness probe",
    description="Verify the database (critical) and the email broker (non-critical). "
                "Returns 503 if the database is unreachable."
)
async def readiness_check(response: Response) -> ReadyResponse:
    """
    Readiness probe - can the application handle requests?

    Returns:
    - 200 with status="ready" if all dependencies are healthy
    - 200 with status="degraded" if the broker is down
    - 503 with status="not_ready" if the database is down
    """
    dependencies = [await _check_database(), await _check_broker()]

    critical_down = any(d.status == "unavailable" for d in dependencies if d.name == "database")
    any_degraded = any(d.status in ("degraded", "unavailable") for d in dependencies)

    if critical_down:
        status = "not_ready"
        response.status_code = 503
    elif any_degraded:
        status = "degraded"
    else:
        status = "ready"

    return ReadyResponse(status=status, dependencies=dependencies, timestamp=now_iso())


# =============================================================================
# METRICS ENDPOINTS
# =============================================================================

@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Export metrics in Prometheus text format: request counts, latency percentiles, "
                "email task results and login failures."
)
async def get_metrics() -> Response:
    """
    Export metrics in Prometheus text format.

    Scrape configuration (prometheus.yml):
        scrape_configs:
          - job_name: 'emr-svc'
            static_configs:
              - targets: ['localhost:8000']
            metrics_path: /metrics
    """
    return Response(
        content=get_metrics_collector().get_prometheus_format(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )


@router.get(
    "/metrics/json",
    response_model=MetricsResponse,
    summary="JSON metrics",
    description="Export metrics in JSON format for custom dashboards."
)
async def get_metrics_json() -> MetricsResponse:
    return MetricsResponse(**get_metrics_collector().get_summary())


# =============================================================================
# ROOT ENDPOINT
# =============================================================================

@router.get("/", summary="API root", description="Root endpoint with basic API information.")
async def root() -> Dict[str, Any]:
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "docs": "/docs",
        "health": "/health",
        "ready": "/ready",
        "metrics": "/metrics"
    }
