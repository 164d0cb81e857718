"""
Tests for health, readiness, metrics and metadata endpoints.

These tests verify the observability endpoints work correctly:
- /health: Liveness probe
- /ready: Readiness probe with dependency checks
- /metrics: Prometheus-format metrics
- /: Root endpoint with API info
"""


# =============================================================================
# ROOT ENDPOINT TESTS
# =============================================================================

def test_root_endpoint(client):
    """Test the root endpoint returns API info."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "EMR Service API"
    assert data["version"] == "1.0.0"
    assert "health" in data
    assert "ready" in data
    assert "metrics" in data


# =============================================================================
# HEALTH ENDPOINT TESTS (LIVENESS)
# =============================================================================

def test_health_endpoint(anon_client):
    """Liveness needs no authentication."""
    response = anon_client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data


def test_ready_endpoint(client):
    """Test the /ready readiness endpoint."""
    response = client.get("/ready")
    assert response.status_code in (200, 503)
    data = response.json()
    assert data["status"] in ("ready", "degraded", "not_ready")
    names = {dep["name"] for dep in data["dependencies"]}
    assert names == {"database", "celery_broker"}


# =============================================================================
# METRICS ENDPOINT TESTS
# =============================================================================

def test_metrics_endpoint(client):
    """Test the /metrics Prometheus endpoint."""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "text/plain" in response.headers.get("content-type", "")
    content = response.text
    assert "http_requests_total" in content
    assert "http_request_duration_ms" in content
    assert "auth_login_failures_total" in content


def test_metrics_json_endpoint(client):
    """Test the /metrics/json endpoint."""
    data = client.get("/metrics/json").json()
    for key in ("http_requests_total", "http_requests_4xx_total", "http_request_duration_ms_p95",
                "background_tasks_success_total", "auth_login_failures_total"):
        assert key in data


# =============================================================================
# METADATA
# =============================================================================

def test_meta_options_are_public(anon_client):
    response = anon_client.get("/api/v1/meta/options")
    assert response.status_code == 200
    data = response.json()
    assert data["weekdays"][0] == "sunday"
    assert "discharged" in data["patient_statuses"]
    assert data["task_statuses"] == ["open", "in_progress", "completed", "closed"]
    assert 30 in data["slot_durations"]
    assert "Sick Leave" in data["time_off_reasons"]


def test_collector_groups_routes_by_normalized_path():
    from datetime import datetime, timezone

    from core.middleware import MetricsCollector, RequestMetrics, normalize_path

    collector = MetricsCollector()
    for path, status in (("/api/v1/patients/17", 200), ("/api/v1/patients/18", 404)):
        collector.record_request(RequestMetrics(
            timestamp=datetime.now(timezone.utc), method="GET", path=normalize_path(path),
            status_code=status, duration_ms=12.5, request_id="abcd1234",
        ))

    summary = collector.get_summary()
    assert summary["http_requests_total"] == 2
    assert summary["http_requests_4xx_total"] == 1
    assert summary["http_request_duration_ms_p50"] == 12.5

    text = collector.get_prometheus_format()
    assert 'http_requests_by_route{method="GET",route="/api/v1/patients/{id}"} 2' in text
    assert 'http_request_duration_ms{quantile="0.95"} 12.5' in text
