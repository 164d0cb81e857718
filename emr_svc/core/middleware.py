"""
Request logging middleware and in-memory metrics for the EMR service.

This module provides:
- Request/response logging with request_id propagation
- Request timing for latency percentiles
- Counters for background email tasks and failed logins

Middleware Stack Order (in main.py):
    1. LoggingMiddleware (outermost)
    2. CORS Middleware
    3. Application routes
"""

import logging
import re
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Deque, Dict, Tuple

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from core.logging_config import set_request_id, clear_request_id

logger = logging.getLogger(__name__)

# Collapse numeric path segments so /api/v1/patients/17 and /api/v1/patients/18
# land in the same latency bucket.
_ID_SEGMENT = re.compile(r"/\d+(?=/|$)")


def normalize_path(path: str) -> str:
    return _ID_SEGMENT.sub("/{id}", path)


# =============================================================================
# IN-MEMORY METRICS COLLECTOR
# =============================================================================

@dataclass
class RequestMetrics:
    """Container for a single request's metrics."""
    timestamp: datetime
    method: str
    path: str
    status_code: int
    duration_ms: float
    request_id: str


@dataclass
class MetricsCollector:
    """
    In-memory metrics collector with a fixed-size request history.

    Percentiles are computed over the last ``max_history`` requests;
    counters are cumulative for the process lifetime.
    """
    max_history: int = 1000

    _requests: Deque[RequestMetrics] = field(default_factory=lambda: deque(maxlen=1000))

    total_requests: int = 0
    total_2xx: int = 0
    total_4xx: int = 0
    total_5xx: int = 0

    # Background email tasks (updated from Celery task bodies)
    task_success: int = 0
    task_failure: int = 0

    # Rejected logins (bad password, unknown email, deactivated account)
    login_failures: int = 0

    # (method, normalized path) -> request count
    route_counts: Dict[Tuple[str, str], int] = field(default_factory=dict)

    def record_request(self, metrics: RequestMetrics) -> None:
        """Record a completed request's metrics."""
        self._requests.append(metrics)
        self.total_requests += 1
        route = (metrics.method, metrics.path)
        self.route_counts[route] = self.route_counts.get(route, 0) + 1

        if 200 <= metrics.status_code < 300:
            self.total_2xx += 1
        elif 400 <= metrics.status_code < 500:
            self.total_4xx += 1
        elif 500 <= metrics.status_code < 600:
            self.total_5xx += 1

    def record_task_result(self, success: bool) -> None:
        """Record a background task completion."""
        if success:
            self.task_success += 1
        else:
            self.task_failure += 1

    def record_login_failure(self) -> None:
        self.login_failures += 1

    def get_latency_percentiles(self) -> Dict[str, float]:
        """
        Calculate p50/p95/p99 latency in milliseconds over recent requests.

        Returns zeros when no requests have been recorded.
        """
        if not self._requests:
            return {"p50": 0, "p95": 0, "p99": 0}

        durations = sorted(r.duration_ms for r in self._requests)
        n = len(durations)

        def percentile(p: float) -> float:
            idx = int(n * p / 100)
            return durations[min(idx, n - 1)]

        return {
            "p50": round(percentile(50), 2),
            "p95": round(percentile(95), 2),
            "p99": round(percentile(99), 2),
        }

    def get_summary(self) -> Dict:
        """Get a flat metrics summary for the /metrics endpoints."""
        latencies = self.get_latency_percentiles()

        return {
            "http_requests_total": self.total_requests,
            "http_requests_2xx_total": self.total_2xx,
            "http_requests_4xx_total": self.total_4xx,
            "http_requests_5xx_total": self.total_5xx,
            "http_request_duration_ms_p50": latencies["p50"],
            "http_request_duration_ms_p95": latencies["p95"],
            "http_request_duration_ms_p99": latencies["p99"],
            "background_tasks_success_total": self.task_success,
            "background_tasks_failure_total": self.task_failure,
            "auth_login_failures_total": self.login_failures,
        }

    def get_prometheus_format(self) -> str:
        """Export metrics in Prometheus text exposition format."""
        summary = self.get_summary()
        blocks = [
            _metric_block("http_requests_total", "counter", "Total HTTP requests",
                          [("", summary["http_requests_total"])]),
            _metric_block("http_requests_by_status", "counter", "HTTP requests by status category", [
                ('status="%s"' % bucket, summary[f"http_requests_{bucket}_total"])
                for bucket in ("2xx", "4xx", "5xx")
            ]),
            _metric_block("http_requests_by_route", "counter", "HTTP requests by method and route", [
                ('method="%s",route="%s"' % key, count)
                for key, count in sorted(self.route_counts.items())
            ]),
            _metric_block("http_request_duration_ms", "gauge", "Request duration in milliseconds", [
                (f'quantile="{quantile}"', summary[f"http_request_duration_ms_p{p}"])
                for quantile, p in (("0.5", 50), ("0.95", 95), ("0.99", 99))
            ]),
            _metric_block("background_tasks_total", "counter", "Background email task completions", [
                ('result="success"', summary["background_tasks_success_total"]),
                ('result="failure"', summary["background_tasks_failure_total"]),
            ]),
            _metric_block("auth_login_failures_total", "counter", "Rejected login attempts",
                          [("", summary["auth_login_failures_total"])]),
        ]
        return "\n\n".join(blocks) + "\n"


def _metric_block(name: str, kind: str, help_text: str, samples) -> str:
    lines = [f"# HELP {name} {help_text}", f"# TYPE {name} {kind}"]
    for labels, value in samples:
        lines.append(f"{name}{{{labels}}} {value}" if labels else f"{name} {value}")
    return "\n".join(lines)


metrics_collector = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    """Get the process-wide metrics collector."""
    return metrics_collector


# =============================================================================
# LOGGING MIDDLEWARE
# =============================================================================

class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every API request and record its latency.

    A short request ID is generated per request, bound to the logging
    context and returned in the ``X-Request-ID`` response header.
    """

    EXCLUDED_PATHS = {"/health", "/ready", "/metrics", "/metrics/json", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        set_request_id(request_id)

        method = request.method
        path = request.url.path
        start_time = time.perf_counter()

        if path not in self.EXCLUDED_PATHS:
            logger.info(
                "Request started",
                extra={
                    "method": method,
                    "path": path,
                    "query": str(request.query_params) if request.query_params else None,
                }
            )

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as e:
            logger.exception(
                "Request failed with exception",
                extra={"method": method, "path": path, "error": str(e)}
            )
            raise
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            clear_request_id()

        metrics_collector.record_request(RequestMetrics(
            timestamp=datetime.now(timezone.utc),
            method=method,
            path=normalize_path(path),
            status_code=status_code,
            duration_ms=duration_ms,
            request_id=request_id,
        ))

        if path not in self.EXCLUDED_PATHS:
            log_level = logging.WARNING if status_code >= 400 else logging.INFO
            logger.log(
                log_level,
                "Request completed",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": status_code,
                    "duration_ms": round(duration_ms, 2),
                }
            )

        response.headers["X-Request-ID"] = request_id
        return response
