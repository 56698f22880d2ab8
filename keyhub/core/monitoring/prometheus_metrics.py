"""
Prometheus metrics for the subscription key service.
Covers HTTP traffic, key validations, expirations and the sweep.
"""

from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry, CONTENT_TYPE_LATEST, generate_latest
from fastapi import Response
import structlog

logger = structlog.get_logger(__name__)

# Create custom registry for our metrics
registry = CollectorRegistry()

# HTTP Metrics
http_requests_total = Counter(
    'keyhub_http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=registry
)

http_request_duration = Histogram(
    'keyhub_http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0, float('inf')],
    registry=registry
)

# Key lifecycle metrics
key_validations = Counter(
    'keyhub_key_validations_total',
    'Total key validation checks by outcome',
    ['outcome'],
    registry=registry
)

keys_expired = Counter(
    'keyhub_keys_expired_total',
    'Keys deactivated by expiration',
    ['path'],
    registry=registry
)

admin_mutations = Counter(
    'keyhub_admin_mutations_total',
    'Admin surface mutations by operation',
    ['operation'],
    registry=registry
)

# Sweep metrics
sweep_runs = Counter(
    'keyhub_sweep_runs_total',
    'Expiration sweep ticks by status',
    ['status'],
    registry=registry
)

sweep_duration = Histogram(
    'keyhub_sweep_duration_seconds',
    'Expiration sweep duration in seconds',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float('inf')],
    registry=registry
)

sweep_last_success = Gauge(
    'keyhub_sweep_last_success_timestamp',
    'Unix time of the last successful sweep',
    registry=registry
)

# Health Check Metrics
health_check_duration = Histogram(
    'keyhub_health_check_duration_seconds',
    'Health check duration in seconds',
    ['check_type', 'service'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, float('inf')],
    registry=registry
)

health_check_status = Gauge(
    'keyhub_health_check_status',
    'Health check status (1=healthy, 0=unhealthy)',
    ['service'],
    registry=registry
)


class MetricsCollector:
    """Centralized metrics collection and helper methods."""

    def __init__(self):
        self.registry = registry

    def get_metrics_response(self) -> Response:
        """Return Prometheus metrics as HTTP response."""
        metrics_data = generate_latest(self.registry)
        return Response(
            content=metrics_data,
            media_type=CONTENT_TYPE_LATEST
        )


# Global metrics collector instance
metrics = MetricsCollector()


def increment_http_requests(method: str, endpoint: str, status_code: str):
    """Increment HTTP request counter."""
    http_requests_total.labels(method=method, endpoint=endpoint, status_code=status_code).inc()


def observe_http_request_duration(method: str, endpoint: str, duration_seconds: float):
    """Record HTTP request duration."""
    http_request_duration.labels(method=method, endpoint=endpoint).observe(duration_seconds)


def increment_key_validation(outcome: str):
    key_validations.labels(outcome=outcome).inc()


def increment_keys_expired(path: str, count: int = 1):
    """Count keys deactivated by the lazy path or the sweep."""
    if count > 0:
        keys_expired.labels(path=path).inc(count)


def increment_admin_mutation(operation: str):
    admin_mutations.labels(operation=operation).inc()


def record_sweep_run(status: str, duration_seconds: float = None, finished_at: float = None):
    """Record the outcome of a sweep tick."""
    sweep_runs.labels(status=status).inc()
    if duration_seconds is not None:
        sweep_duration.observe(duration_seconds)
    if finished_at is not None:
        sweep_last_success.set(finished_at)
    logger.debug("sweep_run_recorded", status=status, duration_seconds=duration_seconds)


def observe_health_check_duration(check_type: str, service: str, duration_seconds: float):
    """Record health check duration."""
    health_check_duration.labels(check_type=check_type, service=service).observe(duration_seconds)


def set_health_check_status(service: str, is_healthy: bool):
    """Set health check status."""
    health_check_status.labels(service=service).set(1 if is_healthy else 0)
