"""
Monitoring and observability package for the subscription key service.
"""

from .sentry_config import init_sentry
from .prometheus_metrics import (
    metrics,
    increment_http_requests,
    observe_http_request_duration,
    increment_key_validation,
    increment_keys_expired,
    increment_admin_mutation,
    record_sweep_run,
)

__all__ = [
    "init_sentry",
    "metrics",
    "increment_http_requests",
    "observe_http_request_duration",
    "increment_key_validation",
    "increment_keys_expired",
    "increment_admin_mutation",
    "record_sweep_run",
]
