"""
Sentry integration for the subscription key service.
Provides exception tracking for the API and the sweep worker.
"""

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
import structlog

from keyhub.core.settings import settings

logger = structlog.get_logger(__name__)

FILTERED_HEADERS = ("authorization", "x-api-key")
UNTRACKED_TRANSACTIONS = ("/healthz", "/readyz", "/metrics")


def init_sentry(component: str = "api") -> bool:
    """Initialize Sentry when a DSN is configured. Returns whether it was initialised."""
    if not settings.sentry_dsn:
        logger.info("Sentry DSN not configured, skipping Sentry initialization")
        return False

    integrations = [
        SqlalchemyIntegration(),
        LoggingIntegration(level=None, event_level=None),
    ]
    if component == "worker":
        integrations.append(CeleryIntegration(monitor_beat_tasks=True, propagate_traces=True))
    else:
        integrations.append(FastApiIntegration(failed_request_status_codes=[range(500, 600)]))

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=settings.release_version,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        attach_stacktrace=True,
        send_default_pii=False,
        max_breadcrumbs=50,
        integrations=integrations,
        before_send=_before_send_filter,
        before_send_transaction=_before_send_transaction_filter,
    )

    sentry_sdk.set_tag("service", "keyhub")
    sentry_sdk.set_tag("component", component)

    logger.info("sentry_initialized", environment=settings.environment, component=component)
    return True


def _before_send_filter(event, hint):
    """Strip credentials and drop health-check noise."""
    headers = event.get("request", {}).get("headers", {})
    for name in list(headers):
        if name.lower() in FILTERED_HEADERS:
            headers[name] = "[Filtered]"

    if event.get("transaction") in UNTRACKED_TRANSACTIONS:
        return None

    return event


def _before_send_transaction_filter(event, hint):
    if event.get("transaction") in UNTRACKED_TRANSACTIONS:
        return None
    return event
