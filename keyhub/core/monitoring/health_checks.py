"""
Health check system with timings for the key store and the sweep scheduler.
"""

import time
from datetime import datetime
from typing import Dict, Any, Optional
import structlog
from sqlalchemy import text

from keyhub.core.settings import settings
from .prometheus_metrics import observe_health_check_duration, set_health_check_status

logger = structlog.get_logger(__name__)


class HealthCheckResult:
    """Result of a health check with timing and status information."""

    def __init__(self, service: str, healthy: bool, duration_ms: float,
                 details: Optional[Dict[str, Any]] = None, error: Optional[str] = None):
        self.service = service
        self.healthy = healthy
        self.duration_ms = duration_ms
        self.details = details or {}
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.service,
            "healthy": self.healthy,
            "duration_ms": round(self.duration_ms, 2),
            "details": self.details,
            "error": self.error,
        }


class HealthChecker:
    """Dependency checks with response-time thresholds."""

    def __init__(self):
        # Health check thresholds (in milliseconds)
        self.thresholds = {
            "database": 1000,
        }

    def check_database(self, engine) -> HealthCheckResult:
        """Check key store connectivity and response time."""
        start_time = time.time()

        try:
            with engine.connect() as connection:
                row = connection.execute(text("SELECT 1")).fetchone()

            if not row or row[0] != 1:
                raise RuntimeError("Database query test failed")

            duration_ms = (time.time() - start_time) * 1000
            healthy = duration_ms < self.thresholds["database"]
            details = {
                "connection": "ok",
                "query_test": "passed",
                "threshold_ms": self.thresholds["database"],
            }
            error = None
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            healthy = False
            details = {}
            error = str(e)
            logger.warning("Database health check failed", error=error)

        observe_health_check_duration("readiness", "database", duration_ms / 1000)
        set_health_check_status("database", healthy)

        return HealthCheckResult(
            service="database",
            healthy=healthy,
            duration_ms=duration_ms,
            details=details,
            error=error
        )

    def check_scheduler(self, scheduler) -> HealthCheckResult:
        """Report sweep scheduler state. A disabled scheduler counts as healthy."""
        if scheduler is None:
            return HealthCheckResult(
                service="sweep_scheduler",
                healthy=True,
                duration_ms=0.0,
                details={"enabled": False}
            )

        healthy = scheduler.running
        set_health_check_status("sweep_scheduler", healthy)
        return HealthCheckResult(
            service="sweep_scheduler",
            healthy=healthy,
            duration_ms=0.0,
            details={"enabled": True, **scheduler.status()}
        )


health_checker = HealthChecker()


async def basic_health_check() -> Dict[str, Any]:
    """Liveness: the process is up and serving."""
    return {
        "status": "ok",
        "service": settings.app_name,
        "version": settings.app_version,
        "timestamp": datetime.utcnow().isoformat(),
    }


async def readiness_check(engine, scheduler=None) -> Dict[str, Any]:
    """Readiness: key store reachable and sweep scheduler running."""
    checks = [
        health_checker.check_database(engine),
        health_checker.check_scheduler(scheduler),
    ]
    ready = all(check.healthy for check in checks)
    return {
        "status": "ready" if ready else "not_ready",
        "checks": {check.service: check.to_dict() for check in checks},
        "timestamp": datetime.utcnow().isoformat(),
    }
