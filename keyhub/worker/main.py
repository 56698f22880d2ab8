"""
Worker main entry point for the scheduled expiration sweep.
"""
import structlog

from keyhub.core.logging import configure_logging
from keyhub.core.monitoring import init_sentry
from keyhub.core.settings import settings
from keyhub.worker.tasks import celery_app

configure_logging(settings.log_level)
init_sentry(component="worker")

logger = structlog.get_logger(__name__)

if __name__ == '__main__':
    logger.info("Starting keyhub worker with beat schedule", interval_seconds=settings.sweep_interval_seconds)
    celery_app.start(argv=["worker", "--beat", "--loglevel", settings.log_level.lower()])
