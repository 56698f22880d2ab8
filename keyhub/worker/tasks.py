"""
Celery tasks for deployments that run the sweep on a worker with beat.
"""
from celery import Celery
import structlog

from keyhub.core.settings import settings
from keyhub.worker.sweep import run_sweep

# Initialize Celery app
celery_app = Celery("keyhub_worker")
celery_app.conf.broker_url = settings.redis_url
celery_app.conf.result_backend = settings.redis_url
celery_app.conf.task_serializer = "json"
celery_app.conf.accept_content = ["json"]
celery_app.conf.result_serializer = "json"
celery_app.conf.timezone = "UTC"
celery_app.conf.enable_utc = True

logger = structlog.get_logger(__name__)


@celery_app.task(name="keyhub.worker.tasks.expire_subscription_keys")
def expire_subscription_keys():
    """Deactivate expired subscription keys."""
    logger.info("Starting expiration sweep task")
    count = run_sweep()
    logger.info("Expiration sweep task completed", deactivated=count)
    return {"deactivated": count}


# Periodic tasks schedule
celery_app.conf.beat_schedule = {
    "expire-subscription-keys": {
        "task": "keyhub.worker.tasks.expire_subscription_keys",
        "schedule": float(settings.sweep_interval_seconds),
    },
}
