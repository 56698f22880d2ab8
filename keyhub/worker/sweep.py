"""
Eager expiration sweep.

The one implementation behind the scheduled tick, the on-demand cleanup
endpoints and the Celery task.
"""
from datetime import datetime
from typing import Callable, Optional

import structlog
from sqlmodel import Session

from keyhub.core.config import ExpirationPath
from keyhub.core.monitoring import increment_keys_expired
from keyhub.db.store import SubscriptionKeyStore

logger = structlog.get_logger(__name__)


def expire_keys(session: Session, now: Optional[datetime] = None) -> int:
    """
    Deactivate every active key whose expiry is earlier than ``now``.

    Runs as one conditional bulk update. Store errors propagate as
    ``StoreFailureError``.

    Returns:
        Number of keys deactivated
    """
    now = now or datetime.utcnow()
    count = SubscriptionKeyStore(session).expire_all(now)
    increment_keys_expired(ExpirationPath.SWEEP.value, count)

    if count > 0:
        logger.info("Expired subscription keys deactivated", count=count, now=now.isoformat())
    else:
        logger.debug("No expired subscription keys", now=now.isoformat())
    return count


def run_sweep(session_factory: Optional[Callable[[], Session]] = None, now: Optional[datetime] = None) -> int:
    """Open a session and run ``expire_keys`` in it."""
    if session_factory is None:
        from keyhub.db.session import engine

        def session_factory():
            return Session(engine)

    with session_factory() as session:
        return expire_keys(session, now)
