"""
Validation service for subscription key credential checks.

Every check reads one active record, runs it through the lifecycle rules and
leaves one write behind: either the lazy deactivation of an expired key or
the ``last_checked_at`` touch of a valid one.
"""
from datetime import datetime
from typing import Optional

import structlog
from sqlmodel import Session

from keyhub.core import lifecycle
from keyhub.core.config import ExpirationPath, ValidationOutcome
from keyhub.core.exceptions import KeyExpiredError, KeyNotFoundError, ValidationInputError
from keyhub.core.monitoring import increment_key_validation, increment_keys_expired
from keyhub.db.models.subscription_key import SubscriptionKeyRead
from keyhub.db.session import engine
from keyhub.db.store import SubscriptionKeyStore

logger = structlog.get_logger(__name__)


class ValidationService:
    """
    Credential checks against the key store.

    Holds no locks of its own; correctness under concurrent checks and sweeps
    comes from the store's conditional single-statement writes.
    """

    def __init__(self, session: Session = None):
        self.session = session
        self._should_close_session = session is None

        if self.session is None:
            self.session = Session(engine)

        self.store = SubscriptionKeyStore(self.session)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._should_close_session and self.session:
            self.session.close()

    def check_key(self, key: str, now: Optional[datetime] = None) -> SubscriptionKeyRead:
        """
        Validate a key.

        Args:
            key: Key string supplied by the holder
            now: Reference time (defaults to the current UTC time)

        Returns:
            Snapshot of the key with ``last_checked_at`` set to ``now``

        Raises:
            KeyNotFoundError: no record, or the record is inactive
            KeyExpiredError: the record was active but past expiry; it has
                been deactivated before this is raised
        """
        if not key or not key.strip():
            raise ValidationInputError("Key must not be empty")

        now = now or datetime.utcnow()

        record = self.store.get_active(key)
        if record is None:
            increment_key_validation(ValidationOutcome.NOT_FOUND.value)
            logger.info("Key check failed", key=key, outcome=ValidationOutcome.NOT_FOUND.value)
            raise KeyNotFoundError(key)

        evaluated = lifecycle.evaluate(record, now)
        if not evaluated.is_active:
            # Persist before answering so a concurrent check sees the inactive row
            if self.store.expire(key, now):
                increment_keys_expired(ExpirationPath.LAZY.value)
            increment_key_validation(ValidationOutcome.EXPIRED.value)
            logger.info(
                "Key expired on check",
                key=key,
                expires_at=record.expires_at.isoformat(),
                outcome=ValidationOutcome.EXPIRED.value
            )
            raise KeyExpiredError(key, record.expires_at)

        if not self.store.touch(key, now):
            # Deactivated between the read and the touch
            increment_key_validation(ValidationOutcome.NOT_FOUND.value)
            raise KeyNotFoundError(key)

        increment_key_validation(ValidationOutcome.FOUND.value)
        logger.info("Key check succeeded", key=key, owner_id=record.owner_id, plan_type=record.plan_type)
        return evaluated.model_copy(update={"last_checked_at": now})
