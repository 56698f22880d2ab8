"""
Record store for subscription keys.

Every write is a single SQL statement so the database serializes conflicting
writes to the same row: lazy expiration, the timestamp touch, the manual
toggle and the sweep's bulk update never read-modify-write in Python.
"""
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy import delete, func, not_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from keyhub.core.exceptions import KeyConflictError, StoreFailureError
from keyhub.db.models.subscription_key import SubscriptionKey, SubscriptionKeyRead

logger = structlog.get_logger(__name__)


def expired_and_active(now: datetime):
    """SQL form of the lifecycle expiry rule: has an expiry earlier than now and is still active."""
    return (
        SubscriptionKey.expires_at.is_not(None),
        SubscriptionKey.expires_at < now,
        SubscriptionKey.is_active == True,  # noqa: E712
    )


class SubscriptionKeyStore:
    """Keyed storage for subscription key records."""

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def _operation(self, name: str, **context):
        try:
            yield
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Key store operation failed", operation=name, error=str(e), **context)
            raise StoreFailureError(name) from e

    @staticmethod
    def _snapshot(row: Optional[SubscriptionKey]) -> Optional[SubscriptionKeyRead]:
        if row is None:
            return None
        return SubscriptionKeyRead.model_validate(row)

    def get(self, key: str) -> Optional[SubscriptionKeyRead]:
        """Point lookup by exact key."""
        with self._operation("get", key=key):
            statement = select(SubscriptionKey).where(SubscriptionKey.key == key)
            return self._snapshot(self.session.exec(statement).first())

    def get_active(self, key: str) -> Optional[SubscriptionKeyRead]:
        """Point lookup by exact key restricted to active records."""
        with self._operation("get_active", key=key):
            statement = select(SubscriptionKey).where(
                SubscriptionKey.key == key,
                SubscriptionKey.is_active == True,  # noqa: E712
            )
            return self._snapshot(self.session.exec(statement).first())

    def find(
        self,
        owner_id: Optional[str] = None,
        is_active: Optional[bool] = None,
        plan_type: Optional[str] = None,
    ) -> List[SubscriptionKeyRead]:
        """Filtered scan, newest first. Filters are exact matches."""
        with self._operation("find"):
            statement = select(SubscriptionKey)
            if owner_id is not None:
                statement = statement.where(SubscriptionKey.owner_id == owner_id)
            if is_active is not None:
                statement = statement.where(SubscriptionKey.is_active == is_active)
            if plan_type is not None:
                statement = statement.where(SubscriptionKey.plan_type == plan_type)
            statement = statement.order_by(SubscriptionKey.created_at.desc(), SubscriptionKey.id.desc())
            return [self._snapshot(row) for row in self.session.exec(statement).all()]

    def page(self, page: int, page_size: int) -> Tuple[List[SubscriptionKeyRead], int]:
        """One page of all keys, newest first, with the total count."""
        with self._operation("page"):
            total = self.session.exec(select(func.count()).select_from(SubscriptionKey)).one()
            statement = (
                select(SubscriptionKey)
                .order_by(SubscriptionKey.created_at.desc(), SubscriptionKey.id.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            rows = self.session.exec(statement).all()
            return [self._snapshot(row) for row in rows], total

    def insert(self, record: SubscriptionKeyRead) -> SubscriptionKeyRead:
        """Insert a new record. The unique constraint on ``key`` decides conflicts."""
        row = SubscriptionKey.model_validate(record)
        try:
            self.session.add(row)
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise KeyConflictError(record.key)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Key store operation failed", operation="insert", key=record.key, error=str(e))
            raise StoreFailureError("insert") from e

        with self._operation("insert", key=record.key):
            self.session.refresh(row)
            return self._snapshot(row)

    def _execute_write(self, name: str, statement, key: Optional[str] = None) -> int:
        with self._operation(name, key=key):
            result = self.session.execute(statement)
            self.session.commit()
            return result.rowcount

    def update(self, key: str, values: Dict[str, Any]) -> Optional[SubscriptionKeyRead]:
        """Write ``values`` onto one record. Returns None when the key does not exist."""
        if values:
            statement = update(SubscriptionKey).where(SubscriptionKey.key == key).values(**values)
            if self._execute_write("update", statement, key) == 0:
                return None
        return self.get(key)

    def toggle_active(self, key: str) -> Optional[SubscriptionKeyRead]:
        """Flip ``is_active`` in place, regardless of expiry."""
        statement = (
            update(SubscriptionKey)
            .where(SubscriptionKey.key == key)
            .values(is_active=not_(SubscriptionKey.is_active))
        )
        if self._execute_write("toggle_active", statement, key) == 0:
            return None
        return self.get(key)

    def touch(self, key: str, now: datetime) -> bool:
        """Record a successful check. Only applies while the key is still active."""
        statement = (
            update(SubscriptionKey)
            .where(SubscriptionKey.key == key, SubscriptionKey.is_active == True)  # noqa: E712
            .values(last_checked_at=now)
        )
        return self._execute_write("touch", statement, key) > 0

    def expire(self, key: str, now: datetime) -> bool:
        """Conditionally deactivate one expired key. False if it was already inactive."""
        statement = (
            update(SubscriptionKey)
            .where(SubscriptionKey.key == key, *expired_and_active(now))
            .values(is_active=False)
        )
        return self._execute_write("expire", statement, key) > 0

    def expire_all(self, now: datetime) -> int:
        """Deactivate every expired active key in one atomic statement."""
        statement = update(SubscriptionKey).where(*expired_and_active(now)).values(is_active=False)
        return self._execute_write("expire_all", statement)

    def delete(self, key: str) -> bool:
        statement = delete(SubscriptionKey).where(SubscriptionKey.key == key)
        return self._execute_write("delete", statement, key) > 0
