"""
Subscription key administration service.

This service handles:
- Key issuance with duration or explicit expiry
- Permissive field updates
- Manual activation toggles and freeze flags
- Deletion, filtered listing and paging
- On-demand expiration cleanup
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
import math
import uuid

from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from sqlmodel import Session
import structlog

from keyhub.core import lifecycle
from keyhub.core.config import AdminOperation, REQUIRED_ISSUE_FIELDS
from keyhub.core.exceptions import KeyNotFoundError, ValidationInputError
from keyhub.core.monitoring import increment_admin_mutation
from keyhub.db.models.subscription_key import SubscriptionKeyRead
from keyhub.db.session import engine
from keyhub.db.store import SubscriptionKeyStore
from keyhub.worker.sweep import expire_keys

logger = structlog.get_logger(__name__)

_optional_int = TypeAdapter(Optional[int])
_bool = TypeAdapter(bool)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class SubscriptionService:
    """Mutations and queries behind the API and the admin console."""

    def __init__(self, session: Session = None):
        """
        Initialize subscription service.

        Args:
            session: Database session (optional, will create if not provided)
        """
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

    def issue(
        self,
        payload: Dict[str, Any],
        required_fields: Sequence[str] = REQUIRED_ISSUE_FIELDS,
        generate_key: bool = False,
        now: Optional[datetime] = None,
    ) -> SubscriptionKeyRead:
        """
        Issue a new key.

        Args:
            payload: Request fields (key, ownerId, planType, durationDays,
                expiresAt, isPermanent, username, firstName, lastName)
            required_fields: Fields that must be present and non-blank
            generate_key: Fill in a UUID4 key when none is supplied
            now: Reference time for ``created_at`` and duration

        Returns:
            Snapshot of the stored key

        Raises:
            ValidationInputError: missing or malformed fields
            KeyConflictError: the key already exists
        """
        payload = dict(payload or {})
        if generate_key and _is_blank(payload.get("key")):
            payload["key"] = str(uuid.uuid4())

        missing = [field for field in required_fields if _is_blank(payload.get(field))]
        if missing:
            raise ValidationInputError(
                f"Missing required field: {missing[0]}",
                details={"missing_fields": missing}
            )

        # Stored exactly as supplied; lookups are exact
        key = payload.get("key")
        if not isinstance(key, str) or not key.strip():
            raise ValidationInputError("Field 'key' must be a non-empty string", details={"field": "key"})

        now = now or datetime.utcnow()
        fields = lifecycle.coerce_changes({
            name: payload[name]
            for name in ("ownerId", "username", "firstName", "lastName", "planType", "ownerProfile")
            if name in payload
        })
        if "plan_type" not in fields:
            raise ValidationInputError("Missing required field: planType", details={"missing_fields": ["planType"]})

        expires_at = self._resolve_expiry(payload, now)

        record = SubscriptionKeyRead(
            key=key,
            created_at=now,
            expires_at=expires_at,
            is_active=True,
            is_frozen=False,
            frozen_days=0,
            **fields,
        )
        created = self.store.insert(record)
        increment_admin_mutation(AdminOperation.ISSUE.value)
        logger.info(
            "Subscription key issued",
            key=created.key,
            owner_id=created.owner_id,
            plan_type=created.plan_type,
            expires_at=created.expires_at.isoformat() if created.expires_at else None
        )
        return created

    @staticmethod
    def _resolve_expiry(payload: Dict[str, Any], now: datetime) -> Optional[datetime]:
        try:
            permanent = _bool.validate_python(payload.get("isPermanent") or False)
            duration_days = _optional_int.validate_python(
                None if _is_blank(payload.get("durationDays")) else payload.get("durationDays")
            )
        except PydanticValidationError as e:
            raise ValidationInputError("Invalid duration or permanence flag", details={"error": str(e)})

        if permanent:
            return None
        if duration_days is not None and duration_days > 0:
            try:
                return lifecycle.compute_expires_at(now, duration_days)
            except (OverflowError, ValueError):
                raise ValidationInputError(
                    "Field 'durationDays' is out of range",
                    details={"field": "durationDays"}
                )
        if not _is_blank(payload.get("expiresAt")):
            return lifecycle.coerce_changes({"expiresAt": payload["expiresAt"]})["expires_at"]
        return None

    def get(self, key: str) -> SubscriptionKeyRead:
        record = self.store.get(key)
        if record is None:
            raise KeyNotFoundError(key)
        return record

    def update(self, key: str, changes: Dict[str, Any]) -> SubscriptionKeyRead:
        """Apply a permissive field merge; unknown names are ignored."""
        values = lifecycle.coerce_changes(changes or {})
        updated = self.store.update(key, values)
        if updated is None:
            raise KeyNotFoundError(key)

        increment_admin_mutation(AdminOperation.UPDATE.value)
        logger.info("Subscription key updated", key=key, fields=sorted(values))
        return updated

    def toggle(self, key: str) -> SubscriptionKeyRead:
        """Flip the active flag. Expiry is not consulted, so an expired key can be reactivated."""
        toggled = self.store.toggle_active(key)
        if toggled is None:
            raise KeyNotFoundError(key)

        increment_admin_mutation(AdminOperation.TOGGLE.value)
        logger.info("Subscription key toggled", key=key, is_active=toggled.is_active)
        return toggled

    def freeze(self, key: str) -> SubscriptionKeyRead:
        frozen = lifecycle.freeze(self.get(key))
        updated = self.store.update(key, {"is_frozen": frozen.is_frozen})
        if updated is None:
            raise KeyNotFoundError(key)
        increment_admin_mutation(AdminOperation.FREEZE.value)
        logger.info("Subscription key frozen", key=key)
        return updated

    def unfreeze(self, key: str) -> SubscriptionKeyRead:
        thawed = lifecycle.unfreeze(self.get(key))
        updated = self.store.update(key, {"is_frozen": thawed.is_frozen})
        if updated is None:
            raise KeyNotFoundError(key)
        increment_admin_mutation(AdminOperation.UNFREEZE.value)
        logger.info("Subscription key unfrozen", key=key, frozen_days=updated.frozen_days)
        return updated

    def delete(self, key: str) -> None:
        if not self.store.delete(key):
            raise KeyNotFoundError(key)
        increment_admin_mutation(AdminOperation.DELETE.value)
        logger.info("Subscription key deleted", key=key)

    def list_keys(
        self,
        owner_id: Optional[str] = None,
        is_active: Optional[bool] = None,
        plan_type: Optional[str] = None,
    ) -> List[SubscriptionKeyRead]:
        """Filtered listing, newest first."""
        return self.store.find(owner_id=owner_id, is_active=is_active, plan_type=plan_type)

    def page(self, page: int, page_size: int) -> Dict[str, Any]:
        """One page of keys for the admin console."""
        page = max(page, 1)
        keys, total = self.store.page(page, page_size)
        return {
            "keys": [key.to_dict() for key in keys],
            "currentPage": page,
            "totalPages": math.ceil(total / page_size) if page_size else 0,
            "totalKeys": total,
        }

    def cleanup(self, now: Optional[datetime] = None) -> int:
        """On-demand sweep, same statement as the scheduled one."""
        count = expire_keys(self.session, now)
        increment_admin_mutation(AdminOperation.CLEANUP.value)
        return count
