"""
Subscription key lifecycle rules.

Pure decision logic over a single key snapshot and a reference time. Nothing
here touches the database: the validation path and the sweep both call
``evaluate`` (or its SQL counterpart in the store, ``expires_at < now AND
is_active``) so they reach the same decision for the same inputs.

Freezing only sets a flag. It does not stop the expiry clock, and unfreezing
does not credit ``frozen_days`` back into ``expires_at``; callers that want
an extension apply it with an explicit update.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from keyhub.core.exceptions import ValidationInputError
from keyhub.db.models.subscription_key import SubscriptionKeyRead


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise aware datetimes to the naive UTC values the store keeps."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def is_expired(record: SubscriptionKeyRead, now: datetime) -> bool:
    """True iff the key has an expiry and ``now`` is past it."""
    return record.expires_at is not None and now > record.expires_at


def evaluate(record: SubscriptionKeyRead, now: datetime) -> SubscriptionKeyRead:
    """
    Apply the expiration transition.

    Returns a deactivated copy when the key is expired and still active,
    otherwise the record itself. Deactivation is one-way: nothing here ever
    sets ``is_active`` back to true.
    """
    if record.is_active and is_expired(record, now):
        return record.model_copy(update={"is_active": False})
    return record


def freeze(record: SubscriptionKeyRead) -> SubscriptionKeyRead:
    return record.model_copy(update={"is_frozen": True})


def unfreeze(record: SubscriptionKeyRead) -> SubscriptionKeyRead:
    return record.model_copy(update={"is_frozen": False})


def compute_expires_at(now: datetime, duration_days: Optional[int]) -> Optional[datetime]:
    """Positive durations expire ``duration_days`` after ``now``; anything else is permanent."""
    if duration_days is not None and duration_days > 0:
        return now + timedelta(days=duration_days)
    return None


# Typed setters for the permissive update
_optional_str = TypeAdapter(Optional[str])
_str = TypeAdapter(str)
_optional_datetime = TypeAdapter(Optional[datetime])
_bool = TypeAdapter(bool)
_int = TypeAdapter(int)


def _coerce_owner_id(value: Any) -> Optional[str]:
    # Owner ids may arrive numeric
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("owner id must be a string or number")
    if isinstance(value, (int, float)):
        return str(value)
    return _optional_str.validate_python(value)


def _coerce_plan_type(value: Any) -> str:
    plan_type = _str.validate_python(value).strip()
    if not plan_type:
        raise ValueError("plan type must not be empty")
    return plan_type


def _coerce_expires_at(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return to_naive_utc(_optional_datetime.validate_python(value))


def _coerce_frozen_days(value: Any) -> int:
    days = _int.validate_python(value)
    if days < 0:
        raise ValueError("frozen days must not be negative")
    return days


FieldSetter = Tuple[str, Callable[[Any], Any]]

# Incoming name -> (attribute, coercer). key, created_at and last_checked_at are immutable.
MUTABLE_FIELDS: Dict[str, FieldSetter] = {
    "ownerId": ("owner_id", _coerce_owner_id),
    "owner_id": ("owner_id", _coerce_owner_id),
    "username": ("owner_username", _optional_str.validate_python),
    "owner_username": ("owner_username", _optional_str.validate_python),
    "firstName": ("owner_first_name", _optional_str.validate_python),
    "owner_first_name": ("owner_first_name", _optional_str.validate_python),
    "lastName": ("owner_last_name", _optional_str.validate_python),
    "owner_last_name": ("owner_last_name", _optional_str.validate_python),
    "planType": ("plan_type", _coerce_plan_type),
    "plan_type": ("plan_type", _coerce_plan_type),
    "expiresAt": ("expires_at", _coerce_expires_at),
    "expires_at": ("expires_at", _coerce_expires_at),
    "isActive": ("is_active", _bool.validate_python),
    "is_active": ("is_active", _bool.validate_python),
    "isFrozen": ("is_frozen", _bool.validate_python),
    "is_frozen": ("is_frozen", _bool.validate_python),
    "frozenDays": ("frozen_days", _coerce_frozen_days),
    "frozen_days": ("frozen_days", _coerce_frozen_days),
}

PROFILE_FIELDS = ("username", "firstName", "lastName")


def coerce_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map an arbitrary field mapping onto typed attribute values.

    Unknown and immutable names are dropped silently. A value that cannot be
    coerced to its field type raises ``ValidationInputError``.
    """
    coerced: Dict[str, Any] = {}
    for name, value in changes.items():
        if name == "ownerProfile" and isinstance(value, dict):
            coerced.update(coerce_changes(
                {field: value[field] for field in PROFILE_FIELDS if field in value}
            ))
            continue
        setter = MUTABLE_FIELDS.get(name)
        if setter is None:
            continue
        attribute, coerce = setter
        try:
            coerced[attribute] = coerce(value)
        except (PydanticValidationError, ValueError, TypeError) as e:
            raise ValidationInputError(
                f"Invalid value for field '{name}'",
                details={"field": name, "error": str(e)}
            )
    return coerced
