"""
Subscription key model.

A subscription key is an opaque credential issued to an external principal.
The row carries the lifecycle flags (active, frozen) that the expiration
sweep and the validation path read and write.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import Index
from sqlmodel import SQLModel, Field


class SubscriptionKeyBase(SQLModel):
    """Fields shared by the table model and its snapshots."""

    key: str = Field(
        unique=True,
        index=True,
        max_length=255,
        description="Opaque key string, unique for the lifetime of the system"
    )

    owner_id: Optional[str] = Field(
        default=None,
        index=True,
        description="External principal the key is issued to"
    )

    # Descriptive only
    owner_username: Optional[str] = None
    owner_first_name: Optional[str] = None
    owner_last_name: Optional[str] = None

    plan_type: str = Field(
        index=True,
        description="Subscription tier tag, matched exactly when filtering"
    )

    created_at: datetime = Field(default_factory=datetime.utcnow)

    expires_at: Optional[datetime] = Field(
        default=None,
        description="When the key expires (null for permanent keys)"
    )

    is_active: bool = Field(default=True)
    is_frozen: bool = Field(default=False)
    frozen_days: int = Field(default=0)
    last_checked_at: Optional[datetime] = None

    @property
    def is_permanent(self) -> bool:
        return self.expires_at is None

    def to_dict(self) -> dict:
        """Convert key to dictionary for API responses."""
        return {
            "key": self.key,
            "ownerId": self.owner_id,
            "ownerProfile": {
                "username": self.owner_username,
                "firstName": self.owner_first_name,
                "lastName": self.owner_last_name,
            },
            "planType": self.plan_type,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
            "isActive": self.is_active,
            "isPermanent": self.is_permanent,
            "isFrozen": self.is_frozen,
            "frozenDays": self.frozen_days,
            "lastCheckedAt": self.last_checked_at.isoformat() if self.last_checked_at else None,
        }


class SubscriptionKey(SubscriptionKeyBase, table=True):
    """Subscription key database model."""
    __tablename__ = "subscription_keys"
    # Supports the sweep's range scan on expires_at filtered by is_active
    __table_args__ = (
        Index("ix_subscription_keys_active_expires", "is_active", "expires_at"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)


class SubscriptionKeyRead(SubscriptionKeyBase):
    """Detached snapshot of a key, safe to pass outside a session."""
    pass
