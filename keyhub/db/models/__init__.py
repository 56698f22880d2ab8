"""
Database models for the subscription key service.
"""

from .subscription_key import SubscriptionKey, SubscriptionKeyBase, SubscriptionKeyRead
from .admin_user import AdminUser, AdminLogin, AdminTokenResponse

__all__ = [
    "SubscriptionKey",
    "SubscriptionKeyBase",
    "SubscriptionKeyRead",
    "AdminUser",
    "AdminLogin",
    "AdminTokenResponse",
]
