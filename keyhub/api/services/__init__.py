"""
Services package for business logic components.
"""

from .auth import AuthService
from .subscriptions import SubscriptionService
from .validation import ValidationService

__all__ = [
    'AuthService',
    'SubscriptionService',
    'ValidationService',
]
