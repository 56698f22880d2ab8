"""
Application configuration constants and enums.
"""
from enum import Enum


class ValidationOutcome(str, Enum):
    """Result of a credential check against the key store."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"


class ExpirationPath(str, Enum):
    """Which code path deactivated an expired key."""
    LAZY = "lazy"
    SWEEP = "sweep"


class SweepStatus(str, Enum):
    """Outcome of a single sweep tick."""
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


class AdminRole(str, Enum):
    """Admin console roles."""
    ADMIN = "admin"


class AdminOperation(str, Enum):
    """Mutations exposed on the admin surface."""
    ISSUE = "issue"
    UPDATE = "update"
    TOGGLE = "toggle"
    FREEZE = "freeze"
    UNFREEZE = "unfreeze"
    DELETE = "delete"
    CLEANUP = "cleanup"


# API credential locations
API_KEY_HEADER = "X-API-Key"
API_KEY_QUERY = "api_key"

# Fields required to issue a key through the API and the admin console
REQUIRED_ISSUE_FIELDS = ["key", "ownerId", "planType"]
REQUIRED_ADMIN_ISSUE_FIELDS = ["planType"]
