"""
Custom exception classes and error handling utilities.
"""
from typing import Optional, Dict, Any
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
import structlog

logger = structlog.get_logger(__name__)


class KeyHubException(Exception):
    """Base exception class for the subscription key service."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class KeyNotFoundError(KeyHubException):
    """Key is absent, or inactive where an active key is required."""

    def __init__(self, key: str = ""):
        message = "Subscription key not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"key": key} if key else {}
        )


class KeyExpiredError(KeyHubException):
    """Key exists but is past its expiry."""

    def __init__(self, key: str, expires_at=None):
        details = {"key": key}
        if expires_at is not None:
            details["expires_at"] = expires_at.isoformat()
        super().__init__(
            message="Subscription key has expired",
            status_code=status.HTTP_410_GONE,
            details=details
        )


class KeyConflictError(KeyHubException):
    """Duplicate key on issuance."""

    def __init__(self, key: str):
        super().__init__(
            message="Subscription key already exists",
            status_code=status.HTTP_409_CONFLICT,
            details={"key": key}
        )


class BadCredentialError(KeyHubException):
    """Failed API or admin authentication."""

    def __init__(self, message: str = "Invalid or missing credentials"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class ValidationInputError(KeyHubException):
    """Missing or malformed request fields."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class StoreFailureError(KeyHubException):
    """Underlying persistence error. Detail stays server-side."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            message="Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


def error_body(message: str, error_type: str, status_code: int, details: Optional[Dict[str, Any]] = None) -> dict:
    """Build the failure envelope shared by every handler."""
    return {
        "success": False,
        "message": message,
        "error": {
            "message": message,
            "type": error_type,
            "details": details or {},
            "status_code": status_code
        }
    }


# Exception handlers
async def keyhub_exception_handler(request: Request, exc: KeyHubException) -> JSONResponse:
    """Global exception handler for domain exceptions."""
    if isinstance(exc, StoreFailureError):
        logger.error("Store failure", path=request.url.path, operation=exc.operation)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.__class__.__name__, exc.status_code, exc.details)
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for framework HTTP errors, rendered in the same envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), "HTTPException", exc.status_code),
        headers=getattr(exc, "headers", None)
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unexpected exceptions."""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=exc.__class__.__name__
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(
            "Internal server error",
            "InternalServerError",
            status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    )


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handler for slowapi limits, rendered in the same envelope."""
    logger.warning("Rate limit exceeded", path=request.url.path, limit=str(exc.detail))
    response = JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=error_body(
            f"Rate limit exceeded: {exc.detail}",
            "RateLimitExceeded",
            status.HTTP_429_TOO_MANY_REQUESTS
        )
    )
    view_rate_limit = getattr(request.state, "view_rate_limit", None)
    if view_rate_limit is not None:
        response = request.app.state.limiter._inject_headers(response, view_rate_limit)
    return response
