"""
Security utilities for API credentials and admin console authentication.
"""
import hmac
from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import APIKeyHeader, APIKeyQuery, HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session, select
import structlog

from keyhub.core.config import API_KEY_HEADER, API_KEY_QUERY
from keyhub.core.exceptions import BadCredentialError
from keyhub.core.settings import settings
from keyhub.db.session import get_session
from keyhub.db.models.admin_user import AdminUser

logger = structlog.get_logger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Credential schemes
api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)
api_key_query = APIKeyQuery(name=API_KEY_QUERY, auto_error=False)
bearer_scheme = HTTPBearer(auto_error=False)


class SecurityUtils:
    """Security utility functions."""

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash."""
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        """Generate password hash."""
        return pwd_context.hash(password)

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create JWT access token."""
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.utcnow() + expires_delta
        else:
            expire = datetime.utcnow() + timedelta(hours=settings.jwt_expiration_hours)

        to_encode.update({"exp": expire})
        return jwt.encode(
            to_encode,
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm
        )

    @staticmethod
    def verify_token(token: str) -> Optional[dict]:
        """Verify and decode JWT token."""
        try:
            return jwt.decode(
                token,
                settings.jwt_secret,
                algorithms=[settings.jwt_algorithm]
            )
        except JWTError:
            return None

    @staticmethod
    def is_valid_api_key(candidate: Optional[str]) -> bool:
        """Constant-time membership check against the configured API keys."""
        if not candidate:
            return False
        matched = False
        for accepted in settings.api_keys:
            if hmac.compare_digest(candidate.encode(), accepted.encode()):
                matched = True
        return matched


def require_api_key(
    header_key: Optional[str] = Depends(api_key_header),
    query_key: Optional[str] = Depends(api_key_query),
) -> str:
    """Credential check for the key-checked API. Header wins over query parameter."""
    candidate = header_key or query_key
    if not SecurityUtils.is_valid_api_key(candidate):
        logger.warning("Rejected API credential", supplied=bool(candidate))
        raise BadCredentialError()
    return candidate


def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session)
) -> AdminUser:
    """Get the admin behind the bearer token."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise BadCredentialError("Could not validate credentials")

    payload = SecurityUtils.verify_token(credentials.credentials)
    if payload is None:
        raise BadCredentialError("Could not validate credentials")

    username = payload.get("sub")
    if not username:
        raise BadCredentialError("Could not validate credentials")

    admin = session.exec(select(AdminUser).where(AdminUser.username == username)).first()
    if admin is None:
        raise BadCredentialError("Could not validate credentials")
    return admin
