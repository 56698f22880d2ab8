"""
Authentication service for the admin console.
"""
from typing import Optional
import structlog
from sqlmodel import Session, select

from keyhub.core.config import AdminRole
from keyhub.core.exceptions import BadCredentialError
from keyhub.core.security import SecurityUtils
from keyhub.core.settings import settings
from keyhub.db.models.admin_user import AdminUser, AdminTokenResponse

logger = structlog.get_logger(__name__)


class AuthService:
    """Admin login and account seeding."""

    @staticmethod
    def get_admin(session: Session, username: str) -> Optional[AdminUser]:
        return session.exec(select(AdminUser).where(AdminUser.username == username)).first()

    @staticmethod
    def create_admin(session: Session, username: str, password: str, role: str = AdminRole.ADMIN.value) -> AdminUser:
        admin = AdminUser(
            username=username,
            hashed_password=SecurityUtils.get_password_hash(password),
            role=role
        )
        session.add(admin)
        session.commit()
        session.refresh(admin)
        logger.info("Admin user created", username=username, role=role)
        return admin

    @staticmethod
    def authenticate(session: Session, username: str, password: str) -> AdminTokenResponse:
        """Verify admin credentials and issue a bearer token."""
        admin = AuthService.get_admin(session, username)
        # Same message for unknown user and wrong password
        if admin is None or not SecurityUtils.verify_password(password, admin.hashed_password):
            logger.warning("Admin login failed", username=username)
            raise BadCredentialError("Incorrect username or password")

        token = SecurityUtils.create_access_token({"sub": admin.username, "role": admin.role})
        logger.info("Admin logged in", username=admin.username)
        return AdminTokenResponse(access_token=token, username=admin.username, role=admin.role)

    @staticmethod
    def ensure_default_admin(session: Session) -> Optional[AdminUser]:
        """Seed the configured admin account if it does not exist yet."""
        if not settings.admin_username or not settings.admin_password:
            return None
        existing = AuthService.get_admin(session, settings.admin_username)
        if existing:
            return existing
        return AuthService.create_admin(session, settings.admin_username, settings.admin_password)
