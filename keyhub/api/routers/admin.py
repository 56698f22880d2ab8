"""
Admin console router: login plus the key management screens.
"""
import structlog
from fastapi import APIRouter, Body, Depends, Query, status
from sqlmodel import Session
from typing import Dict, Any

from keyhub.api.services import AuthService, SubscriptionService
from keyhub.core.config import REQUIRED_ADMIN_ISSUE_FIELDS
from keyhub.core.security import get_current_admin
from keyhub.core.settings import settings
from keyhub.db.models.admin_user import AdminLogin, AdminTokenResponse, AdminUser
from keyhub.db.session import get_session

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/login", response_model=AdminTokenResponse)
def login(credentials: AdminLogin, session: Session = Depends(get_session)) -> AdminTokenResponse:
    """Exchange admin credentials for a bearer token."""
    return AuthService.authenticate(session, credentials.username, credentials.password)


@router.get("/me")
def me(admin: AdminUser = Depends(get_current_admin)) -> Dict[str, Any]:
    return {"success": True, "username": admin.username, "role": admin.role}


@router.get("/keys")
def list_keys(
    page: int = Query(1, ge=1),
    admin: AdminUser = Depends(get_current_admin),
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    """Paged key listing, newest first."""
    result = SubscriptionService(session).page(page, settings.admin_page_size)
    return {"success": True, **result}


@router.post("/keys", status_code=status.HTTP_201_CREATED)
def create_key(
    payload: Dict[str, Any] = Body(...),
    admin: AdminUser = Depends(get_current_admin),
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    """Issue a key from the console. A UUID4 key is generated when none is given."""
    record = SubscriptionService(session).issue(
        payload,
        required_fields=REQUIRED_ADMIN_ISSUE_FIELDS,
        generate_key=True,
    )
    logger.info("Admin issued key", admin=admin.username, key=record.key)
    return {"success": True, "message": "Key created", "data": record.to_dict()}


@router.post("/keys/{key}/toggle")
def toggle_key(
    key: str,
    admin: AdminUser = Depends(get_current_admin),
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    record = SubscriptionService(session).toggle(key)
    return {
        "success": True,
        "message": "Key activated" if record.is_active else "Key deactivated",
        "isActive": record.is_active,
    }


@router.delete("/keys/{key}")
def delete_key(
    key: str,
    admin: AdminUser = Depends(get_current_admin),
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    SubscriptionService(session).delete(key)
    logger.info("Admin deleted key", admin=admin.username, key=key)
    return {"success": True, "message": "Key deleted"}


@router.post("/cleanup")
def cleanup(
    admin: AdminUser = Depends(get_current_admin),
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    count = SubscriptionService(session).cleanup()
    return {"success": True, "message": f"Deactivated {count} expired keys", "deactivated": count}
