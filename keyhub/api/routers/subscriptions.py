"""
Subscriptions router for issuing, updating and retiring keys over the API.
"""
import structlog
from fastapi import APIRouter, Body, Depends, Query, status
from sqlmodel import Session
from typing import Dict, Any, Optional

from keyhub.api.services import SubscriptionService
from keyhub.core.security import require_api_key
from keyhub.db.session import get_session

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/subscriptions",
    tags=["subscriptions"],
    dependencies=[Depends(require_api_key)],
)


def get_subscription_service(session: Session = Depends(get_session)) -> SubscriptionService:
    return SubscriptionService(session)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_subscription(
    payload: Dict[str, Any] = Body(...),
    service: SubscriptionService = Depends(get_subscription_service),
) -> Dict[str, Any]:
    """Issue a key. ``key``, ``ownerId`` and ``planType`` are required."""
    record = service.issue(payload)
    return {
        "success": True,
        "message": "Subscription key created",
        "data": record.to_dict(),
    }


@router.get("")
def list_subscriptions(
    owner_id: Optional[str] = Query(None, alias="ownerId"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    plan_type: Optional[str] = Query(None, alias="planType"),
    service: SubscriptionService = Depends(get_subscription_service),
) -> Dict[str, Any]:
    """List keys, newest first, with optional exact-match filters."""
    records = service.list_keys(owner_id=owner_id, is_active=is_active, plan_type=plan_type)
    return {
        "success": True,
        "count": len(records),
        "data": [record.to_dict() for record in records],
    }


@router.post("/cleanup")
def cleanup_expired(
    service: SubscriptionService = Depends(get_subscription_service),
) -> Dict[str, Any]:
    """Run the expiration sweep now."""
    count = service.cleanup()
    logger.info("On-demand cleanup completed", deactivated=count)
    return {
        "success": True,
        "message": f"Deactivated {count} expired keys",
        "deactivated": count,
    }


@router.get("/{key}")
def get_subscription(
    key: str,
    service: SubscriptionService = Depends(get_subscription_service),
) -> Dict[str, Any]:
    return {"success": True, "data": service.get(key).to_dict()}


@router.put("/{key}")
def update_subscription(
    key: str,
    changes: Dict[str, Any] = Body(...),
    service: SubscriptionService = Depends(get_subscription_service),
) -> Dict[str, Any]:
    """Merge the given fields into the key. Unknown field names are ignored."""
    record = service.update(key, changes)
    return {
        "success": True,
        "message": "Subscription key updated",
        "data": record.to_dict(),
    }


@router.delete("/{key}")
def delete_subscription(
    key: str,
    service: SubscriptionService = Depends(get_subscription_service),
) -> Dict[str, Any]:
    service.delete(key)
    return {"success": True, "message": "Subscription key deleted"}


@router.post("/{key}/toggle")
def toggle_subscription(
    key: str,
    service: SubscriptionService = Depends(get_subscription_service),
) -> Dict[str, Any]:
    record = service.toggle(key)
    return {
        "success": True,
        "message": "Key activated" if record.is_active else "Key deactivated",
        "isActive": record.is_active,
        "data": record.to_dict(),
    }


@router.post("/{key}/freeze")
def freeze_subscription(
    key: str,
    service: SubscriptionService = Depends(get_subscription_service),
) -> Dict[str, Any]:
    record = service.freeze(key)
    return {"success": True, "message": "Key frozen", "data": record.to_dict()}


@router.post("/{key}/unfreeze")
def unfreeze_subscription(
    key: str,
    service: SubscriptionService = Depends(get_subscription_service),
) -> Dict[str, Any]:
    record = service.unfreeze(key)
    return {"success": True, "message": "Key unfrozen", "data": record.to_dict()}
