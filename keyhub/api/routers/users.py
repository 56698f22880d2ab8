"""
Key holder router: the credential check consumed by the external service.
"""
import structlog
from fastapi import APIRouter, Depends
from sqlmodel import Session
from typing import Dict, Any

from keyhub.api.services import ValidationService
from keyhub.core.security import require_api_key
from keyhub.db.session import get_session

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/user/connect/{key}")
def connect(
    key: str,
    session: Session = Depends(get_session),
    api_key: str = Depends(require_api_key),
) -> Dict[str, Any]:
    """
    Validate a subscription key.

    200 with the key snapshot, 404 when unknown or inactive, 410 when it has
    just expired (the deactivation is persisted before responding).
    """
    with ValidationService(session) as service:
        record = service.check_key(key)

    return {
        "success": True,
        "message": "Subscription key is valid",
        "data": record.to_dict(),
    }
