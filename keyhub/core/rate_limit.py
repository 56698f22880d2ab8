"""
Rate limiting shared by the API routers.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from keyhub.core.settings import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.global_rate_limit],
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.enable_rate_limiting,
)
