import hmac
from typing import Optional

from fastapi import Depends, Header

from orders_api.application.errors import ForbiddenError
from orders_api.core.logging_config import get_logger
from orders_api.core_settings import Settings, get_settings

logger = get_logger(__name__)

def api_key_is_valid(provided: Optional[str], expected: str) -> bool:
    """Pass/fail gate. An unconfigured secret refuses every key."""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))

def require_api_key(
    x_api_key: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    if not api_key_is_valid(x_api_key, settings.API_KEY):
        logger.warning("Request refused: missing or invalid API key")
        raise ForbiddenError()

def require_pubsub_api_key(
    x_api_key: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    if settings.PUBSUB_REQUIRE_API_KEY:
        require_api_key(x_api_key, settings)
