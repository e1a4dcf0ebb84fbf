"""
אימות מפתח API עבור endpoints של אדמין (provisioning והזמנות).

שימוש:
    @router.post("/stores", dependencies=[Depends(require_admin_api_key)])
    async def create_store(...):
        ...
"""
import hmac

from fastapi import Depends
from fastapi.security import APIKeyHeader

from marketplace.core.config import settings
from marketplace.core.exceptions import AppException, ErrorCode
from marketplace.core.logging import get_logger

logger = get_logger(__name__)

_api_key_header = APIKeyHeader(name="X-Admin-API-Key", auto_error=False)


async def require_admin_api_key(
    api_key: str | None = Depends(_api_key_header),
) -> None:
    """
    ולידציה של מפתח API לגישת אדמין.

    401 אם המפתח חסר, 403 אם לא תואם.
    אם ADMIN_API_KEY לא מוגדר בסביבה — הגישה חסומה לחלוטין.
    """
    if not settings.ADMIN_API_KEY:
        logger.warning("Admin request rejected: ADMIN_API_KEY is not configured")
        raise AppException(
            "Admin API is disabled",
            error_code=ErrorCode.FORBIDDEN,
            status_code=403,
        )

    if not api_key:
        raise AppException(
            "Missing API key header: X-Admin-API-Key",
            error_code=ErrorCode.UNAUTHORIZED,
            status_code=401,
        )

    if not hmac.compare_digest(api_key, settings.ADMIN_API_KEY):
        logger.warning("Admin request rejected: invalid API key")
        raise AppException(
            "Invalid API key",
            error_code=ErrorCode.FORBIDDEN,
            status_code=403,
        )
