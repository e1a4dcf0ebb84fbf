"""
Tenant Resolution Cache - מיפוי hostname → tenant id

ה-cache הוא תצוגה נגזרת ומתכלה של טבלת הדומיינים: אין בו מידע סמכותי,
ולכן כל שגיאת backend נבלעת ונרשמת ללוג — קריאה נופלת ל-miss, כתיבה
ומחיקה הופכות ל-no-op, והפתרון ממשיך מול ה-DB.
"""
from typing import Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError

from marketplace.core.logging import get_logger

logger = get_logger(__name__)

CACHE_KEY_PREFIX = "tenant:hostname:"


def cache_key(hostname: str) -> str:
    """מפתח ה-cache עבור hostname מנורמל"""
    return f"{CACHE_KEY_PREFIX}{hostname}"


class TenantCache(Protocol):
    """Key/value cache of normalized hostname → tenant id"""

    async def get(self, hostname: str) -> str | None: ...

    async def set(self, hostname: str, tenant_id: str, ttl_seconds: int) -> None: ...

    async def evict(self, hostname: str) -> None: ...


class RedisTenantCache:
    """TenantCache backed by redis.asyncio"""

    def __init__(self, redis: Redis):
        self._redis = redis

    async def get(self, hostname: str) -> str | None:
        try:
            return await self._redis.get(cache_key(hostname))
        except RedisError as e:
            logger.warning(
                "Tenant cache read failed, falling back to directory",
                extra_data={"hostname": hostname, "error": str(e)}
            )
            return None

    async def set(self, hostname: str, tenant_id: str, ttl_seconds: int) -> None:
        try:
            await self._redis.setex(cache_key(hostname), ttl_seconds, tenant_id)
        except RedisError as e:
            logger.warning(
                "Tenant cache write failed",
                extra_data={"hostname": hostname, "tenant_id": tenant_id, "error": str(e)}
            )

    async def evict(self, hostname: str) -> None:
        try:
            await self._redis.delete(cache_key(hostname))
        except RedisError as e:
            # ה-TTL הוא רשת הביטחון במקרה כזה
            logger.error(
                "Tenant cache eviction failed",
                extra_data={"hostname": hostname, "error": str(e)}
            )
