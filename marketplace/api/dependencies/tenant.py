"""
פתרון ה-tenant של הבקשה לפי כותרת Host.

שימוש:
    @router.get("/orders/{order_id}")
    async def get_order(
        order_id: str,
        tenant_id: str = Depends(get_current_tenant_id),
    ):
        ...
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.config import settings
from marketplace.core.exceptions import StoreNotFoundError
from marketplace.core.logging import set_tenant_context
from marketplace.core.redis_client import get_redis
from marketplace.db.database import get_db
from marketplace.domain.services.tenant_cache import RedisTenantCache, TenantCache
from marketplace.domain.services.tenant_resolver import (
    TenantDirectory,
    TenantResolver,
    normalize_hostname,
)


async def get_tenant_cache() -> TenantCache:
    """ה-cache של פתרון ה-tenant (Redis)"""
    return RedisTenantCache(await get_redis())


async def get_tenant_resolver(
    db: AsyncSession = Depends(get_db),
    cache: TenantCache = Depends(get_tenant_cache),
) -> TenantResolver:
    return TenantResolver(
        directory=TenantDirectory(db),
        cache=cache,
        ttl_seconds=settings.TENANT_CACHE_TTL_SECONDS,
    )


def get_request_hostname(request: Request) -> str | None:
    """Host מנורמל של הבקשה (בלי פורט)"""
    return normalize_hostname(request.headers.get("host"))


async def get_current_tenant_id(
    hostname: str | None = Depends(get_request_hostname),
    resolver: TenantResolver = Depends(get_tenant_resolver),
) -> str:
    """
    Tenant id של החנות שמשרתת את הבקשה.

    זורק StoreNotFoundError (404) אם ה-Host לא קשור לחנות פעילה.
    """
    tenant_id = await resolver.resolve(hostname)
    if tenant_id is None:
        raise StoreNotFoundError(hostname)
    set_tenant_context(tenant_id)
    return tenant_id
