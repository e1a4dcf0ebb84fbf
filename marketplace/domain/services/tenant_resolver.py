"""
Tenant Resolution - פתרון tenant לפי hostname של הבקשה

read-through cache מעל טבלת הדומיינים:
- hit  → מחזירים את ה-tenant id בלי לגשת ל-DB
- miss → שאילתה על דומיין פעיל של tenant פעיל; נמצא → נשמר ב-cache עם TTL
- לא נמצא → None, ולא שומרים תוצאה שלילית (דומיין חדש נראה מיד)

כל פעולת provisioning שמשנה דומיין/קונפיגורציה מפנה את ה-hostnames
הרלוונטיים באופן סינכרוני דרך invalidate_hostname / invalidate_tenant.
"""
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.logging import get_logger
from marketplace.core.validation import HostnameValidator
from marketplace.db.models.domain import Domain
from marketplace.db.models.tenant import Tenant
from marketplace.domain.services.tenant_cache import TenantCache

logger = get_logger(__name__)


def normalize_hostname(host: str | None) -> str | None:
    """'Shop.Example.com:5003' -> 'shop.example.com'"""
    return HostnameValidator.normalize(host)


class TenantDirectoryProtocol(Protocol):
    async def find_active_domain_by_hostname(self, hostname: str) -> str | None: ...

    async def list_hostnames_for_tenant(self, tenant_id: str) -> list[str]: ...


class TenantDirectory:
    """SQL lookup of domain bindings"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_active_domain_by_hostname(self, hostname: str) -> str | None:
        result = await self.db.execute(
            select(Domain.tenant_id)
            .join(Tenant, Tenant.id == Domain.tenant_id)
            .where(
                Domain.hostname == hostname,
                Domain.is_active.is_(True),
                Tenant.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def list_hostnames_for_tenant(self, tenant_id: str) -> list[str]:
        """כל ה-hostnames של ה-tenant, כולל לא פעילים (לצורך פינוי cache)"""
        result = await self.db.execute(
            select(Domain.hostname).where(Domain.tenant_id == tenant_id)
        )
        return list(result.scalars().all())


class TenantResolver:
    """Resolves a request hostname to a tenant id through the cache"""

    def __init__(
        self,
        directory: TenantDirectoryProtocol,
        cache: TenantCache,
        ttl_seconds: int,
    ):
        self.directory = directory
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    async def resolve(self, hostname: str | None) -> str | None:
        """
        Resolve a hostname to its tenant id.

        Directory errors are logged and reported as "not found" so a
        broken lookup yields a 404 rather than crashing the request.
        """
        host = normalize_hostname(hostname)
        if not host:
            return None

        cached = await self.cache.get(host)
        if cached:
            return cached

        try:
            tenant_id = await self.directory.find_active_domain_by_hostname(host)
        except Exception as e:
            logger.error(
                "Tenant directory lookup failed",
                extra_data={"hostname": host, "error": str(e)},
                exc_info=True
            )
            return None

        if tenant_id is None:
            logger.debug("Hostname not bound to an active store", extra_data={"hostname": host})
            return None

        await self.cache.set(host, tenant_id, self.ttl_seconds)
        return tenant_id

    async def invalidate_hostname(self, hostname: str) -> None:
        host = normalize_hostname(hostname)
        if not host:
            return
        await self.cache.evict(host)
        logger.info("Tenant cache entry evicted", extra_data={"hostname": host})

    async def invalidate_tenant(self, tenant_id: str) -> list[str]:
        """Evict every hostname bound to the tenant. Returns the evicted hostnames."""
        hostnames = await self.directory.list_hostnames_for_tenant(tenant_id)
        for host in hostnames:
            await self.cache.evict(host)

        logger.info(
            "Tenant cache entries evicted",
            extra_data={"tenant_id": tenant_id, "hostnames": hostnames}
        )
        return hostnames
