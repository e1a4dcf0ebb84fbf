"""
Store Provisioning Service - יצירה, הגדרה, קישור דומיין ופרסום של חנויות

כל פעולה שמשנה דומיין או קונפיגורציה מפנה את ה-cache של פתרון ה-tenant
באופן סינכרוני, אחרי ה-commit ולפני החזרת תשובה למתקשר.
"""
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.config import settings
from marketplace.core.exceptions import (
    AlreadyPublishedError,
    DuplicateHostnameError,
    DuplicateSlugError,
    InvalidSubdomainError,
    NoActiveDomainError,
    SlugTooShortError,
    TenantNotFoundError,
    ValidationException,
)
from marketplace.core.logging import get_logger
from marketplace.core.validation import CurrencyValidator, SlugHelper, SubdomainValidator
from marketplace.db.database import atomic
from marketplace.db.models.audit_log import AuditLog
from marketplace.db.models.domain import Domain
from marketplace.db.models.storefront_config import StorefrontConfig, StorefrontStatus
from marketplace.db.models.tenant import Tenant, generate_uuid
from marketplace.domain.services.tenant_resolver import TenantResolver

logger = get_logger(__name__)


@dataclass(frozen=True)
class PublishResult:
    tenant_id: str
    hostname: str
    status: StorefrontStatus
    published_at: datetime


class ProvisioningService:
    """Service for store lifecycle management"""

    def __init__(self, db: AsyncSession, resolver: TenantResolver):
        self.db = db
        self.resolver = resolver

    async def _get_config(self, tenant_id: str) -> StorefrontConfig:
        result = await self.db.execute(
            select(StorefrontConfig).where(StorefrontConfig.tenant_id == tenant_id)
        )
        config = result.scalar_one_or_none()
        if config is None:
            raise TenantNotFoundError(tenant_id)
        return config

    def _audit(
        self,
        tenant_id: str,
        action: str,
        entity: str,
        entity_id: str,
        old_values: dict | None = None,
        new_values: dict | None = None,
    ) -> None:
        self.db.add(AuditLog(
            tenant_id=tenant_id,
            action=action,
            entity=entity,
            entity_id=entity_id,
            old_values=old_values,
            new_values=new_values,
        ))

    async def create_store(self, store_name: str) -> StorefrontConfig:
        """
        Create a tenant with a Draft storefront.

        The slug is derived from the store name and must be globally unique.
        """
        store_name = (store_name or "").strip()
        if not store_name:
            raise ValidationException("Store name is required", field="storeName")

        slug = SlugHelper.slugify(store_name)
        if len(slug) < SlugHelper.MIN_LENGTH:
            raise SlugTooShortError(slug, SlugHelper.MIN_LENGTH)

        existing = await self.db.execute(select(Tenant.id).where(Tenant.slug == slug))
        if existing.scalar_one_or_none() is not None:
            raise DuplicateSlugError(slug)

        tenant = Tenant(id=generate_uuid(), name=store_name, slug=slug, is_active=True)
        config = StorefrontConfig(
            id=generate_uuid(),
            tenant_id=tenant.id,
            store_name=store_name,
            currency=settings.DEFAULT_CURRENCY,
            locale=settings.DEFAULT_LOCALE,
            theme=settings.DEFAULT_THEME,
            status=StorefrontStatus.DRAFT,
        )

        try:
            async with atomic(self.db):
                self.db.add(tenant)
                await self.db.flush()
                self.db.add(config)
                self._audit(
                    tenant.id, "Create", "Tenant", tenant.id,
                    new_values={"name": tenant.name, "slug": tenant.slug},
                )
                self._audit(
                    tenant.id, "Create", "StorefrontConfig", config.id,
                    new_values={"store_name": config.store_name, "status": config.status.value},
                )
        except IntegrityError:
            # יצירה מקבילה עם אותו slug
            raise DuplicateSlugError(slug)

        logger.info(
            "Store created",
            extra_data={"tenant_id": tenant.id, "slug": slug}
        )
        return config

    async def update_config(
        self,
        tenant_id: str,
        store_name: str | None = None,
        currency: str | None = None,
        locale: str | None = None,
        theme: str | None = None,
    ) -> StorefrontConfig:
        """Update storefront presentation settings; blank fields are left unchanged"""
        config = await self._get_config(tenant_id)

        changes: dict[str, str] = {}
        if store_name and store_name.strip():
            changes["store_name"] = store_name.strip()
        if currency and currency.strip():
            if not CurrencyValidator.validate(currency):
                raise ValidationException(
                    f"Invalid currency code: {currency}", field="currency"
                )
            changes["currency"] = CurrencyValidator.normalize(currency)
        if locale and locale.strip():
            changes["locale"] = locale.strip()
        if theme and theme.strip():
            changes["theme"] = theme.strip()

        if not changes:
            return config

        async with atomic(self.db):
            for field, new_value in changes.items():
                old_value = getattr(config, field)
                setattr(config, field, new_value)
                self._audit(
                    tenant_id, "Update", "StorefrontConfig", config.id,
                    old_values={field: old_value},
                    new_values={field: new_value},
                )
            config.updated_at = datetime.utcnow()

        await self.resolver.invalidate_tenant(tenant_id)

        logger.info(
            "Store config updated",
            extra_data={"tenant_id": tenant_id, "fields": sorted(changes)}
        )
        return config

    async def bind_domain(self, tenant_id: str, subdomain: str) -> Domain:
        """
        Bind <subdomain>.<PLATFORM_BASE_DOMAIN> to the tenant as its primary hostname.

        Re-binding a hostname the tenant already owns reactivates it.
        """
        config = await self._get_config(tenant_id)

        subdomain = SubdomainValidator.normalize(subdomain)
        is_valid, error = SubdomainValidator.validate(subdomain)
        if not is_valid:
            raise InvalidSubdomainError(subdomain, error)

        hostname = f"{subdomain}.{settings.PLATFORM_BASE_DOMAIN.lower()}"

        result = await self.db.execute(select(Domain).where(Domain.hostname == hostname))
        domain = result.scalar_one_or_none()
        if domain is not None and domain.tenant_id != tenant_id:
            raise DuplicateHostnameError(hostname)

        others = await self.db.execute(
            select(Domain).where(Domain.tenant_id == tenant_id, Domain.hostname != hostname)
        )

        try:
            async with atomic(self.db):
                for other in others.scalars().all():
                    other.is_primary = False

                action = "Update" if domain is not None else "Create"
                if domain is None:
                    domain = Domain(
                        id=generate_uuid(),
                        tenant_id=tenant_id,
                        hostname=hostname,
                    )
                    self.db.add(domain)
                domain.is_active = True
                domain.is_primary = True

                old_subdomain = config.subdomain
                config.subdomain = subdomain
                config.updated_at = datetime.utcnow()

                self._audit(
                    tenant_id, action, "Domain", domain.id,
                    new_values={"hostname": hostname, "is_primary": True},
                )
                if old_subdomain != subdomain:
                    self._audit(
                        tenant_id, "Update", "StorefrontConfig", config.id,
                        old_values={"subdomain": old_subdomain},
                        new_values={"subdomain": subdomain},
                    )
        except IntegrityError:
            raise DuplicateHostnameError(hostname)

        await self.resolver.invalidate_hostname(hostname)

        logger.info(
            "Domain bound",
            extra_data={"tenant_id": tenant_id, "hostname": hostname}
        )
        return domain

    async def publish_store(self, tenant_id: str) -> PublishResult:
        """Move a Draft storefront to Live. Requires an active domain binding."""
        config = await self._get_config(tenant_id)

        if config.status != StorefrontStatus.DRAFT:
            raise AlreadyPublishedError(tenant_id)

        result = await self.db.execute(
            select(Domain)
            .where(Domain.tenant_id == tenant_id, Domain.is_active.is_(True))
            .order_by(Domain.is_primary.desc(), Domain.created_at)
        )
        domain = result.scalars().first()
        if domain is None:
            raise NoActiveDomainError(tenant_id)

        async with atomic(self.db):
            config.status = StorefrontStatus.LIVE
            config.published_at = datetime.utcnow()
            config.updated_at = config.published_at
            self._audit(
                tenant_id, "Publish", "StorefrontConfig", config.id,
                old_values={"status": StorefrontStatus.DRAFT.value},
                new_values={"status": StorefrontStatus.LIVE.value, "hostname": domain.hostname},
            )

        await self.resolver.invalidate_tenant(tenant_id)

        logger.info(
            "Store published",
            extra_data={"tenant_id": tenant_id, "hostname": domain.hostname}
        )
        return PublishResult(
            tenant_id=tenant_id,
            hostname=domain.hostname,
            status=config.status,
            published_at=config.published_at,
        )

