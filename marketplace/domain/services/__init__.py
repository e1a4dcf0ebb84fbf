"""
Domain Services
"""
from marketplace.domain.services.tenant_cache import RedisTenantCache, TenantCache
from marketplace.domain.services.tenant_resolver import TenantDirectory, TenantResolver
from marketplace.domain.services.provisioning_service import ProvisioningService
from marketplace.domain.services.catalog_store import SqlCatalogStore
from marketplace.domain.services.checkout_service import CheckoutService
from marketplace.domain.services.order_service import OrderService
from marketplace.domain.services.webhook_processor import WebhookProcessor

__all__ = [
    "RedisTenantCache",
    "TenantCache",
    "TenantDirectory",
    "TenantResolver",
    "ProvisioningService",
    "SqlCatalogStore",
    "CheckoutService",
    "OrderService",
    "WebhookProcessor",
]
