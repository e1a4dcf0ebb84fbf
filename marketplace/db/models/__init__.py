"""
Database Models
"""
from marketplace.db.models.tenant import Tenant
from marketplace.db.models.domain import Domain
from marketplace.db.models.storefront_config import StorefrontConfig, StorefrontStatus
from marketplace.db.models.product import Product, ProductStatus, ProductVariant
from marketplace.db.models.order import Order, OrderItem, OrderStatus
from marketplace.db.models.webhook_event import PaymentWebhookEvent, WebhookProcessingStatus
from marketplace.db.models.audit_log import AuditLog

__all__ = [
    "Tenant",
    "Domain",
    "StorefrontConfig",
    "StorefrontStatus",
    "Product",
    "ProductStatus",
    "ProductVariant",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentWebhookEvent",
    "WebhookProcessingStatus",
    "AuditLog",
]
