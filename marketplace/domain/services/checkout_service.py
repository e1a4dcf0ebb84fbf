"""
Checkout Service - יצירת הזמנה ו-session תשלום מעגלת קניות

שלבי הולידציה (1-7) טהורים ולא כותבים דבר: חנות נפתרה → חנות מפורסמת →
עגלה לא ריקה → כמויות בטווח INTEGER → כל הואריאנטים נמצאו → כל המוצרים פעילים →
מטבע אחיד. רק אחריהם נכתבת ההזמנה (Pending) יחד עם ה-snapshots שלה,
ואז נקרא ספק התשלומים ומזהה ה-session נשמר בכתיבה שנייה.

כל הסכומים ב-minor units כ-int — אין float בשום שלב.
"""
from collections import Counter
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.config import settings
from marketplace.core.exceptions import (
    AppException,
    CurrencyMismatchError,
    EmptyCartError,
    ErrorCode,
    ProductNotAvailableError,
    ProductsNotFoundError,
    StoreNotFoundError,
    StoreNotPublishedError,
    ValidationException,
)
from marketplace.core.logging import get_logger, log_async_operation, set_tenant_context
from marketplace.core.validation import CurrencyValidator, EmailValidator
from marketplace.db.database import atomic
from marketplace.db.models.audit_log import AuditLog
from marketplace.db.models.order import Order, OrderItem, OrderStatus
from marketplace.db.models.product import ProductStatus
from marketplace.db.models.storefront_config import StorefrontConfig, StorefrontStatus
from marketplace.db.models.tenant import generate_uuid
from marketplace.domain.services.catalog_store import CatalogStore, CatalogVariant
from marketplace.domain.services.payments.base_gateway import CheckoutLineItem, PaymentGateway
from marketplace.domain.services.tenant_resolver import TenantResolver, normalize_hostname

logger = get_logger(__name__)

# BIGINT של Postgres
MAX_AMOUNT = 2 ** 63 - 1

# עמודת quantity היא INTEGER
MAX_QUANTITY = 2 ** 31 - 1


@dataclass(frozen=True)
class CartItem:
    variant_id: str
    quantity: int


@dataclass(frozen=True)
class CheckoutResult:
    order_id: str
    checkout_url: str


class CheckoutService:
    """Service for turning a cart into a Pending order and a hosted payment session"""

    def __init__(
        self,
        db: AsyncSession,
        resolver: TenantResolver,
        catalog: CatalogStore,
        gateway: PaymentGateway,
    ):
        self.db = db
        self.resolver = resolver
        self.catalog = catalog
        self.gateway = gateway

    async def _get_live_config(self, tenant_id: str) -> StorefrontConfig:
        result = await self.db.execute(
            select(StorefrontConfig).where(StorefrontConfig.tenant_id == tenant_id)
        )
        config = result.scalar_one_or_none()
        if config is None or config.status != StorefrontStatus.LIVE:
            raise StoreNotPublishedError(tenant_id)
        return config

    @staticmethod
    def _validate_items(items: list[CartItem]) -> None:
        if not items:
            raise EmptyCartError()

        invalid = [
            item.variant_id for item in items
            if item.quantity <= 0 or item.quantity > MAX_QUANTITY
        ]
        if invalid:
            raise ValidationException(
                f"Quantity must be between 1 and {MAX_QUANTITY}",
                field="quantity",
                error_code=ErrorCode.INVALID_QUANTITY,
                details={"variant_ids": invalid},
            )

    @staticmethod
    def _check_variants(
        items: list[CartItem],
        variants: list[CatalogVariant],
        store_currency: str,
    ) -> dict[str, CatalogVariant]:
        by_id = {v.variant_id: v for v in variants}

        # כל שורה בעגלה חייבת להיפתר לואריאנט נפרד של ה-tenant
        requested = [item.variant_id for item in items]
        missing = [vid for vid in requested if vid not in by_id]
        if missing:
            raise ProductsNotFoundError(missing)

        if len(by_id) != len(requested):
            repeated = [vid for vid, count in Counter(requested).items() if count > 1]
            raise ProductsNotFoundError(repeated)

        unavailable = [
            vid for vid in requested
            if by_id[vid].product_status != ProductStatus.ACTIVE
        ]
        if unavailable:
            raise ProductNotAvailableError(unavailable)

        for vid in requested:
            variant_currency = CurrencyValidator.normalize(by_id[vid].currency)
            if variant_currency != store_currency:
                raise CurrencyMismatchError(store_currency, variant_currency, vid)

        return by_id

    @staticmethod
    def _build_items(
        tenant_id: str,
        items: list[CartItem],
        by_id: dict[str, CatalogVariant],
        currency: str,
    ) -> tuple[list[OrderItem], int]:
        order_items = []
        subtotal = 0
        for line_no, item in enumerate(items):
            variant = by_id[item.variant_id]
            line_total = variant.price_amount * item.quantity
            subtotal += line_total
            if line_total > MAX_AMOUNT or subtotal > MAX_AMOUNT:
                raise ValidationException(
                    "Order amount is out of range",
                    error_code=ErrorCode.AMOUNT_OUT_OF_RANGE,
                    details={"variant_id": item.variant_id},
                )

            order_items.append(OrderItem(
                id=generate_uuid(),
                line_no=line_no,
                tenant_id=tenant_id,
                product_id=variant.product_id,
                variant_id=variant.variant_id,
                title_snapshot=variant.title,
                sku_snapshot=variant.sku,
                unit_price_amount=variant.price_amount,
                quantity=item.quantity,
                currency=currency,
                line_total_amount=line_total,
            ))
        return order_items, subtotal

    @staticmethod
    def _storefront_url(hostname: str, path: str) -> str:
        port = f":{settings.STOREFRONT_PORT}" if settings.STOREFRONT_PORT else ""
        return f"{settings.STOREFRONT_SCHEME}://{hostname}{port}{path}"

    @log_async_operation("create_checkout_session")
    async def create_checkout_session(
        self,
        hostname: str | None,
        items: list[CartItem],
        customer_email: str | None = None,
    ) -> CheckoutResult:
        """
        Create a Pending order for the cart and open a hosted payment session.

        Raises:
            StoreNotFoundError: hostname does not resolve to a store
            StoreNotPublishedError: storefront is not Live
            EmptyCartError / ValidationException: bad cart input
            ProductsNotFoundError / ProductNotAvailableError / CurrencyMismatchError
            PaymentGatewayError: the gateway failed after the order was written
        """
        host = normalize_hostname(hostname)
        tenant_id = await self.resolver.resolve(host)
        if tenant_id is None:
            raise StoreNotFoundError(host)
        set_tenant_context(tenant_id)

        config = await self._get_live_config(tenant_id)
        self._validate_items(items)

        email = None
        if customer_email and customer_email.strip():
            email = EmailValidator.normalize(customer_email)
            if not EmailValidator.validate(email):
                raise ValidationException("Invalid customer email", field="customerEmail")

        currency = CurrencyValidator.normalize(config.currency)
        variants = await self.catalog.get_variants_by_ids(
            tenant_id, [item.variant_id for item in items]
        )
        by_id = self._check_variants(items, variants, currency)
        order_items, subtotal = self._build_items(tenant_id, items, by_id, currency)

        order = Order(
            id=generate_uuid(),
            tenant_id=tenant_id,
            status=OrderStatus.PENDING,
            currency=currency,
            subtotal_amount=subtotal,
            total_amount=subtotal,
            customer_email=email,
            items=order_items,
        )

        async with atomic(self.db):
            self.db.add(order)
            self.db.add(AuditLog(
                tenant_id=tenant_id,
                action="Create",
                entity="Order",
                entity_id=order.id,
                new_values={
                    "status": OrderStatus.PENDING.value,
                    "currency": currency,
                    "total_amount": subtotal,
                    "items": len(order_items),
                },
            ))

        logger.info(
            "Order created",
            extra_data={
                "order_id": order.id,
                "tenant_id": tenant_id,
                "total_amount": subtotal,
                "currency": currency,
            }
        )

        line_items = [
            CheckoutLineItem(
                name=item.title_snapshot,
                unit_amount=item.unit_price_amount,
                currency=item.currency,
                quantity=item.quantity,
            )
            for item in order_items
        ]

        try:
            session = await self.gateway.create_checkout_session(
                line_items=line_items,
                success_url=self._storefront_url(
                    host, f"{settings.CHECKOUT_SUCCESS_PATH}?orderId={order.id}"
                ),
                cancel_url=self._storefront_url(host, settings.CHECKOUT_CANCEL_PATH),
                client_reference_id=order.id,
                metadata={
                    "tenant_id": tenant_id,
                    "order_id": order.id,
                    "store_name": config.store_name,
                },
            )
        except AppException as e:
            # ההזמנה נשארת Pending בלי session id
            logger.error(
                "Payment session creation failed, order left pending",
                extra_data={"order_id": order.id, "error_code": e.error_code.value},
            )
            raise

        order.payment_session_id = session.session_id
        await self.db.commit()

        return CheckoutResult(order_id=order.id, checkout_url=session.checkout_url)
