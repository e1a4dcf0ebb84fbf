"""
Pytest Configuration and Fixtures

Provides fixtures for:
- Database sessions (async, in-memory SQLite with SAVEPOINT support)
- Fake external services (Redis, payment gateway)
- Test data factories (stores, catalog variants, orders)
- Signed payment-webhook payload builders
"""
# הגדרת סודות לפני ייבוא האפליקציה — ה-Settings נטענים פעם אחת בייבוא
import os
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")

import json
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncGenerator
from unittest.mock import patch

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.api.dependencies.tenant import get_tenant_cache
from marketplace.core.config import settings
from marketplace.core.exceptions import PaymentGatewayError
from marketplace.db.database import Base, get_db
from marketplace.db.models import (
    Domain,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    ProductStatus,
    ProductVariant,
    StorefrontConfig,
    StorefrontStatus,
    Tenant,
)
from marketplace.domain.services.payments import (
    CheckoutLineItem,
    CheckoutSessionResult,
    PaymentGateway,
    compute_signature_header,
    get_payment_gateway,
)
from marketplace.domain.services.tenant_cache import RedisTenantCache
from marketplace.main import app


# Test database URL (SQLite in memory for fast tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_WEBHOOK_SECRET = "whsec_test_secret"
TEST_ADMIN_API_KEY = "test-admin-key"
BASE_DOMAIN = "localtest.me"

# הערה: לא מגדירים event_loop fixture מותאם אישית כי pytest-asyncio 0.23+
# מטפל בזה אוטומטית עם asyncio_mode=auto ו-asyncio_default_fixture_loop_scope=function


@pytest.fixture(autouse=True)
def test_settings():
    """ערכי קונפיגורציה קבועים לבדיקות"""
    with patch.object(settings, "STRIPE_WEBHOOK_SECRET", TEST_WEBHOOK_SECRET), \
         patch.object(settings, "STRIPE_SECRET_KEY", "sk_test_dummy"), \
         patch.object(settings, "ADMIN_API_KEY", TEST_ADMIN_API_KEY), \
         patch.object(settings, "PLATFORM_BASE_DOMAIN", BASE_DOMAIN), \
         patch.object(settings, "STOREFRONT_SCHEME", "http"), \
         patch.object(settings, "STOREFRONT_PORT", 5003), \
         patch.object(settings, "TENANT_CACHE_TTL_SECONDS", 1800), \
         patch.object(settings, "STRIPE_WEBHOOK_TOLERANCE_SECONDS", 300):
        yield


@pytest.fixture(scope="function")
async def async_engine():
    """Create async test database engine"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # pysqlite/aiosqlite מנהלים BEGIN בעצמם ושוברים SAVEPOINT —
    # מעבירים את השליטה ב-BEGIN ל-SQLAlchemy
    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests"""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


# ============================================================================
# Fake External Services
# ============================================================================


class FakeRedis:
    """תחליף ל-Redis לבדיקות — in-memory dict עם ממשק תואם ומעקב TTL."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}
        self._ttls: dict[str, int] = {}
        self._remaining: dict[str, int] = {}
        self.get_calls = 0

    def advance(self, seconds: int) -> None:
        """מזיז את השעון — מפתחות שה-TTL שלהם נגמר נמחקים"""
        for key in list(self._remaining):
            self._remaining[key] -= seconds
            if self._remaining[key] <= 0:
                self._store.pop(key, None)
                self._remaining.pop(key)

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        self.get_calls += 1
        return self._store.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self._store[key] = value
        self._ttls[key] = ttl
        self._remaining[key] = ttl

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self._store.pop(key, None)
            self._ttls.pop(key, None)
            self._remaining.pop(key, None)

    async def aclose(self) -> None:
        self._store.clear()
        self._ttls.clear()
        self._remaining.clear()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def tenant_cache(fake_redis: FakeRedis) -> RedisTenantCache:
    return RedisTenantCache(fake_redis)


class FakePaymentGateway(PaymentGateway):
    """ספק תשלומים מדומה — רושם כל קריאה ומחזיר session קבוע"""

    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.fail_with: Exception | None = None

    @property
    def provider_name(self) -> str:
        return "fake"

    async def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        client_reference_id: str,
        metadata: dict[str, str],
    ) -> CheckoutSessionResult:
        self.calls.append({
            "line_items": line_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "client_reference_id": client_reference_id,
            "metadata": metadata,
        })
        if self.fail_with is not None:
            raise self.fail_with
        session_id = f"cs_test_{len(self.calls)}"
        return CheckoutSessionResult(
            session_id=session_id,
            checkout_url=f"https://checkout.stripe.test/pay/{session_id}",
        )


@pytest.fixture
def fake_gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def failing_gateway(fake_gateway: FakePaymentGateway) -> FakePaymentGateway:
    fake_gateway.fail_with = PaymentGatewayError("create_checkout_session returned status 500")
    return fake_gateway


@pytest.fixture(scope="function")
async def test_client(db_session: AsyncSession, tenant_cache, fake_gateway):
    """Create test client with database, cache and gateway overrides"""
    from httpx import AsyncClient, ASGITransport

    async def override_get_db():
        yield db_session

    async def override_get_tenant_cache():
        return tenant_cache

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_tenant_cache] = override_get_tenant_cache
    app.dependency_overrides[get_payment_gateway] = lambda: fake_gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Admin-API-Key": TEST_ADMIN_API_KEY}


# ============================================================================
# Test Data Factories
# ============================================================================


@dataclass
class SampleStore:
    tenant_id: str
    hostname: str
    config_id: str
    currency: str
    store_name: str


@pytest.fixture
def store_factory(db_session: AsyncSession):
    """Factory for creating a tenant with config and a domain binding"""
    async def _create_store(
        store_name: str = "Loja da Maria",
        subdomain: str | None = None,
        currency: str = "EUR",
        status: StorefrontStatus = StorefrontStatus.LIVE,
        domain_active: bool = True,
        tenant_active: bool = True,
    ) -> SampleStore:
        tenant_id = str(uuid.uuid4())
        subdomain = subdomain or f"loja-{tenant_id[:8]}"
        hostname = f"{subdomain}.{BASE_DOMAIN}"

        tenant = Tenant(
            id=tenant_id,
            name=store_name,
            slug=f"{subdomain}-slug",
            is_active=tenant_active,
        )
        config = StorefrontConfig(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            store_name=store_name,
            subdomain=subdomain,
            currency=currency,
            locale="pt-PT",
            theme="default",
            status=status,
            published_at=datetime.utcnow() if status == StorefrontStatus.LIVE else None,
        )
        domain = Domain(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            hostname=hostname,
            is_active=domain_active,
            is_primary=True,
        )
        db_session.add(tenant)
        await db_session.flush()
        db_session.add_all([config, domain])
        await db_session.commit()
        return SampleStore(
            tenant_id=tenant_id,
            hostname=hostname,
            config_id=config.id,
            currency=currency,
            store_name=store_name,
        )

    return _create_store


@pytest.fixture
def variant_factory(db_session: AsyncSession):
    """Factory for creating a product with one priced variant"""
    async def _create_variant(
        tenant_id: str,
        title: str = "Camisola de Lã",
        price_amount: int = 1500,
        currency: str = "EUR",
        status: ProductStatus = ProductStatus.ACTIVE,
        sku: str | None = "SKU-001",
    ) -> ProductVariant:
        product = Product(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            title=title,
            slug=f"product-{uuid.uuid4().hex[:8]}",
            status=status,
        )
        variant = ProductVariant(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            product_id=product.id,
            name="Default",
            sku=sku,
            price_amount=price_amount,
            currency=currency,
            stock_qty=10,
            is_default=True,
        )
        db_session.add(product)
        await db_session.flush()
        db_session.add(variant)
        await db_session.commit()
        return variant

    return _create_variant


@pytest.fixture
def order_factory(db_session: AsyncSession):
    """Factory for creating an order with a single line"""
    async def _create_order(
        tenant_id: str,
        status: OrderStatus = OrderStatus.PENDING,
        unit_price_amount: int = 1500,
        quantity: int = 2,
        currency: str = "EUR",
        payment_session_id: str | None = "cs_test_existing",
        payment_intent_id: str | None = None,
        customer_email: str | None = "cliente@example.com",
        created_at: datetime | None = None,
    ) -> Order:
        line_total = unit_price_amount * quantity
        order_id = str(uuid.uuid4())
        order = Order(
            id=order_id,
            tenant_id=tenant_id,
            status=status,
            currency=currency,
            subtotal_amount=line_total,
            total_amount=line_total,
            customer_email=customer_email,
            payment_session_id=payment_session_id,
            payment_intent_id=payment_intent_id,
            created_at=created_at or datetime.utcnow(),
            items=[
                OrderItem(
                    id=str(uuid.uuid4()),
                    tenant_id=tenant_id,
                    product_id=str(uuid.uuid4()),
                    variant_id=str(uuid.uuid4()),
                    title_snapshot="Camisola de Lã",
                    sku_snapshot="SKU-001",
                    unit_price_amount=unit_price_amount,
                    quantity=quantity,
                    currency=currency,
                    line_total_amount=line_total,
                )
            ],
        )
        db_session.add(order)
        await db_session.commit()
        return order

    return _create_order


# ============================================================================
# Payment Webhook Payloads
# ============================================================================


def build_event(event_id: str, event_type: str, obj: dict) -> bytes:
    """בניית גוף אירוע בפורמט Stripe"""
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": int(time.time()),
        "data": {"object": obj},
    }).encode()


def signed_headers(payload: bytes, secret: str = TEST_WEBHOOK_SECRET) -> dict[str, str]:
    return {
        "Stripe-Signature": compute_signature_header(payload, secret),
        "Content-Type": "application/json",
    }


# ============================================================================
# Circuit Breaker Reset
# ============================================================================

@pytest.fixture(autouse=True)
def reset_circuit_breakers():
    """Reset circuit breakers and the gateway singleton between tests"""
    from marketplace.core.circuit_breaker import CircuitBreaker
    from marketplace.domain.services.payments.gateway_factory import reset_payment_gateway
    CircuitBreaker.reset_all()
    reset_payment_gateway()
    yield
    CircuitBreaker.reset_all()
    reset_payment_gateway()
