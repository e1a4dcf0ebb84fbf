"""
Fixtures ו-helpers לבדיקות תרחיש מקצה לקצה.

מספק:
- provisioning של חנות Live דרך ה-API של האדמין
- זריעת מוצרים ישירות ל-DB (אין API קטלוג)
- פונקציות שליחה תמציתיות: checkout לפי Host, משלוח webhook חתום
- פונקציות אימות DB (סטטוס הזמנה, ledger)
"""
import uuid

import httpx
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.db.models import (
    Order,
    OrderStatus,
    PaymentWebhookEvent,
    Product,
    ProductStatus,
    ProductVariant,
)
from tests.conftest import TEST_ADMIN_API_KEY, build_event, signed_headers

ADMIN_HEADERS = {"X-Admin-API-Key": TEST_ADMIN_API_KEY}


# ============================================================================
# Provisioning
# ============================================================================


async def provision_live_store(
    client: httpx.AsyncClient,
    store_name: str,
    subdomain: str,
    *,
    currency: str | None = None,
) -> tuple[str, str]:
    """יצירה → (מטבע) → דומיין → פרסום. מחזיר (tenant_id, hostname)."""
    created = await client.post("/api/admin/stores", json={"storeName": store_name}, headers=ADMIN_HEADERS)
    assert created.status_code == 201, created.text
    tenant_id = created.json()["tenantId"]

    if currency:
        updated = await client.put(
            f"/api/admin/stores/{tenant_id}/config",
            json={"currency": currency},
            headers=ADMIN_HEADERS,
        )
        assert updated.status_code == 200, updated.text

    bound = await client.post(
        f"/api/admin/stores/{tenant_id}/domain",
        json={"subdomain": subdomain},
        headers=ADMIN_HEADERS,
    )
    assert bound.status_code == 201, bound.text

    published = await client.post(f"/api/admin/stores/{tenant_id}/publish", headers=ADMIN_HEADERS)
    assert published.status_code == 200, published.text
    return tenant_id, published.json()["hostname"]


async def seed_variant(
    db: AsyncSession,
    tenant_id: str,
    *,
    title: str,
    price_amount: int,
    currency: str = "EUR",
    status: ProductStatus = ProductStatus.ACTIVE,
) -> str:
    """מוצר + ואריאנט ברירת מחדל. מחזיר את מזהה הואריאנט."""
    product = Product(
        id=str(uuid.uuid4()),
        tenant_id=tenant_id,
        title=title,
        slug=f"{uuid.uuid4().hex[:10]}",
        status=status,
    )
    variant = ProductVariant(
        id=str(uuid.uuid4()),
        tenant_id=tenant_id,
        product_id=product.id,
        sku=f"SKU-{uuid.uuid4().hex[:6]}",
        price_amount=price_amount,
        currency=currency,
        stock_qty=5,
        is_default=True,
    )
    db.add(product)
    await db.flush()
    db.add(variant)
    await db.commit()
    return variant.id


# ============================================================================
# שליחה
# ============================================================================


async def checkout(
    client: httpx.AsyncClient,
    hostname: str,
    items: list[tuple[str, int]],
    email: str | None = None,
) -> httpx.Response:
    payload = {"items": [{"variantId": vid, "quantity": qty} for vid, qty in items]}
    if email:
        payload["customerEmail"] = email
    return await client.post(
        "/api/storefront/checkout/session",
        json=payload,
        headers={"Host": f"{hostname}:5003"},
    )


async def deliver_event(
    client: httpx.AsyncClient,
    event_id: str,
    event_type: str,
    obj: dict,
) -> httpx.Response:
    """משלוח webhook חתום כמו שספק התשלומים שולח"""
    payload = build_event(event_id, event_type, obj)
    return await client.post("/api/webhooks/stripe", content=payload, headers=signed_headers(payload))


# ============================================================================
# אימות DB
# ============================================================================


async def get_order_status(db: AsyncSession, order_id: str) -> OrderStatus:
    result = await db.execute(
        select(Order.status).where(Order.id == order_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def count_ledger_rows(db: AsyncSession, event_id: str | None = None) -> int:
    query = select(func.count(PaymentWebhookEvent.id))
    if event_id:
        query = query.where(PaymentWebhookEvent.external_event_id == event_id)
    result = await db.execute(query)
    return result.scalar_one()
