"""
תרחיש: חנות חדשה מקצה לקצה — provisioning, checkout, תשלום והחזר.

1. אדמין יוצר חנות, קושר תת-דומיין ומפרסם
2. לקוח מבצע checkout דרך ה-Host של החנות → הזמנה Pending
3. ספק התשלומים שולח checkout.session.completed (פעמיים) → Paid פעם אחת
4. אירוע כשל מאוחר לא מוריד את ההזמנה מ-Paid
5. charge.refunded → Refunded
6. חנות שנייה לא רואה את ההזמנה של הראשונה
"""
import pytest

from marketplace.db.models import OrderStatus
from tests.scenarios.conftest import (
    ADMIN_HEADERS,
    checkout,
    count_ledger_rows,
    deliver_event,
    get_order_status,
    provision_live_store,
    seed_variant,
)


@pytest.mark.scenario
async def test_store_purchase_and_refund(test_client, db_session, fake_gateway):
    tenant_id, hostname = await provision_live_store(test_client, "Loja da Maria", "loja-maria")
    assert hostname == "loja-maria.localtest.me"

    variant_id = await seed_variant(db_session, tenant_id, title="Camisola de Lã", price_amount=1500)

    # --- checkout ---
    response = await checkout(test_client, hostname, [(variant_id, 2)], email="maria@example.com")
    assert response.status_code == 200, response.text
    order_id = response.json()["orderId"]
    assert await get_order_status(db_session, order_id) == OrderStatus.PENDING

    call = fake_gateway.calls[0]
    assert call["metadata"]["tenant_id"] == tenant_id
    assert call["success_url"].startswith("http://loja-maria.localtest.me:5003/checkout/success")

    order_view = await test_client.get(f"/api/storefront/orders/{order_id}", headers={"Host": hostname})
    assert order_view.json()["totalAmount"] == 3000
    assert order_view.json()["currency"] == "EUR"

    # --- payment completed, delivered twice ---
    completed = {
        "id": "cs_test_1",
        "client_reference_id": order_id,
        "payment_intent": "pi_loja_1",
        "metadata": {"tenant_id": tenant_id, "order_id": order_id},
    }
    first = await deliver_event(test_client, "evt_abc", "checkout.session.completed", completed)
    second = await deliver_event(test_client, "evt_abc", "checkout.session.completed", completed)

    assert first.json() == {"received": True}
    assert second.json() == {"received": True, "duplicate": True}
    assert await count_ledger_rows(db_session, "evt_abc") == 1
    assert await get_order_status(db_session, order_id) == OrderStatus.PAID

    # --- late failure is ignored ---
    late = await deliver_event(test_client, "evt_late_fail", "payment_intent.payment_failed", {
        "id": "pi_loja_1",
        "metadata": {"tenant_id": tenant_id, "order_id": order_id},
    })
    assert late.status_code == 200
    assert await get_order_status(db_session, order_id) == OrderStatus.PAID

    # --- refund ---
    refund = await deliver_event(test_client, "evt_refund", "charge.refunded", {
        "id": "ch_1",
        "payment_intent": "pi_loja_1",
    })
    assert refund.status_code == 200
    assert await get_order_status(db_session, order_id) == OrderStatus.REFUNDED

    admin_view = await test_client.get(f"/api/admin/orders/{tenant_id}/{order_id}", headers=ADMIN_HEADERS)
    assert admin_view.json()["status"] == "Refunded"
    assert admin_view.json()["paymentIntentId"] == "pi_loja_1"

    # --- another store cannot see it ---
    _, other_host = await provision_live_store(test_client, "Loja do Joao", "loja-joao")
    hidden = await test_client.get(f"/api/storefront/orders/{order_id}", headers={"Host": other_host})
    assert hidden.status_code == 404


@pytest.mark.scenario
async def test_draft_store_cannot_sell_until_published(test_client, db_session):
    created = await test_client.post("/api/admin/stores", json={"storeName": "Loja Nova"}, headers=ADMIN_HEADERS)
    tenant_id = created.json()["tenantId"]
    await test_client.post(
        f"/api/admin/stores/{tenant_id}/domain", json={"subdomain": "loja-nova"}, headers=ADMIN_HEADERS
    )
    variant_id = await seed_variant(db_session, tenant_id, title="Caneca", price_amount=900)

    blocked = await checkout(test_client, "loja-nova.localtest.me", [(variant_id, 1)])
    assert blocked.status_code == 400
    assert blocked.json()["error"]["message"] == "Store not published"

    await test_client.post(f"/api/admin/stores/{tenant_id}/publish", headers=ADMIN_HEADERS)

    allowed = await checkout(test_client, "loja-nova.localtest.me", [(variant_id, 1)])
    assert allowed.status_code == 200


@pytest.mark.scenario
async def test_currency_change_is_seen_immediately(test_client, db_session):
    """שינוי מטבע של החנות → cache מפונה → מוצרים במטבע הישן נדחים מיד"""
    tenant_id, hostname = await provision_live_store(test_client, "Loja da Ana", "loja-ana")
    eur_variant = await seed_variant(db_session, tenant_id, title="Livro", price_amount=1200)

    assert (await checkout(test_client, hostname, [(eur_variant, 1)])).status_code == 200

    await test_client.put(
        f"/api/admin/stores/{tenant_id}/config", json={"currency": "usd"}, headers=ADMIN_HEADERS
    )

    response = await checkout(test_client, hostname, [(eur_variant, 1)])
    assert response.status_code == 400
    assert response.json()["error"]["details"]["expected"] == "USD"
