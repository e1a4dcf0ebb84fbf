"""
Tests for storefront API endpoints (checkout + order view)

החנות נקבעת לפי כותרת Host בלבד.
"""
import pytest
from sqlalchemy import func, select

from marketplace.db.models import Order, StorefrontStatus


class TestCheckoutEndpoint:

    @pytest.mark.integration
    async def test_create_session(self, test_client, fake_gateway, store_factory, variant_factory):
        store = await store_factory()
        variant = await variant_factory(store.tenant_id, price_amount=1500)

        response = await test_client.post(
            "/api/storefront/checkout/session",
            json={"items": [{"variantId": variant.id, "quantity": 2}], "customerEmail": "maria@example.com"},
            headers={"Host": f"{store.hostname}:5003"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["checkoutUrl"] == "https://checkout.stripe.test/pay/cs_test_1"
        assert body["orderId"]
        assert fake_gateway.calls[0]["client_reference_id"] == body["orderId"]

    @pytest.mark.integration
    async def test_unknown_host_is_404(self, test_client):
        response = await test_client.post(
            "/api/storefront/checkout/session",
            json={"items": [{"variantId": "v", "quantity": 1}]},
            headers={"Host": "ghost.localtest.me"},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "ERR_2001"

    @pytest.mark.integration
    async def test_draft_store_is_400(self, test_client, store_factory, variant_factory):
        store = await store_factory(status=StorefrontStatus.DRAFT)
        variant = await variant_factory(store.tenant_id)

        response = await test_client.post(
            "/api/storefront/checkout/session",
            json={"items": [{"variantId": variant.id, "quantity": 1}]},
            headers={"Host": store.hostname},
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Store not published"

    @pytest.mark.integration
    async def test_empty_cart_is_400(self, test_client, store_factory):
        store = await store_factory()

        response = await test_client.post(
            "/api/storefront/checkout/session",
            json={"items": []},
            headers={"Host": store.hostname},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "ERR_3001"

    @pytest.mark.integration
    async def test_huge_quantity_is_400(self, test_client, db_session, store_factory, variant_factory):
        store = await store_factory()
        variant = await variant_factory(store.tenant_id, price_amount=1)

        response = await test_client.post(
            "/api/storefront/checkout/session",
            json={"items": [{"variantId": variant.id, "quantity": 3_000_000_000}]},
            headers={"Host": store.hostname},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "ERR_3005"
        count = await db_session.execute(select(func.count(Order.id)))
        assert count.scalar_one() == 0

    @pytest.mark.integration
    async def test_repeated_variant_is_400(self, test_client, store_factory, variant_factory):
        store = await store_factory()
        variant = await variant_factory(store.tenant_id)

        response = await test_client.post(
            "/api/storefront/checkout/session",
            json={"items": [
                {"variantId": variant.id, "quantity": 1},
                {"variantId": variant.id, "quantity": 1},
            ]},
            headers={"Host": store.hostname},
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Some products not found"

    @pytest.mark.integration
    async def test_currency_mismatch_creates_no_order(self, test_client, db_session, store_factory, variant_factory):
        store = await store_factory(currency="EUR")
        variant = await variant_factory(store.tenant_id, currency="USD")

        response = await test_client.post(
            "/api/storefront/checkout/session",
            json={"items": [{"variantId": variant.id, "quantity": 1}]},
            headers={"Host": store.hostname},
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Currency mismatch"
        count = await db_session.execute(select(func.count(Order.id)))
        assert count.scalar_one() == 0

    @pytest.mark.integration
    async def test_gateway_failure_is_502(self, test_client, failing_gateway, store_factory, variant_factory):
        store = await store_factory()
        variant = await variant_factory(store.tenant_id)

        response = await test_client.post(
            "/api/storefront/checkout/session",
            json={"items": [{"variantId": variant.id, "quantity": 1}]},
            headers={"Host": store.hostname},
        )

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "ERR_5001"

    @pytest.mark.integration
    async def test_malformed_body_is_422(self, test_client, store_factory):
        store = await store_factory()

        response = await test_client.post(
            "/api/storefront/checkout/session",
            json={"items": [{"variantId": "", "quantity": "many"}]},
            headers={"Host": store.hostname},
        )

        assert response.status_code == 422


class TestOrderEndpoint:

    @pytest.mark.integration
    async def test_get_order(self, test_client, store_factory, order_factory):
        store = await store_factory()
        order = await order_factory(store.tenant_id)

        response = await test_client.get(
            f"/api/storefront/orders/{order.id}", headers={"Host": store.hostname}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == order.id
        assert body["status"] == "Pending"
        assert body["totalAmount"] == 3000
        assert body["items"][0]["unitPriceAmount"] == 1500
        assert body["items"][0]["title"] == "Camisola de Lã"
        assert "paymentSessionId" not in body

    @pytest.mark.integration
    async def test_order_of_another_store_is_404(self, test_client, store_factory, order_factory):
        store = await store_factory()
        other = await store_factory(store_name="Outra Loja")
        order = await order_factory(other.tenant_id)

        response = await test_client.get(
            f"/api/storefront/orders/{order.id}", headers={"Host": store.hostname}
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "ERR_4001"
