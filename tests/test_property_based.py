"""
בדיקות property-based עם hypothesis לחישובי סכומים ב-checkout.

בודקים אינווריאנטים על:
1. סכום שורות = subtotal = total, הכל ב-minor units שלמים
2. snapshot של כל שורה משקף את הואריאנט ברגע ההזמנה
3. סכום שחורג מ-BIGINT נדחה ולא נחתך
"""
import pytest
from hypothesis import given, settings as h_settings
from hypothesis.strategies import composite, integers, lists

from marketplace.core.exceptions import ErrorCode, ValidationException
from marketplace.db.models import ProductStatus
from marketplace.domain.services.catalog_store import CatalogVariant
from marketplace.domain.services.checkout_service import MAX_AMOUNT, CartItem, CheckoutService


def _variant(index: int, price: int) -> CatalogVariant:
    return CatalogVariant(
        variant_id=f"v-{index}",
        product_id=f"p-{index}",
        product_status=ProductStatus.ACTIVE,
        title=f"Produto {index}",
        sku=f"SKU-{index}",
        price_amount=price,
        currency="EUR",
    )


@composite
def carts(draw, max_price: int = 10_000_000, max_quantity: int = 1_000):
    """עגלה אקראית: ואריאנטים עם מחירים, ושורות שמפנות אליהם (כולל חזרות)"""
    prices = draw(lists(integers(min_value=0, max_value=max_price), min_size=1, max_size=5))
    variants = {f"v-{i}": _variant(i, price) for i, price in enumerate(prices)}
    lines = draw(lists(
        integers(min_value=0, max_value=len(prices) - 1).flatmap(
            lambda i: integers(min_value=1, max_value=max_quantity).map(
                lambda q: CartItem(f"v-{i}", q)
            )
        ),
        min_size=1,
        max_size=8,
    ))
    return variants, lines


class TestOrderTotals:

    @pytest.mark.unit
    @given(carts())
    @h_settings(max_examples=200)
    def test_subtotal_is_sum_of_lines(self, cart):
        variants, lines = cart

        items, subtotal = CheckoutService._build_items("tenant-1", lines, variants, "EUR")

        assert len(items) == len(lines)
        assert subtotal == sum(item.line_total_amount for item in items)
        for item, line in zip(items, lines):
            variant = variants[line.variant_id]
            assert item.unit_price_amount == variant.price_amount
            assert item.quantity == line.quantity
            assert item.line_total_amount == variant.price_amount * line.quantity
            assert item.title_snapshot == variant.title
            assert item.currency == "EUR"
            assert isinstance(item.line_total_amount, int)

    @pytest.mark.unit
    @given(integers(min_value=MAX_AMOUNT // 2 + 1, max_value=MAX_AMOUNT), integers(min_value=2, max_value=1000))
    def test_overflow_is_rejected(self, price, quantity):
        variants = {"v-0": _variant(0, price)}

        with pytest.raises(ValidationException) as exc_info:
            CheckoutService._build_items("tenant-1", [CartItem("v-0", quantity)], variants, "EUR")

        assert exc_info.value.error_code == ErrorCode.AMOUNT_OUT_OF_RANGE
