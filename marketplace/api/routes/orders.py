"""
Storefront Order API Routes
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.dependencies.tenant import get_current_tenant_id
from marketplace.db.database import get_db
from marketplace.domain.services.order_service import OrderService

router = APIRouter()


class OrderItemResponse(BaseModel):
    """Snapshot line of an order"""
    title: str
    sku: str | None
    unit_price_amount: int
    quantity: int
    currency: str
    line_total_amount: int

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class OrderResponse(BaseModel):
    """Response schema for order data"""
    id: str
    status: str
    currency: str
    subtotal_amount: int
    total_amount: int
    customer_email: str | None
    items: list[OrderItemResponse]
    created_at: datetime

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        return cls(
            id=order.id,
            status=order.status.value,
            currency=order.currency,
            subtotal_amount=order.subtotal_amount,
            total_amount=order.total_amount,
            customer_email=order.customer_email,
            items=[
                OrderItemResponse(
                    title=item.title_snapshot,
                    sku=item.sku_snapshot,
                    unit_price_amount=item.unit_price_amount,
                    quantity=item.quantity,
                    currency=item.currency,
                    line_total_amount=item.line_total_amount,
                )
                for item in order.items
            ],
            created_at=order.created_at,
        )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    tenant_id: str = Depends(get_current_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """הזמנה של החנות שמשרתת את ה-Host; הזמנה של חנות אחרת → 404"""
    order = await OrderService(db).get_for_tenant(tenant_id, order_id)
    return OrderResponse.from_order(order)
