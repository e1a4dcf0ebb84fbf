"""
Admin Order API Routes - צפייה בהזמנות של חנות
"""
import uuid

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.dependencies.admin_auth import require_admin_api_key
from marketplace.api.routes.orders import OrderResponse
from marketplace.core.config import settings
from marketplace.core.exceptions import ValidationException
from marketplace.db.database import get_db
from marketplace.domain.services.order_service import OrderService

router = APIRouter(dependencies=[Depends(require_admin_api_key)])


class AdminOrderResponse(OrderResponse):
    tenant_id: str
    payment_session_id: str | None
    payment_intent_id: str | None

    @classmethod
    def from_order(cls, order) -> "AdminOrderResponse":
        base = OrderResponse.from_order(order)
        return cls(
            **base.model_dump(),
            tenant_id=order.tenant_id,
            payment_session_id=order.payment_session_id,
            payment_intent_id=order.payment_intent_id,
        )


class OrderPageResponse(BaseModel):
    items: list[AdminOrderResponse]
    page: int
    page_size: int
    total_count: int

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


def _require_tenant_id(tenant_id: str | None) -> str:
    if not tenant_id:
        raise ValidationException("tenantId is required", field="tenantId")
    try:
        return str(uuid.UUID(tenant_id))
    except ValueError:
        raise ValidationException("Invalid tenantId", field="tenantId")


@router.get("", response_model=OrderPageResponse)
async def list_orders(
    tenant_id: str | None = Query(None, alias="tenantId"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, alias="pageSize"),
    db: AsyncSession = Depends(get_db),
) -> OrderPageResponse:
    """הזמנות של tenant, החדשות קודם"""
    tenant_id = _require_tenant_id(tenant_id)
    page_size = min(page_size, settings.ADMIN_ORDERS_MAX_PAGE_SIZE)

    orders, total = await OrderService(db).list_for_tenant(tenant_id, page, page_size)
    return OrderPageResponse(
        items=[AdminOrderResponse.from_order(order) for order in orders],
        page=page,
        page_size=page_size,
        total_count=total,
    )


@router.get("/{tenant_id}/{order_id}", response_model=AdminOrderResponse)
async def get_order(
    tenant_id: str,
    order_id: str,
    db: AsyncSession = Depends(get_db),
) -> AdminOrderResponse:
    tenant_id = _require_tenant_id(tenant_id)
    order = await OrderService(db).get_for_tenant(tenant_id, order_id)
    return AdminOrderResponse.from_order(order)
