"""
Storefront Checkout API Routes
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.dependencies.tenant import get_request_hostname, get_tenant_resolver
from marketplace.db.database import get_db
from marketplace.domain.services.catalog_store import SqlCatalogStore
from marketplace.domain.services.checkout_service import CartItem, CheckoutService
from marketplace.domain.services.payments import PaymentGateway, get_payment_gateway
from marketplace.domain.services.tenant_resolver import TenantResolver

router = APIRouter()


class CheckoutItemRequest(BaseModel):
    variant_id: str = Field(min_length=1)
    quantity: int

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class CheckoutSessionRequest(BaseModel):
    """Cart submitted by the storefront"""
    items: list[CheckoutItemRequest] = []
    customer_email: str | None = None

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class CheckoutSessionResponse(BaseModel):
    order_id: str
    checkout_url: str

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


def get_checkout_service(
    db: AsyncSession = Depends(get_db),
    resolver: TenantResolver = Depends(get_tenant_resolver),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> CheckoutService:
    return CheckoutService(db, resolver, SqlCatalogStore(db), gateway)


@router.post("/session", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    payload: CheckoutSessionRequest,
    hostname: str | None = Depends(get_request_hostname),
    service: CheckoutService = Depends(get_checkout_service),
) -> CheckoutSessionResponse:
    """
    יצירת הזמנה Pending ו-session תשלום לעגלה.

    החנות נקבעת לפי ה-Host; המחירים מחושבים בצד השרת בלבד.
    """
    result = await service.create_checkout_session(
        hostname,
        [CartItem(variant_id=item.variant_id, quantity=item.quantity) for item in payload.items],
        payload.customer_email,
    )
    return CheckoutSessionResponse(order_id=result.order_id, checkout_url=result.checkout_url)
