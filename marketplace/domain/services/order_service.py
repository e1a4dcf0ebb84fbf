"""
Order Service - קריאת הזמנות בתחום tenant אחד
"""
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import OrderNotFoundError
from marketplace.db.models.order import Order


class OrderService:
    """Tenant-scoped order reads"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_for_tenant(self, tenant_id: str, order_id: str) -> Order:
        """הזמנה של tenant אחר מוחזרת כ-404, בדיוק כמו הזמנה שלא קיימת"""
        result = await self.db.execute(
            select(Order).where(Order.id == order_id, Order.tenant_id == tenant_id)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def list_for_tenant(
        self,
        tenant_id: str,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Order], int]:
        """
        Newest orders first.

        Returns:
            Tuple of (orders on the page, total order count for the tenant)
        """
        page = max(1, page)
        page_size = max(1, page_size)

        total_result = await self.db.execute(
            select(func.count(Order.id)).where(Order.tenant_id == tenant_id)
        )
        total = total_result.scalar_one()

        result = await self.db.execute(
            select(Order)
            .where(Order.tenant_id == tenant_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total
