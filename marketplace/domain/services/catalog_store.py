"""
Catalog Store - קריאת ואריאנטים של מוצרים עבור ה-checkout (read-only)
"""
from dataclasses import dataclass
from typing import Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.db.models.product import Product, ProductStatus, ProductVariant


@dataclass(frozen=True)
class CatalogVariant:
    """Priced variant joined with its parent product"""
    variant_id: str
    product_id: str
    product_status: ProductStatus
    title: str
    sku: str | None
    price_amount: int
    currency: str


class CatalogStore(Protocol):
    async def get_variants_by_ids(
        self, tenant_id: str, variant_ids: Sequence[str]
    ) -> list[CatalogVariant]: ...


class SqlCatalogStore:
    """CatalogStore over the products / product_variants tables"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_variants_by_ids(
        self, tenant_id: str, variant_ids: Sequence[str]
    ) -> list[CatalogVariant]:
        """ואריאנטים של ה-tenant בלבד; מזהים של tenant אחר פשוט לא יוחזרו"""
        if not variant_ids:
            return []

        result = await self.db.execute(
            select(ProductVariant, Product)
            .join(Product, Product.id == ProductVariant.product_id)
            .where(
                ProductVariant.tenant_id == tenant_id,
                Product.tenant_id == tenant_id,
                ProductVariant.id.in_(set(variant_ids)),
            )
        )

        variants = []
        for variant, product in result.all():
            variants.append(CatalogVariant(
                variant_id=variant.id,
                product_id=product.id,
                product_status=product.status,
                title=product.title,
                sku=variant.sku,
                price_amount=int(variant.price_amount),
                currency=variant.currency.upper(),
            ))
        return variants
