"""
Catalog Models - מוצרים וואריאנטים

ה-CRUD של הקטלוג מנוהל מחוץ לשירות הזה; ה-checkout קורא את הטבלאות
האלה לקריאה בלבד. מחירים נשמרים ב-minor units (סנטים) כמספר שלם.
"""
import enum
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, BigInteger, Boolean, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship

from marketplace.db.database import Base
from marketplace.db.models.tenant import generate_uuid


class ProductStatus(str, enum.Enum):
    DRAFT = "Draft"
    ACTIVE = "Active"
    ARCHIVED = "Archived"


class Product(Base):
    """Catalog product"""

    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(300), nullable=False)
    slug = Column(String(300), nullable=False)
    status = Column(SQLEnum(ProductStatus), default=ProductStatus.DRAFT, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    variants = relationship("ProductVariant", back_populates="product")


class ProductVariant(Base):
    """Sellable variant (size, colour, ...) with its own price"""

    __tablename__ = "product_variants"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(200), nullable=False, default="Default")
    sku = Column(String(100), nullable=True)
    price_amount = Column(BigInteger, nullable=False)  # minor units
    currency = Column(String(3), nullable=False)
    stock_qty = Column(Integer, default=0, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    product = relationship("Product", back_populates="variants")
