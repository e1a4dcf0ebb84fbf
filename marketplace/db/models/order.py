"""
Order Models - הזמנות ופריטי הזמנה

Order נוצר ב-Pending ע"י ה-checkout ומשתנה אחר כך רק ע"י מעבד ה-webhooks.
OrderItem הוא snapshot בלתי-משתנה של הקטלוג ברגע יצירת ההזמנה — אין FK
לטבלאות הקטלוג, כך שעריכה/מחיקה של מוצר לא משנה היסטוריה.

כל הסכומים ב-minor units (BigInteger), לעולם לא float.
"""
import enum
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, BigInteger, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship

from marketplace.db.database import Base
from marketplace.db.models.tenant import generate_uuid


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"
    CANCELED = "Canceled"


class Order(Base):
    """Tenant-scoped purchase order"""

    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)

    status = Column(SQLEnum(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)
    currency = Column(String(3), nullable=False)
    subtotal_amount = Column(BigInteger, nullable=False)
    total_amount = Column(BigInteger, nullable=False)  # = subtotal (אין עדיין משלוח/מס)
    customer_email = Column(String(254), nullable=True)

    # מזהים חיצוניים של ספק התשלומים
    payment_session_id = Column(String(255), nullable=True, index=True)
    payment_intent_id = Column(String(255), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="OrderItem.line_no",
    )


class OrderItem(Base):
    """Immutable line snapshot taken at order creation"""

    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    tenant_id = Column(String(36), nullable=False)

    # מיקום השורה בעגלה
    line_no = Column(Integer, nullable=False, default=0)
    product_id = Column(String(36), nullable=False)
    variant_id = Column(String(36), nullable=False)
    title_snapshot = Column(String(300), nullable=False)
    sku_snapshot = Column(String(100), nullable=True)
    unit_price_amount = Column(BigInteger, nullable=False)
    quantity = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    line_total_amount = Column(BigInteger, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    order = relationship("Order", back_populates="items")
