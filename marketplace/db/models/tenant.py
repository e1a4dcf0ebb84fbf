"""
Tenant Model - חנות עצמאית בפלטפורמה

כל tenant מחזיק בדומיינים שלו ובקונפיגורציית ה-storefront שלו (cascade delete).
הזהות (id, slug) נקבעת פעם אחת ב-provisioning ואינה משתנה לאחר מכן.
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.orm import relationship

from marketplace.db.database import Base


def generate_uuid() -> str:
    """Generate an opaque string identifier (UUID4)"""
    return str(uuid.uuid4())


class Tenant(Base):
    """Tenant / store identity"""

    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False)
    slug = Column(String(80), unique=True, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    domains = relationship(
        "Domain",
        back_populates="tenant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    storefront_config = relationship(
        "StorefrontConfig",
        back_populates="tenant",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
