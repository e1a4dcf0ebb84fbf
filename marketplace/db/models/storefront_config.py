"""
StorefrontConfig Model - הגדרות ה-vitrine של tenant (1:1)

מעבר סטטוס: Draft → Live בלבד, ורק כשקיים לפחות דומיין פעיל אחד.
"""
import enum
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship

from marketplace.db.database import Base
from marketplace.db.models.tenant import generate_uuid


class StorefrontStatus(str, enum.Enum):
    DRAFT = "Draft"
    LIVE = "Live"


class StorefrontConfig(Base):
    """Publication status and presentation settings of a store"""

    __tablename__ = "storefront_configs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    tenant_id = Column(
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    store_name = Column(String(200), nullable=False)
    subdomain = Column(String(30), nullable=True)
    currency = Column(String(3), nullable=False)  # ISO 4217, uppercase
    locale = Column(String(10), nullable=False)
    theme = Column(String(50), nullable=False, default="default")

    status = Column(SQLEnum(StorefrontStatus), default=StorefrontStatus.DRAFT, nullable=False)
    published_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tenant = relationship("Tenant", back_populates="storefront_config")
