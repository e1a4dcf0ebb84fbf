"""
Domain Model - קישור hostname ל-tenant

ה-hostname נשמר מנורמל (lowercase, ללא פורט) וייחודי גלובלית.
מספר hostnames יכולים להצביע על אותו tenant; אחד מהם מסומן כראשי.
"""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship

from marketplace.db.database import Base
from marketplace.db.models.tenant import generate_uuid


class Domain(Base):
    """Hostname binding used for request routing"""

    __tablename__ = "domains"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    tenant_id = Column(
        String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    hostname = Column(String(253), unique=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_primary = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    tenant = relationship("Tenant", back_populates="domains")

    __table_args__ = (
        Index("ix_domains_hostname_active", "hostname", "is_active"),
    )
