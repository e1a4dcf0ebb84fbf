"""
Audit Log Model — לוג ביקורת append-only

רישום בלתי-הפיך של יצירה/עדכון/פרסום חנויות ושל שינויי סטטוס הזמנות:
"מי/מה שונה מ-X ל-Y".
"""
from datetime import datetime
from sqlalchemy import Column, String, DateTime
from sqlalchemy.types import JSON

from marketplace.db.database import Base
from marketplace.db.models.tenant import generate_uuid


class AuditLog(Base):
    """לוג ביקורת — רישום בלתי-הפיך של פעולות"""

    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    tenant_id = Column(String(36), nullable=True, index=True)
    action = Column(String(50), nullable=False)  # Create / Update / Publish / StatusChange
    entity = Column(String(50), nullable=False)  # Tenant / StorefrontConfig / Domain / Order
    entity_id = Column(String(36), nullable=True)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
