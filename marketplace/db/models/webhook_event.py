"""
Payment Webhook Event Model - ledger ה-idempotency של אירועי ספק התשלומים.

שורה אחת לכל external event id (unique). קיום השורה — לא הסטטוס שלה — הוא
מה שמונע הפעלה כפולה של תופעות לוואי: גם אירוע שנכשל (Failed) לא מעובד שוב.
"""
import enum
from datetime import datetime

from sqlalchemy import Column, String, DateTime, Text, Enum as SQLEnum, Index

from marketplace.db.database import Base
from marketplace.db.models.tenant import generate_uuid


class WebhookProcessingStatus(str, enum.Enum):
    RECEIVED = "Received"
    PROCESSED = "Processed"
    FAILED = "Failed"


class PaymentWebhookEvent(Base):
    """רשומת idempotency - אירוע שהתקבל מ-webhook של ספק התשלומים"""

    __tablename__ = "payment_webhook_events"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    external_event_id = Column(String(255), unique=True, nullable=False)
    event_type = Column(String(100), nullable=False)
    tenant_id = Column(String(36), nullable=True, index=True)

    processing_status = Column(
        SQLEnum(WebhookProcessingStatus),
        nullable=False,
        default=WebhookProcessingStatus.RECEIVED,
    )
    received_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    processed_at = Column(DateTime, nullable=True)
    error = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_payment_webhook_events_status_received", "processing_status", "received_at"),
    )
