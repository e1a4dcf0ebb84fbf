"""
Payment Webhook Processor - עיבוד idempotent של אירועי ספק התשלומים

מנגנון ה-idempotency מבוסס DB (ledger עם external_event_id ייחודי), לא memory:
1. אימות חתימה — כישלון נדחה עם 400 ולא נרשם ב-ledger.
2. lookup לפי event id — קיים → תשובת duplicate בלי תופעות לוואי.
3. INSERT של שורת Received ב-savepoint — IntegrityError = משלוח מקביל
   של אותו אירוע ניצח, מטופל כ-duplicate.
4. dispatch לפי סוג האירוע, בתוך savepoint נפרד.
5. הצלחה → Processed. חריגה → rollback של ה-savepoint בלבד, Failed + טקסט השגיאה.

שורת ה-ledger ושינוי ההזמנה נכנסים באותו commit — אין מצב שבו ה-ledger
אומר "עובד" וההזמנה לא עברה.
"""
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.config import settings
from marketplace.core.exceptions import InvalidWebhookPayloadError
from marketplace.core.logging import get_logger, set_tenant_context
from marketplace.db.database import atomic
from marketplace.db.models.audit_log import AuditLog
from marketplace.db.models.order import Order, OrderStatus
from marketplace.db.models.webhook_event import PaymentWebhookEvent, WebhookProcessingStatus
from marketplace.domain.services.payments.signature import verify_signature
from marketplace.state_machine.order_states import can_transition

logger = get_logger(__name__)

MAX_ERROR_LENGTH = 2000


class PaymentEventType(str, Enum):
    """Supported payment provider event kinds"""
    CHECKOUT_COMPLETED = "checkout.session.completed"
    PAYMENT_FAILED = "payment_intent.payment_failed"
    ASYNC_PAYMENT_FAILED = "checkout.session.async_payment_failed"
    CHARGE_REFUNDED = "charge.refunded"
    UNHANDLED = "unhandled"

    @classmethod
    def from_raw(cls, raw_type: str) -> "PaymentEventType":
        try:
            return cls(raw_type)
        except ValueError:
            return cls.UNHANDLED


@dataclass(frozen=True)
class PaymentEvent:
    id: str
    type: PaymentEventType
    raw_type: str
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def metadata(self) -> dict[str, Any]:
        metadata = self.data.get("metadata")
        return metadata if isinstance(metadata, dict) else {}

    @classmethod
    def parse(cls, raw_payload: bytes) -> "PaymentEvent":
        """
        Parse a provider event envelope: {"id", "type", "data": {"object": {...}}}

        Raises:
            InvalidWebhookPayloadError: body is not JSON or lacks id/type
        """
        try:
            body = json.loads(raw_payload)
        except (ValueError, UnicodeDecodeError) as e:
            raise InvalidWebhookPayloadError(f"body is not valid JSON: {e}")

        if not isinstance(body, dict):
            raise InvalidWebhookPayloadError("body is not a JSON object")

        event_id = body.get("id")
        raw_type = body.get("type")
        if not isinstance(event_id, str) or not event_id:
            raise InvalidWebhookPayloadError("missing event id")
        if not isinstance(raw_type, str) or not raw_type:
            raise InvalidWebhookPayloadError("missing event type")

        data = body.get("data") or {}
        obj = data.get("object") if isinstance(data, dict) else None

        return cls(
            id=event_id,
            type=PaymentEventType.from_raw(raw_type),
            raw_type=raw_type,
            data=obj if isinstance(obj, dict) else {},
        )


@dataclass(frozen=True)
class WebhookResult:
    event_id: str
    duplicate: bool
    status: WebhookProcessingStatus | None


def _parse_order_id(value: Any) -> str | None:
    """מזהה הזמנה חוקי (UUID) או None"""
    if not isinstance(value, str) or not value:
        return None
    try:
        return str(uuid.UUID(value))
    except ValueError:
        return None


class WebhookProcessor:
    """Applies payment events to orders exactly once per external event id"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find_ledger(self, event_id: str) -> PaymentWebhookEvent | None:
        result = await self.db.execute(
            select(PaymentWebhookEvent).where(PaymentWebhookEvent.external_event_id == event_id)
        )
        return result.scalar_one_or_none()

    async def handle_event(
        self,
        raw_payload: bytes,
        signature_header: str | None,
    ) -> WebhookResult:
        """
        Verify, deduplicate and apply one webhook delivery.

        Raises:
            InvalidWebhookSignatureError: signature verification failed (nothing recorded)
            InvalidWebhookPayloadError: signed body is not a valid event envelope
        """
        verify_signature(
            raw_payload,
            signature_header,
            settings.STRIPE_WEBHOOK_SECRET,
            settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
        )
        event = PaymentEvent.parse(raw_payload)

        logger.info(
            "Payment webhook received",
            extra_data={"event_id": event.id, "event_type": event.raw_type}
        )

        existing = await self._find_ledger(event.id)
        if existing is not None:
            logger.info(
                "Skipping already recorded payment event",
                extra_data={"event_id": event.id, "status": existing.processing_status.value}
            )
            return WebhookResult(event.id, duplicate=True, status=existing.processing_status)

        async with atomic(self.db):
            record = PaymentWebhookEvent(
                external_event_id=event.id,
                event_type=event.raw_type,
                processing_status=WebhookProcessingStatus.RECEIVED,
                received_at=datetime.utcnow(),
            )
            try:
                async with self.db.begin_nested():
                    self.db.add(record)
            except IntegrityError:
                # משלוח מקביל של אותו אירוע כבר הכניס שורה
                logger.info(
                    "Concurrent delivery already recorded payment event",
                    extra_data={"event_id": event.id}
                )
                return WebhookResult(event.id, duplicate=True, status=None)

            tenant_id = event.metadata.get("tenant_id")
            if isinstance(tenant_id, str) and tenant_id:
                record.tenant_id = tenant_id
                set_tenant_context(tenant_id)

            try:
                async with self.db.begin_nested():
                    await self._dispatch(event)
            except Exception as e:
                logger.error(
                    "Payment event processing failed",
                    extra_data={"event_id": event.id, "event_type": event.raw_type, "error": str(e)},
                    exc_info=True
                )
                record.processing_status = WebhookProcessingStatus.FAILED
                record.error = str(e)[:MAX_ERROR_LENGTH] or type(e).__name__
            else:
                record.processing_status = WebhookProcessingStatus.PROCESSED
                record.processed_at = datetime.utcnow()

        return WebhookResult(event.id, duplicate=False, status=record.processing_status)

    async def _dispatch(self, event: PaymentEvent) -> None:
        match event.type:
            case PaymentEventType.CHECKOUT_COMPLETED:
                await self._handle_checkout_completed(event)
            case PaymentEventType.PAYMENT_FAILED | PaymentEventType.ASYNC_PAYMENT_FAILED:
                await self._handle_payment_failed(event)
            case PaymentEventType.CHARGE_REFUNDED:
                await self._handle_charge_refunded(event)
            case PaymentEventType.UNHANDLED:
                logger.info(
                    "Unhandled payment event type",
                    extra_data={"event_id": event.id, "event_type": event.raw_type}
                )

    async def _get_order(self, order_id: str) -> Order | None:
        result = await self.db.execute(select(Order).where(Order.id == order_id))
        return result.scalar_one_or_none()

    async def _transition(self, order: Order, target: OrderStatus, event: PaymentEvent) -> bool:
        """מעבר סטטוס מוגן — מעבר לא חוקי נרשם ללוג ולא מבוצע"""
        if not can_transition(order.status, target):
            logger.warning(
                "Illegal order transition ignored",
                extra_data={
                    "order_id": order.id,
                    "current_status": order.status.value,
                    "target_status": target.value,
                    "event_id": event.id,
                    "event_type": event.raw_type,
                }
            )
            return False

        old_status = order.status
        order.status = target
        order.updated_at = datetime.utcnow()
        self.db.add(AuditLog(
            tenant_id=order.tenant_id,
            action="StatusChange",
            entity="Order",
            entity_id=order.id,
            old_values={"status": old_status.value},
            new_values={"status": target.value, "event_id": event.id},
        ))
        await self.db.flush()

        logger.info(
            "Order status changed",
            extra_data={
                "order_id": order.id,
                "old_status": old_status.value,
                "new_status": target.value,
                "event_id": event.id,
            }
        )
        return True

    async def _handle_checkout_completed(self, event: PaymentEvent) -> None:
        session = event.data
        order_id = _parse_order_id(session.get("client_reference_id"))
        if order_id is None:
            logger.warning(
                "Invalid or missing client_reference_id in completed checkout",
                extra_data={"event_id": event.id, "session_id": session.get("id")}
            )
            return

        order = await self._get_order(order_id)
        if order is None:
            logger.warning(
                "Order not found for completed checkout",
                extra_data={"event_id": event.id, "order_id": order_id}
            )
            return

        metadata_tenant = event.metadata.get("tenant_id")
        if metadata_tenant and metadata_tenant != order.tenant_id:
            logger.warning(
                "Completed checkout tenant does not match order tenant",
                extra_data={"event_id": event.id, "order_id": order_id}
            )
            return

        set_tenant_context(order.tenant_id)
        if await self._transition(order, OrderStatus.PAID, event):
            if session.get("id"):
                order.payment_session_id = session["id"]
            if session.get("payment_intent"):
                order.payment_intent_id = session["payment_intent"]

    async def _handle_payment_failed(self, event: PaymentEvent) -> None:
        obj = event.data
        order_id = _parse_order_id(event.metadata.get("order_id"))
        if order_id is None and event.type == PaymentEventType.ASYNC_PAYMENT_FAILED:
            order_id = _parse_order_id(obj.get("client_reference_id"))

        order = await self._get_order(order_id) if order_id else None
        if order is None and event.type == PaymentEventType.PAYMENT_FAILED and obj.get("id"):
            # payment intent בלי metadata — התאמה לפי מזהה ה-intent
            result = await self.db.execute(
                select(Order).where(Order.payment_intent_id == obj["id"])
            )
            order = result.scalars().first()

        if order is None:
            logger.warning(
                "Order not found for failed payment",
                extra_data={"event_id": event.id, "order_id": order_id}
            )
            return

        set_tenant_context(order.tenant_id)
        await self._transition(order, OrderStatus.FAILED, event)

    async def _handle_charge_refunded(self, event: PaymentEvent) -> None:
        payment_intent_id = event.data.get("payment_intent")
        if not payment_intent_id:
            logger.warning(
                "Refunded charge without payment_intent",
                extra_data={"event_id": event.id, "charge_id": event.data.get("id")}
            )
            return

        result = await self.db.execute(
            select(Order).where(Order.payment_intent_id == payment_intent_id)
        )
        order = result.scalars().first()
        if order is None:
            logger.warning(
                "Order not found for refunded charge",
                extra_data={"event_id": event.id, "payment_intent_id": payment_intent_id}
            )
            return

        set_tenant_context(order.tenant_id)
        await self._transition(order, OrderStatus.REFUNDED, event)
