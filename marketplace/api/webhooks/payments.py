"""
Payment Provider Webhook Handler

ספק התשלומים שולח מחדש כל אירוע שלא קיבל עליו 2xx, ולכן:
- 400 רק על חתימה/גוף לא תקינים (האירוע לא נרשם)
- 200 על כל השאר, כולל כפילויות ואירועים שעיבודם נכשל (נרשמים ב-ledger כ-Failed)
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.db.database import get_db
from marketplace.domain.services.webhook_processor import WebhookProcessor


router = APIRouter()


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> dict:
    raw_payload = await request.body()
    signature_header = request.headers.get("Stripe-Signature")

    result = await WebhookProcessor(db).handle_event(raw_payload, signature_header)

    if result.duplicate:
        return {"received": True, "duplicate": True}
    return {"received": True}
