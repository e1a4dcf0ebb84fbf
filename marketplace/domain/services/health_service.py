"""
שירות בדיקת בריאות — בדיקות תלויות (DB, Redis, ספק התשלומים).

- liveness: האם התהליך חי (ללא בדיקת תלויות)
- readiness: DB ו-Redis חייבים להגיב; circuit breaker פתוח של ספק התשלומים
  מדווח כ-degraded (ה-checkout נכשל מהר עד שייסגר)
"""
from typing import Any

from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from marketplace.core.circuit_breaker import get_payment_gateway_circuit_breaker
from marketplace.core.logging import get_logger
from marketplace.core.redis_client import get_redis
from marketplace.db.database import AsyncSessionLocal

logger = get_logger(__name__)

_STATUS_HEALTHY = "healthy"
_STATUS_DEGRADED = "degraded"

_CHECK_OK = "ok"

# הודעות שגיאה מסוננות — ללא חשיפת פרטי תשתית
_ERROR_DB = "error: db_unavailable"
_ERROR_REDIS = "error: redis_unavailable"
_ERROR_PAYMENT_GATEWAY = "error: payment_gateway_circuit_open"


async def _check_db() -> str:
    """SELECT 1 על מסד הנתונים"""
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        return _CHECK_OK
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Database health check failed", extra_data={"error": str(e)})
        return _ERROR_DB


async def _check_redis() -> str:
    """PING ל-Redis. ה-cache לא חיוני לשירות, אבל בלעדיו כל בקשה פוגעת ב-DB."""
    try:
        client = await get_redis()
        await client.ping()
        return _CHECK_OK
    except (RedisError, OSError) as e:
        logger.warning("Redis health check failed", extra_data={"error": str(e)})
        return _ERROR_REDIS


def _check_payment_gateway() -> str:
    if get_payment_gateway_circuit_breaker().is_open:
        return _ERROR_PAYMENT_GATEWAY
    return _CHECK_OK


async def check_readiness() -> dict[str, Any]:
    """
    בדיקת מוכנות מקיפה.

    מחזיר dict עם status ("healthy" / "degraded") ופירוט לכל תלות.
    """
    checks = {
        "db": await _check_db(),
        "redis": await _check_redis(),
        "payment_gateway": _check_payment_gateway(),
    }

    all_ok = all(v == _CHECK_OK for v in checks.values())
    if not all_ok:
        logger.warning("Readiness check degraded", extra_data=checks)

    return {"status": _STATUS_HEALTHY if all_ok else _STATUS_DEGRADED, **checks}
