"""
Gateway Factory — ספק התשלומים של האפליקציה (singleton).

משמש גם כ-FastAPI dependency; בבדיקות מוחלף דרך app.dependency_overrides.
"""
from __future__ import annotations

import threading

from marketplace.core.circuit_breaker import get_payment_gateway_circuit_breaker
from marketplace.core.logging import get_logger
from marketplace.domain.services.payments.base_gateway import PaymentGateway

logger = get_logger(__name__)

_gateway: PaymentGateway | None = None
_lock = threading.Lock()


def get_payment_gateway() -> PaymentGateway:
    """ספק התשלומים — Stripe"""
    global _gateway
    if _gateway is None:
        with _lock:
            if _gateway is None:
                from marketplace.domain.services.payments.stripe_gateway import StripeGateway

                _gateway = StripeGateway(circuit_breaker=get_payment_gateway_circuit_breaker())
                logger.info("Payment gateway initialized", extra_data={"provider": _gateway.provider_name})
    return _gateway


def reset_payment_gateway() -> None:
    """איפוס ה-singleton (לבדיקות)"""
    global _gateway
    with _lock:
        _gateway = None
