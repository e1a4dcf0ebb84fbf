"""
Payment Gateway Abstraction Layer

שכבת הפשטה ליצירת checkout session ולאימות webhooks של ספק התשלומים.
"""
from marketplace.domain.services.payments.base_gateway import (
    CheckoutLineItem,
    CheckoutSessionResult,
    PaymentGateway,
)
from marketplace.domain.services.payments.gateway_factory import get_payment_gateway
from marketplace.domain.services.payments.signature import (
    compute_signature_header,
    verify_signature,
)

__all__ = [
    "CheckoutLineItem",
    "CheckoutSessionResult",
    "PaymentGateway",
    "get_payment_gateway",
    "compute_signature_header",
    "verify_signature",
]
