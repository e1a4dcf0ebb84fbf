"""
ממשק בסיסי לספק תשלומים — Dependency Inversion.

שירות ה-checkout תלוי רק בממשק הזה ולא בספק ספציפי.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CheckoutLineItem:
    """שורת חיוב שנשלחת לספק — סכום ליחידה ב-minor units"""
    name: str
    unit_amount: int
    currency: str
    quantity: int


@dataclass(frozen=True)
class CheckoutSessionResult:
    session_id: str
    checkout_url: str


class PaymentGateway(ABC):
    """
    ממשק אחיד ליצירת hosted checkout session.

    כל מימוש אחראי על:
    - שליחת HTTP / SDK
    - circuit breaker
    - המרת שגיאות הספק ל-PaymentGatewayError / ServiceTimeoutError
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """שם הספק (ללוגים)"""

    @abstractmethod
    async def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        client_reference_id: str,
        metadata: dict[str, str],
    ) -> CheckoutSessionResult:
        """
        יצירת session תשלום אצל הספק.

        Args:
            line_items: שורות החיוב (שם, סכום ליחידה, מטבע, כמות).
            success_url: לאן הלקוח מוחזר אחרי תשלום.
            cancel_url: לאן הלקוח מוחזר בביטול.
            client_reference_id: מזהה ההזמנה — חוזר ב-webhook.
            metadata: tenant_id / order_id / store_name.

        Raises:
            PaymentGatewayError: הספק דחה או נכשל.
            ServiceTimeoutError: הספק לא ענה בזמן.
            CircuitBreakerOpenError: הספק מסומן כלא זמין.
        """
