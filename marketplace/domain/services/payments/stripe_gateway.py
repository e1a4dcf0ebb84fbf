"""
Stripe Gateway — מימוש PaymentGateway מעל Stripe Checkout REST API.

בקשת form-encoded ל-POST /v1/checkout/sessions דרך httpx, עם retry על
שגיאות זמניות ו-circuit breaker. ה-Idempotency-Key נגזר ממזהה ההזמנה,
כך ש-retry לא יוצר session שני אצל Stripe.
"""
from __future__ import annotations

import asyncio

import httpx

from marketplace.core.circuit_breaker import CircuitBreaker
from marketplace.core.config import settings
from marketplace.core.exceptions import PaymentGatewayError, ServiceTimeoutError
from marketplace.core.logging import get_logger
from marketplace.domain.services.payments.base_gateway import (
    CheckoutLineItem,
    CheckoutSessionResult,
    PaymentGateway,
)

logger = get_logger(__name__)


def build_session_form(
    line_items: list[CheckoutLineItem],
    success_url: str,
    cancel_url: str,
    client_reference_id: str,
    metadata: dict[str, str],
) -> dict[str, str]:
    """Flatten session parameters into Stripe's bracketed form encoding"""
    form = {
        "mode": "payment",
        "success_url": success_url,
        "cancel_url": cancel_url,
        "client_reference_id": client_reference_id,
    }
    for key, value in metadata.items():
        form[f"metadata[{key}]"] = str(value)
        # Stripe לא מעתיק metadata של ה-session ל-PaymentIntent
        form[f"payment_intent_data[metadata][{key}]"] = str(value)

    for i, item in enumerate(line_items):
        prefix = f"line_items[{i}]"
        form[f"{prefix}[price_data][currency]"] = item.currency.lower()
        form[f"{prefix}[price_data][unit_amount]"] = str(item.unit_amount)
        form[f"{prefix}[price_data][product_data][name]"] = item.name
        form[f"{prefix}[quantity]"] = str(item.quantity)

    return form


class StripeGateway(PaymentGateway):
    """Stripe Checkout Sessions over plain HTTPS"""

    def __init__(
        self,
        circuit_breaker: CircuitBreaker,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._circuit_breaker = circuit_breaker
        self._transport = transport
        self._api_base = settings.STRIPE_API_BASE.rstrip("/")
        self._timeout = settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS
        self._max_retries = max(1, settings.PAYMENT_GATEWAY_MAX_RETRIES)
        self._transient_status_codes = {
            int(code.strip())
            for code in settings.PAYMENT_GATEWAY_TRANSIENT_STATUS_CODES.split(",")
            if code.strip()
        }

    @property
    def provider_name(self) -> str:
        return "stripe"

    async def _post_with_retry(
        self,
        path: str,
        form: dict[str, str],
        idempotency_key: str,
    ) -> dict:
        """POST עם exponential backoff על שגיאות זמניות. מחזיר את גוף ה-JSON."""
        if not settings.STRIPE_SECRET_KEY:
            raise PaymentGatewayError("STRIPE_SECRET_KEY is not configured")

        headers = {
            "Authorization": f"Bearer {settings.STRIPE_SECRET_KEY}",
            "Idempotency-Key": idempotency_key,
        }

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            for attempt in range(self._max_retries):
                try:
                    response = await client.post(
                        f"{self._api_base}{path}",
                        data=form,
                        headers=headers,
                    )
                    if 200 <= response.status_code < 300:
                        try:
                            return response.json()
                        except ValueError:
                            raise PaymentGatewayError.from_response(
                                "create_checkout_session",
                                response,
                                message="response body is not valid JSON",
                            )

                    if (
                        response.status_code in self._transient_status_codes
                        and attempt < self._max_retries - 1
                    ):
                        backoff = 2 ** attempt
                        logger.warning(
                            "Transient payment gateway error, retrying",
                            extra_data={
                                "path": path,
                                "status_code": response.status_code,
                                "attempt": attempt + 1,
                                "max_retries": self._max_retries,
                                "backoff_seconds": backoff,
                            },
                        )
                        await asyncio.sleep(backoff)
                        continue

                    raise PaymentGatewayError.from_response("create_checkout_session", response)
                except httpx.TimeoutException:
                    if attempt < self._max_retries - 1:
                        backoff = 2 ** attempt
                        logger.warning(
                            "Payment gateway timeout, retrying",
                            extra_data={"path": path, "attempt": attempt + 1, "backoff_seconds": backoff},
                        )
                        await asyncio.sleep(backoff)
                        continue
                    raise ServiceTimeoutError("payment_gateway", self._timeout)
                except httpx.RequestError as exc:
                    if attempt < self._max_retries - 1:
                        backoff = 2 ** attempt
                        logger.warning(
                            "Payment gateway network error, retrying",
                            extra_data={"path": path, "error": str(exc), "attempt": attempt + 1},
                        )
                        await asyncio.sleep(backoff)
                        continue
                    raise PaymentGatewayError(
                        f"network error: {exc}",
                        details={"network_error": True, "attempts": self._max_retries},
                    )

        # לא אמור להגיע לכאן — הלולאה תמיד מחזירה או זורקת
        raise PaymentGatewayError("no attempts were made")

    async def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        client_reference_id: str,
        metadata: dict[str, str],
    ) -> CheckoutSessionResult:
        form = build_session_form(line_items, success_url, cancel_url, client_reference_id, metadata)

        async def _create() -> dict:
            return await self._post_with_retry(
                "/v1/checkout/sessions",
                form,
                idempotency_key=f"checkout-session-{client_reference_id}",
            )

        body = await self._circuit_breaker.execute(_create)

        session_id = body.get("id")
        checkout_url = body.get("url")
        if not session_id or not checkout_url:
            raise PaymentGatewayError(
                "response is missing session id or url",
                details={"operation": "create_checkout_session"},
            )

        logger.info(
            "Checkout session created",
            extra_data={"session_id": session_id, "client_reference_id": client_reference_id},
        )
        return CheckoutSessionResult(session_id=session_id, checkout_url=checkout_url)
