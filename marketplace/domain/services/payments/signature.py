"""
אימות חתימת webhook של Stripe.

כותרת Stripe-Signature בפורמט: ``t=<unix ts>,v1=<hex>[,v1=<hex>...]``
כאשר v1 = HMAC-SHA256(secret, "<ts>.<raw body>").

שימוש:
    verify_signature(raw_body, request.headers.get("Stripe-Signature"), secret, 300)
"""
import hashlib
import hmac
import time

from marketplace.core.exceptions import InvalidWebhookSignatureError

SIGNATURE_SCHEME = "v1"


def _sign(payload: bytes, secret: str, timestamp: int) -> str:
    signed_payload = f"{timestamp}.".encode() + payload
    return hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()


def compute_signature_header(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header value for the payload"""
    ts = int(time.time()) if timestamp is None else int(timestamp)
    return f"t={ts},{SIGNATURE_SCHEME}={_sign(payload, secret, ts)}"


def _parse_header(header: str) -> tuple[int | None, list[str]]:
    timestamp: int | None = None
    signatures: list[str] = []
    for part in header.split(","):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                return None, []
        elif key == SIGNATURE_SCHEME:
            signatures.append(value)
    return timestamp, signatures


def verify_signature(
    payload: bytes,
    header: str | None,
    secret: str,
    tolerance_seconds: int = 300,
    now: float | None = None,
) -> None:
    """
    Verify a webhook payload against its signature header.

    A tolerance of 0 disables the replay window check.

    Raises:
        InvalidWebhookSignatureError: on any verification failure
    """
    if not secret:
        raise InvalidWebhookSignatureError("webhook secret is not configured")

    if not header:
        raise InvalidWebhookSignatureError("missing signature header")

    timestamp, signatures = _parse_header(header)
    if timestamp is None:
        raise InvalidWebhookSignatureError("missing or malformed timestamp")
    if not signatures:
        raise InvalidWebhookSignatureError(f"no {SIGNATURE_SCHEME} signature")

    expected = _sign(payload, secret, timestamp)
    # השוואה בטוחה מפני timing attacks
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise InvalidWebhookSignatureError("signature mismatch")

    current = time.time() if now is None else now
    if tolerance_seconds > 0 and timestamp < current - tolerance_seconds:
        raise InvalidWebhookSignatureError("timestamp outside the tolerance zone")
