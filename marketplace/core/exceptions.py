"""
Custom Exception Hierarchy

Provides structured exceptions for consistent error handling across the application.
Every failure of the checkout pipeline, provisioning and webhook ingestion maps
to an ErrorCode so clients get a machine-readable reason.
"""
from typing import Any
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for API responses"""

    # General errors (1xxx)
    INTERNAL_ERROR = "ERR_1000"
    VALIDATION_ERROR = "ERR_1001"
    NOT_FOUND = "ERR_1002"
    ALREADY_EXISTS = "ERR_1003"
    UNAUTHORIZED = "ERR_1004"
    FORBIDDEN = "ERR_1005"
    RATE_LIMITED = "ERR_1006"

    # Store / tenant errors (2xxx)
    STORE_NOT_FOUND = "ERR_2001"
    STORE_NOT_PUBLISHED = "ERR_2002"
    TENANT_NOT_FOUND = "ERR_2003"
    SLUG_TOO_SHORT = "ERR_2004"
    DUPLICATE_SLUG = "ERR_2005"
    DUPLICATE_HOSTNAME = "ERR_2006"
    INVALID_SUBDOMAIN = "ERR_2007"
    ALREADY_PUBLISHED = "ERR_2008"
    NO_ACTIVE_DOMAIN = "ERR_2009"

    # Checkout errors (3xxx)
    EMPTY_CART = "ERR_3001"
    PRODUCTS_NOT_FOUND = "ERR_3002"
    PRODUCT_NOT_AVAILABLE = "ERR_3003"
    CURRENCY_MISMATCH = "ERR_3004"
    INVALID_QUANTITY = "ERR_3005"
    AMOUNT_OUT_OF_RANGE = "ERR_3006"

    # Order errors (4xxx)
    ORDER_NOT_FOUND = "ERR_4001"

    # External service errors (5xxx)
    PAYMENT_GATEWAY_ERROR = "ERR_5001"
    INVALID_WEBHOOK_SIGNATURE = "ERR_5002"
    EXTERNAL_SERVICE_UNAVAILABLE = "ERR_5003"
    EXTERNAL_SERVICE_TIMEOUT = "ERR_5004"
    INVALID_WEBHOOK_PAYLOAD = "ERR_5005"


class AppException(Exception):
    """Base exception for all application errors"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response"""
        return {
            "error": {
                "code": self.error_code.value,
                "message": self.message,
                "details": self.details
            }
        }


class ValidationException(AppException):
    """Raised when input validation fails"""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: dict[str, Any] | None = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=400,
            details=details
        )
        if field:
            self.details["field"] = field


class NotFoundException(AppException):
    """Raised when a requested resource is not found"""

    def __init__(
        self,
        resource: str,
        identifier: Any,
        error_code: ErrorCode = ErrorCode.NOT_FOUND
    ):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            error_code=error_code,
            status_code=404,
            details={"resource": resource, "identifier": str(identifier)}
        )


class ConflictException(AppException):
    """Raised when an operation collides with existing state"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.ALREADY_EXISTS,
        status_code: int = 409,
        details: dict[str, Any] | None = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status_code,
            details=details
        )


# ---------------------------------------------------------------------------
# Store / tenant
# ---------------------------------------------------------------------------


class StoreNotFoundError(NotFoundException):
    """Raised when a hostname does not resolve to an active store"""

    def __init__(self, hostname: str | None):
        super().__init__(
            resource="Store",
            identifier=hostname or "",
            error_code=ErrorCode.STORE_NOT_FOUND
        )


class TenantNotFoundError(NotFoundException):
    """Raised when a tenant id has no store configuration"""

    def __init__(self, tenant_id: str):
        super().__init__(
            resource="Tenant",
            identifier=tenant_id,
            error_code=ErrorCode.TENANT_NOT_FOUND
        )


class StoreNotPublishedError(ValidationException):
    """Raised when checkout is attempted against a Draft storefront"""

    def __init__(self, tenant_id: str):
        super().__init__(
            message="Store not published",
            error_code=ErrorCode.STORE_NOT_PUBLISHED,
            details={"tenant_id": tenant_id}
        )


class SlugTooShortError(ValidationException):
    """Raised when a store name slugifies to fewer than the minimum characters"""

    def __init__(self, slug: str, min_length: int):
        super().__init__(
            message=f"Store name results in slug '{slug}' shorter than {min_length} characters",
            field="storeName",
            error_code=ErrorCode.SLUG_TOO_SHORT,
            details={"slug": slug, "min_length": min_length}
        )


class InvalidSubdomainError(ValidationException):
    """Raised when a subdomain fails the format or reserved-name check"""

    def __init__(self, subdomain: str, reason: str):
        super().__init__(
            message=f"Invalid subdomain '{subdomain}': {reason}",
            field="subdomain",
            error_code=ErrorCode.INVALID_SUBDOMAIN,
            details={"subdomain": subdomain, "reason": reason}
        )


class DuplicateSlugError(ConflictException):
    """Raised when another tenant already owns the slug"""

    def __init__(self, slug: str):
        super().__init__(
            message=f"Store name results in duplicate slug '{slug}'",
            error_code=ErrorCode.DUPLICATE_SLUG,
            details={"slug": slug}
        )


class DuplicateHostnameError(ConflictException):
    """Raised when a hostname is already bound to a tenant"""

    def __init__(self, hostname: str):
        super().__init__(
            message=f"Hostname '{hostname}' is already in use",
            error_code=ErrorCode.DUPLICATE_HOSTNAME,
            details={"hostname": hostname}
        )


class AlreadyPublishedError(ConflictException):
    """Raised when publishing a storefront that is already Live"""

    def __init__(self, tenant_id: str):
        super().__init__(
            message="Store is not in draft status",
            error_code=ErrorCode.ALREADY_PUBLISHED,
            details={"tenant_id": tenant_id}
        )


class NoActiveDomainError(ConflictException):
    """Raised when publishing without an active domain binding"""

    def __init__(self, tenant_id: str):
        super().__init__(
            message="An active domain must be bound before publishing",
            error_code=ErrorCode.NO_ACTIVE_DOMAIN,
            status_code=400,
            details={"tenant_id": tenant_id}
        )


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


class CheckoutException(ValidationException):
    """Base exception for checkout validation failures"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        details: dict[str, Any] | None = None
    ):
        super().__init__(message=message, error_code=error_code, details=details)


class EmptyCartError(CheckoutException):
    """Raised when checkout is submitted with no items"""

    def __init__(self):
        super().__init__(message="Cart is empty", error_code=ErrorCode.EMPTY_CART)


class ProductsNotFoundError(CheckoutException):
    """Raised when requested variants do not all belong to the tenant"""

    def __init__(self, missing_variant_ids: list[str]):
        super().__init__(
            message="Some products not found",
            error_code=ErrorCode.PRODUCTS_NOT_FOUND,
            details={"missing_variant_ids": missing_variant_ids}
        )


class ProductNotAvailableError(CheckoutException):
    """Raised when a variant's parent product is not Active"""

    def __init__(self, variant_ids: list[str]):
        super().__init__(
            message="Some products are not available",
            error_code=ErrorCode.PRODUCT_NOT_AVAILABLE,
            details={"variant_ids": variant_ids}
        )


class CurrencyMismatchError(CheckoutException):
    """Raised when a variant is priced in a currency other than the store's"""

    def __init__(self, expected: str, found: str, variant_id: str):
        super().__init__(
            message="Currency mismatch",
            error_code=ErrorCode.CURRENCY_MISMATCH,
            details={"expected": expected, "found": found, "variant_id": variant_id}
        )


class OrderNotFoundError(NotFoundException):
    """Raised when an order is missing or belongs to another tenant"""

    def __init__(self, order_id: str):
        super().__init__(
            resource="Order",
            identifier=order_id,
            error_code=ErrorCode.ORDER_NOT_FOUND
        )


# ---------------------------------------------------------------------------
# External services
# ---------------------------------------------------------------------------


class ExternalServiceException(AppException):
    """Base exception for external service errors"""

    def __init__(
        self,
        service_name: str,
        message: str,
        error_code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_UNAVAILABLE,
        status_code: int = 503,
        details: dict[str, Any] | None = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status_code,
            details=details
        )
        self.details["service"] = service_name


class PaymentGatewayError(ExternalServiceException):
    """Raised when the payment gateway rejects or fails a request"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            service_name="payment_gateway",
            message=f"Payment gateway error: {message}",
            error_code=ErrorCode.PAYMENT_GATEWAY_ERROR,
            status_code=502,
            details=details
        )

    @classmethod
    def from_response(
        cls,
        operation: str,
        response: Any,
        *,
        message: str | None = None,
        max_response_chars: int = 500
    ) -> "PaymentGatewayError":
        """
        Build a PaymentGatewayError from an HTTP response consistently.

        Args:
            operation: operation name (e.g. create_checkout_session)
            response: response object (e.g. httpx.Response)
            message: custom message (built automatically when omitted)
            max_response_chars: cap on stored response_text
        """
        status_code = getattr(response, "status_code", None)
        response_text = getattr(response, "text", "") or ""
        return cls(
            message=message or f"{operation} returned status {status_code}",
            details={
                "operation": operation,
                "status_code": status_code,
                "response_text": response_text[:max_response_chars],
            },
        )


class InvalidWebhookSignatureError(ExternalServiceException):
    """Raised when a webhook payload fails signature verification"""

    def __init__(self, reason: str):
        super().__init__(
            service_name="payment_webhook",
            message="Invalid signature",
            error_code=ErrorCode.INVALID_WEBHOOK_SIGNATURE,
            status_code=400,
            details={"reason": reason}
        )


class InvalidWebhookPayloadError(ExternalServiceException):
    """Raised when a correctly signed webhook body cannot be parsed"""

    def __init__(self, reason: str):
        super().__init__(
            service_name="payment_webhook",
            message="Invalid webhook payload",
            error_code=ErrorCode.INVALID_WEBHOOK_PAYLOAD,
            status_code=400,
            details={"reason": reason}
        )


class ServiceTimeoutError(ExternalServiceException):
    """Raised when external service times out"""

    def __init__(self, service_name: str, timeout_seconds: float):
        super().__init__(
            service_name=service_name,
            message=f"{service_name} request timed out after {timeout_seconds}s",
            error_code=ErrorCode.EXTERNAL_SERVICE_TIMEOUT,
            status_code=504,
            details={"timeout_seconds": timeout_seconds}
        )


class CircuitBreakerOpenError(ExternalServiceException):
    """Raised when circuit breaker is open"""

    def __init__(self, service_name: str, retry_after_seconds: float):
        super().__init__(
            service_name=service_name,
            message=f"{service_name} is temporarily unavailable (circuit breaker open)",
            error_code=ErrorCode.EXTERNAL_SERVICE_UNAVAILABLE,
            details={"retry_after_seconds": retry_after_seconds}
        )
