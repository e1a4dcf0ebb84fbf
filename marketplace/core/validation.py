"""
Input Validation Utilities

Provides validation and normalization for:
- Hostnames (tenant routing key)
- Store slugs and subdomains
- ISO 4217 currency codes
- Customer e-mail addresses
"""
import re
import unicodedata


class ValidationPatterns:
    """Regex patterns for validation"""

    # תת-דומיין של חנות: 3-30 תווים, לא מתחיל/נגמר במקף
    SUBDOMAIN = re.compile(r"^[a-z0-9][a-z0-9-]{1,28}[a-z0-9]$")

    CURRENCY = re.compile(r"^[A-Z]{3}$")

    EMAIL = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}$")

    SLUG_INVALID_CHARS = re.compile(r"[^a-z0-9\s-]")
    WHITESPACE = re.compile(r"\s+")
    MULTIPLE_HYPHENS = re.compile(r"-+")


class HostnameValidator:
    """Hostname normalization for tenant resolution"""

    @staticmethod
    def normalize(hostname: str | None) -> str | None:
        """
        Normalize a Host header value into the routing key.

        Lowercases, strips the port and a trailing dot. IPv6 literals
        ("[::1]:8000") keep their brackets.

        Returns:
            Normalized hostname, or None for empty input
        """
        if hostname is None:
            return None

        host = hostname.strip().lower()
        if not host:
            return None

        if host.startswith("["):
            end = host.find("]")
            host = host[: end + 1] if end != -1 else host
        else:
            host = host.split(":", 1)[0]

        host = host.rstrip(".")
        return host or None


class SlugHelper:
    """Slug generation for store names"""

    MIN_LENGTH = 3
    MAX_LENGTH = 80

    @staticmethod
    def slugify(text: str) -> str:
        """
        Convert a store name into a URL-safe slug.

        "Loja da Maria Café" -> "loja-da-maria-cafe"
        """
        if not text or not text.strip():
            return ""

        # הסרת סימני ניקוד/אקסנטים
        decomposed = unicodedata.normalize("NFD", text)
        stripped = "".join(c for c in decomposed if unicodedata.category(c) != "Mn")
        slug = unicodedata.normalize("NFC", stripped).lower()

        slug = ValidationPatterns.SLUG_INVALID_CHARS.sub("", slug)
        slug = ValidationPatterns.WHITESPACE.sub("-", slug.strip())
        slug = ValidationPatterns.MULTIPLE_HYPHENS.sub("-", slug)
        slug = slug.strip("-")

        if len(slug) > SlugHelper.MAX_LENGTH:
            slug = slug[: SlugHelper.MAX_LENGTH].rstrip("-")

        return slug


class SubdomainValidator:
    """Subdomain validation for store domain bindings"""

    RESERVED = frozenset({
        "admin", "api", "www", "app", "dashboard",
        "portal", "store", "shop", "mail", "ftp",
    })

    @staticmethod
    def validate(subdomain: str) -> tuple[bool, str | None]:
        """
        Validate a subdomain.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not subdomain:
            return False, "Subdomain is required"

        if not ValidationPatterns.SUBDOMAIN.match(subdomain):
            return False, (
                "Subdomain must be 3-30 characters of lowercase letters, digits "
                "or hyphens, and must not start or end with a hyphen"
            )

        if subdomain in SubdomainValidator.RESERVED:
            return False, "Subdomain is reserved"

        return True, None

    @staticmethod
    def normalize(subdomain: str) -> str:
        return (subdomain or "").strip().lower()


class CurrencyValidator:
    """ISO 4217 currency code validation"""

    @staticmethod
    def normalize(currency: str | None) -> str:
        """Uppercase and trim — 'eur ' -> 'EUR'"""
        return (currency or "").strip().upper()

    @staticmethod
    def validate(currency: str | None) -> bool:
        return bool(ValidationPatterns.CURRENCY.match(CurrencyValidator.normalize(currency)))


class EmailValidator:
    """Customer e-mail validation"""

    MAX_LENGTH = 254

    @staticmethod
    def validate(email: str) -> bool:
        if not email or len(email) > EmailValidator.MAX_LENGTH:
            return False
        return bool(ValidationPatterns.EMAIL.match(email))

    @staticmethod
    def normalize(email: str) -> str:
        return email.strip().lower()
