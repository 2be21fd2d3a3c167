"""
Custom exceptions for the Art Framer checkout engine.

Exception Hierarchy:
    ArtFramerError (base)
    ├── ConfigurationError          - Missing provider credentials (startup failure)
    ├── ValidationError             - Bad input, carries field errors (400)
    │   └── AddressValidationError  - Shipping address incomplete
    ├── AuthenticationRequiredError - No user id on a cart request (401)
    ├── CartItemNotFoundError       - Item missing or owned by another user (404)
    ├── ConcurrentModificationError - Row changed underneath an update (409)
    ├── UpstreamQuoteError          - Fulfillment provider failed or timed out
    ├── PricingError                - Pricing could not produce a trustworthy total
    ├── ShippingError               - No usable shipping option
    └── CurrencyRateError           - No sufficiently fresh exchange rate (503)

Usage:
    Every error carries an HTTP ``status_code`` and a ``details`` dict so the
    routes can render it without knowing the concrete type.
"""

from typing import Optional, Dict, Any, List


class ArtFramerError(Exception):
    """
    Base exception for all checkout engine errors.

    Callers can catch every application-specific error with a single
    except clause; the Flask error handler does exactly that.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context
            status_code: HTTP status override for this instance
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Render as the JSON error body returned by the API."""
        return {"error": self.message, "details": self.details}


# =============================================================================
# STARTUP ERRORS
# =============================================================================

class ConfigurationError(ArtFramerError):
    """
    A required setting is missing.

    Raised by the app factory; the application does not start.
    """

    def __init__(self, setting: str):
        message = f"Required setting {setting} is not configured"
        details = {
            "setting": setting,
            "resolution": f"Set {setting} in the environment or .env"
        }
        super().__init__(message, details)
        self.setting = setting


# =============================================================================
# CLIENT ERRORS
# =============================================================================

class ValidationError(ArtFramerError):
    """
    Request input is invalid.

    ``field_errors`` maps a field path (e.g. ``items[2].quantity``) to the
    problem found there.
    """

    status_code = 400

    def __init__(
        self,
        message: str,
        field_errors: Optional[Dict[str, str]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = dict(details or {})
        self.field_errors = dict(field_errors or {})
        if self.field_errors:
            error_details["fields"] = self.field_errors
        super().__init__(message, error_details)


class AddressValidationError(ValidationError):
    """Shipping address is too incomplete to quote against."""

    def __init__(self, field_errors: Dict[str, str]):
        super().__init__(
            "Shipping address is incomplete",
            field_errors,
            {"resolution": "Provide country, city and postal code"}
        )


class AuthenticationRequiredError(ArtFramerError):
    """The request carries no user identity."""

    status_code = 401

    def __init__(self, header: str):
        super().__init__(
            "Authentication required",
            {"header": header, "resolution": f"Send the {header} header"}
        )


class CartItemNotFoundError(ArtFramerError):
    """
    Cart item does not exist for this user.

    Also raised when the item exists but belongs to someone else, so the
    response never reveals other users' items.
    """

    status_code = 404

    def __init__(self, item_id: str):
        super().__init__(f"Cart item not found: {item_id}", {"item_id": item_id})
        self.item_id = item_id


class ConcurrentModificationError(ArtFramerError):
    """Cart row version changed between read and write."""

    status_code = 409

    def __init__(self, item_id: str, expected_version: int, actual_version: int):
        details = {
            "item_id": item_id,
            "expected_version": expected_version,
            "actual_version": actual_version,
            "resolution": "Reload the cart and retry"
        }
        super().__init__(f"Cart item {item_id} was modified concurrently", details)


# =============================================================================
# UPSTREAM / RUNTIME ERRORS
# =============================================================================

class UpstreamQuoteError(ArtFramerError):
    """
    The fulfillment provider failed, timed out, or answered nonsense.

    ``retryable`` records whether the failure class was one the client
    retries (network, timeout, 408/429/5xx); by the time this is raised
    the retries are already exhausted.
    """

    status_code = 502

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        retryable: bool = False,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        error_details = dict(details or {})
        if upstream_status is not None:
            error_details["upstream_status"] = upstream_status
        error_details["retryable"] = retryable
        super().__init__(message, error_details, status_code)
        self.upstream_status = upstream_status
        self.retryable = retryable


class QuoteTimeoutError(UpstreamQuoteError):
    """Provider did not answer within the configured timeout."""

    status_code = 504

    def __init__(self, timeout_seconds: float, attempts: int):
        message = f"Fulfillment provider timed out after {attempts} attempt(s)"
        details = {"timeout_seconds": timeout_seconds, "attempts": attempts}
        super().__init__(message, retryable=True, details=details)
        self.timeout_seconds = timeout_seconds
        self.attempts = attempts


class PricingError(ArtFramerError):
    """
    Pricing could not produce a total the customer can be charged.

    ``details["failed_lines"]`` lists the cart lines without a cost when
    the failure was partial.
    """

    status_code = 502

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        failed_lines: Optional[List[Dict[str, Any]]] = None
    ):
        error_details = dict(details or {})
        if failed_lines:
            error_details["failed_lines"] = failed_lines
        super().__init__(message, error_details, status_code)
        self.failed_lines = failed_lines or []


class ShippingError(ArtFramerError):
    """No shipping option could be offered for the order."""

    status_code = 502

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details, status_code)


class CurrencyRateError(ArtFramerError):
    """Exchange rates are unavailable or older than the staleness bound."""

    status_code = 503

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        error_details = dict(details or {})
        error_details.setdefault(
            "resolution", "Retry later or request pricing in the provider currency"
        )
        super().__init__(message, error_details)
