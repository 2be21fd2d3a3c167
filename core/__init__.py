"""
Core module for the Art Framer checkout engine.

Contains infrastructure components:
- exceptions: Custom exception hierarchy
- fulfillment_client: Prodigi client (quotes + product catalog)
- quote_cache: TTL cache of unit costs and single-flight collapsing
- currency: Exchange rates with a staleness bound
- cart_store: Cart persistence collaborator
"""

from .exceptions import (
    ArtFramerError,
    ConfigurationError,
    ValidationError,
    AddressValidationError,
    AuthenticationRequiredError,
    CartItemNotFoundError,
    ConcurrentModificationError,
    UpstreamQuoteError,
    QuoteTimeoutError,
    PricingError,
    ShippingError,
    CurrencyRateError,
)
from .fulfillment_client import ProdigiClient, QuoteProvider, ProductCatalog
from .quote_cache import QuoteCache, SingleFlight
from .currency import CurrencyRateProvider
from .cart_store import CartStore, InMemoryCartStore

__all__ = [
    "ArtFramerError",
    "ConfigurationError",
    "ValidationError",
    "AddressValidationError",
    "AuthenticationRequiredError",
    "CartItemNotFoundError",
    "ConcurrentModificationError",
    "UpstreamQuoteError",
    "QuoteTimeoutError",
    "PricingError",
    "ShippingError",
    "CurrencyRateError",
    "ProdigiClient",
    "QuoteProvider",
    "ProductCatalog",
    "QuoteCache",
    "SingleFlight",
    "CurrencyRateProvider",
    "CartStore",
    "InMemoryCartStore",
]
