"""
Data models for the Art Framer checkout engine.

- CanonicalAttributes: normalized, sorted attribute pairs (value object)
- FrameConfiguration: per-category product configuration (discriminated union)
- PricingItem / PricingResult / ShippingOption: pricing and shipping I/O
- CartItem / Cart: stored cart rows and a freshly priced cart

Value objects are frozen dataclasses so they can be shared between request
threads and used as cache keys.
"""

from .attributes import CanonicalAttributes
from .configuration import (
    ProductCategory,
    FrameConfiguration,
    CanvasConfiguration,
    FramedCanvasConfiguration,
    FramedPrintConfiguration,
    AcrylicConfiguration,
    MetalConfiguration,
    PaperPrintConfiguration,
    OtherConfiguration,
    build_configuration,
    detect_category,
)
from .pricing import (
    PricingItem,
    DerivedLine,
    QuoteLineGroup,
    QuoteRequestLine,
    ShippingAddress,
    AddressValidationResult,
    ProviderQuote,
    ProviderQuoteItem,
    ShippingOption,
    PricingResult,
    PriceMismatch,
    PriceValidationResult,
)
from .cart import CartItemInput, CartItem, CartLine, Cart

__all__ = [
    # Attributes and configuration
    "CanonicalAttributes",
    "ProductCategory",
    "FrameConfiguration",
    "CanvasConfiguration",
    "FramedCanvasConfiguration",
    "FramedPrintConfiguration",
    "AcrylicConfiguration",
    "MetalConfiguration",
    "PaperPrintConfiguration",
    "OtherConfiguration",
    "build_configuration",
    "detect_category",
    # Pricing and shipping
    "PricingItem",
    "DerivedLine",
    "QuoteLineGroup",
    "QuoteRequestLine",
    "ShippingAddress",
    "AddressValidationResult",
    "ProviderQuote",
    "ProviderQuoteItem",
    "ShippingOption",
    "PricingResult",
    "PriceMismatch",
    "PriceValidationResult",
    # Cart
    "CartItemInput",
    "CartItem",
    "CartLine",
    "Cart",
]
