"""
Services layer for the Art Framer checkout engine.

- ShippingService: shipping options for lines and a destination
- PricingService: authoritative order pricing (uses ShippingService)
- CartService: per-user cart CRUD, priced fresh on every read

Dependency Graph:
    CartService -> PricingService -> ShippingService -> QuoteProvider
                                  -> QuoteCache / CurrencyRateProvider

All services are stateless apart from their injected collaborators and
are shared by every request thread.
"""

from .shipping_service import ShippingService
from .pricing_service import PricingService
from .cart_service import CartService

__all__ = [
    "ShippingService",
    "PricingService",
    "CartService",
]
