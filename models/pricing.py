"""
Pricing and shipping data models.

Money is carried as ``Decimal`` throughout and only turned into JSON
numbers in ``to_dict()``. Provider responses are parsed into
``ProviderQuote`` / ``ProviderQuoteItem`` so services never handle raw
provider JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from models.attributes import CanonicalAttributes
from models.configuration import ProductCategory


def _money(amount: Optional[Decimal]) -> Optional[float]:
    return float(amount) if amount is not None else None


# =============================================================================
# REQUEST SIDE
# =============================================================================

@dataclass(frozen=True)
class PricingItem:
    """One line to price, as received from the cart or the API."""

    sku: str
    """Stored SKU; may carry the per-image suffix."""

    quantity: int
    """Copies ordered; must be at least 1."""

    attributes: Mapping[str, Any] = field(default_factory=dict)
    """Raw configuration, any spelling."""

    price_hint: Optional[Decimal] = None
    """Denormalized display price. Never used as a price."""


@dataclass(frozen=True)
class DerivedLine:
    """What both pricing and shipping derive from one cart line."""

    base_sku: str
    category: ProductCategory
    attributes: CanonicalAttributes
    quote_key: str


@dataclass
class QuoteLineGroup:
    """
    All cart lines sharing one quote key.

    The provider is asked about each group once; ``copies`` is the summed
    quantity of its lines.
    """

    line: DerivedLine
    indices: List[int] = field(default_factory=list)
    copies: int = 0

    @property
    def quote_key(self) -> str:
        return self.line.quote_key


@dataclass(frozen=True)
class QuoteRequestLine:
    """A single item in a provider quote request."""

    sku: str
    copies: int
    attributes: Dict[str, str]


@dataclass
class ShippingAddress:
    """Destination address for shipping quotes."""

    country: str
    city: str = ""
    postal_code: str = ""
    address1: str = ""
    address2: str = ""
    state: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShippingAddress":
        return cls(
            country=str(data.get("country") or data.get("countryCode") or "").strip().upper(),
            city=str(data.get("city") or "").strip(),
            postal_code=str(
                data.get("postalCode") or data.get("postal_code") or data.get("zip") or ""
            ).strip(),
            address1=str(data.get("address1") or data.get("line1") or "").strip(),
            address2=str(data.get("address2") or data.get("line2") or "").strip(),
            state=str(data.get("state") or data.get("stateOrCounty") or "").strip(),
        )


@dataclass
class AddressValidationResult:
    valid: bool
    errors: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": dict(self.errors)}


# =============================================================================
# PROVIDER RESPONSE
# =============================================================================

@dataclass(frozen=True)
class ProviderQuoteItem:
    """Per-item cost as echoed back by the provider."""

    sku: str
    copies: int
    unit_cost: Decimal
    currency: str
    attributes: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderQuote:
    """One shipping method's quote for the whole request."""

    shipment_method: str
    items_cost: Decimal
    shipping_cost: Decimal
    currency: str
    """Currency of the items cost."""

    items: Tuple[ProviderQuoteItem, ...] = ()
    carrier: Optional[str] = None
    shipping_currency: Optional[str] = None
    """Currency of the shipping cost; the items currency when not given."""

    @property
    def shipping_cost_currency(self) -> str:
        return self.shipping_currency or self.currency


# =============================================================================
# RESULTS
# =============================================================================

@dataclass(frozen=True)
class ShippingOption:
    """A shipping method the customer can choose."""

    method: str
    cost: Decimal
    currency: str
    estimated_days: int
    carrier: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "cost": _money(self.cost),
            "currency": self.currency,
            "estimatedDays": self.estimated_days,
            "carrier": self.carrier,
        }


@dataclass
class PricingResult:
    """
    Authoritative price of an order.

    ``total == subtotal + shipping + tax`` and
    ``sum(unit_prices[i] * quantity_i) == subtotal`` in ``currency``.
    The ``original_*`` fields and ``exchange_rate`` are set only when the
    result was converted from the provider's currency.
    """

    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal
    currency: str
    shipping_method: str
    estimated_days: Optional[int] = None
    unit_prices: Dict[int, Decimal] = field(default_factory=dict)
    original_currency: Optional[str] = None
    original_total: Optional[Decimal] = None
    exchange_rate: Optional[Decimal] = None

    @property
    def converted(self) -> bool:
        return self.original_currency is not None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "subtotal": _money(self.subtotal),
            "shipping": _money(self.shipping),
            "tax": _money(self.tax),
            "total": _money(self.total),
            "currency": self.currency,
            "shippingMethod": self.shipping_method,
            "estimatedDays": self.estimated_days,
            "unitPrices": {str(i): _money(p) for i, p in sorted(self.unit_prices.items())},
        }
        if self.converted:
            data["originalCurrency"] = self.original_currency
            data["originalTotal"] = _money(self.original_total)
            data["exchangeRate"] = float(self.exchange_rate)
        return data


@dataclass(frozen=True)
class PriceMismatch:
    index: int
    sku: str
    price_hint: Decimal
    live_price: Decimal
    difference_ratio: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "sku": self.sku,
            "priceHint": _money(self.price_hint),
            "livePrice": _money(self.live_price),
            "differencePercent": round(float(self.difference_ratio) * 100, 2),
        }


@dataclass
class PriceValidationResult:
    """Lines whose stored display price drifted from the live price."""

    mismatches: List[PriceMismatch] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.mismatches

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "mismatches": [m.to_dict() for m in self.mismatches],
        }
