"""
Shared fixtures and fakes for the checkout engine tests.

FakeQuoteProvider stands in for the Prodigi client: it records every
request and answers with deterministic unit costs and shipping options.
By default it returns items in REVERSE request order so any positional
matching bug shows up immediately.
"""

import threading
from decimal import Decimal
from typing import Dict, List, Optional

import pytest

from core.exceptions import CurrencyRateError, ValidationError
from core.quote_cache import QuoteCache
from core.cart_store import InMemoryCartStore
from models.pricing import ProviderQuote, ProviderQuoteItem
from services.shipping_service import ShippingService
from services.pricing_service import PricingService
from services.cart_service import CartService


DEFAULT_SHIPPING = {
    "Budget": Decimal("4.95"),
    "Standard": Decimal("9.95"),
    "Express": Decimal("24.95"),
}


class FakeQuoteProvider:
    """Deterministic QuoteProvider + ProductCatalog."""

    def __init__(
        self,
        unit_costs: Optional[Dict[str, Decimal]] = None,
        default_unit_cost: Decimal = Decimal("25.00"),
        shipping: Optional[Dict[str, Decimal]] = None,
        currency: str = "USD",
        echo: str = "full",
        reverse: bool = True,
        shipping_currency: Optional[str] = None,
    ):
        self.unit_costs = {k.lower(): v for k, v in (unit_costs or {}).items()}
        self.default_unit_cost = default_unit_cost
        self.shipping = DEFAULT_SHIPPING if shipping is None else shipping
        self.currency = currency
        self.echo = echo
        self.reverse = reverse
        self.shipping_currency = shipping_currency
        self.drop_skus: set = set()
        self.error: Optional[Exception] = None
        self.known_products: Optional[set] = None
        self.delay: Optional[threading.Event] = None
        self.calls: List[dict] = []
        self._lock = threading.Lock()

    def unit_cost_for(self, sku: str, attributes: Dict[str, str]) -> Decimal:
        cost = self.unit_costs.get(sku.lower(), self.default_unit_cost)
        if attributes.get("mount"):
            cost += Decimal("5.00")
        return cost

    def _echo(self, attributes: Dict[str, str]) -> Dict[str, str]:
        if self.echo == "none":
            return {}
        # Provider answers in its own casing
        echoed = {key: value.title() for key, value in attributes.items()}
        if self.echo == "extra":
            echoed["substrateWeight"] = "200gsm"
        return echoed

    def create_quote(self, destination_country, lines, shipping_method=None):
        with self._lock:
            self.calls.append({
                "country": destination_country,
                "lines": list(lines),
                "shipping_method": shipping_method,
            })
        if self.delay is not None:
            self.delay.wait(timeout=5)
        if self.error is not None:
            raise self.error

        items = [
            ProviderQuoteItem(
                sku=line.sku,
                copies=line.copies,
                unit_cost=self.unit_cost_for(line.sku, line.attributes),
                currency=self.currency,
                attributes=self._echo(line.attributes),
            )
            for line in lines
            if line.sku.lower() not in self.drop_skus
        ]
        if self.reverse:
            items.reverse()

        items_cost = sum((i.unit_cost * i.copies for i in items), Decimal("0"))
        return [
            ProviderQuote(
                shipment_method=method,
                items_cost=items_cost,
                shipping_cost=cost,
                currency=self.currency,
                items=tuple(items),
                carrier="FakeCarrier",
                shipping_currency=self.shipping_currency,
            )
            for method, cost in self.shipping.items()
        ]

    def get_product(self, sku):
        if self.known_products is not None and sku.lower() not in self.known_products:
            return None
        return {"sku": sku}


class FakeCurrencyProvider:
    """CurrencyRateProvider stand-in with a fixed USD-based table."""

    def __init__(self, rates: Optional[Dict[str, Decimal]] = None):
        self.rates = rates or {
            "USD": Decimal("1"),
            "EUR": Decimal("0.5"),
            "GBP": Decimal("0.8"),
            "JPY": Decimal("150"),
        }
        self.error: Optional[Exception] = None
        self.calls = 0

    def get_rate(self, from_currency, to_currency):
        self.calls += 1
        if self.error is not None:
            raise self.error
        source, target = from_currency.upper(), to_currency.upper()
        if source == target:
            return Decimal("1")
        for code in (source, target):
            if code not in self.rates:
                raise ValidationError(f"Unsupported currency: {code}", {"currency": code})
        return self.rates[target] / self.rates[source]

    def cache_status(self):
        return {"cached": True, "last_error": None}

    def close(self):
        pass


@pytest.fixture
def provider():
    return FakeQuoteProvider()


@pytest.fixture
def currency():
    return FakeCurrencyProvider()


@pytest.fixture
def quote_cache():
    return QuoteCache(ttl_seconds=300)


@pytest.fixture
def shipping_service(provider):
    return ShippingService(provider)


@pytest.fixture
def pricing_service(provider, shipping_service, currency, quote_cache):
    return PricingService(
        provider, shipping_service, currency_provider=currency, quote_cache=quote_cache
    )


@pytest.fixture
def cart_store():
    return InMemoryCartStore()


@pytest.fixture
def cart_service(cart_store, pricing_service):
    return CartService(cart_store, pricing_service)


@pytest.fixture
def rate_error():
    return CurrencyRateError("Exchange rates unavailable")
