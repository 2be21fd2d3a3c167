"""
Pricing service.

Computes the authoritative price of an order from the fulfillment
provider's live unit costs.

Algorithm:
    1. Derive base SKU, canonical attributes and quote key for every line
       (modules.quote_lines); lines with equal keys form one group.
    2. Look each key up in the quote cache. All misses for a destination
       go to the provider in one request, behind single-flight.
    3. Match returned items to requested keys by recomputing their keys.
       Never by position.
    4. Any line left without a cost fails the whole calculation.
    5. Shipping for the chosen method comes from the shipping service
       (same line derivation); tax from the tax policy.
    6. Optional conversion to the display currency.

Invariants of the result:
    total == subtotal + shipping + tax
    subtotal == sum(unit_prices[i] * quantity_i)
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from core.currency import CurrencyRateProvider, quantize_money
from core.exceptions import (
    CurrencyRateError,
    PricingError,
    ShippingError,
    UpstreamQuoteError,
    ValidationError,
)
from core.fulfillment_client import QuoteProvider
from core.quote_cache import QuoteCache, SingleFlight
from models.pricing import (
    PriceMismatch,
    PriceValidationResult,
    PricingItem,
    PricingResult,
    ProviderQuote,
    ProviderQuoteItem,
    QuoteLineGroup,
    ShippingOption,
)
from modules.attribute_normalizer import normalize_attributes
from modules.quote_lines import derive_quote_line, group_lines, request_lines
from modules.sku_resolver import extract_base_sku
from modules.tax_policy import TaxPolicy
from services.shipping_service import ShippingService
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

PRICE_MISMATCH_THRESHOLD = Decimal("0.05")

_COUNTRY_CODE = re.compile(r"^[A-Za-z]{2}$")
_CURRENCY_CODE = re.compile(r"^[A-Za-z]{3}$")

UnitCost = Tuple[Decimal, str]


def normalize_currency(currency: Optional[str], default: str = "USD") -> str:
    """Upper-cased ISO code, or ``default`` when none was requested."""
    if currency is None:
        return default
    if not _CURRENCY_CODE.match(currency.strip()):
        raise ValidationError("Invalid currency", {"currency": "Currency must be a three-letter ISO code"})
    return currency.strip().upper()


def match_quote_items(
    groups: Sequence[QuoteLineGroup], items: Sequence[ProviderQuoteItem]
) -> Dict[str, ProviderQuoteItem]:
    """
    Map returned provider items onto requested quote keys.

    An item matches the group whose quote key equals the key recomputed
    from the item's echoed SKU and attributes. If the provider echoed
    extra defaults (or nothing at all), the item matches the single group
    with the same base SKU whose attributes the echo contains.

    Raises:
        UpstreamQuoteError: An item matches no group, or two items for the
            same key disagree on the unit cost
    """
    by_key = {group.quote_key: group for group in groups}
    matched: Dict[str, ProviderQuoteItem] = {}

    for item in items:
        key = derive_quote_line(item.sku, item.attributes).quote_key
        if key not in by_key:
            echoed = normalize_attributes(item.attributes)
            base = extract_base_sku(item.sku).casefold()
            candidates = [
                group for group in groups
                if group.line.base_sku.casefold() == base
                and (not item.attributes or group.line.attributes.is_subset_of(echoed))
            ]
            if len(candidates) != 1:
                raise UpstreamQuoteError(
                    "Quote item could not be matched to a requested line",
                    details={"sku": item.sku, "attributes": dict(item.attributes)},
                )
            key = candidates[0].quote_key

        previous = matched.get(key)
        if previous is not None and previous.unit_cost != item.unit_cost:
            raise UpstreamQuoteError(
                "Conflicting unit costs returned for one configuration",
                details={"sku": item.sku, "costs": [str(previous.unit_cost), str(item.unit_cost)]},
            )
        matched[key] = item
    return matched


class PricingService:
    """
    Authoritative order pricing.

    Attributes:
        quote_provider: Fulfillment provider (QuoteProvider)
        shipping_service: Shared ShippingService
        currency_provider: Needed only for conversions
        quote_cache: Unit-cost cache (a private one is created if omitted)
    """

    def __init__(
        self,
        quote_provider: QuoteProvider,
        shipping_service: ShippingService,
        currency_provider: Optional[CurrencyRateProvider] = None,
        quote_cache: Optional[QuoteCache] = None,
        tax_policy: Optional[TaxPolicy] = None,
        single_flight: Optional[SingleFlight] = None,
    ):
        self._provider = quote_provider
        self._shipping = shipping_service
        self._currency = currency_provider
        self._cache = quote_cache if quote_cache is not None else QuoteCache()
        self._tax = tax_policy or TaxPolicy()
        self._flight = single_flight or SingleFlight()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def calculate_pricing(
        self,
        items: Sequence[PricingItem],
        destination_country: str,
        shipping_method: str = "Standard",
        output_currency: Optional[str] = None,
    ) -> PricingResult:
        """
        Price ``items`` shipped to ``destination_country``.

        Args:
            items: Lines to price; quantities must be >= 1
            destination_country: ISO alpha-2 code
            shipping_method: Provider method name (case-insensitive)
            output_currency: ISO 4217 code to convert to, if any

        Returns:
            PricingResult with unit prices keyed by item index

        Raises:
            ValidationError: Malformed input
            PricingError: Any provider, shipping or rate failure
        """
        country = self._validate(items, destination_country, shipping_method, output_currency)
        groups = group_lines(items)

        try:
            unit_costs = self._unit_costs(country, groups)
            shipping = self._shipping.quote_for_lines(list(groups.values()), country, shipping_method)
        except (UpstreamQuoteError, ShippingError) as e:
            logger.error(f"Pricing failed for {len(items)} item(s) to {country}: {e}")
            raise PricingError(e.message, status_code=e.status_code, details=e.details) from e

        currencies = {currency for _, currency in unit_costs.values()}
        if len(currencies) != 1:
            raise PricingError(
                "Provider returned unit costs in more than one currency",
                details={"currencies": sorted(currencies)},
            )
        native = currencies.pop()
        target = (output_currency or native).strip().upper()

        try:
            shipping_native = shipping.cost
            if shipping.currency.upper() != native:
                shipping_native = self._rate(shipping.currency, native) * shipping.cost
            rate = Decimal("1") if target == native else self._rate(native, target)
        except CurrencyRateError as e:
            raise PricingError(e.message, status_code=e.status_code, details=e.details) from e

        result = self._assemble(
            items, groups, unit_costs, shipping_native, native, target, rate, country, shipping
        )
        logger.info(
            f"Priced {len(items)} item(s) to {country} via {shipping.method}: "
            f"{result.total} {result.currency}"
        )
        return result

    def validate_prices(
        self,
        items: Sequence[PricingItem],
        destination_country: str,
        shipping_method: str = "Standard",
    ) -> PriceValidationResult:
        """
        Compare stored display prices with live unit prices.

        Lines without a price hint are skipped; a difference above 5 % of
        the live price is reported.
        """
        pricing = self.calculate_pricing(items, destination_country, shipping_method)
        mismatches: List[PriceMismatch] = []
        for index, item in enumerate(items):
            live = pricing.unit_prices[index]
            if item.price_hint is None or live <= 0:
                continue
            ratio = abs(item.price_hint - live) / live
            if ratio > PRICE_MISMATCH_THRESHOLD:
                mismatches.append(PriceMismatch(index, item.sku, item.price_hint, live, ratio))
        if mismatches:
            logger.warning(f"{len(mismatches)} cart price(s) drifted from live pricing")
        return PriceValidationResult(mismatches)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _validate(
        items: Sequence[PricingItem],
        destination_country: str,
        shipping_method: str,
        output_currency: Optional[str],
    ) -> str:
        errors: Dict[str, str] = {}
        if not items:
            errors["items"] = "At least one item is required"
        for index, item in enumerate(items or []):
            if not item.sku or not str(item.sku).strip():
                errors[f"items[{index}].sku"] = "SKU is required"
            quantity = item.quantity
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                errors[f"items[{index}].quantity"] = "Quantity must be a whole number of at least 1"
        if not destination_country or not _COUNTRY_CODE.match(destination_country.strip()):
            errors["destinationCountry"] = "Country must be a two-letter ISO code"
        if not shipping_method or not shipping_method.strip():
            errors["shippingMethod"] = "Shipping method is required"
        if output_currency is not None and not _CURRENCY_CODE.match(output_currency.strip()):
            errors["currency"] = "Currency must be a three-letter ISO code"
        if errors:
            raise ValidationError("Invalid pricing request", errors)
        return destination_country.strip().upper()

    def _unit_costs(self, country: str, groups: Dict[str, QuoteLineGroup]) -> Dict[str, UnitCost]:
        costs: Dict[str, UnitCost] = {}
        misses: List[QuoteLineGroup] = []
        for key, group in groups.items():
            hit = self._cache.get(country, key)
            if hit is None:
                misses.append(group)
            else:
                logger.debug(f"Quote cache hit for {group.line.base_sku}")
                costs[key] = (hit.amount, hit.currency)

        if misses:
            flight_key = (country, tuple(sorted(group.quote_key for group in misses)))
            fetched = self._flight.do(flight_key, lambda: self._fetch_unit_costs(country, misses))
            costs.update(fetched)

        failed = [
            {"index": index, "sku": group.line.base_sku, "quote_key": key}
            for key, group in groups.items() if key not in costs
            for index in group.indices
        ]
        if failed:
            raise PricingError(
                f"No price returned for {len(failed)} line(s)",
                status_code=502,
                failed_lines=failed,
            )
        return costs

    def _fetch_unit_costs(self, country: str, groups: List[QuoteLineGroup]) -> Dict[str, UnitCost]:
        quotes = self._provider.create_quote(country, request_lines(groups, unit_copies=True))
        quote = self._reference_quote(quotes)
        if quote is None:
            return {}

        fetched: Dict[str, UnitCost] = {}
        for key, item in match_quote_items(groups, quote.items).items():
            if item.unit_cost < 0:
                raise UpstreamQuoteError(
                    "Negative unit cost returned",
                    details={"sku": item.sku, "unit_cost": str(item.unit_cost)},
                )
            self._cache.put(country, key, item.unit_cost, item.currency)
            fetched[key] = (item.unit_cost, item.currency)
        logger.debug(f"Fetched {len(fetched)}/{len(groups)} unit cost(s) for {country}")
        return fetched

    @staticmethod
    def _reference_quote(quotes: Sequence[ProviderQuote]) -> Optional[ProviderQuote]:
        # Unit costs do not depend on the shipping method
        for quote in quotes:
            if quote.shipment_method.lower() == "standard":
                return quote
        return quotes[0] if quotes else None

    def _rate(self, source: str, target: str) -> Decimal:
        if self._currency is None:
            raise CurrencyRateError(
                f"Cannot convert {source} to {target}: no currency provider configured"
            )
        return self._currency.get_rate(source, target)

    def _assemble(
        self,
        items: Sequence[PricingItem],
        groups: Dict[str, QuoteLineGroup],
        unit_costs: Dict[str, UnitCost],
        shipping_native: Decimal,
        native: str,
        target: str,
        rate: Decimal,
        country: str,
        shipping: ShippingOption,
    ) -> PricingResult:
        unit_prices: Dict[int, Decimal] = {}
        native_units: Dict[int, Decimal] = {}
        for key, group in groups.items():
            amount = unit_costs[key][0]
            converted = quantize_money(amount * rate, target)
            for index in group.indices:
                unit_prices[index] = converted
                native_units[index] = quantize_money(amount, native)

        subtotal = sum(
            (unit_prices[i] * items[i].quantity for i in range(len(items))), Decimal("0")
        )
        shipping_amount = quantize_money(shipping_native * rate, target)
        tax = quantize_money(self._tax.tax_for(country, subtotal), target)
        total = subtotal + shipping_amount + tax

        result = PricingResult(
            subtotal=subtotal,
            shipping=shipping_amount,
            tax=tax,
            total=total,
            currency=target,
            shipping_method=shipping.method,
            estimated_days=shipping.estimated_days,
            unit_prices=unit_prices,
        )
        if target != native:
            native_subtotal = sum(
                (native_units[i] * items[i].quantity for i in range(len(items))), Decimal("0")
            )
            native_shipping = quantize_money(shipping_native, native)
            native_tax = quantize_money(self._tax.tax_for(country, native_subtotal), native)
            result.original_currency = native
            result.original_total = native_subtotal + native_shipping + native_tax
            result.exchange_rate = rate
        return result
