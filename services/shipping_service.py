"""
Shipping service.

Produces shipping options for a set of cart lines and a destination.

Rules:
    - The address is validated first; an incomplete address is an error,
      never an estimate.
    - Lines are derived with the same quote-line code pricing uses, so
      both services always describe an item identically to the provider.
    - Lines sharing a configuration are sent once with their summed
      copies; the provider sees the real parcel.
    - An empty option list is an error. A requested method the provider
      does not offer is an error, not a silent substitution.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Union

from core.exceptions import AddressValidationError, ShippingError, UpstreamQuoteError, ValidationError
from core.fulfillment_client import QuoteProvider
from models.pricing import (
    AddressValidationResult,
    PricingItem,
    ProviderQuote,
    QuoteLineGroup,
    ShippingAddress,
    ShippingOption,
)
from modules.delivery import canonical_method, estimated_days
from modules.quote_lines import group_lines, request_lines
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

MIN_POSTAL_CODE_LENGTH = 3
MIN_CITY_LENGTH = 2
RECOMMENDED_METHOD = "Standard"

_COUNTRY_CODE = re.compile(r"^[A-Z]{2}$")


class ShippingService:
    """
    Shipping options from the fulfillment provider.

    Attributes:
        quote_provider: Anything implementing QuoteProvider
    """

    def __init__(self, quote_provider: QuoteProvider):
        self._provider = quote_provider

    # -------------------------------------------------------------------------
    # Address
    # -------------------------------------------------------------------------

    @staticmethod
    def validate_address(address: ShippingAddress) -> AddressValidationResult:
        """
        Check that an address is complete enough to quote against.

        Country (ISO 3166 alpha-2), city and a postal code of at least
        three characters are required.
        """
        errors: Dict[str, str] = {}
        if not _COUNTRY_CODE.match((address.country or "").strip().upper()):
            errors["country"] = "Country must be a two-letter ISO code"
        if len((address.city or "").strip()) < MIN_CITY_LENGTH:
            errors["city"] = "City is required"
        if len((address.postal_code or "").strip()) < MIN_POSTAL_CODE_LENGTH:
            errors["postalCode"] = (
                f"Postal code must be at least {MIN_POSTAL_CODE_LENGTH} characters"
            )
        return AddressValidationResult(valid=not errors, errors=errors)

    # -------------------------------------------------------------------------
    # Options
    # -------------------------------------------------------------------------

    def calculate_shipping(
        self,
        items: Sequence[PricingItem],
        address: ShippingAddress,
        method: Optional[str] = None,
    ) -> Union[List[ShippingOption], ShippingOption]:
        """
        Shipping for ``items`` to ``address``.

        Returns:
            All options sorted by cost when ``method`` is None, otherwise
            the option for ``method``

        Raises:
            AddressValidationError: Address incomplete (no provider call made)
            ValidationError: No items
            ShippingError: No options, or ``method`` not offered
            UpstreamQuoteError: Provider failure
        """
        validation = self.validate_address(address)
        if not validation.valid:
            logger.info(f"Rejected shipping address: {validation.errors}")
            raise AddressValidationError(validation.errors)
        if not items:
            raise ValidationError("At least one item is required", {"items": "must not be empty"})

        groups = list(group_lines(items).values())
        options = self.options_for_lines(groups, address.country.strip().upper())
        if method:
            return self.select_option(options, method)
        return options

    def options_for_lines(self, groups: Sequence[QuoteLineGroup], country: str) -> List[ShippingOption]:
        """All options for already-derived line groups, cheapest first."""
        quotes = self._provider.create_quote(country, request_lines(groups))
        options = self._options_from_quotes(quotes)
        if not options:
            raise ShippingError(
                f"No shipping options available to {country}",
                status_code=422,
                details={"destination": country},
            )
        return options

    def quote_for_lines(
        self, groups: Sequence[QuoteLineGroup], country: str, method: str
    ) -> ShippingOption:
        """Shipping for one method; used by the pricing service."""
        return self.select_option(self.options_for_lines(groups, country), method)

    @staticmethod
    def select_option(options: Iterable[ShippingOption], method: str) -> ShippingOption:
        options = list(options)
        wanted = method.strip().lower()
        for option in options:
            if option.method.lower() == wanted:
                return option
        raise ShippingError(
            f"Shipping method {method!r} is not available",
            status_code=422,
            details={"requested": method, "available": [o.method for o in options]},
        )

    @staticmethod
    def get_recommended_method(options: Sequence[ShippingOption]) -> Optional[ShippingOption]:
        """Standard when offered, otherwise the cheapest option."""
        if not options:
            return None
        for option in options:
            if option.method.lower() == RECOMMENDED_METHOD.lower():
                return option
        return min(options, key=lambda o: o.cost)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _options_from_quotes(quotes: Iterable[ProviderQuote]) -> List[ShippingOption]:
        options: Dict[str, ShippingOption] = {}
        for quote in quotes:
            method = canonical_method(quote.shipment_method)
            if quote.shipping_cost < Decimal("0"):
                raise UpstreamQuoteError(
                    f"Negative shipping cost for {method}",
                    details={"method": method, "cost": str(quote.shipping_cost)},
                )
            days = estimated_days(method)
            if method.lower() in (m.lower() for m in options):
                continue
            options[method] = ShippingOption(
                method=method,
                cost=quote.shipping_cost,
                currency=quote.shipping_cost_currency,
                estimated_days=days,
                carrier=quote.carrier,
            )
        return sorted(options.values(), key=lambda o: o.cost)
