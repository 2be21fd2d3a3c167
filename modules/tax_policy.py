"""
Tax policy.

Tax is a flat per-country rate applied to the item subtotal. Countries
without an entry are not taxed.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Mapping, Optional


DEFAULT_TAX_RATES = {
    "US": Decimal("0.08"),
    "CA": Decimal("0.13"),
    "GB": Decimal("0.20"),
    "AU": Decimal("0.10"),
    "DE": Decimal("0.19"),
    "FR": Decimal("0.20"),
    "IT": Decimal("0.22"),
    "ES": Decimal("0.21"),
}


class TaxPolicy:
    """Per-country tax rates."""

    def __init__(self, rates: Optional[Mapping[str, Decimal]] = None):
        source = DEFAULT_TAX_RATES if rates is None else rates
        self._rates = {code.upper(): Decimal(str(rate)) for code, rate in source.items()}

    def rate_for(self, country: str) -> Decimal:
        return self._rates.get(country.upper(), Decimal("0"))

    def tax_for(self, country: str, subtotal: Decimal) -> Decimal:
        """Unrounded tax on ``subtotal``; callers quantize in their currency."""
        return subtotal * self.rate_for(country)
