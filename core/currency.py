"""
Currency conversion with a staleness bound.

Rates are fetched as a USD-based table from an ExchangeRate-API style
endpoint (``{"base": "USD", "rates": {"EUR": 0.92, ...}}``) and cached for
the whole process.

Freshness rules:
    - Older than refresh_after_seconds: try to refetch.
    - Refetch failed: keep serving the last table while it is no older
      than max_staleness_seconds (default one hour).
    - Past that bound: conversions fail with CurrencyRateError. There is no
      hard-coded fallback table.
"""

from __future__ import annotations

import threading
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, Optional

import httpx

from core.exceptions import CurrencyRateError, ValidationError
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW", "VND", "CLP", "PYG", "UGX"})

_CENTS = Decimal("0.01")
_UNITS = Decimal("1")


def quantize_money(amount: Decimal, currency: str) -> Decimal:
    """Round half-up to the currency's minor unit (whole units for JPY etc.)."""
    exponent = _UNITS if currency.upper() in ZERO_DECIMAL_CURRENCIES else _CENTS
    return Decimal(amount).quantize(exponent, rounding=ROUND_HALF_UP)


class CurrencyRateProvider:
    """
    Process-wide exchange-rate cache.

    Thread Safety:
        A single lock serializes refreshes; concurrent readers wait for the
        refresh in progress rather than starting their own.
    """

    def __init__(
        self,
        rates_url: str,
        http_client: Optional[httpx.Client] = None,
        timeout_seconds: float = 5.0,
        refresh_after_seconds: float = 900.0,
        max_staleness_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.rates_url = rates_url
        self.refresh_after_seconds = refresh_after_seconds
        self.max_staleness_seconds = max_staleness_seconds
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(
            timeout=timeout_seconds, headers={"Accept": "application/json"}
        )
        self._clock = clock
        self._lock = threading.Lock()
        self._rates: Optional[Dict[str, Decimal]] = None
        self._fetched_at: Optional[float] = None
        self._last_error: Optional[str] = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def get_rate(self, from_currency: str, to_currency: str) -> Decimal:
        """
        Rate to multiply an amount in ``from_currency`` by.

        Raises:
            ValidationError: Unknown currency code
            CurrencyRateError: No table within the staleness bound
        """
        source = from_currency.strip().upper()
        target = to_currency.strip().upper()
        if source == target:
            return Decimal("1")

        rates = self._current_rates()
        for code, field_name in ((source, "from_currency"), (target, "currency")):
            if code not in rates:
                raise ValidationError(
                    f"Unsupported currency: {code}",
                    {field_name: f"{code} is not a supported currency"},
                )
        return rates[target] / rates[source]

    def convert(self, amount: Decimal, from_currency: str, to_currency: str) -> Decimal:
        """Unrounded conversion; quantize with quantize_money()."""
        return amount * self.get_rate(from_currency, to_currency)

    def cache_status(self) -> Dict[str, Any]:
        with self._lock:
            age = None if self._fetched_at is None else self._clock() - self._fetched_at
            return {
                "cached": self._rates is not None,
                "age_seconds": round(age, 1) if age is not None else None,
                "currencies": len(self._rates or {}),
                "stale": age is not None and age > self.refresh_after_seconds,
                "last_error": self._last_error,
            }

    def clear_cache(self) -> None:
        with self._lock:
            self._rates = None
            self._fetched_at = None
        logger.info("Currency rate cache cleared")

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _current_rates(self) -> Dict[str, Decimal]:
        with self._lock:
            now = self._clock()
            age = None if self._fetched_at is None else now - self._fetched_at
            if age is not None and age < self.refresh_after_seconds:
                return self._rates

            try:
                rates = self._fetch()
            except CurrencyRateError as e:
                self._last_error = e.message
                if age is not None and age <= self.max_staleness_seconds:
                    logger.warning(
                        f"Currency refresh failed ({e.message}); "
                        f"serving rates {age:.0f}s old"
                    )
                    return self._rates
                logger.error(f"Currency refresh failed and no rates within bound: {e.message}")
                raise CurrencyRateError(
                    "Exchange rates unavailable",
                    {
                        "age_seconds": round(age, 1) if age is not None else None,
                        "max_staleness_seconds": self.max_staleness_seconds,
                        "cause": e.message,
                    },
                ) from e

            self._rates = rates
            self._fetched_at = now
            self._last_error = None
            logger.info(f"Currency rates refreshed: {len(rates)} currencies")
            return rates

    def _fetch(self) -> Dict[str, Decimal]:
        try:
            response = self._http.get(self.rates_url)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise CurrencyRateError(f"Rate request failed: {e}") from e
        except ValueError as e:
            raise CurrencyRateError("Rate response is not JSON") from e

        raw_rates = data.get("rates") if isinstance(data, dict) else None
        if not isinstance(raw_rates, dict) or not raw_rates:
            raise CurrencyRateError("Rate response has no rates table")

        base = str(data.get("base") or "USD").upper()
        rates: Dict[str, Decimal] = {base: Decimal("1")}
        for code, value in raw_rates.items():
            try:
                rate = Decimal(str(value))
                if rate <= 0:
                    continue
            except ArithmeticError:
                continue
            rates[str(code).upper()] = rate
        return rates
