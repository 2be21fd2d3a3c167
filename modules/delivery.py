"""
Delivery time estimates per shipping method.

The quote endpoint does not return transit times, so the storefront shows
these fixed business-day estimates.
"""

from typing import Dict


SHIPPING_METHODS = ("Budget", "Standard", "Express", "Overnight")

DELIVERY_DAYS: Dict[str, int] = {
    "budget": 12,
    "standard": 6,
    "express": 3,
    "overnight": 1,
}

DEFAULT_DELIVERY_DAYS = 7


def estimated_days(method: str) -> int:
    """Business days for ``method`` (case-insensitive), 7 when unknown."""
    return DELIVERY_DAYS.get(method.strip().lower(), DEFAULT_DELIVERY_DAYS)


def canonical_method(method: str) -> str:
    """``"express"`` -> ``"Express"``; unknown names are returned trimmed."""
    cleaned = method.strip()
    for known in SHIPPING_METHODS:
        if known.lower() == cleaned.lower():
            return known
    return cleaned
