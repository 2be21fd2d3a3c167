"""
Cart data models.

A CartItem is a stored row: it keeps the raw configuration exactly as the
user chose it and a display price that is informational only. Prices
shown for a cart always come from a fresh pricing run (see ``Cart``).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from models.pricing import PricingResult, PricingItem


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CartItemInput:
    """
    What a client submits to add a product to the cart.

    Either ``sku`` or a frame choice (``frame_size`` plus optional
    ``frame_style`` / ``frame_material``) identifies the product.
    """

    image_id: Optional[str] = None
    quantity: int = 1
    sku: Optional[str] = None
    frame_size: Optional[str] = None
    frame_style: Optional[str] = None
    frame_material: Optional[str] = None
    configuration: Dict[str, Any] = field(default_factory=dict)
    price_hint: Optional[Decimal] = None
    name: str = ""
    image_url: str = ""


@dataclass(frozen=True)
class CartItem:
    """A stored cart row, owned by exactly one user."""

    id: str
    """Row id assigned by the store."""

    user_id: str
    """Owner. Every store operation is scoped by it."""

    sku: str
    """Per-image unique SKU."""

    quantity: int
    """1..10 copies."""

    configuration: Dict[str, Any] = field(default_factory=dict)
    """Raw configuration as submitted; normalized only when priced."""

    image_id: Optional[str] = None
    price_hint: Optional[Decimal] = None
    """Display price at the time of adding; never authoritative."""

    name: str = ""
    image_url: str = ""
    version: int = 1
    """Incremented by the store on every update."""

    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def with_quantity(self, quantity: int) -> "CartItem":
        return replace(
            self, quantity=quantity, version=self.version + 1, updated_at=_utcnow()
        )

    def to_pricing_item(self) -> PricingItem:
        return PricingItem(
            sku=self.sku,
            quantity=self.quantity,
            attributes=self.configuration,
            price_hint=self.price_hint,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sku": self.sku,
            "quantity": self.quantity,
            "configuration": dict(self.configuration),
            "imageId": self.image_id,
            "priceHint": float(self.price_hint) if self.price_hint is not None else None,
            "name": self.name,
            "imageUrl": self.image_url,
            "version": self.version,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass
class CartLine:
    """A cart row with its freshly computed unit price."""

    item: CartItem
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.item.quantity

    def to_dict(self) -> Dict[str, Any]:
        data = self.item.to_dict()
        data["unitPrice"] = float(self.unit_price)
        data["lineTotal"] = float(self.line_total)
        return data


@dataclass
class Cart:
    """A user's cart priced at read time."""

    lines: List[CartLine]
    pricing: PricingResult

    @property
    def item_count(self) -> int:
        return sum(line.item.quantity for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [line.to_dict() for line in self.lines],
            "itemCount": self.item_count,
            "totals": self.pricing.to_dict(),
        }
