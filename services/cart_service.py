"""
Cart service.

Owns cart CRUD on top of a CartStore and prices the cart fresh on every
read. Stored rows keep the raw configuration and an informational display
price; neither is ever used as the price of the cart.

Rules:
    - Quantity is 1..10 per row.
    - Rows carry a per-image unique SKU (modules.sku_resolver).
    - Every operation is scoped by user id; another user's row is "not
      found", never "forbidden".
    - No in-process locking: the store makes each row update atomic.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from core.cart_store import CartStore
from core.exceptions import (
    CartItemNotFoundError,
    ConcurrentModificationError,
    ValidationError,
)
from core.fulfillment_client import ProductCatalog
from models.cart import Cart, CartItem, CartItemInput, CartLine
from models.pricing import PriceValidationResult, PricingResult
from modules.quote_lines import derive_quote_line
from modules.sku_resolver import base_sku_for_frame, extract_base_sku, resolve_sku
from services.pricing_service import PricingService, normalize_currency
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

MIN_QUANTITY = 1
MAX_QUANTITY = 10

# Retries of the merge compare-and-set when another request races us
_MERGE_ATTEMPTS = 3


def _check_quantity(quantity, field: str = "quantity") -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be a whole number", {field: "must be an integer"})
    if not MIN_QUANTITY <= quantity <= MAX_QUANTITY:
        raise ValidationError(
            f"Quantity must be between {MIN_QUANTITY} and {MAX_QUANTITY}",
            {field: f"must be between {MIN_QUANTITY} and {MAX_QUANTITY}"},
        )
    return quantity


class CartService:
    """
    Per-user carts priced at read time.

    Attributes:
        store: CartStore implementation
        pricing_service: Used for every cart read
        catalog: Optional ProductCatalog; when set, base SKUs are checked
            against it before a row is added
    """

    def __init__(
        self,
        store: CartStore,
        pricing_service: PricingService,
        catalog: Optional[ProductCatalog] = None,
        default_country: str = "US",
        default_shipping_method: str = "Standard",
    ):
        self._store = store
        self._pricing = pricing_service
        self._catalog = catalog
        self.default_country = default_country
        self.default_shipping_method = default_shipping_method

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def add_item(self, user_id: str, item_input: CartItemInput) -> CartItem:
        """
        Add a product to the user's cart.

        If the user already has a row with the same SKU and the same
        canonical configuration, that row's quantity is increased instead.

        Raises:
            ValidationError: Bad quantity, no product, unknown SKU, or a
                merge that would exceed the maximum quantity
        """
        quantity = _check_quantity(item_input.quantity)
        sku = resolve_sku(self._product_sku(item_input), item_input.image_id)
        self._check_catalog(extract_base_sku(sku))

        configuration = dict(item_input.configuration)
        if item_input.frame_style and not item_input.sku:
            configuration.setdefault("color", item_input.frame_style)

        quote_key = derive_quote_line(sku, configuration).quote_key

        conflict: Optional[ConcurrentModificationError] = None
        for _ in range(_MERGE_ATTEMPTS):
            conflict = None
            existing = self._find_same_product(user_id, sku, quote_key)
            if existing is None:
                break
            merged_quantity = existing.quantity + quantity
            if merged_quantity > MAX_QUANTITY:
                raise ValidationError(
                    f"Maximum {MAX_QUANTITY} copies per item",
                    {"quantity": f"cart already holds {existing.quantity}"},
                )
            try:
                updated = self._store.update_quantity(
                    user_id, existing.id, merged_quantity, expected_version=existing.version
                )
            except ConcurrentModificationError as e:
                conflict = e
                continue
            if updated is not None:
                logger.info(f"Merged {quantity} into cart row {existing.id[:8]} ({sku})")
                return updated
        if conflict is not None:
            raise conflict

        item = CartItem(
            id="",
            user_id=user_id,
            sku=sku,
            quantity=quantity,
            configuration=configuration,
            image_id=item_input.image_id,
            price_hint=item_input.price_hint,
            name=item_input.name,
            image_url=item_input.image_url,
        )
        stored = self._store.create(user_id, item)
        logger.info(f"Added {sku} x{quantity} to cart of user {user_id}")
        return stored

    def update_quantity(self, user_id: str, item_id: str, quantity: int) -> CartItem:
        """
        Set a row's quantity.

        Raises:
            ValidationError: Quantity outside 1..10
            CartItemNotFoundError: No such row for this user
        """
        _check_quantity(quantity)
        updated = self._store.update_quantity(user_id, item_id, quantity)
        if updated is None:
            raise CartItemNotFoundError(item_id)
        logger.info(f"Cart row {item_id[:8]} quantity set to {quantity}")
        return updated

    def remove_item(self, user_id: str, item_id: str) -> None:
        """Raises CartItemNotFoundError if the row is missing or not the user's."""
        if not self._store.delete(user_id, item_id):
            raise CartItemNotFoundError(item_id)
        logger.info(f"Removed cart row {item_id[:8]}")

    def clear_cart(self, user_id: str) -> int:
        count = self._store.delete_all(user_id)
        logger.info(f"Cleared {count} row(s) from cart of user {user_id}")
        return count

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_cart(
        self,
        user_id: str,
        destination_country: Optional[str] = None,
        shipping_method: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> Cart:
        """
        The user's cart with freshly computed prices.

        An empty cart returns zero totals without contacting the provider.
        A pricing failure propagates; there is no fallback to stored prices.
        """
        country = destination_country or self.default_country
        method = shipping_method or self.default_shipping_method
        rows = self._store.list_by_user(user_id)

        if not rows:
            zero = Decimal("0.00")
            return Cart(
                lines=[],
                pricing=PricingResult(
                    subtotal=zero,
                    shipping=zero,
                    tax=zero,
                    total=zero,
                    currency=normalize_currency(currency),
                    shipping_method=method,
                ),
            )

        pricing = self._pricing.calculate_pricing(
            [row.to_pricing_item() for row in rows], country, method, currency
        )
        lines = [CartLine(item=row, unit_price=pricing.unit_prices[i]) for i, row in enumerate(rows)]
        return Cart(lines=lines, pricing=pricing)

    def validate_prices(
        self, user_id: str, destination_country: Optional[str] = None
    ) -> PriceValidationResult:
        """Report rows whose display price drifted more than 5 % from live pricing."""
        rows = self._store.list_by_user(user_id)
        if not rows:
            return PriceValidationResult()
        return self._pricing.validate_prices(
            [row.to_pricing_item() for row in rows],
            destination_country or self.default_country,
            self.default_shipping_method,
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _product_sku(item_input: CartItemInput) -> str:
        # Submitted SKUs may already carry their per-image suffix
        if item_input.sku and item_input.sku.strip():
            return item_input.sku.strip()
        if item_input.frame_size:
            return base_sku_for_frame(
                item_input.frame_size,
                item_input.frame_style,
                item_input.frame_material or "wood",
            )
        raise ValidationError(
            "A product SKU or frame size is required",
            {"sku": "required when frameSize is not given"},
        )

    def _check_catalog(self, base_sku: str) -> None:
        if self._catalog is None:
            return
        if self._catalog.get_product(base_sku) is None:
            raise ValidationError(f"Unknown product SKU: {base_sku}", {"sku": "not in catalog"})

    def _find_same_product(self, user_id: str, sku: str, quote_key: str) -> Optional[CartItem]:
        for row in self._store.list_by_user(user_id):
            if row.sku == sku and derive_quote_line(row.sku, row.configuration).quote_key == quote_key:
                return row
        return None
