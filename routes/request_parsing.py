"""
Request parsing helpers shared by the checkout blueprints.

Turns JSON bodies into model objects. Free text is sanitized with bleach;
structural problems raise ValidationError with the offending field path so
the client can point at it.
"""

import html
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import bleach
from flask import current_app, request

from core.exceptions import AuthenticationRequiredError, ValidationError
from models.cart import CartItemInput
from models.pricing import PricingItem, ShippingAddress


MAX_TEXT_LENGTH = 200
MAX_ITEMS = 50


def sanitize_text(text: Any, max_length: Optional[int] = MAX_TEXT_LENGTH) -> str:
    """
    Sanitize user input text.

    Tags are stripped; entities bleach escapes are decoded again because
    these values go to the provider and into JSON, never into HTML
    (``"Black & White"`` must stay one configuration).
    """
    if text is None:
        return ""
    text = str(text).strip()
    text = html.unescape(bleach.clean(text, tags=[], strip=True))
    if max_length and len(text) > max_length:
        text = text[:max_length]
    return text


def optional_text(value: Any, max_length: Optional[int] = MAX_TEXT_LENGTH) -> Optional[str]:
    text = sanitize_text(value, max_length)
    return text or None


def json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object", {"body": "expected an object"})
    return payload


def current_user_id() -> str:
    """User id forwarded by the authenticating gateway."""
    header = current_app.config.get("USER_ID_HEADER", "X-User-Id")
    user_id = sanitize_text(request.headers.get(header, ""), 128)
    if not user_id:
        raise AuthenticationRequiredError(header)
    return user_id


def parse_quantity(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError("Invalid quantity", {field: "must be an integer"})
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError("Invalid quantity", {field: "must be an integer"})


def parse_price(value: Any, field: str) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("Invalid price", {field: "must be a number"})
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError("Invalid price", {field: "must be a number"})
    if not price.is_finite() or price < 0:
        raise ValidationError("Invalid price", {field: "must be a non-negative number"})
    return price


def parse_attributes(raw: Any, field: str) -> Dict[str, Any]:
    """Attribute map with sanitized keys and string values."""
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("Invalid configuration", {field: "must be an object"})
    attributes: Dict[str, Any] = {}
    for key, value in raw.items():
        clean_key = sanitize_text(key, 64)
        if not clean_key:
            continue
        if isinstance(value, (list, tuple)):
            attributes[clean_key] = [sanitize_text(v) for v in value if v is not None]
        elif isinstance(value, (str, int, float)) or value is None:
            attributes[clean_key] = sanitize_text(value) if isinstance(value, str) else value
        else:
            raise ValidationError("Invalid configuration", {f"{field}.{clean_key}": "unsupported value"})
    return attributes


def parse_pricing_items(raw: Any) -> List[PricingItem]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("At least one item is required", {"items": "must be a non-empty list"})
    if len(raw) > MAX_ITEMS:
        raise ValidationError("Too many items", {"items": f"at most {MAX_ITEMS} items"})

    items = []
    for index, entry in enumerate(raw):
        field = f"items[{index}]"
        if not isinstance(entry, dict):
            raise ValidationError("Invalid item", {field: "must be an object"})
        attributes = entry.get("attributes", entry.get("frameConfig", entry.get("configuration")))
        items.append(PricingItem(
            sku=sanitize_text(entry.get("sku"), 100),
            quantity=parse_quantity(entry.get("quantity", 1), f"{field}.quantity"),
            attributes=parse_attributes(attributes, f"{field}.attributes"),
            price_hint=parse_price(entry.get("price"), f"{field}.price"),
        ))
    return items


def parse_address(raw: Any) -> ShippingAddress:
    if not isinstance(raw, dict):
        raise ValidationError("Shipping address is required", {"address": "must be an object"})
    return ShippingAddress.from_dict({key: sanitize_text(value) for key, value in raw.items()})


def parse_cart_item(payload: Dict[str, Any]) -> CartItemInput:
    return CartItemInput(
        image_id=optional_text(payload.get("imageId"), 64),
        quantity=parse_quantity(payload.get("quantity", 1), "quantity"),
        sku=optional_text(payload.get("sku"), 100),
        frame_size=optional_text(payload.get("frameSize"), 32),
        frame_style=optional_text(payload.get("frameStyle"), 32),
        frame_material=optional_text(payload.get("frameMaterial"), 32),
        configuration=parse_attributes(
            payload.get("configuration", payload.get("frameConfig")), "configuration"
        ),
        price_hint=parse_price(payload.get("price"), "price"),
        name=sanitize_text(payload.get("name")),
        # Not bleached: escaping would corrupt query strings
        image_url=str(payload.get("imageUrl") or "").strip()[:2048],
    )
