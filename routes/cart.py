"""
Cart routes.

All endpoints act on the cart of the user named by the USER_ID_HEADER
header (set by the authenticating gateway).

    GET    /api/v2/checkout/cart                 cart priced fresh (?country=&method=&currency=)
    POST   /api/v2/checkout/cart                 add an item
    DELETE /api/v2/checkout/cart                 clear the cart
    PATCH  /api/v2/checkout/cart/<item_id>       set quantity
    DELETE /api/v2/checkout/cart/<item_id>       remove an item
    GET    /api/v2/checkout/cart/validate        display prices vs live prices
"""

from flask import Blueprint, current_app, request

from routes.request_parsing import (
    current_user_id,
    json_body,
    optional_text,
    parse_cart_item,
    parse_quantity,
    sanitize_text,
)
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

cart_bp = Blueprint("cart", __name__, url_prefix="/api/v2/checkout/cart")


def _cart_service():
    return current_app.config.get("CART_SERVICE")


def _unavailable():
    return {"error": "Cart service unavailable", "details": {}}, 503


@cart_bp.route("", methods=["GET"])
def get_cart():
    cart_service = _cart_service()
    if not cart_service:
        return _unavailable()

    user_id = current_user_id()
    cart = cart_service.get_cart(
        user_id,
        destination_country=optional_text(request.args.get("country"), 8),
        shipping_method=optional_text(request.args.get("method"), 32),
        currency=optional_text(request.args.get("currency"), 8),
    )
    return {"success": True, "cart": cart.to_dict()}


@cart_bp.route("", methods=["POST"])
def add_item():
    cart_service = _cart_service()
    if not cart_service:
        return _unavailable()

    user_id = current_user_id()
    item = cart_service.add_item(user_id, parse_cart_item(json_body()))
    return {"success": True, "item": item.to_dict()}, 201


@cart_bp.route("", methods=["DELETE"])
def clear_cart():
    cart_service = _cart_service()
    if not cart_service:
        return _unavailable()

    removed = cart_service.clear_cart(current_user_id())
    return {"success": True, "removed": removed}


@cart_bp.route("/<item_id>", methods=["PATCH"])
def update_item(item_id: str):
    cart_service = _cart_service()
    if not cart_service:
        return _unavailable()

    user_id = current_user_id()
    payload = json_body()
    quantity = parse_quantity(payload.get("quantity"), "quantity")
    item = cart_service.update_quantity(user_id, sanitize_text(item_id, 64), quantity)
    return {"success": True, "item": item.to_dict()}


@cart_bp.route("/<item_id>", methods=["DELETE"])
def remove_item(item_id: str):
    cart_service = _cart_service()
    if not cart_service:
        return _unavailable()

    cart_service.remove_item(current_user_id(), sanitize_text(item_id, 64))
    return {"success": True}


@cart_bp.route("/validate", methods=["GET"])
def validate_prices():
    cart_service = _cart_service()
    if not cart_service:
        return _unavailable()

    result = cart_service.validate_prices(
        current_user_id(), optional_text(request.args.get("country"), 8)
    )
    return {"success": True, "validation": result.to_dict()}
