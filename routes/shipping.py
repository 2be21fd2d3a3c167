"""
Shipping route.

POST /api/v2/checkout/shipping
    {"items": [...], "address": {"country", "city", "postalCode", ...}, "method"?: "Express"}
    -> all options with a recommendation, or the single requested option
"""

from flask import Blueprint, current_app

from routes.request_parsing import json_body, optional_text, parse_address, parse_pricing_items
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

shipping_bp = Blueprint("shipping", __name__)


@shipping_bp.route("/api/v2/checkout/shipping", methods=["POST"])
def calculate_shipping():
    shipping_service = current_app.config.get("SHIPPING_SERVICE")
    if not shipping_service:
        return {"error": "Shipping service unavailable", "details": {}}, 503

    payload = json_body()
    items = parse_pricing_items(payload.get("items"))
    address = parse_address(payload.get("address"))
    method = optional_text(payload.get("method") or payload.get("shippingMethod"), 32)

    if method:
        option = shipping_service.calculate_shipping(items, address, method)
        return {"success": True, "option": option.to_dict(), "addressValidated": True}

    options = shipping_service.calculate_shipping(items, address)
    recommended = shipping_service.get_recommended_method(options)
    return {
        "success": True,
        "options": [option.to_dict() for option in options],
        "recommended": recommended.method if recommended else None,
        "addressValidated": True,
    }
