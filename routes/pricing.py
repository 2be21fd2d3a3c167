"""
Pricing route.

POST /api/v2/checkout/pricing
    {"items": [{"sku", "quantity", "attributes"|"frameConfig", "price"?}],
     "destinationCountry": "US", "shippingMethod"?: "Standard", "currency"?: "EUR"}
    -> {"success": true, "pricing": {...}}
"""

from flask import Blueprint, current_app

from routes.request_parsing import json_body, optional_text, parse_pricing_items, sanitize_text
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

pricing_bp = Blueprint("pricing", __name__)


@pricing_bp.route("/api/v2/checkout/pricing", methods=["POST"])
def calculate_pricing():
    """Authoritative pricing for a list of items."""
    pricing_service = current_app.config.get("PRICING_SERVICE")
    if not pricing_service:
        return {"error": "Pricing service unavailable", "details": {}}, 503

    payload = json_body()
    items = parse_pricing_items(payload.get("items"))
    country = sanitize_text(
        payload.get("destinationCountry") or payload.get("country")
        or current_app.config.get("DEFAULT_DESTINATION_COUNTRY", "US"),
        8,
    )
    method = sanitize_text(
        payload.get("shippingMethod") or current_app.config.get("DEFAULT_SHIPPING_METHOD", "Standard"),
        32,
    )
    currency = optional_text(payload.get("currency"), 8)

    result = pricing_service.calculate_pricing(items, country, method, currency)
    return {"success": True, "pricing": result.to_dict()}
