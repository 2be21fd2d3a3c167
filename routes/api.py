"""
Operational API routes.

Handles:
- /health - Health check with provider, cache and currency status
"""

from flask import Blueprint, current_app

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    # Fulfillment provider
    if current_app.config.get("QUOTE_PROVIDER") is not None:
        health_status["checks"]["fulfillment_provider"] = "configured"
    else:
        health_status["checks"]["fulfillment_provider"] = "not_configured"
        health_status["status"] = "degraded"

    # Quote cache
    quote_cache = current_app.config.get("QUOTE_CACHE")
    if quote_cache is not None:
        health_status["checks"]["quote_cache"] = quote_cache.stats()

    # Currency rates: stale rates degrade conversions only
    currency_provider = current_app.config.get("CURRENCY_PROVIDER")
    if currency_provider is not None:
        currency_status = currency_provider.cache_status()
        health_status["checks"]["currency"] = currency_status
        if currency_status.get("last_error"):
            health_status["status"] = "degraded"

    # Services
    for name, key in (
        ("pricing_service", "PRICING_SERVICE"),
        ("shipping_service", "SHIPPING_SERVICE"),
        ("cart_service", "CART_SERVICE"),
    ):
        if current_app.config.get(key) is not None:
            health_status["checks"][name] = "ok"
        else:
            health_status["checks"][name] = "not_available"
            health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
