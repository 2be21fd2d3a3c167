"""
Art Framer checkout engine - Flask Application Entry Point.

This is a slim app factory that:
1. Loads configuration and logging
2. Builds the fulfillment client and currency provider (fail-fast on missing credentials)
3. Wires the shipping, pricing and cart services
4. Registers route blueprints
5. Sets up JSON error handlers

ARCHITECTURE:
    Request threads
    └── CartService -> PricingService -> ShippingService -> ProdigiClient (httpx)
                                      -> QuoteCache + SingleFlight
                                      -> CurrencyRateProvider (httpx)

Shared collaborators live in app.config and are thread-safe.
"""

from __future__ import annotations

import atexit
import logging
import os
from typing import Optional

from flask import Flask
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from logging_config import setup_logging, get_logger
from core.cart_store import CartStore, InMemoryCartStore
from core.currency import CurrencyRateProvider
from core.exceptions import ArtFramerError, ConfigurationError
from core.fulfillment_client import ProdigiClient, ProductCatalog, QuoteProvider
from core.quote_cache import QuoteCache, SingleFlight
from services.shipping_service import ShippingService
from services.pricing_service import PricingService
from services.cart_service import CartService
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def create_app(
    config_object: str = "config.Config",
    quote_provider: Optional[QuoteProvider] = None,
    currency_provider: Optional[CurrencyRateProvider] = None,
    cart_store: Optional[CartStore] = None,
    catalog: Optional[ProductCatalog] = None,
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    FAIL-FAST: Without PRODIGI_API_KEY (and no injected quote provider)
    the app will not start.

    Args:
        config_object: Import path of the Config class to load
        quote_provider: Replaces the Prodigi client (tests)
        currency_provider: Replaces the live rate provider (tests)
        cart_store: Replaces the in-memory cart store
        catalog: Product catalog used to check SKUs when adding to the cart

    Returns:
        Configured Flask application

    Raises:
        ConfigurationError: If PRODIGI_API_KEY is missing
    """
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        app_name="art_framer",
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting Art Framer checkout in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # CORE INITIALIZATION (FAIL-FAST)
    # =========================================================================

    prodigi_client = None
    if quote_provider is None:
        api_key = app.config.get("PRODIGI_API_KEY")
        if not api_key:
            error = ConfigurationError("PRODIGI_API_KEY")
            logger.error(f"FATAL: Cannot start application - {error}")
            raise error
        prodigi_client = ProdigiClient(
            api_key=api_key,
            base_url=app.config["PRODIGI_BASE_URL"],
            timeout_seconds=app.config["PRODIGI_TIMEOUT_SECONDS"],
            max_retries=app.config["PRODIGI_MAX_RETRIES"],
            retry_base_delay=app.config["PRODIGI_RETRY_BASE_DELAY"],
        )
        quote_provider = prodigi_client
        if catalog is None:
            catalog = prodigi_client
        logger.info(f"Fulfillment client ready: {app.config['PRODIGI_BASE_URL']}")

    if currency_provider is None:
        currency_provider = CurrencyRateProvider(
            rates_url=app.config["CURRENCY_RATES_URL"],
            timeout_seconds=app.config["CURRENCY_TIMEOUT_SECONDS"],
            refresh_after_seconds=app.config["CURRENCY_REFRESH_SECONDS"],
            max_staleness_seconds=app.config["CURRENCY_MAX_STALENESS_SECONDS"],
        )

    quote_cache = QuoteCache(ttl_seconds=app.config["QUOTE_CACHE_TTL_SECONDS"])

    app.config["QUOTE_PROVIDER"] = quote_provider
    app.config["CURRENCY_PROVIDER"] = currency_provider
    app.config["QUOTE_CACHE"] = quote_cache

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    shipping_service = ShippingService(quote_provider)
    pricing_service = PricingService(
        quote_provider,
        shipping_service,
        currency_provider=currency_provider,
        quote_cache=quote_cache,
        single_flight=SingleFlight(),
    )
    cart_service = CartService(
        cart_store if cart_store is not None else InMemoryCartStore(),
        pricing_service,
        catalog=catalog,
        default_country=app.config["DEFAULT_DESTINATION_COUNTRY"],
        default_shipping_method=app.config["DEFAULT_SHIPPING_METHOD"],
    )
    app.config["SHIPPING_SERVICE"] = shipping_service
    app.config["PRICING_SERVICE"] = pricing_service
    app.config["CART_SERVICE"] = cart_service
    logger.info("Checkout services initialized")

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Close HTTP connection pools on shutdown."""
        logger.info("Shutting down...")
        if prodigi_client is not None:
            prodigi_client.close()
        currency_provider.close()
        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(ArtFramerError)
    def handle_app_error(e: ArtFramerError):
        if e.status_code >= 500:
            logger.error(f"{type(e).__name__}: {e}")
        else:
            logger.info(f"{type(e).__name__}: {e}")
        return e.to_dict(), e.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(e):
        max_kb = app.config.get("MAX_CONTENT_LENGTH", 1024 * 1024) / 1024
        return {"error": f"Request too large. Maximum body size is {max_kb:.0f} KB.", "details": {}}, 413

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return {"error": e.description or e.name, "details": {}}, e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        logger.error(f"Unhandled error: {e}", exc_info=True)
        return {"error": "An unexpected error occurred", "details": {}}, 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode)
