"""
Configuration for the Art Framer checkout engine.

The fulfillment provider API key is required outside of tests.
The application fails fast at startup if it is missing.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent

PRODIGI_BASE_URLS = {
    "sandbox": "https://api.sandbox.prodigi.com/v4.0",
    "production": "https://api.prodigi.com/v4.0",
}


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"
    MAX_CONTENT_LENGTH = 1 * 1024 * 1024  # JSON bodies only

    # ==========================================================================
    # Fulfillment provider (Prodigi)
    # ==========================================================================
    # PRODIGI_ENVIRONMENT selects the base URL: "sandbox" or "production".
    # Requests that fail on the network, time out, or come back 408/429/5xx
    # are retried PRODIGI_MAX_RETRIES times with exponential backoff:
    #   delay = PRODIGI_RETRY_BASE_DELAY * 2 ** (attempt - 1)
    # ==========================================================================
    PRODIGI_API_KEY = os.environ.get("PRODIGI_API_KEY", "")
    PRODIGI_ENVIRONMENT = os.environ.get("PRODIGI_ENVIRONMENT", "sandbox")
    PRODIGI_BASE_URL = os.environ.get(
        "PRODIGI_BASE_URL",
        PRODIGI_BASE_URLS.get(PRODIGI_ENVIRONMENT, PRODIGI_BASE_URLS["sandbox"])
    )
    PRODIGI_TIMEOUT_SECONDS = float(os.environ.get("PRODIGI_TIMEOUT_SECONDS", "30"))
    PRODIGI_MAX_RETRIES = int(os.environ.get("PRODIGI_MAX_RETRIES", "3"))
    PRODIGI_RETRY_BASE_DELAY = float(os.environ.get("PRODIGI_RETRY_BASE_DELAY", "1.0"))

    # Unit costs per (destination, quote key)
    QUOTE_CACHE_TTL_SECONDS = float(os.environ.get("QUOTE_CACHE_TTL_SECONDS", "300"))

    # ==========================================================================
    # Currency rates
    # ==========================================================================
    # Rates are refreshed after CURRENCY_REFRESH_SECONDS. If a refresh fails
    # the last table keeps being served until it is older than
    # CURRENCY_MAX_STALENESS_SECONDS; after that conversions fail.
    # ==========================================================================
    CURRENCY_RATES_URL = os.environ.get(
        "CURRENCY_RATES_URL", "https://api.exchangerate-api.com/v4/latest/USD"
    )
    CURRENCY_TIMEOUT_SECONDS = float(os.environ.get("CURRENCY_TIMEOUT_SECONDS", "5"))
    CURRENCY_REFRESH_SECONDS = float(os.environ.get("CURRENCY_REFRESH_SECONDS", "900"))
    CURRENCY_MAX_STALENESS_SECONDS = float(
        os.environ.get("CURRENCY_MAX_STALENESS_SECONDS", "3600")
    )

    # Checkout defaults
    DEFAULT_DESTINATION_COUNTRY = os.environ.get("DEFAULT_DESTINATION_COUNTRY", "US")
    DEFAULT_SHIPPING_METHOD = os.environ.get("DEFAULT_SHIPPING_METHOD", "Standard")

    # Authentication happens upstream; the gateway forwards the user id here
    USER_ID_HEADER = os.environ.get("USER_ID_HEADER", "X-User-Id")


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    ENVIRONMENT = "production"
    PRODIGI_ENVIRONMENT = "production"
    PRODIGI_BASE_URL = os.environ.get("PRODIGI_BASE_URL", PRODIGI_BASE_URLS["production"])


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    ENVIRONMENT = "testing"
    PRODIGI_API_KEY = "test-api-key"
    PRODIGI_MAX_RETRIES = 0
    PRODIGI_RETRY_BASE_DELAY = 0.0
