"""
Flask route blueprints for the Art Framer checkout engine.

- pricing: POST /api/v2/checkout/pricing
- shipping: POST /api/v2/checkout/shipping
- cart: /api/v2/checkout/cart CRUD
- api: /health

Each blueprint is registered with the Flask app in create_app().
"""

from .pricing import pricing_bp
from .shipping import shipping_bp
from .cart import cart_bp
from .api import api_bp

__all__ = [
    "pricing_bp",
    "shipping_bp",
    "cart_bp",
    "api_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(pricing_bp)
    app.register_blueprint(shipping_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(api_bp)
