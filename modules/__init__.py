"""Helper modules for the Art Framer checkout engine."""

__all__ = [
    "attribute_normalizer",
    "delivery",
    "quote_key",
    "quote_lines",
    "sku_resolver",
    "tax_policy",
]
