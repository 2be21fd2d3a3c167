"""
Quote key generation.

A quote key identifies one priceable configuration: the base product
identifier plus its canonical attributes. It is used to deduplicate
provider requests, to key the quote cache, and to match provider results
back to cart lines. Quantity, currency and time are never part of it.
"""

from __future__ import annotations

from models.attributes import CanonicalAttributes
from modules.attribute_normalizer import AttributeInput, normalize_attributes


QUOTE_KEY_SEPARATOR = "::"


def generate_quote_key(base_id: str, attributes: AttributeInput = None) -> str:
    """
    Build the quote key for a base product and its attributes.

    Attributes are normalized first, so any two inputs that normalize to
    the same CanonicalAttributes yield the same key.

    Args:
        base_id: Provider base SKU (unique suffix already stripped)
        attributes: Raw mapping or CanonicalAttributes

    Returns:
        ``"<base id>::<serialized canonical pairs>"``
    """
    # Idempotent for CanonicalAttributes; guards hand-built instances
    canonical: CanonicalAttributes = normalize_attributes(attributes)
    return f"{str(base_id).strip().casefold()}{QUOTE_KEY_SEPARATOR}{canonical.serialize()}"
