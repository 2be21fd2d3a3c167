"""
Quote line derivation shared by pricing and shipping.

Both services must send the provider the same base SKU and the same
attributes for a given cart line, otherwise an item could be priced as one
configuration and shipped as another. They therefore both call
derive_quote_line() and never build provider attributes themselves.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence

from models.configuration import build_configuration
from models.pricing import DerivedLine, PricingItem, QuoteLineGroup, QuoteRequestLine
from modules.attribute_normalizer import normalize_attributes
from modules.quote_key import generate_quote_key
from modules.sku_resolver import extract_base_sku


def derive_quote_line(sku: str, attributes: Mapping[str, Any]) -> DerivedLine:
    """
    Derive base SKU, category, provider attributes and quote key.

    Steps: strip the per-image suffix, normalize the raw attributes, keep
    the ones that apply to the product category (adding required
    defaults), then normalize the result again for the quote key.
    """
    base_sku = extract_base_sku(sku)
    configuration = build_configuration(base_sku, normalize_attributes(attributes))
    canonical = normalize_attributes(configuration.to_attributes())
    return DerivedLine(
        base_sku=base_sku,
        category=configuration.category,
        attributes=canonical,
        quote_key=generate_quote_key(base_sku, canonical),
    )


def group_lines(items: Sequence[PricingItem]) -> Dict[str, QuoteLineGroup]:
    """
    Group cart lines by quote key, preserving first-seen order.

    Lines with identical configurations collapse into one group whose
    ``copies`` is their summed quantity.
    """
    groups: Dict[str, QuoteLineGroup] = {}
    for index, item in enumerate(items):
        line = derive_quote_line(item.sku, item.attributes)
        group = groups.get(line.quote_key)
        if group is None:
            group = groups[line.quote_key] = QuoteLineGroup(line=line)
        group.indices.append(index)
        group.copies += item.quantity
    return groups


def request_lines(groups: Sequence[QuoteLineGroup], unit_copies: bool = False) -> List[QuoteRequestLine]:
    """
    Provider request items for the given groups.

    ``unit_copies`` asks for one copy per configuration (unit cost lookup);
    otherwise each group is requested with its aggregate copies so
    shipping reflects the real parcel.
    """
    return [
        QuoteRequestLine(
            sku=group.line.base_sku,
            copies=1 if unit_copies else group.copies,
            attributes=group.line.attributes.as_dict(),
        )
        for group in groups
    ]
