"""
Attribute normalization.

Maps any attribute dictionary (storefront form values, stored cart
configuration, provider catalog output) onto one canonical form so that
equivalent configurations produce identical quote keys and identical
provider requests.

Rules:
    - Keys are looked up in a fixed synonym table after trimming,
      case-folding and removing "_", "-" and spaces.
    - Values become trimmed, case-folded strings. The provider treats
      every attribute value case-insensitively.
    - Unknown keys are kept (trimmed, case-folded), never dropped.
    - None, empty and whitespace-only values are omitted.
    - The result is sorted by key.

The functions here are pure and never raise.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from models.attributes import CanonicalAttributes


# Compact spelling -> canonical key
SYNONYMS: Dict[str, str] = {
    "size": "size",
    "printsize": "size",

    "color": "color",
    "colour": "color",
    "framecolor": "color",
    "framecolour": "color",

    "mount": "mount",
    "mat": "mount",

    "mountcolor": "mountColor",
    "mountcolour": "mountColor",
    "matcolor": "mountColor",
    "matcolour": "mountColor",

    "glaze": "glaze",
    "glazing": "glaze",

    "papertype": "paperType",
    "paper": "paperType",

    "finish": "finish",

    "wrap": "wrap",
    "canvaswrap": "wrap",

    "edge": "edge",
    "edgedepth": "edge",

    "frame": "frame",
    "framestyle": "frame",

    "style": "style",

    "substrateweight": "substrateWeight",
}

AttributeInput = Union[Mapping[str, Any], CanonicalAttributes, None]


def _compact(name: str) -> str:
    compact = name.strip().casefold()
    for ch in ("_", "-", " "):
        compact = compact.replace(ch, "")
    return compact


def canonical_key(name: Any) -> str:
    """
    Canonical spelling of an attribute key.

    Unknown keys come back trimmed and case-folded; an empty string means
    the key is unusable.
    """
    text = str(name)
    return SYNONYMS.get(_compact(text), text.strip().casefold())


def normalize_value(value: Any) -> Optional[str]:
    """
    Canonical string form of an attribute value, or None to omit it.

    Sequences (as returned by the provider catalog) contribute their first
    usable element.
    """
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        for element in value:
            normalized = normalize_value(element)
            if normalized is not None:
                return normalized
        return None
    if isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value)
    text = text.strip().casefold()
    return text or None


def _items(attributes: AttributeInput) -> Iterable[Tuple[Any, Any]]:
    if attributes is None:
        return ()
    if isinstance(attributes, CanonicalAttributes):
        return attributes.pairs
    return attributes.items()


def normalize_attributes(attributes: AttributeInput) -> CanonicalAttributes:
    """
    Normalize an attribute mapping into CanonicalAttributes.

    When several raw keys land on the same canonical key, the raw key that
    is already spelled canonically wins; otherwise the lexicographically
    smallest raw key wins. The choice never depends on input order.

    Example:
        >>> normalize_attributes({"frameColour": "Black ", "Mount": "2.4mm"}).as_dict()
        {'color': 'black', 'mount': '2.4mm'}
    """
    candidates: Dict[str, List[Tuple[int, str, str]]] = {}

    for raw_key, raw_value in _items(attributes):
        key = canonical_key(raw_key)
        if not key:
            continue
        value = normalize_value(raw_value)
        if value is None:
            continue
        raw = str(raw_key).strip()
        rank = 0 if raw == key else 1
        candidates.setdefault(key, []).append((rank, raw, value))

    pairs = tuple(
        (key, min(options)[2])
        for key, options in candidates.items()
    )
    return CanonicalAttributes(pairs)
