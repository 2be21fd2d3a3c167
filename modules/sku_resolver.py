"""
SKU resolution.

Cart rows carry a per-image unique SKU: the provider's base SKU plus an
8-character hex suffix derived from the image id
(``GLOBAL-CFPM-16X20`` + image ``3f9a2c1e-...`` -> ``GLOBAL-CFPM-16X20-3f9a2c1e``).
The suffix exists for storage uniqueness only; it is stripped again before
anything is sent to the provider.

resolve_sku() is idempotent whenever an image id is supplied: its output
already matches the unique pattern, so a second call returns it unchanged.
"""

from __future__ import annotations

import hashlib
import re
import string
import time
from typing import Any, Optional

from modules.attribute_normalizer import normalize_value
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

SUFFIX_LENGTH = 8

UNIQUE_SKU_PATTERN = re.compile(r"^.+-[a-f0-9]{8}$", re.IGNORECASE)
_SUFFIX_PATTERN = re.compile(r"-[a-f0-9]{8}$", re.IGNORECASE)

_HEX_DIGITS = frozenset(string.hexdigits.lower())

# ---------------------------------------------------------------------------
# Storefront frame choice -> provider base SKU
# ---------------------------------------------------------------------------
DEFAULT_FRAME_SKU = "GLOBAL-CFPM-16X20"

FRAME_SIZE_SKUS = {
    "small": "GLOBAL-CAN-10x10",
    "medium": "GLOBAL-CFPM-16X20",
    "large": "GLOBAL-FAP-16X24",
    "extralarge": "GLOBAL-FRA-CAN-30X40",
}

FRAME_STYLES = frozenset({"black", "white", "natural", "gold", "silver"})
FRAME_MATERIALS = frozenset({"wood"})


def is_unique_sku(sku: str) -> bool:
    """True when ``sku`` already ends in an 8-hex-character suffix."""
    return bool(sku) and bool(UNIQUE_SKU_PATTERN.match(sku.strip()))


def extract_base_sku(sku: str) -> str:
    """
    Strip the per-image suffix, if present.

    ``GLOBAL-CFPM-16X20-3f9a2c1e`` -> ``GLOBAL-CFPM-16X20``
    """
    sku = sku.strip()
    if is_unique_sku(sku):
        return _SUFFIX_PATTERN.sub("", sku)
    return sku


def _image_suffix(image_id: str) -> str:
    compact = image_id.strip().replace("-", "").lower()
    head = compact[:SUFFIX_LENGTH]
    if len(head) == SUFFIX_LENGTH and all(ch in _HEX_DIGITS for ch in head):
        return head
    # Non-hex ids still need a suffix that satisfies the unique pattern
    return hashlib.sha1(image_id.encode("utf-8")).hexdigest()[:SUFFIX_LENGTH]


def _timestamp_suffix() -> str:
    millis = int(time.time() * 1000)
    return f"{millis:x}"[-SUFFIX_LENGTH:].rjust(SUFFIX_LENGTH, "0")


def resolve_sku(base_sku: str, image_id: Optional[str] = None) -> str:
    """
    Produce the stored, per-image unique SKU.

    Args:
        base_sku: Provider base SKU, or an SKU that is already unique
        image_id: Id of the generated image the product is printed from

    Returns:
        ``base_sku`` unchanged if it already matches the unique pattern,
        otherwise ``base_sku`` + ``-`` + 8 hex characters.

    Raises:
        ValueError: If ``base_sku`` is empty
    """
    if not base_sku or not base_sku.strip():
        raise ValueError("base_sku must not be empty")

    base_sku = base_sku.strip()
    if is_unique_sku(base_sku):
        return base_sku

    if image_id and str(image_id).strip():
        return f"{base_sku}-{_image_suffix(str(image_id))}"

    # Only non-idempotent path: two calls produce different SKUs
    suffix = _timestamp_suffix()
    logger.warning(f"No image id for {base_sku}; using timestamp suffix {suffix}")
    return f"{base_sku}-{suffix}"


def base_sku_for_frame(size: Any, style: Any = None, material: Any = "wood") -> str:
    """
    Map a storefront frame choice (size, style, material) to a base SKU.

    Inputs are normalized like attribute values, so ``"Extra Large"``,
    ``"extra_large"`` and ``"extra-large"`` are the same size. Unknown
    combinations fall back to the medium framed print.
    """
    size_value = normalize_value(size) or ""
    size_key = size_value.replace("_", "").replace("-", "").replace(" ", "")
    style_value = normalize_value(style)
    material_value = normalize_value(material)

    sku = FRAME_SIZE_SKUS.get(size_key)
    if sku is None or style_value not in FRAME_STYLES or material_value not in FRAME_MATERIALS:
        logger.debug(
            f"No SKU for frame size={size_value!r} style={style_value!r} "
            f"material={material_value!r}; using {DEFAULT_FRAME_SKU}"
        )
        return DEFAULT_FRAME_SKU
    return sku
