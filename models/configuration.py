"""
Product configuration models.

Each product category accepts a different set of provider attributes:
a canvas has a wrap but no glaze, a framed print has a mount and glaze but
no wrap, metal and acrylic need a finish. Rather than one bag of optional
fields, every category gets its own frozen dataclass holding exactly the
attributes that apply to it, and ``FrameConfiguration`` is the union of
them, discriminated by ``category``.

Flow:
    raw attributes -> normalize_attributes() -> build_configuration(base_sku, ...)
    -> config.to_attributes() -> provider request / quote key
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from models.attributes import CanonicalAttributes


class ProductCategory(Enum):
    """Provider product family, detected from the base SKU."""

    CANVAS = "canvas"
    FRAMED_CANVAS = "framed-canvas"
    FRAMED_PRINT = "framed-print"
    ACRYLIC = "acrylic"
    METAL = "metal"
    PAPER_PRINT = "paper-print"
    OTHER = "other"


# Values meaning "not selected" for optional attributes
NONE_VALUES = frozenset({"none", "no", "false"})

FRAME_COLOR_NAMES = (
    "black", "white", "brown", "natural", "gold", "silver", "dark grey", "light grey",
)

DEFAULT_WRAP = "imagewrap"
DEFAULT_FINISH = "high gloss"

GLAZE_ALIASES = {"acrylic": "acrylic / perspex"}

_FRAMED_TOKENS = frozenset({"fra", "frame", "framed", "box", "fap", "cfp", "cfpm", "cfb"})
_CANVAS_TOKENS = frozenset({"can", "canvas", "slimcan"})
_ACRYLIC_TOKENS = frozenset({"acr", "acry", "acrylic"})
_METAL_TOKENS = frozenset({"met", "metal", "alu"})
_PAPER_TOKENS = frozenset({"pap", "paper", "poster", "fineart"})


def detect_category(base_sku: str) -> ProductCategory:
    """
    Detect the product family from the dash-separated SKU tokens.

    ``GLOBAL-FRA-CAN-30X40`` -> FRAMED_CANVAS, ``GLOBAL-CAN-10x10`` -> CANVAS,
    ``GLOBAL-CFPM-16X20`` -> FRAMED_PRINT.
    """
    tokens = set(base_sku.strip().lower().split("-"))

    is_framed = bool(tokens & _FRAMED_TOKENS)
    if tokens & _CANVAS_TOKENS:
        return ProductCategory.FRAMED_CANVAS if is_framed else ProductCategory.CANVAS
    if tokens & _ACRYLIC_TOKENS:
        return ProductCategory.ACRYLIC
    if tokens & _METAL_TOKENS:
        return ProductCategory.METAL
    if is_framed:
        return ProductCategory.FRAMED_PRINT
    if tokens & _PAPER_TOKENS:
        return ProductCategory.PAPER_PRINT
    return ProductCategory.OTHER


def _selected(value: Optional[str]) -> Optional[str]:
    if not value or value in NONE_VALUES:
        return None
    return value


def _looks_like_color(value: str) -> bool:
    return any(color in value for color in FRAME_COLOR_NAMES)


class _AttributeFields:
    """Mixin rendering dataclass fields as provider attributes."""

    # dataclass field name -> provider attribute key
    ATTRIBUTE_NAMES: Dict[str, str] = {}

    def to_attributes(self) -> Dict[str, str]:
        attributes = {}
        for f in fields(self):
            if f.name == "category":
                continue
            value = getattr(self, f.name)
            if value:
                attributes[self.ATTRIBUTE_NAMES.get(f.name, f.name)] = value
        return attributes


@dataclass(frozen=True)
class CanvasConfiguration(_AttributeFields):
    """Stretched canvas. Wrap is required by the provider."""

    category: ProductCategory = ProductCategory.CANVAS
    wrap: str = DEFAULT_WRAP
    edge: Optional[str] = None
    paper_type: Optional[str] = None

    ATTRIBUTE_NAMES = {"paper_type": "paperType"}


@dataclass(frozen=True)
class FramedCanvasConfiguration(_AttributeFields):
    """Canvas in a float frame."""

    category: ProductCategory = ProductCategory.FRAMED_CANVAS
    color: Optional[str] = None
    wrap: str = DEFAULT_WRAP
    edge: Optional[str] = None


@dataclass(frozen=True)
class FramedPrintConfiguration(_AttributeFields):
    """Paper print in a frame, optionally mounted and glazed."""

    category: ProductCategory = ProductCategory.FRAMED_PRINT
    color: Optional[str] = None
    mount: Optional[str] = None
    mount_color: Optional[str] = None
    glaze: Optional[str] = None
    paper_type: Optional[str] = None
    frame: Optional[str] = None

    ATTRIBUTE_NAMES = {"mount_color": "mountColor", "paper_type": "paperType"}


@dataclass(frozen=True)
class AcrylicConfiguration(_AttributeFields):
    category: ProductCategory = ProductCategory.ACRYLIC
    finish: str = DEFAULT_FINISH


@dataclass(frozen=True)
class MetalConfiguration(_AttributeFields):
    category: ProductCategory = ProductCategory.METAL
    finish: str = DEFAULT_FINISH


@dataclass(frozen=True)
class PaperPrintConfiguration(_AttributeFields):
    category: ProductCategory = ProductCategory.PAPER_PRINT
    paper_type: Optional[str] = None

    ATTRIBUTE_NAMES = {"paper_type": "paperType"}


@dataclass(frozen=True)
class OtherConfiguration:
    """Unrecognized product family; every normalized attribute is forwarded."""

    category: ProductCategory = ProductCategory.OTHER
    pairs: Tuple[Tuple[str, str], ...] = ()

    def to_attributes(self) -> Dict[str, str]:
        return dict(self.pairs)


FrameConfiguration = Union[
    CanvasConfiguration,
    FramedCanvasConfiguration,
    FramedPrintConfiguration,
    AcrylicConfiguration,
    MetalConfiguration,
    PaperPrintConfiguration,
    OtherConfiguration,
]


def build_configuration(base_sku: str, attributes: CanonicalAttributes) -> FrameConfiguration:
    """
    Build the typed configuration for a product from normalized attributes.

    Attributes that do not apply to the product's category are dropped
    here so the provider never sees them. Required attributes get their
    provider defaults (canvas wrap, metal/acrylic finish).

    Args:
        base_sku: Provider base SKU (suffix already stripped)
        attributes: Output of normalize_attributes()
    """
    category = detect_category(base_sku)
    get = attributes.get

    if category is ProductCategory.CANVAS:
        return CanvasConfiguration(
            wrap=_selected(get("wrap")) or DEFAULT_WRAP,
            edge=_selected(get("edge")),
            paper_type=_selected(get("paperType")),
        )

    if category is ProductCategory.FRAMED_CANVAS:
        return FramedCanvasConfiguration(
            color=_selected(get("color")),
            wrap=_selected(get("wrap")) or DEFAULT_WRAP,
            edge=_selected(get("edge")),
        )

    if category is ProductCategory.FRAMED_PRINT:
        mount = _selected(get("mount"))
        glaze = _selected(get("glaze"))
        frame = _selected(get("frame"))
        if frame and _looks_like_color(frame):
            frame = None
        return FramedPrintConfiguration(
            color=_selected(get("color")),
            mount=mount,
            mount_color=_selected(get("mountColor")) if mount else None,
            glaze=GLAZE_ALIASES.get(glaze, glaze) if glaze else None,
            paper_type=_selected(get("paperType")),
            frame=frame,
        )

    if category is ProductCategory.ACRYLIC:
        return AcrylicConfiguration(finish=_selected(get("finish")) or DEFAULT_FINISH)

    if category is ProductCategory.METAL:
        return MetalConfiguration(finish=_selected(get("finish")) or DEFAULT_FINISH)

    if category is ProductCategory.PAPER_PRINT:
        return PaperPrintConfiguration(paper_type=_selected(get("paperType")))

    return OtherConfiguration(pairs=attributes.pairs)
