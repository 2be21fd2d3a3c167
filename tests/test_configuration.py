"""
Unit tests for product configurations and shared quote-line derivation.
"""

import pytest

from models.configuration import (
    AcrylicConfiguration,
    CanvasConfiguration,
    FramedPrintConfiguration,
    MetalConfiguration,
    OtherConfiguration,
    ProductCategory,
    build_configuration,
    detect_category,
)
from models.pricing import PricingItem
from modules.attribute_normalizer import normalize_attributes
from modules.quote_lines import derive_quote_line, group_lines, request_lines


class TestDetectCategory:

    @pytest.mark.parametrize("sku,category", [
        ("GLOBAL-CAN-10x10", ProductCategory.CANVAS),
        ("GLOBAL-FRA-CAN-30X40", ProductCategory.FRAMED_CANVAS),
        ("GLOBAL-CFPM-16X20", ProductCategory.FRAMED_PRINT),
        ("GLOBAL-FAP-16X24", ProductCategory.FRAMED_PRINT),
        ("GLOBAL-BOX-12X12", ProductCategory.FRAMED_PRINT),
        ("GLOBAL-ACRY-8X10", ProductCategory.ACRYLIC),
        ("GLOBAL-MET-8X10", ProductCategory.METAL),
        ("GLOBAL-PAP-A4", ProductCategory.PAPER_PRINT),
        ("GLOBAL-MUG-11OZ", ProductCategory.OTHER),
    ])
    def test_categories(self, sku, category):
        assert detect_category(sku) == category


class TestBuildConfiguration:

    def test_canvas_drops_inapplicable_attributes(self):
        attrs = normalize_attributes({
            "wrap": "Black", "edge": "38mm", "glaze": "none", "mount": "none", "mountColor": "white",
        })

        config = build_configuration("GLOBAL-CAN-10x10", attrs)

        assert isinstance(config, CanvasConfiguration)
        assert config.to_attributes() == {"wrap": "black", "edge": "38mm"}

    def test_canvas_wrap_defaults(self):
        config = build_configuration("GLOBAL-CAN-10x10", normalize_attributes({}))

        assert config.to_attributes() == {"wrap": "imagewrap"}

    def test_framed_print_mount_color_needs_mount(self):
        without_mount = build_configuration(
            "GLOBAL-CFPM-16X20", normalize_attributes({"color": "black", "mountColor": "white"})
        )
        with_mount = build_configuration(
            "GLOBAL-CFPM-16X20",
            normalize_attributes({"color": "black", "mount": "2.4mm", "mountColor": "white"}),
        )

        assert isinstance(with_mount, FramedPrintConfiguration)
        assert "mountColor" not in without_mount.to_attributes()
        assert with_mount.to_attributes() == {"color": "black", "mount": "2.4mm", "mountColor": "white"}

    def test_framed_print_glaze_alias(self):
        config = build_configuration("GLOBAL-CFPM-16X20", normalize_attributes({"glaze": "Acrylic"}))

        assert config.to_attributes()["glaze"] == "acrylic / perspex"

    def test_frame_style_that_is_a_color_is_dropped(self):
        config = build_configuration(
            "GLOBAL-CFPM-16X20", normalize_attributes({"frameStyle": "Dark Grey"})
        )

        assert "frame" not in config.to_attributes()

    def test_frame_style_kept(self):
        config = build_configuration("GLOBAL-CFPM-16X20", normalize_attributes({"frame": "Classic"}))

        assert config.to_attributes()["frame"] == "classic"

    def test_metal_and_acrylic_finish_default(self):
        metal = build_configuration("GLOBAL-MET-8X10", normalize_attributes({"color": "black"}))
        acrylic = build_configuration("GLOBAL-ACRY-8X10", normalize_attributes({"finish": "Satin"}))

        assert isinstance(metal, MetalConfiguration)
        assert metal.to_attributes() == {"finish": "high gloss"}
        assert isinstance(acrylic, AcrylicConfiguration)
        assert acrylic.to_attributes() == {"finish": "satin"}

    def test_other_forwards_everything(self):
        config = build_configuration("GLOBAL-MUG-11OZ", normalize_attributes({"Handle": "Blue"}))

        assert isinstance(config, OtherConfiguration)
        assert config.to_attributes() == {"handle": "blue"}

    def test_category_discriminator(self):
        config = build_configuration("GLOBAL-FRA-CAN-30X40", normalize_attributes({"color": "natural"}))

        assert config.category == ProductCategory.FRAMED_CANVAS
        assert config.to_attributes() == {"color": "natural", "wrap": "imagewrap"}


class TestQuoteLines:

    def test_derive_strips_suffix(self):
        line = derive_quote_line("GLOBAL-CFPM-16X20-3f9a2c1e", {"frameColour": "Black"})

        assert line.base_sku == "GLOBAL-CFPM-16X20"
        assert line.category == ProductCategory.FRAMED_PRINT
        assert line.attributes.as_dict() == {"color": "black"}

    def test_same_config_different_images_share_key(self):
        first = derive_quote_line("GLOBAL-CFPM-16X20-3f9a2c1e", {"color": "Black"})
        second = derive_quote_line("GLOBAL-CFPM-16X20-0d0e0f10", {"frameColor": "black"})

        assert first.quote_key == second.quote_key

    def test_inapplicable_attributes_do_not_split_keys(self):
        first = derive_quote_line("GLOBAL-CAN-10x10", {"wrap": "Black", "glaze": "none"})
        second = derive_quote_line("GLOBAL-CAN-10x10", {"wrap": "black"})

        assert first.quote_key == second.quote_key

    def test_group_lines_sums_copies(self):
        items = [
            PricingItem("GLOBAL-CFPM-16X20-3f9a2c1e", 2, {"color": "black"}),
            PricingItem("GLOBAL-CAN-10x10", 1, {"wrap": "white"}),
            PricingItem("GLOBAL-CFPM-16X20-0d0e0f10", 3, {"frameColour": "Black"}),
        ]

        groups = group_lines(items)

        assert len(groups) == 2
        first = list(groups.values())[0]
        assert first.indices == [0, 2]
        assert first.copies == 5

    def test_request_lines(self):
        groups = list(group_lines([PricingItem("GLOBAL-CAN-10x10", 4, {"wrap": "Black"})]).values())

        aggregate = request_lines(groups)
        unit = request_lines(groups, unit_copies=True)

        assert aggregate[0].copies == 4
        assert unit[0].copies == 1
        assert aggregate[0].sku == "GLOBAL-CAN-10x10"
        assert aggregate[0].attributes == {"wrap": "black"}
