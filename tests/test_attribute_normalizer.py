"""
Unit tests for attribute normalization and the CanonicalAttributes value object.
"""

import itertools

import pytest

from models.attributes import CanonicalAttributes
from modules.attribute_normalizer import canonical_key, normalize_attributes, normalize_value


class TestCanonicalKey:
    """Synonym table lookups."""

    @pytest.mark.parametrize("raw", ["mountColor", "mountcolor", "mount_colour", "Mount Colour", "MOUNT-COLOR"])
    def test_mount_color_spellings(self, raw):
        assert canonical_key(raw) == "mountColor"

    @pytest.mark.parametrize("raw", ["color", "colour", "frameColor", "frameColour", " Frame_Colour "])
    def test_frame_color_spellings(self, raw):
        assert canonical_key(raw) == "color"

    def test_paper_type(self):
        assert canonical_key("paper_type") == "paperType"
        assert canonical_key("PaperType") == "paperType"

    def test_unknown_key_is_trimmed_and_case_folded(self):
        assert canonical_key("  CustomThing ") == "customthing"


class TestNormalizeValue:

    def test_trims_and_case_folds(self):
        assert normalize_value("  Black ") == "black"

    def test_empty_values_are_omitted(self):
        assert normalize_value(None) is None
        assert normalize_value("") is None
        assert normalize_value("   ") is None

    def test_list_takes_first_usable_element(self):
        assert normalize_value(["", "ImageWrap", "Black"]) == "imagewrap"

    def test_non_string_values(self):
        assert normalize_value(True) == "true"
        assert normalize_value(38) == "38"


class TestNormalizeAttributes:

    def test_equivalent_inputs_are_identical(self):
        first = normalize_attributes({"paperType": "Standard canvas (SC)"})
        second = normalize_attributes({"papertype": "standard canvas (sc)"})

        assert first == second
        assert hash(first) == hash(second)

    def test_mount_colour_example(self):
        first = normalize_attributes({"mountColor": "Snow White", "glaze": "Acrylic"})
        second = normalize_attributes({"mount_colour": "snow white", "GLAZE": "acrylic"})

        assert first == second
        assert first.as_dict() == {"glaze": "acrylic", "mountColor": "snow white"}

    def test_output_sorted_by_key(self):
        result = normalize_attributes({"wrap": "Black", "color": "White", "edge": "38mm"})

        assert [k for k, _ in result] == ["color", "edge", "wrap"]

    def test_unknown_keys_pass_through(self):
        result = normalize_attributes({"Orientation": " Portrait "})

        assert result.as_dict() == {"orientation": "portrait"}

    def test_empty_values_dropped(self):
        result = normalize_attributes({"color": "black", "mount": "", "glaze": None, "wrap": "  "})

        assert result.as_dict() == {"color": "black"}

    def test_none_input(self):
        assert normalize_attributes(None) == CanonicalAttributes()

    def test_idempotent(self):
        raw = {"frameColour": "Black", "Mount": "2.4mm", "mount_colour": "Off White", "extra": "X"}
        once = normalize_attributes(raw)

        assert normalize_attributes(once) == once
        assert normalize_attributes(once.as_dict()) == once

    def test_synonym_collision_independent_of_order(self):
        entries = [("frameColour", "White"), ("color", "Black"), ("colour", "Gold")]

        results = {
            normalize_attributes(dict(order))
            for order in itertools.permutations(entries)
        }

        assert len(results) == 1
        # Canonically spelled key wins
        assert results.pop().get("color") == "black"

    def test_collision_ignores_empty_candidate(self):
        result = normalize_attributes({"color": "", "frameColour": "Natural"})

        assert result.get("color") == "natural"


class TestCanonicalAttributes:

    def test_constructor_sorts_pairs(self):
        attrs = CanonicalAttributes((("wrap", "black"), ("color", "white")))

        assert attrs.pairs == (("color", "white"), ("wrap", "black"))

    def test_serialize_is_unambiguous(self):
        a = CanonicalAttributes((("a", "1,b:2"),))
        b = CanonicalAttributes((("a", "1"), ("b", "2")))

        assert a.serialize() != b.serialize()

    def test_subset(self):
        small = CanonicalAttributes((("color", "black"),))
        big = CanonicalAttributes((("color", "black"), ("substrateWeight", "200gsm")))

        assert small.is_subset_of(big)
        assert not big.is_subset_of(small)

    def test_contains_and_get(self):
        attrs = CanonicalAttributes((("color", "black"),))

        assert "color" in attrs
        assert attrs.get("mount") is None
