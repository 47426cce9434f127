"""Tests for the dimensions module."""

import pytest

from translation_exchange.dimensions import (
    DimensionPresets,
    DimensionValues,
    combinations_for_language,
)
from translation_exchange.errors import ConfigurationError


PRESETS = {
    "language": {
        "default": "en",
        "presets": {
            "en": {"values": ["en"]},
            "de": {"values": ["de", "en"]},
            "de_strict": {"values": ["de"]},
        },
    },
    "country": {
        "default": "us",
        "presets": {
            "us": {"values": ["us"]},
            "ch": {"values": ["ch", "us"]},
        },
    },
}


class TestDimensionValues:
    """Tests for DimensionValues class."""

    def test_equality_ignores_dimension_order(self) -> None:
        """Dimension names may come in any order."""
        left = DimensionValues({"language": ["en"], "country": ["us"]})
        right = DimensionValues({"country": ["us"], "language": ["en"]})

        assert left == right
        assert hash(left) == hash(right)

    def test_equality_respects_value_order(self) -> None:
        """Fallback chains are ordered."""
        assert DimensionValues({"language": ["de", "en"]}) != DimensionValues(
            {"language": ["en", "de"]}
        )

    def test_equality_with_plain_mapping(self) -> None:
        """Comparing against a dict converts it first."""
        assert DimensionValues({"language": ["en"]}) == {"language": ["en"]}
        assert DimensionValues({"language": ["en"]}) != {"language": ["en"], "country": ["us"]}

    def test_primary(self) -> None:
        """The first value of a dimension is its primary value."""
        values = DimensionValues({"language": ["de", "en"]})

        assert values.primary("language") == "de"
        assert values.primary("country") is None

    def test_merged_with_replaces_whole_lists(self) -> None:
        """Merging overrides value lists of the merged dimensions only."""
        values = DimensionValues({"language": ["en"], "country": ["ch", "us"]})

        merged = values.merged_with({"language": ["de", "en"]})

        assert merged == {"language": ["de", "en"], "country": ["ch", "us"]}
        assert values == {"language": ["en"], "country": ["ch", "us"]}

    def test_with_values_adds_missing_dimension(self) -> None:
        """with_values sets a dimension that was not present."""
        values = DimensionValues({"country": ["us"]})

        assert values.with_values("language", ["fr"]) == {"country": ["us"], "language": ["fr"]}

    def test_primary_values(self) -> None:
        """primary_values keeps the first value of every dimension."""
        values = DimensionValues({"language": ["de", "en"], "country": ["ch", "us"]})

        assert values.primary_values() == {"language": "de", "country": "ch"}

    def test_from_dict_accepts_scalars(self) -> None:
        """A bare string is a single-value list."""
        assert DimensionValues.from_dict({"language": "en"}) == {"language": ["en"]}

    def test_is_empty(self) -> None:
        """A node without dimensions has empty values."""
        assert DimensionValues().is_empty
        assert not DimensionValues({"language": ["en"]}).is_empty


class TestDimensionPresets:
    """Tests for DimensionPresets class."""

    def test_all_combinations(self) -> None:
        """Combinations are the product of preset value lists."""
        presets = DimensionPresets.from_dict(PRESETS)

        combinations = presets.all_combinations()

        assert len(combinations) == 6
        assert {"language": ["de", "en"], "country": ["ch", "us"]} in combinations

    def test_no_dimensions(self) -> None:
        """Without dimensions there are no combinations."""
        assert DimensionPresets().all_combinations() == []

    def test_find_preset_values(self) -> None:
        """The first preset whose primary value matches provides the chain."""
        presets = DimensionPresets.from_dict(PRESETS)

        assert presets.find_preset_values("language", "de") == ["de", "en"]
        assert presets.find_preset_values("language", "fr") is None
        assert presets.find_preset_values("region", "de") is None

    def test_to_dict_round_trip(self) -> None:
        """Presets can be written back to configuration data."""
        presets = DimensionPresets.from_dict(PRESETS)

        assert DimensionPresets.from_dict(presets.to_dict()).all_combinations() == (
            presets.all_combinations()
        )


class TestCombinationsForLanguage:
    """Tests for combinations_for_language."""

    def test_filters_by_primary_language(self) -> None:
        """Only combinations whose language starts with the value match."""
        combinations = DimensionPresets.from_dict(PRESETS).all_combinations()

        matching = combinations_for_language(combinations, "language", "de")

        assert len(matching) == 4
        assert all(combination.primary("language") == "de" for combination in matching)

    def test_fallback_values_do_not_match(self) -> None:
        """A language only present as fallback does not select a combination."""
        combinations = [DimensionValues({"language": ["de", "en"]})]

        with pytest.raises(ConfigurationError, match='language "en"'):
            combinations_for_language(combinations, "language", "en")

    def test_missing_language_dimension(self) -> None:
        """Combinations without the language dimension never match."""
        with pytest.raises(ConfigurationError):
            combinations_for_language([DimensionValues({"country": ["us"]})], "language", "en")
