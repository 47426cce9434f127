"""Content dimension values, presets and combination lookup."""

from __future__ import annotations

import itertools
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field

from translation_exchange.errors import ConfigurationError


class DimensionValues(Mapping[str, tuple[str, ...]]):
    """Ordered mapping of dimension name to an ordered list of values.

    The first value of each list is the primary value, the rest form the
    fallback chain. Two instances are equal when they hold the same
    dimensions with the same value lists; the order of the dimension names
    does not matter, the order of the values does.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Iterable[str]] | None = None) -> None:
        self._values: dict[str, tuple[str, ...]] = {
            name: tuple(dimension_values) for name, dimension_values in (values or {}).items()
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Iterable[str] | str] | None) -> "DimensionValues":
        """Build from plain data, accepting a bare string as a single value."""
        values: dict[str, list[str]] = {}
        for name, raw in (data or {}).items():
            values[name] = [raw] if isinstance(raw, str) else list(raw)
        return cls(values)

    def __getitem__(self, name: str) -> tuple[str, ...]:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DimensionValues):
            return self._values == other._values
        if isinstance(other, Mapping):
            return self == DimensionValues.from_dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._values.items()))

    def __repr__(self) -> str:
        return f"DimensionValues({self.to_dict()!r})"

    @property
    def is_empty(self) -> bool:
        return not self._values

    def primary(self, name: str) -> str | None:
        """Return the first value of a dimension, or None if unset."""
        values = self._values.get(name)
        return values[0] if values else None

    def primary_values(self) -> dict[str, str]:
        """Return the first value of every non-empty dimension."""
        return {name: values[0] for name, values in self._values.items() if values}

    def with_values(self, name: str, values: Iterable[str]) -> "DimensionValues":
        """Return a copy with one dimension's value list replaced."""
        return self.merged_with({name: values})

    def merged_with(self, other: Mapping[str, Iterable[str]]) -> "DimensionValues":
        """Return a copy where every dimension of ``other`` replaces ours."""
        merged: dict[str, Iterable[str]] = dict(self._values)
        merged.update(other)
        return DimensionValues(merged)

    def to_dict(self) -> dict[str, list[str]]:
        return {name: list(values) for name, values in self._values.items()}


@dataclass
class DimensionPreset:
    """A named preset: the ordered fallback chain for one dimension value."""

    name: str
    values: list[str]


@dataclass
class Dimension:
    """A dimension axis with its presets, in declaration order."""

    name: str
    default: str | None = None
    presets: list[DimensionPreset] = field(default_factory=list)


class DimensionPresets:
    """Source of dimension presets and allowed combinations."""

    def __init__(self, dimensions: Iterable[Dimension] = ()) -> None:
        self.dimensions: dict[str, Dimension] = {
            dimension.name: dimension for dimension in dimensions
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping] | None) -> "DimensionPresets":
        """Create presets from configuration data.

        Expected shape::

            language:
              default: en
              presets:
                en: {values: [en]}
                de: {values: [de, en]}
        """
        dimensions = []
        for name, dimension_data in (data or {}).items():
            presets = [
                DimensionPreset(name=preset_name, values=list(preset.get("values", [])))
                for preset_name, preset in (dimension_data.get("presets") or {}).items()
            ]
            dimensions.append(
                Dimension(name=name, default=dimension_data.get("default"), presets=presets)
            )
        return cls(dimensions)

    def to_dict(self) -> dict[str, dict]:
        return {
            dimension.name: {
                "default": dimension.default,
                "presets": {
                    preset.name: {"values": list(preset.values)}
                    for preset in dimension.presets
                },
            }
            for dimension in self.dimensions.values()
        }

    def all_combinations(self) -> list[DimensionValues]:
        """Return every allowed combination of preset value lists."""
        if not self.dimensions:
            return []
        names = list(self.dimensions)
        value_lists = [
            [preset.values for preset in self.dimensions[name].presets if preset.values]
            for name in names
        ]
        return [
            DimensionValues(dict(zip(names, combination)))
            for combination in itertools.product(*value_lists)
        ]

    def find_preset_values(self, dimension_name: str, target_value: str) -> list[str] | None:
        """Return the fallback chain of the preset whose primary value is ``target_value``."""
        dimension = self.dimensions.get(dimension_name)
        if dimension is None:
            return None
        for preset in dimension.presets:
            if preset.values and preset.values[0] == target_value:
                return list(preset.values)
        return None


def combinations_for_language(
    combinations: Iterable[DimensionValues],
    language_dimension: str,
    language: str,
) -> list[DimensionValues]:
    """Return the combinations whose primary language value is ``language``.

    Raises:
        ConfigurationError: If no combination matches.
    """
    matching = [
        combination
        for combination in combinations
        if combination.primary(language_dimension) == language
    ]
    if not matching:
        raise ConfigurationError(
            f'No dimension combination found for language "{language}".'
        )
    return matching
