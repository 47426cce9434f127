"""Node types, node variants, workspaces and sites."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime

from translation_exchange.dimensions import DimensionValues


@dataclass
class NodeType:
    """A node type with its declared properties.

    ``properties`` maps property name to declared type (``"string"``,
    ``"boolean"``, ...). ``skipped_properties`` names properties that must
    never be sent out for translation.
    """

    name: str
    super_types: list[str] = field(default_factory=list)
    properties: dict[str, str] = field(default_factory=dict)
    skipped_properties: set[str] = field(default_factory=set)


class NodeTypeRegistry:
    """Lookup of node types with inheritance resolution."""

    def __init__(self, node_types: list[NodeType] | None = None) -> None:
        self._node_types: dict[str, NodeType] = {}
        for node_type in node_types or []:
            self.add(node_type)

    def add(self, node_type: NodeType) -> None:
        self._node_types[node_type.name] = node_type

    def get(self, name: str) -> NodeType:
        """Return a node type; unknown names yield an empty type."""
        return self._node_types.get(name) or NodeType(name=name)

    def __iter__(self) -> Iterator[NodeType]:
        return iter(self._node_types.values())

    def is_of_type(self, name: str, other: str) -> bool:
        """Whether ``name`` is ``other`` or inherits from it."""
        seen: set[str] = set()
        pending = [name]
        while pending:
            current = pending.pop()
            if current == other:
                return True
            if current in seen:
                continue
            seen.add(current)
            pending.extend(self.get(current).super_types)
        return False

    def property_types(self, name: str) -> dict[str, str]:
        """Declared property types including inherited ones; subtypes win."""
        declared: dict[str, str] = {}
        node_type = self.get(name)
        for super_type in node_type.super_types:
            declared.update(self.property_types(super_type))
        declared.update(node_type.properties)
        return declared

    def skipped_properties(self, name: str) -> set[str]:
        node_type = self.get(name)
        skipped = set(node_type.skipped_properties)
        for super_type in node_type.super_types:
            skipped |= self.skipped_properties(super_type)
        return skipped

    def exportable_properties(
        self, name: str, properties: Mapping[str, object]
    ) -> Iterator[tuple[str, str]]:
        """Yield declared, non-skipped string properties in stored order."""
        declared = self.property_types(name)
        skipped = self.skipped_properties(name)
        for property_name, value in properties.items():
            if property_name not in declared or property_name in skipped:
                continue
            if declared[property_name] == "string":
                yield property_name, "" if value is None else str(value)


@dataclass(frozen=True)
class NodeTypeFilter:
    """Node type constraint parsed from strings like ``"Content,!Document"``."""

    included: tuple[str, ...] = ()
    excluded: tuple[str, ...] = ()

    @classmethod
    def parse(cls, expression: str | None) -> "NodeTypeFilter":
        included: list[str] = []
        excluded: list[str] = []
        for part in (expression or "").split(","):
            part = part.strip()
            if not part:
                continue
            if part.startswith("!"):
                excluded.append(part[1:])
            else:
                included.append(part)
        return cls(tuple(included), tuple(excluded))

    def matches(self, node_type_name: str, registry: NodeTypeRegistry) -> bool:
        if any(registry.is_of_type(node_type_name, name) for name in self.excluded):
            return False
        if not self.included:
            return True
        return any(registry.is_of_type(node_type_name, name) for name in self.included)


@dataclass
class NodeVariant:
    """One dimension-specific materialization of a node in a workspace."""

    identifier: str
    path: str
    node_type: str
    workspace: str = "live"
    dimension_values: DimensionValues = field(default_factory=DimensionValues)
    properties: dict[str, str] = field(default_factory=dict)
    hidden: bool = False
    removed: bool = False
    last_modified: datetime | None = None

    @property
    def name(self) -> str:
        """Edge label from the parent, the last path segment."""
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    @property
    def parent_path(self) -> str:
        parent = self.path.rstrip("/").rsplit("/", 1)[0]
        return parent or "/"

    def language(self, language_dimension: str) -> str | None:
        return self.dimension_values.primary(language_dimension)

    def is_descendant_of(self, path: str) -> bool:
        prefix = path.rstrip("/") + "/"
        return self.path.startswith(prefix)

    def get_property(self, name: str) -> str | None:
        return self.properties.get(name)

    def copy_to(
        self, workspace: str, dimension_values: DimensionValues
    ) -> "NodeVariant":
        """Return a detached copy living in another workspace and dimension."""
        return replace(
            self,
            workspace=workspace,
            dimension_values=dimension_values,
            properties=dict(self.properties),
        )


@dataclass
class Workspace:
    """A workspace, optionally layered on top of a base workspace."""

    name: str
    base_workspace: str | None = None


@dataclass
class Site:
    """A site registered for a site package."""

    name: str
    node_name: str
    site_resources_package_key: str
