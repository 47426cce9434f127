"""Protocols for the collaborators used by the export and import services."""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import AbstractContextManager
from typing import Protocol, runtime_checkable

from translation_exchange.dimensions import DimensionValues
from translation_exchange.nodes import NodeTypeFilter, NodeTypeRegistry, NodeVariant, Site, Workspace


@runtime_checkable
class ContentContextProtocol(Protocol):
    """A view of one workspace restricted to a dimension fallback chain."""

    workspace_name: str
    dimensions: DimensionValues
    target_dimensions: dict[str, str]
    invisible_content_shown: bool
    removed_content_shown: bool

    def get_node(self, path: str) -> NodeVariant | None:
        """Resolve the best variant at a path."""
        ...

    def get_node_by_identifier(self, identifier: str) -> NodeVariant | None:
        """Resolve the best variant of a node."""
        ...

    def get_node_variants_by_identifier(self, identifier: str) -> list[NodeVariant]:
        """Return every variant of a node regardless of dimensions."""
        ...

    def adopt_node(self, variant: NodeVariant) -> NodeVariant:
        """Return the variant for this context's target dimensions, copying if needed."""
        ...

    def set_property(self, variant: NodeVariant, name: str, value: str) -> None:
        """Change a property on a variant."""
        ...


@runtime_checkable
class NodeStoreProtocol(Protocol):
    """Tree store queries."""

    node_types: NodeTypeRegistry

    def create_context(
        self,
        workspace_name: str,
        dimensions: Mapping[str, list[str]] | DimensionValues | None = None,
        target_dimensions: Mapping[str, str] | None = None,
        invisible_content_shown: bool = False,
        removed_content_shown: bool = False,
    ) -> ContentContextProtocol:
        """Open a content context."""
        ...

    def find_by_parent_and_node_type(
        self,
        parent_path: str,
        node_type_filter: NodeTypeFilter | None,
        workspace_name: str,
        dimensions: DimensionValues,
        removed_content_shown: bool = False,
        recursive: bool = False,
    ) -> list[NodeVariant]:
        """Return descendants of a path resolved for one dimension combination."""
        ...


@runtime_checkable
class DimensionSourceProtocol(Protocol):
    """Dimension presets and allowed combinations."""

    def all_combinations(self) -> list[DimensionValues]:
        """Enumerate every allowed dimension combination."""
        ...

    def find_preset_values(self, dimension_name: str, target_value: str) -> list[str] | None:
        """Return the fallback chain for a target value, if a preset exists."""
        ...


@runtime_checkable
class SiteRegistryProtocol(Protocol):
    """Sites and site packages."""

    def is_package_available(self, package_key: str) -> bool:
        """Whether a site package is installed."""
        ...

    def find_site_by_package_key(self, package_key: str) -> Site | None:
        """Return the site registered for a package."""
        ...

    def find_site_by_node_name(self, node_name: str) -> Site | None:
        """Return the site whose root node carries this name."""
        ...


@runtime_checkable
class WorkspaceStoreProtocol(Protocol):
    """Workspace lookup and creation."""

    def find_workspace(self, name: str) -> Workspace | None:
        """Return a workspace by name."""
        ...

    def add_workspace(self, workspace: Workspace) -> None:
        """Register a new workspace."""
        ...

    def persist_all(self) -> None:
        """Flush pending changes."""
        ...


@runtime_checkable
class ContentRepositoryProtocol(
    NodeStoreProtocol,
    DimensionSourceProtocol,
    SiteRegistryProtocol,
    WorkspaceStoreProtocol,
    Protocol,
):
    """Everything the services need from the content repository."""


@runtime_checkable
class SecurityContextProtocol(Protocol):
    """Authorization layer that traversals temporarily bypass."""

    def without_authorization_checks(self) -> AbstractContextManager[None]:
        """Disable authorization checks for the duration of the block."""
        ...
