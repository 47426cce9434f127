"""In-memory content repository with dimension-aware content contexts."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path

import yaml

from translation_exchange.dimensions import DimensionPresets, DimensionValues
from translation_exchange.nodes import (
    NodeType,
    NodeTypeFilter,
    NodeTypeRegistry,
    NodeVariant,
    Site,
    Workspace,
)

logger = logging.getLogger(__name__)


class ContentContext:
    """A view of a workspace restricted to a dimension fallback chain.

    ``dimensions`` holds the fallback chain per dimension; variants whose
    values are earlier in a chain win. An empty ``dimensions`` mapping
    means no dimension restriction. ``target_dimensions`` is the single
    value per dimension that adopted variants are created in.
    """

    def __init__(
        self,
        repository: "ContentRepository",
        workspace_name: str,
        dimensions: DimensionValues,
        target_dimensions: dict[str, str],
        invisible_content_shown: bool = False,
        removed_content_shown: bool = False,
    ):
        self.repository = repository
        self.workspace_name = workspace_name
        self.dimensions = dimensions
        self.target_dimensions = target_dimensions
        self.invisible_content_shown = invisible_content_shown
        self.removed_content_shown = removed_content_shown

    def get_node(self, path: str) -> NodeVariant | None:
        """Resolve the best variant at a path."""
        normalized = "/" + path.strip("/") if path.strip("/") else "/"
        return self._resolve(
            variant for variant in self.repository.variants if variant.path == normalized
        )

    def get_node_by_identifier(self, identifier: str) -> NodeVariant | None:
        """Resolve the best variant of a node."""
        return self._resolve(self.repository.variants_by_identifier(identifier))

    def get_node_variants_by_identifier(self, identifier: str) -> list[NodeVariant]:
        """Return every variant of a node regardless of dimensions."""
        variants = self.repository.shadowed(
            self.repository.variants_by_identifier(identifier), self.workspace_name
        )
        return [variant for variant in variants if self._is_visible(variant)]

    def adopt_node(self, variant: NodeVariant) -> NodeVariant:
        """Return the variant living in this context's target dimensions.

        An existing variant in the context workspace with exactly the target
        dimensions is reused, otherwise ``variant`` is copied there.
        """
        target = DimensionValues(
            {name: [value] for name, value in self.target_dimensions.items()}
        )
        for existing in self.repository.variants_by_identifier(variant.identifier):
            if existing.workspace == self.workspace_name and existing.dimension_values == target:
                return existing

        adopted = variant.copy_to(self.workspace_name, target)
        adopted.last_modified = datetime.now(timezone.utc)
        self.repository.add_variant(adopted)
        logger.debug(
            f"Adopted node {variant.identifier} into {self.workspace_name} {target.to_dict()}"
        )
        return adopted

    def set_property(self, variant: NodeVariant, name: str, value: str) -> None:
        variant.properties[name] = value
        variant.last_modified = datetime.now(timezone.utc)

    def _resolve(self, variants: Iterable[NodeVariant]) -> NodeVariant | None:
        best = self.repository.best_variant(
            self.repository.shadowed(variants, self.workspace_name),
            self.dimensions,
            self.removed_content_shown,
        )
        if best is None or not self._is_visible(best):
            return None
        return best

    def _is_visible(self, variant: NodeVariant) -> bool:
        if variant.removed and not self.removed_content_shown:
            return False
        if variant.hidden and not self.invisible_content_shown:
            return False
        return True


class ContentRepository:
    """Stores node variants together with the configuration they need.

    Acts as tree store, dimension preset source, site registry and
    workspace store for the export and import services.
    """

    def __init__(
        self,
        dimension_presets: DimensionPresets | None = None,
        node_types: NodeTypeRegistry | None = None,
        workspaces: Iterable[Workspace] = (),
        sites: Iterable[Site] = (),
        packages: Iterable[str] = (),
        variants: Iterable[NodeVariant] = (),
        snapshot_path: Path | None = None,
    ):
        self.dimension_presets = dimension_presets or DimensionPresets()
        self.node_types = node_types or NodeTypeRegistry()
        self.workspaces: dict[str, Workspace] = {}
        for workspace in workspaces:
            self.workspaces[workspace.name] = workspace
        self.sites = list(sites)
        self.packages = set(packages)
        self.variants: list[NodeVariant] = []
        self._by_identifier: dict[str, list[NodeVariant]] = {}
        for variant in variants:
            self.add_variant(variant)
        self.snapshot_path = snapshot_path

    # Tree store

    def add_variant(self, variant: NodeVariant) -> None:
        self.variants.append(variant)
        self._by_identifier.setdefault(variant.identifier, []).append(variant)

    def variants_by_identifier(self, identifier: str) -> list[NodeVariant]:
        return list(self._by_identifier.get(identifier, []))

    def create_context(
        self,
        workspace_name: str,
        dimensions: Mapping[str, Iterable[str]] | None = None,
        target_dimensions: Mapping[str, str] | None = None,
        invisible_content_shown: bool = False,
        removed_content_shown: bool = False,
    ) -> ContentContext:
        """Open a content context.

        Without explicit target dimensions the primary value of every
        dimension is used.
        """
        if isinstance(dimensions, DimensionValues):
            dimension_values = dimensions
        else:
            dimension_values = DimensionValues.from_dict(dimensions)
        if target_dimensions is None:
            target_dimensions = dimension_values.primary_values()
        return ContentContext(
            self,
            workspace_name,
            dimension_values,
            dict(target_dimensions),
            invisible_content_shown=invisible_content_shown,
            removed_content_shown=removed_content_shown,
        )

    def find_by_parent_and_node_type(
        self,
        parent_path: str,
        node_type_filter: NodeTypeFilter | None,
        workspace_name: str,
        dimensions: DimensionValues,
        removed_content_shown: bool = False,
        recursive: bool = False,
    ) -> list[NodeVariant]:
        """Return children (or all descendants) of a path.

        One variant per node identifier survives, chosen by the fallback
        order of ``dimensions``. Hidden variants are included.
        """
        normalized = "/" + parent_path.strip("/") if parent_path.strip("/") else "/"
        if recursive:
            in_scope = [v for v in self.variants if v.is_descendant_of(normalized)]
        else:
            in_scope = [v for v in self.variants if v.parent_path == normalized]

        by_identifier: dict[str, list[NodeVariant]] = {}
        for variant in self.shadowed(in_scope, workspace_name):
            by_identifier.setdefault(variant.identifier, []).append(variant)

        result = []
        for candidates in by_identifier.values():
            best = self.best_variant(candidates, dimensions, removed_content_shown)
            if best is None:
                continue
            if node_type_filter is not None and not node_type_filter.matches(
                best.node_type, self.node_types
            ):
                continue
            result.append(best)

        return sorted(result, key=lambda variant: variant.path)

    def workspace_chain(self, workspace_name: str) -> list[str]:
        """Workspace names from ``workspace_name`` down to the root base."""
        chain: list[str] = []
        name: str | None = workspace_name
        while name is not None and name not in chain:
            chain.append(name)
            workspace = self.workspaces.get(name)
            name = workspace.base_workspace if workspace else None
        return chain

    def shadowed(
        self, variants: Iterable[NodeVariant], workspace_name: str
    ) -> list[NodeVariant]:
        """Keep variants visible from a workspace; nearer workspaces shadow bases."""
        chain = self.workspace_chain(workspace_name)
        nearest: dict[tuple[str, DimensionValues], NodeVariant] = {}
        for variant in variants:
            if variant.workspace not in chain:
                continue
            key = (variant.identifier, variant.dimension_values)
            current = nearest.get(key)
            if current is None or chain.index(variant.workspace) < chain.index(current.workspace):
                nearest[key] = variant
        return list(nearest.values())

    def best_variant(
        self,
        variants: Iterable[NodeVariant],
        dimensions: DimensionValues,
        removed_content_shown: bool = False,
    ) -> NodeVariant | None:
        """Pick the variant that ranks first in the dimension fallback order."""
        best: NodeVariant | None = None
        best_rank: tuple[int, ...] | None = None
        for variant in variants:
            if variant.removed and not removed_content_shown:
                continue
            rank = self._fallback_rank(variant.dimension_values, dimensions)
            if rank is None:
                continue
            if best_rank is None or rank < best_rank:
                best, best_rank = variant, rank
        return best

    @staticmethod
    def _fallback_rank(
        values: DimensionValues, dimensions: DimensionValues
    ) -> tuple[int, ...] | None:
        if dimensions.is_empty:
            return ()
        rank = []
        for name, chain in dimensions.items():
            variant_values = values.get(name)
            if not variant_values:
                rank.append(len(chain))
                continue
            if any(value not in chain for value in variant_values):
                return None
            rank.append(chain.index(variant_values[0]))
        return tuple(rank)

    # Dimension presets

    def all_combinations(self) -> list[DimensionValues]:
        return self.dimension_presets.all_combinations()

    def find_preset_values(self, dimension_name: str, target_value: str) -> list[str] | None:
        return self.dimension_presets.find_preset_values(dimension_name, target_value)

    # Sites and packages

    def is_package_available(self, package_key: str) -> bool:
        return package_key in self.packages

    def find_site_by_package_key(self, package_key: str) -> Site | None:
        for site in self.sites:
            if site.site_resources_package_key == package_key:
                return site
        return None

    def find_site_by_node_name(self, node_name: str) -> Site | None:
        for site in self.sites:
            if site.node_name == node_name:
                return site
        return None

    # Workspaces

    def find_workspace(self, name: str) -> Workspace | None:
        return self.workspaces.get(name)

    def add_workspace(self, workspace: Workspace) -> None:
        if workspace.name in self.workspaces:
            raise ValueError(f'Workspace "{workspace.name}" already exists')
        self.workspaces[workspace.name] = workspace

    def persist_all(self) -> None:
        """Write the repository back to the snapshot it was loaded from."""
        if self.snapshot_path is not None:
            self.save(self.snapshot_path)

    # Snapshots

    @classmethod
    def load(cls, path: str | Path) -> "ContentRepository":
        """Load a repository snapshot from a YAML file.

        Args:
            path: Path to the snapshot YAML file.

        Returns:
            ContentRepository populated from the file.

        Raises:
            FileNotFoundError: If the snapshot file doesn't exist.
            yaml.YAMLError: If the file contains invalid YAML.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Repository snapshot not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        repository = cls._from_dict(data)
        repository.snapshot_path = path
        logger.info(f"Loaded {len(repository.variants)} node variants from {path}")
        return repository

    @classmethod
    def _from_dict(cls, data: dict) -> "ContentRepository":
        """Create a repository from a dictionary."""
        node_types = NodeTypeRegistry()
        for name, type_data in (data.get("nodeTypes") or {}).items():
            type_data = type_data or {}
            node_types.add(
                NodeType(
                    name=name,
                    super_types=list(type_data.get("superTypes", [])),
                    properties=dict(type_data.get("properties") or {}),
                    skipped_properties=set(type_data.get("skip", [])),
                )
            )

        workspaces = [
            Workspace(name=item["name"], base_workspace=item.get("base"))
            for item in data.get("workspaces", [{"name": "live"}])
        ]
        sites = [
            Site(
                name=item["name"],
                node_name=item.get("nodeName", item["name"]),
                site_resources_package_key=item["packageKey"],
            )
            for item in data.get("sites", [])
        ]
        variants = [
            NodeVariant(
                identifier=str(item["identifier"]),
                path=item["path"],
                node_type=item.get("nodeType", "unstructured"),
                workspace=item.get("workspace", "live"),
                dimension_values=DimensionValues.from_dict(item.get("dimensions")),
                properties={
                    name: "" if value is None else str(value)
                    for name, value in (item.get("properties") or {}).items()
                },
                hidden=bool(item.get("hidden", False)),
                removed=bool(item.get("removed", False)),
                last_modified=_parse_timestamp(item.get("lastModified")),
            )
            for item in data.get("nodes", [])
        ]

        return cls(
            dimension_presets=DimensionPresets.from_dict(data.get("dimensions")),
            node_types=node_types,
            workspaces=workspaces,
            sites=sites,
            packages=data.get("packages", []),
            variants=variants,
        )

    def save(self, path: str | Path) -> None:
        """Save the repository as a YAML snapshot."""
        data = {
            "dimensions": self.dimension_presets.to_dict(),
            "nodeTypes": {
                node_type.name: {
                    "superTypes": list(node_type.super_types),
                    "properties": dict(node_type.properties),
                    "skip": sorted(node_type.skipped_properties),
                }
                for node_type in self.node_types
            },
            "packages": sorted(self.packages),
            "sites": [
                {
                    "name": site.name,
                    "nodeName": site.node_name,
                    "packageKey": site.site_resources_package_key,
                }
                for site in self.sites
            ],
            "workspaces": [
                {"name": workspace.name, "base": workspace.base_workspace}
                for workspace in self.workspaces.values()
            ],
            "nodes": [
                {
                    "identifier": variant.identifier,
                    "path": variant.path,
                    "nodeType": variant.node_type,
                    "workspace": variant.workspace,
                    "dimensions": variant.dimension_values.to_dict(),
                    "hidden": variant.hidden,
                    "removed": variant.removed,
                    "lastModified": (
                        variant.last_modified.isoformat() if variant.last_modified else None
                    ),
                    "properties": dict(variant.properties),
                }
                for variant in self.variants
            ],
        }
        Path(path).write_text(yaml.safe_dump(data, sort_keys=False, allow_unicode=True))
        logger.info(f"Saved {len(self.variants)} node variants to {path}")


def _parse_timestamp(value: object) -> datetime | None:
    """Parse a timestamp from YAML; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
