"""Export a content sub-tree into the exchange XML format."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import IO

from translation_exchange.config import Settings
from translation_exchange.dimensions import DimensionValues, combinations_for_language
from translation_exchange.errors import NotFoundError
from translation_exchange.nodes import NodeTypeFilter, NodeVariant, Site
from translation_exchange.protocols import (
    ContentContextProtocol,
    ContentRepositoryProtocol,
    SecurityContextProtocol,
)
from translation_exchange.security import SecurityContext
from translation_exchange.xml_format import ExchangeWriter, content_attributes

logger = logging.getLogger(__name__)

SITES_ROOT = "/sites"


@dataclass(frozen=True)
class ExportRequest:
    """Parameters of a single export run."""

    starting_point: str
    source_language: str
    target_language: str | None = None
    modified_after: datetime | None = None
    ignore_hidden: bool = True
    exclude_child_documents: bool = False

    def __post_init__(self) -> None:
        if self.modified_after is not None and self.modified_after.tzinfo is None:
            object.__setattr__(
                self, "modified_after", self.modified_after.replace(tzinfo=timezone.utc)
            )


@dataclass(frozen=True)
class ExportScope:
    """Everything resolved before the first byte is written."""

    request: ExportRequest
    workspace_name: str
    context: ContentContextProtocol
    combinations: list[DimensionValues]
    starting_node: NodeVariant
    site: Site


class ExportService:
    """Writes a sub-tree, one variant per node, to XML."""

    def __init__(
        self,
        settings: Settings,
        repository: ContentRepositoryProtocol,
        security_context: SecurityContextProtocol | None = None,
    ):
        self.settings = settings
        self.repository = repository
        self.security_context = security_context or SecurityContext()
        self.language_dimension = settings.language_dimension

    def export_to_string(self, request: ExportRequest) -> str:
        """Export into a string."""
        buffer = io.BytesIO()
        self.export_to_stream(request, buffer)
        return buffer.getvalue().decode("utf-8")

    def export_to_file(self, request: ExportRequest, path: str | Path) -> int:
        """Export into the given file.

        The scope is resolved before the file is created, so a missing
        starting node or workspace leaves no file behind.

        Returns:
            Number of variants written.
        """
        scope = self.resolve_scope(request)
        with open(path, "wb") as f:
            return self._write(scope, f)

    def export_to_stream(self, request: ExportRequest, stream: IO[bytes]) -> int:
        """Export into a binary stream.

        Returns:
            Number of variants written.
        """
        return self._write(self.resolve_scope(request), stream)

    def resolve_scope(self, request: ExportRequest) -> ExportScope:
        """Resolve workspace, dimensions, starting node and site.

        Raises:
            ConfigurationError: If no combination exists for the source language.
            NotFoundError: If the workspace, starting node or site is missing.
        """
        workspace_name = self.settings.export.workspace
        if self.repository.find_workspace(workspace_name) is None:
            raise NotFoundError(f'Could not find workspace "{workspace_name}"')

        combinations = combinations_for_language(
            self.repository.all_combinations(),
            self.language_dimension,
            request.source_language,
        )
        context = self.repository.create_context(
            workspace_name,
            dimensions=combinations[0],
            invisible_content_shown=not request.ignore_hidden,
            removed_content_shown=False,
        )

        starting_node = context.get_node_by_identifier(request.starting_point)
        if starting_node is None:
            starting_node = context.get_node(f"{SITES_ROOT}/{request.starting_point}")
        if starting_node is None:
            raise NotFoundError(f'Could not find node "{request.starting_point}"')

        path_parts = starting_node.path.split("/")
        site = None
        if len(path_parts) > 2:
            site = self.repository.find_site_by_node_name(path_parts[2])
        if site is None:
            raise NotFoundError(f'Could not find site for node "{starting_node.path}"')

        return ExportScope(
            request=request,
            workspace_name=workspace_name,
            context=context,
            combinations=combinations,
            starting_node=starting_node,
            site=site,
        )

    def find_variants_to_export(self, scope: ExportScope) -> list[NodeVariant]:
        """Find the variants below (and including) the starting node.

        Returns one variant per node identifier, preferring the source
        language, with hidden or stale variants filtered out, sorted by path.
        """
        request = scope.request
        starting_node = scope.starting_node
        candidates: list[NodeVariant] = []
        source_contexts: list[ContentContextProtocol] = []

        for combination in scope.combinations:
            if request.exclude_child_documents:
                children: list[NodeVariant] = []
                self._collect_content_nodes(starting_node, combination, scope, children)
            else:
                children = self.repository.find_by_parent_and_node_type(
                    starting_node.path,
                    None,
                    scope.workspace_name,
                    combination,
                    removed_content_shown=scope.context.removed_content_shown,
                    recursive=True,
                )
            candidates.append(starting_node)
            candidates.extend(children)
            source_contexts.append(
                self.repository.create_context(
                    scope.workspace_name,
                    dimensions=combination,
                    invisible_content_shown=scope.context.invisible_content_shown,
                    removed_content_shown=False,
                )
            )

        logger.info(f"Collected {len(candidates)} candidate variants")

        # Source language variants sort last so they win the deduplication
        candidates.sort(
            key=lambda variant: variant.language(self.language_dimension)
            == request.source_language
        )
        unique: dict[str, NodeVariant] = {}
        for variant in candidates:
            unique[variant.identifier] = variant

        retained = [
            variant
            for variant in unique.values()
            if self._passes_filters(variant, source_contexts, request)
        ]
        logger.info(
            f"{len(retained)} of {len(unique)} nodes retained after visibility filtering"
        )

        return sorted(retained, key=lambda variant: variant.path.replace("/", "!"))

    def _passes_filters(
        self,
        variant: NodeVariant,
        source_contexts: list[ContentContextProtocol],
        request: ExportRequest,
    ) -> bool:
        for source_context in source_contexts:
            checked = variant
            if variant.language(self.language_dimension) != request.source_language:
                # hidden variants do not resolve; those are checked as they are
                checked = source_context.get_node_by_identifier(variant.identifier) or variant

            if not source_context.invisible_content_shown and self._is_hidden(
                checked, self._ancestor_context(source_context)
            ):
                logger.debug(f"Skipping hidden node {variant.path}")
                return False

            if request.modified_after is not None:
                if checked.last_modified is None or checked.last_modified < request.modified_after:
                    logger.debug(f"Skipping unchanged node {variant.path}")
                    return False

        return True

    def _ancestor_context(self, context: ContentContextProtocol) -> ContentContextProtocol:
        """Same workspace and dimensions, but hidden ancestors stay resolvable."""
        return self.repository.create_context(
            context.workspace_name,
            dimensions=context.dimensions,
            invisible_content_shown=True,
        )

    @staticmethod
    def _is_hidden(variant: NodeVariant, context: ContentContextProtocol) -> bool:
        """Whether the variant or an ancestor inside the dimensioned tree is hidden.

        The walk ends at the root, at a missing parent or at the first parent
        without dimension values.
        """
        current = variant
        while True:
            if current.hidden:
                return True
            if current.parent_path == current.path:
                return False
            parent = context.get_node(current.parent_path)
            if parent is None or parent.dimension_values.is_empty:
                return False
            current = parent

    def _collect_content_nodes(
        self,
        node: NodeVariant,
        combination: DimensionValues,
        scope: ExportScope,
        nodes: list[NodeVariant],
    ) -> None:
        """Depth-first collection of a node and its non-document descendants."""
        nodes.append(node)
        children = self.repository.find_by_parent_and_node_type(
            node.path,
            NodeTypeFilter.parse(f"!{self.settings.document_node_type}"),
            scope.workspace_name,
            combination,
            removed_content_shown=scope.context.removed_content_shown,
        )
        for child in children:
            self._collect_content_nodes(child, combination, scope, nodes)

    def _write(self, scope: ExportScope, output: IO[bytes]) -> int:
        request = scope.request
        attributes = content_attributes(
            site_name=scope.site.name,
            site_package_key=scope.site.site_resources_package_key,
            workspace=scope.workspace_name,
            source_language=request.source_language,
            target_language=request.target_language,
            modified_after=request.modified_after,
        )

        with ExchangeWriter.open(output, self.repository.node_types) as writer:
            with writer.content(attributes):
                with self.security_context.without_authorization_checks():
                    variants = self.find_variants_to_export(scope)
                    writer.write_variants(variants)

        logger.info(
            f"Exported {writer.variants_written} variants of {writer.nodes_written} nodes "
            f'starting at "{scope.starting_node.path}"'
        )
        return writer.variants_written
