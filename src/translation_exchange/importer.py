"""Import translated variants from the exchange XML format."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from lxml import etree

from translation_exchange.config import Settings
from translation_exchange.dimensions import DimensionValues
from translation_exchange.errors import (
    ConfigurationError,
    FormatError,
    InvalidStateError,
    ParseError,
    UnknownPackageError,
)
from translation_exchange.nodes import NodeVariant, Workspace
from translation_exchange.protocols import (
    ContentContextProtocol,
    ContentRepositoryProtocol,
    SecurityContextProtocol,
)
from translation_exchange.security import SecurityContext
from translation_exchange.xml_format import (
    CONTENT,
    DIMENSIONS,
    NODE,
    NODES,
    PROPERTIES,
    STRING_TYPE,
    SUPPORTED_FORMAT_VERSION,
    VARIANT,
)

logger = logging.getLogger(__name__)

LIVE_WORKSPACE = "live"


@dataclass(frozen=True)
class ImportHeader:
    """Values read from ``<content>`` and resolved against the repository."""

    source_workspace: str
    source_language: str | None
    target_language: str
    fallback_chain: tuple[str, ...]
    site_package_key: str | None


@dataclass(frozen=True)
class TranslatedVariant:
    """One ``<variant>`` record as read from the document."""

    identifier: str
    node_name: str | None
    node_type: str | None
    dimension_values: DimensionValues
    properties: dict[str, str]


@dataclass
class ImportResult:
    """Outcome of an import run."""

    target_language: str
    workspace: str
    variants_read: int = 0
    variants_adopted: int = 0
    variants_unmatched: int = 0
    variants_unchanged: int = 0
    properties_set: int = 0


class ExchangeReader:
    """Forward-only reader over the start and end events of a document.

    Comments are skipped. Syntax errors surface as ParseError.
    """

    def __init__(self, source: IO[bytes]):
        parser = etree.iterparse(source, events=("start", "end", "comment"), huge_tree=True)
        self._events = self._read(parser)

    def __iter__(self) -> Iterator[tuple[str, etree._Element]]:
        return self._events

    @staticmethod
    def _read(parser: Iterable) -> Iterator[tuple[str, etree._Element]]:
        try:
            for event, element in parser:
                if event == "comment":
                    continue
                yield event, element
        except etree.XMLSyntaxError as e:
            raise ParseError(f"The XML file could not be parsed: {e}") from e

    def seek_start(self, tag: str) -> etree._Element | None:
        """Advance to the next start tag with the given name."""
        for event, element in self._events:
            if event == "start" and element.tag == tag:
                return element
        return None

    def read_dimensions(self) -> DimensionValues:
        """Read the children of an open ``<dimensions>`` element."""
        values: dict[str, list[str]] = {}
        for event, element in self._events:
            if event != "end":
                continue
            if element.tag == DIMENSIONS:
                return DimensionValues(values)
            if element.text is not None:
                values.setdefault(element.tag, []).append(element.text)
        raise ParseError(f"Unexpected end of document inside <{DIMENSIONS}>")

    def read_properties(self) -> dict[str, str]:
        """Read the children of an open ``<properties>`` element.

        Raises:
            FormatError: If a property is not declared as a string.
        """
        properties: dict[str, str] = {}
        for event, element in self._events:
            if event == "start":
                if element.get("type") != STRING_TYPE:
                    raise FormatError(f'Non-string property "{element.tag}" found in XML file')
            elif element.tag == PROPERTIES:
                return properties
            else:
                properties[element.tag] = element.text or ""
        raise ParseError(f"Unexpected end of document inside <{PROPERTIES}>")


def select_best_match(
    candidates: Iterable[NodeVariant],
    dimension_values: DimensionValues,
    language_dimension: str,
    target_language: str,
) -> NodeVariant | None:
    """Pick the existing variant a translated record applies to.

    A variant already in the target language with otherwise equal
    dimensions outranks the variant with exactly the record's dimensions.
    Among equally ranked candidates the last one wins.
    """
    translated_dimensions = dimension_values.with_values(language_dimension, [target_language])
    best: NodeVariant | None = None
    best_rank = 0
    for candidate in candidates:
        if candidate.dimension_values == translated_dimensions:
            rank = 2
        elif candidate.dimension_values == dimension_values:
            rank = 1
        else:
            continue
        if rank >= best_rank:
            best, best_rank = candidate, rank
    return best


class ImportService:
    """Merges translated property values into the content repository."""

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

    def import_from_file(
        self,
        path: str | Path,
        workspace_name: str | None = None,
        target_language: str | None = None,
    ) -> ImportResult:
        """Import the given file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Import file not found: {path}")

        with open(path, "rb") as f:
            return self.import_from_stream(f, workspace_name, target_language)

    def import_from_stream(
        self,
        source: IO[bytes],
        workspace_name: str | None = None,
        target_language: str | None = None,
    ) -> ImportResult:
        """Import from a binary stream.

        Args:
            source: Stream positioned at the start of the document.
            workspace_name: Workspace to import into, overriding the document.
            target_language: Target language, overriding the document.

        Returns:
            ImportResult naming the imported language and what changed.
        """
        reader = ExchangeReader(source)

        content = reader.seek_start(CONTENT)
        if content is None:
            raise ParseError(f"No <{CONTENT}> element found in XML file")
        header = self._read_header(content, target_language)

        nodes = reader.seek_start(NODES)
        format_version = nodes.get("formatVersion") if nodes is not None else None
        if format_version is None:
            raise FormatError("The XML file could not be parsed: no format version found.")
        if format_version != SUPPORTED_FORMAT_VERSION:
            raise FormatError(
                f"The XML file contains an unsupported format version ({format_version})."
            )

        target_workspace = self._ensure_workspace(workspace_name or header.source_workspace)
        result = ImportResult(target_language=header.target_language, workspace=target_workspace.name)

        source_context = self.repository.create_context(
            header.source_workspace,
            dimensions={},
            target_dimensions={},
            invisible_content_shown=True,
            removed_content_shown=False,
        )

        logger.info(
            f'Importing "{header.source_language}" content as "{header.target_language}" '
            f'into workspace "{target_workspace.name}"'
        )
        with self.security_context.without_authorization_checks():
            self._import_nodes(reader, header, source_context, target_workspace, result)

        self.repository.persist_all()
        logger.info(
            f"Import complete: {result.variants_read} variants read, "
            f"{result.variants_adopted} adopted, {result.variants_unmatched} unmatched, "
            f"{result.variants_unchanged} unchanged, {result.properties_set} properties set"
        )
        return result

    def _read_header(self, content: etree._Element, target_language: str | None) -> ImportHeader:
        target_language = target_language or content.get("targetLanguage")
        if not target_language:
            raise ConfigurationError("No target language given (neither in XML nor as argument)")

        fallback_chain = self.repository.find_preset_values(
            self.language_dimension, target_language
        )
        if not fallback_chain:
            raise ConfigurationError(
                f'No language dimension preset found for language "{target_language}".'
            )

        site_package_key = content.get("sitePackageKey")
        if not site_package_key or not self.repository.is_package_available(site_package_key):
            raise UnknownPackageError(
                f'Package "{site_package_key}" specified in the XML as site package does not exist.'
            )
        if self.repository.find_site_by_package_key(site_package_key) is None:
            raise InvalidStateError(
                f'Site for package "{site_package_key}" specified in the XML as site package '
                "could not be found."
            )

        return ImportHeader(
            source_workspace=content.get("workspace") or LIVE_WORKSPACE,
            source_language=content.get("sourceLanguage"),
            target_language=target_language,
            fallback_chain=tuple(fallback_chain),
            site_package_key=site_package_key,
        )

    def _ensure_workspace(self, name: str) -> Workspace:
        """Return the target workspace, creating and persisting it if missing."""
        workspace = self.repository.find_workspace(name)
        if workspace is not None:
            return workspace

        live = self.repository.find_workspace(LIVE_WORKSPACE)
        workspace = Workspace(name=name, base_workspace=live.name if live else None)
        self.repository.add_workspace(workspace)
        self.repository.persist_all()
        logger.info(f'Created workspace "{name}"')
        return workspace

    def _import_nodes(
        self,
        reader: ExchangeReader,
        header: ImportHeader,
        source_context: ContentContextProtocol,
        target_workspace: Workspace,
        result: ImportResult,
    ) -> None:
        identifier: str | None = None
        node_name: str | None = None
        node_type: str | None = None
        candidates: list[NodeVariant] = []
        dimension_values = DimensionValues()
        properties: dict[str, str] = {}

        for event, element in reader:
            tag = element.tag
            if event == "start":
                if tag == NODE:
                    identifier = element.get("identifier")
                    node_name = element.get("nodeName")
                    candidates = source_context.get_node_variants_by_identifier(identifier or "")
                elif tag == VARIANT:
                    node_type = element.get("nodeType")
                    dimension_values = DimensionValues()
                    properties = {}
                elif tag == DIMENSIONS:
                    dimension_values = reader.read_dimensions()
                elif tag == PROPERTIES:
                    properties = reader.read_properties()
                else:
                    raise ParseError(f"Unexpected element <{tag}>")
                continue

            if tag == NODES:
                return
            if tag == VARIANT:
                if identifier is None:
                    raise ParseError(f"<{VARIANT}> found outside of <{NODE}>")
                record = TranslatedVariant(
                    identifier=identifier,
                    node_name=node_name,
                    node_type=node_type,
                    dimension_values=dimension_values,
                    properties=properties,
                )
                result.variants_read += 1
                self.merge_variant(record, candidates, header, target_workspace, result)
                _release(element)
            elif tag == NODE:
                identifier = node_name = None
                candidates = []
                _release(element)
            else:
                raise ParseError(f"Unexpected end element <{tag}>")

        raise ParseError(f"Unexpected end of document inside <{NODES}>")

    def merge_variant(
        self,
        record: TranslatedVariant,
        candidates: list[NodeVariant],
        header: ImportHeader,
        target_workspace: Workspace,
        result: ImportResult,
    ) -> NodeVariant | None:
        """Merge one translated record into the best matching variant.

        Returns:
            The adopted variant, or None if the record was skipped.
        """
        best_match = select_best_match(
            candidates, record.dimension_values, self.language_dimension, header.target_language
        )
        if best_match is None:
            logger.debug(f"No matching variant for node {record.identifier}, skipping")
            result.variants_unmatched += 1
            return None

        dimensions = record.dimension_values.with_values(
            self.language_dimension, header.fallback_chain
        )
        target_dimensions = dimensions.primary_values()
        target_dimensions[self.language_dimension] = header.target_language

        target_context = self.repository.create_context(
            target_workspace.name,
            dimensions=dimensions,
            target_dimensions=target_dimensions,
            invisible_content_shown=True,
        )

        properties_to_set = {
            name: value
            for name, value in record.properties.items()
            if best_match.get_property(name) != value
        }

        # A fallback already serves this language when nothing changed
        if not properties_to_set and len(target_context.dimensions[self.language_dimension]) > 1:
            logger.debug(f"Node {record.identifier} unchanged, fallback in place")
            result.variants_unchanged += 1
            return None

        translated = target_context.adopt_node(best_match)
        for name, value in properties_to_set.items():
            target_context.set_property(translated, name, value)

        result.variants_adopted += 1
        result.properties_set += len(properties_to_set)
        logger.debug(
            f"Node {record.identifier}: {len(properties_to_set)} properties set "
            f"in {target_dimensions}"
        )
        return translated


def _release(element: etree._Element) -> None:
    """Drop a processed element and its already processed siblings."""
    element.clear()
    parent = element.getparent()
    if parent is None:
        return
    while element.getprevious() is not None:
        del parent[0]
