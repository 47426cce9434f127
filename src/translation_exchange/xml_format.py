"""Element names and the streaming writer for the exchange XML format.

Layout::

    <content name="..." sitePackageKey="..." workspace="..."
             sourceLanguage="en" targetLanguage="de" modifiedAfter="...">
      <nodes formatVersion="1.0">
        <node identifier="..." nodeName="...">
          <variant nodeType="...">
            <dimensions><language>en</language></dimensions>
            <properties><title type="string"><![CDATA[Home]]></title></properties>
          </variant>
        </node>
      </nodes>
    </content>
"""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import contextmanager
from datetime import datetime
from itertools import groupby
from typing import IO, Iterator

from lxml import etree

from translation_exchange.nodes import NodeTypeRegistry, NodeVariant

SUPPORTED_FORMAT_VERSION = "1.0"

CONTENT = "content"
NODES = "nodes"
NODE = "node"
VARIANT = "variant"
DIMENSIONS = "dimensions"
PROPERTIES = "properties"

STRING_TYPE = "string"


def content_attributes(
    site_name: str,
    site_package_key: str,
    workspace: str,
    source_language: str,
    target_language: str | None = None,
    modified_after: datetime | None = None,
) -> dict[str, str]:
    """Attributes of the ``<content>`` root, in document order."""
    attributes = {
        "name": site_name,
        "sitePackageKey": site_package_key,
        "workspace": workspace,
        "sourceLanguage": source_language,
    }
    if target_language is not None:
        attributes["targetLanguage"] = target_language
    if modified_after is not None:
        attributes["modifiedAfter"] = modified_after.isoformat()
    return attributes


class ExchangeWriter:
    """Writes variants to a binary stream without building the whole tree."""

    def __init__(self, xml_file: "etree.xmlfile", node_types: NodeTypeRegistry):
        self._xml_file = xml_file
        self.node_types = node_types
        self.nodes_written = 0
        self.variants_written = 0

    @classmethod
    @contextmanager
    def open(
        cls, output: IO[bytes] | str, node_types: NodeTypeRegistry
    ) -> Iterator["ExchangeWriter"]:
        """Open a writer on a path or binary stream; output is flushed on exit."""
        with etree.xmlfile(output, encoding="utf-8") as xf:
            xf.write_declaration()
            yield cls(xf, node_types)

    @contextmanager
    def content(self, attributes: dict[str, str]) -> Iterator[None]:
        with self._xml_file.element(CONTENT, attributes):
            self._xml_file.write("\n")
            with self._xml_file.element(NODES, {"formatVersion": SUPPORTED_FORMAT_VERSION}):
                self._xml_file.write("\n")
                yield
            self._xml_file.write("\n")

    def write_variants(self, variants: Iterable[NodeVariant]) -> None:
        """Write variants, grouping consecutive ones of the same node.

        Only adjacent variants share a ``<node>`` element; a node whose
        variants are not adjacent is written as several ``<node>`` elements.
        """
        for identifier, group in groupby(variants, key=lambda variant: variant.identifier):
            group = list(group)
            node_attributes = {"identifier": identifier, "nodeName": group[0].name}
            with self._xml_file.element(NODE, node_attributes):
                self._xml_file.write("\n")
                for variant in group:
                    self._xml_file.write(self.variant_element(variant), pretty_print=True)
                    self.variants_written += 1
            self._xml_file.write("\n")
            self.nodes_written += 1

    def variant_element(self, variant: NodeVariant) -> etree._Element:
        """Build the ``<variant>`` element of one node variant."""
        element = etree.Element(VARIANT, nodeType=variant.node_type)

        dimensions = etree.SubElement(element, DIMENSIONS)
        for name, values in variant.dimension_values.items():
            for value in values:
                etree.SubElement(dimensions, name).text = value

        properties = etree.SubElement(element, PROPERTIES)
        for name, value in self.node_types.exportable_properties(
            variant.node_type, variant.properties
        ):
            property_element = etree.SubElement(properties, name, type=STRING_TYPE)
            if value == "":
                continue
            # a CDATA section cannot contain its own terminator
            if "]]>" in value:
                property_element.text = value
            else:
                property_element.text = etree.CDATA(value)

        return element
