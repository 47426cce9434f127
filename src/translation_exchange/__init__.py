"""Content translation exchange.

A Python library and CLI tool for exporting a multi-language content tree
into a portable XML format and merging translated variants back in.
"""

from translation_exchange.config import Settings
from translation_exchange.dimensions import DimensionPresets, DimensionValues
from translation_exchange.exporter import ExportRequest, ExportService
from translation_exchange.importer import ImportResult, ImportService
from translation_exchange.nodes import NodeType, NodeTypeRegistry, NodeVariant, Site, Workspace
from translation_exchange.repository import ContentContext, ContentRepository

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "DimensionPresets",
    "DimensionValues",
    "ExportRequest",
    "ExportService",
    "ImportResult",
    "ImportService",
    "NodeType",
    "NodeTypeRegistry",
    "NodeVariant",
    "Site",
    "Workspace",
    "ContentContext",
    "ContentRepository",
]
