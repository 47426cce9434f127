"""Shared test fixtures."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from translation_exchange.config import Settings
from translation_exchange.dimensions import DimensionPresets, DimensionValues
from translation_exchange.nodes import NodeType, NodeTypeRegistry, NodeVariant, Site, Workspace
from translation_exchange.repository import ContentRepository

FIXTURES_DIR = Path(__file__).parent / "fixtures"

JANUARY = datetime(2024, 1, 1, tzinfo=timezone.utc)
JUNE = datetime(2024, 6, 1, tzinfo=timezone.utc)

LANGUAGE_PRESETS = {
    "language": {
        "default": "en",
        "presets": {
            "en": {"values": ["en"]},
            "de": {"values": ["de", "en"]},
            "fr": {"values": ["fr"]},
        },
    }
}


def node_types() -> NodeTypeRegistry:
    return NodeTypeRegistry(
        [
            NodeType(name="Document"),
            NodeType(
                name="Page",
                super_types=["Document"],
                properties={"title": "string", "uriPathSegment": "string", "hiddenInMenu": "boolean"},
                skipped_properties={"uriPathSegment"},
            ),
            NodeType(name="ContentCollection"),
            NodeType(name="Text", properties={"text": "string"}),
        ]
    )


def variant(
    identifier: str,
    path: str,
    node_type: str,
    language: str | None = "en",
    hidden: bool = False,
    last_modified: datetime = JANUARY,
    **properties: str,
) -> NodeVariant:
    dimensions = {"language": [language]} if language else {}
    return NodeVariant(
        identifier=identifier,
        path=path,
        node_type=node_type,
        dimension_values=DimensionValues(dimensions),
        properties=dict(properties),
        hidden=hidden,
        last_modified=last_modified,
    )


@pytest.fixture
def make_variant():
    """Factory for single-language node variants."""
    return variant


@pytest.fixture
def settings() -> Settings:
    """Default settings for testing."""
    return Settings.default()


@pytest.fixture
def repository() -> ContentRepository:
    """A small site: three pages, a hidden page and some text content.

    /sites                          (no dimensions)
    /sites/acme                     Page "Home" (en, de)
    /sites/acme/about               Page, hidden
    /sites/acme/about/text2         Text below the hidden page
    /sites/acme/blog                Page
    /sites/acme/blog/post-1         Page
    /sites/acme/blog-posts          Page
    /sites/acme/main                ContentCollection
    /sites/acme/main/text1          Text, modified in June
    """
    return ContentRepository(
        dimension_presets=DimensionPresets.from_dict(LANGUAGE_PRESETS),
        node_types=node_types(),
        workspaces=[Workspace("live")],
        sites=[Site(name="Acme", node_name="acme", site_resources_package_key="Acme.Site")],
        packages=["Acme.Site"],
        variants=[
            variant("sites", "/sites", "unstructured", language=None),
            variant("home", "/sites/acme", "Page", title="Home", uriPathSegment="home"),
            variant("home", "/sites/acme", "Page", language="de", title="Startseite"),
            variant("about", "/sites/acme/about", "Page", hidden=True, title="About"),
            variant("about-text", "/sites/acme/about/text2", "Text", text="About us"),
            variant("blog", "/sites/acme/blog", "Page", title="Blog"),
            variant("post-1", "/sites/acme/blog/post-1", "Page", title="Post"),
            variant("blog-posts", "/sites/acme/blog-posts", "Page", title="Archive"),
            variant("main", "/sites/acme/main", "ContentCollection"),
            variant("text-1", "/sites/acme/main/text1", "Text", last_modified=JUNE, text="Hello"),
        ],
    )


@pytest.fixture
def repository_file(tmp_path: Path) -> Path:
    """Copy of the YAML repository fixture that tests may modify."""
    target = tmp_path / "repository.yaml"
    target.write_text((FIXTURES_DIR / "repository.yaml").read_text())
    return target
