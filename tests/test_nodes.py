"""Tests for the nodes module."""

from translation_exchange.dimensions import DimensionValues
from translation_exchange.nodes import NodeType, NodeTypeFilter, NodeTypeRegistry, NodeVariant


def registry() -> NodeTypeRegistry:
    return NodeTypeRegistry(
        [
            NodeType(name="Document", properties={"title": "string"}),
            NodeType(
                name="Page",
                super_types=["Document"],
                properties={"uriPathSegment": "string", "hiddenInMenu": "boolean"},
                skipped_properties={"uriPathSegment"},
            ),
            NodeType(name="LandingPage", super_types=["Page"], properties={"teaser": "string"}),
            NodeType(name="Text", properties={"text": "string"}),
        ]
    )


class TestNodeTypeRegistry:
    """Tests for NodeTypeRegistry class."""

    def test_is_of_type_follows_super_types(self) -> None:
        """Inheritance is transitive."""
        types = registry()

        assert types.is_of_type("LandingPage", "Document")
        assert types.is_of_type("Page", "Page")
        assert not types.is_of_type("Text", "Document")

    def test_unknown_type(self) -> None:
        """Unknown node types are only of their own type."""
        types = registry()

        assert types.is_of_type("Unknown", "Unknown")
        assert not types.is_of_type("Unknown", "Document")
        assert types.property_types("Unknown") == {}

    def test_property_types_include_inherited(self) -> None:
        """Declared properties merge along the super types."""
        assert registry().property_types("LandingPage") == {
            "title": "string",
            "uriPathSegment": "string",
            "hiddenInMenu": "boolean",
            "teaser": "string",
        }

    def test_exportable_properties(self) -> None:
        """Only declared, non-skipped string properties are exported, in stored order."""
        properties = {
            "teaser": "Read more",
            "uriPathSegment": "landing",
            "hiddenInMenu": "true",
            "undeclared": "x",
            "title": "",
        }

        exported = list(registry().exportable_properties("LandingPage", properties))

        assert exported == [("teaser", "Read more"), ("title", "")]


class TestNodeTypeFilter:
    """Tests for NodeTypeFilter class."""

    def test_parse(self) -> None:
        """Exclusions are prefixed with an exclamation mark."""
        node_filter = NodeTypeFilter.parse("Text, !Document")

        assert node_filter.included == ("Text",)
        assert node_filter.excluded == ("Document",)

    def test_exclusion_matches_subtypes(self) -> None:
        """Excluding a type excludes everything inheriting from it."""
        node_filter = NodeTypeFilter.parse("!Document")
        types = registry()

        assert not node_filter.matches("LandingPage", types)
        assert node_filter.matches("Text", types)

    def test_empty_filter_matches_everything(self) -> None:
        """No constraint lets every type through."""
        assert NodeTypeFilter.parse(None).matches("Anything", registry())


class TestNodeVariant:
    """Tests for NodeVariant class."""

    def test_name_and_parent_path(self) -> None:
        """Name and parent are derived from the path."""
        node = NodeVariant(identifier="1", path="/sites/acme/main/text1", node_type="Text")

        assert node.name == "text1"
        assert node.parent_path == "/sites/acme/main"

    def test_parent_of_top_level_node(self) -> None:
        """Top level nodes hang below the root."""
        assert NodeVariant(identifier="1", path="/sites", node_type="x").parent_path == "/"

    def test_is_descendant_of(self) -> None:
        """Siblings sharing a name prefix are not descendants."""
        node = NodeVariant(identifier="1", path="/sites/acme/blog-posts", node_type="Page")

        assert node.is_descendant_of("/sites/acme")
        assert not node.is_descendant_of("/sites/acme/blog")

    def test_copy_to_detaches_properties(self) -> None:
        """Copies own their properties."""
        node = NodeVariant(
            identifier="1",
            path="/sites/acme",
            node_type="Page",
            dimension_values=DimensionValues({"language": ["en"]}),
            properties={"title": "Home"},
        )

        copy = node.copy_to("review", DimensionValues({"language": ["de"]}))
        copy.properties["title"] = "Startseite"

        assert node.properties["title"] == "Home"
        assert copy.workspace == "review"
        assert copy.language("language") == "de"
