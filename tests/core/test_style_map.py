import pytest

from quill_toolkit.core.parser import STYLE_MAPPINGS, StyleMap


@pytest.fixture
def style_map():
    return StyleMap()


class TestCanonicalTable:
    """The canonical Word <-> HTML table is a bijection."""

    @pytest.mark.parametrize("mapping", STYLE_MAPPINGS, ids=lambda m: m.word_style)
    def test_round_trip(self, style_map, mapping):
        tag, css_class = style_map.to_html(mapping.word_style)
        assert style_map.to_word_style(tag, css_class) == mapping.word_style

    def test_lookup_is_case_insensitive(self, style_map):
        assert style_map.to_html("heading 2") == ("h2", "section-heading")
        assert style_map.to_html("  Title ") == ("h1", "doc-title")

    def test_unknown_styles(self, style_map):
        assert style_map.to_html("Heading 7") is None
        assert style_map.to_html("Fancy Style") is None
        assert style_map.to_html(None) is None
        assert style_map.to_word_style("div", "nothing") is None


class TestAliases:
    """Import-only aliases collapse onto canonical targets."""

    def test_configured_aliases(self, style_map):
        assert style_map.to_html("First Paragraph") == ("p", "first-paragraph")
        assert style_map.to_html("Block Text") == ("blockquote", "block-quote")
        # never used in reverse
        assert style_map.to_word_style("p", "first-paragraph") == "Body Text First Indent"

    def test_alias_cannot_shadow_canonical_style(self):
        style_map = StyleMap(aliases={"Heading 1": "p"})
        assert style_map.to_html("Heading 1") == ("h1", "chapter-heading")

    def test_alias_to_unknown_selector_ignored(self):
        style_map = StyleMap(aliases={"Sidebar": "aside.sidebar"})
        assert style_map.to_html("Sidebar") is None

    def test_explicit_aliases_replace_config(self):
        style_map = StyleMap(aliases={"Chapter Title": "h1.chapter-heading"})
        assert style_map.to_html("Chapter Title") == ("h1", "chapter-heading")
        assert style_map.to_html("First Paragraph") is None


class TestExportResolution:
    """Word style names chosen for editor block elements."""

    def test_first_known_class_wins(self, style_map):
        assert style_map.resolve_export_style("p", ["unknown", "body-text", "no-spacing"]) == "Body Text"

    def test_heading_fallback(self, style_map):
        assert style_map.resolve_export_style("h2", ["whatever"]) == "Heading 2"
        assert style_map.resolve_export_style("h5") == "Heading 5"

    def test_normal_fallback(self, style_map):
        assert style_map.resolve_export_style("div") == "Normal"
        assert style_map.resolve_export_style("blockquote", ["fancy"]) == "Normal"

    def test_class_pairs(self, style_map):
        assert style_map.resolve_export_style("blockquote", ["quote"]) == "Quote"
        assert style_map.resolve_export_style("h1", ["doc-title"]) == "Title"

    def test_character_mapping(self, style_map):
        mapping = style_map.mapping_for("Book Title")
        assert mapping.kind == "character"
        assert mapping.selector == "em.book-title"


class TestDetectStyles:
    """Editor classes reported after an import."""

    def test_detects_in_canonical_order(self, style_map):
        html = '<p class="body-text">x</p><h1 class="doc-title">T</h1>'
        assert style_map.detect_styles(html) == ["doc-title", "body-text"]

    def test_nothing_detected(self, style_map):
        assert style_map.detect_styles("<p>plain</p>") == []
