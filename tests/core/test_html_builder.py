import pytest

from quill_toolkit.core.converter import BlockConverter
from quill_toolkit.core.generators import blocks_to_html, render_html
from quill_toolkit.core.models import (
    Callout,
    ImageBlock,
    ListItem,
    PageBreak,
    Paragraph,
    Shading,
    StyleFlags,
    TableRow,
    TextRun,
)


def summary(blocks):
    described = []
    for block in blocks:
        if isinstance(block, Callout):
            described.append(("Callout", block.kind, block.fields))
        elif isinstance(block, Paragraph):
            described.append((
                type(block).__name__, block.text, block.style_name, block.heading,
                getattr(block, "ordinal", None), [(run.text, run.style) for run in block.runs],
            ))
        else:
            described.append((type(block).__name__,))
    return described


class TestBlocksToHtml:
    """Blocks written back in the editor vocabulary."""

    def test_heading_uses_editor_class(self):
        html = blocks_to_html([Paragraph(runs=[TextRun("Hi")], heading=1, style_name="Heading 1")])
        assert html == '<h1 class="chapter-heading">Hi</h1>'

    def test_heading_without_style(self):
        assert blocks_to_html([Paragraph(runs=[TextRun("Hi")], heading=4)]) == "<h4>Hi</h4>"

    def test_nested_inline_wrappers(self):
        html = blocks_to_html([Paragraph(runs=[
            TextRun("x", StyleFlags(bold=True, italics=True)),
            TextRun(" and "),
            TextRun("r", StyleFlags(color="FF0000")),
        ], style_name="Normal")])
        assert html == '<p><strong><em>x</em></strong> and <span style="color: #FF0000">r</span></p>'

    def test_line_break_and_blank(self):
        html = blocks_to_html([
            Paragraph(runs=[TextRun("a"), TextRun.break_token(), TextRun("b")]),
            Paragraph(blank=True),
        ])
        assert html == "<p>a<br>b</p><p><br></p>"

    def test_alignment_and_shading(self):
        html = blocks_to_html([Paragraph(runs=[TextRun("x")], alignment="center", shading=Shading("DBEAFE"))])
        assert html == '<p style="text-align: center; background-color: #DBEAFE">x</p>'

    def test_ordered_list_start(self):
        items = [
            ListItem(runs=[TextRun("2. ", StyleFlags(bold=True)), TextRun("a")], ordinal=2),
            ListItem(runs=[TextRun("3. ", StyleFlags(bold=True)), TextRun("b")], ordinal=3),
        ]
        assert blocks_to_html(items) == '<ol start="2"><li>a</li><li>b</li></ol>'

    def test_restarted_numbering_splits_lists(self):
        items = [
            ListItem(runs=[TextRun("1. "), TextRun("a")], ordinal=1),
            ListItem(runs=[TextRun("1. "), TextRun("b")], ordinal=1),
        ]
        assert blocks_to_html(items) == "<ol><li>a</li></ol><ol><li>b</li></ol>"

    def test_bullets(self):
        items = [ListItem(runs=[TextRun("• "), TextRun("a")]), ListItem(runs=[TextRun("• "), TextRun("b")])]
        assert blocks_to_html(items) == "<ul><li>a</li><li>b</li></ul>"

    def test_image_and_page_break(self, png_bytes, png_data_uri):
        html = blocks_to_html([ImageBlock(png_bytes, 40, 20, "png", "right"), PageBreak()])
        assert html == (
            f'<p style="text-align: right"><img src="{png_data_uri}" style="width: 40px; height: 20px"></p>'
            '<div class="page-break"></div>'
        )

    def test_columns(self):
        row = TableRow(cells=[[Paragraph(runs=[TextRun("L")])], [Paragraph(runs=[TextRun("R")])]])
        assert blocks_to_html([row]) == (
            '<div class="column-container">'
            '<div class="column-content"><p>L</p></div>'
            '<div class="column-content"><p>R</p></div></div>'
        )

    def test_spacing_callout(self):
        callout = Callout("spacing", fields={"tone": "compact", "label": "Spacing", "message": ""})
        assert blocks_to_html([callout]) == (
            '<div class="spacing-indicator compact"><span class="spacing-label">Spacing</span></div>'
        )


class TestRoundTrip:
    """Editor HTML survives a trip through the block model."""

    SOURCE = (
        '<h1 class="chapter-heading">Chapter</h1>'
        '<p class="body-text">Some <em>styled</em> text</p>'
        '<blockquote class="quote">Said</blockquote>'
        '<ul><li>one</li><li>two</li></ul>'
        '<ol start="2"><li>first</li></ol>'
        '<div class="page-break"></div>'
        '<p class="screenplay-block character">bob</p>'
    )

    def test_blocks_preserved(self):
        converter = BlockConverter()
        first = converter.convert(self.SOURCE)
        second = converter.convert(blocks_to_html(first))
        assert summary(second) == summary(first)

    def test_highlights_preserved(self):
        source = (
            '<div class="dual-coding-callout"><div class="callout-header">'
            '<span class="callout-title">Add a chart</span>'
            '<span class="callout-priority">medium</span></div>'
            '<p class="callout-action">Draw it</p></div>'
        )
        converter = BlockConverter(include_highlights=True)
        first = converter.convert(source)
        second = converter.convert(blocks_to_html(first))
        assert summary(second) == summary(first)


class TestRenderHtml:
    def test_title_escaped_and_content_embedded(self):
        page = render_html([Paragraph(runs=[TextRun("Body")])], "<Mine>")
        assert "<title>&lt;Mine&gt;</title>" in page
        assert "<p>Body</p>" in page
        assert "{{CONTENT}}" not in page

    @pytest.mark.parametrize("title", ["", None])
    def test_untitled(self, title):
        assert "<title>Untitled Document</title>" in render_html([], title)

    def test_packaged_template_has_placeholders(self):
        from quill_toolkit.core.generators.html_builder import load_template
        template = load_template()
        assert "{{DOCUMENT_TITLE}}" in template
        assert "{{CONTENT}}" in template
