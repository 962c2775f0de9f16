from __future__ import annotations

"""Editor HTML to document block conversion.

The converter is a recursive tree-to-sequence transducer.  Every container
handled as a *block* walks its children with an explicit accumulator: text
and inline elements add :class:`TextRun` objects to a pending-run list, a
block-level child (or an image) *flushes* the pending runs into one
:class:`Paragraph` before the child itself is converted.  The helpers below
take the accumulator as an argument and return the new state rather than
closing over shared mutable state.

Dispatch per element, first match wins:

1. non-content tags (``script``, ``style``...) are skipped;
2. editor classes (spacing indicators, callouts, screenplay, columns,
   page breaks, document title/subtitle) go to dedicated converters;
3. ``img``, ``br``, lists and tables have their own rules;
4. heading and block tags run the block accumulator;
5. inline tags outside a block become one implicit paragraph;
6. anything else is a transparent wrapper.
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Tuple

from lxml import etree as ET

from quill_toolkit.core.models import (
    PLAIN,
    Block,
    Indent,
    ListItem,
    PageBreak,
    Paragraph,
    Spacing,
    StyleFlags,
    TableRow,
    TextRun,
)
from quill_toolkit.core.parser.style_map import StyleMap
from quill_toolkit.core.converter.html_utils import (
    Node,
    class_list,
    drop_by_class,
    element_text,
    has_class,
    infer_alignment,
    iter_child_nodes,
    parse_html,
    raw_text,
    tag_of,
)
from quill_toolkit.core.converter.image_resolver import ImageResolver
from quill_toolkit.core.converter.inline_style import derive_style
from quill_toolkit.core.converter.special_blocks import (
    convert_dual_coding_callout,
    convert_screenplay_block,
    convert_spacing_indicator,
)
from quill_toolkit.core.utils import normalize_whitespace, sanitize_text

logger = logging.getLogger(__name__)

__all__ = [
    "BlockConverter",
    "BlockOptions",
    "flush_runs",
    "merge_runs",
    "trim_runs",
    "plain_text_paragraphs",
    "NON_CONTENT_TAGS",
    "BLOCK_TAGS",
    "INLINE_TAGS",
    "HIGHLIGHT_CLASSES",
]

NON_CONTENT_TAGS = frozenset({"style", "script", "link", "meta", "head", "title", "noscript"})
HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
BLOCK_TAGS = frozenset({"p", "div", "section", "article", "blockquote", "header", "footer", "figure"}) | HEADING_TAGS
INLINE_TAGS = frozenset({
    "span", "strong", "b", "em", "i", "u", "s", "strike", "a", "code",
    "mark", "small", "sup", "sub", "del", "ins",
})
SPECIAL_CLASSES = frozenset({
    "spacing-indicator", "dual-coding-callout", "screenplay-block", "toc-placeholder",
    "index-placeholder", "column-container", "column-content", "column-drag-handle",
    "doc-title", "doc-subtitle", "page-break",
})
# Editor-only markers, never exported
PLACEHOLDER_CLASSES = ("toc-placeholder", "index-placeholder", "column-drag-handle")
# Analysis overlays, exported only with highlights
HIGHLIGHT_CLASSES = ("spacing-indicator", "dual-coding-callout")

_BLOCK_SPACING = {
    "h1": Spacing(before=400, after=240),
    "h2": Spacing(before=320, after=160),
    "h3": Spacing(before=240, after=120),
    "blockquote": Spacing(before=160, after=160),
}
_DEFAULT_SPACING = Spacing(after=200)
_IMPLICIT_SPACING = Spacing(after=200, line=360)
_LIST_SPACING = Spacing(after=120, line=360)
_LIST_INDENT = Indent(left=360)
_QUOTE_INDENT = Indent(left=720)
_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")


@dataclass(frozen=True)
class BlockOptions:
    """Paragraph settings applied when a block's pending runs are flushed."""

    heading: Optional[int] = None
    style_name: Optional[str] = "Normal"
    alignment: Optional[str] = None
    spacing: Spacing = _DEFAULT_SPACING
    indent: Optional[Indent] = None

    def paragraph(self, runs: List[TextRun], blank: bool = False) -> Paragraph:
        return Paragraph(
            runs=runs,
            heading=self.heading,
            style_name=self.style_name,
            alignment=self.alignment,
            spacing=self.spacing,
            indent=self.indent,
            blank=blank,
        )


IMPLICIT_OPTIONS = BlockOptions(spacing=_IMPLICIT_SPACING)


# ---------------------------------------------------------------------------
# Run accumulation helpers
# ---------------------------------------------------------------------------

def push_text(runs: List[TextRun], text: str, style: StyleFlags) -> List[TextRun]:
    """Append *text* to *runs* as a normalised run and return *runs*.

    Whitespace-only text never becomes a run of its own; it separates words
    by extending the previous run with a single space.
    """
    cleaned = sanitize_text(normalize_whitespace(text))
    if runs and runs[-1].line_break:
        cleaned = cleaned.lstrip()
    if not cleaned:
        return runs
    previous = runs[-1] if runs and not runs[-1].line_break else None
    if not cleaned.strip():
        if previous is not None and not previous.text.endswith(" "):
            runs[-1] = replace(previous, text=previous.text + " ")
        return runs
    if previous is not None and previous.text.endswith(" ") and cleaned.startswith(" "):
        cleaned = cleaned[1:]
    runs.append(TextRun(cleaned, style))
    return runs


def merge_runs(runs: Iterable[TextRun]) -> List[TextRun]:
    """Join adjacent text runs sharing the same style and size."""
    merged: List[TextRun] = []
    for run in runs:
        if (merged and not run.line_break and not merged[-1].line_break
                and merged[-1].style == run.style and merged[-1].size == run.size):
            merged[-1] = replace(merged[-1], text=merged[-1].text + run.text)
        else:
            merged.append(run)
    return merged


def trim_runs(runs: Iterable[TextRun]) -> List[TextRun]:
    """Strip outer whitespace of a paragraph and drop trailing line breaks."""
    trimmed = list(runs)
    while trimmed and trimmed[-1].line_break:
        trimmed.pop()
    while trimmed and not trimmed[0].line_break:
        text = trimmed[0].text.lstrip()
        if text:
            trimmed[0] = replace(trimmed[0], text=text)
            break
        trimmed.pop(0)
    while trimmed and not trimmed[-1].line_break:
        text = trimmed[-1].text.rstrip()
        if text:
            trimmed[-1] = replace(trimmed[-1], text=text)
            break
        trimmed.pop()
    while trimmed and trimmed[-1].line_break:
        trimmed.pop()
    return trimmed


def _has_text(runs: Iterable[TextRun]) -> bool:
    return any(not run.line_break for run in runs)


def flush_runs(pending: Iterable[TextRun], options: BlockOptions) -> List[Block]:
    """Commit *pending* runs as one paragraph.

    Returns the paragraph in a list, or an empty list when the runs hold no
    visible text. The caller starts a new, empty pending list afterwards.
    """
    runs = trim_runs(merge_runs(pending))
    if not _has_text(runs):
        return []
    return [options.paragraph(runs)]


def plain_text_paragraphs(text: str) -> List[Block]:
    """Split *text* on blank lines into implicit paragraphs."""
    blocks: List[Block] = []
    for chunk in _PARAGRAPH_SPLIT.split(text or ""):
        runs = push_text([], chunk.strip(), PLAIN)
        blocks.extend(flush_runs(runs, IMPLICIT_OPTIONS))
    return blocks


def _is_blank_line_placeholder(node: Node) -> bool:
    if isinstance(node, str) or tag_of(node) != "p":
        return False
    if node.find(".//img") is not None:
        return False
    return not raw_text(node).strip()


def _follows_text_paragraph(blocks: List[Block]) -> bool:
    if not blocks:
        return False
    last = blocks[-1]
    return isinstance(last, Paragraph) and not isinstance(last, ListItem) and not last.blank and bool(last.runs)


# ---------------------------------------------------------------------------
# Converter
# ---------------------------------------------------------------------------

class BlockConverter:
    """Convert editor HTML into an ordered list of document blocks.

    Parameters
    ----------
    style_map
        Word style lookup used to name exported paragraph styles.
    image_resolver
        Loader for ``<img>`` elements; failures drop the image only.
    include_highlights
        When False, spacing indicators and dual-coding callouts are dropped.
    """

    def __init__(
        self,
        style_map: Optional[StyleMap] = None,
        image_resolver: Optional[ImageResolver] = None,
        include_highlights: bool = True,
    ) -> None:
        self.style_map = style_map or StyleMap()
        self.image_resolver = image_resolver or ImageResolver()
        self.include_highlights = include_highlights

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def convert(self, html: str) -> List[Block]:
        """Return the blocks for *html*; never raises on odd markup."""
        body = parse_html(html)
        if body is None:
            return []
        dropped = drop_by_class(body, PLACEHOLDER_CLASSES)
        if not self.include_highlights:
            dropped += drop_by_class(body, HIGHLIGHT_CLASSES)
        if dropped:
            logger.debug("Dropped %d editor-only elements before conversion", dropped)
        blocks = self.convert_nodes(iter_child_nodes(body), PLAIN)
        if not blocks:
            logger.info("HTML produced no blocks, falling back to plain-text paragraphs")
            blocks = plain_text_paragraphs(raw_text(body))
        logger.debug("Converted HTML into %d blocks", len(blocks))
        return blocks

    def convert_nodes(self, nodes: Iterable[Node], style: StyleFlags) -> List[Block]:
        """Convert sibling nodes one by one and concatenate the results."""
        blocks: List[Block] = []
        for node in nodes:
            converted = self.convert_node(node, style)
            blocks.extend(self._keep_blank_line(node, converted, blocks))
        return blocks

    def convert_node(self, node: Node, style: StyleFlags) -> List[Block]:
        """Convert a single node outside of any block accumulator."""
        if isinstance(node, str):
            return flush_runs(push_text([], node, style), IMPLICIT_OPTIONS)

        tag = tag_of(node)
        if not tag or tag in NON_CONTENT_TAGS:
            return []

        classes = class_list(node)
        if SPECIAL_CLASSES.intersection(classes):
            return self._convert_special(node, classes, style)
        if tag == "img":
            return self._convert_image(node)
        if tag == "br":
            return [IMPLICIT_OPTIONS.paragraph([], blank=True)]
        if tag in ("ul", "ol"):
            return self._convert_list(node, style)
        if tag == "table":
            return self._convert_table(node, style)

        next_style = derive_style(node, style)
        if tag in BLOCK_TAGS:
            return self._convert_block(node, next_style, self._block_options(node, tag, classes))
        if tag in INLINE_TAGS:
            runs = self._collect_inline(node, next_style, [])
            return flush_runs(runs, replace(IMPLICIT_OPTIONS, alignment=infer_alignment(node)))
        return self.convert_nodes(iter_child_nodes(node), next_style)

    # ------------------------------------------------------------------
    # Block accumulator
    # ------------------------------------------------------------------
    def _block_options(self, element: ET._Element, tag: str, classes: List[str]) -> BlockOptions:
        return BlockOptions(
            heading=int(tag[1]) if tag in HEADING_TAGS else None,
            style_name=self.style_map.resolve_export_style(tag, classes),
            alignment=infer_alignment(element),
            spacing=_BLOCK_SPACING.get(tag, _DEFAULT_SPACING),
            indent=_QUOTE_INDENT if tag == "blockquote" else None,
        )

    def accumulate(
        self, nodes: Iterable[Node], style: StyleFlags, options: BlockOptions
    ) -> Tuple[List[Block], List[TextRun]]:
        """Walk block children; return ``(blocks, pending_runs)``.

        Blocks hold everything flushed so far, pending runs the inline
        content after the last flush.
        """
        blocks: List[Block] = []
        pending: List[TextRun] = []
        for node in nodes:
            if isinstance(node, str):
                pending = push_text(pending, node, style)
                continue
            tag = tag_of(node)
            if not tag or tag in NON_CONTENT_TAGS:
                continue
            if tag == "br":
                pending.append(TextRun.break_token(style))
                continue
            if tag in INLINE_TAGS and not SPECIAL_CLASSES.intersection(class_list(node)):
                pending = self._collect_inline(node, derive_style(node, style), pending)
                continue
            blocks.extend(flush_runs(pending, options))
            pending = []
            converted = self.convert_node(node, style)
            blocks.extend(self._keep_blank_line(node, converted, blocks))
        return blocks, pending

    def _convert_block(self, element: ET._Element, style: StyleFlags, options: BlockOptions) -> List[Block]:
        blocks, pending = self.accumulate(iter_child_nodes(element), style, options)
        blocks.extend(flush_runs(pending, options))
        if not blocks:
            # Content the accumulator could not place: keep the bare text
            blocks = flush_runs(push_text([], element_text(element), style), options)
        return blocks

    def _collect_inline(self, element: ET._Element, style: StyleFlags, runs: List[TextRun]) -> List[TextRun]:
        """Append the runs of inline *element* to *runs* and return them."""
        for node in iter_child_nodes(element):
            if isinstance(node, str):
                runs = push_text(runs, node, style)
                continue
            tag = tag_of(node)
            if not tag or tag in NON_CONTENT_TAGS:
                continue
            if tag == "br":
                runs.append(TextRun.break_token(style))
            elif tag in INLINE_TAGS:
                runs = self._collect_inline(node, derive_style(node, style), runs)
            else:
                runs = push_text(runs, raw_text(node), style)
        return runs

    @staticmethod
    def _keep_blank_line(node: Node, converted: List[Block], blocks: List[Block]) -> List[Block]:
        """Turn an empty ``<p>`` right after a text paragraph into a blank line."""
        if converted or not _is_blank_line_placeholder(node):
            return converted
        if not _follows_text_paragraph(blocks):
            return []
        return [BlockOptions().paragraph([], blank=True)]

    # ------------------------------------------------------------------
    # Special classes
    # ------------------------------------------------------------------
    def _convert_special(self, element: ET._Element, classes: List[str], style: StyleFlags) -> List[Block]:
        if "spacing-indicator" in classes:
            return convert_spacing_indicator(element) if self.include_highlights else []
        if "dual-coding-callout" in classes:
            return convert_dual_coding_callout(element) if self.include_highlights else []
        if "screenplay-block" in classes:
            return convert_screenplay_block(element)
        if {"toc-placeholder", "index-placeholder", "column-drag-handle"}.intersection(classes):
            return []
        if "column-container" in classes:
            return self._convert_columns(element, style)
        if "column-content" in classes:
            return self.convert_nodes(iter_child_nodes(element), style)
        if "page-break" in classes:
            return [PageBreak()]
        if "doc-title" in classes:
            return self._convert_title(element, style, "Title", Spacing(before=400, after=200))
        return self._convert_title(
            element, style.merged(italics=True), "Subtitle", Spacing(before=100, after=400)
        )

    def _convert_title(self, element: ET._Element, style: StyleFlags, style_name: str,
                       spacing: Spacing) -> List[Block]:
        options = BlockOptions(style_name=style_name, alignment="center", spacing=spacing)
        style = derive_style(element, style)
        blocks = flush_runs(self._collect_inline(element, style, []), options)
        if not blocks:
            blocks = flush_runs(push_text([], element_text(element), style), options)
        return blocks

    def _convert_columns(self, element: ET._Element, style: StyleFlags) -> List[Block]:
        columns = element.xpath(
            "descendant::*[contains(concat(' ', normalize-space(@class), ' '), ' column-content ')]"
        )
        if len(columns) > 1:
            cells = []
            for column in columns:
                content = self.convert_nodes(iter_child_nodes(column), style)
                cells.append(content or [BlockOptions().paragraph([], blank=True)])
            return [TableRow(cells=cells)]
        if len(columns) == 1:
            return self.convert_nodes(iter_child_nodes(columns[0]), style)
        children = (
            node for node in iter_child_nodes(element)
            if isinstance(node, str) or not has_class(node, "column-drag-handle")
        )
        return self.convert_nodes(children, style)

    # ------------------------------------------------------------------
    # Images, lists, tables
    # ------------------------------------------------------------------
    def _convert_image(self, element: ET._Element) -> List[Block]:
        image = self.image_resolver.resolve(element)
        if image is None:
            return []
        return [image]

    def _convert_list(self, element: ET._Element, style: StyleFlags) -> List[Block]:
        ordered = tag_of(element) == "ol"
        try:
            start = int(element.get("start") or 1)
        except ValueError:
            start = 1
        items = [child for child in element if tag_of(child) == "li"]
        blocks: List[Block] = []
        for index, item in enumerate(items):
            item_style = derive_style(item, style)
            runs = trim_runs(merge_runs(self._list_item_runs(item, item_style, [])))
            if not _has_text(runs):
                runs = push_text([], element_text(item), item_style)
            ordinal = start + index if ordered else None
            prefix = (TextRun(f"{ordinal}. ", StyleFlags(bold=True)) if ordered
                      else TextRun("• "))
            blocks.append(ListItem(
                runs=[prefix] + runs,
                style_name="Normal",
                alignment=infer_alignment(item),
                spacing=_LIST_SPACING,
                indent=_LIST_INDENT,
                ordinal=ordinal,
            ))
        return blocks

    def _list_item_runs(self, element: ET._Element, style: StyleFlags, runs: List[TextRun]) -> List[TextRun]:
        for node in iter_child_nodes(element):
            if isinstance(node, str):
                runs = push_text(runs, node, style)
                continue
            tag = tag_of(node)
            if not tag or tag in NON_CONTENT_TAGS:
                continue
            if tag == "br":
                runs.append(TextRun.break_token(style))
            elif tag == "img":
                runs.append(TextRun("[image]", style.merged(italics=True)))
            elif tag in INLINE_TAGS:
                runs = self._collect_inline(node, derive_style(node, style), runs)
            else:
                if _has_text(runs):
                    runs.append(TextRun.break_token(style))
                runs = self._list_item_runs(node, derive_style(node, style), runs)
        return runs

    def _convert_table(self, element: ET._Element, style: StyleFlags) -> List[Block]:
        blocks: List[Block] = []
        for row in element.iter("tr"):
            cells = []
            for cell in row:
                if tag_of(cell) not in ("td", "th"):
                    continue
                text = sanitize_text(normalize_whitespace(element_text(cell)).strip())
                if text:
                    cells.append(text)
            if not cells:
                continue
            blocks.append(Paragraph(
                runs=[TextRun(" | ".join(cells), style)],
                style_name="Normal",
                alignment=infer_alignment(row),
                spacing=_LIST_SPACING,
            ))
        return blocks
