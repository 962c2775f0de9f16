from __future__ import annotations

"""Render document blocks back to editor HTML.

The HTML export runs the same pipeline as the Word export (HTML to blocks,
title, summary) and then writes the blocks out in the editor vocabulary so
the result reopens in the editor with its classes intact.  Callouts are
regenerated from the field values captured by the converter.
"""

import base64
import html as html_lib
import importlib.resources as pkg_resources
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from lxml import etree as ET

from quill_toolkit.core.converter.html_utils import append_text, serialize_children
from quill_toolkit.core.converter.inline_style import MONOSPACE_FONT
from quill_toolkit.core.models import (
    Block,
    Callout,
    ImageBlock,
    ListItem,
    PageBreak,
    Paragraph,
    TableRow,
    TextRun,
)
from quill_toolkit.core.parser.style_map import StyleMap

logger = logging.getLogger(__name__)

__all__ = ["blocks_to_html", "render_html", "load_template", "TEMPLATE_NAME", "IMAGE_MIME_TYPES"]

TEMPLATE_NAME = "export_template.html"

IMAGE_MIME_TYPES: Dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "gif": "image/gif",
    "bmp": "image/bmp",
}


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------

def _wrappers(run: TextRun) -> List[Tuple[str, Dict[str, str]]]:
    """Return the inline elements for *run*, outermost first."""
    style = run.style
    wrappers: List[Tuple[str, Dict[str, str]]] = []
    if style.bold:
        wrappers.append(("strong", {}))
    if style.italics:
        wrappers.append(("em", {}))
    if style.underline:
        wrappers.append(("u", {}))
    if style.strike:
        wrappers.append(("s", {}))
    if style.super_script:
        wrappers.append(("sup", {}))
    elif style.sub_script:
        wrappers.append(("sub", {}))
    if style.font == MONOSPACE_FONT:
        wrappers.append(("code", {}))
    if style.color:
        wrappers.append(("span", {"style": f"color: #{style.color}"}))
    return wrappers


def _write_runs(parent: ET._Element, runs: Iterable[TextRun]) -> None:
    for run in runs:
        if run.line_break:
            ET.SubElement(parent, "br")
            continue
        outer: Optional[ET._Element] = None
        inner: Optional[ET._Element] = None
        for tag, attrs in _wrappers(run):
            element = ET.Element(tag, attrs)
            if inner is None:
                outer = element
            else:
                inner.append(element)
            inner = element
        if outer is None or inner is None:
            append_text(parent, run.text)
        else:
            inner.text = run.text
            parent.append(outer)


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------

class _HtmlWriter:
    def __init__(self, style_map: StyleMap) -> None:
        self.style_map = style_map

    def write(self, parent: ET._Element, blocks: List[Block]) -> None:
        index = 0
        while index < len(blocks):
            block = blocks[index]
            if isinstance(block, ListItem):
                end = index + 1
                while end < len(blocks) and self._continues_list(blocks[end - 1], blocks[end]):
                    end += 1
                self._write_list(parent, blocks[index:end])
                index = end
                continue
            if isinstance(block, Paragraph):
                self._write_paragraph(parent, block)
            elif isinstance(block, Callout):
                self._write_callout(parent, block)
            elif isinstance(block, TableRow):
                self._write_columns(parent, block)
            elif isinstance(block, ImageBlock):
                self._write_image(parent, block)
            elif isinstance(block, PageBreak):
                ET.SubElement(parent, "div", {"class": "page-break"})
            index += 1

    @staticmethod
    def _continues_list(previous: ListItem, block: Block) -> bool:
        if not isinstance(block, ListItem) or block.ordered != previous.ordered:
            return False
        return not block.ordered or block.ordinal == previous.ordinal + 1

    # ------------------------------------------------------------------
    def _target(self, block: Paragraph) -> Tuple[str, Optional[str]]:
        heading_tag = f"h{min(block.heading, 6)}" if block.heading else None
        mapping = self.style_map.mapping_for(block.style_name) if block.style_name else None
        if mapping is not None and mapping.kind == "paragraph" and mapping.tag != "li":
            if heading_tag is None or mapping.tag == heading_tag:
                return mapping.tag, mapping.css_class
        return heading_tag or "p", None

    def _write_paragraph(self, parent: ET._Element, block: Paragraph) -> None:
        tag, css_class = self._target(block)
        element = ET.SubElement(parent, tag)
        if css_class:
            element.set("class", css_class)
        declarations = []
        if block.alignment and block.alignment != "left":
            declarations.append(f"text-align: {block.alignment}")
        if block.shading is not None:
            declarations.append(f"background-color: #{block.shading.fill}")
        if declarations:
            element.set("style", "; ".join(declarations))
        if block.blank or not block.runs:
            ET.SubElement(element, "br")
        else:
            _write_runs(element, block.runs)

    def _write_list(self, parent: ET._Element, items: List[ListItem]) -> None:
        ordered = items[0].ordered
        element = ET.SubElement(parent, "ol" if ordered else "ul")
        if ordered and items[0].ordinal not in (None, 1):
            element.set("start", str(items[0].ordinal))
        for item in items:
            li = ET.SubElement(element, "li")
            if item.alignment and item.alignment != "left":
                li.set("style", f"text-align: {item.alignment}")
            # First run is the literal bullet or ordinal prefix
            _write_runs(li, item.runs[1:])

    def _write_columns(self, parent: ET._Element, row: TableRow) -> None:
        container = ET.SubElement(parent, "div", {"class": "column-container"})
        for cell in row.cells:
            column = ET.SubElement(container, "div", {"class": "column-content"})
            self.write(column, cell)

    def _write_image(self, parent: ET._Element, image: ImageBlock) -> None:
        mime_type = IMAGE_MIME_TYPES.get(image.format, "image/png")
        encoded = base64.b64encode(image.data).decode("ascii")
        wrapper = ET.SubElement(parent, "p", {"style": f"text-align: {image.alignment}"})
        ET.SubElement(wrapper, "img", {
            "src": f"data:{mime_type};base64,{encoded}",
            "style": f"width: {image.width}px; height: {image.height}px",
        })

    # ------------------------------------------------------------------
    # Callouts
    # ------------------------------------------------------------------
    def _write_callout(self, parent: ET._Element, callout: Callout) -> None:
        fields = callout.fields
        if callout.kind == "spacing":
            tone = fields.get("tone", "default")
            classes = "spacing-indicator" if tone == "default" else f"spacing-indicator {tone}"
            element = ET.SubElement(parent, "div", {"class": classes})
            for name in ("label", "message"):
                if fields.get(name):
                    span = ET.SubElement(element, "span", {"class": f"spacing-{name}"})
                    span.text = fields[name]
        elif callout.kind == "dualCoding":
            element = ET.SubElement(parent, "div", {"class": "dual-coding-callout"})
            header = ET.SubElement(element, "div", {"class": "callout-header"})
            for name in ("icon", "title", "priority"):
                if fields.get(name):
                    span = ET.SubElement(header, "span", {"class": f"callout-{name}"})
                    span.text = fields[name]
            for name in ("reason", "context", "action"):
                if fields.get(name):
                    p = ET.SubElement(element, "p", {"class": f"callout-{name}"})
                    p.text = fields[name]
        elif callout.kind == "screenplay":
            block_type = fields.get("type", "action")
            element = ET.SubElement(parent, "p", {
                "class": f"screenplay-block {block_type}",
                "data-block": block_type,
            })
            if fields.get("text"):
                element.text = fields["text"]
            else:
                ET.SubElement(element, "br")
        else:
            logger.warning("Unknown callout kind '%s', writing its paragraphs", callout.kind)
            for paragraph in callout.paragraphs:
                self._write_paragraph(parent, paragraph)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def blocks_to_html(blocks: List[Block], style_map: Optional[StyleMap] = None) -> str:
    """Return the editor HTML fragment for *blocks*."""
    root = ET.Element("div")
    _HtmlWriter(style_map or StyleMap()).write(root, list(blocks))
    return serialize_children(root)


def load_template() -> str:
    """Return the packaged standalone-page template."""
    return (
        pkg_resources.files(__package__)
        .joinpath("templates")
        .joinpath(TEMPLATE_NAME)
        .read_text(encoding="utf-8")
    )


def render_html(blocks: List[Block], title: str, style_map: Optional[StyleMap] = None) -> str:
    """Return a standalone HTML page holding *blocks* under *title*."""
    template = load_template()
    content = blocks_to_html(blocks, style_map)
    logger.debug("Rendered %d blocks into %d characters of HTML", len(blocks), len(content))
    return (
        template
        .replace("{{DOCUMENT_TITLE}}", html_lib.escape(title or "Untitled Document"))
        .replace("{{CONTENT}}", content)
    )
