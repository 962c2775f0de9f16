from __future__ import annotations

"""Estimated table of contents.

Word only computes real page numbers when it lays out the document, so the
entries written here carry an estimate: the amount of text preceding each
heading divided by a fixed number of characters per page.
"""

import logging
import math
from typing import Iterable, List

from docx.enum.text import WD_BREAK, WD_TAB_ALIGNMENT, WD_TAB_LEADER  # type: ignore
from docx.shared import Pt, RGBColor, Twips  # type: ignore

from quill_toolkit.core.models import Block, ListItem, Paragraph, TocEntry, block_text
from quill_toolkit.core.utils import sanitize_text

logger = logging.getLogger(__name__)

__all__ = ["compute_toc", "write_toc", "TOC_TITLE", "EXCLUDED_HEADINGS"]

TOC_TITLE = "Table of Contents"
TOC_TITLE_COLOR = "2C3E50"
EXCLUDED_HEADINGS = ("analysis summary", "edited chapter text")
MAX_TOC_LEVEL = 3
LEVEL_INDENT = 360
_ENTRY_SIZES = {1: 24, 2: 22, 3: 20}


def compute_toc(blocks: Iterable[Block], chars_per_page: int = 3000, toc_pages: int = 1) -> List[TocEntry]:
    """Return TOC entries for headings of level 1-3 in *blocks*.

    ``page_number = max(1, ceil(chars_before / chars_per_page) + toc_pages)``
    where ``chars_before`` counts the visible text of every preceding block.
    """
    entries: List[TocEntry] = []
    chars_before = 0
    for block in blocks:
        text = block_text(block)
        if (isinstance(block, Paragraph) and not isinstance(block, ListItem)
                and block.heading and block.heading <= MAX_TOC_LEVEL):
            title = sanitize_text(text).strip()
            if title and not any(skip in title.lower() for skip in EXCLUDED_HEADINGS):
                page = max(1, math.ceil(chars_before / chars_per_page) + toc_pages)
                entries.append(TocEntry(text=title, level=block.heading, page_number=page))
        chars_before += len(text)
    logger.debug("Computed %d TOC entries", len(entries))
    return entries


def write_toc(doc, entries: List[TocEntry], content_width: int) -> None:
    """Append the TOC title, one tab-aligned line per entry and a page break.

    *content_width* is the text width in twips; each entry's right tab stop
    sits at the right margin, shifted by the entry's own indent.
    """
    title = doc.add_paragraph()
    run = title.add_run(TOC_TITLE)
    run.bold = True
    run.font.size = Pt(16)
    run.font.color.rgb = RGBColor.from_string(TOC_TITLE_COLOR)
    title.paragraph_format.space_before = Twips(200)
    title.paragraph_format.space_after = Twips(300)

    for entry in entries:
        indent = (entry.level - 1) * LEVEL_INDENT
        paragraph = doc.add_paragraph()
        fmt = paragraph.paragraph_format
        fmt.left_indent = Twips(indent)
        fmt.space_after = Twips(120)
        fmt.tab_stops.add_tab_stop(Twips(content_width - indent), WD_TAB_ALIGNMENT.RIGHT, WD_TAB_LEADER.DOTS)

        text_run = paragraph.add_run(entry.text)
        text_run.font.size = Pt(_ENTRY_SIZES.get(entry.level, 20) / 2)
        text_run.bold = entry.level == 1
        paragraph.add_run("\t")
        number_run = paragraph.add_run(str(entry.page_number))
        number_run.bold = True

    doc.add_paragraph().add_run().add_break(WD_BREAK.PAGE)
