from __future__ import annotations

"""Serialize document blocks into a Word (.docx) binary with python-docx.

The assembler is the only place that knows WordprocessingML: page setup,
styles created on demand, run formatting, paragraph shading and borders,
images, borderless column tables, headers and footers with a ``PAGE`` field
and the estimated table of contents.  It never inspects HTML.

Public API:
- DocumentAssembler.assemble(blocks, info, options, template=None) -> bytes
"""

import io
import logging
from typing import Iterable, List, Optional

import docx  # type: ignore
from docx.enum.style import WD_STYLE_TYPE  # type: ignore
from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_BREAK  # type: ignore
from docx.oxml import OxmlElement  # type: ignore
from docx.oxml.ns import qn  # type: ignore
from docx.shared import Emu, Inches, Pt, RGBColor, Twips  # type: ignore

from quill_toolkit.core.exceptions import ExportSerializationError
from quill_toolkit.core.models import (
    Block,
    Callout,
    DocumentInfo,
    ExportOptions,
    ImageBlock,
    PageBreak,
    Paragraph,
    Shading,
    TableRow,
    TextRun,
)
from quill_toolkit.core.generators.toc import compute_toc, write_toc
from quill_toolkit.core.utils import sanitize_text

logger = logging.getLogger(__name__)

__all__ = ["DocumentAssembler", "EMU_PER_PIXEL"]

EMU_PER_PIXEL = 9525
HEADER_FOOTER_SIZE = 20
HEADER_FOOTER_COLOR = "6B7280"
SEPARATOR_COLOR = "9CA3AF"
SEPARATOR = "  |  "
FACING_GUTTER = Inches(0.5)

_ALIGNMENTS = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
    "justify": WD_ALIGN_PARAGRAPH.JUSTIFY,
}
_LEADING_STYLES = ("Title", "Subtitle")


# ---------------------------------------------------------------------------
# Low-level WordprocessingML helpers
# ---------------------------------------------------------------------------

def _apply_shading(paragraph, shading: Shading) -> None:
    """Add a left border (optional) and a background fill to *paragraph*.

    Must run before spacing/indent/alignment are set: ``w:pBdr`` and
    ``w:shd`` are appended and have to precede those elements in ``w:pPr``.
    """
    p_pr = paragraph._p.get_or_add_pPr()
    if shading.border_color:
        p_bdr = OxmlElement("w:pBdr")
        left = OxmlElement("w:left")
        left.set(qn("w:val"), "single")
        left.set(qn("w:sz"), str(shading.border_size))
        left.set(qn("w:space"), "4")
        left.set(qn("w:color"), shading.border_color)
        p_bdr.append(left)
        p_pr.append(p_bdr)
    shd = OxmlElement("w:shd")
    shd.set(qn("w:val"), "clear")
    shd.set(qn("w:color"), "auto")
    shd.set(qn("w:fill"), shading.fill)
    p_pr.append(shd)


def _append_page_field(paragraph) -> None:
    """Append a ``PAGE`` field rendered in the header/footer text style."""
    field = OxmlElement("w:fldSimple")
    field.set(qn("w:instr"), "PAGE")
    run = OxmlElement("w:r")
    r_pr = OxmlElement("w:rPr")
    color = OxmlElement("w:color")
    color.set(qn("w:val"), HEADER_FOOTER_COLOR)
    r_pr.append(color)
    size = OxmlElement("w:sz")
    size.set(qn("w:val"), str(HEADER_FOOTER_SIZE))
    r_pr.append(size)
    run.append(r_pr)
    text = OxmlElement("w:t")
    text.text = "1"
    run.append(text)
    field.append(run)
    paragraph._p.append(field)


def _remove_table_borders(table) -> None:
    tbl_pr = table._tbl.tblPr
    borders = OxmlElement("w:tblBorders")
    for side in ("top", "left", "bottom", "right", "insideH", "insideV"):
        node = OxmlElement(f"w:{side}")
        node.set(qn("w:val"), "nil")
        borders.append(node)
    look = tbl_pr.find(qn("w:tblLook"))
    if look is not None:
        look.addprevious(borders)
    else:
        tbl_pr.append(borders)


def _enable_mirror_margins(doc) -> None:
    settings = doc.settings.element
    if settings.find(qn("w:mirrorMargins")) is not None:
        return
    mirror = OxmlElement("w:mirrorMargins")
    # mirrorMargins follows w:zoom in the settings sequence
    zoom = settings.find(qn("w:zoom"))
    if zoom is not None:
        zoom.addnext(mirror)
    else:
        settings.insert(0, mirror)


def _clear_body(doc) -> None:
    """Remove all body content of a template document, keeping its sectPr."""
    body = doc.element.body
    for child in list(body):
        if child.tag != qn("w:sectPr"):
            body.remove(child)


# ---------------------------------------------------------------------------
# Assembler
# ---------------------------------------------------------------------------

class DocumentAssembler:
    """Render a block sequence into a .docx binary.

    A stateless object: every :meth:`assemble` call builds a fresh
    python-docx document, so one assembler can be shared between exports.
    """

    def assemble(
        self,
        blocks: Iterable[Block],
        info: Optional[DocumentInfo] = None,
        options: Optional[ExportOptions] = None,
        template: Optional[bytes] = None,
    ) -> bytes:
        """Return the serialized document.

        Args:
            blocks: Converted document content, title and summary included.
            info: Title and author written to the core properties.
            options: Page, header/footer and TOC settings.
            template: An original .docx whose styles and page setup are
                reused; its body is replaced by *blocks*.

        Raises:
            ExportSerializationError: When python-docx fails to build or save
                the document.
        """
        blocks = list(blocks)
        info = info or DocumentInfo()
        options = options or ExportOptions()
        logger.info("Export: assembling %d blocks into .docx", len(blocks))
        try:
            doc = self._new_document(template, options)
            self._apply_core_properties(doc, info)
            self._write_body(doc, blocks, options)
            self._write_headers_and_footers(doc, options)
            buffer = io.BytesIO()
            doc.save(buffer)
        except ExportSerializationError:
            raise
        except Exception as exc:
            logger.error("Document assembly failed", exc_info=True)
            raise ExportSerializationError("Could not build the Word document", cause=exc) from exc
        data = buffer.getvalue()
        logger.info("Export: document assembled (%d bytes)", len(data))
        return data

    # ------------------------------------------------------------------
    # Document setup
    # ------------------------------------------------------------------
    def _new_document(self, template: Optional[bytes], options: ExportOptions):
        if template:
            try:
                doc = docx.Document(io.BytesIO(template))
            except Exception as exc:
                logger.warning("Stored original could not be used as template: %s", exc)
            else:
                _clear_body(doc)
                logger.debug("Using stored original as style template")
                return doc

        doc = docx.Document()
        section = doc.sections[0]
        width, height = options.page_dimensions
        section.page_width = Twips(width)
        section.page_height = Twips(height)
        for side in ("top_margin", "bottom_margin", "left_margin", "right_margin"):
            setattr(section, side, Twips(options.margin))

        normal = doc.styles["Normal"]
        normal.font.name = options.font
        normal.font.size = Pt(options.font_size / 2)
        return doc

    @staticmethod
    def _apply_core_properties(doc, info: DocumentInfo) -> None:
        props = doc.core_properties
        props.title = sanitize_text(info.title or "")
        props.author = sanitize_text(info.author or "")
        props.last_modified_by = props.author

    # ------------------------------------------------------------------
    # Body
    # ------------------------------------------------------------------
    def _write_body(self, doc, blocks: List[Block], options: ExportOptions) -> None:
        lead = 0
        while (lead < len(blocks) and isinstance(blocks[lead], Paragraph)
               and blocks[lead].style_name in _LEADING_STYLES):
            lead += 1

        self._write_blocks(doc, doc, blocks[:lead])
        if options.include_toc:
            entries = compute_toc(blocks[lead:], options.chars_per_page)
            write_toc(doc, entries, self._content_width(doc))
            logger.info("Export: table of contents with %d entries", len(entries))
        self._write_blocks(doc, doc, blocks[lead:])

    @staticmethod
    def _content_width(doc) -> int:
        """Text width of the first section in twips (6.5" when unknown)."""
        section = doc.sections[0]
        try:
            width = section.page_width - section.left_margin - section.right_margin
        except TypeError:
            return 9360
        return int(width) // 635  # EMU per twip

    def _write_blocks(self, doc, container, blocks: Iterable[Block]) -> None:
        """Write *blocks* into *container* (the document body or a table cell)."""
        for block in blocks:
            if isinstance(block, Paragraph):
                self._write_paragraph(doc, container, block)
            elif isinstance(block, Callout):
                for paragraph in block.paragraphs:
                    self._write_paragraph(doc, container, paragraph)
            elif isinstance(block, ImageBlock):
                self._write_image(container, block)
            elif isinstance(block, TableRow):
                self._write_table_row(doc, container, block)
            elif isinstance(block, PageBreak):
                container.add_paragraph().add_run().add_break(WD_BREAK.PAGE)
            else:
                logger.warning("Skipping unknown block type %s", type(block).__name__)

    def _ensure_style(self, doc, name: str) -> str:
        """Return *name*, creating a paragraph style based on Normal if missing."""
        styles = doc.styles
        if name in styles:
            return name
        style = styles.add_style(name, WD_STYLE_TYPE.PARAGRAPH)
        style.base_style = styles["Normal"]
        if name.startswith("Heading") or name in _LEADING_STYLES:
            style.font.bold = True
        logger.debug("Created missing paragraph style '%s'", name)
        return name

    def _style_for(self, block: Paragraph) -> str:
        if block.style_name:
            return block.style_name
        if block.heading:
            return f"Heading {block.heading}"
        return "Normal"

    def _write_paragraph(self, doc, container, block: Paragraph) -> None:
        paragraph = container.add_paragraph(style=self._ensure_style(doc, self._style_for(block)))
        if block.shading is not None:
            _apply_shading(paragraph, block.shading)

        fmt = paragraph.paragraph_format
        spacing = block.spacing
        if spacing.before is not None:
            fmt.space_before = Twips(spacing.before)
        if spacing.after is not None:
            fmt.space_after = Twips(spacing.after)
        if spacing.line is not None:
            fmt.line_spacing = spacing.line / 240
        if block.indent is not None:
            if block.indent.left is not None:
                fmt.left_indent = Twips(block.indent.left)
            if block.indent.right is not None:
                fmt.right_indent = Twips(block.indent.right)
            if block.indent.first_line is not None:
                fmt.first_line_indent = Twips(block.indent.first_line)
        if block.alignment in _ALIGNMENTS:
            paragraph.alignment = _ALIGNMENTS[block.alignment]

        for run in block.runs:
            self._write_run(paragraph, run)

    @staticmethod
    def _write_run(paragraph, text_run: TextRun) -> None:
        if text_run.line_break:
            paragraph.add_run().add_break(WD_BREAK.LINE)
            return
        run = paragraph.add_run(text_run.text)
        style = text_run.style
        if style.bold:
            run.bold = True
        if style.italics:
            run.italic = True
        if style.underline:
            run.underline = True
        font = run.font
        if style.strike:
            font.strike = True
        if style.super_script:
            font.superscript = True
        elif style.sub_script:
            font.subscript = True
        if style.color:
            font.color.rgb = RGBColor.from_string(style.color)
        if style.font:
            font.name = style.font
        if text_run.size:
            font.size = Pt(text_run.size / 2)

    def _write_image(self, container, image: ImageBlock) -> None:
        paragraph = container.add_paragraph()
        if image.alignment in _ALIGNMENTS:
            paragraph.alignment = _ALIGNMENTS[image.alignment]
        paragraph.add_run().add_picture(
            io.BytesIO(image.data),
            width=Emu(image.width * EMU_PER_PIXEL),
            height=Emu(image.height * EMU_PER_PIXEL),
        )

    def _write_table_row(self, doc, container, row: TableRow) -> None:
        if not row.cells:
            return
        table = container.add_table(1, len(row.cells))
        _remove_table_borders(table)
        for cell, content in zip(table.rows[0].cells, row.cells):
            placeholder = cell.paragraphs[0]._p
            self._write_blocks(doc, cell, content)
            if len(cell._tc.xpath("./w:p | ./w:tbl")) > 1:
                cell._tc.remove(placeholder)
        if container is doc:
            # keep consecutive column rows from merging into one table
            doc.add_paragraph()

    # ------------------------------------------------------------------
    # Headers and footers
    # ------------------------------------------------------------------
    def _write_headers_and_footers(self, doc, options: ExportOptions) -> None:
        section = doc.sections[0]
        if options.facing_pages:
            doc.settings.odd_and_even_pages_header_footer = True
            section.gutter = FACING_GUTTER
            _enable_mirror_margins(doc)

        for position, text, align in (
            ("header", options.header_text, options.header_align),
            ("footer", options.footer_text, options.footer_align),
        ):
            with_number = options.show_page_numbers and options.page_number_position == position
            if not text and not with_number:
                continue
            if options.facing_pages:
                self._fill_header_footer(getattr(section, position), text, with_number, "right", False)
                self._fill_header_footer(getattr(section, f"even_page_{position}"), text, with_number, "left", True)
            else:
                self._fill_header_footer(getattr(section, position), text, with_number, align, False)

    @staticmethod
    def _fill_header_footer(part, text: str, with_number: bool, align: str, number_first: bool) -> None:
        """Write text lines and the page number into a header or footer.

        The number goes before the text when *number_first* (even pages of a
        facing-pages layout) and after it otherwise, separated by a pipe.
        """
        part.is_linked_to_previous = False
        # a template document may already carry header/footer content
        for child in list(part._element):
            part._element.remove(child)
        paragraph = part.add_paragraph()
        paragraph.alignment = _ALIGNMENTS.get(align, WD_ALIGN_PARAGRAPH.CENTER)

        def separator() -> None:
            run = paragraph.add_run(SEPARATOR)
            run.font.color.rgb = RGBColor.from_string(SEPARATOR_COLOR)

        if with_number and number_first:
            _append_page_field(paragraph)
            if text:
                separator()
        for index, line in enumerate(text.split("\n") if text else []):
            if index:
                paragraph.add_run().add_break(WD_BREAK.LINE)
            run = paragraph.add_run(sanitize_text(line))
            run.font.size = Pt(HEADER_FOOTER_SIZE / 2)
            run.font.color.rgb = RGBColor.from_string(HEADER_FOOTER_COLOR)
        if with_number and not number_first:
            if text:
                separator()
            _append_page_field(paragraph)
