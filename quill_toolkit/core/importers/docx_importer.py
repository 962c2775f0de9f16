from __future__ import annotations

"""Word (.docx) to editor HTML importer.

The importer reads a .docx binary with python-docx and emits HTML in the
editor vocabulary: paragraph styles become ``tag.class`` targets through the
:class:`StyleMap`, character styles and direct formatting become inline
wrappers, numbered/bulleted paragraphs are grouped into lists and embedded
images are inlined as base64 data URIs.

:meth:`DocxImporter.convert` is a pure function of the input bytes so it can
run on the import worker thread; :meth:`DocxImporter.build_result` creates the
document id and metadata and writes the original into the injected
:class:`DocumentStore`, only once conversion has succeeded.
"""

import io
import logging
import zipfile
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set, Tuple

import docx  # type: ignore
import lxml.html
from docx.enum.text import WD_ALIGN_PARAGRAPH  # type: ignore
from docx.opc.exceptions import PackageNotFoundError  # type: ignore
from docx.table import Table  # type: ignore
from docx.text.paragraph import Paragraph  # type: ignore
from lxml import etree as ET

from quill_toolkit.core.converter.html_utils import append_text, serialize_children
from quill_toolkit.core.document_store import DocumentStore
from quill_toolkit.core.exceptions import DocumentImportError
from quill_toolkit.core.models import DocumentMetadata, ImportResult
from quill_toolkit.core.parser import StyleMap, collect_image_data_uris, iter_block_items
from quill_toolkit.core.utils import generate_document_id, sanitize_text

logger = logging.getLogger(__name__)

__all__ = ["DocxImporter", "enhance_imported_html"]

DEFAULT_FILE_NAME = "document.docx"

_ALIGNMENT_CSS = {
    WD_ALIGN_PARAGRAPH.CENTER: "center",
    WD_ALIGN_PARAGRAPH.RIGHT: "right",
    WD_ALIGN_PARAGRAPH.JUSTIFY: "justify",
}
_DEFAULT_STYLES = {"normal", "default paragraph font"}
_HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
_UNORDERED_FORMATS = {"bullet", "none"}

# Inline wrapper tags in nesting order (outermost first)
_FORMAT_TAGS = ("strong", "em", "u", "s", "sup", "sub")

# (character style selector, bold, italic, underline, strike, superscript, subscript)
_RunKey = Tuple[Optional[str], bool, bool, bool, bool, bool, bool]


# ---------------------------------------------------------------------------
# lxml building helpers
# ---------------------------------------------------------------------------

def _write_text(parent: ET._Element, text: str) -> None:
    """Append *text* to *parent*, turning newlines into ``<br>`` elements."""
    for index, line in enumerate(text.split("\n")):
        if index:
            ET.SubElement(parent, "br")
        append_text(parent, line)


def _element_for_selector(selector: str) -> ET._Element:
    tag, _, css_class = selector.partition(".")
    element = ET.Element(tag)
    if css_class:
        element.set("class", css_class)
    return element


# ---------------------------------------------------------------------------
# HTML post-processing
# ---------------------------------------------------------------------------

def _is_centered(element: ET._Element) -> bool:
    style = element.get("style") or ""
    return "text-align: center" in style or "text-align:center" in style


def enhance_imported_html(html: str) -> str:
    """Add editor classes that Word documents rarely carry explicitly.

    * the first unclassed paragraph after a heading becomes ``first-paragraph``;
    * other unclassed paragraphs longer than 100 characters become ``body-text``;
    * a short centered paragraph among the first three becomes the document
      title (first one) or a ``doc-subtitle``.
    """
    if not html or not html.strip():
        return html
    root = lxml.html.fragment_fromstring(html, create_parent="div")

    after_heading = False
    for index, p in enumerate(list(root.iter("p"))):
        text = (p.text_content() or "").strip()
        previous = p.getprevious()
        if previous is not None and isinstance(previous.tag, str) and previous.tag.lower() in _HEADING_TAGS:
            after_heading = True

        if not p.get("class") and text:
            if after_heading:
                p.set("class", "first-paragraph")
                after_heading = False
            elif len(text) > 100:
                p.set("class", "body-text")

        if _is_centered(p) and index < 3 and len(text) < 100 and not p.get("class"):
            if index == 0:
                p.tag = "h1"
                p.set("class", "doc-title")
                del p.attrib["style"]
            else:
                p.set("class", "doc-subtitle")

    return serialize_children(root)


# ---------------------------------------------------------------------------
# Importer
# ---------------------------------------------------------------------------

class DocxImporter:
    """Convert .docx binaries to editor HTML, plain text and warnings.

    Parameters
    ----------
    style_map
        Word style lookup; defaults to the canonical map plus configured aliases.
    image_timeout
        Timeout in seconds for externally linked images.
    """

    def __init__(self, style_map: Optional[StyleMap] = None, image_timeout: float = 10) -> None:
        self.style_map = style_map or StyleMap()
        self.image_timeout = image_timeout

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def convert(self, data: bytes, file_name: Optional[str] = None) -> Tuple[str, str, List[str]]:
        """Return ``(html, plain_text, warnings)`` for a .docx binary.

        Raises:
            DocumentImportError: ``reason="corrupt"`` when the container cannot
                be read, ``reason="unsupported"`` when it is not a Word document.
        """
        file_name = file_name or DEFAULT_FILE_NAME
        logger.info("Import: reading %s (%d bytes)", file_name, len(data))
        document = self._open(data, file_name)
        try:
            html, plain_text, warnings = self._convert_document(document)
        except DocumentImportError:
            raise
        except Exception as exc:
            logger.error("Import of %s failed during conversion", file_name, exc_info=True)
            raise DocumentImportError("corrupt", file_name, cause=exc) from exc
        logger.info("Import: converted %s with %d warning(s)", file_name, len(warnings))
        return html, plain_text, warnings

    def build_result(
        self,
        data: bytes,
        file_name: Optional[str],
        html: str,
        plain_text: str,
        warnings: List[str],
        preserve_original: bool = True,
        store: Optional[DocumentStore] = None,
    ) -> ImportResult:
        """Wrap a successful conversion into an :class:`ImportResult`.

        The original binary is written to *store* here, after conversion, so
        a failed import never leaves an entry behind.
        """
        document_id = generate_document_id()
        metadata = DocumentMetadata(
            file_name=file_name or DEFAULT_FILE_NAME,
            uploaded_at=datetime.now(timezone.utc),
            original_size_bytes=len(data),
            has_images="<img" in html,
            detected_styles=tuple(self.style_map.detect_styles(html)),
        )
        if preserve_original and store is not None:
            store.put(document_id, data, metadata)
        return ImportResult(
            document_id=document_id,
            html=html,
            plain_text=plain_text,
            metadata=metadata,
            warnings=list(warnings),
        )

    def import_docx(
        self,
        data: bytes,
        file_name: Optional[str] = None,
        preserve_original: bool = True,
        store: Optional[DocumentStore] = None,
    ) -> ImportResult:
        """Convert *data* on the calling thread and build the result."""
        html, plain_text, warnings = self.convert(data, file_name)
        return self.build_result(data, file_name, html, plain_text, warnings, preserve_original, store)

    # ------------------------------------------------------------------
    # Container handling
    # ------------------------------------------------------------------
    @staticmethod
    def _open(data: bytes, file_name: str):
        if not data or not zipfile.is_zipfile(io.BytesIO(data)):
            raise DocumentImportError("corrupt", file_name)
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                names = set(archive.namelist())
        except zipfile.BadZipFile as exc:
            raise DocumentImportError("corrupt", file_name, cause=exc) from exc
        if "[Content_Types].xml" not in names or not any(n.startswith("word/") for n in names):
            raise DocumentImportError("unsupported", file_name)

        try:
            return docx.Document(io.BytesIO(data))
        except (zipfile.BadZipFile, PackageNotFoundError, KeyError, ET.XMLSyntaxError) as exc:
            raise DocumentImportError("corrupt", file_name, cause=exc) from exc
        except ValueError as exc:
            # python-docx rejects packages whose main part is not a document
            raise DocumentImportError("unsupported", file_name, cause=exc) from exc

    # ------------------------------------------------------------------
    # Document conversion
    # ------------------------------------------------------------------
    def _convert_document(self, document) -> Tuple[str, str, List[str]]:
        images, warnings = collect_image_data_uris(document, timeout=self.image_timeout)
        unknown_styles: Set[str] = set()
        texts: List[str] = []

        root = ET.Element("div")
        current_list: Optional[ET._Element] = None
        for block in iter_block_items(document):
            if isinstance(block, Table):
                current_list = None
                table = self._convert_table(block, images, texts, unknown_styles)
                if table is not None:
                    root.append(table)
                continue

            tag, css_class, list_tag = self._classify(block, document, unknown_styles)
            element = self._convert_paragraph(block, tag, css_class, images, texts)
            if element is None:
                continue
            if list_tag:
                if current_list is None or current_list.tag != list_tag:
                    current_list = ET.SubElement(root, list_tag)
                current_list.append(element)
            else:
                current_list = None
                root.append(element)

        for style_name in sorted(unknown_styles):
            warnings.append(f"Unrecognised paragraph style: '{style_name}'")

        html = enhance_imported_html(serialize_children(root))
        plain_text = "\n\n".join(texts)
        return html, plain_text, warnings

    def _classify(self, paragraph: Paragraph, document, unknown_styles: Set[str]) -> Tuple[str, Optional[str], Optional[str]]:
        """Return ``(tag, class, list tag)`` for a Word paragraph."""
        try:
            style_name = paragraph.style.name if paragraph.style is not None else None
        except Exception:
            style_name = None

        mapping = self.style_map.mapping_for(style_name) if style_name else None
        if mapping is not None and mapping.kind != "paragraph":
            mapping = None

        if mapping is not None and mapping.tag == "li":
            return "li", mapping.css_class, "ol" if mapping.css_class == "list-number" else "ul"

        num_ids = paragraph._p.xpath("./w:pPr/w:numPr/w:numId/@w:val")
        if num_ids and (mapping is None or mapping.tag not in _HEADING_TAGS):
            ilvl = paragraph._p.xpath("./w:pPr/w:numPr/w:ilvl/@w:val")
            ordered = self._is_ordered(document, num_ids[0], ilvl[0] if ilvl else "0")
            return "li", None, "ol" if ordered else "ul"

        if mapping is not None:
            return mapping.tag, mapping.css_class, None

        if style_name and style_name.lower() not in _DEFAULT_STYLES:
            unknown_styles.add(style_name)
        return "p", None, None

    @staticmethod
    def _is_ordered(document, num_id: str, ilvl: str) -> bool:
        """Resolve the list level's ``numFmt``; bullets unless proven ordered."""
        try:
            numbering_root = document.part.numbering_part.element
            abstract_ids = numbering_root.xpath(f'./w:num[@w:numId="{num_id}"]/w:abstractNumId/@w:val')
            if not abstract_ids:
                return False
            formats = numbering_root.xpath(
                f'./w:abstractNum[@w:abstractNumId="{abstract_ids[0]}"]/w:lvl[@w:ilvl="{ilvl}"]/w:numFmt/@w:val'
            )
        except Exception as exc:
            logger.debug("Numbering lookup failed for numId %s: %s", num_id, exc)
            return False
        return bool(formats) and formats[0] not in _UNORDERED_FORMATS

    def _convert_paragraph(
        self,
        paragraph: Paragraph,
        tag: str,
        css_class: Optional[str],
        images: Dict[str, str],
        texts: List[str],
    ) -> Optional[ET._Element]:
        element = ET.Element(tag)
        if css_class:
            element.set("class", css_class)
        alignment = _ALIGNMENT_CSS.get(paragraph.alignment)
        if alignment:
            element.set("style", f"text-align: {alignment}")

        self._write_runs(element, paragraph, images)
        if not len(element) and not (element.text or "").strip():
            return None

        text = sanitize_text(paragraph.text or "").strip()
        if text:
            texts.append(text)
        return element

    def _convert_table(
        self,
        table: Table,
        images: Dict[str, str],
        texts: List[str],
        unknown_styles: Set[str],
    ) -> Optional[ET._Element]:
        table_el = ET.Element("table")
        tbody = ET.SubElement(table_el, "tbody")
        for row in table.rows:
            tr = ET.SubElement(tbody, "tr")
            seen: List[ET._Element] = []
            for cell in row.cells:
                # Horizontally merged cells are reported once per grid column
                if any(cell._tc is tc for tc in seen):
                    continue
                seen.append(cell._tc)
                td = ET.SubElement(tr, "td")
                for item in iter_block_items(cell):
                    if isinstance(item, Table):
                        nested = self._convert_table(item, images, texts, unknown_styles)
                        if nested is not None:
                            td.append(nested)
                        continue
                    paragraph = self._convert_paragraph(item, "p", None, images, texts)
                    if paragraph is not None:
                        td.append(paragraph)
        if not table_el.xpath(".//text()[normalize-space()] | .//img"):
            return None
        return table_el

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------
    def _run_key(self, run) -> _RunKey:
        selector = None
        try:
            style = run.style
            mapping = self.style_map.mapping_for(style.name) if style is not None and style.name else None
            if mapping is not None and mapping.kind == "character":
                selector = mapping.selector
        except Exception:
            selector = None
        font = run.font
        return (
            selector,
            bool(run.bold),
            bool(run.italic),
            bool(run.underline),
            bool(font.strike),
            bool(font.superscript),
            bool(font.subscript) and not font.superscript,
        )

    def _write_runs(self, parent: ET._Element, paragraph: Paragraph, images: Dict[str, str]) -> None:
        """Group consecutive runs with identical formatting into one wrapper."""
        group: List[str] = []
        group_key: Optional[_RunKey] = None

        def finish_group() -> None:
            nonlocal group, group_key
            if group:
                self._emit(parent, group_key, sanitize_text("".join(group)))
            group = []
            group_key = None

        for item in paragraph.iter_inner_content():
            if hasattr(item, "address"):
                finish_group()
                link_text = sanitize_text(item.text or "")
                url = item.url or item.address
                if url:
                    anchor = ET.SubElement(parent, "a", href=url)
                    _write_text(anchor, link_text or url)
                else:
                    append_text(parent, link_text)
                continue

            run = item
            key = self._run_key(run)
            text = run.text or ""
            if text:
                if key != group_key:
                    finish_group()
                    group_key = key
                group.append(text)

            for r_id in run.element.xpath(".//@r:embed"):
                finish_group()
                src = images.get(r_id, "")
                ET.SubElement(parent, "img", src=src)
        finish_group()

    @staticmethod
    def _emit(parent: ET._Element, key: Optional[_RunKey], text: str) -> None:
        if not text:
            return
        if key is None:
            _write_text(parent, text)
            return
        selector, *flags = key
        outer: Optional[ET._Element] = None
        inner: Optional[ET._Element] = None
        if selector:
            outer = inner = _element_for_selector(selector)
        for tag, enabled in zip(_FORMAT_TAGS, flags):
            if not enabled or (inner is not None and inner.tag == tag):
                continue
            element = ET.Element(tag)
            if inner is None:
                outer = element
            else:
                inner.append(element)
            inner = element
        if outer is None:
            _write_text(parent, text)
            return
        _write_text(inner, text)
        parent.append(outer)
