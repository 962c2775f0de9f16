from __future__ import annotations

"""High-level conversion service for the manuscript editor.

Entry-point for any front-end (GUI, web bridge, scripts) that imports Word
documents into editor HTML or exports editor HTML to .docx / standalone
HTML.  The service owns the per-session collaborators (document store,
import worker, file saver) and wires the core pipeline together:

import:  bytes -> DocxImporter (worker thread, or inline fallback) -> ImportResult
export:  HTML -> BlockConverter -> title / summary -> DocumentAssembler | render_html -> FileSaver
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Mapping, Optional, Tuple, Union

from quill_toolkit.config import ConfigManager
from quill_toolkit.core.converter import BlockConverter, ImageResolver, plain_text_paragraphs
from quill_toolkit.core.converter.html_utils import element_text, find_by_class, parse_html
from quill_toolkit.core.document_store import DocumentStore
from quill_toolkit.core.exceptions import WorkerCommunicationError
from quill_toolkit.core.generators import DocumentAssembler, build_analysis_summary, render_html
from quill_toolkit.core.importers import DocxImporter, text_to_html
from quill_toolkit.core.models import (
    Block,
    ChapterAnalysis,
    DocumentInfo,
    ExportOptions,
    ImportResult,
    Paragraph,
    Spacing,
    TextRun,
)
from quill_toolkit.core.parser import StyleMap
from quill_toolkit.core.services.file_saver import FileSaver
from quill_toolkit.core.services.import_worker import DEFAULT_TIMEOUT, ImportWorker, ProgressCallback
from quill_toolkit.core.utils import (
    DOCX_MIME_TYPE,
    HTML_MIME_TYPE,
    file_stem,
    normalize_file_name,
    sanitize_text,
)

logger = logging.getLogger(__name__)

__all__ = ["ConversionService", "extract_document_title", "has_explicit_title", "UNTITLED"]

UNTITLED = "Untitled Document"
MAX_TITLE_CONTENT_LENGTH = 100
_LEADING_STYLES = ("Title", "Subtitle")

AnalysisInput = Union[ChapterAnalysis, Mapping[str, Any], None]
DocxSource = Union[bytes, bytearray, str, Path, BinaryIO]


# ---------------------------------------------------------------------------
# Title helpers
# ---------------------------------------------------------------------------

def _first_text(elements) -> Optional[str]:
    for element in elements:
        text = sanitize_text(element_text(element)).strip()
        if text:
            return text
    return None


def extract_document_title(html: Optional[str], file_name: Optional[str] = None) -> str:
    """Return the document title found in *html*.

    Lookup order: ``.doc-title``, ``.book-title``, the first ``h1``, a short
    ``.title-content``, the first ``h2``-``h6``, the file-name stem and
    finally ``"Untitled Document"``.

    Control and private-use characters are removed from the result.
    """
    body = parse_html(html or "")
    if body is not None:
        candidates = (
            find_by_class(body, "doc-title"),
            find_by_class(body, "book-title"),
            body.xpath("descendant::h1"),
        )
        for elements in candidates:
            title = _first_text(elements)
            if title:
                return title
        title = _first_text(find_by_class(body, "title-content"))
        if title and len(title) <= MAX_TITLE_CONTENT_LENGTH:
            return title
        title = _first_text(body.xpath(
            "descendant::*[self::h2 or self::h3 or self::h4 or self::h5 or self::h6]"
        ))
        if title:
            return title
    return sanitize_text(file_stem(file_name)).strip() or UNTITLED


def has_explicit_title(html: Optional[str]) -> bool:
    """True when *html* already carries a title element (doc-title, book-title or h1)."""
    body = parse_html(html or "")
    if body is None:
        return False
    return bool(find_by_class(body, "doc-title") or find_by_class(body, "book-title")
                or body.xpath("descendant::h1"))


def _title_block(title: str) -> Paragraph:
    return Paragraph(
        runs=[TextRun(title)],
        style_name="Title",
        alignment="center",
        spacing=Spacing(after=400),
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ConversionService:
    """Business-logic façade with zero GUI dependencies.

    Parameters
    ----------
    store
        Session store for imported originals; a new empty store by default.
    worker
        Optional :class:`ImportWorker`; without one, imports run inline.
    saver
        Delivery of exported files; defaults to the download directory.
    style_map
        Shared Word style lookup.
    export_defaults
        The ``export`` configuration section; read from :class:`ConfigManager`
        when omitted.
    worker_timeout
        Seconds to wait for the worker before converting inline.
    """

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        worker: Optional[ImportWorker] = None,
        saver: Optional[FileSaver] = None,
        style_map: Optional[StyleMap] = None,
        export_defaults: Optional[Mapping[str, Any]] = None,
        worker_timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if export_defaults is None:
            export_defaults = ConfigManager().get_export_defaults()
        self.export_defaults: Dict[str, Any] = dict(export_defaults)
        self.style_map = style_map or StyleMap()
        self.store = store if store is not None else DocumentStore()
        self.importer = DocxImporter(self.style_map, image_timeout=self.export_defaults.get("http_timeout", 10))
        self.worker = worker
        self.saver = saver or FileSaver(self.export_defaults.get("download_dir"))
        self.assembler = DocumentAssembler()
        self.worker_timeout = worker_timeout
        self.logger = logger

    # ---------------------------------------------------------------------
    # Import
    # ---------------------------------------------------------------------
    def import_docx(
        self,
        source: DocxSource,
        file_name: Optional[str] = None,
        preserve_original: bool = True,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ImportResult:
        """Import a .docx given as bytes, a path or a binary file object.

        Raises:
            DocumentImportError: The file is damaged or not a Word document.
        """
        data, file_name = self._read_source(source, file_name)
        self.logger.info("Import: %s", file_name or "document")

        converted = None
        if self.worker is not None:
            try:
                converted = self.worker.process_docx(data, file_name, self.worker_timeout, on_progress)
            except WorkerCommunicationError as exc:
                self.logger.warning("Import worker unavailable (%s), converting inline", exc)
        if converted is None:
            converted = self.importer.convert(data, file_name)

        html, plain_text, warnings = converted
        result = self.importer.build_result(
            data, file_name, html, plain_text, warnings,
            preserve_original=preserve_original, store=self.store,
        )
        self.logger.info("Import OK: %s as %s", result.metadata.file_name, result.document_id)
        return result

    def import_text(self, text: str) -> str:
        """Convert pasted plain text into editor paragraphs."""
        if self.worker is not None:
            try:
                return self.worker.process_text(text, self.worker_timeout)
            except WorkerCommunicationError as exc:
                self.logger.warning("Import worker unavailable (%s), converting inline", exc)
        return text_to_html(text)

    @staticmethod
    def _read_source(source: DocxSource, file_name: Optional[str]) -> Tuple[bytes, Optional[str]]:
        if isinstance(source, (bytes, bytearray)):
            return bytes(source), file_name
        if hasattr(source, "read"):
            return source.read(), file_name or Path(getattr(source, "name", "") or "").name or None
        path = Path(source)
        return path.read_bytes(), file_name or path.name

    # ---------------------------------------------------------------------
    # Export
    # ---------------------------------------------------------------------
    def build_blocks(
        self,
        text: str,
        html: str,
        file_name: Optional[str] = None,
        analysis: AnalysisInput = None,
        options: Optional[ExportOptions] = None,
    ) -> Tuple[List[Block], str, ExportOptions]:
        """Run the shared export pipeline; return ``(blocks, title, options)``.

        The block order is: leading title blocks, analysis summary (analysis
        mode with highlights only), document content.
        """
        options = options or self.default_options()
        if options.mode == "writer":
            analysis = None
            options = replace(options, include_highlights=False)
        if isinstance(analysis, Mapping):
            analysis = ChapterAnalysis.from_dict(analysis)

        converter = BlockConverter(
            self.style_map,
            ImageResolver(options.image_max_width, options.image_max_height,
                          timeout=self.export_defaults.get("http_timeout", 10)),
            include_highlights=options.include_highlights,
        )
        blocks = converter.convert(html) if html and html.strip() else []
        if not blocks:
            blocks = plain_text_paragraphs(text)

        title = extract_document_title(html, file_name)
        if not has_explicit_title(html):
            blocks.insert(0, _title_block(title))

        if options.include_toc is None:
            options = replace(options, include_toc="toc-placeholder" in (html or ""))

        if analysis is not None and options.include_highlights:
            lead = 0
            while (lead < len(blocks) and isinstance(blocks[lead], Paragraph)
                   and blocks[lead].style_name in _LEADING_STYLES):
                lead += 1
            blocks[lead:lead] = build_analysis_summary(analysis)

        self.logger.info("Export: %d blocks for '%s' (mode=%s, highlights=%s, toc=%s)",
                         len(blocks), title, options.mode, options.include_highlights, options.include_toc)
        return blocks, title, options

    def default_options(self, **overrides: Any) -> ExportOptions:
        return ExportOptions.from_config(self.export_defaults, **overrides)

    def build_docx(
        self,
        text: str,
        html: str,
        file_name: Optional[str] = None,
        analysis: AnalysisInput = None,
        include_highlights: Optional[bool] = None,
        mode: Optional[str] = None,
        options: Optional[ExportOptions] = None,
        document_id: Optional[str] = None,
        author: str = "",
    ) -> bytes:
        """Return the .docx bytes for the editor content.

        When *document_id* names a stored original, that document is used as
        the style template.

        Raises:
            ExportSerializationError: python-docx could not build the document.
        """
        options = self._merge_options(options, mode, include_highlights)
        blocks, title, options = self.build_blocks(text, html, file_name, analysis, options)
        template = self.store.get_original(document_id) if document_id else None
        if template is not None:
            self.logger.info("Export: reusing stored original %s as template", document_id)
        return self.assembler.assemble(blocks, DocumentInfo(title=title, author=author), options, template)

    def export_to_docx(
        self,
        text: str,
        html: str,
        file_name: Optional[str] = None,
        analysis: AnalysisInput = None,
        include_highlights: Optional[bool] = None,
        mode: Optional[str] = None,
        options: Optional[ExportOptions] = None,
        document_id: Optional[str] = None,
        author: str = "",
    ) -> Optional[Path]:
        """Build and save the .docx; returns the written path or ``None`` if cancelled."""
        data = self.build_docx(text, html, file_name, analysis, include_highlights,
                               mode, options, document_id, author)
        return self.saver.save(data, normalize_file_name(file_name, ".docx"), DOCX_MIME_TYPE)

    def build_html(
        self,
        text: str,
        html: str,
        file_name: Optional[str] = None,
        analysis: AnalysisInput = None,
        include_highlights: bool = True,
    ) -> Tuple[str, str]:
        """Return ``(document_html, title)`` for the standalone HTML export."""
        mode = "analysis" if analysis is not None else "writer"
        options = self.default_options(mode=mode, include_highlights=include_highlights)
        blocks, title, _ = self.build_blocks(text, html, file_name, analysis, options)
        return render_html(blocks, title, self.style_map), title

    def export_to_html(
        self,
        text: str,
        html: str,
        file_name: Optional[str] = None,
        analysis: AnalysisInput = None,
        include_highlights: bool = True,
    ) -> Optional[Path]:
        """Build and save the standalone HTML page, named after the document title."""
        document, title = self.build_html(text, html, file_name, analysis, include_highlights)
        return self.saver.save(document.encode("utf-8"), normalize_file_name(f"{title}.html", ".html"), HTML_MIME_TYPE)

    def _merge_options(self, options: Optional[ExportOptions], mode: Optional[str],
                       include_highlights: Optional[bool]) -> ExportOptions:
        options = options or self.default_options()
        changes: Dict[str, Any] = {}
        if mode is not None:
            changes["mode"] = mode
        if include_highlights is not None:
            changes["include_highlights"] = include_highlights
        return replace(options, **changes) if changes else options
