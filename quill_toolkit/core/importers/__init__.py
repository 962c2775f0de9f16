from __future__ import annotations

"""Importers turning source documents into editor HTML.

Key components:
- DocxImporter: Word (.docx) binaries -> HTML, plain text and metadata
- text_to_html: plain text -> editor paragraphs
"""

from .docx_importer import DocxImporter, enhance_imported_html
from .text_importer import text_to_html

__all__ = ["DocxImporter", "enhance_imported_html", "text_to_html"]
