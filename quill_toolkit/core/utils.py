from __future__ import annotations

"""Simple reusable helper functions.

These helpers are side-effect-free and contain no disk I/O; they can be used
across all layers of the toolkit.
"""

import logging
import re
import time
import uuid
from pathlib import PurePath
from typing import Dict, Optional

__all__ = [
    "WINGDINGS_TO_UNICODE",
    "sanitize_text",
    "normalize_whitespace",
    "collapse_whitespace",
    "normalize_file_name",
    "file_stem",
    "DOCUMENT_EXTENSIONS",
    "generate_document_id",
    "DOCX_MIME_TYPE",
    "HTML_MIME_TYPE",
]

logger = logging.getLogger(__name__)

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
HTML_MIME_TYPE = "text/html"

# Mapping for common Wingdings characters found in Word documents
WINGDINGS_TO_UNICODE: Dict[str, str] = {
    # Unchecked box
    "\uf0a3": "☐",
    "\uf06f": "☐",  # Alternative from another font/version
    # Checked box
    "\uf0a4": "☑",
    "\uf078": "☑",  # Alternative checked box
    # Simple check mark
    "\uf0a8": "✓",
}

# Characters WordprocessingML rejects, plus the private-use area
_CONTROL_CHARS = re.compile(r"[\u0000-\u0008\u000B\u000C\u000E-\u001F\u007F]")
_PRIVATE_USE = re.compile(r"[\ue000-\uf8ff]")
_ILLEGAL_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]+')
_WHITESPACE = re.compile(r"\s+")

# Suffixes replaced when an export name is normalized
DOCUMENT_EXTENSIONS = frozenset({"docx", "doc", "html", "htm", "txt", "md", "rtf", "odt"})


def sanitize_text(text: str) -> str:
    """Return *text* without characters a Word document cannot store.

    Known Wingdings glyphs are mapped to their Unicode equivalent first; any
    other private-use character and all control characters except tab, line
    feed and carriage return are removed.
    """
    if not text:
        return ""
    text = "".join(WINGDINGS_TO_UNICODE.get(ch, ch) for ch in text)
    text = _CONTROL_CHARS.sub("", text)
    return _PRIVATE_USE.sub("", text)


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace sequence to one space (no trimming)."""
    return _WHITESPACE.sub(" ", text)


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace per line, dropping empty lines.

    >>> collapse_whitespace("  a   b \\n\\n  c ")
    'a b\\nc'
    """
    lines = (normalize_whitespace(segment).strip() for segment in text.split("\n"))
    return "\n".join(line for line in lines if line)


def _split_document_extension(name: str) -> tuple[str, str]:
    """Split *name* into ``(stem, suffix)`` when it ends in a document extension.

    Any other dot is part of the name: ``"Chapter 1. The Start"`` has no
    suffix.
    """
    stem, dot, suffix = name.rpartition(".")
    if dot and stem and suffix.lower() in DOCUMENT_EXTENSIONS:
        return stem, "." + suffix
    return name, ""


def normalize_file_name(file_name: Optional[str], extension: str, fallback: str = "edited-chapter") -> str:
    """Return a file-system-safe name ending in *extension*.

    Illegal characters (``<>:"/\\|?*``) become ``-``. A known document
    extension is replaced, anything else gets *extension* appended.

    >>> normalize_file_name("Chapter: 1.txt", ".docx")
    'Chapter- 1.docx'
    >>> normalize_file_name("Dr. Jekyll", ".html")
    'Dr. Jekyll.html'
    """
    if not extension.startswith("."):
        extension = "." + extension
    name = _ILLEGAL_FILENAME_CHARS.sub("-", (file_name or "").strip()).strip()
    if not name or name in {".", ".."}:
        return fallback + extension
    stem, _ = _split_document_extension(name)
    return (stem.strip() or fallback) + extension


def file_stem(file_name: Optional[str]) -> str:
    """Return the file name without directory and document extension ('' if none)."""
    if not file_name:
        return ""
    name = PurePath(file_name.replace("\\", "/")).name
    return _split_document_extension(name)[0].strip()


def generate_document_id() -> str:
    """Return a new ``doc_<epoch-ms>_<9 random chars>`` identifier."""
    return f"doc_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
