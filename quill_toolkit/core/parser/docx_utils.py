from __future__ import annotations

"""Low-level DOCX and image utilities shared by the importer and converter."""

from typing import Dict, Generator, List, Tuple
import base64
import io
import logging
import requests
from urllib.parse import urlparse

from PIL import Image
from docx.document import Document as _Document  # type: ignore
from docx.oxml.table import CT_Tbl  # type: ignore
from docx.oxml.text.paragraph import CT_P  # type: ignore
from docx.table import _Cell, Table  # type: ignore
from docx.text.paragraph import Paragraph  # type: ignore

from quill_toolkit.core.exceptions import ImageResolutionFailure

logger = logging.getLogger(__name__)

__all__ = [
    "iter_block_items",
    "fetch_image",
    "convert_to_png",
    "to_data_uri",
    "collect_image_data_uris",
    "USER_AGENT",
]

USER_AGENT = "Quill-Toolkit"

# MIME types an HTML editor can display as-is
_BROWSER_IMAGE_TYPES = {"image/png", "image/jpeg", "image/gif", "image/webp", "image/svg+xml"}


# ---------------------------------------------------------------------------
# iter_block_items – recursive traversal
# ---------------------------------------------------------------------------

def iter_block_items(parent: _Document | _Cell) -> Generator[Paragraph | Table, None, None]:
    """Yield *Paragraph* and *Table* objects in document order (recursive).

    Unknown containers (content controls, text boxes) are descended into so
    their paragraphs are not lost.
    """

    if isinstance(parent, _Document):
        root_elm = parent.element.body
    elif isinstance(parent, _Cell):
        root_elm = parent._tc
    else:
        raise ValueError("Unsupported parent type for iter_block_items")

    def _walk(element):
        for child in element.iterchildren():
            if isinstance(child, CT_P):
                yield Paragraph(child, parent)
            elif isinstance(child, CT_Tbl):
                yield Table(child, parent)
            else:
                yield from _walk(child)

    yield from _walk(root_elm)


# ---------------------------------------------------------------------------
# Image loading
# ---------------------------------------------------------------------------

def fetch_image(url: str, timeout: float = 10) -> Tuple[bytes, str]:
    """Download *url* and return ``(data, content_type)``.

    Raises :class:`ImageResolutionFailure` on any network or HTTP error.
    """
    domain = urlparse(url).netloc or "unknown"
    try:
        response = requests.get(url, timeout=timeout, headers={'User-Agent': USER_AGENT})
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.debug("Failed to download image from %s: %s", domain, exc)
        raise ImageResolutionFailure(f"Could not download image from {domain}", url, exc) from exc
    content_type = response.headers.get('content-type', '').split(';')[0].strip().lower()
    return response.content, content_type


def convert_to_png(data: bytes) -> bytes:
    """Re-encode any Pillow-readable image as PNG."""
    img = Image.open(io.BytesIO(data))
    # Ensure RGB(A) mode for safer conversion
    if img.mode in ("P", "RGBA", "LA", "PA"):
        img = img.convert("RGBA")
    else:
        img = img.convert("RGB")
    png_buf = io.BytesIO()
    img.save(png_buf, format="PNG")
    return png_buf.getvalue()


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def collect_image_data_uris(doc: _Document, timeout: float = 10) -> Tuple[Dict[str, str], List[str]]:
    """Return ``(rId -> data URI, warnings)`` for every image relationship.

    Formats a browser cannot display (EMF, WMF, TIFF...) are converted to PNG
    when Pillow can read them. An image that cannot be read maps to ``""`` so
    the importer emits an empty placeholder instead of failing.
    """
    uris: Dict[str, str] = {}
    warnings: List[str] = []
    for rel_id, rel in doc.part.rels.items():
        if "image" not in rel.reltype:
            continue
        try:
            if rel.is_external:
                data, mime_type = fetch_image(rel.target_ref, timeout=timeout)
            else:
                data = rel.target_part.blob
                mime_type = rel.target_part.content_type
            if mime_type not in _BROWSER_IMAGE_TYPES:
                try:
                    data, mime_type = convert_to_png(data), "image/png"
                except Exception as exc:
                    # Keep original bytes if Pillow cannot read them (e.g. WMF off Windows)
                    logger.debug("Image conversion to PNG failed – keeping original: %s", exc)
            uris[rel_id] = to_data_uri(data, mime_type or "image/png")
        except Exception as exc:
            logger.warning("Could not read image %s: %s", rel_id, exc)
            warnings.append(f"Image {rel_id} could not be read and was left empty")
            uris[rel_id] = ""
    return uris, warnings
