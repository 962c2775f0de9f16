from __future__ import annotations

"""Resolve ``<img>`` elements into embeddable :class:`ImageBlock` objects.

Images arrive either as base64 data URIs (pasted or imported images) or as
remote URLs.  The resolver loads the bytes, transcodes formats Word cannot
embed, computes bounded display dimensions and infers the alignment.  A
failure on one image yields ``None`` so the surrounding conversion carries on.
"""

import base64
import binascii
import io
import logging
import math
import re
from typing import Optional, Tuple

from PIL import Image, features
from lxml import etree as ET

from quill_toolkit.core.exceptions import ImageResolutionFailure
from quill_toolkit.core.models import ImageBlock
from quill_toolkit.core.parser.docx_utils import convert_to_png, fetch_image
from quill_toolkit.core.converter.html_utils import class_list, parse_style_attribute

logger = logging.getLogger(__name__)

__all__ = ["ImageResolver", "detect_image_format", "compute_display_size", "detect_image_alignment"]

_DATA_URI = re.compile(r"^data:([^;,]+)?;base64,(.+)$", re.IGNORECASE | re.DOTALL)
_PX_DIMENSION = {
    "width": re.compile(r"(?:^|;)\s*width\s*:\s*(\d+(?:\.\d+)?)px", re.IGNORECASE),
    "height": re.compile(r"(?:^|;)\s*height\s*:\s*(\d+(?:\.\d+)?)px", re.IGNORECASE),
}
_EXTENSIONS = (
    ("png", re.compile(r"\.png(?:[?#]|$)", re.IGNORECASE)),
    ("jpg", re.compile(r"\.jpe?g(?:[?#]|$)", re.IGNORECASE)),
    ("gif", re.compile(r"\.gif(?:[?#]|$)", re.IGNORECASE)),
    ("bmp", re.compile(r"\.bmp(?:[?#]|$)", re.IGNORECASE)),
)
_WEBP_EXTENSION = re.compile(r"\.webp(?:[?#]|$)", re.IGNORECASE)

_ALIGNMENT_ANCESTOR_DEPTH = 5


def _signature_format(data: bytes) -> Optional[str]:
    if data[:4] == b"\x89PNG":
        return "png"
    if data[:3] == b"\xff\xd8\xff":
        return "jpg"
    if data[:4] == b"GIF8":
        return "gif"
    if data[:2] == b"BM":
        return "bmp"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    return None


def _mime_format(mime_type: str) -> Optional[str]:
    mime_type = mime_type.lower()
    for needle, fmt in (("png", "png"), ("jpeg", "jpg"), ("jpg", "jpg"),
                        ("gif", "gif"), ("bmp", "bmp"), ("webp", "webp")):
        if needle in mime_type:
            return fmt
    return None


def detect_image_format(data: bytes, mime_type: str = "", src: str = "") -> str:
    """Return the true image format of *data*.

    The byte signature wins over any claimed type: a declared MIME type
    only decides when the signature is unknown, then the URL extension,
    then ``"jpg"``.
    """
    fmt = _signature_format(data) or _mime_format(mime_type)
    if fmt:
        return fmt
    if not src.startswith("data:"):
        for ext_fmt, pattern in _EXTENSIONS:
            if pattern.search(src):
                return ext_fmt
    return "jpg"


def _usable_dimension(value: float) -> Optional[float]:
    # inf and nan cannot be scaled into a pixel size
    return value if math.isfinite(value) and value > 0 else None


def _style_dimension(style: str, name: str) -> Optional[float]:
    match = _PX_DIMENSION[name].search(style or "")
    return _usable_dimension(float(match.group(1))) if match else None


def _attr_dimension(element: ET._Element, name: str) -> Optional[float]:
    try:
        value = float((element.get(name) or "").strip().rstrip("px"))
    except ValueError:
        return None
    return _usable_dimension(value)


def compute_display_size(
    width: Optional[float],
    height: Optional[float],
    natural: Optional[Tuple[int, int]],
    max_width: int = 480,
    max_height: int = 600,
) -> Tuple[int, int]:
    """Return ``(width, height)`` in pixels, aspect preserved, within the bound.

    *width*/*height* are the explicitly requested dimensions (either may be
    ``None``); a single explicit side derives the other from the natural
    aspect ratio. The result is scaled down, never up, to fit the bound.
    """
    if natural and natural[0] > 0 and natural[1] > 0:
        aspect = natural[0] / natural[1]
    elif width and height:
        aspect = width / height
    else:
        aspect = max_width / max_height

    if not (width and height):
        if width:
            height = width / aspect
        elif height:
            width = height * aspect
        elif natural and natural[0] > 0 and natural[1] > 0:
            width, height = natural
        else:
            width, height = max_width, max_height

    scale = min(1.0, max_width / width, max_height / height)
    return max(1, round(width * scale)), max(1, round(height * scale))


def _has_auto_margin(declarations) -> bool:
    margin = declarations.get("margin", "")
    if "auto" in margin:
        return True
    return "auto" in declarations.get("margin-left", "") and "auto" in declarations.get("margin-right", "")


def detect_image_alignment(element: ET._Element) -> str:
    """Infer ``left``/``center``/``right`` for an image element."""
    declarations = parse_style_attribute(element.get("style"))
    if _has_auto_margin(declarations):
        return "center"
    if declarations.get("float") in ("left", "right"):
        return declarations["float"]

    parent = element.getparent()
    depth = 0
    while parent is not None and depth < _ALIGNMENT_ANCESTOR_DEPTH:
        text_align = parse_style_attribute(parent.get("style")).get("text-align")
        if text_align in ("center", "right"):
            return text_align
        if text_align == "left":
            return "left"
        if (parent.get("align") or "").lower() in ("center", "right"):
            return parent.get("align").lower()
        if any("center" in css_class for css_class in class_list(parent)):
            return "center"
        parent = parent.getparent()
        depth += 1
    return "left"


class ImageResolver:
    """Load, normalise and size images referenced by editor HTML.

    Parameters
    ----------
    max_width, max_height
        Display bound in pixels.
    timeout
        Timeout in seconds for remote fetches.
    """

    def __init__(self, max_width: int = 480, max_height: int = 600, timeout: float = 10) -> None:
        self.max_width = max_width
        self.max_height = max_height
        self.timeout = timeout
        self._webp_supported: Optional[bool] = None

    @property
    def webp_supported(self) -> bool:
        """Whether this Pillow build decodes WebP (checked once per resolver)."""
        if self._webp_supported is None:
            self._webp_supported = bool(features.check("webp"))
            if not self._webp_supported:
                logger.warning("Pillow was built without WebP support; WebP images will be dropped")
        return self._webp_supported

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def resolve(self, element: ET._Element) -> Optional[ImageBlock]:
        """Return an :class:`ImageBlock` for *element* or ``None`` if unusable."""
        src = (element.get("src") or "").strip()
        if not src:
            logger.debug("Skipping image without source")
            return None
        try:
            data, mime_type = self._load(src)
            data, fmt = self._normalise(data, mime_type, src)
            natural = self._natural_size(data)
        except ImageResolutionFailure as exc:
            logger.warning("Image dropped: %s", exc)
            return None

        style = element.get("style") or ""
        width = _style_dimension(style, "width") or _attr_dimension(element, "width")
        height = _style_dimension(style, "height") or _attr_dimension(element, "height")
        try:
            display_width, display_height = compute_display_size(
                width, height, natural, self.max_width, self.max_height
            )
        except Exception as exc:
            logger.warning("Image dropped, size %sx%s is unusable: %s", width, height, exc)
            return None
        alignment = detect_image_alignment(element)
        logger.debug(
            "Resolved %s image %sx%s (natural %s), aligned %s",
            fmt, display_width, display_height, natural, alignment,
        )
        return ImageBlock(data=data, width=display_width, height=display_height,
                          format=fmt, alignment=alignment)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _load(self, src: str) -> Tuple[bytes, str]:
        if src.lower().startswith("data:"):
            return self._decode_data_uri(src)
        if src.lower().startswith(("http://", "https://")):
            return fetch_image(src, timeout=self.timeout)
        raise ImageResolutionFailure("Unsupported image source", src)

    @staticmethod
    def _decode_data_uri(src: str) -> Tuple[bytes, str]:
        match = _DATA_URI.match(src)
        if not match:
            raise ImageResolutionFailure("Image data URI is not base64 encoded", src)
        payload = re.sub(r"\s+", "", match.group(2))
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ImageResolutionFailure("Invalid base64 image payload", src, exc) from exc
        if not data:
            raise ImageResolutionFailure("Empty image payload", src)
        return data, (match.group(1) or "").lower()

    def _is_webp(self, data: bytes, mime_type: str, src: str) -> bool:
        if _signature_format(data) == "webp":
            return True
        if _signature_format(data) is not None:
            return False
        return "image/webp" in mime_type or bool(_WEBP_EXTENSION.search(src))

    def _normalise(self, data: bytes, mime_type: str, src: str) -> Tuple[bytes, str]:
        """Return ``(data, format)`` with the data in an embeddable format."""
        if self._is_webp(data, mime_type, src):
            if not self.webp_supported:
                raise ImageResolutionFailure("WebP image cannot be decoded", src)
            logger.debug("Converting WebP image to PNG")
            return self._to_png(data, src), "png"

        if _signature_format(data) is None:
            # Unknown signature (TIFF, ICO...): re-encode when Pillow can read it
            return self._to_png(data, src), "png"
        return data, detect_image_format(data, mime_type, src)

    @staticmethod
    def _to_png(data: bytes, src: str) -> bytes:
        try:
            return convert_to_png(data)
        except Exception as exc:
            raise ImageResolutionFailure("Image could not be decoded", src, exc) from exc

    @staticmethod
    def _natural_size(data: bytes) -> Tuple[int, int]:
        try:
            with Image.open(io.BytesIO(data)) as img:
                return img.size
        except Exception as exc:
            raise ImageResolutionFailure("Image could not be decoded", None, exc) from exc
