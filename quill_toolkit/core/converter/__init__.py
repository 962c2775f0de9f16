from __future__ import annotations

"""HTML to document-block conversion.

Public API re-exported here:
- BlockConverter: editor HTML -> List[Block]
- ImageResolver: <img> -> ImageBlock
- derive_style: inline formatting resolution
"""

from .block_converter import BlockConverter, plain_text_paragraphs  # noqa: F401
from .image_resolver import ImageResolver, compute_display_size, detect_image_format  # noqa: F401
from .inline_style import css_color_to_hex, derive_style  # noqa: F401

__all__: list[str] = [
    "BlockConverter",
    "plain_text_paragraphs",
    "ImageResolver",
    "compute_display_size",
    "detect_image_format",
    "css_color_to_hex",
    "derive_style",
]
