from __future__ import annotations

"""Word-processing parser helpers.

Provides the Word style map plus DOCX traversal and image utilities used by
the import and export pipelines.
"""

from .docx_utils import iter_block_items, collect_image_data_uris, fetch_image  # noqa: F401
from .style_map import StyleMap, StyleMapping, STYLE_MAPPINGS, CUSTOM_STYLE_CLASSES  # noqa: F401

__all__: list[str] = [
    "iter_block_items",
    "collect_image_data_uris",
    "fetch_image",
    "StyleMap",
    "StyleMapping",
    "STYLE_MAPPINGS",
    "CUSTOM_STYLE_CLASSES",
]
