from __future__ import annotations

"""Export options and document-level information passed to the assembler."""

import logging
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

__all__ = ["ExportOptions", "DocumentInfo", "PAGE_SIZES"]

# (width, height) in twips
PAGE_SIZES = {
    "letter": (12240, 15840),
    "a4": (11906, 16838),
}


@dataclass
class ExportOptions:
    """Page, header/footer and layout settings for one export.

    Attributes
    ----------
    mode
        ``"writer"`` exports the text only; ``"analysis"`` may add the
        analysis summary and highlight callouts.
    include_toc
        ``True``/``False`` forces the table of contents; ``None`` adds it
        when the source carries a TOC placeholder.
    page_number_position
        ``"header"`` or ``"footer"``.
    chars_per_page
        Characters per page used to estimate TOC page numbers.
    """

    mode: str = "writer"
    include_highlights: bool = False
    include_toc: Optional[bool] = None
    header_text: str = ""
    footer_text: str = ""
    show_page_numbers: bool = True
    page_number_position: str = "footer"
    header_align: str = "center"
    footer_align: str = "center"
    facing_pages: bool = False
    page_size: str = "letter"
    font: str = "Times New Roman"
    font_size: int = 24
    margin: int = 1440
    chars_per_page: int = 3000
    image_max_width: int = 480
    image_max_height: int = 600

    def __post_init__(self) -> None:
        if self.mode not in ("writer", "analysis"):
            raise ValueError(f"Unknown export mode: {self.mode!r}")
        if self.page_size not in PAGE_SIZES:
            raise ValueError(f"Unknown page size: {self.page_size!r}")
        if self.page_number_position not in ("header", "footer"):
            raise ValueError(f"Unknown page number position: {self.page_number_position!r}")

    @property
    def page_dimensions(self) -> tuple:
        return PAGE_SIZES[self.page_size]

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **overrides: Any) -> "ExportOptions":
        """Build options from the ``export`` config section plus explicit overrides."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in config.items():
            if key in known:
                values[key] = value
            elif key not in ("http_timeout", "download_dir"):
                logger.warning("Ignoring unknown export setting '%s'", key)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass(frozen=True)
class DocumentInfo:
    """Core properties written into the exported document."""

    title: str = "Untitled Document"
    author: str = ""
