from __future__ import annotations

"""Output generators for converted documents.

Key components:
- DocumentAssembler: blocks -> .docx bytes (python-docx)
- blocks_to_html / render_html: blocks -> editor HTML / standalone page
- build_analysis_summary: chapter analysis -> summary blocks
- compute_toc: estimated table of contents entries
"""

from .analysis_summary import build_analysis_summary  # noqa: F401
from .docx_builder import DocumentAssembler  # noqa: F401
from .html_builder import blocks_to_html, render_html  # noqa: F401
from .toc import compute_toc  # noqa: F401

__all__: list[str] = [
    "DocumentAssembler",
    "blocks_to_html",
    "render_html",
    "build_analysis_summary",
    "compute_toc",
]
