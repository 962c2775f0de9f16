from __future__ import annotations

"""Shared data structures used across the quill-toolkit core.

This package exposes dataclasses and value objects used by the converter,
importer and assembler. It is intentionally free of I/O code so that the
contained objects can be reused in any context (unit-tests, workers, GUI...).
"""

from .analysis import (
    ChapterAnalysis,
    EvaluatedPrinciple,
    Finding,
    PrincipleResult,
    Recommendation,
    ScoredPrinciple,
)
from .blocks import (
    PLAIN,
    Block,
    Callout,
    ImageBlock,
    Indent,
    ListItem,
    PageBreak,
    Paragraph,
    Shading,
    Spacing,
    StyleFlags,
    TableRow,
    TextRun,
    TocEntry,
    block_text,
)
from .document import DocumentMetadata, ImportResult
from .options import PAGE_SIZES, DocumentInfo, ExportOptions

__all__ = [
    "PLAIN",
    "Block",
    "Callout",
    "ChapterAnalysis",
    "DocumentInfo",
    "DocumentMetadata",
    "EvaluatedPrinciple",
    "ExportOptions",
    "Finding",
    "ImageBlock",
    "ImportResult",
    "Indent",
    "ListItem",
    "PAGE_SIZES",
    "PageBreak",
    "Paragraph",
    "PrincipleResult",
    "Recommendation",
    "ScoredPrinciple",
    "Shading",
    "Spacing",
    "StyleFlags",
    "TableRow",
    "TextRun",
    "TocEntry",
    "block_text",
]
