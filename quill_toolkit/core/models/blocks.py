from __future__ import annotations

"""Document block model produced by the HTML converter.

A converted document is a flat, ordered ``List[Block]``.  Blocks are plain
value objects: the converter builds them, the assembler renders them to
python-docx or back to HTML.  Measurements follow WordprocessingML units:
spacing and indents in twips, line spacing in 240ths of a line, font sizes in
half-points and image dimensions in pixels.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Union

__all__ = [
    "StyleFlags",
    "PLAIN",
    "TextRun",
    "Spacing",
    "Indent",
    "Shading",
    "Paragraph",
    "ListItem",
    "TableRow",
    "ImageBlock",
    "PageBreak",
    "Callout",
    "Block",
    "TocEntry",
    "block_text",
]


@dataclass(frozen=True)
class StyleFlags:
    """Resolved inline formatting of a run.

    Instances are immutable; :meth:`merged` returns a new copy, so a child
    element never alters the flags it inherited from its parent.
    """

    bold: bool = False
    italics: bool = False
    underline: bool = False
    strike: bool = False
    color: Optional[str] = None
    font: Optional[str] = None
    super_script: bool = False
    sub_script: bool = False

    def __post_init__(self) -> None:
        if self.super_script and self.sub_script:
            raise ValueError("super_script and sub_script are mutually exclusive")

    def merged(self, **changes) -> "StyleFlags":
        """Return a copy with *changes* applied; super/sub script clear each other."""
        if changes.get("super_script"):
            changes["sub_script"] = False
        elif changes.get("sub_script"):
            changes["super_script"] = False
        return replace(self, **changes)


PLAIN = StyleFlags()


@dataclass(frozen=True)
class TextRun:
    """A contiguous span of text sharing one set of :class:`StyleFlags`.

    A run with ``line_break=True`` is a line-break token and carries no text;
    every other run has non-empty, sanitized text.
    """

    text: str
    style: StyleFlags = PLAIN
    line_break: bool = False
    size: Optional[int] = None  # half-points, None = document default

    def __post_init__(self) -> None:
        if self.line_break and self.text:
            raise ValueError("A line-break token cannot carry text")
        if not self.line_break and not self.text:
            raise ValueError("TextRun text must not be empty")

    @classmethod
    def break_token(cls, style: StyleFlags = PLAIN) -> "TextRun":
        return cls("", style, line_break=True)


@dataclass(frozen=True)
class Spacing:
    before: Optional[int] = None
    after: Optional[int] = None
    line: Optional[int] = None


@dataclass(frozen=True)
class Indent:
    left: Optional[int] = None
    right: Optional[int] = None
    first_line: Optional[int] = None


@dataclass(frozen=True)
class Shading:
    """Background fill plus an optional left border, both as hex colours."""

    fill: str
    border_color: Optional[str] = None
    border_size: int = 24  # eighths of a point


@dataclass
class Paragraph:
    """A paragraph, heading or styled block.

    Attributes
    ----------
    runs
        Text runs in document order.
    heading
        Heading level 1-6, ``None`` for body paragraphs.
    style_name
        Word paragraph style to apply (``"Title"``, ``"Quote"``...).
    alignment
        ``"left"``, ``"center"``, ``"right"`` or ``"justify"``; ``None`` keeps
        the style default.
    blank
        True for an explicit empty line kept from the source.
    """

    runs: List[TextRun] = field(default_factory=list)
    heading: Optional[int] = None
    style_name: Optional[str] = None
    alignment: Optional[str] = None
    spacing: Spacing = field(default_factory=Spacing)
    indent: Optional[Indent] = None
    shading: Optional[Shading] = None
    blank: bool = False

    @property
    def text(self) -> str:
        return "".join("\n" if run.line_break else run.text for run in self.runs)


@dataclass
class ListItem(Paragraph):
    """A list entry; its first run is the literal bullet or ordinal prefix."""

    ordinal: Optional[int] = None

    @property
    def ordered(self) -> bool:
        return self.ordinal is not None


@dataclass
class TableRow:
    """A single borderless row of side-by-side cells (column layouts)."""

    cells: List[List["Block"]] = field(default_factory=list)


@dataclass
class ImageBlock:
    data: bytes
    width: int
    height: int
    format: str  # png | jpg | gif | bmp
    alignment: str = "left"


@dataclass
class PageBreak:
    pass


@dataclass
class Callout:
    """A visually distinct block rendered as one or more shaded paragraphs.

    ``kind`` is ``"spacing"``, ``"dualCoding"`` or ``"screenplay"``;
    ``fields`` keeps the source values (label, priority, block type...) so the
    callout can be written back to editor HTML.
    """

    kind: str
    paragraphs: List[Paragraph] = field(default_factory=list)
    fields: Dict[str, str] = field(default_factory=dict)


Block = Union[Paragraph, ListItem, TableRow, ImageBlock, PageBreak, Callout]


@dataclass(frozen=True)
class TocEntry:
    """A table-of-contents line; ``page_number`` is an estimate."""

    text: str
    level: int
    page_number: int


def block_text(block: Block) -> str:
    """Return the visible text of *block* (empty for images and breaks)."""
    if isinstance(block, Paragraph):
        return block.text
    if isinstance(block, Callout):
        return "\n".join(p.text for p in block.paragraphs)
    if isinstance(block, TableRow):
        return "\n".join(block_text(b) for cell in block.cells for b in cell)
    return ""
