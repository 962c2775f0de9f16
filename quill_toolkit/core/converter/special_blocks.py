from __future__ import annotations

"""Converters for editor-specific markup.

Spacing indicators, dual-coding callouts and screenplay blocks are emitted by
the editor as ``<div>``/``<p>`` elements with dedicated classes.  Each
converter reads its fields from the element and returns a :class:`Callout`
whose paragraphs carry fixed, self-contained formatting.
"""

import logging
from typing import Dict, List, Optional, Tuple

from lxml import etree as ET

from quill_toolkit.core.models import (
    Callout,
    Indent,
    Paragraph,
    Shading,
    Spacing,
    StyleFlags,
    TextRun,
)
from quill_toolkit.core.converter.html_utils import class_list, element_text, find_by_class
from quill_toolkit.core.utils import normalize_whitespace, sanitize_text

logger = logging.getLogger(__name__)

__all__ = [
    "SPACING_PALETTES",
    "SCREENPLAY_TYPES",
    "convert_spacing_indicator",
    "convert_dual_coding_callout",
    "convert_screenplay_block",
    "spacing_tone",
    "screenplay_type",
]

# tone -> (fill, text, accent)
SPACING_PALETTES: Dict[str, Tuple[str, str, str]] = {
    "default": ("DBEAFE", "1E40AF", "2563EB"),
    "compact": ("FEF3C7", "92400E", "B45309"),
    "extended": ("FEE2E2", "991B1B", "DC2626"),
}

CALLOUT_FILL = "FEF9C3"
CALLOUT_BORDER = "F59E0B"
CALLOUT_TEXT = "92400E"
CALLOUT_CONTEXT = "78716C"
CALLOUT_ACTION = "2563EB"
DEFAULT_CALLOUT_ICON = "\U0001F4A1"

_PRIORITY_COLORS = (("high", "DC2626"), ("medium", "F59E0B"))
_LOW_PRIORITY_COLOR = "6B7280"

SCREENPLAY_FONT = "Courier New"
SCREENPLAY_SIZE = 24

# type -> (upper-case, bold, alignment, left indent, spacing)
_SCREENPLAY_RECIPES: Dict[str, Tuple[bool, bool, Optional[str], Optional[int], Spacing]] = {
    "scene-heading": (True, True, None, None, Spacing(before=240, after=240, line=240)),
    "action": (False, False, None, None, Spacing(after=240, line=240)),
    "character": (True, False, None, 2664, Spacing(before=240, after=0, line=240)),
    "parenthetical": (False, False, None, 2232, Spacing(after=0, line=240)),
    "dialogue": (False, False, None, 1800, Spacing(after=0, line=240)),
    "transition": (True, False, "right", None, Spacing(before=240, after=240, line=240)),
    "spacer": (False, False, None, None, Spacing(after=240, line=240)),
}
SCREENPLAY_TYPES = tuple(_SCREENPLAY_RECIPES)


def _child_text(element: ET._Element, css_class: str) -> str:
    found = find_by_class(element, css_class)
    if not found:
        return ""
    return sanitize_text(normalize_whitespace(element_text(found[0])).strip())


def _run(text: str, size: Optional[int] = None, **flags) -> TextRun:
    return TextRun(text, StyleFlags(**flags), size=size)


# ---------------------------------------------------------------------------
# Spacing indicator
# ---------------------------------------------------------------------------

def spacing_tone(element: ET._Element) -> str:
    classes = class_list(element)
    for tone in ("compact", "extended"):
        if tone in classes:
            return tone
    return "default"


def convert_spacing_indicator(element: ET._Element) -> List[Callout]:
    """Return a shaded label paragraph and, when present, a message paragraph."""
    tone = spacing_tone(element)
    fill, text_color, accent = SPACING_PALETTES[tone]
    label = _child_text(element, "spacing-label")
    message = _child_text(element, "spacing-message")
    if not label and not message:
        logger.debug("Dropping empty spacing indicator")
        return []

    shading = Shading(fill=fill, border_color=accent)
    paragraphs: List[Paragraph] = []
    if label:
        paragraphs.append(Paragraph(
            runs=[_run(label, 22, bold=True, color=text_color)],
            spacing=Spacing(before=240, after=80),
            shading=shading,
        ))
    if message:
        paragraphs.append(Paragraph(
            runs=[_run(message, 20, color=text_color)],
            spacing=Spacing(after=160),
            shading=Shading(fill=fill),
            indent=Indent(left=240),
        ))
    return [Callout("spacing", paragraphs, {"tone": tone, "label": label, "message": message})]


# ---------------------------------------------------------------------------
# Dual-coding callout
# ---------------------------------------------------------------------------

def _priority_color(priority: str) -> str:
    lowered = priority.lower()
    for keyword, color in _PRIORITY_COLORS:
        if keyword in lowered:
            return color
    return _LOW_PRIORITY_COLOR


def convert_dual_coding_callout(element: ET._Element) -> List[Callout]:
    """Return the header, reason, context and action paragraphs of a callout."""
    fields = {
        "icon": _child_text(element, "callout-icon") or DEFAULT_CALLOUT_ICON,
        "title": _child_text(element, "callout-title"),
        "priority": _child_text(element, "callout-priority"),
        "reason": _child_text(element, "callout-reason"),
        "context": _child_text(element, "callout-context"),
        "action": _child_text(element, "callout-action"),
    }
    fill = Shading(fill=CALLOUT_FILL)

    header_runs = [_run(f"{fields['icon']} {fields['title']}".strip(), 24, bold=True, color=CALLOUT_TEXT)]
    if fields["priority"]:
        header_runs.append(_run(f" [{fields['priority']}]", 20, bold=True,
                                color=_priority_color(fields["priority"])))
    paragraphs = [Paragraph(
        runs=header_runs,
        spacing=Spacing(before=240, after=100),
        shading=Shading(fill=CALLOUT_FILL, border_color=CALLOUT_BORDER),
    )]
    if fields["reason"]:
        paragraphs.append(Paragraph(
            runs=[_run(fields["reason"], 20, color=CALLOUT_TEXT)],
            spacing=Spacing(after=100), shading=fill, indent=Indent(left=240),
        ))
    if fields["context"]:
        paragraphs.append(Paragraph(
            runs=[_run(f"\"{fields['context']}\"", 20, italics=True, color=CALLOUT_CONTEXT)],
            spacing=Spacing(after=100), shading=fill, indent=Indent(left=360),
        ))
    if fields["action"]:
        paragraphs.append(Paragraph(
            runs=[_run(fields["action"], 20, bold=True, color=CALLOUT_ACTION)],
            spacing=Spacing(after=200), shading=fill, indent=Indent(left=240),
        ))
    return [Callout("dualCoding", paragraphs, fields)]


# ---------------------------------------------------------------------------
# Screenplay
# ---------------------------------------------------------------------------

def screenplay_type(element: ET._Element) -> str:
    """Return the block type from ``data-block`` or the class list (default action)."""
    block_type = (element.get("data-block") or "").strip().lower()
    if block_type in _SCREENPLAY_RECIPES:
        return block_type
    for css_class in class_list(element):
        if css_class in _SCREENPLAY_RECIPES:
            return css_class
    return "action"


def convert_screenplay_block(element: ET._Element) -> List[Callout]:
    """Format one screenplay element following standard screenplay layout."""
    block_type = screenplay_type(element)
    text = sanitize_text(normalize_whitespace(element_text(element)).strip())
    if not text and block_type != "spacer":
        return []

    upper, bold, alignment, left_indent, spacing = _SCREENPLAY_RECIPES[block_type]
    if upper:
        text = text.upper()
    if block_type == "spacer":
        paragraph = Paragraph(spacing=spacing, blank=True)
    else:
        paragraph = Paragraph(
            runs=[_run(text, SCREENPLAY_SIZE, bold=bold, font=SCREENPLAY_FONT)],
            alignment=alignment,
            spacing=spacing,
            indent=Indent(left=left_indent) if left_indent else None,
        )
    return [Callout("screenplay", [paragraph], {"type": block_type, "text": text})]
