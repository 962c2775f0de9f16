from __future__ import annotations

"""Inline formatting resolution for editor HTML elements.

:func:`derive_style` is a pure function of the element tag, its ``style``
attribute and the flags inherited from the parent.  Only ``font-weight``,
``font-style``, ``text-decoration`` and ``color`` declarations are honoured;
every other CSS property is ignored.
"""

import re
from typing import Dict, Optional

from lxml import etree as ET

from quill_toolkit.core.models import StyleFlags
from quill_toolkit.core.converter.html_utils import parse_style_attribute, tag_of

__all__ = ["derive_style", "css_color_to_hex", "LINK_COLOR", "MONOSPACE_FONT"]

LINK_COLOR = "1155CC"
MONOSPACE_FONT = "Courier New"

_TAG_FLAGS: Dict[str, Dict[str, object]] = {
    "strong": {"bold": True},
    "b": {"bold": True},
    "em": {"italics": True},
    "i": {"italics": True},
    "u": {"underline": True},
    "ins": {"underline": True},
    "del": {"strike": True},
    "s": {"strike": True},
    "strike": {"strike": True},
    "sup": {"super_script": True},
    "sub": {"sub_script": True},
    "code": {"font": MONOSPACE_FONT},
    "pre": {"font": MONOSPACE_FONT},
}

_HEX_COLOR = re.compile(r"^#([0-9a-f]{3}|[0-9a-f]{6})$", re.IGNORECASE)
_RGB_COLOR = re.compile(r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*[\d.]+%?\s*)?\)$", re.IGNORECASE)
_LEADING_INT = re.compile(r"^\s*(\d+)")


def css_color_to_hex(value: Optional[str]) -> Optional[str]:
    """Return a 6-digit uppercase hex colour for a CSS colour literal.

    Accepts ``#abc``, ``#aabbcc`` and ``rgb()/rgba()``; anything else
    (named colours, ``hsl()``...) yields ``None``.

    >>> css_color_to_hex("#1a2")
    '11AA22'
    >>> css_color_to_hex("rgb(255, 0, 16)")
    'FF0010'
    """
    if not value:
        return None
    value = value.strip()
    match = _HEX_COLOR.match(value)
    if match:
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        return digits.upper()
    match = _RGB_COLOR.match(value)
    if match:
        channels = [min(int(c), 255) for c in match.groups()]
        return "".join(f"{c:02X}" for c in channels)
    return None


def _is_bold_weight(value: str) -> bool:
    if "bold" in value:
        return True
    match = _LEADING_INT.match(value)
    return bool(match) and int(match.group(1)) >= 600


def derive_style(element: ET._Element, inherited: StyleFlags) -> StyleFlags:
    """Return the flags for *element*'s content, starting from *inherited*."""
    tag = tag_of(element)
    changes: Dict[str, object] = dict(_TAG_FLAGS.get(tag, {}))

    if tag == "a":
        changes["underline"] = True
        if inherited.color is None:
            changes["color"] = LINK_COLOR

    declarations = parse_style_attribute(element.get("style"))
    weight = declarations.get("font-weight")
    if weight and _is_bold_weight(weight):
        changes["bold"] = True
    if "italic" in declarations.get("font-style", ""):
        changes["italics"] = True
    decoration = declarations.get("text-decoration", "")
    if "underline" in decoration:
        changes["underline"] = True
    if "line-through" in decoration:
        changes["strike"] = True
    color = css_color_to_hex(declarations.get("color"))
    if color:
        changes["color"] = color

    if not changes:
        return inherited
    return inherited.merged(**changes)
