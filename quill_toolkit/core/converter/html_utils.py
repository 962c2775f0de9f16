from __future__ import annotations

"""lxml helpers for walking editor HTML.

lxml keeps character data in ``.text`` / ``.tail`` rather than in separate
nodes; :func:`iter_child_nodes` restores the DOM view the converter works on,
yielding text as plain ``str`` items between child elements.
"""

from typing import Dict, Iterable, Iterator, List, Optional, Union

import lxml.html
from lxml import etree as ET

from quill_toolkit.core.utils import collapse_whitespace

__all__ = [
    "Node",
    "parse_html",
    "iter_child_nodes",
    "tag_of",
    "class_list",
    "has_class",
    "parse_style_attribute",
    "infer_alignment",
    "element_text",
    "raw_text",
    "append_text",
    "serialize_children",
    "find_by_class",
    "drop_by_class",
]

Node = Union[str, ET._Element]

_ALIGN_KEYWORDS = ("center", "right", "justify")


def parse_html(html: str) -> Optional[ET._Element]:
    """Parse an HTML document or fragment and return its ``<body>``.

    Returns ``None`` for empty input.
    """
    if not html or not html.strip():
        return None
    document = lxml.html.document_fromstring(html)
    body = document.find("body")
    return body if body is not None else document


def iter_child_nodes(element: ET._Element) -> Iterator[Node]:
    """Yield text strings and child elements of *element* in document order.

    Comments and processing instructions are skipped, their tails are not.
    """
    if element.text:
        yield element.text
    for child in element:
        if isinstance(child.tag, str):
            yield child
        if child.tail:
            yield child.tail


def tag_of(element: ET._Element) -> str:
    return element.tag.lower() if isinstance(element.tag, str) else ""


def class_list(element: ET._Element) -> List[str]:
    return (element.get("class") or "").split()


def has_class(element: ET._Element, name: str) -> bool:
    return name in class_list(element)


def parse_style_attribute(style: Optional[str]) -> Dict[str, str]:
    """Parse an inline ``style`` attribute into lower-cased declarations."""
    declarations: Dict[str, str] = {}
    if not style:
        return declarations
    for part in style.split(";"):
        prop, sep, value = part.partition(":")
        if not sep:
            continue
        prop = prop.strip().lower()
        value = value.strip().lower()
        if prop and value:
            declarations[prop] = value
    return declarations


def infer_alignment(element: ET._Element) -> Optional[str]:
    """Return the alignment requested by *element* or ``None``.

    The legacy ``align`` attribute wins over a ``text-align`` declaration.
    """
    align_attr = (element.get("align") or "").lower()
    for keyword in _ALIGN_KEYWORDS:
        if keyword in align_attr:
            return keyword
    text_align = parse_style_attribute(element.get("style")).get("text-align", "")
    if text_align in ("left", "center", "right", "justify"):
        return text_align
    return None


def element_text(element: ET._Element) -> str:
    """Return the whitespace-collapsed text content of *element*."""
    return collapse_whitespace(raw_text(element))


def raw_text(element: ET._Element) -> str:
    """Return the text content of *element*, skipping comments, scripts and styles."""
    return "".join(element.xpath("descendant::text()[not(parent::script or parent::style)]"))


def append_text(parent: ET._Element, text: str) -> None:
    """Append *text* after the last child of *parent* (or as its text)."""
    if not text:
        return
    if len(parent):
        last = parent[-1]
        last.tail = (last.tail or "") + text
    else:
        parent.text = (parent.text or "") + text


def serialize_children(root: ET._Element) -> str:
    """Serialize the content of *root* (text and children) as HTML."""
    parts = [root.text or ""]
    parts.extend(ET.tostring(child, encoding="unicode", method="html") for child in root)
    return "".join(parts)


def find_by_class(element: ET._Element, name: str) -> List[ET._Element]:
    """Return descendants of *element* carrying class *name*."""
    expr = f"descendant::*[contains(concat(' ', normalize-space(@class), ' '), ' {name} ')]"
    return element.xpath(expr)


def drop_by_class(root: ET._Element, names: Iterable[str]) -> int:
    """Remove every descendant of *root* carrying one of the classes *names*.

    The dropped element's tail text stays in place. Returns the number of
    removed elements.
    """
    removed = 0
    for name in names:
        for element in find_by_class(root, name):
            # a nested match may already be gone with its ancestor
            if any(ancestor is root for ancestor in element.iterancestors()):
                element.drop_tree()
                removed += 1
    return removed
