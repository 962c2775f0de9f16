from __future__ import annotations

"""Plain text to editor HTML."""

import html
import re

__all__ = ["text_to_html"]

_PARAGRAPH_BREAK = re.compile(r"\n\n+")
_LEADING_SPACES = re.compile(r"^( +)", re.MULTILINE)

PARAGRAPH_STYLE = "white-space: pre-wrap; color: #000000;"


def text_to_html(text: str) -> str:
    """Wrap blank-line-separated paragraphs of *text* in editor ``<p>`` elements.

    Leading spaces of every line survive as ``&nbsp;`` and single newlines
    become ``<br>``.

    >>> text_to_html("  Hello\\nworld")
    '<p style="white-space: pre-wrap; color: #000000;">&nbsp;&nbsp;Hello<br>world</p>'
    """
    text = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    paragraphs = []
    for chunk in _PARAGRAPH_BREAK.split(text):
        if not chunk.strip():
            continue
        escaped = html.escape(chunk, quote=False)
        escaped = _LEADING_SPACES.sub(lambda m: "&nbsp;" * len(m.group(1)), escaped)
        content = escaped.replace("\n", "<br>")
        paragraphs.append(f'<p style="{PARAGRAPH_STYLE}">{content}</p>')
    return "".join(paragraphs)
