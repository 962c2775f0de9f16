from __future__ import annotations

"""Word style <-> editor HTML mapping.

The canonical table is a bijection between Word style names and editor
``tag.class`` targets.  Import may additionally accept alias style names
(configured in ``default_style_map.yml``) that collapse onto an existing
target; aliases are never produced on export.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from quill_toolkit.config import ConfigManager

logger = logging.getLogger(__name__)

__all__ = ["StyleMapping", "StyleMap", "STYLE_MAPPINGS", "CUSTOM_STYLE_CLASSES"]

_HEADING_TAG = re.compile(r"^h([1-6])$")


@dataclass(frozen=True)
class StyleMapping:
    word_style: str
    tag: str
    css_class: Optional[str] = None
    kind: str = "paragraph"  # paragraph | character

    @property
    def selector(self) -> str:
        return f"{self.tag}.{self.css_class}" if self.css_class else self.tag


STYLE_MAPPINGS: Tuple[StyleMapping, ...] = (
    StyleMapping("Title", "h1", "doc-title"),
    StyleMapping("Subtitle", "p", "doc-subtitle"),
    StyleMapping("Heading 1", "h1", "chapter-heading"),
    StyleMapping("Heading 2", "h2", "section-heading"),
    StyleMapping("Heading 3", "h3", "subsection-heading"),
    StyleMapping("Heading 4", "h4"),
    StyleMapping("Heading 5", "h5"),
    StyleMapping("Heading 6", "h6"),
    StyleMapping("Body Text", "p", "body-text"),
    StyleMapping("Body Text First Indent", "p", "first-paragraph"),
    StyleMapping("No Spacing", "p", "no-spacing"),
    StyleMapping("Normal", "p"),
    StyleMapping("Quote", "blockquote", "quote"),
    StyleMapping("Block Quote", "blockquote", "block-quote"),
    StyleMapping("Epigraph", "blockquote", "epigraph"),
    StyleMapping("Intense Quote", "blockquote", "intense-quote"),
    StyleMapping("List Paragraph", "p", "list-paragraph"),
    StyleMapping("List Bullet", "li", "list-bullet"),
    StyleMapping("List Number", "li", "list-number"),
    StyleMapping("Strong", "strong", kind="character"),
    StyleMapping("Emphasis", "em", kind="character"),
    StyleMapping("Intense Emphasis", "strong", "intense-emphasis", kind="character"),
    StyleMapping("Book Title", "em", "book-title", kind="character"),
    StyleMapping("Subtle Emphasis", "span", "subtle-emphasis", kind="character"),
    StyleMapping("Subtle Reference", "span", "subtle-reference", kind="character"),
    StyleMapping("Underline", "u", kind="character"),
)

# Editor classes reported as "detected styles" after an import
CUSTOM_STYLE_CLASSES: Tuple[str, ...] = tuple(
    m.css_class for m in STYLE_MAPPINGS if m.css_class
)


class StyleMap:
    """Bidirectional lookup between Word style names and HTML targets.

    Parameters
    ----------
    aliases
        Extra Word style names accepted on import, mapped to ``"tag"`` or
        ``"tag.class"``.  ``None`` reads them from :class:`ConfigManager`.
    """

    def __init__(self, aliases: Optional[Mapping[str, str]] = None) -> None:
        self._by_word: Dict[str, StyleMapping] = {}
        self._by_html: Dict[Tuple[str, Optional[str]], StyleMapping] = {}
        for mapping in STYLE_MAPPINGS:
            self._by_word[mapping.word_style.lower()] = mapping
            self._by_html[(mapping.tag, mapping.css_class)] = mapping

        if aliases is None:
            aliases = ConfigManager().get_style_map().get("aliases", {}) or {}
        self._aliases: Dict[str, StyleMapping] = {}
        for word_style, selector in aliases.items():
            self._add_alias(str(word_style), str(selector))

    def _add_alias(self, word_style: str, selector: str) -> None:
        key = word_style.lower()
        if key in self._by_word:
            logger.warning("Style alias '%s' shadows a canonical style, ignored", word_style)
            return
        tag, _, css_class = selector.partition(".")
        target = self._by_html.get((tag.strip().lower(), css_class.strip() or None))
        if target is None:
            logger.warning("Style alias '%s' targets unknown selector '%s', ignored", word_style, selector)
            return
        self._aliases[key] = target

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def to_html(self, word_style: Optional[str]) -> Optional[Tuple[str, Optional[str]]]:
        """Return ``(tag, class)`` for *word_style* or ``None`` when unmapped."""
        if not word_style:
            return None
        key = word_style.strip().lower()
        mapping = self._by_word.get(key) or self._aliases.get(key)
        if mapping is None:
            return None
        return mapping.tag, mapping.css_class

    def to_word_style(self, tag: str, css_class: Optional[str] = None) -> Optional[str]:
        """Return the Word style for ``tag.class`` or ``None`` when unmapped."""
        mapping = self._by_html.get((tag.lower(), css_class or None))
        return mapping.word_style if mapping else None

    def mapping_for(self, word_style: str) -> Optional[StyleMapping]:
        key = word_style.strip().lower()
        return self._by_word.get(key) or self._aliases.get(key)

    def resolve_export_style(self, tag: str, classes: Iterable[str] = ()) -> str:
        """Return the Word paragraph style for an editor block element.

        The first class forming a known ``tag.class`` pair wins; otherwise a
        heading tag maps to its ``Heading N`` style and anything else to
        ``Normal``.
        """
        tag = tag.lower()
        for css_class in classes:
            style = self.to_word_style(tag, css_class)
            if style is not None:
                return style
        heading = _HEADING_TAG.match(tag)
        if heading:
            return f"Heading {heading.group(1)}"
        return "Normal"

    def detect_styles(self, html: str) -> List[str]:
        """Return the editor classes that occur in *html* (substring search)."""
        return [css_class for css_class in CUSTOM_STYLE_CLASSES if css_class in html]
