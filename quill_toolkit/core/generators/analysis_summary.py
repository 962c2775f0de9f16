from __future__ import annotations

"""Analysis summary blocks prepended to analysis-mode exports."""

import logging
from typing import List, Optional, Tuple

from quill_toolkit.core.models import (
    Block,
    ChapterAnalysis,
    EvaluatedPrinciple,
    Indent,
    Paragraph,
    PrincipleResult,
    Shading,
    Spacing,
    StyleFlags,
    TextRun,
)
from quill_toolkit.core.utils import sanitize_text

logger = logging.getLogger(__name__)

__all__ = ["build_analysis_summary", "SUMMARY_TITLE", "CONTENT_TITLE"]

SUMMARY_TITLE = "Analysis Summary"
CONTENT_TITLE = "Edited Chapter Text"
SUGGESTION_COLOR = "2563EB"
EVIDENCE_COLOR = "111827"
DIVIDER = "─" * 50
MAX_CONTEXTS = 4

# topic -> (section heading, context title, (fill, accent))
_SECTIONS: Tuple[Tuple[str, str, str, Tuple[str, str]], ...] = (
    ("spacing", "Spacing Analysis", "Spacing context from original text", ("DBEAFE", "1D4ED8")),
    ("dualCoding", "Dual Coding Analysis", "Dual-coding context from original text", ("FEF9C3", "92400E")),
)


def _text(value: str, style: StyleFlags = StyleFlags(), size: Optional[int] = None) -> List[TextRun]:
    value = sanitize_text(value)
    return [TextRun(value, style, size=size)] if value else []


def _heading(text: str, level: int, spacing: Spacing) -> Paragraph:
    return Paragraph(runs=_text(text), heading=level, style_name=f"Heading {level}", spacing=spacing)


def _principle_blocks(principle: PrincipleResult, title: str) -> List[Block]:
    blocks: List[Block] = [
        _heading(title, 2, Spacing(before=300, after=150)),
        Paragraph(runs=_text(f"Score: {principle.score}/100", StyleFlags(bold=True)),
                  spacing=Spacing(after=100)),
    ]
    for message in principle.messages:
        blocks.append(Paragraph(runs=_text(f"• {message}"), spacing=Spacing(after=80)))
    if principle.suggestions:
        blocks.append(Paragraph(runs=_text("Suggestions:", StyleFlags(bold=True, italics=True)),
                                spacing=Spacing(before=100, after=80)))
        for suggestion in principle.suggestions:
            blocks.append(Paragraph(
                runs=_text(f"  → {suggestion}", StyleFlags(color=SUGGESTION_COLOR)),
                spacing=Spacing(after=80),
            ))
    return blocks


def _context_blocks(evaluation: Optional[EvaluatedPrinciple], title: str, palette: Tuple[str, str]) -> List[Block]:
    """Quote the evidence of up to four findings in a shaded section."""
    if evaluation is None:
        return []
    contexts = [f for f in evaluation.findings if f.evidence]
    if not contexts:
        return []
    fill, accent = palette
    blocks: List[Block] = [Paragraph(
        runs=_text(title, StyleFlags(bold=True, color=accent)),
        shading=Shading(fill=fill),
        spacing=Spacing(before=160, after=60),
    )]
    for finding in contexts[:MAX_CONTEXTS]:
        blocks.append(Paragraph(
            runs=_text(finding.message or "Context", StyleFlags(bold=True, color=accent)),
            spacing=Spacing(before=40, after=20),
        ))
        blocks.append(Paragraph(
            runs=_text(finding.evidence, StyleFlags(italics=True, color=EVIDENCE_COLOR)),
            shading=Shading(fill=fill),
            spacing=Spacing(after=100),
            indent=Indent(left=400),
        ))
    return blocks


def build_analysis_summary(analysis: ChapterAnalysis) -> List[Block]:
    """Return the summary section followed by the edited-text heading."""
    blocks: List[Block] = [
        _heading(SUMMARY_TITLE, 1, Spacing(before=400, after=200)),
        Paragraph(runs=_text(f"Overall Score: {analysis.overall_score}/100", StyleFlags(bold=True), 24),
                  spacing=Spacing(after=200)),
    ]
    for topic, title, context_title, palette in _SECTIONS:
        principle = analysis.principle(topic)
        if principle is None:
            continue
        blocks.extend(_principle_blocks(principle, title))
        blocks.extend(_context_blocks(analysis.evaluation(topic), context_title, palette))

    recommendations = analysis.high_priority(3)
    if recommendations:
        blocks.append(_heading("Key Recommendations:", 2, Spacing(before=200, after=100)))
        for recommendation in recommendations:
            runs = _text(f"• {recommendation.title}: ", StyleFlags(bold=True))
            runs.extend(_text(recommendation.description))
            blocks.append(Paragraph(runs=runs, spacing=Spacing(after=100)))

    blocks.append(Paragraph(runs=_text(DIVIDER), spacing=Spacing(before=400, after=400)))
    blocks.append(_heading(CONTENT_TITLE, 1, Spacing(after=200)))
    logger.debug("Built analysis summary with %d blocks", len(blocks))
    return blocks
