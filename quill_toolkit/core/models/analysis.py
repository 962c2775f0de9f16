from __future__ import annotations

"""Typed view of the scoring-engine output consumed by analysis exports.

The scoring engines report a principle either as a *score* record (with
plain ``details`` strings) or as an *evaluation* record (with structured
``findings``).  :meth:`ChapterAnalysis.from_dict` resolves the raw payload
once into the :data:`PrincipleResult` union so export code never inspects
raw dictionaries.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

__all__ = [
    "Finding",
    "ScoredPrinciple",
    "EvaluatedPrinciple",
    "PrincipleResult",
    "Recommendation",
    "ChapterAnalysis",
]

# Topic key -> (principleScores ids / name fragments, evaluation principle id)
_TOPICS: Dict[str, Tuple[Tuple[str, ...], str]] = {
    "spacing": (("spacing",), "spacedRepetition"),
    "dualCoding": (("dualcoding", "dual coding"), "dualCoding"),
}


@dataclass(frozen=True)
class Finding:
    message: str
    evidence: str = ""
    severity: str = ""


@dataclass(frozen=True)
class ScoredPrinciple:
    topic: str
    score: int
    details: Tuple[str, ...] = ()
    suggestions: Tuple[str, ...] = ()
    kind: str = "score"

    @property
    def messages(self) -> Tuple[str, ...]:
        return self.details


@dataclass(frozen=True)
class EvaluatedPrinciple:
    topic: str
    score: int
    findings: Tuple[Finding, ...] = ()
    suggestions: Tuple[str, ...] = ()
    kind: str = "evaluation"

    @property
    def messages(self) -> Tuple[str, ...]:
        return tuple(f.message for f in self.findings if f.message)


PrincipleResult = Union[ScoredPrinciple, EvaluatedPrinciple]


@dataclass(frozen=True)
class Recommendation:
    title: str
    description: str = ""
    priority: str = "medium"


@dataclass(frozen=True)
class ChapterAnalysis:
    """Overall score, per-topic principle results and recommendations."""

    overall_score: int
    principles: Tuple[PrincipleResult, ...] = ()
    recommendations: Tuple[Recommendation, ...] = ()
    # Evaluation records kept alongside score records for their evidence
    evaluations: Tuple[EvaluatedPrinciple, ...] = ()

    def principle(self, topic: str) -> Optional[PrincipleResult]:
        return next((p for p in self.principles if p.topic == topic), None)

    def evaluation(self, topic: str) -> Optional[EvaluatedPrinciple]:
        return next((p for p in self.evaluations if p.topic == topic), None)

    def high_priority(self, limit: int = 3) -> List[Recommendation]:
        return [r for r in self.recommendations if r.priority == "high"][:limit]

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ChapterAnalysis":
        """Resolve a scoring-engine payload (camelCase keys) into typed records."""
        score_records = _as_list(raw.get("principleScores"))
        evaluation_records = _as_list(raw.get("principles"))

        principles: List[PrincipleResult] = []
        evaluations: List[EvaluatedPrinciple] = []
        for topic, (score_keys, evaluation_id) in _TOPICS.items():
            evaluation_raw = next(
                (p for p in evaluation_records
                 if isinstance(p, Mapping) and p.get("principle") == evaluation_id), None
            )
            evaluation = _evaluation(topic, evaluation_raw) if evaluation_raw else None
            if evaluation is not None:
                evaluations.append(evaluation)

            score_raw = next(
                (p for p in score_records if _matches_topic(p, score_keys)), None
            )
            if score_raw is not None:
                principles.append(ScoredPrinciple(
                    topic=topic,
                    score=_score(score_raw.get("score")),
                    details=tuple(str(d) for d in _as_list(score_raw.get("details")) if d),
                    suggestions=_suggestions(score_raw.get("suggestions")),
                ))
            elif evaluation is not None:
                principles.append(evaluation)

        recommendations = tuple(
            Recommendation(
                title=str(r.get("title") or ""),
                description=str(r.get("description") or ""),
                priority=str(r.get("priority") or "medium"),
            )
            for r in _as_list(raw.get("recommendations"))
            if isinstance(r, Mapping)
        )
        analysis = cls(
            overall_score=_score(raw.get("overallScore")),
            principles=tuple(principles),
            recommendations=recommendations,
            evaluations=tuple(evaluations),
        )
        logger.debug(
            "Resolved analysis: score=%s principles=%s",
            analysis.overall_score, [(p.topic, p.kind) for p in analysis.principles],
        )
        return analysis


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _score(value: Any) -> int:
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return 0


def _matches_topic(record: Any, keys: Sequence[str]) -> bool:
    if not isinstance(record, Mapping):
        return False
    principle_id = str(record.get("principleId") or "").lower()
    name = str(record.get("principle") or "").lower()
    return any(principle_id == key.replace(" ", "") or key in name for key in keys)


def _suggestions(value: Any) -> Tuple[str, ...]:
    texts = []
    for item in _as_list(value):
        if isinstance(item, Mapping):
            item = item.get("text") or item.get("message") or ""
        if item:
            texts.append(str(item))
    return tuple(texts)


def _evidence(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return ""


def _evaluation(topic: str, record: Mapping[str, Any]) -> EvaluatedPrinciple:
    findings = tuple(
        Finding(
            message=str(f.get("message") or ""),
            evidence=_evidence(f.get("evidence")),
            severity=str(f.get("severity") or ""),
        )
        for f in _as_list(record.get("findings"))
        if isinstance(f, Mapping)
    )
    return EvaluatedPrinciple(
        topic=topic,
        score=_score(record.get("score")),
        findings=findings,
        suggestions=_suggestions(record.get("suggestions")),
    )
