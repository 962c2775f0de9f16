import pytest

from quill_toolkit.core.generators import build_analysis_summary
from quill_toolkit.core.generators.analysis_summary import CONTENT_TITLE, DIVIDER, SUMMARY_TITLE
from quill_toolkit.core.models import ChapterAnalysis, EvaluatedPrinciple, ScoredPrinciple

RAW = {
    "overallScore": 71.6,
    "principleScores": [
        {
            "principleId": "spacing",
            "principle": "Spacing",
            "score": 80,
            "details": ["Concepts repeat well", ""],
            "suggestions": ["Revisit key terms"],
        },
    ],
    "principles": [
        {
            "principle": "dualCoding",
            "score": 55,
            "findings": [{"message": "No visuals", "evidence": "the cycle repeats", "severity": "medium"}],
            "suggestions": [{"text": "Add a diagram"}],
        },
        {
            "principle": "spacedRepetition",
            "score": 79,
            "findings": [{"message": "Term reused", "evidence": ["photosynthesis", 3]}],
        },
        "garbage",
    ],
    "recommendations": [
        {"title": "Add visuals", "description": "Insert a diagram", "priority": "high"},
        {"title": "Minor", "priority": "low"},
        "junk",
    ],
}


@pytest.fixture
def analysis():
    return ChapterAnalysis.from_dict(RAW)


class TestFromDict:
    """Raw scoring payloads resolve into the tagged principle union."""

    def test_overall_score_rounded(self, analysis):
        assert analysis.overall_score == 72

    def test_score_record_wins(self, analysis):
        spacing = analysis.principle("spacing")
        assert isinstance(spacing, ScoredPrinciple)
        assert spacing.kind == "score"
        assert spacing.score == 80
        assert spacing.messages == ("Concepts repeat well",)
        assert spacing.suggestions == ("Revisit key terms",)

    def test_evaluation_used_without_score_record(self, analysis):
        dual = analysis.principle("dualCoding")
        assert isinstance(dual, EvaluatedPrinciple)
        assert dual.kind == "evaluation"
        assert dual.score == 55
        assert dual.messages == ("No visuals",)
        assert dual.suggestions == ("Add a diagram",)

    def test_evaluations_keep_evidence(self, analysis):
        assert analysis.evaluation("spacing").findings[0].evidence == "photosynthesis, 3"

    def test_recommendations(self, analysis):
        assert len(analysis.recommendations) == 2
        assert [r.title for r in analysis.high_priority()] == ["Add visuals"]

    def test_empty_payload(self):
        analysis = ChapterAnalysis.from_dict({})
        assert analysis.overall_score == 0
        assert analysis.principles == ()
        assert analysis.principle("spacing") is None


class TestSummary:
    """Summary blocks placed before the edited text."""

    def test_text_sequence(self, analysis):
        texts = [block.text for block in build_analysis_summary(analysis)]
        assert texts == [
            SUMMARY_TITLE,
            "Overall Score: 72/100",
            "Spacing Analysis",
            "Score: 80/100",
            "• Concepts repeat well",
            "Suggestions:",
            "  → Revisit key terms",
            "Spacing context from original text",
            "Term reused",
            "photosynthesis, 3",
            "Dual Coding Analysis",
            "Score: 55/100",
            "• No visuals",
            "Suggestions:",
            "  → Add a diagram",
            "Dual-coding context from original text",
            "No visuals",
            "the cycle repeats",
            "Key Recommendations:",
            "• Add visuals: Insert a diagram",
            DIVIDER,
            CONTENT_TITLE,
        ]

    def test_headings(self, analysis):
        blocks = build_analysis_summary(analysis)
        assert blocks[0].heading == 1
        assert blocks[2].heading == 2
        assert blocks[-1].heading == 1
        assert blocks[-1].style_name == "Heading 1"

    def test_minimal_summary(self):
        texts = [block.text for block in build_analysis_summary(ChapterAnalysis(overall_score=40))]
        assert texts == [SUMMARY_TITLE, "Overall Score: 40/100", DIVIDER, CONTENT_TITLE]
