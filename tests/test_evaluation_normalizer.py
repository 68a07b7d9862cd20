"""
Tests for the evaluation normalizer.
"""
import math

import pytest

from interview_core.core.errors import UpstreamParseError
from interview_core.models.interview import ScoreAverages, ScoreSummary
from interview_core.services.evaluation_normalizer import (
    DEFAULT_EVAL_GAP,
    DEFAULT_EVAL_STRENGTH,
    DEFAULT_EXECUTIVE_SUMMARY,
    DEFAULT_FOLLOW_UP,
    DEFAULT_NEXT_ROUND_FOCUS,
    EVAL_ITEM_MAX_CHARS,
    EVAL_MAX_ITEMS,
    PLACEHOLDER_EVIDENCE,
    Parsed,
    ParseFailed,
    clamp_int,
    confidence_ceiling,
    is_generic_filler,
    normalize_evaluation,
    normalize_questions,
    normalize_report,
    parse_model_json,
)
from interview_core.services.integrity_tracker import IntegrityContext


def _summary(count: int, overall: float) -> ScoreSummary:
    return ScoreSummary(
        count_evaluated=count,
        avg=ScoreAverages(technical=overall, communication=overall, problem_solving=overall, overall=overall),
    )


class TestParseModelJson:
    """Tests for the two-stage JSON parse."""

    def test_strict_parse(self):
        result = parse_model_json('{"overall": 7}')
        assert isinstance(result, Parsed)
        assert result.stage == "strict"
        assert result.data == {"overall": 7}

    def test_extracts_object_from_prose(self):
        raw = 'Here is the evaluation:\n```json\n{"overall": 6, "gaps": []}\n```\nThanks!'
        result = parse_model_json(raw)
        assert isinstance(result, Parsed)
        assert result.stage == "extracted"
        assert result.data["overall"] == 6

    def test_empty_response(self):
        for raw in (None, "", "   \n"):
            result = parse_model_json(raw)
            assert isinstance(result, ParseFailed)
            assert not result.ok

    def test_no_braces(self):
        result = parse_model_json("I cannot evaluate this answer.")
        assert isinstance(result, ParseFailed)
        assert result.reason == "no JSON object found"
        assert result.raw_snippet == "I cannot evaluate this answer."

    def test_invalid_json_between_braces(self):
        result = parse_model_json("prefix {not: valid json,} suffix")
        assert isinstance(result, ParseFailed)
        assert result.reason.startswith("invalid JSON")

    def test_snippet_is_truncated(self):
        result = parse_model_json("x" * 2000)
        assert isinstance(result, ParseFailed)
        assert len(result.raw_snippet) == 500
        assert result.raw_snippet.endswith("...")

    def test_snippet_at_limit_is_kept(self):
        result = parse_model_json("y" * 500)
        assert result.raw_snippet == "y" * 500

    def test_upstream_error_detail_is_bounded(self):
        error = UpstreamParseError("Failed to parse", raw="z" * 1200)
        assert len(error.detail["raw"]) == 500


class TestClampInt:
    """Round-then-clamp behaviour."""

    @pytest.mark.parametrize("value,expected", [
        (7, 7),
        (7.4, 7),
        (7.5, 8),
        (6.5, 7),
        ("8", 8),
        (-3, 0),
        (15, 10),
    ])
    def test_bounds_and_rounding(self, value, expected):
        assert clamp_int(value, 0, 10) == expected

    @pytest.mark.parametrize("value", [None, "excellent", [], {}, True, math.nan, math.inf])
    def test_non_numeric_yields_lower_bound(self, value):
        assert clamp_int(value, 0, 10) == 0


class TestNormalizeQuestions:
    """Question-set normalization."""

    def test_accepts_wrapped_and_bare_lists(self):
        wrapped = normalize_questions({"questions": [{"text": "Explain GIL?"}]}, 5)
        bare = normalize_questions([{"text": "Explain GIL?"}], 5)
        assert [q.text for q in wrapped] == [q.text for q in bare] == ["Explain GIL?"]

    def test_assigns_missing_and_duplicate_ids(self):
        data = {"questions": [
            {"id": "a", "text": "First?"},
            {"id": "a", "text": "Second?"},
            {"text": "Third?"},
        ]}
        questions = normalize_questions(data, 5)
        ids = [q.id for q in questions]
        assert ids[0] == "a"
        assert len(set(ids)) == 3

    def test_drops_empty_text_and_caps_count(self):
        data = {"questions": [{"text": ""}, {"question": "Alt key?"}, "Plain string?", {"text": "Extra?"}]}
        questions = normalize_questions(data, 2)
        assert [q.text for q in questions] == ["Alt key?", "Plain string?"]

    def test_unknown_category_and_difficulty_fall_back(self):
        questions = normalize_questions([{"text": "Q?", "category": "trivia", "difficulty": "insane"}], 1)
        assert questions[0].category == "technical"
        assert questions[0].difficulty == "medium"

    def test_non_list_yields_nothing(self):
        assert normalize_questions({"questions": "none"}, 5) == []
        assert normalize_questions("text", 5) == []


class TestNormalizeEvaluation:
    """Answer evaluation bounding and fallbacks."""

    def test_clamps_scores(self):
        evaluation = normalize_evaluation(
            {"scores": {"technical": 12, "communication": -1, "problem_solving": 7.5}, "overall": 11},
            "q1",
        )
        assert evaluation.scores.technical == 10
        assert evaluation.scores.communication == 0
        assert evaluation.scores.problem_solving == 8
        assert evaluation.overall == 10

    def test_overall_defaults_to_mean_of_subscores(self):
        evaluation = normalize_evaluation(
            {"scores": {"technical": 8, "communication": 6, "problemSolving": 7}, "overall": "n/a"},
            "q1",
        )
        assert evaluation.scores.problem_solving == 7
        assert evaluation.overall == 7

    def test_missing_lists_use_fallbacks(self):
        evaluation = normalize_evaluation({}, "q3")
        assert evaluation.question_id == "q3"
        assert evaluation.overall == 0
        assert evaluation.strengths == [DEFAULT_EVAL_STRENGTH]
        assert evaluation.gaps == [DEFAULT_EVAL_GAP]
        assert evaluation.follow_up_question == DEFAULT_FOLLOW_UP

    def test_lists_are_filtered_truncated_and_capped(self):
        evaluation = normalize_evaluation(
            {"strengths": ["", None, "x" * 300, "a", "b", "c", "d"], "followUpQuestion": "Why?"},
            "q1",
        )
        assert len(evaluation.strengths) == EVAL_MAX_ITEMS
        assert len(evaluation.strengths[0]) == EVAL_ITEM_MAX_CHARS
        assert evaluation.follow_up_question == "Why?"


class TestGenericFiller:
    """Vague gap statements are detected, specific ones kept."""

    def test_short_vague_statement(self):
        assert is_generic_filler("May need more practice")
        assert is_generic_filler("Could benefit from mentoring")

    def test_concrete_technology_is_kept(self):
        assert not is_generic_filler("May need Kubernetes operator experience")

    def test_long_context_is_kept(self):
        assert not is_generic_filler(
            "Could improve the way incident timelines are written up for stakeholders"
        )

    def test_no_pattern(self):
        assert not is_generic_filler("No production Kafka experience")
        assert not is_generic_filler("")


class TestConfidenceCeiling:
    """Confidence is capped by evidence volume and average score."""

    @pytest.mark.parametrize("count,overall,expected", [
        (0, 0.0, 70),
        (2, 9.5, 70),
        (3, 9.0, 85),
        (5, 7.5, 85),
        (6, 9.0, 95),
        (6, 7.9, 90),
        (8, 6.9, 80),
    ])
    def test_ceiling(self, count, overall, expected):
        assert confidence_ceiling(_summary(count, overall)) == expected


class TestNormalizeReport:
    """Report bounding against the score summary."""

    def test_empty_input_gets_full_fallbacks(self):
        report = normalize_report({}, _summary(3, 6.0))
        assert report.recommendation == "borderline"
        assert report.confidence == 0
        assert report.executive_summary == DEFAULT_EXECUTIVE_SUMMARY
        assert len(report.strengths) == 4
        assert len(report.gaps_and_risks) == 4
        assert report.strengths[0] == "Strong technical foundation (avg score: 6.0)"
        assert report.evidence == [PLACEHOLDER_EVIDENCE]
        assert report.next_round_focus == [DEFAULT_NEXT_ROUND_FOCUS]
        assert report.integrity_summary is None

    def test_confidence_is_capped(self):
        report = normalize_report({"recommendation": "strong_hire", "confidence": 99}, _summary(2, 9.0))
        assert report.recommendation == "strong_hire"
        assert report.confidence == 70

    def test_generic_gaps_are_replaced(self):
        report = normalize_report(
            {"gapsAndRisks": ["May need more depth", "Could improve", "No Kafka experience in production"]},
            _summary(4, 7.0),
        )
        assert "May need more depth" not in report.gaps_and_risks
        assert "No Kafka experience in production" in report.gaps_and_risks
        assert len(report.gaps_and_risks) == 4

    def test_evidence_requires_all_fields(self):
        report = normalize_report({"evidence": [
            {"claim": "Knows SQL", "supportingAnswerSnippet": "used EXPLAIN", "relatedQuestionId": "q2",
             "evidenceType": "bogus"},
            {"claim": "No snippet", "related_question_id": "q1"},
        ]}, _summary(3, 7.0))
        assert len(report.evidence) == 1
        assert report.evidence[0].related_question_id == "q2"
        assert report.evidence[0].evidence_type == "technical"

    def test_integrity_block_only_with_signals(self):
        quiet = IntegrityContext(tab_switch_count=0, security_event_count=0, critical_events=[])
        assert normalize_report({}, _summary(3, 7.0), quiet).integrity_summary is None

        noisy = IntegrityContext(tab_switch_count=1, security_event_count=2, critical_events=["devtools_opened"])
        block = normalize_report({}, _summary(3, 7.0), noisy).integrity_summary
        assert block is not None
        assert block.tab_switch_count == 1
        assert block.critical_events == ["devtools_opened"]
        assert "1 tab switch and 2 security events" in block.summary

    def test_model_integrity_summary_is_used(self):
        noisy = IntegrityContext(tab_switch_count=4, security_event_count=0, critical_events=[])
        block = normalize_report(
            {"securitySummary": {"summary": "Frequent tab switching.", "criticalEvents": []}},
            _summary(3, 7.0),
            noisy,
        ).integrity_summary
        assert block.summary == "Frequent tab switching."
        assert block.critical_events == []
