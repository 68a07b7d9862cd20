"""
Tests for the scoring aggregator.
"""
import pytest

from interview_core.models.interview import AnswerEvaluation, EvaluationScores
from interview_core.services.scoring import compute_score_summary, round_half_up


def _evaluation(question_id: str, overall: int, technical: int = 5, communication: int = 5, problem_solving: int = 5):
    return AnswerEvaluation(
        question_id=question_id,
        scores=EvaluationScores(
            technical=technical,
            communication=communication,
            problem_solving=problem_solving,
        ),
        overall=overall,
    )


class TestRoundHalfUp:

    @pytest.mark.parametrize("value,expected", [
        (4.25, 4.3),
        (7.0, 7.0),
        (6.666, 6.7),
        (0.04, 0.0),
    ])
    def test_one_decimal(self, value, expected):
        assert round_half_up(value) == pytest.approx(expected)


class TestComputeScoreSummary:

    def test_empty(self):
        summary = compute_score_summary([])
        assert summary.count_evaluated == 0
        assert summary.avg.overall == 0.0

    def test_averages(self):
        summary = compute_score_summary([
            _evaluation("q1", 6, technical=6, communication=4),
            _evaluation("q2", 8, technical=7, communication=5),
            _evaluation("q3", 10, technical=9, communication=5),
        ])
        assert summary.count_evaluated == 3
        assert summary.avg.overall == 8.0
        assert summary.avg.technical == pytest.approx(7.3)
        assert summary.avg.communication == pytest.approx(4.7)
        assert summary.avg.problem_solving == 5.0

    def test_half_rounds_up(self):
        summary = compute_score_summary([
            _evaluation("q1", 7),
            _evaluation("q2", 8),
        ])
        assert summary.avg.overall == 7.5

        summary = compute_score_summary([
            _evaluation("q1", 4),
            _evaluation("q2", 4),
            _evaluation("q3", 4),
            _evaluation("q4", 5),
        ])
        # 4.25 -> 4.3
        assert summary.avg.overall == pytest.approx(4.3)

    def test_accepts_generator(self):
        summary = compute_score_summary(_evaluation(f"q{i}", 9) for i in range(4))
        assert summary.count_evaluated == 4
        assert summary.avg.overall == 9.0
