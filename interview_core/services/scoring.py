"""
Scoring Aggregator.

Folds per-answer evaluations into the session's running score summary.
"""
import math
from typing import Iterable

from interview_core.models.interview import AnswerEvaluation, ScoreAverages, ScoreSummary


def round_half_up(value: float, digits: int = 1) -> float:
    """Round half away from zero for non-negative values (4.25 -> 4.3)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def compute_score_summary(evaluations: Iterable[AnswerEvaluation]) -> ScoreSummary:
    """
    Average the sub-scores and overall score of ``evaluations``.

    Empty input yields a zeroed summary.
    """
    count = 0
    technical = communication = problem_solving = overall = 0

    for evaluation in evaluations:
        count += 1
        technical += evaluation.scores.technical
        communication += evaluation.scores.communication
        problem_solving += evaluation.scores.problem_solving
        overall += evaluation.overall

    if count == 0:
        return ScoreSummary()

    return ScoreSummary(
        count_evaluated=count,
        avg=ScoreAverages(
            technical=round_half_up(technical / count),
            communication=round_half_up(communication / count),
            problem_solving=round_half_up(problem_solving / count),
            overall=round_half_up(overall / count),
        ),
    )
