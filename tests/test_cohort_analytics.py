"""
Tests for cohort analytics aggregation.
"""
from datetime import datetime, timedelta, timezone

import pytest

from interview_core.models.interview import (
    AnswerRecord,
    InterviewReport,
    InterviewSession,
    ScoreAverages,
    ScoreSummary,
)
from interview_core.services.cohort_analytics import CohortAnalyticsService, compute_cohort_analytics

from conftest import RESUME_TEXT

DAY_ONE = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def _session(session_id, status="completed", overall=0.0, tab_switches=0, created_at=DAY_ONE,
             minutes=None, recommendation=None):
    answers = []
    if minutes is not None:
        answers = [
            AnswerRecord(question_id="q1", text="first answer", submitted_at=created_at),
            AnswerRecord(question_id="q2", text="last answer", submitted_at=created_at + timedelta(minutes=minutes)),
        ]
    return InterviewSession(
        id=session_id,
        mode="cohort",
        status=status,
        resume_text=RESUME_TEXT,
        template_id="tmpl",
        score_summary=ScoreSummary(
            count_evaluated=2 if overall else 0,
            avg=ScoreAverages(overall=overall),
        ),
        tab_switch_count=tab_switches,
        created_at=created_at,
        answers=answers,
        report=InterviewReport(recommendation=recommendation) if recommendation else None,
    )


class TestComputeCohortAnalytics:

    def test_empty_cohort(self):
        analytics = compute_cohort_analytics("tmpl", [])
        assert analytics.summary.total_candidates == 0
        assert analytics.summary.completion_rate == 0.0
        assert analytics.scores.average == 0.0
        assert analytics.timeline == []

    def test_summary_and_distribution(self):
        sessions = [
            _session("a", overall=8.5, recommendation="hire"),
            _session("b", overall=6.0, recommendation="borderline"),
            _session("c", overall=3.5, tab_switches=4, recommendation="no_hire"),
            _session("d", overall=0.0),
            _session("e", status="in_progress"),
            _session("f", status="created", created_at=DAY_ONE + timedelta(days=1)),
        ]

        analytics = compute_cohort_analytics("tmpl", sessions)

        assert analytics.summary.total_candidates == 6
        assert analytics.summary.completed == 4
        assert analytics.summary.in_progress == 1
        assert analytics.summary.pending == 1
        assert analytics.summary.completion_rate == pytest.approx(66.7)

        # Sessions without evaluations do not count towards scores
        assert analytics.scores.average == 6.0
        assert analytics.scores.min == 3.5
        assert analytics.scores.max == 8.5
        distribution = analytics.scores.distribution
        assert (distribution.excellent, distribution.good, distribution.average, distribution.below_average) == (1, 1, 0, 1)

        assert analytics.tab_switches.flagged == 1
        assert analytics.tab_switches.flagged_percentage == 25.0
        assert analytics.recommendations["hire"] == 1
        assert analytics.recommendations["strong_hire"] == 0

        assert [(p.date, p.sessions, p.completed) for p in analytics.timeline] == [
            ("2024-03-01", 5, 4),
            ("2024-03-02", 1, 0),
        ]

    def test_completion_time(self):
        sessions = [_session("a", overall=7, minutes=20), _session("b", overall=7, minutes=40)]
        analytics = compute_cohort_analytics("tmpl", sessions)
        assert analytics.timing.average_completion_minutes == 30.0
        assert analytics.timing.total_sessions == 2


class TestCohortAnalyticsService:

    @pytest.mark.asyncio
    async def test_reads_template_sessions(self, memory_store):
        await memory_store.create(_session("a", overall=9))
        other = _session("b", overall=2)
        other.template_id = "other"
        await memory_store.create(other)

        analytics = await CohortAnalyticsService(store=memory_store).get_cohort_analytics("tmpl")

        assert analytics.template_id == "tmpl"
        assert analytics.summary.total_candidates == 1
        assert analytics.scores.average == 9.0

    @pytest.mark.asyncio
    async def test_unknown_template(self, memory_store):
        analytics = await CohortAnalyticsService(store=memory_store).get_cohort_analytics("nope")
        assert analytics.summary.total_candidates == 0
