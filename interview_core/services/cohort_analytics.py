"""
Cohort Analytics Service.

Aggregates every session created from one cohort template: completion
counts, score distribution, tab-switch flags, completion time and the
recommendation mix of the generated reports.
"""
import logging
from collections import OrderedDict
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from interview_core.models.interview import InterviewSession, InterviewStatus, Recommendation
from interview_core.providers.session_store import SessionStoreProvider, get_session_store
from interview_core.services.integrity_tracker import TAB_SWITCH_WARNING_THRESHOLD
from interview_core.services.scoring import round_half_up

logger = logging.getLogger(__name__)


class CohortSummary(BaseModel):
    total_candidates: int = 0
    completed: int = 0
    in_progress: int = 0
    pending: int = 0
    completion_rate: float = 0.0


class ScoreDistribution(BaseModel):
    excellent: int = 0       # >= 8
    good: int = 0            # 6 - 8
    average: int = 0         # 4 - 6
    below_average: int = 0   # < 4


class CohortScores(BaseModel):
    average: float = 0.0
    min: float = 0.0
    max: float = 0.0
    distribution: ScoreDistribution = Field(default_factory=ScoreDistribution)


class TabSwitchStats(BaseModel):
    average: float = 0.0
    flagged: int = 0
    flagged_percentage: float = 0.0


class TimingStats(BaseModel):
    average_completion_minutes: float = 0.0
    total_sessions: int = 0


class TimelinePoint(BaseModel):
    date: str
    sessions: int = 0
    completed: int = 0


class CohortAnalytics(BaseModel):
    """Aggregate view of one cohort template."""
    template_id: str
    summary: CohortSummary = Field(default_factory=CohortSummary)
    scores: CohortScores = Field(default_factory=CohortScores)
    tab_switches: TabSwitchStats = Field(default_factory=TabSwitchStats)
    timing: TimingStats = Field(default_factory=TimingStats)
    recommendations: Dict[str, int] = Field(default_factory=dict)
    timeline: List[TimelinePoint] = Field(default_factory=list)


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _completion_minutes(session: InterviewSession) -> Optional[float]:
    """Minutes between the first and last submitted answer."""
    if not session.answers:
        return None
    first = session.answers[0].submitted_at
    last = session.answers[-1].submitted_at
    return (last - first).total_seconds() / 60


def compute_cohort_analytics(template_id: str, sessions: List[InterviewSession]) -> CohortAnalytics:
    """Pure aggregation over the sessions of one template."""
    total = len(sessions)
    completed = [s for s in sessions if s.status == InterviewStatus.COMPLETED.value]
    in_progress = [s for s in sessions if s.status == InterviewStatus.IN_PROGRESS.value]
    pending = [s for s in sessions if s.status == InterviewStatus.CREATED.value]

    # Sessions without any evaluated answer carry no score signal
    scores = [s.score_summary.avg.overall for s in completed if s.score_summary.avg.overall > 0]
    distribution = ScoreDistribution(
        excellent=sum(1 for x in scores if x >= 8),
        good=sum(1 for x in scores if 6 <= x < 8),
        average=sum(1 for x in scores if 4 <= x < 6),
        below_average=sum(1 for x in scores if x < 4),
    )

    tab_counts = [s.tab_switch_count for s in completed]
    flagged = sum(1 for count in tab_counts if count > TAB_SWITCH_WARNING_THRESHOLD)

    durations = [m for m in (_completion_minutes(s) for s in completed) if m is not None]

    recommendations = {r.value: 0 for r in Recommendation}
    for session in completed:
        if session.report is not None and session.report.recommendation in recommendations:
            recommendations[session.report.recommendation] += 1

    timeline: "OrderedDict[str, TimelinePoint]" = OrderedDict()
    for session in sorted(sessions, key=lambda s: s.created_at):
        day = session.created_at.date().isoformat()
        point = timeline.setdefault(day, TimelinePoint(date=day))
        point.sessions += 1
        if session.status == InterviewStatus.COMPLETED.value:
            point.completed += 1

    return CohortAnalytics(
        template_id=template_id,
        summary=CohortSummary(
            total_candidates=total,
            completed=len(completed),
            in_progress=len(in_progress),
            pending=len(pending),
            completion_rate=round_half_up(len(completed) / total * 100) if total else 0.0,
        ),
        scores=CohortScores(
            average=round_half_up(_mean(scores)),
            min=min(scores) if scores else 0.0,
            max=max(scores) if scores else 0.0,
            distribution=distribution,
        ),
        tab_switches=TabSwitchStats(
            average=round_half_up(_mean(tab_counts)),
            flagged=flagged,
            flagged_percentage=round_half_up(flagged / len(completed) * 100) if completed else 0.0,
        ),
        timing=TimingStats(
            average_completion_minutes=round_half_up(_mean(durations)),
            total_sessions=len(completed),
        ),
        recommendations=recommendations,
        timeline=list(timeline.values()),
    )


class CohortAnalyticsService:
    """Loads a template's sessions and aggregates them."""

    def __init__(self, store: Optional[SessionStoreProvider] = None):
        self._store = store

    @property
    def store(self) -> SessionStoreProvider:
        return self._store or get_session_store()

    async def get_cohort_analytics(self, template_id: str) -> CohortAnalytics:
        sessions = await self.store.list_by_template(template_id)
        logger.debug(f"Aggregating {len(sessions)} sessions for template {template_id}")
        return compute_cohort_analytics(template_id, sessions)


# Global instance (lazy loaded)
_cohort_analytics: Optional[CohortAnalyticsService] = None


def get_cohort_analytics_service() -> CohortAnalyticsService:
    global _cohort_analytics
    if _cohort_analytics is None:
        _cohort_analytics = CohortAnalyticsService()
    return _cohort_analytics
