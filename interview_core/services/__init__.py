"""
Services package.
"""
from interview_core.services.reasoning import ReasoningService, get_reasoning_service
from interview_core.services.scoring import compute_score_summary, round_half_up
from interview_core.services.evaluation_normalizer import (
    Parsed,
    ParseFailed,
    normalize_evaluation,
    normalize_questions,
    normalize_report,
    parse_model_json,
)
from interview_core.services.integrity_tracker import (
    IntegritySignalTracker,
    build_integrity_context,
    get_integrity_tracker,
)
from interview_core.services.interview_orchestrator import (
    InterviewOrchestrator,
    get_interview_orchestrator,
)
from interview_core.services.cohort_analytics import (
    CohortAnalytics,
    CohortAnalyticsService,
    compute_cohort_analytics,
    get_cohort_analytics_service,
)

__all__ = [
    # Reasoning port
    "ReasoningService",
    "get_reasoning_service",
    # Scoring
    "compute_score_summary",
    "round_half_up",
    # Normalization
    "Parsed",
    "ParseFailed",
    "parse_model_json",
    "normalize_questions",
    "normalize_evaluation",
    "normalize_report",
    # Integrity signals
    "IntegritySignalTracker",
    "build_integrity_context",
    "get_integrity_tracker",
    # Lifecycle
    "InterviewOrchestrator",
    "get_interview_orchestrator",
    # Analytics
    "CohortAnalytics",
    "CohortAnalyticsService",
    "compute_cohort_analytics",
    "get_cohort_analytics_service",
]
