"""
Models package.
"""
from interview_core.models.interview import (
    InterviewMode,
    InterviewStatus,
    RoleLevel,
    QuestionCategory,
    QuestionDifficulty,
    DifficultyCurve,
    Recommendation,
    EvidenceType,
    TabSwitchType,
    SecurityEventType,
    JobSetup,
    InterviewQuestion,
    AnswerRecord,
    EvaluationScores,
    AnswerEvaluation,
    ScoreAverages,
    ScoreSummary,
    EvidenceItem,
    IntegritySummary,
    InterviewReport,
    SecurityEvent,
    TabSwitchEvent,
    QuestionTiming,
    InterviewSession,
)
from interview_core.models.responses import ApiError, ApiResponse

__all__ = [
    "InterviewMode",
    "InterviewStatus",
    "RoleLevel",
    "QuestionCategory",
    "QuestionDifficulty",
    "DifficultyCurve",
    "Recommendation",
    "EvidenceType",
    "TabSwitchType",
    "SecurityEventType",
    "JobSetup",
    "InterviewQuestion",
    "AnswerRecord",
    "EvaluationScores",
    "AnswerEvaluation",
    "ScoreAverages",
    "ScoreSummary",
    "EvidenceItem",
    "IntegritySummary",
    "InterviewReport",
    "SecurityEvent",
    "TabSwitchEvent",
    "QuestionTiming",
    "InterviewSession",
    "ApiError",
    "ApiResponse",
]
