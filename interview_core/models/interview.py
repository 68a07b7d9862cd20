"""
Pydantic models for interview sessions.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class InterviewMode(str, Enum):
    """Intake mode that seeded the session."""
    RECRUITER_LED = "recruiter_led"
    COHORT = "cohort"
    SELF_SERVE = "self_serve"


class InterviewStatus(str, Enum):
    """Status of an interview session. Transitions are monotonic."""
    CREATED = "created"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class RoleLevel(str, Enum):
    JUNIOR = "junior"
    MID = "mid"
    SENIOR = "senior"


class QuestionCategory(str, Enum):
    EXPERIENCE = "experience"
    TECHNICAL = "technical"
    SCENARIO = "scenario"
    BEHAVIORAL = "behavioral"


class QuestionDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class DifficultyCurve(str, Enum):
    """How question difficulty should progress across the set."""
    EASY_TO_HARD = "easy_to_hard"
    BALANCED = "balanced"
    CUSTOM = "custom"


class Recommendation(str, Enum):
    STRONG_HIRE = "strong_hire"
    HIRE = "hire"
    BORDERLINE = "borderline"
    NO_HIRE = "no_hire"


class EvidenceType(str, Enum):
    TECHNICAL = "technical"
    LEADERSHIP = "leadership"
    COMMUNICATION = "communication"
    PROBLEM_SOLVING = "problem_solving"


class TabSwitchType(str, Enum):
    BLUR = "blur"
    FOCUS = "focus"


class SecurityEventType(str, Enum):
    """
    Known integrity events emitted by the browser client.

    The client is an untrusted producer: names outside this vocabulary are
    still recorded, they are just never treated as critical.
    """
    DEVTOOLS_DETECTED = "devtools_detected"
    DEVTOOLS_CLOSED = "devtools_closed"
    SCREENSHOT_ATTEMPT = "screenshot_attempt"
    CLIPBOARD_WRITE_ATTEMPT = "clipboard_write_attempt"
    CLIPBOARD_WRITE = "clipboard_write"
    KEYBOARD_SHORTCUT_BLOCKED = "keyboard_shortcut_blocked"
    RIGHT_CLICK_BLOCKED = "right_click_blocked"
    DRAG_BLOCKED = "drag_blocked"
    IDLE_DETECTED = "idle_detected"
    SECURITY_MONITOR_INITIALIZED = "security_monitor_initialized"
    TAB_HIDDEN_DURING_PRESENCE_CHECK = "tab_hidden_during_presence_check"


# Allowed values for JobSetup.question_count
ALLOWED_QUESTION_COUNTS = (5, 10, 15, 20, 25)


class JobSetup(BaseModel):
    """Recruiter-provided configuration for question generation."""
    top_skills: List[str] = Field(default_factory=list)
    question_count: Optional[int] = None
    difficulty_curve: DifficultyCurve = DifficultyCurve.BALANCED
    custom_difficulty: Optional[List[QuestionDifficulty]] = None

    class Config:
        use_enum_values = True


class InterviewQuestion(BaseModel):
    """A generated question. Immutable once the set is persisted."""
    id: str
    text: str
    category: QuestionCategory = QuestionCategory.TECHNICAL
    difficulty: QuestionDifficulty = QuestionDifficulty.MEDIUM

    class Config:
        use_enum_values = True


class AnswerRecord(BaseModel):
    """Record of a candidate's answer to a question."""
    question_id: str
    text: str
    submitted_at: datetime = Field(default_factory=utc_now)
    time_spent_seconds: Optional[float] = None
    is_suspiciously_fast: bool = False


class EvaluationScores(BaseModel):
    technical: int = Field(default=0, ge=0, le=10)
    communication: int = Field(default=0, ge=0, le=10)
    problem_solving: int = Field(default=0, ge=0, le=10)


class AnswerEvaluation(BaseModel):
    """Bounded evaluation of a single answer. Never mutated after creation."""
    question_id: str
    scores: EvaluationScores = Field(default_factory=EvaluationScores)
    overall: int = Field(default=0, ge=0, le=10)
    strengths: List[str] = Field(default_factory=list)
    gaps: List[str] = Field(default_factory=list)
    follow_up_question: str = ""


class ScoreAverages(BaseModel):
    technical: float = 0.0
    communication: float = 0.0
    problem_solving: float = 0.0
    overall: float = 0.0


class ScoreSummary(BaseModel):
    """Aggregate of all evaluations, rounded half-up to one decimal."""
    count_evaluated: int = 0
    avg: ScoreAverages = Field(default_factory=ScoreAverages)


class EvidenceItem(BaseModel):
    claim: str
    supporting_answer_snippet: str
    related_question_id: str
    evidence_type: EvidenceType = EvidenceType.TECHNICAL

    class Config:
        use_enum_values = True


class IntegritySummary(BaseModel):
    tab_switch_count: int = 0
    security_event_count: int = 0
    critical_events: List[str] = Field(default_factory=list)
    summary: str = ""


class InterviewReport(BaseModel):
    """Final narrative report for a completed session."""
    recommendation: Recommendation = Recommendation.BORDERLINE
    confidence: int = Field(default=0, ge=0, le=100)
    executive_summary: str = ""
    strengths: List[str] = Field(default_factory=list)
    gaps_and_risks: List[str] = Field(default_factory=list)
    evidence: List[EvidenceItem] = Field(default_factory=list)
    next_round_focus: List[str] = Field(default_factory=list)
    integrity_summary: Optional[IntegritySummary] = None
    generated_at: datetime = Field(default_factory=utc_now)

    class Config:
        use_enum_values = True


class SecurityEvent(BaseModel):
    event: str
    timestamp: datetime = Field(default_factory=utc_now)
    details: Dict[str, Any] = Field(default_factory=dict)


class TabSwitchEvent(BaseModel):
    type: TabSwitchType
    timestamp: datetime = Field(default_factory=utc_now)

    class Config:
        use_enum_values = True


class QuestionTiming(BaseModel):
    """When a question was shown and answered."""
    question_id: str
    displayed_at: datetime = Field(default_factory=utc_now)
    answered_at: Optional[datetime] = None
    time_spent_seconds: Optional[float] = None


class InterviewSession(BaseModel):
    """Complete interview session state."""
    id: str
    mode: InterviewMode
    status: InterviewStatus = InterviewStatus.CREATED

    # Seed context
    resume_text: str
    jd_text: Optional[str] = None
    role: Optional[str] = None
    level: Optional[RoleLevel] = None
    job_setup: Optional[JobSetup] = None

    # Cohort / candidate
    template_id: Optional[str] = None
    candidate_name: Optional[str] = None
    candidate_email: Optional[str] = None
    student_id: Optional[str] = None

    # Questions and answers
    questions: List[InterviewQuestion] = Field(default_factory=list)
    current_question_index: int = 0
    answers: List[AnswerRecord] = Field(default_factory=list)
    evaluations: List[AnswerEvaluation] = Field(default_factory=list)
    score_summary: ScoreSummary = Field(default_factory=ScoreSummary)

    # Report
    report: Optional[InterviewReport] = None
    share_token: Optional[str] = None

    # Integrity signals
    security_events: List[SecurityEvent] = Field(default_factory=list)
    tab_switch_events: List[TabSwitchEvent] = Field(default_factory=list)
    tab_switch_count: int = 0

    # Timing
    created_at: datetime = Field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None
    question_timings: List[QuestionTiming] = Field(default_factory=list)

    class Config:
        use_enum_values = True

    @property
    def current_question(self) -> Optional[InterviewQuestion]:
        """Question under the cursor, if questions exist."""
        if not self.questions:
            return None
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    def get_evaluation(self, question_id: str) -> Optional[AnswerEvaluation]:
        for evaluation in self.evaluations:
            if evaluation.question_id == question_id:
                return evaluation
        return None

    def get_answer(self, question_id: str) -> Optional[AnswerRecord]:
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer
        return None

    def get_timing(self, question_id: str) -> Optional[QuestionTiming]:
        for timing in self.question_timings:
            if timing.question_id == question_id:
                return timing
        return None


# API Request/Response Models

class CreateSessionRequest(BaseModel):
    """Request to create a new interview session."""
    mode: InterviewMode
    resume_text: str = ""
    jd_text: Optional[str] = None
    role: Optional[str] = None
    level: Optional[str] = None
    job_setup: Optional[JobSetup] = None
    template_id: Optional[str] = None
    candidate_name: Optional[str] = None
    candidate_email: Optional[str] = None
    student_id: Optional[str] = None

    class Config:
        use_enum_values = True


class SubmitAnswerRequest(BaseModel):
    """Request to submit an answer for the current question."""
    answer_text: str = ""
    # Stale-state guard: rejected when it is not the current question
    question_id: Optional[str] = None


class SecurityEventRequest(BaseModel):
    event: str = ""
    timestamp: Optional[datetime] = None
    details: Optional[Dict[str, Any]] = None


class TabSwitchRequest(BaseModel):
    type: str = ""
    timestamp: Optional[datetime] = None


class SessionView(BaseModel):
    """Client-facing view of a session."""
    session_id: str
    mode: str
    status: str
    role: Optional[str] = None
    level: Optional[str] = None
    candidate_name: Optional[str] = None
    template_id: Optional[str] = None
    questions: List[InterviewQuestion] = Field(default_factory=list)
    current_question_index: int = 0
    current_question: Optional[InterviewQuestion] = None
    current_answer: Optional[AnswerRecord] = None
    current_evaluation: Optional[AnswerEvaluation] = None
    questions_answered: int = 0
    total_questions: int = 0
    score_summary: ScoreSummary = Field(default_factory=ScoreSummary)
    tab_switch_count: int = 0
    has_report: bool = False
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_session(cls, session: InterviewSession) -> "SessionView":
        current = session.current_question
        return cls(
            session_id=session.id,
            mode=session.mode,
            status=session.status,
            role=session.role,
            level=session.level,
            candidate_name=session.candidate_name,
            template_id=session.template_id,
            questions=session.questions,
            current_question_index=session.current_question_index,
            current_question=current,
            current_answer=session.get_answer(current.id) if current else None,
            current_evaluation=session.get_evaluation(current.id) if current else None,
            questions_answered=len(session.evaluations),
            total_questions=len(session.questions),
            score_summary=session.score_summary,
            tab_switch_count=session.tab_switch_count,
            has_report=session.report is not None,
            created_at=session.created_at,
            started_at=session.started_at,
            completed_at=session.completed_at,
        )


class GenerateQuestionsResponse(BaseModel):
    session_id: str
    status: str
    questions: List[InterviewQuestion]
    current_question_index: int = 0
    already_started: bool = False


class SubmitAnswerResponse(BaseModel):
    session_id: str
    status: str
    evaluation: AnswerEvaluation
    score_summary: ScoreSummary
    current_question_index: int
    next_question: Optional[InterviewQuestion] = None
    interview_complete: bool = False
    is_suspiciously_fast: bool = False


class NavigationResponse(BaseModel):
    session_id: str
    current_question_index: int
    current_question: InterviewQuestion
    current_answer: Optional[AnswerRecord] = None
    current_evaluation: Optional[AnswerEvaluation] = None


class ReportResponse(BaseModel):
    session_id: str
    status: str
    report: Optional[InterviewReport] = None
    score_summary: ScoreSummary = Field(default_factory=ScoreSummary)
    share_token: Optional[str] = None
    cached: bool = False


class SharedReportResponse(BaseModel):
    """Read-only report view resolved through a share token."""
    mode: str
    role: Optional[str] = None
    level: Optional[str] = None
    candidate_name: Optional[str] = None
    completed_at: Optional[datetime] = None
    report: InterviewReport
    score_summary: ScoreSummary


class IntegrityEventResponse(BaseModel):
    session_id: str
    accepted: bool = True
    ignored: bool = False
    tab_switch_count: int = 0
    security_event_count: int = 0
    warning: Optional[str] = None


class ActivityResponse(BaseModel):
    session_id: str
    ignored: bool = False
    last_activity_at: Optional[datetime] = None
