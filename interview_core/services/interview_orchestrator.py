"""
Interview Orchestrator Service.

Session lifecycle controller: creates sessions, generates the question set,
scores answers, moves the question cursor and produces the final report.

States move ``created -> in_progress -> completed`` and never back. Every
operation re-reads the session from the store and applies its change inside
the store's ``update`` function, so guards against duplicate work (questions
already generated, answer already evaluated, report already written) are
always evaluated against persisted state, never against client flags.
"""
import asyncio
import logging
import uuid
from typing import Callable, Optional

from interview_core.core.config import Settings, get_settings
from interview_core.core.errors import (
    DuplicateEvaluation,
    InterviewConflict,
    InterviewNotCompleted,
    NavigationOutOfRange,
    SessionNotFound,
    UpstreamParseError,
    ValidationFailed,
)
from interview_core.models.interview import (
    ALLOWED_QUESTION_COUNTS,
    ActivityResponse,
    AnswerRecord,
    CreateSessionRequest,
    GenerateQuestionsResponse,
    InterviewMode,
    InterviewSession,
    InterviewStatus,
    NavigationResponse,
    QuestionDifficulty,
    QuestionTiming,
    ReportResponse,
    RoleLevel,
    SessionView,
    SharedReportResponse,
    SubmitAnswerResponse,
    utc_now,
)
from interview_core.providers.session_store import SessionStoreProvider, get_session_store
from interview_core.services.evaluation_normalizer import (
    Parsed,
    normalize_evaluation,
    normalize_questions,
    normalize_report,
    parse_model_json,
)
from interview_core.services.integrity_tracker import build_integrity_context
from interview_core.services.prompts import (
    JSON_ONLY_SYSTEM_PROMPT,
    REPORT_SYSTEM_PROMPT,
    build_evaluation_prompt,
    build_question_prompt,
    build_report_prompt,
)
from interview_core.services.reasoning import ReasoningService, get_reasoning_service
from interview_core.services.scoring import compute_score_summary

logger = logging.getLogger(__name__)


MAX_TOP_SKILLS = 5

# Answers faster than this (seconds since the question was shown) are flagged
FAST_ANSWER_SECONDS = 5.0
FAST_ANSWER_SECONDS_HARD = 10.0


class _NoChange(Exception):
    """Aborts a store update whose guard found the work already done."""


def _is_suspiciously_fast(time_spent: Optional[float], difficulty: str) -> bool:
    if time_spent is None:
        return False
    threshold = FAST_ANSWER_SECONDS_HARD if difficulty == QuestionDifficulty.HARD.value else FAST_ANSWER_SECONDS
    return time_spent < threshold


def _mark_displayed(session: InterviewSession, index: int) -> None:
    """Record the first time the question at ``index`` was shown."""
    if not 0 <= index < len(session.questions):
        return
    question_id = session.questions[index].id
    if session.get_timing(question_id) is None:
        session.question_timings.append(QuestionTiming(question_id=question_id))


class InterviewOrchestrator:
    """
    Manages interview sessions from creation to the final report.

    Responsibilities:
    - Validate intake and create sessions
    - Generate the question set exactly once
    - Evaluate each answer exactly once and keep the score summary current
    - Move the question cursor
    - Generate (and cache) the final report and its share token
    """

    def __init__(
        self,
        store: Optional[SessionStoreProvider] = None,
        reasoning: Optional[ReasoningService] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Session store. Defaults to the configured global store.
            reasoning: Reasoning service. Defaults to the global service.
            settings: Settings. Defaults to the cached environment settings.
        """
        self._store = store
        self._reasoning = reasoning
        self.settings = settings or get_settings()

    @property
    def store(self) -> SessionStoreProvider:
        return self._store or get_session_store()

    @property
    def reasoning(self) -> ReasoningService:
        if self._reasoning is None:
            self._reasoning = get_reasoning_service()
        return self._reasoning

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _require_session(self, session_id: str) -> InterviewSession:
        session = await self.store.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    async def _verify_write(
        self,
        session_id: str,
        check: Callable[[InterviewSession], bool],
        what: str,
    ) -> None:
        """
        Re-read the session once and log a warning if ``check`` fails.

        Advisory only; never fails the request.
        """
        if not self.settings.verify_writes:
            return
        if self.settings.verify_write_delay_seconds > 0:
            await asyncio.sleep(self.settings.verify_write_delay_seconds)
        try:
            fetched = await self.store.get(session_id)
        except Exception as e:
            logger.warning(f"Read-after-write check for {what} on {session_id} failed: {e}")
            return
        if fetched is None or not check(fetched):
            logger.warning(f"Read-after-write mismatch for {what} on session {session_id}")

    def _target_question_count(self, session: InterviewSession) -> int:
        if session.job_setup and session.job_setup.question_count:
            return session.job_setup.question_count
        return self.settings.default_question_count

    def _validate_create_request(self, request: CreateSessionRequest) -> None:
        min_len = self.settings.min_seed_text_length
        if len((request.resume_text or "").strip()) < min_len:
            raise ValidationFailed(f"Resume text must be at least {min_len} characters")

        setup = request.job_setup
        if setup is not None and setup.question_count is not None:
            if setup.question_count not in ALLOWED_QUESTION_COUNTS:
                raise ValidationFailed(
                    f"question_count must be one of {', '.join(str(c) for c in ALLOWED_QUESTION_COUNTS)}"
                )

        if request.mode == InterviewMode.COHORT.value and not (request.template_id or "").strip():
            raise ValidationFailed("template_id is required for cohort sessions")

        # Cohort sessions carry their template's JD and skills
        if request.mode in (InterviewMode.RECRUITER_LED.value, InterviewMode.COHORT.value):
            if len((request.jd_text or "").strip()) < min_len:
                raise ValidationFailed(f"Job description must be at least {min_len} characters")
            skills = [s for s in (setup.top_skills if setup else []) if s and s.strip()]
            if not 1 <= len(skills) <= MAX_TOP_SKILLS:
                raise ValidationFailed(f"Provide between 1 and {MAX_TOP_SKILLS} top skills")

        elif request.mode == InterviewMode.SELF_SERVE.value:
            if not (request.role or "").strip():
                raise ValidationFailed("role is required for self-serve sessions")
            if not request.level:
                raise ValidationFailed("level is required for self-serve sessions")

        if request.level and request.level not in {level.value for level in RoleLevel}:
            raise ValidationFailed("level must be one of junior, mid, senior")

    # ------------------------------------------------------------------
    # Creation and reads
    # ------------------------------------------------------------------

    async def create_session(self, request: CreateSessionRequest) -> InterviewSession:
        """
        Validate intake and persist a new ``created`` session.

        Raises:
            ValidationFailed: seed text too short or mode-specific fields missing
        """
        self._validate_create_request(request)

        job_setup = request.job_setup
        if job_setup is not None:
            job_setup = job_setup.model_copy(update={
                "top_skills": [s.strip() for s in job_setup.top_skills if s and s.strip()],
            })

        session = InterviewSession(
            id=str(uuid.uuid4()),
            mode=request.mode,
            resume_text=request.resume_text.strip(),
            jd_text=(request.jd_text or "").strip() or None,
            role=(request.role or "").strip() or None,
            level=request.level or None,
            job_setup=job_setup,
            template_id=(request.template_id or "").strip() or None,
            candidate_name=request.candidate_name,
            candidate_email=request.candidate_email,
            student_id=request.student_id,
        )

        session = await self.store.create(session)
        await self.store.log_audit(
            "session_created",
            "session",
            session.id,
            {"mode": session.mode, "template_id": session.template_id},
        )
        logger.info(f"Created {session.mode} session {session.id}")
        return session

    async def get_session(self, session_id: str) -> InterviewSession:
        """Raises SessionNotFound for unknown ids."""
        return await self._require_session(session_id)

    async def get_session_view(self, session_id: str) -> SessionView:
        return SessionView.from_session(await self._require_session(session_id))

    # ------------------------------------------------------------------
    # Question generation
    # ------------------------------------------------------------------

    async def generate_questions(self, session_id: str) -> GenerateQuestionsResponse:
        """
        Generate the question set and move the session to ``in_progress``.

        Idempotent: a session that already has questions returns them with
        ``already_started=True`` and no upstream call is made.

        Raises:
            SessionNotFound: unknown session
            ValidationFailed: seed text too short
            UpstreamParseError: model output unparsable or without questions
            UpstreamUnavailable: reasoning call timed out or failed
        """
        session = await self._require_session(session_id)
        if session.questions:
            return self._questions_response(session, already_started=True)

        min_len = self.settings.min_seed_text_length
        if len((session.resume_text or "").strip()) < min_len:
            raise ValidationFailed(f"Resume text must be at least {min_len} characters")

        target_count = self._target_question_count(session)
        raw = await self.reasoning.complete(
            build_question_prompt(session, target_count),
            system_prompt=JSON_ONLY_SYSTEM_PROMPT,
            timeout=self.settings.question_timeout_seconds,
            config=ReasoningService.generation_config("questions"),
        )

        parsed = parse_model_json(raw)
        if not isinstance(parsed, Parsed):
            logger.error(f"Question generation for {session_id} returned unparsable output: {parsed.reason}")
            raise UpstreamParseError("Failed to parse generated questions", raw=raw)

        questions = normalize_questions(parsed.data, target_count)
        if not questions:
            raise UpstreamParseError("Model returned no usable questions", raw=raw)

        def start(current: InterviewSession) -> InterviewSession:
            if current.questions:
                raise _NoChange()
            now = utc_now()
            current.questions = questions
            current.status = InterviewStatus.IN_PROGRESS.value
            current.current_question_index = 0
            current.started_at = now
            current.last_activity_at = now
            current.question_timings = [QuestionTiming(question_id=questions[0].id, displayed_at=now)]
            return current

        try:
            updated = await self.store.update(session_id, start)
        except _NoChange:
            logger.info(f"Questions for {session_id} were generated concurrently; returning stored set")
            return self._questions_response(await self._require_session(session_id), already_started=True)

        await self._verify_write(session_id, lambda s: len(s.questions) == len(questions), "questions")
        logger.info(f"Generated {len(questions)} questions for session {session_id}")
        return self._questions_response(updated, already_started=False)

    @staticmethod
    def _questions_response(session: InterviewSession, already_started: bool) -> GenerateQuestionsResponse:
        return GenerateQuestionsResponse(
            session_id=session.id,
            status=session.status,
            questions=session.questions,
            current_question_index=session.current_question_index,
            already_started=already_started,
        )

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    async def submit_answer(
        self,
        session_id: str,
        answer_text: str,
        question_id: Optional[str] = None,
    ) -> SubmitAnswerResponse:
        """
        Evaluate the answer to the current question and advance.

        Args:
            session_id: Session id
            answer_text: Candidate's answer
            question_id: Question the client believes is current. A mismatch
                means the client is stale and the answer is rejected.

        Raises:
            ValidationFailed: answer too short or interview not started
            InterviewConflict: interview completed or stale question id
            DuplicateEvaluation: current question already evaluated
            UpstreamParseError: evaluation output unparsable
            UpstreamUnavailable: reasoning call timed out or failed
        """
        text = (answer_text or "").strip()
        min_len = self.settings.min_answer_length
        if len(text) < min_len:
            raise ValidationFailed(f"Answer too short (min {min_len} chars).")

        session = await self._require_session(session_id)
        if session.status == InterviewStatus.CREATED.value:
            raise ValidationFailed("Interview has not started. Generate questions first.")
        if session.status == InterviewStatus.COMPLETED.value:
            raise InterviewConflict("Interview is already completed.")

        question = session.current_question
        if question is None:
            raise ValidationFailed("No current question. Start interview first.")
        if question_id and question_id != question.id:
            raise InterviewConflict(
                "Question is no longer current. Refresh and try again.",
                detail={"current_question_id": question.id, "question_id": question_id},
            )
        if session.get_evaluation(question.id) is not None:
            raise DuplicateEvaluation(question.id)

        raw = await self.reasoning.complete(
            build_evaluation_prompt(session, question, text),
            system_prompt=JSON_ONLY_SYSTEM_PROMPT,
            timeout=self.settings.evaluation_timeout_seconds,
            config=ReasoningService.generation_config("evaluation"),
        )
        parsed = parse_model_json(raw)
        if not isinstance(parsed, Parsed) or not isinstance(parsed.data, dict):
            raise UpstreamParseError("Failed to parse model JSON", raw=raw)

        evaluation = normalize_evaluation(parsed.data, question.id)

        def record(current: InterviewSession) -> InterviewSession:
            if current.status == InterviewStatus.COMPLETED.value:
                raise InterviewConflict("Interview is already completed.")
            live = current.current_question
            if live is None or live.id != question.id:
                raise InterviewConflict(
                    "Question changed while the answer was being evaluated.",
                    detail={"question_id": question.id},
                )
            if current.get_evaluation(question.id) is not None:
                raise DuplicateEvaluation(question.id)

            now = utc_now()
            timing = current.get_timing(question.id)
            time_spent = None
            if timing is not None:
                time_spent = max(0.0, (now - timing.displayed_at).total_seconds())
                timing.answered_at = now
                timing.time_spent_seconds = time_spent

            current.answers.append(AnswerRecord(
                question_id=question.id,
                text=text,
                submitted_at=now,
                time_spent_seconds=time_spent,
                is_suspiciously_fast=_is_suspiciously_fast(time_spent, live.difficulty),
            ))
            current.evaluations.append(evaluation)
            current.score_summary = compute_score_summary(current.evaluations)
            current.last_activity_at = now

            if current.current_question_index >= len(current.questions) - 1:
                current.status = InterviewStatus.COMPLETED.value
                current.completed_at = now
            else:
                current.current_question_index += 1
                _mark_displayed(current, current.current_question_index)
            return current

        updated = await self.store.update(session_id, record)
        await self._verify_write(
            session_id,
            lambda s: s.get_evaluation(question.id) is not None,
            "evaluation",
        )

        answer = updated.get_answer(question.id)
        completed = updated.status == InterviewStatus.COMPLETED.value
        if completed:
            logger.info(f"Session {session_id} completed ({updated.score_summary.count_evaluated} evaluated)")
        if answer is not None and answer.is_suspiciously_fast:
            logger.info(f"Suspiciously fast answer on {session_id}/{question.id}: {answer.time_spent_seconds:.1f}s")

        return SubmitAnswerResponse(
            session_id=session_id,
            status=updated.status,
            evaluation=evaluation,
            score_summary=updated.score_summary,
            current_question_index=updated.current_question_index,
            next_question=None if completed else updated.current_question,
            interview_complete=completed,
            is_suspiciously_fast=bool(answer and answer.is_suspiciously_fast),
        )

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def _move_cursor(self, session_id: str, step: int) -> NavigationResponse:
        session = await self._require_session(session_id)
        if not session.questions:
            raise ValidationFailed("No questions yet. Start the interview first.")

        def move(current: InterviewSession) -> InterviewSession:
            target = current.current_question_index + step
            if not 0 <= target < len(current.questions):
                raise NavigationOutOfRange(
                    "Already at the last question." if step > 0 else "Already at the first question.",
                    detail={"current_question_index": current.current_question_index},
                )
            current.current_question_index = target
            if current.status == InterviewStatus.IN_PROGRESS.value:
                _mark_displayed(current, target)
                current.last_activity_at = utc_now()
            return current

        updated = await self.store.update(session_id, move)
        question = updated.current_question
        return NavigationResponse(
            session_id=session_id,
            current_question_index=updated.current_question_index,
            current_question=question,
            current_answer=updated.get_answer(question.id),
            current_evaluation=updated.get_evaluation(question.id),
        )

    async def next_question(self, session_id: str) -> NavigationResponse:
        """
        Move the cursor forward by one.

        Raises:
            ValidationFailed: no questions yet
            NavigationOutOfRange: already at the last question
        """
        return await self._move_cursor(session_id, 1)

    async def previous_question(self, session_id: str) -> NavigationResponse:
        """
        Move the cursor back by one.

        Raises:
            ValidationFailed: no questions yet
            NavigationOutOfRange: already at the first question
        """
        result = await self._move_cursor(session_id, -1)
        await self.store.log_audit(
            "question_navigated_back",
            "session",
            session_id,
            {"to_index": result.current_question_index, "question_id": result.current_question.id},
        )
        return result

    # ------------------------------------------------------------------
    # Report
    # ------------------------------------------------------------------

    async def generate_report(self, session_id: str, regenerate: bool = False) -> ReportResponse:
        """
        Generate the final report for a completed session.

        A stored report is returned as-is (``cached=True``) unless
        ``regenerate`` is set. The share token is minted on the first
        successful generation and never replaced.

        Raises:
            InterviewNotCompleted: session is not completed
            UpstreamParseError: report output unparsable (nothing is stored)
            UpstreamUnavailable: reasoning call timed out or failed
        """
        session = await self._require_session(session_id)
        if session.status != InterviewStatus.COMPLETED.value:
            raise InterviewNotCompleted("The interview must be completed before generating a report")

        if session.report is not None and not regenerate:
            return self._report_response(session, cached=True)

        integrity = build_integrity_context(session)
        raw = await self.reasoning.complete(
            build_report_prompt(session, integrity),
            system_prompt=REPORT_SYSTEM_PROMPT,
            timeout=self.settings.report_timeout_seconds,
            config=ReasoningService.generation_config("report"),
        )
        parsed = parse_model_json(raw)
        if not isinstance(parsed, Parsed) or not isinstance(parsed.data, dict):
            raise UpstreamParseError("Failed to parse report JSON", raw=raw)

        report = normalize_report(parsed.data, session.score_summary, integrity)
        new_token = uuid.uuid4().hex

        def store_report(current: InterviewSession) -> InterviewSession:
            if current.report is not None and not regenerate:
                raise _NoChange()
            current.report = report
            if not current.share_token:
                current.share_token = new_token
            return current

        try:
            updated = await self.store.update(session_id, store_report)
        except _NoChange:
            return self._report_response(await self._require_session(session_id), cached=True)

        await self._verify_write(session_id, lambda s: s.report is not None and bool(s.share_token), "report")
        await self.store.log_audit(
            "report_generated",
            "session",
            session_id,
            {"recommendation": report.recommendation, "regenerated": regenerate},
        )
        logger.info(
            f"Report generated for {session_id}: {report.recommendation} "
            f"(confidence {report.confidence})"
        )
        return self._report_response(updated, cached=False)

    @staticmethod
    def _report_response(session: InterviewSession, cached: bool) -> ReportResponse:
        return ReportResponse(
            session_id=session.id,
            status=session.status,
            report=session.report,
            score_summary=session.score_summary,
            share_token=session.share_token,
            cached=cached,
        )

    async def get_report(self, session_id: str) -> ReportResponse:
        """Stored report (possibly None) with status, summary and share token."""
        session = await self._require_session(session_id)
        return self._report_response(session, cached=session.report is not None)

    async def get_shared_report(self, token: str) -> SharedReportResponse:
        """
        Read-only report lookup by share token.

        Raises:
            SessionNotFound: unknown token or no report yet
        """
        session = await self.store.find_by_share_token(token) if token else None
        if session is None or session.report is None:
            raise SessionNotFound(token, "Shared report not found")
        return SharedReportResponse(
            mode=session.mode,
            role=session.role,
            level=session.level,
            candidate_name=session.candidate_name,
            completed_at=session.completed_at,
            report=session.report,
            score_summary=session.score_summary,
        )

    # ------------------------------------------------------------------
    # Activity
    # ------------------------------------------------------------------

    async def record_activity(self, session_id: str) -> ActivityResponse:
        """Touch ``last_activity_at``; ignored unless the session is in progress."""
        session = await self._require_session(session_id)
        if session.status != InterviewStatus.IN_PROGRESS.value:
            return ActivityResponse(session_id=session_id, ignored=True)

        def touch(current: InterviewSession) -> InterviewSession:
            if current.status != InterviewStatus.IN_PROGRESS.value:
                raise _NoChange()
            current.last_activity_at = utc_now()
            return current

        try:
            updated = await self.store.update(session_id, touch)
        except _NoChange:
            return ActivityResponse(session_id=session_id, ignored=True)
        return ActivityResponse(session_id=session_id, last_activity_at=updated.last_activity_at)


# Global instance (lazy loaded)
_orchestrator: Optional[InterviewOrchestrator] = None


def get_interview_orchestrator() -> InterviewOrchestrator:
    """Get or create the interview orchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = InterviewOrchestrator()
    return _orchestrator
