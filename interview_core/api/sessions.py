"""
Interview Session API endpoints.

Every route delegates to the orchestrator (or the integrity tracker) and
wraps the result in the ``{ok, data, error}`` envelope. Failures are raised
as ``InterviewError`` and rendered by the app's exception handlers.
"""
import logging

from fastapi import APIRouter, Depends, Query, status

from interview_core.core.rate_limit import enforce_answer_rate_limit
from interview_core.models.interview import (
    ActivityResponse,
    CreateSessionRequest,
    GenerateQuestionsResponse,
    IntegrityEventResponse,
    NavigationResponse,
    ReportResponse,
    SecurityEventRequest,
    SessionView,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
    TabSwitchRequest,
)
from interview_core.models.responses import ApiResponse
from interview_core.services.integrity_tracker import (
    IntegrityOutcome,
    IntegritySignalTracker,
    get_integrity_tracker,
)
from interview_core.services.interview_orchestrator import (
    InterviewOrchestrator,
    get_interview_orchestrator,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])


def _integrity_response(outcome: IntegrityOutcome) -> IntegrityEventResponse:
    return IntegrityEventResponse(
        session_id=outcome.session_id,
        accepted=outcome.accepted,
        ignored=outcome.ignored,
        tab_switch_count=outcome.tab_switch_count,
        security_event_count=outcome.security_event_count,
        warning=outcome.warning,
    )


@router.post(
    "",
    response_model=ApiResponse[SessionView],
    status_code=status.HTTP_201_CREATED,
)
async def create_session(
    request: CreateSessionRequest,
    orchestrator: InterviewOrchestrator = Depends(get_interview_orchestrator),
):
    """
    Create a new interview session.

    Required fields depend on ``mode``: recruiter-led sessions need a job
    description and 1-5 top skills, cohort sessions a template id and
    self-serve sessions a role and level. All need resume text.
    """
    session = await orchestrator.create_session(request)
    return ApiResponse.success(SessionView.from_session(session), "Session created")


@router.get("/{session_id}", response_model=ApiResponse[SessionView])
async def get_session(
    session_id: str,
    orchestrator: InterviewOrchestrator = Depends(get_interview_orchestrator),
):
    """Session state with the current question."""
    return ApiResponse.success(await orchestrator.get_session_view(session_id))


@router.post("/{session_id}/start", response_model=ApiResponse[GenerateQuestionsResponse])
async def start_interview(
    session_id: str,
    orchestrator: InterviewOrchestrator = Depends(get_interview_orchestrator),
):
    """
    Generate the question set. Safe to call repeatedly: later calls return
    the stored questions with ``already_started`` set.
    """
    result = await orchestrator.generate_questions(session_id)
    message = "Interview already started" if result.already_started else "Interview started"
    return ApiResponse.success(result, message)


@router.post(
    "/{session_id}/answer",
    response_model=ApiResponse[SubmitAnswerResponse],
    dependencies=[Depends(enforce_answer_rate_limit)],
)
async def submit_answer(
    session_id: str,
    request: SubmitAnswerRequest,
    orchestrator: InterviewOrchestrator = Depends(get_interview_orchestrator),
):
    """Submit an answer for the current question."""
    result = await orchestrator.submit_answer(
        session_id,
        request.answer_text,
        question_id=request.question_id,
    )
    logger.info(
        f"Answer submitted: session={session_id}, overall={result.evaluation.overall}, "
        f"status={result.status}"
    )
    return ApiResponse.success(result)


@router.post("/{session_id}/next", response_model=ApiResponse[NavigationResponse])
async def next_question(
    session_id: str,
    orchestrator: InterviewOrchestrator = Depends(get_interview_orchestrator),
):
    return ApiResponse.success(await orchestrator.next_question(session_id))


@router.post("/{session_id}/previous", response_model=ApiResponse[NavigationResponse])
async def previous_question(
    session_id: str,
    orchestrator: InterviewOrchestrator = Depends(get_interview_orchestrator),
):
    return ApiResponse.success(await orchestrator.previous_question(session_id))


@router.get("/{session_id}/report", response_model=ApiResponse[ReportResponse])
async def get_report(
    session_id: str,
    orchestrator: InterviewOrchestrator = Depends(get_interview_orchestrator),
):
    """Stored report, or ``report: null`` if none has been generated."""
    return ApiResponse.success(await orchestrator.get_report(session_id))


@router.post("/{session_id}/report", response_model=ApiResponse[ReportResponse])
async def generate_report(
    session_id: str,
    regenerate: bool = Query(False, description="Replace an existing report"),
    orchestrator: InterviewOrchestrator = Depends(get_interview_orchestrator),
):
    """Generate the final report for a completed interview."""
    result = await orchestrator.generate_report(session_id, regenerate=regenerate)
    message = "Report retrieved from cache" if result.cached else "Report generated"
    return ApiResponse.success(result, message)


@router.post("/{session_id}/security-event", response_model=ApiResponse[IntegrityEventResponse])
async def log_security_event(
    session_id: str,
    request: SecurityEventRequest,
    tracker: IntegritySignalTracker = Depends(get_integrity_tracker),
):
    outcome = await tracker.log_security_event(
        session_id,
        request.event,
        timestamp=request.timestamp,
        details=request.details,
    )
    message = "Security event ignored (interview completed)" if outcome.ignored else "Security event logged"
    return ApiResponse.success(_integrity_response(outcome), message)


@router.post("/{session_id}/tab-switch", response_model=ApiResponse[IntegrityEventResponse])
async def log_tab_switch(
    session_id: str,
    request: TabSwitchRequest,
    tracker: IntegritySignalTracker = Depends(get_integrity_tracker),
):
    outcome = await tracker.log_tab_switch(session_id, request.type, timestamp=request.timestamp)
    message = "Tab switch event ignored (interview completed)" if outcome.ignored else "Tab switch event logged"
    return ApiResponse.success(_integrity_response(outcome), message)


@router.post("/{session_id}/activity", response_model=ApiResponse[ActivityResponse])
async def record_activity(
    session_id: str,
    orchestrator: InterviewOrchestrator = Depends(get_interview_orchestrator),
):
    """Heartbeat; only recorded while the interview is in progress."""
    result = await orchestrator.record_activity(session_id)
    message = "Activity update ignored (session not active)" if result.ignored else "Activity updated"
    return ApiResponse.success(result, message)
