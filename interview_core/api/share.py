"""
Shared report endpoint (read-only access by share token).
"""
from fastapi import APIRouter, Depends

from interview_core.models.interview import SharedReportResponse
from interview_core.models.responses import ApiResponse
from interview_core.services.interview_orchestrator import (
    InterviewOrchestrator,
    get_interview_orchestrator,
)

router = APIRouter(prefix="/api/v1/share", tags=["share"])


@router.get("/{token}", response_model=ApiResponse[SharedReportResponse])
async def get_shared_report(
    token: str,
    orchestrator: InterviewOrchestrator = Depends(get_interview_orchestrator),
):
    return ApiResponse.success(await orchestrator.get_shared_report(token))
