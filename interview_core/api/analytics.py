"""
Cohort analytics endpoints.
"""
from fastapi import APIRouter, Depends

from interview_core.models.responses import ApiResponse
from interview_core.services.cohort_analytics import (
    CohortAnalytics,
    CohortAnalyticsService,
    get_cohort_analytics_service,
)

router = APIRouter(prefix="/api/v1/analytics", tags=["analytics"])


@router.get("/cohort/{template_id}", response_model=ApiResponse[CohortAnalytics])
async def get_cohort_analytics(
    template_id: str,
    service: CohortAnalyticsService = Depends(get_cohort_analytics_service),
):
    """Aggregate statistics for every session created from ``template_id``."""
    return ApiResponse.success(await service.get_cohort_analytics(template_id))
