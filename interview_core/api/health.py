"""
Health check endpoints.
"""
from fastapi import APIRouter
from pydantic import BaseModel

from interview_core import __version__
from interview_core.core.config import get_settings
from interview_core.models.responses import ApiResponse
from interview_core.providers.session_store import get_session_store

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    session_store: bool
    backend: str
    version: str = __version__


@router.get("/health", response_model=ApiResponse[HealthResponse])
async def health_check():
    """
    Check the health of the session store.
    """
    store_ok = await get_session_store().health_check()

    return ApiResponse.success(HealthResponse(
        status="healthy" if store_ok else "degraded",
        session_store=store_ok,
        backend=get_settings().session_store_backend,
    ))


@router.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "AI Interview Session Core",
        "version": __version__,
        "docs": "/docs",
    }
