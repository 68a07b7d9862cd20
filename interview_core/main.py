"""
AI Interview Session Core - Main FastAPI Application

This is the entry point for the interview session API.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from interview_core import __version__
from interview_core.api import analytics, health, sessions, share
from interview_core.api.errors import register_exception_handlers
from interview_core.core.config import get_settings
from interview_core.core.database import mongodb_client
from interview_core.providers.llm import close_llm_provider
from interview_core.providers.session_store import MongoSessionStore, get_session_store

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting AI Interview Session Core...")

    store = get_session_store()
    if isinstance(store, MongoSessionStore):
        await mongodb_client.connect()
        await store.ensure_indexes()
        logger.info("MongoDB session store ready")
    else:
        logger.info(f"Session store backend: {type(store).__name__}")

    yield

    # Shutdown
    logger.info("Shutting down AI Interview Session Core...")
    await close_llm_provider()
    await mongodb_client.disconnect()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="AI interview session lifecycle and evaluation pipeline",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(sessions.router)
    app.include_router(share.router)
    app.include_router(analytics.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "interview_core.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
