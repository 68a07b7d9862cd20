"""
Session Store Providers.

Pluggable persistence backends for interview sessions.
Default: chosen by ``settings.session_store_backend`` (mongo or memory).
"""
import logging
from typing import Optional

from interview_core.core.config import get_settings
from interview_core.core.errors import ConfigurationError
from interview_core.providers.session_store.base import SessionStoreProvider, SessionUpdater
from interview_core.providers.session_store.memory_provider import InMemorySessionStore
from interview_core.providers.session_store.mongo_provider import MongoSessionStore

logger = logging.getLogger(__name__)

# Default provider instance (lazy loaded)
_default_store: Optional[SessionStoreProvider] = None


def create_session_store(backend: Optional[str] = None) -> SessionStoreProvider:
    """Build a store for ``backend`` (defaults to the configured one)."""
    backend = (backend or get_settings().session_store_backend).lower()
    if backend == "mongo":
        return MongoSessionStore()
    if backend == "memory":
        logger.warning("Using in-memory session store; sessions will not survive a restart")
        return InMemorySessionStore()
    raise ConfigurationError(f"Unsupported session store backend: {backend}")


def get_session_store() -> SessionStoreProvider:
    """
    Get the configured session store.
    """
    global _default_store
    if _default_store is None:
        _default_store = create_session_store()
    return _default_store


def set_session_store(store: Optional[SessionStoreProvider]):
    """
    Set a custom session store.

    Useful for testing. Passing None resets to the configured backend.
    """
    global _default_store
    _default_store = store


__all__ = [
    "SessionStoreProvider",
    "SessionUpdater",
    "InMemorySessionStore",
    "MongoSessionStore",
    "create_session_store",
    "get_session_store",
    "set_session_store",
]
