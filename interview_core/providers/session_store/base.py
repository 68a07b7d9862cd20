"""
Abstract base class for session store providers.

Defines the persistence contract every backend must satisfy. All session
mutation goes through ``update``: read the current document, apply a pure
function, write the result back. Guards that protect against duplicate
work are evaluated inside that function so they always see persisted state.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from interview_core.models.interview import InterviewSession

# Updater passed to ``SessionStoreProvider.update``. Receives a private copy
# of the persisted session and returns the new state (or raises to abort).
SessionUpdater = Callable[[InterviewSession], InterviewSession]


class SessionStoreProvider(ABC):
    """
    Abstract interface for session persistence backends.

    Implementations:
    - MongoSessionStore: MongoDB through Motor (production)
    - InMemorySessionStore: process-local dict (tests, local development)

    Usage:
        store = get_session_store()

        await store.create(session)
        session = await store.update(session_id, lambda s: advance(s))
    """

    @abstractmethod
    async def create(self, session: InterviewSession) -> InterviewSession:
        """
        Persist a new session.

        Raises:
            SessionAlreadyExists: a session with the same id is stored
        """
        pass

    @abstractmethod
    async def get(self, session_id: str) -> Optional[InterviewSession]:
        """Return the session, or None if unknown."""
        pass

    @abstractmethod
    async def update(self, session_id: str, fn: SessionUpdater) -> InterviewSession:
        """
        Atomically apply ``fn`` to the stored session.

        Exceptions raised by ``fn`` abort the write and propagate unchanged.
        An unknown id raises rather than returning None, so callers never
        have to check for a missing result.

        Raises:
            SessionNotFound: unknown session id
            InterviewConflict: concurrent writers exhausted the retries
        """
        pass

    @abstractmethod
    async def list_by_ids(self, session_ids: List[str]) -> List[InterviewSession]:
        """Return the known sessions among ``session_ids`` (unknown ids skipped)."""
        pass

    @abstractmethod
    async def list_by_mode(self, mode: str) -> List[InterviewSession]:
        pass

    @abstractmethod
    async def list_by_template(self, template_id: str) -> List[InterviewSession]:
        pass

    @abstractmethod
    async def find_by_share_token(self, token: str) -> Optional[InterviewSession]:
        pass

    @abstractmethod
    async def log_audit(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Append a record to the durable audit trail.

        Failures are logged and swallowed; auditing never fails a request.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
