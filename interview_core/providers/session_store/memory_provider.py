"""
In-memory session store.

Keeps serialized session documents in a process-local dict. Suitable for
tests and single-process local development only: nothing survives a
restart and nothing is shared between workers.
"""
import asyncio
import copy
import logging
from typing import Any, Dict, List, Optional

from interview_core.core.errors import SessionAlreadyExists, SessionNotFound
from interview_core.models.interview import InterviewSession, utc_now
from interview_core.providers.session_store.base import SessionStoreProvider, SessionUpdater

logger = logging.getLogger(__name__)


class InMemorySessionStore(SessionStoreProvider):
    """
    Store sessions as plain dicts keyed by id.

    Documents are copied on every read and write so callers never share
    mutable state with the store.
    """

    def __init__(self):
        self._sessions: Dict[str, Dict[str, Any]] = {}
        self.audit_log: List[Dict[str, Any]] = []
        self._lock = asyncio.Lock()

    @staticmethod
    def _load(doc: Dict[str, Any]) -> InterviewSession:
        return InterviewSession.model_validate(copy.deepcopy(doc))

    async def create(self, session: InterviewSession) -> InterviewSession:
        async with self._lock:
            if session.id in self._sessions:
                raise SessionAlreadyExists(session.id)
            self._sessions[session.id] = session.model_dump()
        logger.debug(f"Created session {session.id}")
        return self._load(self._sessions[session.id])

    async def get(self, session_id: str) -> Optional[InterviewSession]:
        doc = self._sessions.get(session_id)
        return self._load(doc) if doc is not None else None

    async def update(self, session_id: str, fn: SessionUpdater) -> InterviewSession:
        async with self._lock:
            doc = self._sessions.get(session_id)
            if doc is None:
                raise SessionNotFound(session_id)
            updated = fn(self._load(doc))
            self._sessions[session_id] = updated.model_dump()
            return self._load(self._sessions[session_id])

    async def list_by_ids(self, session_ids: List[str]) -> List[InterviewSession]:
        return [self._load(self._sessions[sid]) for sid in session_ids if sid in self._sessions]

    async def list_by_mode(self, mode: str) -> List[InterviewSession]:
        return [self._load(doc) for doc in self._sessions.values() if doc.get("mode") == mode]

    async def list_by_template(self, template_id: str) -> List[InterviewSession]:
        return [
            self._load(doc) for doc in self._sessions.values()
            if doc.get("template_id") == template_id
        ]

    async def find_by_share_token(self, token: str) -> Optional[InterviewSession]:
        if not token:
            return None
        for doc in self._sessions.values():
            if doc.get("share_token") == token:
                return self._load(doc)
        return None

    async def log_audit(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.audit_log.append({
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "details": dict(details or {}),
            "created_at": utc_now(),
        })

    async def health_check(self) -> bool:
        return True

    def clear(self) -> None:
        """Drop all sessions and audit records."""
        self._sessions.clear()
        self.audit_log.clear()
