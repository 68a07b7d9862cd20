"""
MongoDB session store.

Each session is one document keyed by its id. ``update`` is an optimistic
read-modify-write: the write only lands if the document revision is the
one that was read, otherwise the updater is re-applied to fresh state.
"""
import logging
from typing import Any, Dict, List, Optional

from pymongo.errors import DuplicateKeyError, PyMongoError

from interview_core.core.database import mongodb_client
from interview_core.core.errors import InterviewConflict, SessionAlreadyExists, SessionNotFound
from interview_core.models.interview import InterviewSession, utc_now
from interview_core.providers.session_store.base import SessionStoreProvider, SessionUpdater

logger = logging.getLogger(__name__)

REVISION_FIELD = "_rev"


class MongoSessionStore(SessionStoreProvider):
    """
    Store sessions in the ``interview_sessions`` collection and audit
    records in ``audit_logs``.
    """

    def __init__(
        self,
        sessions_collection=None,
        audit_collection=None,
        max_update_attempts: int = 5,
    ):
        """
        Args:
            sessions_collection: Motor collection for sessions. Defaults to
                the global client's collection, resolved on first use.
            audit_collection: Motor collection for audit records.
            max_update_attempts: Optimistic write attempts before giving up.
        """
        self._sessions = sessions_collection
        self._audit = audit_collection
        self.max_update_attempts = max_update_attempts

    @property
    def sessions(self):
        if self._sessions is None:
            self._sessions = mongodb_client.interview_sessions
        return self._sessions

    @property
    def audit(self):
        if self._audit is None:
            self._audit = mongodb_client.audit_logs
        return self._audit

    @staticmethod
    def _dump(session: InterviewSession, revision: int) -> Dict[str, Any]:
        doc = session.model_dump()
        doc["_id"] = session.id
        doc[REVISION_FIELD] = revision
        return doc

    @staticmethod
    def _load(doc: Dict[str, Any]) -> InterviewSession:
        data = {k: v for k, v in doc.items() if k not in ("_id", REVISION_FIELD)}
        return InterviewSession.model_validate(data)

    async def ensure_indexes(self) -> None:
        """Create secondary indexes used by the lookup operations."""
        await self.sessions.create_index("mode")
        await self.sessions.create_index("template_id")
        await self.sessions.create_index(
            "share_token",
            unique=True,
            partialFilterExpression={"share_token": {"$type": "string"}},
        )
        await self.audit.create_index([("entity_id", 1), ("created_at", -1)])
        logger.info("Session store indexes ensured")

    async def create(self, session: InterviewSession) -> InterviewSession:
        try:
            await self.sessions.insert_one(self._dump(session, 0))
        except DuplicateKeyError:
            raise SessionAlreadyExists(session.id)
        logger.debug(f"Created session {session.id}")
        return session

    async def get(self, session_id: str) -> Optional[InterviewSession]:
        doc = await self.sessions.find_one({"_id": session_id})
        return self._load(doc) if doc else None

    async def update(self, session_id: str, fn: SessionUpdater) -> InterviewSession:
        for attempt in range(1, self.max_update_attempts + 1):
            doc = await self.sessions.find_one({"_id": session_id})
            if doc is None:
                raise SessionNotFound(session_id)

            revision = doc.get(REVISION_FIELD, 0)
            updated = fn(self._load(doc))

            result = await self.sessions.replace_one(
                {"_id": session_id, REVISION_FIELD: revision},
                self._dump(updated, revision + 1),
            )
            if result.matched_count == 1:
                return updated

            logger.warning(
                f"Concurrent write on session {session_id} (attempt {attempt}/{self.max_update_attempts})"
            )

        raise InterviewConflict(
            "Session was modified concurrently. Please retry.",
            detail={"session_id": session_id},
        )

    async def _find_many(self, query: Dict[str, Any]) -> List[InterviewSession]:
        cursor = self.sessions.find(query)
        return [self._load(doc) async for doc in cursor]

    async def list_by_ids(self, session_ids: List[str]) -> List[InterviewSession]:
        if not session_ids:
            return []
        found = {s.id: s for s in await self._find_many({"_id": {"$in": list(session_ids)}})}
        return [found[sid] for sid in session_ids if sid in found]

    async def list_by_mode(self, mode: str) -> List[InterviewSession]:
        return await self._find_many({"mode": mode})

    async def list_by_template(self, template_id: str) -> List[InterviewSession]:
        return await self._find_many({"template_id": template_id})

    async def find_by_share_token(self, token: str) -> Optional[InterviewSession]:
        if not token:
            return None
        doc = await self.sessions.find_one({"share_token": token})
        return self._load(doc) if doc else None

    async def log_audit(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            await self.audit.insert_one({
                "action": action,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "details": dict(details or {}),
                "created_at": utc_now(),
            })
        except PyMongoError as e:
            logger.warning(f"Failed to write audit record {action} for {entity_id}: {e}")

    async def health_check(self) -> bool:
        return await mongodb_client.health_check()
