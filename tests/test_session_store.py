"""
Tests for the session store providers.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import DuplicateKeyError, PyMongoError

from interview_core.core.errors import (
    ConfigurationError,
    InterviewConflict,
    SessionAlreadyExists,
    SessionNotFound,
    ValidationFailed,
)
from interview_core.models.interview import InterviewSession
from interview_core.providers.session_store import (
    InMemorySessionStore,
    MongoSessionStore,
    create_session_store,
)

from conftest import RESUME_TEXT


def _session(session_id="s1", **kwargs) -> InterviewSession:
    data = {"id": session_id, "mode": "cohort", "resume_text": RESUME_TEXT, "template_id": "t1"}
    data.update(kwargs)
    return InterviewSession(**data)


class _AsyncCursor:
    """Minimal async iterator standing in for a Motor cursor."""

    def __init__(self, docs):
        self._docs = list(docs)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._docs:
            raise StopAsyncIteration
        return self._docs.pop(0)


# =============================================================================
# In-memory store
# =============================================================================

class TestInMemorySessionStore:
    """Tests for InMemorySessionStore."""

    @pytest.mark.asyncio
    async def test_create_and_get(self):
        store = InMemorySessionStore()
        await store.create(_session())
        fetched = await store.get("s1")
        assert fetched.id == "s1"
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_duplicate_create(self):
        store = InMemorySessionStore()
        await store.create(_session())
        with pytest.raises(SessionAlreadyExists):
            await store.create(_session())

    @pytest.mark.asyncio
    async def test_update_applies_function(self):
        store = InMemorySessionStore()
        await store.create(_session())

        def bump(session):
            session.tab_switch_count += 1
            return session

        updated = await store.update("s1", bump)
        assert updated.tab_switch_count == 1
        assert (await store.get("s1")).tab_switch_count == 1

    @pytest.mark.asyncio
    async def test_update_abort_leaves_state(self):
        store = InMemorySessionStore()
        await store.create(_session())

        def fail(session):
            session.tab_switch_count = 99
            raise ValidationFailed("nope")

        with pytest.raises(ValidationFailed):
            await store.update("s1", fail)
        assert (await store.get("s1")).tab_switch_count == 0

    @pytest.mark.asyncio
    async def test_update_unknown(self):
        store = InMemorySessionStore()
        with pytest.raises(SessionNotFound):
            await store.update("missing", lambda s: s)

    @pytest.mark.asyncio
    async def test_reads_are_copies(self):
        store = InMemorySessionStore()
        await store.create(_session())
        fetched = await store.get("s1")
        fetched.tab_switch_count = 42
        assert (await store.get("s1")).tab_switch_count == 0

    @pytest.mark.asyncio
    async def test_lookups(self):
        store = InMemorySessionStore()
        await store.create(_session("a", template_id="t1"))
        await store.create(_session("b", template_id="t2"))
        await store.create(_session("c", mode="self_serve", template_id=None, role="Dev", level="mid",
                                    share_token="tok"))

        assert [s.id for s in await store.list_by_template("t1")] == ["a"]
        assert {s.id for s in await store.list_by_mode("cohort")} == {"a", "b"}
        assert [s.id for s in await store.list_by_ids(["c", "zzz", "a"])] == ["c", "a"]
        assert (await store.find_by_share_token("tok")).id == "c"
        assert await store.find_by_share_token("") is None

    @pytest.mark.asyncio
    async def test_audit_log(self):
        store = InMemorySessionStore()
        await store.log_audit("session_created", "session", "s1", {"mode": "cohort"})
        assert store.audit_log[0]["action"] == "session_created"
        assert store.audit_log[0]["details"] == {"mode": "cohort"}


# =============================================================================
# MongoDB store
# =============================================================================

@pytest.fixture
def sessions_collection():
    collection = MagicMock()
    collection.insert_one = AsyncMock()
    collection.find_one = AsyncMock()
    collection.replace_one = AsyncMock()
    collection.create_index = AsyncMock()
    return collection


@pytest.fixture
def audit_collection():
    collection = MagicMock()
    collection.insert_one = AsyncMock()
    collection.create_index = AsyncMock()
    return collection


@pytest.fixture
def mongo_store(sessions_collection, audit_collection):
    return MongoSessionStore(
        sessions_collection=sessions_collection,
        audit_collection=audit_collection,
        max_update_attempts=3,
    )


def _doc(session: InterviewSession, revision: int = 0):
    doc = session.model_dump()
    doc["_id"] = session.id
    doc["_rev"] = revision
    return doc


class TestMongoSessionStore:
    """Tests for MongoSessionStore with mocked Motor collections."""

    @pytest.mark.asyncio
    async def test_create_inserts_document(self, mongo_store, sessions_collection):
        await mongo_store.create(_session())

        doc = sessions_collection.insert_one.call_args[0][0]
        assert doc["_id"] == "s1"
        assert doc["_rev"] == 0

    @pytest.mark.asyncio
    async def test_create_duplicate(self, mongo_store, sessions_collection):
        sessions_collection.insert_one.side_effect = DuplicateKeyError("dup")
        with pytest.raises(SessionAlreadyExists):
            await mongo_store.create(_session())

    @pytest.mark.asyncio
    async def test_get_strips_internal_fields(self, mongo_store, sessions_collection):
        sessions_collection.find_one.return_value = _doc(_session(), revision=4)
        session = await mongo_store.get("s1")
        assert session.id == "s1"

        sessions_collection.find_one.return_value = None
        assert await mongo_store.get("s1") is None

    @pytest.mark.asyncio
    async def test_update_writes_next_revision(self, mongo_store, sessions_collection):
        sessions_collection.find_one.return_value = _doc(_session(), revision=2)
        sessions_collection.replace_one.return_value = MagicMock(matched_count=1)

        def bump(session):
            session.tab_switch_count = 3
            return session

        updated = await mongo_store.update("s1", bump)

        assert updated.tab_switch_count == 3
        query, replacement = sessions_collection.replace_one.call_args[0]
        assert query == {"_id": "s1", "_rev": 2}
        assert replacement["_rev"] == 3

    @pytest.mark.asyncio
    async def test_update_retries_on_concurrent_write(self, mongo_store, sessions_collection):
        sessions_collection.find_one.side_effect = [
            _doc(_session(), revision=0),
            _doc(_session(tab_switch_count=1), revision=1),
        ]
        sessions_collection.replace_one.side_effect = [
            MagicMock(matched_count=0),
            MagicMock(matched_count=1),
        ]
        seen = []

        def bump(session):
            seen.append(session.tab_switch_count)
            session.tab_switch_count += 1
            return session

        updated = await mongo_store.update("s1", bump)

        assert seen == [0, 1]
        assert updated.tab_switch_count == 2

    @pytest.mark.asyncio
    async def test_update_gives_up(self, mongo_store, sessions_collection):
        sessions_collection.find_one.return_value = _doc(_session())
        sessions_collection.replace_one.return_value = MagicMock(matched_count=0)

        with pytest.raises(InterviewConflict):
            await mongo_store.update("s1", lambda s: s)
        assert sessions_collection.replace_one.await_count == 3

    @pytest.mark.asyncio
    async def test_update_unknown(self, mongo_store, sessions_collection):
        sessions_collection.find_one.return_value = None
        with pytest.raises(SessionNotFound):
            await mongo_store.update("s1", lambda s: s)

    @pytest.mark.asyncio
    async def test_list_by_ids_keeps_order(self, mongo_store, sessions_collection):
        sessions_collection.find = MagicMock(return_value=_AsyncCursor([
            _doc(_session("a")),
            _doc(_session("b")),
        ]))

        sessions = await mongo_store.list_by_ids(["b", "missing", "a"])

        assert [s.id for s in sessions] == ["b", "a"]
        assert sessions_collection.find.call_args[0][0] == {"_id": {"$in": ["b", "missing", "a"]}}

    @pytest.mark.asyncio
    async def test_list_by_template(self, mongo_store, sessions_collection):
        sessions_collection.find = MagicMock(return_value=_AsyncCursor([_doc(_session("a"))]))
        sessions = await mongo_store.list_by_template("t1")
        assert [s.id for s in sessions] == ["a"]
        sessions_collection.find.assert_called_once_with({"template_id": "t1"})

    @pytest.mark.asyncio
    async def test_audit_failure_is_swallowed(self, mongo_store, audit_collection):
        audit_collection.insert_one.side_effect = PyMongoError("down")
        await mongo_store.log_audit("session_created", "session", "s1")

    @pytest.mark.asyncio
    async def test_ensure_indexes(self, mongo_store, sessions_collection, audit_collection):
        await mongo_store.ensure_indexes()
        assert sessions_collection.create_index.await_count == 3
        audit_collection.create_index.assert_awaited_once()


class TestCreateSessionStore:

    def test_backends(self):
        assert isinstance(create_session_store("memory"), InMemorySessionStore)
        assert isinstance(create_session_store("MONGO"), MongoSessionStore)

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError):
            create_session_store("redis")
