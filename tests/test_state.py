"""
Tests for session state transitions, the tracker and the stores.
"""

import asyncio
import gc
from datetime import datetime, timedelta, timezone

import aiosqlite
import pytest

from src.core.state import (
    ConversationRole,
    SessionState,
    SessionStateTracker,
    clear_history,
    default_preferences,
    new_session_state,
    record_search,
    record_turn,
    update_preferences,
)
from src.services.search.models import Preferences
from src.storage.sqlite import SQLiteStateStore
from src.utils.exceptions import SessionError, ValidationError

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def fresh() -> SessionState:
    return new_session_state(Preferences(safesearch="moderate", count=10))


class TestTransitions:
    """Pure state transitions."""

    def test_default_preferences_from_settings(self):
        prefs = default_preferences()
        assert prefs.safesearch == "moderate"
        assert prefs.count == 10
        assert prefs.country == "US"
        assert prefs.units == "metric"
        assert prefs.result_filter is None

    def test_record_search_adds_search_and_user_turn(self):
        state = record_search(fresh(), "python", now=T0)

        assert [r.query for r in state.recent_searches] == ["python"]
        turn = state.conversation_history[0]
        assert turn.role == ConversationRole.USER
        assert turn.content == "python"
        assert turn.timestamp == T0

    def test_most_recent_first(self):
        state = fresh()
        for query in ("a", "b", "c"):
            state = record_search(state, query)

        assert [r.query for r in state.recent_searches] == ["c", "b", "a"]

    def test_recent_searches_capped_at_ten(self):
        state = fresh()
        for i in range(12):
            state = record_search(state, f"q{i}", now=T0 + timedelta(seconds=i))

        assert len(state.recent_searches) == 10
        assert state.recent_searches[0].query == "q11"
        assert state.recent_searches[-1].query == "q2"

    def test_conversation_capped_at_twenty(self):
        state = fresh()
        for i in range(25):
            state = record_turn(state, "assistant" if i % 2 else "user", f"m{i}")

        assert len(state.conversation_history) == 20
        assert state.conversation_history[0].content == "m24"

    def test_invalid_role(self):
        with pytest.raises(ValidationError):
            record_turn(fresh(), "system", "hello")

    def test_transitions_do_not_mutate(self):
        state = fresh()
        record_search(state, "q")
        assert state.recent_searches == ()

    def test_update_preferences_merges(self):
        state = update_preferences(fresh(), {"safesearch": "strict", "unknown": 1})

        assert state.preferences.safesearch == "strict"
        assert state.preferences.count == 10

    def test_clear_history_keeps_preferences(self):
        state = update_preferences(record_search(fresh(), "q"), {"country": "DE"})

        cleared = clear_history(state)

        assert cleared.recent_searches == ()
        assert cleared.conversation_history == ()
        assert cleared.preferences == state.preferences

    def test_dict_form(self):
        state = record_turn(record_search(fresh(), "q", now=T0), "assistant", "answer", now=T0)

        data = state.to_dict()

        assert data["recent_searches"] == [{"query": "q", "timestamp": T0.isoformat()}]
        assert data["conversation_history"][0]["role"] == "assistant"
        assert SessionState.from_dict(data) == state


class TestTracker:
    """Session-addressed operations over the in-memory store."""

    @pytest.mark.asyncio
    async def test_first_access_creates_defaults(self, tracker, state_store):
        state = await tracker.get_state("s1")

        assert state.recent_searches == ()
        assert state.preferences == default_preferences()
        assert await state_store.get("s1") is not None

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(self, tracker):
        await tracker.record_search("s1", "python")

        other = await tracker.get_state("s2")

        assert other.recent_searches == ()

    @pytest.mark.asyncio
    async def test_mutations_persist(self, tracker):
        await tracker.record_search("s1", "python")
        await tracker.update_preferences("s1", {"count": 5})
        await tracker.record_turn("s1", "assistant", "Here you go")

        state = await tracker.get_state("s1")

        assert [r.query for r in state.recent_searches] == ["python"]
        assert state.preferences.count == 5
        assert [t.content for t in state.conversation_history] == ["Here you go", "python"]

    @pytest.mark.asyncio
    async def test_concurrent_records_are_not_lost(self, tracker):
        await asyncio.gather(*(tracker.record_search("s1", f"q{i}") for i in range(8)))

        state = await tracker.get_state("s1")

        assert len(state.recent_searches) == 8

    @pytest.mark.asyncio
    async def test_idle_session_locks_are_released(self, tracker):
        await asyncio.gather(*(tracker.record_search(f"s{i}", "q") for i in range(50)))
        gc.collect()

        assert len(tracker._locks) == 0
        assert len((await tracker.get_state("s7")).recent_searches) == 1

    @pytest.mark.asyncio
    async def test_clear_history(self, tracker):
        await tracker.update_preferences("s1", {"safesearch": "off"})
        await tracker.record_search("s1", "q")

        state = await tracker.clear_history("s1")

        assert state.recent_searches == ()
        assert state.preferences.safesearch == "off"


class TestSQLiteStateStore:
    """SQLite-backed persistence."""

    @pytest.fixture
    def store(self, tmp_path):
        return SQLiteStateStore(tmp_path / "sessions.db")

    @pytest.mark.asyncio
    async def test_roundtrip(self, store):
        await store.set("s1", {"preferences": {"count": 5}})

        assert await store.get("s1") == {"preferences": {"count": 5}}
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_replace_keeps_one_row(self, store):
        await store.set("s1", {"v": 1})
        async with aiosqlite.connect(store.db_path) as db:
            cursor = await db.execute("SELECT created_at FROM session_state WHERE session_id = 's1'")
            (created_at,) = await cursor.fetchone()

        await store.set("s1", {"v": 2})

        async with aiosqlite.connect(store.db_path) as db:
            cursor = await db.execute("SELECT created_at, updated_at FROM session_state")
            rows = await cursor.fetchall()

        assert len(rows) == 1
        assert rows[0][0] == created_at
        assert rows[0][1] >= created_at
        assert await store.get("s1") == {"v": 2}

    @pytest.mark.asyncio
    async def test_sessions_do_not_share_rows(self, store):
        await store.set("alpha", {"v": 1})
        await store.set("beta", {"v": 2})

        assert await store.get("alpha") == {"v": 1}
        assert await store.get("beta") == {"v": 2}

    @pytest.mark.asyncio
    async def test_unreadable_database_is_a_session_error(self, tmp_path):
        path = tmp_path / "sessions.db"
        path.write_bytes(b"not a database " * 100)

        with pytest.raises(SessionError):
            await SQLiteStateStore(path).get("s1")

    @pytest.mark.asyncio
    async def test_tracker_survives_new_store_instance(self, tmp_path):
        path = tmp_path / "sessions.db"
        await SessionStateTracker(SQLiteStateStore(path)).record_search("s1", "python")

        state = await SessionStateTracker(SQLiteStateStore(path)).get_state("s1")

        assert [r.query for r in state.recent_searches] == ["python"]
        assert state.recent_searches[0].timestamp.tzinfo is not None
