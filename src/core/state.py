"""
Session State Management.

A session remembers its recent searches, the conversation so far and the
search preferences used to default options. Transitions are pure functions
returning a new :class:`SessionState`; :class:`SessionStateTracker` applies
them to a store under a per-session lock.
"""

import asyncio
import weakref
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from src.config import Settings, get_settings
from src.services.search.models import Preferences
from src.storage.base import StateStore
from src.utils.exceptions import ValidationError
from src.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_RECENT_SEARCHES = 10
DEFAULT_MAX_CONVERSATION_HISTORY = 20


class ConversationRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass(frozen=True)
class SearchRecord:
    """One remembered search."""

    query: str
    timestamp: datetime

    def to_dict(self) -> dict:
        return {"query": self.query, "timestamp": self.timestamp.isoformat()}

    @classmethod
    def from_dict(cls, data: dict) -> "SearchRecord":
        return cls(query=data["query"], timestamp=_parse_timestamp(data["timestamp"]))


@dataclass(frozen=True)
class ConversationTurn:
    """One message in the session conversation."""

    role: ConversationRole
    content: str
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConversationTurn":
        return cls(
            role=ConversationRole(data["role"]),
            content=data["content"],
            timestamp=_parse_timestamp(data["timestamp"]),
        )


@dataclass(frozen=True)
class SessionState:
    """
    Per-session state.

    Both sequences are most-recent-first.
    """

    preferences: Preferences
    recent_searches: tuple[SearchRecord, ...] = ()
    conversation_history: tuple[ConversationTurn, ...] = ()

    def to_dict(self) -> dict:
        return {
            "recent_searches": [r.to_dict() for r in self.recent_searches],
            "conversation_history": [t.to_dict() for t in self.conversation_history],
            "preferences": self.preferences.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionState":
        return cls(
            preferences=Preferences.from_dict(data.get("preferences") or {}),
            recent_searches=tuple(
                SearchRecord.from_dict(r) for r in data.get("recent_searches") or []
            ),
            conversation_history=tuple(
                ConversationTurn.from_dict(t) for t in data.get("conversation_history") or []
            ),
        )


def default_preferences(settings: Optional[Settings] = None) -> Preferences:
    """Preferences a fresh session starts with."""
    settings = settings or get_settings()
    return Preferences.from_dict(settings.preferences.model_dump())


def new_session_state(preferences: Optional[Preferences] = None) -> SessionState:
    return SessionState(preferences=preferences or default_preferences())


# =============================================================================
# TRANSITIONS
# =============================================================================

def record_turn(
    state: SessionState,
    role: ConversationRole | str,
    content: str,
    *,
    now: Optional[datetime] = None,
    max_history: int = DEFAULT_MAX_CONVERSATION_HISTORY,
) -> SessionState:
    """
    Prepend a conversation turn.

    Raises:
        ValidationError: ``role`` is not ``user`` or ``assistant``
    """
    try:
        role = ConversationRole(role)
    except ValueError:
        raise ValidationError("role", f"Invalid role: {role!r}")

    turn = ConversationTurn(role=role, content=content, timestamp=now or _utcnow())
    history = (turn, *state.conversation_history)[:max_history]
    return replace(state, conversation_history=history)


def record_search(
    state: SessionState,
    query: str,
    *,
    now: Optional[datetime] = None,
    max_recent: int = DEFAULT_MAX_RECENT_SEARCHES,
    max_history: int = DEFAULT_MAX_CONVERSATION_HISTORY,
) -> SessionState:
    """Remember a search: a recent-search entry plus a user turn."""
    now = now or _utcnow()
    recent = (SearchRecord(query=query, timestamp=now), *state.recent_searches)[:max_recent]
    state = replace(state, recent_searches=recent)
    return record_turn(state, ConversationRole.USER, query, now=now, max_history=max_history)


def update_preferences(state: SessionState, partial: Mapping[str, Any]) -> SessionState:
    """Shallow-merge ``partial`` into the preferences; unknown keys are ignored."""
    known = Preferences.field_names()
    unknown = [key for key in partial if key not in known]
    if unknown:
        logger.warning(f"Ignoring unknown preference keys: {sorted(unknown)}")

    updates = {k: v for k, v in partial.items() if k in known}
    return replace(state, preferences=replace(state.preferences, **updates))


def clear_history(state: SessionState) -> SessionState:
    """Forget searches and conversation; preferences are kept."""
    return replace(state, recent_searches=(), conversation_history=())


# =============================================================================
# TRACKER
# =============================================================================

class SessionStateTracker:
    """
    Session-addressed state operations over a :class:`StateStore`.

    Every mutation is a read-modify-write of the whole state, serialized per
    session id. Different sessions never wait on each other.
    """

    def __init__(self, store: StateStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()
        # A lock lives only while some operation on its session holds it
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    @property
    def max_recent(self) -> int:
        return self.settings.agent.max_recent_searches

    @property
    def max_history(self) -> int:
        return self.settings.agent.max_conversation_history

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    async def _load(self, session_id: str) -> SessionState:
        data = await self.store.get(session_id)
        if data is None:
            logger.info(f"Creating session state for {session_id}")
            state = new_session_state(default_preferences(self.settings))
            await self.store.set(session_id, state.to_dict())
            return state
        return SessionState.from_dict(data)

    async def _mutate(
        self,
        session_id: str,
        transition: Callable[[SessionState], SessionState],
    ) -> SessionState:
        async with self._lock_for(session_id):
            state = transition(await self._load(session_id))
            await self.store.set(session_id, state.to_dict())
            return state

    async def get_state(self, session_id: str) -> SessionState:
        """Current state, creating it with defaults on first use."""
        async with self._lock_for(session_id):
            return await self._load(session_id)

    async def record_search(self, session_id: str, query: str) -> SessionState:
        return await self._mutate(
            session_id,
            lambda s: record_search(s, query, max_recent=self.max_recent, max_history=self.max_history),
        )

    async def record_turn(self, session_id: str, role: ConversationRole | str, content: str) -> SessionState:
        return await self._mutate(
            session_id,
            lambda s: record_turn(s, role, content, max_history=self.max_history),
        )

    async def update_preferences(self, session_id: str, partial: Mapping[str, Any]) -> SessionState:
        return await self._mutate(session_id, lambda s: update_preferences(s, partial))

    async def clear_history(self, session_id: str) -> SessionState:
        return await self._mutate(session_id, clear_history)
