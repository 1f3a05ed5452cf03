"""
Storage Package.

Provides the persistence layer for per-session state.
"""

from typing import Optional

from src.config import Settings, get_settings
from src.storage.base import BaseStore, StateStore
from src.storage.memory import InMemoryStateStore
from src.storage.sqlite import SQLiteStateStore


def create_state_store(settings: Optional[Settings] = None) -> StateStore:
    """Build the state store selected by ``settings.session.provider``."""
    settings = settings or get_settings()
    if settings.session.provider == "memory":
        return InMemoryStateStore()
    return SQLiteStateStore(settings.session.database)


__all__ = [
    "BaseStore",
    "StateStore",
    "InMemoryStateStore",
    "SQLiteStateStore",
    "create_state_store",
]
