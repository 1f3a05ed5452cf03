"""
Storage Base Interfaces.

Abstract base classes for storage implementations.
"""

from abc import ABC, abstractmethod
from typing import TypeVar, Generic


T = TypeVar("T")


class BaseStore(ABC, Generic[T]):
    """Abstract key-value store. Sessions are never deleted implicitly."""

    @abstractmethod
    async def get(self, key: str) -> T | None:
        """
        Get a value by key.

        Returns:
            The value if found, None otherwise
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: T) -> None:
        """Set a value by key, replacing any existing value."""
        pass


class StateStore(BaseStore[dict]):
    """
    Session state store.

    Values are the JSON-compatible ``SessionState.to_dict()`` form, keyed by
    session id.
    """
