"""
In-process state store.

Used for tests and single-process deployments that do not need state to
survive a restart.
"""

import copy

from src.storage.base import StateStore


class InMemoryStateStore(StateStore):
    """Dict-backed state store. Values are deep-copied in and out."""

    def __init__(self):
        self._data: dict[str, dict] = {}

    async def get(self, key: str) -> dict | None:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(self, key: str, value: dict) -> None:
        self._data[key] = copy.deepcopy(value)
