"""In-memory key-value stores for tests."""

from __future__ import annotations

import copy
from typing import Any


class MemoryStore:
    """Dict-backed store; values are deep-copied like a JSON round-trip."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = copy.deepcopy(data or {})
        self.writes: list[str] = []

    def get(self, key: str) -> Any | None:
        value = self.data.get(key)
        return copy.deepcopy(value)

    def set(self, key: str, value: Any) -> bool:
        self.data[key] = copy.deepcopy(value)
        self.writes.append(key)
        return True

    def clear(self, key: str) -> bool:
        self.data.pop(key, None)
        return True


class FailingStore(MemoryStore):
    """Reads work; every write or clear reports failure and changes nothing."""

    def set(self, key: str, value: Any) -> bool:
        self.writes.append(key)
        return False

    def clear(self, key: str) -> bool:
        return False
