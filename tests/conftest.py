"""Pytest configuration for test isolation.

The persistence layer resolves its database from ``SPEND_DATABASE_URL`` and
falls back to ``./.spend/spend.db`` in the working directory. Tests must never
touch that file, so every test gets its own SQLite database under
``tmp_path`` and the engine cache is disposed afterwards.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from db.client import dispose_engines

from tests.helpers.stores import MemoryStore


@pytest.fixture(autouse=True)
def _isolate_database(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[str]:
    """Point ``SPEND_DATABASE_URL`` at a per-test SQLite file."""

    db_file = tmp_path / "db" / "spend.db"
    url = f"sqlite+pysqlite:///{db_file}"
    monkeypatch.setenv("SPEND_DATABASE_URL", url)
    yield url
    dispose_engines()


@pytest.fixture
def database_url(_isolate_database: str) -> str:
    return _isolate_database


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()
