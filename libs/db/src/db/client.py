"""Centralized SQLAlchemy engine/session helpers for the workspace.

Usage
-----
from db.client import session_scope

with session_scope() as s:
    s.execute(...)

The database URL comes from the ``database_url`` argument, then the
``SPEND_DATABASE_URL`` environment variable, and finally defaults to a local
SQLite file at ``./.spend/spend.db``. Tables are created on first use; there is
no migration step.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from .models.kv import Base

_ENGINES: dict[str, Engine] = {}
_SESSION_MAKERS: dict[str, sessionmaker[Session]] = {}


def default_database_url() -> str:
    path = (Path.cwd() / ".spend" / "spend.db").resolve()
    return f"sqlite+pysqlite:///{path}"


def _database_url(override: str | None = None) -> str:
    url = override or os.getenv("SPEND_DATABASE_URL")
    if url and url.strip():
        return url.strip()
    return default_database_url()


def _ensure_sqlite_parent(url: str) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return
    db_path = parsed.database
    if not db_path or db_path == ":memory:":
        return
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return the shared engine for the resolved URL, creating it on first use."""

    url = _database_url(database_url)
    engine = _ENGINES.get(url)
    if engine is not None:
        return engine

    _ensure_sqlite_parent(url)
    engine = create_engine(url, pool_pre_ping=True)
    Base.metadata.create_all(bind=engine)
    _ENGINES[url] = engine
    _SESSION_MAKERS[url] = sessionmaker(bind=engine, expire_on_commit=False, class_=Session)
    return engine


def get_session(*, database_url: str | None = None) -> Session:
    """Return a new SQLAlchemy session bound to the shared engine."""

    url = _database_url(database_url)
    get_engine(database_url=url)
    return _SESSION_MAKERS[url]()


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = get_session(database_url=database_url)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engines() -> None:
    """Dispose every cached engine (tests use this between temporary databases)."""

    for engine in _ENGINES.values():
        engine.dispose()
    _ENGINES.clear()
    _SESSION_MAKERS.clear()


__all__ = [
    "default_database_url",
    "get_engine",
    "get_session",
    "session_scope",
    "dispose_engines",
]
