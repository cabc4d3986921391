"""Shared SQLAlchemy models registry for the workspace database.

Currently holds the key-value table used by ``spend_analytics`` persistence.
"""

from .kv import Base, KvEntry

__all__ = [
    "Base",
    "KvEntry",
]
