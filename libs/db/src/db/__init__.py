"""db: shared database library (SQLAlchemy).

Public exports
--------------
- ``Base`` and ``metadata`` for table creation
- ORM models in ``db.models.kv`` (re-exported for convenience)
- Engine/session helpers in ``db.client``
"""

from __future__ import annotations

from .models.kv import Base, KvEntry

metadata = Base.metadata

__all__ = [
    "Base",
    "metadata",
    "KvEntry",
]
