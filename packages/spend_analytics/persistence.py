# ruff: noqa: I001
"""Persistence integration for spend_analytics.

The core only needs a small key-value contract: ``get(key) -> JSON | None``,
``set(key, JSON) -> bool`` and ``clear(key) -> bool``. :class:`SqlKeyValueStore`
implements it on the shared database owned by ``libs/db`` (one JSON document
per key in ``kv_entries``).

Three independent blobs are kept:

- ``RECORDS_KEY``: the full record collection (list of record dicts)
- ``TARGETS_KEY``: budget targets, ``{year: {category: eur}}``
- ``CATEGORY_MAPPINGS_KEY``: learned ``{raw source value: category}``

Write and clear failures never raise: they are logged and reported through the return
value so that an in-progress import is not aborted. Blobs that fail
validation on load are logged and treated as missing.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError, field_validator
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from db.client import session_scope
from db.models.kv import KvEntry
from .logging_setup import get_logger
from .records import (
    BUDGET_TYPES,
    CATEGORIES,
    DEFAULT_BUDGET_TYPE,
    DEFAULT_CATEGORY,
    CanonicalRecord,
)

RECORDS_KEY = "biopharma_indirect_spend_data"
TARGETS_KEY = "biopharma_category_targets"
CATEGORY_MAPPINGS_KEY = "biopharma_sap_mappings"

_logger = get_logger("spend_analytics.persistence")


class KeyValueStore(Protocol):
    """Minimal blob store used by the dataset, targets and category mappings."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> bool: ...

    def clear(self, key: str) -> bool: ...


class SqlKeyValueStore:
    """:class:`KeyValueStore` backed by the ``kv_entries`` table.

    ``database_url`` falls back to ``SPEND_DATABASE_URL`` and then to the
    local SQLite default of :mod:`db.client`.
    """

    def __init__(self, *, database_url: str | None = None) -> None:
        self._database_url = database_url

    def get(self, key: str) -> Any | None:
        try:
            with session_scope(database_url=self._database_url) as session:
                row = session.get(KvEntry, key)
                return None if row is None else row.value
        except SQLAlchemyError:
            _logger.warning("Failed to read key %r from store", key, exc_info=True)
            return None

    def set(self, key: str, value: Any) -> bool:
        try:
            with session_scope(database_url=self._database_url) as session:
                row = session.get(KvEntry, key)
                if row is None:
                    session.add(KvEntry(key=key, value=value))
                else:
                    row.value = value
            return True
        except SQLAlchemyError:
            _logger.warning("Failed to write key %r to store", key, exc_info=True)
            return False

    def clear(self, key: str) -> bool:
        try:
            with session_scope(database_url=self._database_url) as session:
                session.execute(delete(KvEntry).where(KvEntry.key == key))
            return True
        except SQLAlchemyError:
            _logger.warning("Failed to clear key %r from store", key, exc_info=True)
            return False


# ---------------------------------------------------------------------------
# Typed blob shapes
# ---------------------------------------------------------------------------


class StoredRecord(BaseModel):
    """Persisted record shape. Lenient so older/hand-edited blobs still load."""

    model_config = ConfigDict(extra="ignore")

    date: str = ""
    cost_category: str = DEFAULT_CATEGORY
    sub_category: str = ""
    sku: str = ""
    item_description: str = ""
    supplier: str = ""
    ordered_by: str = ""
    department: str = ""
    cost_center: str = ""
    po_number: str = ""
    quantity: float = 0.0
    unit_price_usd: float = 0.0
    total_amount_usd: float = 0.0
    budget_type: str = DEFAULT_BUDGET_TYPE
    price_impact_usd: float = 0.0
    volume_impact_usd: float = 0.0
    insourcing_savings_usd: float = 0.0
    notes: str = ""

    @field_validator(
        "date",
        "sub_category",
        "sku",
        "item_description",
        "supplier",
        "ordered_by",
        "department",
        "cost_center",
        "po_number",
        "notes",
        mode="before",
    )
    @classmethod
    def _text_or_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator(
        "quantity",
        "unit_price_usd",
        "total_amount_usd",
        "price_impact_usd",
        "volume_impact_usd",
        "insourcing_savings_usd",
        mode="before",
    )
    @classmethod
    def _number_or_zero(cls, v: Any) -> Any:
        return 0.0 if v in (None, "") else v

    @field_validator("cost_category", mode="before")
    @classmethod
    def _known_category(cls, v: Any) -> str:
        return v if v in CATEGORIES else DEFAULT_CATEGORY

    @field_validator("budget_type", mode="before")
    @classmethod
    def _known_budget_type(cls, v: Any) -> str:
        text = str(v or "").strip().lower()
        for bt in BUDGET_TYPES:
            if bt.lower() == text:
                return bt
        return DEFAULT_BUDGET_TYPE


_RECORDS_ADAPTER: TypeAdapter[list[StoredRecord]] = TypeAdapter(list[StoredRecord])
_TARGETS_ADAPTER: TypeAdapter[dict[str, dict[str, float]]] = TypeAdapter(
    dict[str, dict[str, float]]
)
_MAPPINGS_ADAPTER: TypeAdapter[dict[str, str]] = TypeAdapter(dict[str, str])


def load_records(store: KeyValueStore) -> list[CanonicalRecord] | None:
    """Return persisted records, or ``None`` when nothing (valid) is stored."""

    raw = store.get(RECORDS_KEY)
    if raw is None:
        return None
    try:
        parsed = _RECORDS_ADAPTER.validate_python(raw)
    except ValidationError:
        _logger.warning("Ignoring invalid record collection in store", exc_info=True)
        return None
    return [CanonicalRecord.from_dict(r.model_dump()) for r in parsed]


def save_records(store: KeyValueStore, records: Iterable[CanonicalRecord]) -> bool:
    return store.set(RECORDS_KEY, [r.to_dict() for r in records])


def load_targets(store: KeyValueStore) -> dict[str, dict[str, float]]:
    raw = store.get(TARGETS_KEY)
    if raw is None:
        return {}
    try:
        return _TARGETS_ADAPTER.validate_python(raw)
    except ValidationError:
        _logger.warning("Ignoring invalid budget targets in store", exc_info=True)
        return {}


def save_targets(store: KeyValueStore, targets: Mapping[str, Mapping[str, float]]) -> bool:
    return store.set(TARGETS_KEY, {y: dict(cats) for y, cats in targets.items()})


def load_category_mappings(store: KeyValueStore) -> dict[str, str]:
    raw = store.get(CATEGORY_MAPPINGS_KEY)
    if raw is None:
        return {}
    try:
        parsed = _MAPPINGS_ADAPTER.validate_python(raw)
    except ValidationError:
        _logger.warning("Ignoring invalid category mappings in store", exc_info=True)
        return {}
    # Drop entries that no longer name a known category
    return {k: v for k, v in parsed.items() if v in CATEGORIES}


def save_category_mappings(store: KeyValueStore, mappings: Mapping[str, str]) -> bool:
    return store.set(CATEGORY_MAPPINGS_KEY, dict(mappings))


__all__ = [
    "RECORDS_KEY",
    "TARGETS_KEY",
    "CATEGORY_MAPPINGS_KEY",
    "KeyValueStore",
    "SqlKeyValueStore",
    "StoredRecord",
    "load_records",
    "save_records",
    "load_targets",
    "save_targets",
    "load_category_mappings",
    "save_category_mappings",
]
