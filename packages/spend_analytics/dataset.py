"""Owned, injectable record collection and budget targets.

:class:`SpendDataset` holds the single in-memory record collection. It is
constructed with a :class:`~spend_analytics.persistence.KeyValueStore` and
passed explicitly to every component that reads or mutates records. Every
mutation recomputes ``record_index`` and saves the collection; a failed save
is logged and reported through the return value while the in-memory
collection stays authoritative.

:class:`BudgetTargets` keeps ``{year: {category: eur}}`` planned spend
ceilings, persisted independently of the records.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from .duplicates import MergeResult, merge_records
from .logging_setup import get_logger
from .parsing import normalize_month, parse_number
from .persistence import (
    RECORDS_KEY,
    KeyValueStore,
    load_records,
    load_targets,
    save_records,
    save_targets,
)
from .records import (
    BUDGET_TYPES,
    DEFAULT_BUDGET_TYPE,
    FIELD_ORDER,
    NUMERIC_FIELDS,
    CanonicalRecord,
    canonical_category,
)

_logger = get_logger("spend_analytics.dataset")

_REQUIRED_MANUAL_FIELDS: tuple[str, ...] = ("date", "cost_category", "sku")


def _coerce_field(name: str, value: Any) -> Any:
    if name not in FIELD_ORDER:
        raise ValueError(f"Unknown record field: {name!r}")
    if name in NUMERIC_FIELDS:
        return parse_number(value)
    text = "" if value is None else str(value).strip()
    if name == "date":
        return normalize_month(text)
    if name == "cost_category":
        category = canonical_category(text)
        if category is None:
            raise ValueError(f"Unknown category: {text!r}")
        return category
    if name == "budget_type":
        if not text:
            return DEFAULT_BUDGET_TYPE
        for bt in BUDGET_TYPES:
            if bt.lower() == text.lower():
                return bt
        raise ValueError(f"Unknown budget type: {text!r}. Allowed: {list(BUDGET_TYPES)}")
    return text


def _backfill_manual_total(record: CanonicalRecord) -> None:
    # Manual entry accepts any non-zero factors, unlike the import path
    if record.total_amount_usd == 0 and record.quantity and record.unit_price_usd:
        record.total_amount_usd = record.quantity * record.unit_price_usd


class SpendDataset:
    """The record collection shared by import, editing, filters and export."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._records: list[CanonicalRecord] = []

    # ---- read access ------------------------------------------------------

    @property
    def records(self) -> list[CanonicalRecord]:
        """Shallow copy of the collection in index order."""

        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CanonicalRecord]:
        return iter(list(self._records))

    def __getitem__(self, index: int) -> CanonicalRecord:
        return self._records[index]

    # ---- persistence ------------------------------------------------------

    def load(self) -> bool:
        """Replace the in-memory collection with the persisted one.

        Returns ``True`` when a stored collection was found.
        """

        loaded = load_records(self._store)
        if loaded is None:
            self._records = []
            return False
        self._records = loaded
        self._reindex()
        _logger.debug("Loaded %d records", len(self._records))
        return True

    def save(self) -> bool:
        ok = save_records(self._store, self._records)
        if not ok:
            _logger.warning("Failed to save %d records; keeping them in memory", len(self))
        return ok

    # ---- bulk mutations ---------------------------------------------------

    def replace(self, records: Iterable[CanonicalRecord]) -> bool:
        self._records = list(records)
        return self._commit()

    def merge(self, records: Iterable[CanonicalRecord]) -> MergeResult:
        """Append records whose natural key is not yet present."""

        result = merge_records(self._records, records)
        self._records.extend(result.added)
        result.persisted = self._commit()
        _logger.info(
            "Merged %d new record(s), skipped %d duplicate(s)", result.added_count, result.skipped
        )
        return result

    def clear(self) -> bool:
        """Drop every record. On a store failure the records are kept and ``False`` returned."""

        if not self._store.clear(RECORDS_KEY):
            _logger.warning("Failed to clear stored records; keeping %d in memory", len(self))
            return False
        self._records = []
        return True

    # ---- single-record mutations -----------------------------------------

    def add_record(self, fields: Mapping[str, Any]) -> CanonicalRecord:
        """Validate and append one manually entered record.

        ``date``, ``cost_category`` and ``sku`` are required and the category
        must be one of the canonical categories. Raises ``ValueError``
        otherwise.
        """

        missing = [
            name for name in _REQUIRED_MANUAL_FIELDS if not str(fields.get(name) or "").strip()
        ]
        if missing:
            raise ValueError("Date, Category, and SKU are required")
        values = {name: _coerce_field(name, value) for name, value in fields.items()}
        record = CanonicalRecord(**values)
        _backfill_manual_total(record)
        self._records.append(record)
        self._commit()
        return record

    def update_record(self, index: int, fields: Mapping[str, Any]) -> CanonicalRecord:
        """Apply ``fields`` to the record at ``index`` in place."""

        record = self._records[index]
        values = {name: _coerce_field(name, value) for name, value in fields.items()}
        for name, value in values.items():
            setattr(record, name, value)
        _backfill_manual_total(record)
        self._commit()
        return record

    def delete_record(self, index: int) -> CanonicalRecord:
        record = self._records.pop(index)
        record.record_index = -1
        self._commit()
        return record

    # ---- internals --------------------------------------------------------

    def _reindex(self) -> None:
        for i, record in enumerate(self._records):
            record.record_index = i

    def _commit(self) -> bool:
        self._reindex()
        return self.save()


# ---------------------------------------------------------------------------
# Budget targets
# ---------------------------------------------------------------------------


def validate_year(year: str | int) -> str:
    """Return ``year`` as a 4-digit string in 2000–2099 or raise ``ValueError``."""

    text = str(year).strip()
    if len(text) != 4 or not text.isdigit() or not 2000 <= int(text) <= 2099:
        raise ValueError("Please enter a valid 4-digit year between 2000 and 2099.")
    return text


def _require_category(category: str) -> str:
    resolved = canonical_category(category)
    if resolved is None:
        raise ValueError(f"Unknown category: {category!r}")
    return resolved


class BudgetTargets:
    """Planned spend per (year, category) in EUR."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._targets: dict[str, dict[str, float]] = load_targets(store)

    def as_dict(self) -> dict[str, dict[str, float]]:
        return copy.deepcopy(self._targets)

    def years(self) -> list[str]:
        return sorted(self._targets)

    def get(self, year: str | int, category: str) -> float | None:
        return self._targets.get(str(year).strip(), {}).get(category)

    def set(self, year: str | int, category: str, value: float | None) -> bool:
        """Set one target; ``None`` or a negative value removes it."""

        key = validate_year(year)
        cat = _require_category(category)
        bucket = self._targets.setdefault(key, {})
        if value is None or value < 0:
            bucket.pop(cat, None)
        else:
            bucket[cat] = float(value)
        return self._save()

    def update(self, year: str | int, values: Mapping[str, float]) -> bool:
        """Overwrite several categories of one year in a single save."""

        key = validate_year(year)
        bucket = self._targets.setdefault(key, {})
        for category, value in values.items():
            bucket[_require_category(category)] = float(value)
        return self._save()

    def add_year(self, year: str | int) -> str:
        key = validate_year(year)
        self._targets.setdefault(key, {})
        self._save()
        return key

    def remove_year(self, year: str | int) -> bool:
        key = str(year).strip()
        if key not in self._targets:
            return False
        del self._targets[key]
        self._save()
        return True

    def year_total(self, year: str | int) -> float | None:
        """Sum of the positive targets of ``year``; ``None`` when there are none."""

        values = [v for v in self._targets.get(str(year).strip(), {}).values() if v > 0]
        return sum(values) if values else None

    def _save(self) -> bool:
        ok = save_targets(self._store, self._targets)
        if not ok:
            _logger.warning("Failed to save budget targets")
        return ok


__all__ = ["SpendDataset", "BudgetTargets", "validate_year"]
