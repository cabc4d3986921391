"""Duplicate detection for appended imports.

Public surface:
- ``natural_key``: the PO number when present, else ``date|sku|supplier|total``.
- ``MergeResult``: records that were appended and the number skipped.
- ``merge_records``: append new records whose key is not already present.

Keys are computed against the existing collection only, so two new records
sharing a key inside one batch are both appended. A non-empty PO number alone
identifies a record: a second line with the same PO number is treated as a
duplicate even when its amounts differ.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .parsing import format_number
from .records import CanonicalRecord


def natural_key(record: CanonicalRecord) -> str:
    po = record.po_number.strip()
    if po:
        return po
    return "|".join(
        (record.date, record.sku, record.supplier, format_number(record.total_amount_usd))
    )


@dataclass(slots=True)
class MergeResult:
    added: list[CanonicalRecord] = field(default_factory=list)
    skipped: int = 0
    # Set by the dataset store after it tried to save the merged collection
    persisted: bool = True

    @property
    def added_count(self) -> int:
        return len(self.added)


def merge_records(
    existing: Sequence[CanonicalRecord], incoming: Iterable[CanonicalRecord]
) -> MergeResult:
    """Return the subset of ``incoming`` not already represented in ``existing``.

    ``existing`` is not modified; the caller appends ``result.added``.
    """

    seen = {natural_key(r) for r in existing}
    result = MergeResult()
    for record in incoming:
        if natural_key(record) in seen:
            result.skipped += 1
            continue
        result.added.append(record)
    return result


__all__ = ["natural_key", "MergeResult", "merge_records"]
