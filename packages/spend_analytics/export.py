"""CSV serialization of record collections.

Output uses the canonical field order as header, RFC 4180 minimal quoting
(fields containing a comma, quote or newline are quoted; embedded quotes are
doubled) and ``\\n`` row terminators. Numbers are written without a trailing
``.0`` so an export re-imports to the same values.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable
from io import StringIO
from os import PathLike
from pathlib import Path
from typing import Any

from .parsing import format_number
from .records import FIELD_ORDER, NUMERIC_FIELDS, CanonicalRecord

TEMPLATE_FILENAME = "indirect_spend_template.csv"

TEMPLATE_EXAMPLE = CanonicalRecord(
    date="2026-01",
    cost_category="Clinical, Lab and scientific services",
    sub_category="Analytical testing",
    sku="LAB-0042",
    item_description="HPLC Column C18 250mm",
    supplier="Biorelliance",
    ordered_by="Jan Novak",
    department="QC Laboratory",
    cost_center="CC-4200",
    po_number="PO-2026-0142",
    quantity=10.0,
    unit_price_usd=450.0,
    total_amount_usd=4500.0,
    budget_type="Actual",
    price_impact_usd=-120.0,
    volume_impact_usd=-50.0,
    insourcing_savings_usd=0.0,
    notes="Sample entry",
)

# Template amounts keep two decimals as a formatting hint for users
_TEMPLATE_AMOUNTS = frozenset(
    {"unit_price_usd", "total_amount_usd", "price_impact_usd", "volume_impact_usd"}
)


def _row(record: CanonicalRecord) -> list[str]:
    data = record.to_dict()
    return [
        format_number(data[name]) if name in NUMERIC_FIELDS else str(data[name] or "")
        for name in FIELD_ORDER
    ]


def _writer(buf: StringIO) -> Any:
    return csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)


def records_to_csv(records: Iterable[CanonicalRecord]) -> str:
    """Return ``records`` as CSV text with a header row."""

    buf = StringIO()
    writer = _writer(buf)
    writer.writerow(FIELD_ORDER)
    for record in records:
        writer.writerow(_row(record))
    return buf.getvalue()


def write_csv(records: Iterable[CanonicalRecord], path: str | PathLike[str]) -> int:
    """Write ``records`` to ``path`` (UTF-8) and return the number of rows."""

    items = list(records)
    Path(path).write_text(records_to_csv(items), encoding="utf-8", newline="")
    return len(items)


def template_csv() -> str:
    """Blank import template: header plus one illustrative row."""

    buf = StringIO()
    writer = _writer(buf)
    writer.writerow(FIELD_ORDER)
    data = TEMPLATE_EXAMPLE.to_dict()
    row: list[str] = []
    for name in FIELD_ORDER:
        value = data[name]
        if name in _TEMPLATE_AMOUNTS:
            row.append(f"{value:.2f}")
        elif name in NUMERIC_FIELDS:
            row.append(format_number(value))
        else:
            row.append(value)
    writer.writerow(row)
    return buf.getvalue()


__all__ = [
    "TEMPLATE_FILENAME",
    "TEMPLATE_EXAMPLE",
    "records_to_csv",
    "write_csv",
    "template_csv",
]
