"""Adapter for the Izvoz aggregate vendor-spend export.

Each row is already a category/vendor total in thousands of EUR (spend is
exported as a negative number). Columns are located by case-insensitive
substring match on the header:

- category: ``indirect category``, else ``category``
- vendor: ``vendor``
- spend: ``ytd spend``, else ``spend``
- target: ``target`` (optional)

Every row with a category becomes one record dated :data:`RECORD_MONTH`
(quantity 1, unit price = total = |spend| × 1000). Non-zero targets are summed
per category (|target| × 1000) as budget targets for :data:`TARGET_YEAR`.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from ...categorize import classify
from ...normalizers import ISSUE_CAP, Issue
from ...parsing import parse_number
from ...records import DEFAULT_CATEGORY, CanonicalRecord
from ..utils import ParsedCsv

RECORD_MONTH = "2025-12"
TARGET_YEAR = "2026"
_THOUSANDS = 1000


@dataclass(slots=True)
class IzvozImport:
    records: list[CanonicalRecord] = field(default_factory=list)
    targets: dict[str, float] = field(default_factory=dict)
    issues: list[Issue] = field(default_factory=list)
    row_count: int = 0


def _find_column(headers: Sequence[str], *needles: str) -> str | None:
    for needle in needles:
        for header in headers:
            if needle in header.lower():
                return header
    return None


def to_records(
    parsed: ParsedCsv, saved_categories: Mapping[str, str] | None = None
) -> IzvozImport:
    headers = parsed.headers
    category_col = _find_column(headers, "indirect category", "category")
    vendor_col = _find_column(headers, "vendor")
    spend_col = _find_column(headers, "ytd spend", "spend")
    target_col = _find_column(headers, "target")

    out = IzvozImport(row_count=len(parsed.rows))
    targets: dict[str, float] = defaultdict(float)
    unknown = 0
    for idx, row in enumerate(parsed.rows):
        raw_category = (row.get(category_col) or "").strip() if category_col else ""
        if not raw_category:
            continue

        category = classify(raw_category, saved_categories)
        if category is None:
            unknown += 1
            if unknown <= ISSUE_CAP:
                out.issues.append(
                    Issue(
                        "warn",
                        f'Row {idx + 1}: Unknown category "{raw_category}" mapped to '
                        f"{DEFAULT_CATEGORY}",
                    )
                )
            category = DEFAULT_CATEGORY

        vendor = (row.get(vendor_col) or "").strip() if vendor_col else ""
        spend = abs(parse_number(row.get(spend_col) if spend_col else None)) * _THOUSANDS

        if target_col and (row.get(target_col) or "").strip():
            target = parse_number(row.get(target_col))
            if target != 0:
                targets[category] += abs(target) * _THOUSANDS

        out.records.append(
            CanonicalRecord(
                date=RECORD_MONTH,
                cost_category=category,
                item_description=vendor or raw_category,
                supplier=vendor,
                quantity=1.0,
                unit_price_usd=spend,
                total_amount_usd=spend,
            )
        )

    if unknown > ISSUE_CAP:
        out.issues.append(
            Issue(
                "warn",
                f"{unknown - ISSUE_CAP} more unknown category value(s) mapped to "
                f"{DEFAULT_CATEGORY}",
            )
        )
    out.targets = dict(targets)
    return out


__all__ = ["RECORD_MONTH", "TARGET_YEAR", "IzvozImport", "to_records"]
