"""Row → :class:`CanonicalRecord` normalization shared by every import path.

Inputs are tokenized CSV rows (``dict[str, str]`` keyed by source header), a
column mapping (source header → canonical field, see :mod:`field_map`), a
resolved category-value mapping and a number format.

Rules:

- Unmapped canonical fields default to ``""`` (text) or ``0.0`` (numeric).
- ``date`` is reduced to ``YYYY-MM`` with :func:`parsing.normalize_month`.
- ``cost_category`` resolves through a canonical-name match, then the
  category mapping; anything else becomes ``DEFAULT_CATEGORY`` with a
  warning.
- ``budget_type`` is matched case-insensitively against ``BUDGET_TYPES``;
  blank or unknown values become ``"Actual"`` (unknown ones are reported).
- ``total_amount_usd`` is back-filled from quantity × unit price when the
  source total is exactly zero and both factors are positive.
- Rows with zero total and empty SKU, supplier and description are blank rows:
  they are dropped and summarised by one trailing ``info`` issue.

Per-row issues are capped at :data:`ISSUE_CAP` occurrences per kind; the
remaining occurrences of an unknown category or budget type are counted and
reported in one summary warning.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Literal

from .field_map import reverse_mapping
from .parsing import NumberFormat, normalize_month, parse_number
from .records import (
    BUDGET_TYPES,
    DEFAULT_BUDGET_TYPE,
    DEFAULT_CATEGORY,
    FIELD_ORDER,
    NUMERIC_FIELDS,
    CanonicalRecord,
    canonical_category,
)

type Severity = Literal["info", "warn", "error"]

ISSUE_CAP = 5


class ImportRefused(ValueError):
    """Normalization produced no records; nothing was applied."""


@dataclass(frozen=True, slots=True)
class Issue:
    severity: Severity
    message: str


@dataclass(slots=True)
class NormalizationResult:
    records: list[CanonicalRecord]
    issues: list[Issue]
    row_count: int
    discarded_count: int = 0


@dataclass(slots=True)
class _CappedIssues:
    """Collect the first ``cap`` occurrences of one issue kind, count the rest."""

    severity: Severity
    cap: int = ISSUE_CAP
    issues: list[Issue] = field(default_factory=list)
    suppressed: int = 0

    def add(self, message: str) -> None:
        if len(self.issues) < self.cap:
            self.issues.append(Issue(self.severity, message))
        else:
            self.suppressed += 1


def _is_blank(record: CanonicalRecord) -> bool:
    return (
        record.total_amount_usd == 0
        and not record.sku
        and not record.supplier
        and not record.item_description
    )


def _resolve_budget_type(value: str) -> str | None:
    """Return the canonical budget type, ``"Actual"`` for blank, ``None`` if unknown."""

    if not value:
        return DEFAULT_BUDGET_TYPE
    lowered = value.lower()
    for bt in BUDGET_TYPES:
        if bt.lower() == lowered:
            return bt
    return None


def _resolve_category(value: str, category_mapping: Mapping[str, str]) -> str | None:
    direct = canonical_category(value)
    if direct is not None:
        return direct
    mapped = category_mapping.get(value)
    return canonical_category(mapped) if mapped else None


def normalize_rows(
    rows: Sequence[Mapping[str, str | None]],
    column_mapping: Mapping[str, str],
    category_mapping: Mapping[str, str] | None = None,
    number_format: NumberFormat | str = "auto",
    *,
    issue_cap: int = ISSUE_CAP,
) -> NormalizationResult:
    """Normalize ``rows`` into canonical records plus structured issues.

    Parameters
    ----------
    rows:
        Tokenized rows keyed by source header.
    column_mapping:
        Source header → canonical field / reference target / skip. Only
        canonical targets are written into records.
    category_mapping:
        Raw category value → canonical category for values that are not
        already canonical names.
    number_format:
        ``"auto"``, ``"EU"`` or ``"US"`` for :func:`parsing.parse_number`.
    """

    cat_map = dict(category_mapping or {})
    source_for = reverse_mapping(column_mapping)

    unknown_category = _CappedIssues("warn", issue_cap)
    unknown_budget = _CappedIssues("warn", issue_cap)
    missing_date = _CappedIssues("warn", issue_cap)
    zero_amount = _CappedIssues("info", issue_cap)

    records: list[CanonicalRecord] = []
    discarded = 0
    for idx, raw in enumerate(rows):
        row_no = idx + 1
        values: dict[str, object] = {}
        for name in FIELD_ORDER:
            column = source_for.get(name)
            cell = raw.get(column) if column is not None else None
            text = "" if cell is None else str(cell).strip()
            if name in NUMERIC_FIELDS:
                values[name] = parse_number(text, number_format)
            elif name == "date":
                values[name] = normalize_month(text)
            else:
                values[name] = text

        record = CanonicalRecord(**values)  # type: ignore[arg-type]

        raw_category = record.cost_category
        category = _resolve_category(raw_category, cat_map) if raw_category else None
        record.cost_category = category or DEFAULT_CATEGORY
        raw_budget = record.budget_type
        budget = _resolve_budget_type(raw_budget)
        record.budget_type = budget or DEFAULT_BUDGET_TYPE
        record.backfill_total()

        if _is_blank(record):
            discarded += 1
            continue

        # Only rows that are kept count towards the warning caps
        if category is None and raw_category:
            unknown_category.add(
                f'Row {row_no}: Unknown category "{raw_category}" mapped to {DEFAULT_CATEGORY}'
            )
        if budget is None:
            unknown_budget.add(
                f'Row {row_no}: Unknown budget type "{raw_budget}" treated as '
                f"{DEFAULT_BUDGET_TYPE}"
            )
        if not record.date:
            missing_date.add(f"Row {row_no}: Missing date")
        if record.total_amount_usd == 0:
            zero_amount.add(f"Row {row_no}: Zero amount")
        records.append(record)

    issues: list[Issue] = []
    issues.extend(unknown_category.issues)
    if unknown_category.suppressed:
        issues.append(
            Issue(
                "warn",
                f"{unknown_category.suppressed} more unknown category value(s) mapped to "
                f"{DEFAULT_CATEGORY}",
            )
        )
    issues.extend(unknown_budget.issues)
    if unknown_budget.suppressed:
        issues.append(
            Issue(
                "warn",
                f"{unknown_budget.suppressed} more unknown budget type value(s) treated as "
                f"{DEFAULT_BUDGET_TYPE}",
            )
        )
    issues.extend(missing_date.issues)
    issues.extend(zero_amount.issues)
    if discarded:
        issues.append(Issue("info", f"{discarded} empty rows removed"))

    return NormalizationResult(
        records=records, issues=issues, row_count=len(rows), discarded_count=discarded
    )


def require_records(result: NormalizationResult) -> NormalizationResult:
    """Return ``result`` or raise :class:`ImportRefused` when it holds no records."""

    if not result.records:
        raise ImportRefused("No data to import after processing")
    return result


__all__ = [
    "Severity",
    "ISSUE_CAP",
    "ImportRefused",
    "Issue",
    "NormalizationResult",
    "normalize_rows",
    "require_records",
]
