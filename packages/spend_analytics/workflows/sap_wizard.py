"""SAP import wizard as an explicit finite-state machine.

Steps run strictly in order::

    DETECT(0) → MAP_COLUMNS(1) → MAP_CATEGORIES(2) → REVIEW_SETTINGS(3) → EXECUTE(4)

:class:`WizardState` is an immutable value object holding everything the
wizard has accumulated (parsed rows, column mapping, category-value mapping,
number format and the latest preview). Every transition is a pure function
``(state, input) -> state``; nothing is persisted until
:func:`execute_import`.

- Entering ``MAP_CATEGORIES`` seeds a category for every distinct value of
  the category column (saved mapping, then keyword rules).
- Entering ``REVIEW_SETTINGS``, and any setting change made while in it,
  re-runs normalization over all rows and stores a fresh
  :class:`WizardPreview`.
- :func:`execute_import` is the only way into ``EXECUTE``. It refuses with
  :class:`~spend_analytics.normalizers.ImportRefused` when normalization
  yields no records; the caller keeps its unchanged state.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import IntEnum

from ..categorize import CategoryMappingStore, build_category_mapping
from ..dataset import SpendDataset
from ..detect import is_sap_export
from ..field_map import auto_map_columns, column_for, detect_number_format, override_column
from ..ingest.utils import ParsedCsv
from ..logging_setup import get_logger
from ..normalizers import Issue, normalize_rows, require_records
from ..parsing import NUMBER_FORMATS, NumberFormat
from ..records import CanonicalRecord, canonical_category

PREVIEW_ROWS = 10

_logger = get_logger("spend_analytics.workflows.sap_wizard")


class WizardStep(IntEnum):
    DETECT = 0
    MAP_COLUMNS = 1
    MAP_CATEGORIES = 2
    REVIEW_SETTINGS = 3
    EXECUTE = 4


STEP_TITLES: dict[WizardStep, str] = {
    WizardStep.DETECT: "Upload & Detect",
    WizardStep.MAP_COLUMNS: "Map Columns",
    WizardStep.MAP_CATEGORIES: "Map Categories",
    WizardStep.REVIEW_SETTINGS: "Settings & Preview",
    WizardStep.EXECUTE: "Import",
}


@dataclass(frozen=True, slots=True)
class PreviewStats:
    row_count: int
    record_count: int
    total_amount: float
    unique_suppliers: int
    unique_skus: int
    first_date: str | None
    last_date: str | None


@dataclass(frozen=True, slots=True)
class WizardPreview:
    stats: PreviewStats
    records: tuple[CanonicalRecord, ...]
    issues: tuple[Issue, ...]


@dataclass(frozen=True, slots=True)
class WizardState:
    step: WizardStep
    headers: tuple[str, ...]
    rows: tuple[Mapping[str, str], ...]
    column_mapping: Mapping[str, str]
    category_mapping: Mapping[str, str]
    number_format: NumberFormat
    detected_number_format: NumberFormat
    sap_detected: bool
    parse_error_count: int = 0
    preview: WizardPreview | None = None

    @property
    def category_column(self) -> str | None:
        return column_for(self.column_mapping, "cost_category")

    @property
    def title(self) -> str:
        return STEP_TITLES[self.step]


@dataclass(slots=True)
class WizardOutcome:
    """Result of a committed import; the wizard is closed afterwards."""

    added: int
    skipped: int
    issues: list[Issue] = field(default_factory=list)
    column_mapping: dict[str, str] = field(default_factory=dict)
    category_mapping: dict[str, str] = field(default_factory=dict)

    @property
    def warning_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == "warn")


# ---------------------------------------------------------------------------
# Construction and navigation
# ---------------------------------------------------------------------------


def start_wizard(
    parsed: ParsedCsv, saved_categories: Mapping[str, str] | None = None
) -> WizardState:
    """Open the wizard on ``parsed`` with auto-mapped columns and number format.

    Raises ``ValueError`` when the file holds no data rows.
    """

    if not parsed.rows:
        raise ValueError("No data found in file")
    mapping = auto_map_columns(parsed.headers)
    detected = detect_number_format(parsed.rows, mapping)
    _logger.debug(
        "SAP wizard opened: %d rows, %d mapped column(s), %s numbers",
        len(parsed.rows),
        len(mapping),
        detected,
    )
    return WizardState(
        step=WizardStep.DETECT,
        headers=tuple(parsed.headers),
        rows=tuple(parsed.rows),
        column_mapping=mapping,
        category_mapping=dict(saved_categories or {}),
        number_format=detected,
        detected_number_format=detected,
        sap_detected=is_sap_export(parsed.headers),
        parse_error_count=parsed.error_count,
    )


def go_next(state: WizardState) -> WizardState:
    """Advance one step; stays in ``REVIEW_SETTINGS`` (see :func:`execute_import`)."""

    if state.step >= WizardStep.REVIEW_SETTINGS:
        return state
    return _enter(replace(state, step=WizardStep(state.step + 1)))


def go_back(state: WizardState) -> WizardState:
    if state.step <= WizardStep.DETECT or state.step == WizardStep.EXECUTE:
        return state
    return _enter(replace(state, step=WizardStep(state.step - 1), preview=None))


def _enter(state: WizardState) -> WizardState:
    if state.step == WizardStep.MAP_CATEGORIES:
        return seed_categories(state)
    if state.step == WizardStep.REVIEW_SETTINGS:
        return replace(state, preview=compute_preview(state))
    return state


def _refresh(state: WizardState) -> WizardState:
    if state.step == WizardStep.REVIEW_SETTINGS:
        return replace(state, preview=compute_preview(state))
    return state


# ---------------------------------------------------------------------------
# Setting changes
# ---------------------------------------------------------------------------


def set_column_target(state: WizardState, column: str, target: str) -> WizardState:
    """Point ``column`` at a canonical field, a reference target or skip."""

    if column not in state.headers:
        raise ValueError(f"Unknown column: {column!r}")
    mapping = override_column(state.column_mapping, column, target)
    return _refresh(replace(state, column_mapping=mapping))


def set_category(state: WizardState, value: str, category: str | None) -> WizardState:
    """Map a raw category value; ``None`` or ``""`` clears the mapping."""

    raw = value.strip()
    mapping = dict(state.category_mapping)
    if not category:
        mapping.pop(raw, None)
    else:
        resolved = canonical_category(category)
        if resolved is None:
            raise ValueError(f"Unknown category: {category!r}")
        mapping[raw] = resolved
    return _refresh(replace(state, category_mapping=mapping))


def set_number_format(state: WizardState, number_format: str) -> WizardState:
    if number_format not in NUMBER_FORMATS:
        raise ValueError(
            f"Unsupported number format: {number_format!r}. Allowed: {list(NUMBER_FORMATS)}"
        )
    return _refresh(replace(state, number_format=number_format))  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Category values and preview
# ---------------------------------------------------------------------------


def category_values(state: WizardState) -> list[tuple[str, int]]:
    """Distinct non-empty values of the category column, most frequent first."""

    column = state.category_column
    if column is None:
        return []
    counts = Counter(
        (row.get(column) or "").strip() for row in state.rows if (row.get(column) or "").strip()
    )
    return counts.most_common()


def seed_categories(state: WizardState) -> WizardState:
    values = [v for v, _ in category_values(state)]
    if not values:
        return state
    seeded = build_category_mapping(values, state.category_mapping)
    return replace(state, category_mapping={**state.category_mapping, **seeded})


def compute_preview(state: WizardState) -> WizardPreview:
    """Normalize every row under the current settings."""

    result = normalize_rows(
        state.rows, state.column_mapping, state.category_mapping, state.number_format
    )
    records = result.records
    dates = sorted(r.date for r in records if r.date)
    stats = PreviewStats(
        row_count=result.row_count,
        record_count=len(records),
        total_amount=sum(r.total_amount_usd for r in records),
        unique_suppliers=len({r.supplier for r in records if r.supplier}),
        unique_skus=len({r.sku for r in records if r.sku}),
        first_date=dates[0] if dates else None,
        last_date=dates[-1] if dates else None,
    )
    return WizardPreview(
        stats=stats, records=tuple(records[:PREVIEW_ROWS]), issues=tuple(result.issues)
    )


# ---------------------------------------------------------------------------
# Execute
# ---------------------------------------------------------------------------


def execute_import(
    state: WizardState,
    dataset: SpendDataset,
    category_store: CategoryMappingStore,
) -> WizardOutcome:
    """Commit the import: save category mappings, then merge new records.

    Raises ``ValueError`` outside ``REVIEW_SETTINGS`` and
    :class:`~spend_analytics.normalizers.ImportRefused` when no records
    remain after normalization. Nothing is persisted in either case.
    """

    if state.step != WizardStep.REVIEW_SETTINGS:
        raise ValueError("Import can only be executed from the review step")

    result = require_records(
        normalize_rows(
            state.rows, state.column_mapping, state.category_mapping, state.number_format
        )
    )
    issues = list(result.issues)
    if state.parse_error_count:
        issues.insert(
            0, Issue("warn", f"CSV parsing warnings: {state.parse_error_count} issues found")
        )

    if not category_store.merge(state.category_mapping):
        issues.append(Issue("warn", "Failed to save category mappings"))

    merged = dataset.merge(result.records)
    if not merged.persisted:
        issues.append(Issue("warn", "Failed to save data; changes are kept in memory only"))
    if merged.skipped:
        issues.append(Issue("info", f"{merged.skipped} duplicates skipped"))

    _logger.info(
        "SAP import complete: %d record(s) added, %d skipped", merged.added_count, merged.skipped
    )
    return WizardOutcome(
        added=merged.added_count,
        skipped=merged.skipped,
        issues=issues,
        column_mapping=dict(state.column_mapping),
        category_mapping=dict(state.category_mapping),
    )


__all__ = [
    "PREVIEW_ROWS",
    "WizardStep",
    "STEP_TITLES",
    "PreviewStats",
    "WizardPreview",
    "WizardState",
    "WizardOutcome",
    "start_wizard",
    "go_next",
    "go_back",
    "set_column_target",
    "set_category",
    "set_number_format",
    "category_values",
    "seed_categories",
    "compute_preview",
    "execute_import",
]
