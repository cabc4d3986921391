"""Global dataset filters, filter options and the data summary."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .parsing import month_of, year_of
from .records import CanonicalRecord


def is_actual(record: CanonicalRecord) -> bool:
    """Actual spend: budget type ``Actual`` or blank."""

    return not record.budget_type or record.budget_type == "Actual"


@dataclass(frozen=True, slots=True)
class DatasetFilters:
    """``None`` on any axis means "all"."""

    year: int | None = None
    month: int | None = None
    category: str | None = None

    def matches(self, record: CanonicalRecord) -> bool:
        if self.year is not None and year_of(record.date) != self.year:
            return False
        if self.month is not None and month_of(record.date) != self.month:
            return False
        if self.category is not None and record.cost_category != self.category:
            return False
        return True


def apply_filters(
    records: Iterable[CanonicalRecord], filters: DatasetFilters | None = None
) -> list[CanonicalRecord]:
    if filters is None:
        return list(records)
    return [r for r in records if filters.matches(r)]


@dataclass(frozen=True, slots=True)
class FilterOptions:
    years: list[int]
    categories: list[str]


def filter_options(records: Iterable[CanonicalRecord]) -> FilterOptions:
    """Distinct years and categories present in ``records``, sorted."""

    years: set[int] = set()
    categories: set[str] = set()
    for r in records:
        y = year_of(r.date)
        if y:
            years.add(y)
        if r.cost_category:
            categories.add(r.cost_category)
    return FilterOptions(years=sorted(years), categories=sorted(categories))


@dataclass(frozen=True, slots=True)
class DataSummary:
    record_count: int
    first_date: str | None
    last_date: str | None
    category_count: int
    supplier_count: int
    requester_count: int
    total_actual_spend: float


def summarize(records: Sequence[CanonicalRecord]) -> DataSummary:
    dates = sorted(r.date for r in records if r.date)
    return DataSummary(
        record_count=len(records),
        first_date=dates[0] if dates else None,
        last_date=dates[-1] if dates else None,
        category_count=len({r.cost_category for r in records if r.cost_category}),
        supplier_count=len({r.supplier for r in records if r.supplier}),
        requester_count=len({r.ordered_by for r in records if r.ordered_by}),
        total_actual_spend=sum(r.total_amount_usd for r in records if is_actual(r)),
    )


def actual_spend_by_year_category(
    records: Iterable[CanonicalRecord],
) -> dict[str, dict[str, float]]:
    """Actual spend grouped as ``{year: {category: eur}}`` for target tracking."""

    out: dict[str, dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for r in records:
        if not is_actual(r) or not r.date:
            continue
        out[r.date[:4]][r.cost_category] += r.total_amount_usd
    return {y: dict(cats) for y, cats in out.items()}


__all__ = [
    "is_actual",
    "DatasetFilters",
    "apply_filters",
    "FilterOptions",
    "filter_options",
    "DataSummary",
    "summarize",
    "actual_spend_by_year_category",
]
