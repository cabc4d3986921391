"""Canonical spend record model and field catalogue.

Every import path (Generic, Izvoz, SAP) reduces its rows to
:class:`CanonicalRecord`. Field names double as the CSV header names used for
export and for the Generic import path, and as the keys of the persisted JSON.

Field order (exact):
    date, cost_category, sub_category, sku, item_description, supplier,
    ordered_by, department, cost_center, po_number, quantity, unit_price_usd,
    total_amount_usd, budget_type, price_impact_usd, volume_impact_usd,
    insourcing_savings_usd, notes

``record_index`` is an array-position cache recomputed after every mutation of
the owning collection; it is never exported or persisted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

CATEGORIES: tuple[str, ...] = (
    "Clinical, Lab and scientific services",
    "Production Equipment",
    "External Warehouse and distribution",
    "Professional Services",
    "Miscellaneous Indirect Costs",
    "Office and Print",
)

DEFAULT_CATEGORY = "Miscellaneous Indirect Costs"

BUDGET_TYPES: tuple[str, ...] = ("Actual", "Baseline", "Target")

DEFAULT_BUDGET_TYPE = "Actual"

FIELD_ORDER: tuple[str, ...] = (
    "date",
    "cost_category",
    "sub_category",
    "sku",
    "item_description",
    "supplier",
    "ordered_by",
    "department",
    "cost_center",
    "po_number",
    "quantity",
    "unit_price_usd",
    "total_amount_usd",
    "budget_type",
    "price_impact_usd",
    "volume_impact_usd",
    "insourcing_savings_usd",
    "notes",
)

NUMERIC_FIELDS: frozenset[str] = frozenset(
    {
        "quantity",
        "unit_price_usd",
        "total_amount_usd",
        "price_impact_usd",
        "volume_impact_usd",
        "insourcing_savings_usd",
    }
)

# Human labels used by the terminal UI and the SAP wizard.
FIELD_LABELS: dict[str, str] = {
    "date": "Date",
    "cost_category": "Category",
    "sub_category": "Sub-Category",
    "sku": "SKU",
    "item_description": "Description",
    "supplier": "Supplier",
    "ordered_by": "Ordered By",
    "department": "Department",
    "cost_center": "Cost Center",
    "po_number": "PO Number",
    "quantity": "Qty",
    "unit_price_usd": "Unit Price",
    "total_amount_usd": "Total (EUR)",
    "budget_type": "Budget Type",
    "price_impact_usd": "Price Impact",
    "volume_impact_usd": "Volume Impact",
    "insourcing_savings_usd": "Insourcing",
    "notes": "Notes",
}


def canonical_category(value: str | None) -> str | None:
    """Return the canonical spelling of ``value`` when it names a category."""

    if not value:
        return None
    lowered = value.strip().lower()
    for cat in CATEGORIES:
        if cat.lower() == lowered:
            return cat
    return None


@dataclass(slots=True)
class CanonicalRecord:
    """One normalized spend line.

    Text fields are never ``None`` (empty string when absent) and numeric
    fields default to ``0.0``. Records are mutable so that edits from the
    dataset store apply in place.
    """

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
    record_index: int = -1

    def backfill_total(self) -> None:
        """Set ``total = quantity * unit price`` when no total was given."""

        if self.total_amount_usd == 0 and self.quantity > 0 and self.unit_price_usd > 0:
            self.total_amount_usd = self.quantity * self.unit_price_usd

    def to_dict(self) -> dict[str, Any]:
        """Return the record in canonical field order, without ``record_index``."""

        data = asdict(self)
        return {k: data[k] for k in FIELD_ORDER}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CanonicalRecord:
        """Build a record from an already-normalized mapping (e.g., persisted JSON)."""

        kwargs: dict[str, Any] = {}
        for key in FIELD_ORDER:
            if key not in data:
                continue
            val = data[key]
            if key in NUMERIC_FIELDS:
                kwargs[key] = float(val) if val not in (None, "") else 0.0
            else:
                kwargs[key] = "" if val is None else str(val)
        return cls(**kwargs)


__all__ = [
    "CATEGORIES",
    "DEFAULT_CATEGORY",
    "BUDGET_TYPES",
    "DEFAULT_BUDGET_TYPE",
    "FIELD_ORDER",
    "NUMERIC_FIELDS",
    "FIELD_LABELS",
    "canonical_category",
    "CanonicalRecord",
]
