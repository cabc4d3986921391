"""Adapter for Generic CSV files whose headers are canonical field names.

Expected header (any subset, any order; other columns are ignored):
date, cost_category, sub_category, sku, item_description, supplier,
ordered_by, department, cost_center, po_number, quantity, unit_price_usd,
total_amount_usd, budget_type, price_impact_usd, volume_impact_usd,
insourcing_savings_usd, notes

Numbers are parsed in ``auto`` mode (EU or US inferred per value). Category
values that are not canonical names resolve through the saved user mapping
and then the keyword rules.
"""

from __future__ import annotations

from collections.abc import Mapping

from ...categorize import build_category_mapping
from ...field_map import column_for, identity_mapping
from ...normalizers import NormalizationResult, normalize_rows
from ..utils import ParsedCsv


def to_records(
    parsed: ParsedCsv, saved_categories: Mapping[str, str] | None = None
) -> NormalizationResult:
    mapping = identity_mapping(parsed.headers)
    category_column = column_for(mapping, "cost_category")
    category_mapping: dict[str, str] = {}
    if category_column is not None:
        category_mapping = build_category_mapping(
            (row.get(category_column) for row in parsed.rows), saved_categories
        )
    return normalize_rows(parsed.rows, mapping, category_mapping, "auto")


__all__ = ["to_records"]
