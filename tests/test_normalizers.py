import pytest

from spend_analytics.normalizers import (
    ImportRefused,
    Issue,
    normalize_rows,
    require_records,
)

IDENTITY = {
    "date": "date",
    "cost_category": "cost_category",
    "sku": "sku",
    "supplier": "supplier",
    "quantity": "quantity",
    "unit_price_usd": "unit_price_usd",
    "total_amount_usd": "total_amount_usd",
    "budget_type": "budget_type",
}


def _row(**overrides: str) -> dict[str, str]:
    row = {
        "date": "2026-01-15",
        "cost_category": "Office and Print",
        "sku": "P-1",
        "supplier": "Acme",
        "quantity": "2",
        "unit_price_usd": "10",
        "total_amount_usd": "20",
        "budget_type": "Actual",
    }
    row.update(overrides)
    return row


def test_unmapped_fields_get_defaults():
    result = normalize_rows([{"Vendor": "Acme", "Net": "1.234,50"}], {"Vendor": "supplier", "Net": "total_amount_usd"}, number_format="EU")
    (record,) = result.records
    assert record.supplier == "Acme"
    assert record.total_amount_usd == pytest.approx(1234.5)
    assert record.sku == ""
    assert record.date == ""
    assert record.cost_category == "Miscellaneous Indirect Costs"
    assert record.budget_type == "Actual"


def test_total_backfill_boundaries():
    rows = [
        _row(total_amount_usd="0", quantity="3", unit_price_usd="2.5"),
        _row(total_amount_usd="0", quantity="0", unit_price_usd="2.5"),
        _row(total_amount_usd="0", quantity="-1", unit_price_usd="2.5"),
        _row(total_amount_usd="7", quantity="3", unit_price_usd="2.5"),
    ]
    totals = [r.total_amount_usd for r in normalize_rows(rows, IDENTITY).records]
    assert totals == [pytest.approx(7.5), 0.0, 0.0, 7.0]


def test_blank_rows_are_removed_and_reported():
    rows = [
        _row(),
        _row(sku="", supplier="", total_amount_usd="0", quantity="0"),
        _row(sku="", supplier="", total_amount_usd="", quantity=""),
    ]
    result = normalize_rows(rows, IDENTITY)
    assert len(result.records) == 1
    assert result.discarded_count == 2
    assert result.row_count == 3
    assert result.issues[-1] == Issue("info", "2 empty rows removed")


def test_category_resolution_and_capped_warnings():
    rows = [_row(cost_category=f"ZZ{i}") for i in range(7)]
    rows.append(_row(cost_category="ZLAB"))
    rows.append(_row(cost_category="professional services"))
    result = normalize_rows(rows, IDENTITY, {"ZLAB": "Clinical, Lab and scientific services"})

    categories = [r.cost_category for r in result.records]
    assert categories[:7] == ["Miscellaneous Indirect Costs"] * 7
    assert categories[7] == "Clinical, Lab and scientific services"
    assert categories[8] == "Professional Services"

    warnings = [i.message for i in result.issues if i.severity == "warn"]
    assert warnings[0] == 'Row 1: Unknown category "ZZ0" mapped to Miscellaneous Indirect Costs'
    assert len([w for w in warnings if w.startswith("Row ")]) == 5
    assert "2 more unknown category value(s) mapped to Miscellaneous Indirect Costs" in warnings


def test_discarded_rows_do_not_fill_warning_caps():
    padding = [
        _row(sku="", supplier="", total_amount_usd="0", quantity="0", cost_category="ZZpad", budget_type="Forecast")
        for _ in range(6)
    ]
    rows = [*padding, _row(cost_category="ZZ1"), _row(budget_type="Plan")]
    result = normalize_rows(rows, IDENTITY)

    assert result.discarded_count == 6
    assert [i.message for i in result.issues if i.severity == "warn"] == [
        'Row 7: Unknown category "ZZ1" mapped to Miscellaneous Indirect Costs',
        'Row 8: Unknown budget type "Plan" treated as Actual',
    ]


def test_budget_type_is_case_insensitive_and_unknown_falls_back():
    rows = [_row(budget_type="baseline"), _row(budget_type=""), _row(budget_type="Forecast")]
    result = normalize_rows(rows, IDENTITY)
    assert [r.budget_type for r in result.records] == ["Baseline", "Actual", "Actual"]
    assert Issue("warn", 'Row 3: Unknown budget type "Forecast" treated as Actual') in result.issues


def test_missing_date_and_zero_amount_issues():
    rows = [_row(date=""), _row(total_amount_usd="0", quantity="0")]
    result = normalize_rows(rows, IDENTITY)
    assert Issue("warn", "Row 1: Missing date") in result.issues
    assert Issue("info", "Row 2: Zero amount") in result.issues
    assert len(result.records) == 2


def test_issue_cap_is_configurable():
    rows = [_row(date="") for _ in range(4)]
    result = normalize_rows(rows, IDENTITY, issue_cap=2)
    assert [i.message for i in result.issues] == ["Row 1: Missing date", "Row 2: Missing date"]


def test_require_records_refuses_empty_result():
    empty = normalize_rows([_row(sku="", supplier="", total_amount_usd="0", quantity="0")], IDENTITY)
    with pytest.raises(ImportRefused, match="No data to import after processing"):
        require_records(empty)
    full = normalize_rows([_row()], IDENTITY)
    assert require_records(full) is full
