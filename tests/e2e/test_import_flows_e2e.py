"""End-to-end import flows against a real SQLite-backed store.

Each test drives the public entry points (upload router, SAP wizard, dataset
store, export) the way the CLI does, then re-opens the store from scratch to
check what was persisted.
"""

from __future__ import annotations

import pytest

from spend_analytics.categorize import CategoryMappingStore
from spend_analytics.dataset import BudgetTargets, SpendDataset
from spend_analytics.detect import SourceFormat, detect_format
from spend_analytics.export import records_to_csv
from spend_analytics.field_map import auto_map_columns
from spend_analytics.ingest.router import ImportResult, import_csv_text
from spend_analytics.normalizers import normalize_rows
from spend_analytics.persistence import SqlKeyValueStore
from spend_analytics.workflows.sap_wizard import (
    WizardState,
    execute_import,
    go_next,
    set_category,
)


def _open():
    store = SqlKeyValueStore()
    dataset = SpendDataset(store)
    dataset.load()
    return dataset, CategoryMappingStore(store), BudgetTargets(store)


def test_sap_headers_detected_and_mapped():
    headers = ["Purchasing Document", "Material", "Net Value", "Net Price", "Bestellmenge"]
    assert detect_format(headers) is SourceFormat.SAP
    mapping = auto_map_columns(headers)
    assert mapping["Net Value"] == "total_amount_usd"
    assert mapping["Bestellmenge"] == "quantity"
    assert mapping["Purchasing Document"] == "po_number"


def test_eu_row_normalizes_date_and_value():
    result = normalize_rows(
        [{"date": "31.01.2026", "value": "1.500,75"}],
        {"date": "date", "value": "total_amount_usd"},
        number_format="EU",
    )
    (record,) = result.records
    assert record.date == "2026-01"
    assert record.total_amount_usd == pytest.approx(1500.75)


def test_izvoz_marker_routes_even_with_sap_headers():
    text = (
        "Indirect Category Mapping,EBELN,MATNR,NETWR,Vendor,YTD Spend\n"
        "Logistics,1,2,3,DHL,-4\n"
    )
    dataset, categories, targets = _open()
    result = import_csv_text(text, dataset, category_store=categories, targets=targets)
    assert isinstance(result, ImportResult)
    assert result.source_format is SourceFormat.IZVOZ
    (record,) = _open()[0].records
    assert record.cost_category == "External Warehouse and distribution"
    assert record.total_amount_usd == pytest.approx(4000.0)


def test_same_po_number_is_a_duplicate_even_with_different_amount():
    first = "date,sku,po_number,total_amount_usd\n2026-01,A,PO-100,100\n"
    second = "date,sku,po_number,total_amount_usd\n2026-02,A,PO-100,250\n"
    dataset, categories, targets = _open()
    import_csv_text(first, dataset, category_store=categories, targets=targets)
    result = import_csv_text(
        second, dataset, append=True, category_store=categories, targets=targets
    )
    assert (result.added, result.skipped) == (0, 1)
    (record,) = _open()[0].records
    assert record.total_amount_usd == 100.0


def test_append_is_idempotent():
    text = (
        "date,cost_category,sku,supplier,total_amount_usd\n"
        "2026-01,Office and Print,P-1,Acme,10\n"
        "2026-01,Office and Print,P-2,Acme,20\n"
    )
    dataset, categories, targets = _open()
    import_csv_text(text, dataset, append=True, category_store=categories, targets=targets)
    snapshot = [r.to_dict() for r in _open()[0].records]
    import_csv_text(text, dataset, append=True, category_store=categories, targets=targets)
    assert [r.to_dict() for r in _open()[0].records] == snapshot


def test_sap_wizard_session_persists_mapping_for_next_session():
    text = (
        "EBELN;MATNR;NAME1;NETWR;MATKL;BEDAT\n"
        "4500000001;M-1;Ricoh;1.200,00;ZOFF;20.01.2026\n"
        "4500000002;M-2;Ricoh;300,00;ZOFF;21.01.2026\n"
    )
    dataset, categories, targets = _open()
    state = import_csv_text(text, dataset, category_store=categories, targets=targets)
    assert isinstance(state, WizardState)
    state = go_next(go_next(state))
    assert "ZOFF" not in state.category_mapping
    state = set_category(go_next(state), "ZOFF", "Office and Print")
    outcome = execute_import(state, dataset, categories)
    assert outcome.added == 2

    # Fresh session: the learned mapping is applied without asking again
    dataset, categories, targets = _open()
    assert [r.total_amount_usd for r in dataset] == [pytest.approx(1200.0), pytest.approx(300.0)]
    state = import_csv_text(
        text.replace("4500000001", "4500000009"),
        dataset,
        category_store=categories,
        targets=targets,
    )
    state = go_next(go_next(go_next(state)))
    assert state.category_mapping["ZOFF"] == "Office and Print"
    outcome = execute_import(state, dataset, categories)
    assert (outcome.added, outcome.skipped) == (1, 1)
    assert outcome.warning_count == 0


def test_export_reimport_roundtrip_through_router():
    text = (
        "date,cost_category,sku,item_description,supplier,quantity,unit_price_usd,"
        "total_amount_usd,budget_type,notes\n"
        '2026-01,Professional Services,AUD,"Audit, Q1",PwC,1,"12.345,67",,Baseline,"x ""y"""\n'
        "2026-02,Office and Print,TON,Toner,Ricoh,3,20,,Actual,\n"
    )
    dataset, categories, targets = _open()
    import_csv_text(text, dataset, category_store=categories, targets=targets)
    exported = records_to_csv(dataset.records)

    other, categories, targets = _open()
    import_csv_text(exported, other, category_store=categories, targets=targets)
    assert [r.to_dict() for r in other.records] == [r.to_dict() for r in dataset.records]
    assert other[0].total_amount_usd == pytest.approx(12345.67)
    assert other[0].notes == 'x "y"'
