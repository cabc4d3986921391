import json

import pytest
from typer.testing import CliRunner

from spend_analytics import cli
from spend_analytics.persistence import SqlKeyValueStore
from spend_analytics.dataset import BudgetTargets, SpendDataset
from spend_analytics.workflows.sap_wizard import WizardOutcome

runner = CliRunner()

GENERIC_CSV = (
    "date,cost_category,sku,supplier,ordered_by,quantity,unit_price_usd,total_amount_usd,po_number\n"
    "2026-01-10,Office and Print,P-1,Acme,Ana,2,10,,PO-1\n"
    "2026-02-11,Professional Services,C-1,Deloitte,Ben,1,5000,5000,PO-2\n"
)


@pytest.fixture
def generic_file(tmp_path):
    path = tmp_path / "spend.csv"
    path.write_text(GENERIC_CSV, encoding="utf-8")
    return path


def _dataset() -> SpendDataset:
    ds = SpendDataset(SqlKeyValueStore())
    ds.load()
    return ds


def test_template_to_stdout_and_file(tmp_path):
    result = runner.invoke(cli.app, ["template"])
    assert result.exit_code == 0
    assert result.output.startswith("date,cost_category,sub_category,sku")

    out = tmp_path / "t.csv"
    result = runner.invoke(cli.app, ["template", str(out)])
    assert result.exit_code == 0
    assert out.read_text(encoding="utf-8").count("\n") == 2


def test_import_summary_export_roundtrip(generic_file, tmp_path):
    result = runner.invoke(cli.app, ["import-csv", str(generic_file)])
    assert result.exit_code == 0, result.output
    assert "Loaded 2 records successfully (generic)" in result.output

    result = runner.invoke(cli.app, ["summary"])
    assert result.exit_code == 0
    assert "Total records: 2" in result.output
    assert "Date range: 2026-01 to 2026-02" in result.output
    assert "Total actual spend: €5,020.00" in result.output

    out = tmp_path / "export.csv"
    result = runner.invoke(cli.app, ["export", str(out), "--month", "2"])
    assert result.exit_code == 0
    assert "Exported 1 records" in result.output
    assert "C-1" in out.read_text(encoding="utf-8")

    result = runner.invoke(cli.app, ["export", str(out), "--year", "1999"])
    assert result.exit_code == 1
    assert "no data to export" in result.output


def test_import_append_reports_duplicates(generic_file):
    runner.invoke(cli.app, ["import-csv", str(generic_file)])
    result = runner.invoke(cli.app, ["import-csv", str(generic_file), "--append"])
    assert result.exit_code == 0
    assert "Added 0 new records (generic); 2 duplicates skipped" in result.output
    assert len(_dataset()) == 2


def test_import_errors_exit_non_zero(tmp_path):
    result = runner.invoke(cli.app, ["import-csv", str(tmp_path / "missing.csv")])
    assert result.exit_code == 1
    assert "Error: failed to read CSV" in result.output

    empty = tmp_path / "empty.csv"
    empty.write_text("date,sku\n", encoding="utf-8")
    result = runner.invoke(cli.app, ["import-csv", str(empty)])
    assert result.exit_code == 1
    assert "Error: No data to import after processing" in result.output


def test_sap_file_hands_over_to_wizard(tmp_path, monkeypatch):
    path = tmp_path / "sap.csv"
    path.write_text("EBELN,MATNR,NETWR\n4500000001,M-1,10.00\n", encoding="utf-8")
    seen = {}

    def fake_wizard(state, dataset, categories, *, session=None, echo=print):
        seen["headers"] = state.headers
        return WizardOutcome(added=1, skipped=2)

    monkeypatch.setattr(cli, "run_sap_wizard", fake_wizard)
    result = runner.invoke(cli.app, ["import-csv", str(path)])
    assert result.exit_code == 0
    assert seen["headers"] == ("EBELN", "MATNR", "NETWR")
    assert "SAP import complete: 1 records added (2 duplicates skipped)" in result.output

    monkeypatch.setattr(cli, "run_sap_wizard", lambda *a, **k: None)
    result = runner.invoke(cli.app, ["sap-import", str(path)])
    assert result.exit_code == 1
    assert "Import canceled." in result.output


def test_findings_json(generic_file):
    runner.invoke(cli.app, ["import-csv", str(generic_file)])
    result = runner.invoke(cli.app, ["findings", "--json"])
    assert result.exit_code == 0
    assert isinstance(json.loads(result.output), list)


def test_add_delete_and_clear_records():
    result = runner.invoke(
        cli.app,
        ["add-record", "--date", "2026-03-01", "--category", "Office and Print", "--sku", "X-1", "--quantity", "3", "--unit-price", "4"],
    )
    assert result.exit_code == 0, result.output
    assert "total €12.00" in result.output

    result = runner.invoke(cli.app, ["add-record", "--date", "2026-03", "--category", "Groceries", "--sku", "X"])
    assert result.exit_code == 1
    assert "Error: Unknown category" in result.output

    result = runner.invoke(cli.app, ["delete-record", "5"])
    assert result.exit_code == 1
    result = runner.invoke(cli.app, ["delete-record", "0"])
    assert result.exit_code == 0
    assert len(_dataset()) == 0

    runner.invoke(cli.app, ["add-record", "--date", "2026-03", "--category", "Office and Print", "--sku", "Y"])
    result = runner.invoke(cli.app, ["clear"], input="n\n")
    assert result.exit_code == 1
    assert len(_dataset()) == 1
    result = runner.invoke(cli.app, ["clear", "--yes"])
    assert result.exit_code == 0
    assert "All data cleared (1 records)" in result.output
    assert len(_dataset()) == 0


def test_clear_reports_store_failure(generic_file, monkeypatch):
    runner.invoke(cli.app, ["import-csv", str(generic_file)])
    monkeypatch.setattr(SqlKeyValueStore, "clear", lambda self, key: False)
    result = runner.invoke(cli.app, ["clear", "--yes"])
    assert result.exit_code == 1
    assert "Error: failed to clear stored data" in result.output
    assert "All data cleared" not in result.output
    assert len(_dataset()) == 2


def test_targets_commands(generic_file):
    runner.invoke(cli.app, ["import-csv", str(generic_file)])
    assert runner.invoke(cli.app, ["targets-add-year", "1999"]).exit_code == 1

    result = runner.invoke(cli.app, ["targets-set", "2026", "Office and Print", "12.5"])
    assert result.exit_code == 0, result.output
    assert BudgetTargets(SqlKeyValueStore()).get("2026", "Office and Print") == 12500.0

    result = runner.invoke(cli.app, ["targets-show"])
    assert "== 2026 ==" in result.output
    assert "Office and Print: €12,500.00 (actual €20.00, 0.2% used)" in result.output
    assert "TOTAL: €12,500.00" in result.output

    result = runner.invoke(cli.app, ["targets-set", "2026", "Office and Print", "--remove"])
    assert result.exit_code == 0
    assert BudgetTargets(SqlKeyValueStore()).get("2026", "Office and Print") is None

    assert runner.invoke(cli.app, ["targets-set", "2026", "Office and Print"]).exit_code == 1
    assert runner.invoke(cli.app, ["targets-remove-year", "2026"]).exit_code == 0
    assert runner.invoke(cli.app, ["targets-remove-year", "2026"]).exit_code == 1


def test_database_url_option_overrides_env(generic_file, tmp_path):
    url = f"sqlite+pysqlite:///{tmp_path / 'alt' / 'spend.db'}"
    result = runner.invoke(cli.app, ["import-csv", str(generic_file), "--database-url", url])
    assert result.exit_code == 0
    assert len(_dataset()) == 0
    alt = SpendDataset(SqlKeyValueStore(database_url=url))
    assert alt.load()
    assert len(alt) == 2
