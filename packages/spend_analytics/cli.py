# ruff: noqa: I001
"""CLI for the ``spend_analytics`` package.

Command handlers (``cmd_*``) hold the logic and return a process exit code;
the Typer commands below only parse options and delegate. Environment
variables (``SPEND_DATABASE_URL``, ``SPEND_ANALYTICS_LOG_LEVEL``) are loaded
from a local ``.env`` with ``python-dotenv`` before any command runs; explicit
options win over the environment.
"""

from __future__ import annotations

import csv
import json
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from prompt_toolkit import PromptSession
from typer.models import ArgumentInfo, OptionInfo

from .categorize import CategoryMappingStore
from .dataset import BudgetTargets, SpendDataset
from .export import TEMPLATE_FILENAME, template_csv, write_csv
from .filters import (
    DatasetFilters,
    actual_spend_by_year_category,
    apply_filters,
    summarize,
)
from .findings import analyze_spend_opportunities
from .ingest.router import ImportResult, import_csv_text
from .ingest.utils import load_csv_file, read_csv_text
from .logging_setup import configure_logging
from .normalizers import ImportRefused, Issue
from .persistence import SqlKeyValueStore
from .records import CATEGORIES
from .workflows.interactive_import import run_sap_wizard
from .workflows.sap_wizard import WizardOutcome, start_wizard


# ---- Small module-level helpers used by command handlers ---------------------


class _Stores:
    """Dataset, targets and category mappings sharing one key-value store."""

    def __init__(self, database_url: str | None) -> None:
        store = SqlKeyValueStore(database_url=database_url)
        self.dataset = SpendDataset(store)
        self.dataset.load()
        self.targets = BudgetTargets(store)
        self.categories = CategoryMappingStore(store)


def _print_issues(issues: list[Issue]) -> None:
    for issue in issues:
        stream = sys.stderr if issue.severity != "info" else sys.stdout
        print(f"[{issue.severity}] {issue.message}", file=stream)


def _fmt_eur(value: float) -> str:
    return f"€{value:,.2f}"


def _report_outcome(outcome: WizardOutcome | None) -> int:
    if outcome is None:
        print("Import canceled.")
        return 1
    msg = f"SAP import complete: {outcome.added} records added"
    if outcome.skipped:
        msg += f" ({outcome.skipped} duplicates skipped)"
    print(msg)
    _print_issues(outcome.issues)
    return 0


def _report_result(result: ImportResult) -> int:
    if result.replaced:
        print(f"Loaded {result.added} records successfully ({result.source_format.value})")
    else:
        msg = f"Added {result.added} new records ({result.source_format.value})"
        if result.skipped:
            msg += f"; {result.skipped} duplicates skipped"
        print(msg)
    if result.targets_year:
        print(f"Budget targets for {result.targets_year} imported")
    _print_issues(result.issues)
    return 0


# ---- Command handlers ---------------------------------------------------------


def cmd_import_csv(
    csv_path: str | Path,
    *,
    append: bool = False,
    database_url: str | None = None,
    session: PromptSession | None = None,
) -> int:
    """Import a Generic or Izvoz CSV; SAP exports open the interactive wizard."""

    try:
        text = load_csv_file(csv_path)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: failed to read CSV: {e}", file=sys.stderr)
        return 1

    stores = _Stores(database_url)
    try:
        result = import_csv_text(
            text,
            stores.dataset,
            append=append,
            category_store=stores.categories,
            targets=stores.targets,
        )
    except (ImportRefused, csv.Error) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if isinstance(result, ImportResult):
        return _report_result(result)

    print("SAP export detected; starting the import wizard.")
    try:
        outcome = run_sap_wizard(
            result, stores.dataset, stores.categories, session=session, echo=print
        )
    except ImportRefused as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return _report_outcome(outcome)


def cmd_sap_import(
    csv_path: str | Path,
    *,
    database_url: str | None = None,
    session: PromptSession | None = None,
) -> int:
    """Run the SAP wizard on any CSV, whatever its detected format."""

    try:
        parsed = read_csv_text(load_csv_file(csv_path))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        print(f"Error: failed to read CSV: {e}", file=sys.stderr)
        return 1

    stores = _Stores(database_url)
    try:
        state = start_wizard(parsed, stores.categories.load())
        outcome = run_sap_wizard(
            state, stores.dataset, stores.categories, session=session, echo=print
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return _report_outcome(outcome)


def cmd_export(
    output: str | Path,
    *,
    year: int | None = None,
    month: int | None = None,
    category: str | None = None,
    database_url: str | None = None,
) -> int:
    stores = _Stores(database_url)
    filters = DatasetFilters(year=year, month=month, category=category)
    records = apply_filters(stores.dataset.records, filters)
    if not records:
        print("Error: no data to export", file=sys.stderr)
        return 1
    try:
        count = write_csv(records, output)
    except OSError as e:
        print(f"Error: failed to write CSV: {e}", file=sys.stderr)
        return 1
    print(f"Exported {count} records to {output}")
    return 0


def cmd_template(output: str | Path | None = None) -> int:
    text = template_csv()
    if output is None:
        sys.stdout.write(text)
        return 0
    try:
        Path(output).write_text(text, encoding="utf-8", newline="")
    except OSError as e:
        print(f"Error: failed to write template: {e}", file=sys.stderr)
        return 1
    print(f"Template written to {output}")
    return 0


def cmd_summary(*, database_url: str | None = None) -> int:
    stores = _Stores(database_url)
    records = stores.dataset.records
    if not records:
        print("No data loaded. Import a CSV file to get started.")
        return 0
    s = summarize(records)
    print(f"Total records: {s.record_count}")
    print(f"Date range: {s.first_date or '--'} to {s.last_date or '--'}")
    print(f"Categories: {s.category_count}")
    print(f"Suppliers: {s.supplier_count}")
    print(f"Requesters: {s.requester_count}")
    print(f"Total actual spend: {_fmt_eur(s.total_actual_spend)}")
    return 0


def cmd_findings(*, as_json: bool = False, database_url: str | None = None) -> int:
    stores = _Stores(database_url)
    findings = analyze_spend_opportunities(stores.dataset.records)
    if as_json:
        print(json.dumps([f.model_dump(mode="json") for f in findings], indent=2))
        return 0
    if not findings:
        print("No spend opportunities found.")
        return 0
    for f in findings:
        print(f"[{f.priority}] {f.title} ({f.category}): ~{_fmt_eur(f.estimated_savings)}")
        print(f"    {f.detail}")
        if f.affected:
            print(f"    Affected: {', '.join(f.affected)}")
        print(f"    Action: {f.action}")
    return 0


def cmd_clear(*, database_url: str | None = None) -> int:
    stores = _Stores(database_url)
    count = len(stores.dataset)
    if not stores.dataset.clear():
        print("Error: failed to clear stored data", file=sys.stderr)
        return 1
    print(f"All data cleared ({count} records)")
    return 0


def cmd_add_record(fields: dict[str, object], *, database_url: str | None = None) -> int:
    stores = _Stores(database_url)
    try:
        record = stores.dataset.add_record(fields)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Entry added (#{record.record_index}, total {_fmt_eur(record.total_amount_usd)})")
    return 0


def cmd_delete_record(index: int, *, database_url: str | None = None) -> int:
    stores = _Stores(database_url)
    if not 0 <= index < len(stores.dataset):
        print(f"Error: no record at index {index}", file=sys.stderr)
        return 1
    record = stores.dataset.delete_record(index)
    print(f"Entry deleted ({record.sku or record.item_description or 'record'})")
    return 0


def cmd_targets_show(*, database_url: str | None = None) -> int:
    stores = _Stores(database_url)
    years = stores.targets.years()
    if not years:
        print("No budget years defined.")
        return 0
    actual = actual_spend_by_year_category(stores.dataset.records)
    for year in years:
        print(f"== {year} ==")
        for cat in CATEGORIES:
            target = stores.targets.get(year, cat)
            spent = actual.get(year, {}).get(cat, 0.0)
            if target is None:
                print(f"  {cat}: no target (actual {_fmt_eur(spent)})")
                continue
            used = f"{spent / target * 100:.1f}%" if target > 0 else "--"
            print(f"  {cat}: {_fmt_eur(target)} (actual {_fmt_eur(spent)}, {used} used)")
        total = stores.targets.year_total(year)
        print(f"  TOTAL: {_fmt_eur(total) if total is not None else '--'}")
    return 0


def cmd_targets_set(
    year: str,
    category: str,
    value_k: float | None,
    *,
    database_url: str | None = None,
) -> int:
    """Set a target in thousands of EUR; ``None`` removes it."""

    stores = _Stores(database_url)
    try:
        stores.targets.set(year, category, None if value_k is None else value_k * 1000)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if value_k is None:
        print(f"Target removed for {category} in {year}")
    else:
        print(f"Target for {category} in {year} set to {_fmt_eur(value_k * 1000)}")
    return 0


def cmd_targets_add_year(year: str, *, database_url: str | None = None) -> int:
    stores = _Stores(database_url)
    try:
        key = stores.targets.add_year(year)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Budget year {key} added")
    return 0


def cmd_targets_remove_year(year: str, *, database_url: str | None = None) -> int:
    stores = _Stores(database_url)
    if not stores.targets.remove_year(year):
        print(f"Error: no budget targets for {year}", file=sys.stderr)
        return 1
    print(f"Budget targets for {year} removed")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import procurement CSV exports (Generic, Izvoz, SAP S4 HANA) into a local "
        "indirect-spend dataset. Loads settings from a local .env before running."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
CSV_PATH_ARGUMENT: ArgumentInfo = typer.Argument(
    ..., help="Path to the CSV file", dir_okay=False, file_okay=True
)
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    "--database-url", help="Override SPEND_DATABASE_URL (falls back to env var)."
)


@app.command("import-csv")
def import_csv_cmd(
    csv_path: Annotated[Path, CSV_PATH_ARGUMENT],
    *,
    append: bool = typer.Option(False, help="Append to the dataset, skipping duplicates."),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Import a CSV (Generic or Izvoz); SAP exports open the wizard."""

    raise typer.Exit(cmd_import_csv(csv_path, append=append, database_url=database_url))


@app.command("sap-import")
def sap_import_cmd(
    csv_path: Annotated[Path, CSV_PATH_ARGUMENT],
    *,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Import a CSV through the interactive SAP wizard."""

    raise typer.Exit(cmd_sap_import(csv_path, database_url=database_url))


@app.command("export")
def export_cmd(
    output: Annotated[Path, typer.Argument(help="Destination CSV path")],
    *,
    year: int | None = typer.Option(None, help="Only records of this year."),
    month: int | None = typer.Option(None, min=1, max=12, help="Only records of this month."),
    category: str | None = typer.Option(None, help="Only records of this category."),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Export all (or filtered) records to CSV."""

    raise typer.Exit(
        cmd_export(output, year=year, month=month, category=category, database_url=database_url)
    )


@app.command("template")
def template_cmd(
    output: Annotated[
        Path | None, typer.Argument(help=f"Destination path (e.g. {TEMPLATE_FILENAME})")
    ] = None,
) -> None:
    """Write the blank import template (stdout when no path is given)."""

    raise typer.Exit(cmd_template(output))


@app.command("summary")
def summary_cmd(database_url: Annotated[str | None, DATABASE_URL_OPTION] = None) -> None:
    """Show record count, date range and total actual spend."""

    raise typer.Exit(cmd_summary(database_url=database_url))


@app.command("findings")
def findings_cmd(
    *,
    as_json: bool = typer.Option(False, "--json", help="Print findings as JSON."),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """List spend-saving opportunities found in the dataset."""

    raise typer.Exit(cmd_findings(as_json=as_json, database_url=database_url))


@app.command("clear")
def clear_cmd(
    *,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Permanently delete all records."""

    if not yes and not typer.confirm("This will permanently delete all loaded data. Continue?"):
        raise typer.Exit(1)
    raise typer.Exit(cmd_clear(database_url=database_url))


@app.command("add-record")
def add_record_cmd(
    *,
    date: str = typer.Option(..., help="Month (YYYY-MM) or a full date."),
    category: str = typer.Option(..., help="One of the spend categories."),
    sku: str = typer.Option(..., help="Material number / SKU."),
    description: str = typer.Option("", help="Item description."),
    supplier: str = typer.Option("", help="Supplier name."),
    ordered_by: str = typer.Option("", help="Requester."),
    department: str = typer.Option("", help="Department."),
    cost_center: str = typer.Option("", help="Cost center."),
    po_number: str = typer.Option("", help="Purchase order number."),
    sub_category: str = typer.Option("", help="Sub-category."),
    quantity: str = typer.Option("0", help="Quantity."),
    unit_price: str = typer.Option("0", help="Unit price (EUR)."),
    total: str = typer.Option("0", help="Total (EUR); computed from qty x price when 0."),
    budget_type: str = typer.Option("Actual", help="Actual, Baseline or Target."),
    notes: str = typer.Option("", help="Free-text notes."),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Add one record manually."""

    fields: dict[str, object] = {
        "date": date,
        "cost_category": category,
        "sub_category": sub_category,
        "sku": sku,
        "item_description": description,
        "supplier": supplier,
        "ordered_by": ordered_by,
        "department": department,
        "cost_center": cost_center,
        "po_number": po_number,
        "quantity": quantity,
        "unit_price_usd": unit_price,
        "total_amount_usd": total,
        "budget_type": budget_type,
        "notes": notes,
    }
    raise typer.Exit(cmd_add_record(fields, database_url=database_url))


@app.command("delete-record")
def delete_record_cmd(
    index: Annotated[int, typer.Argument(help="Record index as shown by exports.")],
    *,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Delete one record by index."""

    raise typer.Exit(cmd_delete_record(index, database_url=database_url))


@app.command("targets-show")
def targets_show_cmd(database_url: Annotated[str | None, DATABASE_URL_OPTION] = None) -> None:
    """Show budget targets with actual spend per category."""

    raise typer.Exit(cmd_targets_show(database_url=database_url))


@app.command("targets-set")
def targets_set_cmd(
    year: Annotated[str, typer.Argument(help="Budget year, e.g. 2026")],
    category: Annotated[str, typer.Argument(help="Spend category")],
    value: Annotated[float | None, typer.Argument(help="Target in k EUR")] = None,
    *,
    remove: bool = typer.Option(False, "--remove", help="Remove the target instead."),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Set (or remove) the target of one category and year."""

    if value is None and not remove:
        print("Error: provide a value in k EUR or --remove", file=sys.stderr)
        raise typer.Exit(1)
    raise typer.Exit(
        cmd_targets_set(year, category, None if remove else value, database_url=database_url)
    )


@app.command("targets-add-year")
def targets_add_year_cmd(
    year: Annotated[str, typer.Argument(help="4-digit year between 2000 and 2099")],
    *,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Add an empty budget year."""

    raise typer.Exit(cmd_targets_add_year(year, database_url=database_url))


@app.command("targets-remove-year")
def targets_remove_year_cmd(
    year: Annotated[str, typer.Argument(help="Budget year to remove")],
    *,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Remove all budget targets of a year."""

    raise typer.Exit(cmd_targets_remove_year(year, database_url=database_url))


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, help="Log level (falls back to SPEND_ANALYTICS_LOG_LEVEL, then WARNING)."
    ),
) -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    app()
