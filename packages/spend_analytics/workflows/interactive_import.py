"""Terminal driver for the SAP import wizard.

Walks a :class:`~spend_analytics.workflows.sap_wizard.WizardState` through
its steps using the prompts in :mod:`spend_analytics.term_ui` and commits the
import when the user confirms. Output goes through ``echo`` so the CLI can
route it to ``typer.echo``.
"""

from __future__ import annotations

from collections.abc import Callable

from prompt_toolkit import PromptSession

from .. import term_ui
from ..categorize import CategoryMappingStore
from ..dataset import SpendDataset
from ..field_map import REFERENCE_LABELS, SKIP
from ..records import FIELD_LABELS
from .sap_wizard import (
    WizardOutcome,
    WizardState,
    category_values,
    execute_import,
    go_next,
    set_category,
    set_column_target,
    set_number_format,
)


def _describe_detection(state: WizardState, echo: Callable[[str], None]) -> None:
    echo(f"Rows: {len(state.rows)}  Columns: {len(state.headers)}")
    if state.sap_detected:
        echo("SAP S4 HANA export detected.")
    else:
        echo("No SAP field names recognised; map the columns manually.")
    echo(f"Detected number format: {state.detected_number_format}")
    if state.parse_error_count:
        echo(f"Warning: {state.parse_error_count} malformed CSV row(s).")


def _describe_preview(state: WizardState, echo: Callable[[str], None]) -> None:
    preview = state.preview
    if preview is None:
        return
    s = preview.stats
    echo(
        f"Rows: {s.row_count}  Records: {s.record_count}  Total: {s.total_amount:,.2f} EUR  "
        f"Suppliers: {s.unique_suppliers}  SKUs: {s.unique_skus}  "
        f"Dates: {s.first_date or '--'} to {s.last_date or '--'}"
    )
    for record in preview.records:
        echo(
            f"  {record.date:7}  {record.cost_category[:24]:24}  {record.sku[:12]:12}  "
            f"{record.supplier[:20]:20}  {record.total_amount_usd:>12,.2f}"
        )
    for issue in preview.issues:
        echo(f"[{issue.severity}] {issue.message}")


def run_sap_wizard(
    state: WizardState,
    dataset: SpendDataset,
    category_store: CategoryMappingStore,
    *,
    session: PromptSession | None = None,
    echo: Callable[[str], None] = print,
) -> WizardOutcome | None:
    """Drive the wizard interactively; ``None`` when the user cancels.

    Raises :class:`~spend_analytics.normalizers.ImportRefused` when the
    confirmed settings produce no records.
    """

    echo(f"== {state.title} ==")
    _describe_detection(state, echo)
    state = go_next(state)

    echo(f"== {state.title} ==")
    for ref, label in REFERENCE_LABELS.items():
        echo(f"  {ref}: {label}")
    for column in state.headers:
        current = state.column_mapping.get(column, SKIP)
        target = term_ui.select_column_target(column, default=current, session=session)
        if target is None:
            return None
        if target != current:
            state = set_column_target(state, column, target)
    state = go_next(state)

    echo(f"== {state.title} ==")
    if state.category_column is None:
        echo(
            f"No column is mapped to {FIELD_LABELS['cost_category']}; all entries will be "
            "assigned to Miscellaneous Indirect Costs."
        )
    for value, count in category_values(state):
        current = state.category_mapping.get(value, "")
        echo(f"{value} ({count} rows)")
        chosen = term_ui.select_category(value, default=current, session=session)
        if chosen is None:
            return None
        if chosen != current:
            state = set_category(state, value, chosen)
    state = go_next(state)

    while True:
        echo(f"== {state.title} ==")
        _describe_preview(state, echo)
        fmt = term_ui.select_number_format(default=state.number_format, session=session)
        if fmt is None:
            return None
        if fmt == state.number_format:
            break
        state = set_number_format(state, fmt)

    if not term_ui.confirm("Import these records? [yes/no] ", session=session):
        return None
    return execute_import(state, dataset, category_store)


__all__ = ["run_sap_wizard"]
