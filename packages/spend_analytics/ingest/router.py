# ruff: noqa: I001
"""Upload routing: raw CSV text → Generic / Izvoz import or SAP wizard.

:func:`import_csv_text` is the single entry point for an uploaded file. Files
detected as SAP exports are not imported directly; the caller receives a
fresh :class:`~spend_analytics.workflows.sap_wizard.WizardState` to drive.
Generic and Izvoz files are normalized and applied to the dataset at once,
either replacing it or appended through the duplicate check.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..categorize import CategoryMappingStore
from ..dataset import BudgetTargets, SpendDataset
from ..detect import SourceFormat, detect_format
from ..logging_setup import get_logger
from ..normalizers import ImportRefused, Issue, require_records
from ..records import CanonicalRecord
from ..workflows.sap_wizard import WizardState, start_wizard
from .adapters import generic_csv, izvoz_csv
from .utils import read_csv_text

_logger = get_logger("spend_analytics.ingest.router")


@dataclass(slots=True)
class ImportResult:
    source_format: SourceFormat
    records: list[CanonicalRecord]
    added: int
    skipped: int = 0
    replaced: bool = False
    issues: list[Issue] = field(default_factory=list)
    targets_year: str | None = None
    targets: dict[str, float] = field(default_factory=dict)


def import_csv_text(
    text: str,
    dataset: SpendDataset,
    *,
    append: bool = False,
    category_store: CategoryMappingStore,
    targets: BudgetTargets | None = None,
) -> ImportResult | WizardState:
    """Detect the format of ``text`` and import it or open the SAP wizard.

    Parameters
    ----------
    text:
        Raw CSV text (UTF-8, optional BOM).
    dataset:
        Collection to replace (``append=False``) or merge into.
    category_store:
        Saved category-value mappings used to resolve source categories.
    targets:
        Budget targets updated by Izvoz files. When ``None`` Izvoz targets are
        reported in the result but not saved.

    Raises
    ------
    ImportRefused
        The file has no header row or no records survive normalization. The
        dataset is left unchanged.
    """

    parsed = read_csv_text(text)
    if not parsed.headers:
        raise ImportRefused("CSV appears to have no header row")

    source_format = detect_format(parsed.headers)
    saved = category_store.load()
    if source_format is SourceFormat.SAP:
        _logger.info("SAP export detected; starting import wizard")
        try:
            return start_wizard(parsed, saved)
        except ValueError as exc:
            raise ImportRefused(str(exc)) from exc

    issues: list[Issue] = []
    if parsed.error_count:
        issues.append(Issue("warn", f"CSV parsing warnings: {parsed.error_count} issues found"))

    targets_year: str | None = None
    izvoz_targets: dict[str, float] = {}
    if source_format is SourceFormat.IZVOZ:
        izvoz = izvoz_csv.to_records(parsed, saved)
        if not izvoz.records:
            raise ImportRefused("No data to import after processing")
        records = izvoz.records
        issues.extend(izvoz.issues)
        izvoz_targets = izvoz.targets
        if izvoz_targets:
            targets_year = izvoz_csv.TARGET_YEAR
    else:
        result = require_records(generic_csv.to_records(parsed, saved))
        records = result.records
        issues.extend(result.issues)

    if append:
        merged = dataset.merge(records)
        added, skipped, persisted = merged.added_count, merged.skipped, merged.persisted
        if skipped:
            issues.append(Issue("info", f"{skipped} duplicates skipped"))
    else:
        persisted = dataset.replace(records)
        added, skipped = len(records), 0
    if not persisted:
        issues.append(Issue("warn", "Failed to save data; changes are kept in memory only"))

    if targets_year and targets is not None:
        if not targets.update(targets_year, izvoz_targets):
            issues.append(Issue("warn", "Failed to save budget targets"))

    _logger.info(
        "Imported %s file: %d record(s) %s, %d skipped",
        source_format.value,
        added,
        "added" if append else "loaded",
        skipped,
    )
    return ImportResult(
        source_format=source_format,
        records=records,
        added=added,
        skipped=skipped,
        replaced=not append,
        issues=issues,
        targets_year=targets_year,
        targets=izvoz_targets,
    )


__all__ = ["ImportResult", "import_csv_text"]
