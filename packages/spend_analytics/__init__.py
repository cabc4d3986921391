"""Public interface for the ``spend_analytics`` package.

Re-exports the record model, the dataset/target stores and the import entry
points as the stable import surface. There is no runtime logic here, only
symbol re-exports.
"""

from .dataset import BudgetTargets, SpendDataset
from .detect import SourceFormat, detect_format
from .export import records_to_csv, template_csv
from .findings import Finding, analyze_spend_opportunities
from .ingest.router import ImportResult, import_csv_text
from .normalizers import ImportRefused, Issue, normalize_rows
from .persistence import SqlKeyValueStore
from .records import CATEGORIES, CanonicalRecord

__all__ = [
    # Records
    "CATEGORIES",
    "CanonicalRecord",
    # Stores
    "SpendDataset",
    "BudgetTargets",
    "SqlKeyValueStore",
    # Import / export
    "SourceFormat",
    "detect_format",
    "import_csv_text",
    "ImportResult",
    "ImportRefused",
    "Issue",
    "normalize_rows",
    "records_to_csv",
    "template_csv",
    # Analysis
    "Finding",
    "analyze_spend_opportunities",
]
