"""Column → canonical field mapping for imported CSV headers.

Two modes are supported:

- Static-table mode (SAP): each trimmed header is looked up verbatim in
  :data:`SAP_FIELD_MAP`, a synonym table of SAP S4 HANA field names (technical
  names plus English/German labels across export variants). The first header
  mapped to a canonical field wins; reference-only targets (currency, PO item,
  company code) may be shared by several columns.
- Identity mode (Generic/Izvoz): headers already equal canonical field names.

Column mappings are plain ``dict[str, str]`` from source header to a
canonical field, a reference-only target, or :data:`SKIP`.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from .parsing import NumberFormat
from .records import FIELD_ORDER

SKIP = "_skip"
REF_CURRENCY = "_currency"
REF_PO_ITEM = "_po_item"
REF_COMPANY_CODE = "_company_code"

REFERENCE_TARGETS: frozenset[str] = frozenset({REF_CURRENCY, REF_PO_ITEM, REF_COMPANY_CODE})

REFERENCE_LABELS: dict[str, str] = {
    REF_CURRENCY: "Currency (for reference)",
    REF_PO_ITEM: "PO Item (for reference)",
    REF_COMPANY_CODE: "Company Code (for reference)",
    SKIP: "-- Skip / Ignore --",
}

# Canonical fields whose cells are sampled for EU/US number detection.
NUMERIC_DETECTION_FIELDS: frozenset[str] = frozenset(
    {"quantity", "unit_price_usd", "total_amount_usd"}
)

NUMBER_SAMPLE_ROWS = 50


@dataclass(frozen=True, slots=True)
class SapField:
    target: str
    label: str


def _entries(target: str, label: str, *names: str) -> dict[str, SapField]:
    return {n: SapField(target, label) for n in names}


SAP_FIELD_MAP: dict[str, SapField] = {
    **_entries(
        "po_number",
        "PO Number",
        "EBELN",
        "Purchasing Document",
        "Purchase Order",
        "PO Number",
        "Einkaufsbeleg",
        "Einkaufsbel.",
    ),
    **_entries(
        "sku",
        "Material Number / SKU",
        "MATNR",
        "Material",
        "Material Number",
        "Materialnr.",
        "Materialnummer",
    ),
    **_entries(
        "item_description",
        "Description",
        "TXZ01",
        "Short Text",
        "Description",
        "Material Description",
        "Item Text",
        "Kurztext",
        "Bezeichnung",
        "Material description",
    ),
    **_entries("supplier", "Vendor Number", "LIFNR"),
    **_entries("supplier", "Vendor Name", "NAME1", "Vendor Name", "Name 1", "Vendor name"),
    **_entries("supplier", "Vendor", "Vendor", "Lieferant", "Kreditor"),
    **_entries("supplier", "Supplier", "Supplier"),
    **_entries("supplier", "Supplier Name", "Supplier Name"),
    **_entries(
        "quantity",
        "Quantity",
        "MENGE",
        "PO Quantity",
        "Order Quantity",
        "Quantity",
        "Bestellmenge",
        "Qty",
        "PO quantity",
    ),
    **_entries(
        "unit_price_usd",
        "Net Price",
        "NETPR",
        "Net Price",
        "Price",
        "Unit Price",
        "Nettopreis",
        "Net price",
    ),
    **_entries(
        "total_amount_usd",
        "Net Value",
        "NETWR",
        "Net Value",
        "Net Order Value",
        "Net order value",
        "Amount",
        "Total Amount",
        "Nettowert",
        "Nettobest.wert",
        "Value",
        "Net order val.",
    ),
    **_entries(
        "cost_center",
        "Cost Center",
        "KOSTL",
        "Cost Center",
        "CostCenter",
        "Cost center",
        "Kostenstelle",
    ),
    **_entries("date", "PO Date", "BEDAT", "PO Date"),
    **_entries("date", "Document Date", "Document Date", "Belegdatum", "Doc. Date"),
    **_entries("date", "Posting Date", "Posting Date"),
    **_entries("date", "Created On", "Created On"),
    **_entries("date", "Order Date", "Order Date"),
    **_entries("date", "Delivery Date", "Delivery Date"),
    **_entries("ordered_by", "Created By", "ERNAM", "Created By", "Created by", "Angelegt von"),
    **_entries(
        "ordered_by", "Requisitioner", "Requisitioner", "Anforderer", "Requisitioner name"
    ),
    **_entries(
        "cost_category",
        "Material Group",
        "MATKL",
        "Material Group",
        "Material Grp",
        "Mat. Group",
        "Warengruppe",
        "Commodity",
    ),
    **_entries(
        "department", "Purchasing Group", "Purchasing Group", "Purch. Group", "Einkaufsgruppe"
    ),
    **_entries("department", "Plant", "WERKS", "Plant", "Werk"),
    **_entries(
        REF_CURRENCY,
        "Currency",
        "WAERS",
        "Currency",
        "Währung",
        "Doc. Currency",
        "Document Currency",
    ),
    **_entries(REF_PO_ITEM, "PO Item", "EBELP", "Item", "PO Item"),
    **_entries(REF_COMPANY_CODE, "Company Code", "BUKRS", "Company Code", "Buchungskreis"),
    **_entries("sub_category", "GL Account", "SAKTO", "G/L Account", "GL Account", "Sachkonto"),
}


def is_valid_target(target: str) -> bool:
    return target in FIELD_ORDER or target in REFERENCE_TARGETS or target == SKIP


def count_sap_headers(headers: Iterable[str]) -> int:
    """Return how many trimmed headers appear verbatim in the synonym table."""

    return sum(1 for h in headers if h.strip() in SAP_FIELD_MAP)


def auto_map_columns(headers: Sequence[str]) -> dict[str, str]:
    """Seed a column mapping from :data:`SAP_FIELD_MAP`.

    Headers are matched after trimming but case-sensitively. Unknown headers
    are left out of the result (callers treat them as skipped). When two
    headers resolve to the same canonical field the first one keeps it;
    reference-only targets are exempt from that rule.
    """

    mapping: dict[str, str] = {}
    taken: set[str] = set()
    for header in headers:
        entry = SAP_FIELD_MAP.get(header.strip())
        if entry is None:
            continue
        target = entry.target
        if target in REFERENCE_TARGETS:
            mapping[header] = target
            continue
        if target in taken:
            continue
        mapping[header] = target
        taken.add(target)
    return mapping


def identity_mapping(headers: Sequence[str]) -> dict[str, str]:
    """Map headers that already carry canonical field names onto themselves."""

    canonical = set(FIELD_ORDER)
    mapping: dict[str, str] = {}
    taken: set[str] = set()
    for header in headers:
        name = header.strip()
        if name in canonical and name not in taken:
            mapping[header] = name
            taken.add(name)
    return mapping


def override_column(mapping: Mapping[str, str], column: str, target: str) -> dict[str, str]:
    """Return a copy of ``mapping`` with ``column`` pointed at ``target``.

    Raises ``ValueError`` when ``target`` is not a canonical field, a
    reference-only target, or :data:`SKIP`.
    """

    if not is_valid_target(target):
        raise ValueError(f"Unsupported mapping target: {target!r}")
    updated = dict(mapping)
    updated[column] = target
    return updated


def reverse_mapping(mapping: Mapping[str, str]) -> dict[str, str]:
    """Return ``canonical field → source column`` for writable targets.

    When a manual override leaves two columns on the same field, the later
    column in mapping order wins, matching how the mapping is applied.
    """

    reverse: dict[str, str] = {}
    for column, target in mapping.items():
        if target and not target.startswith("_"):
            reverse[target] = column
    return reverse


def column_for(mapping: Mapping[str, str], target: str) -> str | None:
    return reverse_mapping(mapping).get(target)


# ---------------------------------------------------------------------------
# Number format sub-detection (SAP path)
# ---------------------------------------------------------------------------

_EU_GROUPED_RE = re.compile(r"\d+\.\d{3},\d")
_US_GROUPED_RE = re.compile(r"\d+,\d{3}\.\d")
_COMMA_CENTS_RE = re.compile(r",\d{2}$")
_DOT_CENTS_RE = re.compile(r"\.\d{2}$")


def _vote(value: str) -> str | None:
    if _EU_GROUPED_RE.search(value):
        return "EU"
    if _US_GROUPED_RE.search(value):
        return "US"
    if _COMMA_CENTS_RE.search(value) and not _DOT_CENTS_RE.search(value):
        return "EU"
    if _DOT_CENTS_RE.search(value) and not _COMMA_CENTS_RE.search(value):
        return "US"
    return None


def detect_number_format(
    rows: Sequence[Mapping[str, str]],
    mapping: Mapping[str, str],
    *,
    sample_rows: int = NUMBER_SAMPLE_ROWS,
) -> NumberFormat:
    """Infer EU vs US number convention from the numeric columns of ``rows``.

    Samples the first ``sample_rows`` rows over columns mapped to quantity,
    unit price or total. EU is chosen only with strictly more EU-looking cells
    than US-looking ones.
    """

    numeric_columns = [c for c, t in mapping.items() if t in NUMERIC_DETECTION_FIELDS]
    eu = us = 0
    for row in rows[:sample_rows]:
        for column in numeric_columns:
            vote = _vote(str(row.get(column) or ""))
            if vote == "EU":
                eu += 1
            elif vote == "US":
                us += 1
    return "EU" if eu > us else "US"


__all__ = [
    "SKIP",
    "REF_CURRENCY",
    "REF_PO_ITEM",
    "REF_COMPANY_CODE",
    "REFERENCE_TARGETS",
    "REFERENCE_LABELS",
    "SapField",
    "SAP_FIELD_MAP",
    "is_valid_target",
    "count_sap_headers",
    "auto_map_columns",
    "identity_mapping",
    "override_column",
    "reverse_mapping",
    "column_for",
    "detect_number_format",
]
