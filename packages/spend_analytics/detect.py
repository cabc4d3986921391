"""Source format detection from CSV headers.

Detection is a pure function of the header list:

- ``IZVOZ``: any header contains ``"indirect category mapping"``
  (case-insensitive). This marker wins over everything else.
- ``SAP``: at least two trimmed headers match :data:`field_map.SAP_FIELD_MAP`
  exactly.
- ``GENERIC``: everything else.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from enum import StrEnum

from .field_map import count_sap_headers

IZVOZ_MARKER = "indirect category mapping"
SAP_MIN_MATCHES = 2

_HEADER_SPLIT_RE = re.compile(r"[,;\t]")


class SourceFormat(StrEnum):
    GENERIC = "generic"
    IZVOZ = "izvoz"
    SAP = "sap"


def is_izvoz_export(headers: Sequence[str]) -> bool:
    return any(IZVOZ_MARKER in h.strip().lower() for h in headers)


def is_sap_export(headers: Sequence[str]) -> bool:
    return count_sap_headers(headers) >= SAP_MIN_MATCHES


def detect_format(headers: Sequence[str]) -> SourceFormat:
    if is_izvoz_export(headers):
        return SourceFormat.IZVOZ
    if is_sap_export(headers):
        return SourceFormat.SAP
    return SourceFormat.GENERIC


def sniff_headers(csv_text: str) -> list[str]:
    """Cheap header split used before full parsing.

    Takes the first line, splits on comma, semicolon or tab, and strips
    whitespace and double quotes from each piece.
    """

    text = csv_text.lstrip("\ufeff")
    first_line = text.split("\n", 1)[0].rstrip("\r")
    return [p.strip().replace('"', "") for p in _HEADER_SPLIT_RE.split(first_line)]


def detect_format_from_text(csv_text: str) -> SourceFormat:
    return detect_format(sniff_headers(csv_text))


__all__ = [
    "IZVOZ_MARKER",
    "SAP_MIN_MATCHES",
    "SourceFormat",
    "is_izvoz_export",
    "is_sap_export",
    "detect_format",
    "sniff_headers",
    "detect_format_from_text",
]
