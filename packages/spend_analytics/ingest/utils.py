"""CSV tokenization shared by the upload router, the SAP wizard and the CLI.

:func:`read_csv_text` turns raw text into a header list plus row mappings.
It strips a UTF-8 BOM, picks the delimiter (comma, semicolon or tab) from the
header line, skips empty lines and counts malformed rows (too many or too few
fields) instead of failing; malformed rows are still returned, padded or
truncated to the header.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from io import StringIO
from os import PathLike
from pathlib import Path

_DELIMITERS: tuple[str, ...] = (",", ";", "\t")


@dataclass(frozen=True, slots=True)
class ParsedCsv:
    headers: list[str]
    rows: list[dict[str, str]]
    error_count: int = 0


def sniff_delimiter(header_line: str) -> str:
    """Return the most frequent of ``,`` ``;`` and tab in ``header_line``."""

    counts = {d: header_line.count(d) for d in _DELIMITERS}
    best = max(_DELIMITERS, key=lambda d: counts[d])
    return best if counts[best] > 0 else ","


def read_csv_text(text: str) -> ParsedCsv:
    """Tokenize CSV ``text`` (RFC 4180 quoting) into headers and rows."""

    body = text.lstrip("\ufeff")
    first_line = body.split("\n", 1)[0].rstrip("\r")
    delimiter = sniff_delimiter(first_line)

    with StringIO(body, newline="") as f:
        reader = csv.DictReader(f, delimiter=delimiter)
        headers = list(reader.fieldnames or [])
        rows: list[dict[str, str]] = []
        errors = 0
        for row in reader:
            # DictReader collects surplus fields under the None key
            malformed = None in row
            if not malformed and all(not (v or "").strip() for v in row.values()):
                continue
            normalized: dict[str, str] = {}
            for k, v in row.items():
                if k is None:
                    continue
                if v is None:
                    malformed = True
                    v = ""
                normalized[k] = v
            if malformed:
                errors += 1
            rows.append(normalized)
    return ParsedCsv(headers=headers, rows=rows, error_count=errors)


def load_csv_file(path: str | PathLike[str]) -> str:
    """Read a CSV file as text (UTF-8, BOM tolerated)."""

    p = Path(path)
    with p.open(encoding="utf-8-sig", newline="") as f:
        return f.read()


__all__ = ["ParsedCsv", "sniff_delimiter", "read_csv_text", "load_csv_file"]
