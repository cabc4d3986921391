"""Locale-aware number and date parsing for imported cell values.

Numbers
-------
Spend exports mix two conventions:

- US: ``,`` thousands separator, ``.`` decimal (``"1,234.56"``)
- EU: ``.`` thousands separator, ``,`` decimal (``"1.234,56"``)

:func:`parse_number` accepts ``number_format`` ``"auto"`` (infer per value),
``"EU"`` or ``"US"`` (fixed by configuration, used by the SAP path). SAP also
writes negatives with a trailing minus (``"123,45-"``). Parsing never raises:
empty or unparseable input yields ``0.0``.

Dates
-----
:func:`normalize_month` reduces the date shapes seen in exports to a
``YYYY-MM`` month key. Unrecognized shapes fall back to the first seven
characters of the raw string.
"""

from __future__ import annotations

import math
import re
from typing import Any, Literal

type NumberFormat = Literal["auto", "EU", "US"]

NUMBER_FORMATS: tuple[str, ...] = ("auto", "EU", "US")

_CURRENCY_AND_SPACE_RE = re.compile(r"[\s€$£]")
# Longest leading float literal, mirroring a lenient parseFloat.
_FLOAT_PREFIX_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _leading_float(s: str) -> float:
    m = _FLOAT_PREFIX_RE.match(s)
    if not m:
        return 0.0
    try:
        return float(m.group(0))
    except ValueError:
        return 0.0


def _apply_trailing_minus(s: str) -> str:
    if len(s) > 1 and s.endswith("-") and not s.startswith("-"):
        return "-" + s[:-1]
    return s


def _canonicalize_auto(s: str) -> str:
    last_comma = s.rfind(",")
    last_dot = s.rfind(".")
    if last_comma > -1 and last_comma > last_dot:
        # Comma after the last dot: dot = thousands, comma = decimal
        return s.replace(".", "").replace(",", ".", 1)
    return s.replace(",", "")


def _canonicalize_eu(s: str) -> str:
    return s.replace(".", "").replace(",", ".", 1)


def _canonicalize_us(s: str) -> str:
    return s.replace(",", "")


def parse_number(value: Any, number_format: NumberFormat | str = "auto") -> float:
    """Convert a free-form numeric cell to ``float`` (``0.0`` on failure).

    Examples
    --------
    >>> parse_number("1.234,56")
    1234.56
    >>> parse_number("1,234.56")
    1234.56
    >>> parse_number("123,45-", "EU")
    -123.45
    """

    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, int | float):
        return float(value)
    s = _CURRENCY_AND_SPACE_RE.sub("", str(value))
    if not s:
        return 0.0

    fmt = (number_format or "auto").strip()
    if fmt.upper() == "EU":
        s = _canonicalize_eu(s)
    elif fmt.upper() == "US":
        s = _canonicalize_us(s)
    else:
        s = _canonicalize_auto(s)

    s = _apply_trailing_minus(s)
    return _leading_float(s)


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_DOTTED_RE = re.compile(r"^(\d{2})\.(\d{2})\.(\d{4})")
_COMPACT_RE = re.compile(r"^(\d{8})$")
_US_SLASH_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})")
_YEAR_SLASH_RE = re.compile(r"^(\d{4})/(\d{2})")


def normalize_month(value: Any) -> str:
    """Return ``YYYY-MM`` for a raw date cell, or ``""`` when empty.

    Accepted shapes (anything may follow the matched prefix, e.g. a time):
    ``YYYY-MM-DD``, ``DD.MM.YYYY``, ``YYYYMMDD``, ``MM/DD/YYYY``, ``YYYY/MM``.
    Anything else is truncated to its first seven characters.
    """

    if value is None:
        return ""
    s = str(value).strip()
    if not s:
        return ""

    if m := _ISO_RE.match(s):
        return f"{m.group(1)}-{m.group(2)}"
    if m := _DOTTED_RE.match(s):
        return f"{m.group(3)}-{m.group(2)}"
    if _COMPACT_RE.match(s):
        return f"{s[0:4]}-{s[4:6]}"
    if m := _US_SLASH_RE.match(s):
        return f"{m.group(3)}-{m.group(1)}"
    if m := _YEAR_SLASH_RE.match(s):
        return f"{m.group(1)}-{m.group(2)}"
    return s[:7]


def format_number(value: float) -> str:
    """Render a float the way it round-trips through CSV (``4500.0`` → ``"4500"``)."""

    if not math.isfinite(value):
        return "0"
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def year_of(month_key: str) -> int | None:
    """Return the integer year prefix of a ``YYYY-MM`` key, if present."""

    if not month_key or len(month_key) < 4 or not month_key[:4].isdigit():
        return None
    return int(month_key[:4])


def month_of(month_key: str) -> int | None:
    """Return the integer month of a ``YYYY-MM`` key, if present."""

    part = month_key[5:7] if month_key else ""
    if len(part) != 2 or not part.isdigit():
        return None
    return int(part)


__all__ = [
    "NumberFormat",
    "NUMBER_FORMATS",
    "parse_number",
    "normalize_month",
    "format_number",
    "year_of",
    "month_of",
]
