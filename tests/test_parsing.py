import pytest

from spend_analytics.parsing import (
    format_number,
    month_of,
    normalize_month,
    parse_number,
    year_of,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1.234,56", 1234.56),
        ("1,234.56", 1234.56),
        ("€ 2.500,00", 2500.0),
        ("$1,000.00", 1000.0),
        ("1,000", 1.0),
        ("12abc", 12.0),
        ("", 0.0),
        ("n/a", 0.0),
        (None, 0.0),
        (42, 42.0),
    ],
)
def test_parse_number_auto(raw, expected):
    assert parse_number(raw) == pytest.approx(expected)


def test_parse_number_fixed_formats():
    assert parse_number("1.234,56", "EU") == pytest.approx(1234.56)
    assert parse_number("1,234.56", "US") == pytest.approx(1234.56)
    # EU mode treats every dot as a thousands separator
    assert parse_number("1.500", "EU") == pytest.approx(1500.0)
    assert parse_number("1.500", "US") == pytest.approx(1.5)


def test_parse_number_trailing_minus():
    assert parse_number("123,45-", "EU") == pytest.approx(-123.45)
    assert parse_number("1,000.50-", "US") == pytest.approx(-1000.5)
    assert parse_number("-", "EU") == 0.0


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2026-01-15", "2026-01"),
        ("2026-01-15T10:00:00", "2026-01"),
        ("15.03.2025", "2025-03"),
        ("20250704", "2025-07"),
        ("04/30/2025", "2025-04"),
        ("2025/11", "2025-11"),
        ("2025-12", "2025-12"),
        ("March 2025", "March 2"),
        ("  ", ""),
        (None, ""),
    ],
)
def test_normalize_month(raw, expected):
    assert normalize_month(raw) == expected


def test_format_number_drops_trailing_zero():
    assert format_number(4500.0) == "4500"
    assert format_number(-120.0) == "-120"
    assert format_number(0.1) == "0.1"
    assert format_number(1234.56) == "1234.56"
    assert format_number(float("nan")) == "0"


def test_year_and_month_of():
    assert year_of("2026-03") == 2026
    assert month_of("2026-03") == 3
    assert year_of("") is None
    assert month_of("2026") is None
    assert month_of("abcd-xy") is None
