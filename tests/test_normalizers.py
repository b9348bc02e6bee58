from __future__ import annotations

from decimal import Decimal

import pytest

from ledger_import.models import DateFormat
from ledger_import.normalizers import (
    detect_date_format,
    normalize_vendor,
    parse_amount,
    parse_date,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("31/01/2024", "2024-01-31"),
        ("2024-03-05", "2024-03-05"),
        ("Feb 05, 2024", "2024-02-05"),
        ("13/02/2024", "2024-02-13"),
        ("02/13/2024", "2024-02-13"),
        ("05/03/2024", "2024-03-05"),  # ambiguous reads day-first
        ("5 Sept 2024", "2024-09-05"),
        ("05-Mar-2024", "2024-03-05"),
        ("March 5 2024", "2024-03-05"),
        ("2024-3-5", "2024-03-05"),
    ],
)
def test_parse_date_auto(raw, expected):
    assert parse_date(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "   ",
        "not a date",
        "32/01/2024",
        "2024-13-01",
        "30/02/2024",
        "01/01/1899",
        "Foo 5, 2024",
    ],
)
def test_parse_date_rejects_garbage_and_out_of_range(raw):
    assert parse_date(raw) is None


def test_parse_date_explicit_formats():
    assert parse_date("04/05/2024", DateFormat.MONTH_FIRST) == "2024-04-05"
    assert parse_date("04/05/2024", DateFormat.DAY_FIRST) == "2024-05-04"
    assert parse_date("04-05-2024", DateFormat.DAY_FIRST_DASHED) == "2024-05-04"
    assert parse_date("2024-05-04", "YYYY-MM-DD") == "2024-05-04"


def test_parse_date_explicit_format_rejects_out_of_range_match():
    # Matches the MM/DD pattern but month 13 does not exist; no auto rescue.
    assert parse_date("13/05/2024", DateFormat.MONTH_FIRST) is None


def test_parse_date_explicit_format_falls_back_to_auto_on_pattern_mismatch():
    assert parse_date("Feb 05, 2024", DateFormat.DAY_FIRST) == "2024-02-05"


def test_detect_date_format():
    assert detect_date_format(["2024-01-01", "2024-02-15"]) is DateFormat.ISO
    assert detect_date_format(["01/02/2024", "25/02/2024"]) is DateFormat.DAY_FIRST
    assert detect_date_format(["01/02/2024", "02/25/2024"]) is DateFormat.MONTH_FIRST
    assert detect_date_format(["01/02/2024", "03/04/2024"]) is DateFormat.DAY_FIRST
    assert detect_date_format(["Feb 05, 2024"]) is DateFormat.AUTO
    assert detect_date_format(["", "  "]) is DateFormat.AUTO


def test_detect_date_format_only_inspects_leading_samples():
    samples = ["01/02/2024"] * 3 + ["02/25/2024"]
    assert detect_date_format(samples, limit=3) is DateFormat.DAY_FIRST


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("£1,234.56", Decimal("1234.56")),
        ("(100.00)", Decimal("-100.00")),
        ("1.234,56", Decimal("1234.56")),
        ("-$50.00", Decimal("-50.00")),
        ("12,50", Decimal("12.50")),
        ("1,234", Decimal("1234")),
        ("€ 99", Decimal("99")),
        ("+7.5", Decimal("7.5")),
        ("42.10 GBP", Decimal("42.10")),
    ],
)
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "", "   ", None, "--", "()"])
def test_parse_amount_rejects_non_numeric(raw):
    assert parse_amount(raw) is None


def test_normalize_vendor():
    assert normalize_vendor("  TESCO  Stores ") == "tesco stores"
    assert normalize_vendor("McDonald’s") == "mcdonald's"
    assert normalize_vendor("AMZN Mktp*UK!") == "amzn mktpuk"
    assert normalize_vendor("Co-op") == "co-op"
    assert normalize_vendor(None) == ""
