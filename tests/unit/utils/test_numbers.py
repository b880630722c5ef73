import pytest

from boq_extraction.utils.numbers import is_numeric_cell, parse_number, parse_positive


@pytest.mark.parametrize("raw,expected", [
    (12, 12.0),
    (3.5, 3.5),
    ("250", 250.0),
    ("R 1,234.56", 1234.56),
    ("$99", 99.0),
    ("1.234,56", 1234.56),
    ("1 234,56", 1234.56),
    ("12,50", 12.5),
    ("12,500", 12500.0),
    ("-45.00", -45.0),
])
def test_parse_number(raw, expected):
    assert parse_number(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", [None, "", "   ", "Rate Only", "n/a", True, float("nan"), float("inf"), 10**400, "9" * 400])
def test_unparseable_values(raw):
    assert parse_number(raw) is None


def test_parse_positive_discards_zero_and_negative():
    assert parse_positive("0.00") is None
    assert parse_positive("-5") is None
    assert parse_positive("5") == 5.0


@pytest.mark.parametrize("cell,expected", [
    ("1,250.00", True),
    ("R 85", True),
    ("10", True),
    ("nr", False),
    ("A1", False),
    ("Rate Only", False),
    (None, False),
])
def test_is_numeric_cell(cell, expected):
    assert is_numeric_cell(cell) is expected
