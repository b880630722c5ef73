"""Lenient number parsing for spreadsheet cells and model output."""

import math
import re
from typing import Any, Optional

_CURRENCY_PREFIX = re.compile(r"^(?:R|\$|€|£)\s*", re.IGNORECASE)
_NON_NUMERIC = re.compile(r"[^\d.\-]")
_NUMERIC_CELL = re.compile(r"^[R$€£]?\s*-?[\d\s.,]*\d[\d\s.,]*$", re.IGNORECASE)


def parse_number(value: Any) -> Optional[float]:
    """Parse a quantity, rate or amount into a float.

    Accepts numbers and strings such as ``"R 1,234.56"``, ``"1.234,56"``,
    ``"1 234,56"`` or ``"$99"``. A single comma followed by exactly two digits
    is read as a decimal separator; otherwise commas are thousands separators.
    When both separators are present the right-most one is the decimal point.

    Returns:
        The parsed value, or None for empty or unparseable input
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None

    cleaned = _CURRENCY_PREFIX.sub("", str(value).strip()).strip()
    if not cleaned:
        return None

    if "," in cleaned and "." not in cleaned:
        parts = cleaned.split(",")
        if len(parts) == 2 and len(parts[1].strip()) == 2:
            cleaned = cleaned.replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")

    cleaned = _NON_NUMERIC.sub("", cleaned)
    if not cleaned or cleaned in ("-", ".", "-."):
        return None

    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_positive(value: Any) -> Optional[float]:
    """Parse a number and discard zero or negative results."""
    number = parse_number(value)
    if number is None or number <= 0:
        return None
    return number


def is_numeric_cell(value: Optional[str]) -> bool:
    """Whether a cell holds a number (optionally with currency and separators)."""
    if value is None:
        return False
    return bool(_NUMERIC_CELL.match(value.strip()))
