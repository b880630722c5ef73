"""Quantity x rate = amount consistency check."""

from dataclasses import dataclass
from typing import Optional

from boq_extraction.schemas.extraction import ExtractedItem


@dataclass(frozen=True)
class ArithmeticCheck:
    is_valid: bool
    expected: Optional[float] = None
    note: Optional[str] = None


class ArithmeticValidator:
    """Flags amounts that disagree with quantity times rate.

    A check is only claimed when quantity, rate and amount are all present and
    quantity and rate are non-zero. The relative difference is measured
    against the larger of the expected and stated amounts.
    """

    def __init__(self, tolerance: float = 0.05):
        self.tolerance = tolerance

    def check(
        self,
        quantity: Optional[float],
        rate: Optional[float],
        amount: Optional[float],
    ) -> ArithmeticCheck:
        if quantity is None or rate is None or amount is None:
            return ArithmeticCheck(is_valid=True)
        if quantity == 0 or rate == 0:
            return ArithmeticCheck(is_valid=True)

        expected = quantity * rate
        denominator = max(abs(expected), abs(amount))
        if denominator == 0:
            return ArithmeticCheck(is_valid=True, expected=expected)

        difference = abs(expected - amount) / denominator
        if difference <= self.tolerance:
            return ArithmeticCheck(is_valid=True, expected=expected)

        note = (
            f"Arithmetic discrepancy: {quantity:g} × {rate:.2f} = {expected:.2f}, "
            f"source amount {amount:.2f} ({difference:.1%} difference)"
        )
        return ArithmeticCheck(is_valid=False, expected=expected, note=note)

    def apply(self, item: ExtractedItem) -> ArithmeticCheck:
        """Record the check on the item without touching its numbers."""
        result = self.check(item.quantity, item.effective_rate, item.amount)
        item.math_validated = result.is_valid
        if result.note and result.note not in item.extraction_notes:
            item.extraction_notes.append(result.note)
        return result
