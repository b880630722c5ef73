"""Tests for quantity x rate = amount checking."""

import pytest

from boq_extraction.schemas.extraction import ExtractedItem
from boq_extraction.services.extraction.arithmetic_validator import ArithmeticValidator


@pytest.fixture
def validator():
    return ArithmeticValidator(tolerance=0.05)


class TestCheck:

    def test_matching_amount_is_valid(self, validator):
        result = validator.check(10, 25.0, 250.0)
        assert result.is_valid is True
        assert result.expected == 250.0
        assert result.note is None

    def test_within_tolerance_is_valid(self, validator):
        assert validator.check(10, 25.0, 260.0).is_valid is True

    def test_discrepancy_is_flagged_with_note(self, validator):
        result = validator.check(10, 150.0, 3500.0)

        assert result.is_valid is False
        assert result.expected == 1500.0
        assert "10 × 150.00 = 1500.00" in result.note
        assert "3500.00" in result.note

    @pytest.mark.parametrize("quantity,rate,amount", [
        (None, 10.0, 100.0),
        (10, None, 100.0),
        (10, 10.0, None),
        (0, 10.0, 100.0),
        (10, 0, 100.0),
    ])
    def test_incomplete_or_zero_inputs_are_not_checked(self, validator, quantity, rate, amount):
        assert validator.check(quantity, rate, amount).is_valid is True


class TestApply:

    def test_apply_flags_item_and_keeps_numbers(self, validator):
        item = ExtractedItem(item_description="Earth rod", quantity=10, total_rate=150.0, amount=3500.0)

        validator.apply(item)

        assert item.math_validated is False
        assert item.amount == 3500.0
        assert len(item.extraction_notes) == 1

    def test_apply_does_not_duplicate_notes(self, validator):
        item = ExtractedItem(item_description="Earth rod", quantity=10, total_rate=150.0, amount=3500.0)

        validator.apply(item)
        validator.apply(item)

        assert len(item.extraction_notes) == 1

    def test_apply_uses_supply_plus_install(self, validator):
        item = ExtractedItem(
            item_description="Cable", quantity=100, supply_rate=2.0, install_rate=0.5, amount=250.0
        )
        validator.apply(item)
        assert item.math_validated is True
