"""Drop rows that are not genuine priced line items."""

import re
from collections.abc import Sequence

from boq_extraction.schemas.extraction import ExtractedItem
from boq_extraction.services.extraction.constants import (
    NON_MATERIAL_PATTERNS,
    PURELY_NUMERIC,
    REVIEWABLE_ITEM_CODE,
)
from boq_extraction.utils.logging import get_logger

LOGGER = get_logger(__name__)


class NonMaterialFilter:
    """Removes instructions, headers, totals and other non-item rows.

    Rows that carry neither rate, quantity nor a rate-only flag are dropped as
    well, unless their item code looks like ``A12``; those are kept for human
    review.
    """

    def __init__(
        self,
        patterns: Sequence[re.Pattern] = NON_MATERIAL_PATTERNS,
        min_description_length: int = 3,
        reviewable_code: re.Pattern = REVIEWABLE_ITEM_CODE,
    ):
        self.patterns = tuple(patterns)
        self.min_description_length = min_description_length
        self.reviewable_code = reviewable_code

    def is_material(self, item: ExtractedItem) -> bool:
        description = item.item_description.strip()

        if len(description) < self.min_description_length:
            return False
        if PURELY_NUMERIC.match(description):
            return False
        if any(pattern.search(description) for pattern in self.patterns):
            return False

        has_rate = any(
            value is not None for value in (item.supply_rate, item.install_rate, item.total_rate)
        )
        if not has_rate and item.quantity is None and not item.is_rate_only:
            return bool(item.item_code and self.reviewable_code.match(item.item_code.strip()))

        return True

    def filter(self, items: Sequence[ExtractedItem]) -> list[ExtractedItem]:
        kept = [item for item in items if self.is_material(item)]
        removed = len(items) - len(kept)
        if removed:
            LOGGER.info(f"Filtered {removed} non-material rows", extra={"kept": len(kept)})
        return kept
