"""Match extracted items against the material catalog."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from boq_extraction.schemas.extraction import CatalogEntry, ExtractedItem
from boq_extraction.services.extraction.constants import (
    CODE_MATCH_CONFIDENCE,
    NAME_MATCH_CONFIDENCE,
    PARTIAL_MATCH_CONFIDENCE,
    PARTIAL_MATCH_MAX_LENGTH,
)
from boq_extraction.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class CatalogMatch:
    entry: CatalogEntry
    confidence: float
    tier: str


class CatalogMatcher:
    """Three-tier catalog lookup.

    Tiers are tried in order and each scans the full catalog before the next:
    exact code, exact name, then substring containment in either direction.
    The substring tier takes the first hit, not the best one.
    """

    def __init__(self, catalog: Sequence[CatalogEntry], rate_variance_threshold: float = 0.5):
        self.catalog = tuple(catalog)
        self.rate_variance_threshold = rate_variance_threshold

    def match(self, item: ExtractedItem) -> Optional[CatalogMatch]:
        code = (item.item_code or "").strip().lower()
        description = item.item_description.strip().lower()

        if code:
            for entry in self.catalog:
                if entry.code and entry.code.strip().lower() == code:
                    return CatalogMatch(entry, CODE_MATCH_CONFIDENCE, "code")

        for entry in self.catalog:
            if entry.name and entry.name.strip().lower() == description:
                return CatalogMatch(entry, NAME_MATCH_CONFIDENCE, "name")

        if description and len(description) < PARTIAL_MATCH_MAX_LENGTH:
            for entry in self.catalog:
                name = (entry.name or "").strip().lower()
                if not name or len(name) >= PARTIAL_MATCH_MAX_LENGTH:
                    continue
                if name in description or description in name:
                    confidence = max(item.match_confidence or 0.0, PARTIAL_MATCH_CONFIDENCE)
                    return CatalogMatch(entry, confidence, "partial")

        return None

    def apply(self, item: ExtractedItem) -> bool:
        """Attach the best catalog match to the item; returns whether one was found."""
        result = self.match(item)
        if result is None:
            return False

        item.matched_material_id = result.entry.id
        item.match_confidence = result.confidence
        if item.suggested_category_id is None and result.entry.category_id is not None:
            item.suggested_category_id = result.entry.category_id

        note = self._rate_variance_note(item, result.entry)
        if note:
            item.extraction_notes.append(note)
        return True

    def _rate_variance_note(self, item: ExtractedItem, entry: CatalogEntry) -> Optional[str]:
        standard = entry.standard_total_cost
        rate = item.effective_rate
        if standard <= 0 or rate is None or rate <= 0:
            return None

        variance = abs(rate - standard) / standard
        if variance <= self.rate_variance_threshold:
            return None
        return (
            f"Rate {rate:.2f} deviates {variance:.0%} from catalog standard "
            f"{standard:.2f} for {entry.code}"
        )
