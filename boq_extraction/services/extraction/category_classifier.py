"""Keyword-based material category suggestion."""

from collections.abc import Mapping, Sequence
from typing import Optional

from boq_extraction.schemas.extraction import CategoryEntry, ExtractedItem
from boq_extraction.services.extraction.constants import CATEGORY_KEYWORDS


class CategoryClassifier:
    """Suggests a category code for an item description.

    The keyword table is ordered; the first category with any keyword found
    in the lower-cased description wins. A category already supplied by the
    extractor is kept and only resolved against the registry.
    """

    def __init__(
        self,
        categories: Sequence[CategoryEntry],
        keywords: Mapping[str, Sequence[str]] = CATEGORY_KEYWORDS,
    ):
        self.keywords = tuple(
            (code, tuple(k.lower() for k in words)) for code, words in keywords.items()
        )
        self._by_code = {c.code.lower(): c for c in categories}
        self._by_name = {c.name.lower(): c for c in categories}

    def classify(self, description: str) -> Optional[str]:
        text = description.lower()
        for code, words in self.keywords:
            if any(word in text for word in words):
                return code
        return None

    def resolve(self, code_or_name: Optional[str]) -> Optional[CategoryEntry]:
        if not code_or_name:
            return None
        key = code_or_name.strip().lower()
        return self._by_code.get(key) or self._by_name.get(key)

    def apply(self, item: ExtractedItem) -> None:
        suggestion = item.suggested_category_code or self.classify(item.item_description)
        if suggestion is None:
            return

        item.suggested_category_code = suggestion
        entry = self.resolve(suggestion)
        if entry is not None:
            item.suggested_category_id = entry.id
            item.suggested_category_name = entry.name
        elif item.suggested_category_name is None:
            item.suggested_category_name = suggestion
