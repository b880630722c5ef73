"""Canonical units of measure."""

from collections.abc import Mapping
from typing import Optional

from boq_extraction.services.extraction.constants import UNIT_SYNONYMS


class UnitNormalizer:
    """Maps free-text units onto canonical codes (``m²`` -> ``M2``, ``nr`` -> ``NO``).

    Unknown units are trimmed and upper-cased so the result is always stable
    under re-normalization.
    """

    def __init__(self, synonyms: Mapping[str, str] = UNIT_SYNONYMS):
        self._synonyms = {key.lower(): value for key, value in synonyms.items()}
        self._canonical = frozenset(self._synonyms.values())

    def normalize(self, unit: Optional[str]) -> Optional[str]:
        if unit is None:
            return None
        cleaned = " ".join(str(unit).split())
        if not cleaned:
            return None
        if cleaned in self._canonical:
            return cleaned
        return self._synonyms.get(cleaned.lower(), cleaned.upper())
