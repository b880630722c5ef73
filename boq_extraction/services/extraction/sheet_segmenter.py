"""Split a flattened spreadsheet export into named sheets."""

from typing import Optional

from boq_extraction.schemas.extraction import SheetSegment
from boq_extraction.services.extraction.constants import (
    BILL_NAME_PREFIXES,
    BILL_NUMBER_PATTERNS,
    MAX_BILL_NUMBER,
    EXCLUDED_SHEET_KEYWORDS,
    SHEET_MARKER,
    SHEET_NAME_PATTERN,
)
from boq_extraction.utils.logging import get_logger

LOGGER = get_logger(__name__)

UNNAMED_SHEET = "Sheet 1"


class SheetSegmenter:
    """Splits text on ``=== SHEET: <name> ===`` markers.

    Sheets whose names mark them as notes, qualifications or summaries are
    dropped. Text before the first marker is ignored, and input without any
    marker produces no segments.
    """

    def __init__(self, excluded_keywords: tuple[str, ...] = EXCLUDED_SHEET_KEYWORDS):
        self.excluded_keywords = tuple(k.lower() for k in excluded_keywords)

    def segment(self, text: Optional[str]) -> list[SheetSegment]:
        if not text or SHEET_MARKER not in text:
            return []

        segments: list[SheetSegment] = []
        # parts[0] is the preamble before the first marker
        parts = text.split(SHEET_MARKER)[1:]

        for part in parts:
            header, _, body = part.partition("\n")
            match = SHEET_NAME_PATTERN.match(header.strip())
            name = match.group(1).strip() if match else (header.strip() or "Unknown")

            if self._is_excluded(name):
                LOGGER.info(f"Skipping non-billable sheet: {name}")
                continue

            segments.append(SheetSegment(name=name, content=body, position=len(segments) + 1))

        LOGGER.info(f"Segmented document into {len(segments)} sheets")
        return segments

    def fallback_segment(self, text: str) -> SheetSegment:
        """Treat an unmarked document as a single sheet."""
        return SheetSegment(name=UNNAMED_SHEET, content=text, position=1)

    def _is_excluded(self, name: str) -> bool:
        lowered = name.lower()
        return any(keyword in lowered for keyword in self.excluded_keywords)


def bill_number_for(segment: SheetSegment) -> int:
    """Bill number from the sheet name (``BILL NO. 3``, ``2. CABLES``), else its position."""
    for pattern in BILL_NUMBER_PATTERNS:
        match = pattern.search(segment.name)
        if match:
            number = int(match.group(1))
            if 0 < number <= MAX_BILL_NUMBER:
                return number
    return segment.position


def bill_name_for(segment: SheetSegment) -> Optional[str]:
    name = segment.name
    for pattern in BILL_NAME_PREFIXES:
        name = pattern.sub("", name, count=1)
    name = name.strip(" -:.")
    return name or None
