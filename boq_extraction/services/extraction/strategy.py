"""Common contract for the per-sheet extraction tiers."""

from dataclasses import dataclass, field
from typing import Optional, Protocol

from boq_extraction.schemas.extraction import ExtractedItem, SheetSegment


@dataclass(frozen=True)
class StrategyOutcome:
    """Result of one extraction tier for one sheet.

    Exactly one of ``items``, ``payload`` or ``defer_reason`` is meaningful:
    items are final, a payload is raw model text still to be recovered, and a
    defer reason hands the sheet to the next tier.
    """

    strategy: str
    items: list[ExtractedItem] = field(default_factory=list)
    payload: Optional[str] = None
    defer_reason: Optional[str] = None

    @property
    def deferred(self) -> bool:
        return self.defer_reason is not None

    @classmethod
    def defer(cls, strategy: str, reason: str) -> "StrategyOutcome":
        return cls(strategy=strategy, defer_reason=reason)


class ExtractionStrategy(Protocol):
    """Anything that can turn one sheet into line items, or decline to."""

    name: str

    async def extract(self, segment: SheetSegment) -> StrategyOutcome:
        ...
