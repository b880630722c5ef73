"""Model-assisted extraction of BOQ line items from one sheet."""

import asyncio
from collections.abc import Sequence
from typing import Any, Optional, Protocol

import httpx

from boq_extraction.core.exceptions import APIClientError
from boq_extraction.schemas.extraction import CategoryEntry, SheetSegment
from boq_extraction.services.extraction.strategy import StrategyOutcome
from boq_extraction.utils.logging import get_logger

LOGGER = get_logger(__name__)

SYSTEM_INSTRUCTION = (
    "You are an expert construction data analyst specialising in electrical bills of "
    "quantities. You read spreadsheet exports and return every priced line item as "
    "structured JSON. Respond with a JSON array only, no markdown and no explanation."
)

EXTRACTION_PROMPT = """Extract ALL BOQ line items from this sheet. Return a JSON array.

SHEET: {sheet_name}

For EACH line item with an item code (like A1, B2.1, C1.1.1, D3.2), extract:
- item_code: exact code (A1, B2.1, etc.)
- item_description: full description
- quantity: number or null if "Rate Only"
- is_rate_only: true if quantity shows "Rate Only" or "RATE ONLY"
- unit: each/m/m²/kg/No/Nr/Sum/Lot/%
- supply_rate: supply cost per unit
- install_rate: install cost per unit
- total_rate: combined rate if not split
- amount: line total if shown
- suggested_category_name: one of the category codes below
- bill_number: from the sheet name if present (e.g. "BILL NO. 1" = 1)
- section_code: A, B, C, D, etc.
- section_name: section title

CATEGORIES:
{categories}

CONTENT:
{content}"""


class TextGenerator(Protocol):
    async def generate_content(
        self,
        contents: Any,
        system_instruction: Optional[str] = None,
        generation_config: Optional[dict[str, Any]] = None,
    ) -> str:
        ...


class AIExtractor:
    """First extraction tier: asks the text-generation client for a JSON array.

    Returns the raw payload for ResponseRecovery, or defers on a missing
    client, short sheet, transport failure, timeout or empty answer.
    """

    name = "ai"

    def __init__(
        self,
        client: Optional[TextGenerator],
        categories: Sequence[CategoryEntry] = (),
        min_sheet_chars: int = 100,
        max_sheet_chars: int = 30000,
        timeout_seconds: float = 90,
        temperature: float = 0.1,
        max_output_tokens: int = 8192,
    ):
        self.client = client
        self.categories = tuple(categories)
        self.min_sheet_chars = min_sheet_chars
        self.max_sheet_chars = max_sheet_chars
        self.timeout_seconds = timeout_seconds
        self.generation_config = {
            "temperature": temperature,
            "max_output_tokens": max_output_tokens,
        }

    def build_prompt(self, segment: SheetSegment) -> str:
        categories = "\n".join(f"{c.code}: {c.name}" for c in self.categories) or "(none)"
        return EXTRACTION_PROMPT.format(
            sheet_name=segment.name,
            categories=categories,
            content=segment.content[: self.max_sheet_chars],
        )

    async def extract(self, segment: SheetSegment) -> StrategyOutcome:
        if self.client is None:
            return StrategyOutcome.defer(self.name, "no text-generation client configured")
        if len(segment.content) < self.min_sheet_chars:
            return StrategyOutcome.defer(self.name, "sheet below minimum size")

        try:
            payload = await asyncio.wait_for(
                self.client.generate_content(
                    contents=self.build_prompt(segment),
                    system_instruction=SYSTEM_INSTRUCTION,
                    generation_config=self.generation_config,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            LOGGER.warning(
                f"Model call timed out for sheet {segment.name}",
                extra={"timeout_seconds": self.timeout_seconds},
            )
            return StrategyOutcome.defer(self.name, "timeout")
        except (APIClientError, httpx.HTTPError) as e:
            LOGGER.warning(f"Model call failed for sheet {segment.name}: {e}")
            return StrategyOutcome.defer(self.name, f"client error: {e}")
        except Exception as e:
            LOGGER.warning(
                f"Unexpected model failure for sheet {segment.name}: {e}", exc_info=True
            )
            return StrategyOutcome.defer(self.name, f"unexpected error: {e}")

        if not payload or not payload.strip():
            LOGGER.warning(f"Empty model response for sheet {segment.name}")
            return StrategyOutcome.defer(self.name, "empty response")

        return StrategyOutcome(strategy=self.name, payload=payload)
