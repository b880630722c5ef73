"""Turn raw model output into line items, repairing it where possible.

Recovery runs in stages, stopping at the first that yields objects:

1. strict parse of the fenced-off JSON array
2. bracket repair for truncated output (drop a dangling comma, close what
   is still open)
3. salvage of individual flat ``{...}`` objects that validate against
   ``SalvagedItem``

Nothing here raises on malformed input; zero recovered items defers the
sheet to the heuristic parser.
"""

import json
import math
import re
from typing import Any, Optional

from pydantic import ValidationError

from boq_extraction.schemas.extraction import ExtractedItem, SalvagedItem, SheetSegment
from boq_extraction.services.extraction.constants import AI_CONFIDENCE, MAX_BILL_NUMBER, PARTIAL_CONFIDENCE
from boq_extraction.services.extraction.sheet_segmenter import bill_name_for, bill_number_for
from boq_extraction.services.extraction.strategy import StrategyOutcome
from boq_extraction.utils.logging import get_logger
from boq_extraction.utils.numbers import parse_number, parse_positive

LOGGER = get_logger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_FLAT_OBJECT = re.compile(r"\{[^{}]*\}", re.DOTALL)
_DANGLING_KEY = re.compile(r'([{,])\s*"[^"]*"\s*$')
_CLOSERS = {"{": "}", "[": "]"}


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text).strip()


def slice_array(text: str) -> str:
    """Cut the text down to its JSON array, keeping a truncated tail."""
    start = text.find("[")
    if start == -1:
        return text
    end = text.rfind("]")
    if end > start:
        return text[start:end + 1]
    return text[start:]


def repair_brackets(text: str) -> str:
    """Close unbalanced brackets left open by truncated output.

    Scans outside string literals, tracking open ``{``/``[``. An unterminated
    string is closed first, and a trailing comma before the appended closers
    is dropped.
    """
    stack: list[str] = []
    in_string = False
    escaped = False

    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(char)
        elif char in ("}", "]") and stack and _CLOSERS[stack[-1]] == char:
            stack.pop()

    repaired = text.rstrip()
    if in_string:
        repaired += '"'
    if stack and stack[-1] == "{":
        # A key without a value cannot be closed into valid JSON
        repaired = _DANGLING_KEY.sub(r"\1", repaired)
        repaired = re.sub(r":\s*$", ": null", repaired)
    repaired = repaired.rstrip().rstrip(",")
    return repaired + "".join(_CLOSERS[opener] for opener in reversed(stack))


def _as_item_list(parsed: Any) -> Optional[list[dict]]:
    if isinstance(parsed, list):
        return [obj for obj in parsed if isinstance(obj, dict)]
    if isinstance(parsed, dict) and isinstance(parsed.get("items"), list):
        return [obj for obj in parsed["items"] if isinstance(obj, dict)]
    return None


def _finite_float(text: str) -> Optional[float]:
    number = float(text)
    return number if math.isfinite(number) else None


def _json_loads(text: str) -> Any:
    # NaN and Infinity are legal to the json module but not to Postgres JSONB
    return json.loads(text, parse_float=_finite_float, parse_constant=lambda _: None)


def _loads(text: str) -> Optional[list[dict]]:
    try:
        return _as_item_list(_json_loads(text))
    except (ValueError, RecursionError):
        return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "rate only")
    return bool(value)


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_bill_number(value: Any) -> Optional[int]:
    number = parse_number(value)
    if number is None or not number.is_integer():
        return None
    number = int(number)
    return number if 0 < number <= MAX_BILL_NUMBER else None


class ResponseRecovery:
    """Parses model payloads for one sheet into ExtractedItems."""

    name = "response_recovery"

    def recover(self, payload: str, segment: SheetSegment) -> StrategyOutcome:
        text = slice_array(strip_code_fences(payload or ""))
        if not text:
            return StrategyOutcome.defer(self.name, "empty payload")

        objects = _loads(text)
        stage = "strict"
        if not objects:
            objects = _loads(repair_brackets(text))
            stage = "repaired"
        partial = False
        if not objects:
            objects = self.salvage(text)
            stage = "salvaged"
            partial = True

        items = [
            item for item in (self.to_item(obj, segment, partial) for obj in objects or [])
            if item is not None
        ]
        if not items:
            LOGGER.warning(
                f"No recoverable items in model output for sheet {segment.name}",
                extra={"payload_length": len(payload or "")},
            )
            return StrategyOutcome.defer(self.name, "no recoverable items")

        LOGGER.info(
            f"Recovered {len(items)} items from model output for sheet {segment.name}",
            extra={"stage": stage},
        )
        return StrategyOutcome(strategy=self.name, items=items)

    def salvage(self, text: str) -> list[dict]:
        """Validate each flat object substring on its own, keeping the valid ones."""
        salvaged = []
        for candidate in _FLAT_OBJECT.findall(text):
            try:
                obj = _json_loads(candidate)
                SalvagedItem.model_validate(obj)
            except (ValueError, ValidationError):
                continue
            salvaged.append(obj)
        return salvaged

    def to_item(self, obj: dict, segment: SheetSegment, partial: bool = False) -> Optional[ExtractedItem]:
        description = _as_text(obj.get("item_description") or obj.get("description"))
        if not description:
            return None

        is_rate_only = _as_bool(obj.get("is_rate_only", False))
        bill_number = _as_bill_number(obj.get("bill_number")) or bill_number_for(segment)

        item_code = _as_text(obj.get("item_code"))
        confidence = parse_number(obj.get("match_confidence"))
        if confidence is None or not 0.0 <= confidence <= 1.0:
            confidence = PARTIAL_CONFIDENCE if partial else AI_CONFIDENCE

        raw_data: dict[str, Any] = {"sheet": segment.name, "source": "ai", "object": obj}
        if partial:
            raw_data["partial"] = True

        try:
            return ExtractedItem(
                bill_number=bill_number,
                bill_name=_as_text(obj.get("bill_name")) or bill_name_for(segment),
                section_code=_as_text(obj.get("section_code")) or (item_code[0].upper() if item_code and item_code[0].isalpha() else None),
                section_name=_as_text(obj.get("section_name")),
                item_code=item_code,
                item_description=description,
                quantity=None if is_rate_only else parse_number(obj.get("quantity")),
                unit=_as_text(obj.get("unit")),
                supply_rate=parse_positive(obj.get("supply_rate")),
                install_rate=parse_positive(obj.get("install_rate")),
                total_rate=parse_positive(obj.get("total_rate")),
                amount=parse_number(obj.get("amount")),
                supply_cost=parse_number(obj.get("supply_cost")),
                install_cost=parse_number(obj.get("install_cost")),
                prime_cost=parse_number(obj.get("prime_cost")),
                profit_percentage=parse_number(obj.get("profit_percentage")),
                is_rate_only=is_rate_only,
                suggested_category_code=_as_text(obj.get("suggested_category_name") or obj.get("suggested_category")),
                match_confidence=confidence,
                raw_data=raw_data,
            )
        except ValidationError as e:
            LOGGER.debug(f"Dropping unusable model object: {e}")
            return None
