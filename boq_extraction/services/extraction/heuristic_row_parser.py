"""Deterministic parser for tab-delimited BOQ sheets.

This is the last extraction tier and never defers. Column positions come from
an explicit per-sheet mapping, a detected header row, or positional defaults
(description then quantity, shifted by one when the first cell is an item
code).
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from boq_extraction.schemas.extraction import ColumnMapping, ExtractedItem, SheetSegment
from boq_extraction.services.extraction.arithmetic_validator import ArithmeticValidator
from boq_extraction.services.extraction.constants import (
    CODE_SHAPED_TOKEN,
    HEADER_FIELD_PATTERNS,
    LEADING_ITEM_CODE,
    MIN_HEADER_CELLS,
    PURELY_NUMERIC,
    RATE_ONLY_PATTERN,
    ROW_SKIP_PATTERNS,
    SECTION_HEADER_PATTERNS,
)
from boq_extraction.services.extraction.sheet_segmenter import bill_name_for, bill_number_for
from boq_extraction.services.extraction.strategy import StrategyOutcome
from boq_extraction.services.extraction.unit_normalizer import UnitNormalizer
from boq_extraction.utils.logging import get_logger
from boq_extraction.utils.numbers import is_numeric_cell, parse_number, parse_positive

LOGGER = get_logger(__name__)

MAX_HEADER_CELL_LENGTH = 40


@dataclass
class _Section:
    code: Optional[str] = None
    name: Optional[str] = None


class HeuristicRowParser:
    """Pattern-based row extraction used when model output is unavailable."""

    name = "heuristic"

    def __init__(
        self,
        unit_normalizer: UnitNormalizer,
        validator: ArithmeticValidator,
        column_mappings: Optional[Mapping[str, ColumnMapping]] = None,
        header_scan_lines: int = 20,
        min_description_length: int = 3,
    ):
        self.unit_normalizer = unit_normalizer
        self.validator = validator
        self.column_mappings = {k.strip().lower(): v for k, v in (column_mappings or {}).items()}
        self.header_scan_lines = header_scan_lines
        self.min_description_length = min_description_length

    async def extract(self, segment: SheetSegment) -> StrategyOutcome:
        return StrategyOutcome(strategy=self.name, items=self.parse(segment))

    def parse(self, segment: SheetSegment) -> list[ExtractedItem]:
        lines = segment.content.splitlines()
        mapping = self.column_mappings.get(segment.name.strip().lower())
        header_index: Optional[int] = None
        if mapping is None:
            mapping, header_index = self.detect_header(lines)

        bill_number = bill_number_for(segment)
        bill_name = bill_name_for(segment)
        section = _Section()
        items: list[ExtractedItem] = []

        for index, line in enumerate(lines):
            if index == header_index:
                continue
            stripped = line.strip()
            if not stripped:
                continue

            cells = [cell.strip() for cell in line.split("\t")]
            heading = self._section_heading(cells)
            if heading is not None:
                section = heading
                continue

            first_cell = next((c for c in cells if c), "")
            if any(p.search(first_cell) or p.search(stripped) for p in ROW_SKIP_PATTERNS):
                continue

            item = self._parse_row(cells, mapping or self._positional_mapping(cells), rate_only=bool(
                RATE_ONLY_PATTERN.search(stripped)
            ))
            if item is None:
                continue

            item.bill_number = bill_number
            item.bill_name = bill_name
            item.section_code = section.code or self._section_from_code(item.item_code)
            item.section_name = section.name
            item.raw_data = {
                "sheet": segment.name,
                "line": index + 1,
                "cells": cells,
                "source": self.name,
            }
            items.append(item)

        LOGGER.info(
            f"Heuristic parser extracted {len(items)} items from sheet {segment.name}",
            extra={"header_detected": header_index is not None},
        )
        return items

    def detect_header(self, lines: list[str]) -> tuple[Optional[ColumnMapping], Optional[int]]:
        """Find a header row in the first lines and map its recognised columns."""
        for index, line in enumerate(lines[: self.header_scan_lines]):
            cells = [cell.strip() for cell in line.split("\t")]
            if any(is_numeric_cell(c) for c in cells if c):
                continue

            fields: dict[str, int] = {}
            for position, cell in enumerate(cells):
                if not cell or len(cell) > MAX_HEADER_CELL_LENGTH:
                    continue
                if RATE_ONLY_PATTERN.search(cell) or LEADING_ITEM_CODE.match(cell):
                    continue
                for field, pattern in HEADER_FIELD_PATTERNS:
                    if field not in fields and pattern.search(cell):
                        fields[field] = position
                        break

            if len(fields) >= MIN_HEADER_CELLS and ("description" in fields or "quantity" in fields):
                LOGGER.debug(f"Detected header on line {index + 1}: {fields}")
                return ColumnMapping(**fields), index

        return None, None

    def _positional_mapping(self, cells: list[str]) -> ColumnMapping:
        if len(cells) > 2 and CODE_SHAPED_TOKEN.match(cells[0]):
            return ColumnMapping(item_code=0, description=1, quantity=2)
        return ColumnMapping(description=0, quantity=1)

    def _section_heading(self, cells: list[str]) -> Optional[_Section]:
        non_empty = [c for c in cells if c]
        if not non_empty or any(is_numeric_cell(c) for c in non_empty):
            return None
        text = " ".join(non_empty)
        for pattern in SECTION_HEADER_PATTERNS:
            match = pattern.match(text)
            if match:
                groups = match.groupdict()
                name = (groups.get("name") or "").strip(" -:.") or None
                code = groups.get("code")
                return _Section(code=code.upper() if code else None, name=name)
        return None

    @staticmethod
    def _section_from_code(item_code: Optional[str]) -> Optional[str]:
        if item_code and item_code[0].isalpha():
            return item_code[0].upper()
        return None

    @staticmethod
    def _cell(cells: list[str], position: Optional[int]) -> Optional[str]:
        if position is None or position >= len(cells):
            return None
        return cells[position] or None

    def _parse_row(self, cells: list[str], mapping: ColumnMapping, rate_only: bool) -> Optional[ExtractedItem]:
        description_index = mapping.description
        if description_index is None:
            description_index = mapping.item_code + 1 if mapping.item_code is not None else 0

        item_code = self._cell(cells, mapping.item_code)
        description = self._cell(cells, description_index) or ""
        if not item_code:
            leading = LEADING_ITEM_CODE.match(description)
            if leading:
                item_code = leading.group("code")
                description = leading.group("rest").strip()

        if len(description) < self.min_description_length or PURELY_NUMERIC.match(description):
            return None

        quantity_cell = self._cell(cells, mapping.quantity)
        quantity = None if rate_only else parse_number(quantity_cell)
        unit = self._cell(cells, mapping.unit)
        if (
            unit is None
            and mapping.unit is None
            and quantity_cell
            and not rate_only
            and not is_numeric_cell(quantity_cell)
        ):
            # "description, unit, rate" rows without a quantity
            unit = quantity_cell
        supply_rate = parse_positive(self._cell(cells, mapping.supply_rate))
        install_rate = parse_positive(self._cell(cells, mapping.install_rate))
        total_rate = parse_positive(self._cell(cells, mapping.total_rate))
        amount = parse_number(self._cell(cells, mapping.amount))

        if all(column is None for column in mapping.rate_columns):
            total_rate, trailing_amount, inferred_unit = self._infer_trailing_values(cells, mapping)
            if unit is None:
                unit = inferred_unit
            if mapping.amount is None:
                amount = trailing_amount

        has_rate = any(v is not None for v in (supply_rate, install_rate, total_rate))
        if not has_rate and quantity is None and not rate_only:
            return None

        item = ExtractedItem(
            item_code=item_code,
            item_description=description,
            quantity=quantity,
            unit=self.unit_normalizer.normalize(unit),
            supply_rate=supply_rate,
            install_rate=install_rate,
            total_rate=total_rate,
            amount=amount,
            is_rate_only=rate_only,
        )
        if item.quantity is not None:
            if item.supply_rate is not None:
                item.supply_cost = item.quantity * item.supply_rate
            if item.install_rate is not None:
                item.install_cost = item.quantity * item.install_rate
        self.validator.apply(item)
        return item

    def _infer_trailing_values(
        self, cells: list[str], mapping: ColumnMapping
    ) -> tuple[Optional[float], Optional[float], Optional[str]]:
        """Rate, amount and unit from the cells after the quantity column."""
        anchor = mapping.quantity if mapping.quantity is not None else (mapping.description or 0)
        occupied = {p for p in (mapping.item_code, mapping.description, mapping.unit) if p is not None}

        rate: Optional[float] = None
        amount: Optional[float] = None
        unit: Optional[str] = None
        for position in range(anchor + 1, len(cells)):
            if position in occupied:
                continue
            cell = cells[position]
            if not cell:
                continue
            if is_numeric_cell(cell):
                value = parse_number(cell)
                if value is None or value <= 0:
                    continue
                if rate is None:
                    rate = value
                elif amount is None:
                    amount = value
                    break
            elif unit is None and rate is None and mapping.unit is None and not RATE_ONLY_PATTERN.search(cell):
                unit = cell
        return rate, amount, unit
