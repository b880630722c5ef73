"""
BOQ Extraction Schema Definitions

Models shared by the extraction components:
- Sheet segments and per-sheet column mappings
- Reference data snapshots (category registry, material catalog)
- The in-pipeline extracted line item
- The salvage schema used when recovering partial model output
"""

from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


@dataclass(frozen=True)
class SheetSegment:
    """One named sheet of a flattened spreadsheet export."""

    name: str
    content: str
    position: int = 1


@dataclass(frozen=True)
class CategoryEntry:
    """Category registry row."""

    id: UUID
    code: str
    name: str
    description: Optional[str] = None


@dataclass(frozen=True)
class CatalogEntry:
    """Material catalog row."""

    id: UUID
    code: str
    name: str
    category_id: Optional[UUID] = None
    standard_supply_cost: Optional[float] = None
    standard_install_cost: Optional[float] = None
    unit: Optional[str] = None

    @property
    def standard_total_cost(self) -> float:
        return (self.standard_supply_cost or 0.0) + (self.standard_install_cost or 0.0)


class ColumnMapping(BaseModel):
    """Zero-based column positions for one sheet, overriding header detection."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    item_code: Optional[int] = Field(default=None, ge=0, alias="itemCode")
    description: Optional[int] = Field(default=None, ge=0)
    quantity: Optional[int] = Field(default=None, ge=0)
    unit: Optional[int] = Field(default=None, ge=0)
    supply_rate: Optional[int] = Field(default=None, ge=0, alias="supplyRate")
    install_rate: Optional[int] = Field(default=None, ge=0, alias="installRate")
    total_rate: Optional[int] = Field(default=None, ge=0, alias="totalRate")
    amount: Optional[int] = Field(default=None, ge=0)

    @property
    def rate_columns(self) -> tuple[Optional[int], ...]:
        return (self.supply_rate, self.install_rate, self.total_rate)


class ExtractedItem(BaseModel):
    """A single BOQ line item flowing through the pipeline.

    Construction enforces two invariants: a rate-only item never carries a
    quantity, and a missing total rate is derived from supply plus install.
    """

    row_number: int = 0
    bill_number: Optional[int] = None
    bill_name: Optional[str] = None
    section_code: Optional[str] = None
    section_name: Optional[str] = None
    item_code: Optional[str] = None
    item_description: str = Field(..., min_length=1)
    quantity: Optional[float] = None
    unit: Optional[str] = None
    supply_rate: Optional[float] = None
    install_rate: Optional[float] = None
    total_rate: Optional[float] = None
    amount: Optional[float] = None
    supply_cost: Optional[float] = None
    install_cost: Optional[float] = None
    prime_cost: Optional[float] = None
    profit_percentage: Optional[float] = None
    is_rate_only: bool = False
    suggested_category_code: Optional[str] = None
    suggested_category_id: Optional[UUID] = None
    suggested_category_name: Optional[str] = None
    matched_material_id: Optional[UUID] = None
    match_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    math_validated: bool = True
    raw_data: dict[str, Any] = Field(default_factory=dict)
    extraction_notes: list[str] = Field(default_factory=list)
    review_status: str = "pending"

    @field_validator("item_description")
    @classmethod
    def strip_description(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("item_description must not be blank")
        return value

    @model_validator(mode="after")
    def enforce_rate_invariants(self) -> "ExtractedItem":
        if self.is_rate_only:
            self.quantity = None
        if self.total_rate is None and (self.supply_rate is not None or self.install_rate is not None):
            self.total_rate = (self.supply_rate or 0.0) + (self.install_rate or 0.0)
        return self

    @property
    def effective_rate(self) -> Optional[float]:
        """Rate used for arithmetic checks: total rate, else supply plus install."""
        if self.total_rate is not None:
            return self.total_rate
        if self.supply_rate is None and self.install_rate is None:
            return None
        return (self.supply_rate or 0.0) + (self.install_rate or 0.0)

    @property
    def notes_text(self) -> Optional[str]:
        return "; ".join(self.extraction_notes) if self.extraction_notes else None


class SalvagedItem(BaseModel):
    """Minimum shape an object recovered from broken model output must have."""

    model_config = ConfigDict(extra="allow")

    item_code: str = Field(..., min_length=1)
    item_description: str = Field(..., min_length=1)

    @field_validator("item_code", "item_description", mode="before")
    @classmethod
    def require_text(cls, value: Any) -> str:
        if value is None:
            raise ValueError("field is required")
        text = str(value).strip()
        if not text:
            raise ValueError("field must not be blank")
        return text
