"""Request and response models for the HTTP API."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from boq_extraction.schemas.extraction import ColumnMapping


class ResponseMeta(BaseModel):
    timestamp: datetime
    request_id: str
    api_version: str = "v1"


class ApiResponse(BaseModel):
    """Envelope shared by every successful API response."""

    status: bool = True
    message: str = "Operation successful"
    data: dict[str, Any] = Field(default_factory=dict)
    meta: ResponseMeta


class ErrorDetail(BaseModel):
    """RFC 7807 problem details."""

    type: str = "about:blank"
    title: str
    status: int
    detail: str
    instance: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: datetime


class ExtractionJobCreateRequest(BaseModel):
    """Submission of a BOQ document for extraction."""

    job_id: Optional[UUID] = Field(
        default=None, description="Existing pending job to run; a new job is created when omitted or unknown"
    )
    document_name: Optional[str] = Field(default=None, description="Human-readable document name")
    document_text: Optional[str] = Field(
        default=None, description="Flattened export with '=== SHEET: <name> ===' markers and tab-delimited rows"
    )
    google_sheet_id: Optional[str] = Field(default=None, description="Spreadsheet id to fetch instead of text")
    column_mappings: dict[str, ColumnMapping] = Field(
        default_factory=dict, description="Per-sheet column positions keyed by sheet name"
    )

    @model_validator(mode="after")
    def require_source(self) -> "ExtractionJobCreateRequest":
        if not (self.document_text and self.document_text.strip()) and not self.google_sheet_id:
            raise ValueError("Either document_text or google_sheet_id is required")
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "document_name": "Electrical BOQ Rev B",
                "document_text": "=== SHEET: BILL NO. 1 - LIGHTING ===\nDescription\tQty\tUnit\tRate\tAmount\n"
                                 "A1 LED panel 600x600\t10\tnr\t250.00\t2500.00",
            }
        }


class ExtractionJobAcceptedResponse(BaseModel):
    job_id: UUID
    status: str


class ExtractionJobStatusResponse(BaseModel):
    job_id: UUID
    document_name: Optional[str] = None
    source_type: str
    status: str
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    total_items_extracted: int = 0
    items_matched_to_catalog: int = 0
    rate_only_items: int = 0
    bills_found: int = 0
    sections_found: int = 0
    error_message: Optional[str] = None


class ExtractedItemResponse(BaseModel):
    id: UUID
    row_number: int
    bill_number: Optional[int] = None
    bill_name: Optional[str] = None
    section_code: Optional[str] = None
    section_name: Optional[str] = None
    item_code: Optional[str] = None
    item_description: str
    quantity: Optional[float] = None
    unit: Optional[str] = None
    supply_rate: Optional[float] = None
    install_rate: Optional[float] = None
    total_rate: Optional[float] = None
    amount: Optional[float] = None
    is_rate_only: bool = False
    suggested_category_id: Optional[UUID] = None
    suggested_category_name: Optional[str] = None
    matched_material_id: Optional[UUID] = None
    match_confidence: Optional[float] = None
    math_validated: bool = True
    extraction_notes: Optional[str] = None
    review_status: str = "pending"

    model_config = {"from_attributes": True}


class ExtractedItemListResponse(BaseModel):
    job_id: UUID
    total: int
    limit: int
    offset: int
    items: list[ExtractedItemResponse]
