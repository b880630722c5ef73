"""SQLAlchemy models for all database tables."""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    TIMESTAMP,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from boq_extraction.core.database import Base


class ExtractionJob(Base):
    """One submission of a BOQ document for extraction."""

    __tablename__ = "extraction_jobs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_name: Mapped[str | None] = mapped_column(String, nullable=True)
    source_type: Mapped[str] = mapped_column(
        String, nullable=False, default="text"
    )  # text | google_sheet
    google_sheet_id: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default="pending"
    )  # pending | processing | completed | failed
    started_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    total_items_extracted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    items_matched_to_catalog: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rate_only_items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bills_found: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sections_found: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()"
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()", onupdate=datetime.utcnow
    )

    items: Mapped[list["ExtractedItemRecord"]] = relationship(
        "ExtractedItemRecord", back_populates="job", cascade="all, delete-orphan"
    )


class ExtractedItemRecord(Base):
    """A persisted BOQ line item."""

    __tablename__ = "extracted_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("extraction_jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    row_number: Mapped[int] = mapped_column(Integer, nullable=False)
    bill_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bill_name: Mapped[str | None] = mapped_column(String, nullable=True)
    section_code: Mapped[str | None] = mapped_column(String, nullable=True)
    section_name: Mapped[str | None] = mapped_column(String, nullable=True)
    item_code: Mapped[str | None] = mapped_column(String, nullable=True)
    item_description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[float | None] = mapped_column(Float, nullable=True)
    unit: Mapped[str | None] = mapped_column(String, nullable=True)
    supply_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    install_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    supply_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    install_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    prime_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    profit_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_rate_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    suggested_category_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("material_categories.id"), nullable=True
    )
    suggested_category_name: Mapped[str | None] = mapped_column(String, nullable=True)
    matched_material_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("master_materials.id"), nullable=True
    )
    match_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    math_validated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    raw_data: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    extraction_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    review_status: Mapped[str] = mapped_column(
        String, nullable=False, default="pending"
    )  # pending | approved | rejected
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()"
    )

    job: Mapped["ExtractionJob"] = relationship("ExtractionJob", back_populates="items")


class MaterialCategory(Base):
    """Category registry used for classification (read-only here)."""

    __tablename__ = "material_categories"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    code: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()"
    )


class MasterMaterial(Base):
    """Material catalog entry (read-only here)."""

    __tablename__ = "master_materials"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    code: Mapped[str] = mapped_column(String, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("material_categories.id"), nullable=True
    )
    unit: Mapped[str | None] = mapped_column(String, nullable=True)
    standard_supply_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    standard_install_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()"
    )
