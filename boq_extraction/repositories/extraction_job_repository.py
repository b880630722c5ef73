import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from boq_extraction.database.models import ExtractionJob
from boq_extraction.repositories.base_repository import BaseRepository


class ExtractionJobRepository(BaseRepository[ExtractionJob]):
    """Repository for extraction job lifecycle records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, ExtractionJob)

    async def create_job(
        self,
        job_id: Optional[uuid.UUID] = None,
        document_name: Optional[str] = None,
        source_type: str = "text",
        google_sheet_id: Optional[str] = None,
    ) -> ExtractionJob:
        """Create a pending job, using the caller's id when one is given."""
        now = datetime.now(timezone.utc)
        return await self.create(
            id=job_id or uuid.uuid4(),
            document_name=document_name,
            source_type=source_type,
            google_sheet_id=google_sheet_id,
            status="pending",
            total_items_extracted=0,
            items_matched_to_catalog=0,
            rate_only_items=0,
            bills_found=0,
            sections_found=0,
            created_at=now,
            updated_at=now,
        )

    async def mark_processing(self, job_id: uuid.UUID) -> Optional[ExtractionJob]:
        return await self.update(
            job_id,
            status="processing",
            started_at=datetime.now(timezone.utc),
            error_message=None,
        )

    async def mark_completed(
        self,
        job_id: uuid.UUID,
        total_items_extracted: int,
        items_matched_to_catalog: int,
        rate_only_items: int = 0,
        bills_found: int = 0,
        sections_found: int = 0,
        commit: bool = True,
    ) -> Optional[ExtractionJob]:
        return await self.update(
            job_id,
            commit=commit,
            status="completed",
            completed_at=datetime.now(timezone.utc),
            total_items_extracted=total_items_extracted,
            items_matched_to_catalog=items_matched_to_catalog,
            rate_only_items=rate_only_items,
            bills_found=bills_found,
            sections_found=sections_found,
        )

    async def mark_failed(self, job_id: uuid.UUID, error_message: str) -> Optional[ExtractionJob]:
        return await self.update(
            job_id,
            status="failed",
            completed_at=datetime.now(timezone.utc),
            error_message=error_message,
        )
