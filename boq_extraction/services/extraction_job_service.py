"""Acceptance and lookup of extraction jobs."""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from boq_extraction.core.exceptions import JobNotFoundError, JobStateError
from boq_extraction.database.models import ExtractedItemRecord, ExtractionJob
from boq_extraction.repositories.extracted_item_repository import ExtractedItemRepository
from boq_extraction.repositories.extraction_job_repository import ExtractionJobRepository
from boq_extraction.schemas.api import ExtractionJobCreateRequest
from boq_extraction.services.job_runner import JobRunner
from boq_extraction.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ExtractionJobService:
    """Moves a job to processing and hands it to the background runner."""

    def __init__(self, session: AsyncSession, runner: JobRunner):
        self.session = session
        self.runner = runner
        self.job_repository = ExtractionJobRepository(session)
        self.item_repository = ExtractedItemRepository(session)

    async def submit(self, request: ExtractionJobCreateRequest) -> ExtractionJob:
        """Accept a document for extraction.

        An unknown (or omitted) job id creates a new pending job. Only pending
        jobs can start; anything else raises JobStateError.

        Returns:
            The job, committed in ``processing`` state
        """
        source_type = "google_sheet" if request.google_sheet_id else "text"

        job = await self.job_repository.get_by_id(request.job_id) if request.job_id else None
        if job is None:
            job = await self.job_repository.create_job(
                job_id=request.job_id,
                document_name=request.document_name,
                source_type=source_type,
                google_sheet_id=request.google_sheet_id,
            )
            LOGGER.info(f"Created extraction job {job.id}", extra={"source_type": source_type})
        elif job.status != "pending":
            raise JobStateError(
                f"Job {job.id} is {job.status}; only pending jobs can be started",
                status=job.status,
            )

        job = await self.job_repository.mark_processing(job.id)

        self.runner.schedule(
            job.id,
            document_text=request.document_text,
            google_sheet_id=request.google_sheet_id,
            column_mappings=request.column_mappings,
        )
        return job

    async def get_job(self, job_id: uuid.UUID) -> ExtractionJob:
        job = await self.job_repository.get_by_id(job_id)
        if job is None:
            raise JobNotFoundError(f"Extraction job {job_id} not found")
        return job

    async def list_items(
        self, job_id: uuid.UUID, limit: int = 100, offset: int = 0
    ) -> tuple[list[ExtractedItemRecord], int]:
        await self.get_job(job_id)
        items = await self.item_repository.list_for_job(job_id, limit=limit, offset=offset)
        total = await self.item_repository.count(filters={"job_id": job_id})
        return items, total
