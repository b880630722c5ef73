"""Background execution of extraction jobs."""

import asyncio
import uuid
from collections.abc import Callable, Mapping
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from boq_extraction.core.config import Settings, settings as default_settings
from boq_extraction.core.database import async_session_maker
from boq_extraction.core.llm_client import create_llm_client
from boq_extraction.repositories.extracted_item_repository import ExtractedItemRepository
from boq_extraction.repositories.extraction_job_repository import ExtractionJobRepository
from boq_extraction.repositories.reference_data_repository import ReferenceDataRepository
from boq_extraction.schemas.extraction import ColumnMapping
from boq_extraction.services.pipeline.extraction_pipeline import ExtractionPipeline, PipelineResult
from boq_extraction.services.sheet_source import GoogleSheetSource
from boq_extraction.utils.logging import get_logger

LOGGER = get_logger(__name__)


class JobRunner:
    """Runs pipelines as asyncio tasks, each with its own database session.

    Task references are held until completion so they are not garbage
    collected mid-run, and outstanding tasks are cancelled on shutdown.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] = async_session_maker,
        app_settings: Optional[Settings] = None,
    ):
        self.session_factory = session_factory
        self.settings = app_settings or default_settings
        self._llm_client = None
        self._llm_client_ready = False
        self._tasks: set[asyncio.Task] = set()

    @property
    def llm_client(self):
        if not self._llm_client_ready:
            self._llm_client = create_llm_client(self.settings.llm)
            self._llm_client_ready = True
        return self._llm_client

    @property
    def active_jobs(self) -> int:
        return len(self._tasks)

    def build_pipeline(self, session: AsyncSession) -> ExtractionPipeline:
        return ExtractionPipeline(
            job_repository=ExtractionJobRepository(session),
            item_repository=ExtractedItemRepository(session),
            reference_repository=ReferenceDataRepository(session),
            llm_client=self.llm_client,
            extraction_settings=self.settings.extraction,
            llm_settings=self.settings.llm,
            sheet_source=GoogleSheetSource(self.settings.google_sheets),
        )

    def schedule(
        self,
        job_id: uuid.UUID,
        document_text: Optional[str] = None,
        google_sheet_id: Optional[str] = None,
        column_mappings: Optional[Mapping[str, ColumnMapping]] = None,
    ) -> asyncio.Task:
        task = asyncio.create_task(
            self._run(job_id, document_text, google_sheet_id, column_mappings),
            name=f"extraction-job-{job_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        LOGGER.info(f"Scheduled extraction job {job_id}", extra={"active_jobs": len(self._tasks)})
        return task

    async def _run(
        self,
        job_id: uuid.UUID,
        document_text: Optional[str],
        google_sheet_id: Optional[str],
        column_mappings: Optional[Mapping[str, ColumnMapping]],
    ) -> PipelineResult:
        async with self.session_factory() as session:
            pipeline = self.build_pipeline(session)
            return await pipeline.run(
                job_id,
                document_text=document_text,
                google_sheet_id=google_sheet_id,
                column_mappings=column_mappings,
            )

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            LOGGER.warning(f"Task {task.get_name()} was cancelled")
            return
        error = task.exception()
        if error is not None:
            LOGGER.error(f"Task {task.get_name()} crashed: {error}", exc_info=error)

    async def shutdown(self) -> None:
        """Cancel outstanding jobs and wait for them to unwind."""
        if not self._tasks:
            return
        LOGGER.info(f"Cancelling {len(self._tasks)} running extraction jobs")
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
