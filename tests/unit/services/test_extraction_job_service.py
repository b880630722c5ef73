"""Tests for job acceptance and lookup."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from boq_extraction.core.exceptions import JobNotFoundError, JobStateError
from boq_extraction.schemas.api import ExtractionJobCreateRequest
from boq_extraction.schemas.extraction import ColumnMapping
from boq_extraction.services.extraction_job_service import ExtractionJobService


@pytest.fixture
def runner():
    return MagicMock()


@pytest.fixture
def service(runner):
    service = ExtractionJobService(AsyncMock(), runner)
    service.job_repository = AsyncMock()
    service.item_repository = AsyncMock()
    return service


def make_job(status="pending", **fields):
    return SimpleNamespace(id=fields.pop("id", uuid4()), status=status, **fields)


@pytest.mark.asyncio
async def test_submit_creates_unknown_job_and_schedules(service, runner):
    job_id = uuid4()
    service.job_repository.get_by_id.return_value = None
    service.job_repository.create_job.return_value = make_job(id=job_id)
    service.job_repository.mark_processing.return_value = make_job(id=job_id, status="processing")
    mappings = {"Bill 1": ColumnMapping(description=1, quantity=2)}
    request = ExtractionJobCreateRequest(
        job_id=job_id,
        document_name="BOQ Rev A",
        document_text="=== SHEET: Bill 1 ===\nA1\tLED\t1\tnr\t10",
        column_mappings=mappings,
    )

    job = await service.submit(request)

    assert job.status == "processing"
    service.job_repository.create_job.assert_awaited_once_with(
        job_id=job_id,
        document_name="BOQ Rev A",
        source_type="text",
        google_sheet_id=None,
    )
    service.job_repository.mark_processing.assert_awaited_once_with(job_id)
    runner.schedule.assert_called_once_with(
        job_id,
        document_text=request.document_text,
        google_sheet_id=None,
        column_mappings=mappings,
    )


@pytest.mark.asyncio
async def test_submit_without_job_id_creates_job(service):
    created = make_job()
    service.job_repository.create_job.return_value = created
    service.job_repository.mark_processing.return_value = make_job(id=created.id, status="processing")

    await service.submit(ExtractionJobCreateRequest(google_sheet_id="abc123"))

    service.job_repository.get_by_id.assert_not_awaited()
    assert service.job_repository.create_job.call_args.kwargs["source_type"] == "google_sheet"


@pytest.mark.asyncio
async def test_submit_starts_existing_pending_job(service, runner):
    existing = make_job()
    service.job_repository.get_by_id.return_value = existing
    service.job_repository.mark_processing.return_value = make_job(id=existing.id, status="processing")

    await service.submit(ExtractionJobCreateRequest(job_id=existing.id, document_text="A1\tLED\t1"))

    service.job_repository.create_job.assert_not_awaited()
    runner.schedule.assert_called_once()


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["processing", "completed", "failed"])
async def test_submit_rejects_non_pending_job(service, runner, status):
    existing = make_job(status=status)
    service.job_repository.get_by_id.return_value = existing

    with pytest.raises(JobStateError) as exc_info:
        await service.submit(ExtractionJobCreateRequest(job_id=existing.id, document_text="A1\tLED\t1"))

    assert exc_info.value.status == status
    service.job_repository.mark_processing.assert_not_awaited()
    runner.schedule.assert_not_called()


@pytest.mark.asyncio
async def test_get_job_not_found(service):
    service.job_repository.get_by_id.return_value = None

    with pytest.raises(JobNotFoundError):
        await service.get_job(uuid4())


@pytest.mark.asyncio
async def test_list_items_returns_page_and_total(service):
    job = make_job(status="completed")
    service.job_repository.get_by_id.return_value = job
    service.item_repository.list_for_job.return_value = ["item-1", "item-2"]
    service.item_repository.count.return_value = 12

    items, total = await service.list_items(job.id, limit=2, offset=10)

    assert items == ["item-1", "item-2"]
    assert total == 12
    service.item_repository.list_for_job.assert_awaited_once_with(job.id, limit=2, offset=10)
    service.item_repository.count.assert_awaited_once_with(filters={"job_id": job.id})
