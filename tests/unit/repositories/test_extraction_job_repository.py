from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from boq_extraction.repositories.extraction_job_repository import ExtractionJobRepository


@pytest.fixture
def job():
    return SimpleNamespace(
        id=uuid4(),
        status="processing",
        completed_at=None,
        error_message=None,
        total_items_extracted=0,
        items_matched_to_catalog=0,
        rate_only_items=0,
        bills_found=0,
        sections_found=0,
        updated_at=None,
    )


@pytest.fixture
def session(job):
    session = AsyncMock()
    session.execute.return_value = MagicMock(scalar_one_or_none=MagicMock(return_value=job))
    return session


@pytest.mark.asyncio
async def test_mark_completed_can_leave_commit_to_caller(session, job):
    repository = ExtractionJobRepository(session)

    await repository.mark_completed(job.id, total_items_extracted=3, items_matched_to_catalog=1, commit=False)

    assert job.status == "completed"
    assert job.total_items_extracted == 3
    session.flush.assert_awaited_once()
    session.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_mark_failed_commits(session, job):
    repository = ExtractionJobRepository(session)

    await repository.mark_failed(job.id, "Failed to fetch Google Sheet: 404")

    assert job.status == "failed"
    assert job.error_message == "Failed to fetch Google Sheet: 404"
    session.commit.assert_awaited_once()
