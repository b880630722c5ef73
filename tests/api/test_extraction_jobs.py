from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi import status

from boq_extraction.api.v1.endpoints.extraction_jobs import get_extraction_job_service
from boq_extraction.core.exceptions import JobNotFoundError, JobStateError
from boq_extraction.main import app
from boq_extraction.services.extraction_job_service import ExtractionJobService


@pytest.fixture
def mock_job_service():
    service = AsyncMock(spec=ExtractionJobService)
    app.dependency_overrides[get_extraction_job_service] = lambda: service
    return service


def make_job(**fields):
    defaults = dict(
        id=uuid4(),
        document_name="BOQ Rev B",
        source_type="text",
        status="completed",
        started_at=datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc),
        completed_at=datetime(2026, 1, 5, 9, 2, tzinfo=timezone.utc),
        total_items_extracted=42,
        items_matched_to_catalog=30,
        rate_only_items=4,
        bills_found=3,
        sections_found=9,
        error_message=None,
    )
    defaults.update(fields)
    return SimpleNamespace(**defaults)


def make_item_record(row_number: int):
    return SimpleNamespace(
        id=uuid4(),
        row_number=row_number,
        bill_number=1,
        bill_name="LIGHTING",
        section_code="A",
        section_name="INTERNAL",
        item_code=f"A{row_number}",
        item_description="LED panel 600x600",
        quantity=10.0,
        unit="NO",
        supply_rate=200.0,
        install_rate=50.0,
        total_rate=250.0,
        amount=2500.0,
        is_rate_only=False,
        suggested_category_id=None,
        suggested_category_name="LT",
        matched_material_id=None,
        match_confidence=None,
        math_validated=True,
        extraction_notes=None,
        review_status="pending",
    )


def test_submit_job_returns_accepted(test_client, mock_job_service):
    job_id = uuid4()
    mock_job_service.submit.return_value = make_job(id=job_id, status="processing")

    response = test_client.post(
        "/api/v1/extraction-jobs",
        json={
            "document_name": "BOQ Rev B",
            "document_text": "=== SHEET: Bill 1 ===\nA1\tLED panel\t10\tnr\t250",
            "column_mappings": {"Bill 1": {"itemCode": 0, "description": 1, "quantity": 2}},
        },
        headers={"X-Correlation-ID": "req-1"},
    )

    assert response.status_code == status.HTTP_202_ACCEPTED
    body = response.json()
    assert body["status"] is True
    assert body["data"] == {"job_id": str(job_id), "status": "processing"}
    assert body["meta"]["request_id"] == "req-1"
    request = mock_job_service.submit.call_args.args[0]
    assert request.column_mappings["Bill 1"].item_code == 0


def test_submit_job_conflict_when_not_pending(test_client, mock_job_service):
    mock_job_service.submit.side_effect = JobStateError("Job is completed", status="completed")

    response = test_client.post(
        "/api/v1/extraction-jobs",
        json={"job_id": str(uuid4()), "document_text": "A1\tLED\t1"},
    )

    assert response.status_code == status.HTTP_409_CONFLICT
    detail = response.json()["detail"]
    assert detail["status"] == 409
    assert detail["title"] == "Extraction Job Not Pending"


@pytest.mark.parametrize("payload", [
    {"document_name": "No source"},
    {"document_text": "   "},
    {"document_text": "A1", "column_mappings": {"Bill 1": {"quantity": -1}}},
])
def test_submit_job_validation_errors(test_client, mock_job_service, payload):
    response = test_client.post("/api/v1/extraction-jobs", json=payload)

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    mock_job_service.submit.assert_not_awaited()


def test_get_job_status(test_client, mock_job_service):
    job = make_job()
    mock_job_service.get_job.return_value = job

    response = test_client.get(f"/api/v1/extraction-jobs/{job.id}")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["job_id"] == str(job.id)
    assert data["status"] == "completed"
    assert data["total_items_extracted"] == 42
    assert data["sections_found"] == 9


def test_get_job_not_found(test_client, mock_job_service):
    job_id = uuid4()
    mock_job_service.get_job.side_effect = JobNotFoundError(f"Extraction job {job_id} not found")

    response = test_client.get(f"/api/v1/extraction-jobs/{job_id}")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"]["instance"] == f"/api/v1/extraction-jobs/{job_id}"


def test_list_items(test_client, mock_job_service):
    job_id = uuid4()
    mock_job_service.list_items.return_value = ([make_item_record(1), make_item_record(2)], 7)

    response = test_client.get(f"/api/v1/extraction-jobs/{job_id}/items?limit=2&offset=0")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["total"] == 7
    assert [item["row_number"] for item in data["items"]] == [1, 2]
    assert data["items"][0]["unit"] == "NO"
    mock_job_service.list_items.assert_awaited_once_with(job_id, limit=2, offset=0)


def test_list_items_rejects_oversized_page(test_client, mock_job_service):
    response = test_client.get(f"/api/v1/extraction-jobs/{uuid4()}/items?limit=1000")
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_list_items_unknown_job(test_client, mock_job_service):
    mock_job_service.list_items.side_effect = JobNotFoundError("Extraction job not found")

    response = test_client.get(f"/api/v1/extraction-jobs/{uuid4()}/items")

    assert response.status_code == status.HTTP_404_NOT_FOUND
