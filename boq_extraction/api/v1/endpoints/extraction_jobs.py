from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from boq_extraction.core.database import get_async_session as get_session
from boq_extraction.core.exceptions import JobNotFoundError, JobStateError
from boq_extraction.schemas.api import (
    ApiResponse,
    ExtractedItemListResponse,
    ExtractedItemResponse,
    ExtractionJobAcceptedResponse,
    ExtractionJobCreateRequest,
    ExtractionJobStatusResponse,
)
from boq_extraction.services.extraction_job_service import ExtractionJobService
from boq_extraction.services.job_runner import JobRunner
from boq_extraction.utils.logging import get_logger
from boq_extraction.utils.responses import create_api_response, create_error_detail

LOGGER = get_logger(__name__)

router = APIRouter()


def get_job_runner(request: Request) -> JobRunner:
    return request.app.state.job_runner


async def get_extraction_job_service(
    db_session: Annotated[AsyncSession, Depends(get_session)],
    runner: Annotated[JobRunner, Depends(get_job_runner)],
) -> ExtractionJobService:
    return ExtractionJobService(db_session, runner)


def _not_found(request: Request, error: JobNotFoundError) -> HTTPException:
    detail = create_error_detail(
        title="Extraction Job Not Found",
        status=status.HTTP_404_NOT_FOUND,
        detail=str(error),
        request=request,
    )
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail.model_dump(mode="json"))


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit a BOQ document for extraction",
    operation_id="submit_extraction_job",
)
async def submit_extraction_job(
    request: Request,
    payload: ExtractionJobCreateRequest,
    service: Annotated[ExtractionJobService, Depends(get_extraction_job_service)],
) -> ApiResponse:
    """Accept a document and start extraction in the background."""
    try:
        job = await service.submit(payload)
    except JobStateError as e:
        LOGGER.warning(f"Rejected extraction submission: {e}")
        detail = create_error_detail(
            title="Extraction Job Not Pending",
            status=status.HTTP_409_CONFLICT,
            detail=str(e),
            request=request,
        )
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail.model_dump(mode="json"))

    return create_api_response(
        data=ExtractionJobAcceptedResponse(job_id=job.id, status=job.status),
        message="Extraction started",
        request=request,
    )


@router.get(
    "/{job_id}",
    response_model=ApiResponse,
    summary="Get extraction job status",
    operation_id="get_extraction_job",
)
async def get_extraction_job(
    request: Request,
    job_id: UUID,
    service: Annotated[ExtractionJobService, Depends(get_extraction_job_service)],
) -> ApiResponse:
    try:
        job = await service.get_job(job_id)
    except JobNotFoundError as e:
        raise _not_found(request, e)

    data = ExtractionJobStatusResponse(
        job_id=job.id,
        document_name=job.document_name,
        source_type=job.source_type,
        status=job.status,
        started_at=job.started_at,
        completed_at=job.completed_at,
        total_items_extracted=job.total_items_extracted,
        items_matched_to_catalog=job.items_matched_to_catalog,
        rate_only_items=job.rate_only_items,
        bills_found=job.bills_found,
        sections_found=job.sections_found,
        error_message=job.error_message,
    )
    return create_api_response(data=data, message="Extraction job retrieved", request=request)


@router.get(
    "/{job_id}/items",
    response_model=ApiResponse,
    summary="List items extracted for a job",
    operation_id="list_extracted_items",
)
async def list_extracted_items(
    request: Request,
    job_id: UUID,
    service: Annotated[ExtractionJobService, Depends(get_extraction_job_service)],
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> ApiResponse:
    try:
        items, total = await service.list_items(job_id, limit=limit, offset=offset)
    except JobNotFoundError as e:
        raise _not_found(request, e)

    data = ExtractedItemListResponse(
        job_id=job_id,
        total=total,
        limit=limit,
        offset=offset,
        items=[ExtractedItemResponse.model_validate(item) for item in items],
    )
    return create_api_response(data=data, message="Extracted items retrieved", request=request)
