from fastapi import APIRouter

from boq_extraction.api.v1.endpoints import extraction_jobs

# Create API router
api_router = APIRouter()

api_router.include_router(extraction_jobs.router, prefix="/extraction-jobs", tags=["Extraction Jobs"])

__all__ = ["api_router"]
