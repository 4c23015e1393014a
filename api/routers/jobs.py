"""Job status endpoints."""

from fastapi import APIRouter

from api.deps import JobServiceDep
from api.exceptions import NotFoundError
from api.schemas.job import JobStatusResponse
from api.schemas.responses import SuccessResponse

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get(
    "/{job_id}",
    response_model=SuccessResponse[JobStatusResponse],
    summary="Get job status",
)
async def get_job_status(job_id: str, jobs: JobServiceDep) -> SuccessResponse:
    """
    Get the status of a background batch audit.

    Returns the batch result once the job has finished.
    """
    job_info = jobs.get_job_status(job_id)
    if not job_info:
        raise NotFoundError("Job", job_id)
    return SuccessResponse(data=JobStatusResponse(**job_info.to_dict()))
