"""Status endpoint for scheduled report jobs."""

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from ..schemas import JobStatus
from ..services.job_store import STORE, TERMINAL


router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("/{job_id}", response_model=JobStatus, name="get_job")
def get_job(job_id: str, request: Request) -> JSONResponse:
    job = STORE.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="NOT_FOUND")

    status = JobStatus(
        job_id=job_id,
        status=job["status"],
        report_kind=job["report_kind"],
        fingerprint=job.get("fingerprint"),
        result=job.get("result"),
        error=job.get("error"),
        cache_hit=job.get("cache_hit"),
        created_at=job["created_at"],
        updated_at=job["updated_at"],
    )
    if job["status"] in TERMINAL:
        return JSONResponse(status.model_dump(mode="json"), status_code=200)
    # still running: keep polling the same URL
    return JSONResponse(
        status.model_dump(mode="json"),
        status_code=202,
        headers={"Location": str(request.url)},
    )
