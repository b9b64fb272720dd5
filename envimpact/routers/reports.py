"""Endpoints that schedule species and resource impact reports."""

import logging
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from ..jobs.queue import enqueue_report_job
from ..schemas import JobAccepted, ReportKind, ValidationErrorResponse
from ..services.validation import parse_report_query

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reports"])

_RESPONSES = {
    202: {"model": JobAccepted},
    400: {"model": ValidationErrorResponse},
}


def _schedule_report(
    request: Request,
    kind: ReportKind,
    name: Optional[str],
    region: Optional[str],
    percentage: Optional[str],
) -> JSONResponse:
    report, validation = parse_report_query(
        kind, {"name": name, "region": region, "percentage": percentage}
    )
    if not validation.is_valid:
        logger.info(
            "report_request_rejected",
            extra={"report_kind": kind.value, "fields": [e.field for e in validation.errors]},
        )
        body = ValidationErrorResponse(errors=validation.errors)
        return JSONResponse(body.model_dump(), status_code=400)

    job_id = enqueue_report_job(report)
    logger.info("report_job_scheduled", extra={"job_id": job_id, "report_kind": kind.value})

    status_url = str(request.url_for("get_job", job_id=job_id))
    accepted = JobAccepted(job_id=job_id, status="queued", status_url=status_url)
    return JSONResponse(
        accepted.model_dump(), status_code=202, headers={"Location": status_url}
    )


@router.get("/species", status_code=202, responses=_RESPONSES)
def get_species_env_impact(
    request: Request,
    name: Optional[str] = Query(None, description="The species to report on"),
    region: Optional[str] = Query(None, description="The region to filter on"),
    percentage: Optional[str] = Query(None, description="The percentage to filter on (0-100)"),
) -> JSONResponse:
    """Schedule a species impact report and return its job handle."""

    return _schedule_report(request, ReportKind.species, name, region, percentage)


@router.get("/resources", status_code=202, responses=_RESPONSES)
def get_resources_env_impact(
    request: Request,
    name: Optional[str] = Query(None, description="The resource to report on"),
    region: Optional[str] = Query(None, description="The region to filter on"),
    percentage: Optional[str] = Query(None, description="The percentage to filter on (0-100)"),
) -> JSONResponse:
    """Schedule a resource impact report and return its job handle."""

    return _schedule_report(request, ReportKind.resources, name, region, percentage)
