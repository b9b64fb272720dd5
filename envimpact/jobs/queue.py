from ..schemas import ReportRequest
from ..services.fingerprint import build_key
from ..services.inproc_queue import Q
from ..services.job_store import STORE


def enqueue_report_job(request: ReportRequest) -> str:
    """Register a job for ``request`` and hand it to the worker pool."""

    job_id = STORE.create(request, fingerprint=build_key(request))
    Q.put(job_id)
    return job_id
