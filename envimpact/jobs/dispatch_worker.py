"""Background worker pool that runs scheduled report jobs in-process."""

import logging
import os
import threading
from typing import List

from ..schemas import ReportRequest
from ..services.dispatcher import get_dispatcher
from ..services.inproc_queue import Q
from ..services.job_store import STORE
from ..services.report_producer import ProducerFailure

logger = logging.getLogger(__name__)

WORKER_COUNT = int(os.getenv("REPORT_WORKERS", "4"))


def run_job(job_id: str) -> None:
    """Execute one scheduled job and record its terminal state."""

    job = STORE.get(job_id)
    if not job:
        logger.warning("report_job_missing", extra={"job_id": job_id})
        return

    STORE.update(job_id, status="processing")
    try:
        request = ReportRequest(**job["payload"])
        outcome = get_dispatcher().dispatch_with_info(request)
    except ProducerFailure as exc:
        logger.warning("report_job_failed", extra={"job_id": job_id, "error": str(exc)})
        STORE.update(job_id, status="error", error=exc.code)
    except Exception:
        logger.exception("report_job_crashed", extra={"job_id": job_id})
        STORE.update(job_id, status="error", error="DISPATCH_FAILED")
    else:
        STORE.update(
            job_id,
            status="done",
            result=outcome.result,
            cache_hit=outcome.cache_hit,
        )
        logger.info(
            "report_job_done",
            extra={"job_id": job_id, "cache_hit": outcome.cache_hit},
        )


def worker_loop() -> None:
    while True:
        job_id = Q.get()
        try:
            run_job(job_id)
        finally:
            Q.task_done()


_workers: List[threading.Thread] = []
_workers_lock = threading.Lock()


def ensure_workers_started(count: int = WORKER_COUNT) -> None:
    """Ensure ``count`` worker threads are consuming the job queue."""

    with _workers_lock:
        _workers[:] = [t for t in _workers if t.is_alive()]
        while len(_workers) < max(1, count):
            t = threading.Thread(
                target=worker_loop, name=f"report-worker-{len(_workers)}", daemon=True
            )
            t.start()
            _workers.append(t)
