"""In-memory job store for report jobs.

Holds the completion state of scheduled jobs keyed by their handle, protected
by a threading lock for concurrent access from the API and worker threads.
Finished jobs are kept for ``JOB_RETENTION_SECONDS`` after their last update
and the store holds at most ``JOB_MAX_ENTRIES`` jobs; both limits are applied
whenever a new job is created. Queued and processing jobs are never evicted.
"""

import os
import threading
import time
import uuid
from typing import Any, Callable, Dict, Optional

from ..schemas import ReportRequest

STATUSES = ("queued", "processing", "done", "error")
TERMINAL = ("done", "error")

RETENTION_SECONDS = float(os.getenv("JOB_RETENTION_SECONDS", "3600"))
MAX_ENTRIES = int(os.getenv("JOB_MAX_ENTRIES", "10000"))


class JobStore:
    def __init__(
        self,
        retention: float = RETENTION_SECONDS,
        max_entries: int = MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.retention = retention
        self.max_entries = max_entries
        self._clock = clock
        self._jobs: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def _now(self) -> float:
        return self._clock()

    # Basic CRUD helpers -------------------------------------------------

    def get(self, job_id: str) -> Optional[dict]:
        with self._lock:
            job = self._jobs.get(job_id)
            return dict(job) if job else None

    def create(self, request: ReportRequest, fingerprint: str) -> str:
        """Register a queued job for ``request`` and return its handle.

        Every call mints a new handle, including repeats of an identical
        request; deduplication happens in the dispatcher cache.
        """

        job_id = f"job_{uuid.uuid4().hex[:24]}"
        now = self._now()
        with self._lock:
            self._prune(now)
            self._jobs[job_id] = {
                "status": "queued",
                "report_kind": request.report_kind.value,
                "payload": request.model_dump(mode="json"),
                "fingerprint": fingerprint,
                "result": None,
                "error": None,
                "cache_hit": None,
                "created_at": now,
                "updated_at": now,
            }
        return job_id

    def update(self, job_id: str, **patch: Any) -> None:
        status = patch.get("status")
        if status is not None and status not in STATUSES:
            raise ValueError(f"unknown job status: {status}")
        with self._lock:
            if job_id in self._jobs:
                self._jobs[job_id].update(patch, updated_at=self._now())

    def _prune(self, now: float) -> None:
        # caller holds the lock; dict order is creation order
        finished = [jid for jid, job in self._jobs.items() if job["status"] in TERMINAL]
        for jid in finished:
            if now - self._jobs[jid]["updated_at"] >= self.retention:
                del self._jobs[jid]
        # leave room for the job about to be inserted
        overflow = len(self._jobs) + 1 - self.max_entries
        for jid in finished:
            if overflow <= 0:
                break
            if jid in self._jobs:
                del self._jobs[jid]
                overflow -= 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def clear(self) -> None:
        with self._lock:
            self._jobs.clear()


# Global singleton store used by API and workers.
STORE = JobStore()
