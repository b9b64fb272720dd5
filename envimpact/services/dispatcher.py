"""Cache-aware dispatch of report requests to the report producer.

The dispatcher consults the memoization cache before calling the producer and
stores every successful result under the request fingerprint. Failures are
never cached. Concurrent misses for the same fingerprint are collapsed into a
single producer call: the first caller builds, later callers wait for its
outcome.
"""

import logging
import os
import threading
from dataclasses import dataclass
from typing import Dict, Optional

from ..schemas import ReportRequest
from .fingerprint import build_key
from .memo_cache import CacheUnavailable, MemoCache, get_cache
from .report_producer import ProducerFailure, ProducerTimeout, ReportProducer, default_producer

logger = logging.getLogger(__name__)

SINGLEFLIGHT_WAIT_SECONDS = float(os.getenv("SINGLEFLIGHT_WAIT_SECONDS", "300"))


@dataclass
class DispatchOutcome:
    result: str
    cache_hit: bool
    fingerprint: str


class _InFlight:
    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: Optional[str] = None
        self.error: Optional[ProducerFailure] = None


class JobDispatcher:
    def __init__(
        self,
        cache: MemoCache,
        producer: ReportProducer,
        ttl: Optional[float] = None,
        wait_timeout: float = SINGLEFLIGHT_WAIT_SECONDS,
    ) -> None:
        self.cache = cache
        self.producer = producer
        self.ttl = ttl
        self.wait_timeout = wait_timeout
        self._inflight: Dict[str, _InFlight] = {}
        self._lock = threading.Lock()

    def dispatch(self, request: ReportRequest) -> str:
        """Return the report result for ``request``, building it on a miss."""

        return self.dispatch_with_info(request).result

    def dispatch_with_info(self, request: ReportRequest) -> DispatchOutcome:
        key = build_key(request)

        cached = self._cache_get(key)
        if cached:
            logger.info("report_cache_hit", extra={"cache_key": key})
            return DispatchOutcome(result=cached, cache_hit=True, fingerprint=key)

        with self._lock:
            flight = self._inflight.get(key)
            leader = flight is None
            if leader:
                flight = _InFlight()
                self._inflight[key] = flight

        if not leader:
            return self._wait_for(key, flight)

        try:
            # another leader may have finished between the first lookup and the lock
            cached = self._cache_get(key)
            if cached:
                flight.result = cached
                logger.info("report_cache_hit", extra={"cache_key": key})
                return DispatchOutcome(result=cached, cache_hit=True, fingerprint=key)

            logger.info("report_cache_miss", extra={"cache_key": key})
            result = self._produce(key, request)
            self._cache_set(key, result)
            flight.result = result
            return DispatchOutcome(result=result, cache_hit=False, fingerprint=key)
        except ProducerFailure as exc:
            flight.error = exc
            raise
        finally:
            with self._lock:
                self._inflight.pop(key, None)
            flight.done.set()

    def _produce(self, key: str, request: ReportRequest) -> str:
        try:
            result = self.producer.generate(request)
        except ProducerFailure:
            logger.exception("report_producer_failed", extra={"cache_key": key})
            raise
        except Exception as exc:
            logger.exception("report_producer_failed", extra={"cache_key": key})
            raise ProducerFailure(str(exc)) from exc
        if not result:
            raise ProducerFailure("report producer returned an empty result")
        return result

    def _wait_for(self, key: str, flight: _InFlight) -> DispatchOutcome:
        logger.info("report_build_in_flight", extra={"cache_key": key})
        if not flight.done.wait(self.wait_timeout):
            raise ProducerTimeout(f"gave up waiting for in-flight build of {key}")
        if flight.error is not None:
            shared = ProducerFailure(str(flight.error))
            shared.code = flight.error.code
            raise shared from flight.error
        if not flight.result:
            raise ProducerFailure(f"in-flight build of {key} ended without a result")
        return DispatchOutcome(result=flight.result, cache_hit=True, fingerprint=key)

    def _cache_get(self, key: str) -> Optional[str]:
        try:
            return self.cache.get(key)
        except CacheUnavailable:
            logger.exception("report_cache_get_failed", extra={"cache_key": key})
            return None

    def _cache_set(self, key: str, value: str) -> None:
        try:
            self.cache.set(key, value, self.ttl)
        except CacheUnavailable:
            logger.exception("report_cache_set_failed", extra={"cache_key": key})


_dispatcher: Optional[JobDispatcher] = None
_dispatcher_lock = threading.Lock()


def get_dispatcher() -> JobDispatcher:
    global _dispatcher
    with _dispatcher_lock:
        if _dispatcher is None:
            _dispatcher = JobDispatcher(cache=get_cache(), producer=default_producer())
        return _dispatcher


def configure_dispatcher(dispatcher: Optional[JobDispatcher]) -> None:
    """Replace the process-wide dispatcher; ``None`` rebuilds the default lazily."""

    global _dispatcher
    with _dispatcher_lock:
        _dispatcher = dispatcher
