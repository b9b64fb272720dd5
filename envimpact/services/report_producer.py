"""Report producers: the collaborators that actually build a report.

A producer turns a ``ReportRequest`` into an opaque result descriptor
(typically a file name). ``HttpReportProducer`` delegates to a remote
report service; ``LocalReportProducer`` renders a small HTML report for
development when no remote service is configured.
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import requests
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..schemas import ReportRequest

logger = logging.getLogger(__name__)

PRODUCER_URL = os.getenv("REPORT_PRODUCER_URL")
PRODUCER_TIMEOUT = float(os.getenv("REPORT_PRODUCER_TIMEOUT", "120"))
REPORTS_DIR = Path(os.getenv("REPORTS_DIR") or Path(os.getenv("HOME", "/opt/app")) / "data" / "reports")

_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "reports"


class ProducerFailure(RuntimeError):
    """Raised when a report could not be produced."""

    code = "PRODUCER_FAILED"


class ProducerTimeout(ProducerFailure):
    """Raised when the producer did not answer within its timeout."""

    code = "PRODUCER_TIMEOUT"


def to_domain(request: ReportRequest) -> Dict[str, Any]:
    """Map a request onto the payload shape the report service expects."""

    return {
        "reportName": request.report_kind.value,
        "name": request.name,
        "region": request.region,
        "percentage": request.percentage,
    }


class ReportProducer:
    def generate(self, request: ReportRequest) -> str:
        raise NotImplementedError


class HttpReportProducer(ReportProducer):
    """Calls a remote report service over HTTP."""

    def __init__(
        self,
        base_url: str,
        timeout: float = PRODUCER_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self._session = session or requests.Session()

    def generate(self, request: ReportRequest) -> str:
        body = to_domain(request)
        try:
            r = self._session.post(self.base_url, json=body, timeout=self.timeout)
            r.raise_for_status()
        except requests.Timeout as exc:
            raise ProducerTimeout(f"report service timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise ProducerFailure(f"report service error: {exc}") from exc

        result = _extract_result(r)
        if not result:
            raise ProducerFailure("report service returned an empty result")
        return result


def _extract_result(response: requests.Response) -> str:
    content_type = response.headers.get("Content-Type", "")
    if "json" in content_type:
        try:
            data = response.json()
        except ValueError as exc:
            raise ProducerFailure("report service returned invalid JSON") from exc
        if isinstance(data, str):
            return data.strip()
        if isinstance(data, dict):
            for key in ("file", "filename", "result"):
                if data.get(key):
                    return str(data[key])
        return ""
    return response.text.strip()


class LocalReportProducer(ReportProducer):
    """Renders an HTML report into ``out_dir`` and returns its file name."""

    def __init__(self, out_dir: Path = REPORTS_DIR) -> None:
        self.out_dir = Path(out_dir)
        self._env = Environment(
            loader=FileSystemLoader(str(_TEMPLATES_DIR)), autoescape=select_autoescape()
        )

    def generate(self, request: ReportRequest) -> str:
        filename = f"{request.report_kind.value.lower()}_{uuid.uuid4().hex[:16]}.html"
        html = self._env.get_template("env_impact.html.j2").render(
            report=to_domain(request),
            generated_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        )
        try:
            self.out_dir.mkdir(parents=True, exist_ok=True)
            (self.out_dir / filename).write_text(html, encoding="utf-8")
        except OSError as exc:
            raise ProducerFailure(f"could not write report: {exc}") from exc
        return filename


def default_producer() -> ReportProducer:
    if PRODUCER_URL:
        logger.info("report_producer_http", extra={"url": PRODUCER_URL})
        return HttpReportProducer(PRODUCER_URL)
    logger.info("report_producer_local", extra={"out_dir": str(REPORTS_DIR)})
    return LocalReportProducer()
