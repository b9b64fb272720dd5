from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ReportKind(str, Enum):
    """Report families served by the gateway."""

    species = "Species"
    resources = "Resources"


class ReportRequest(BaseModel):
    """Normalized report request handed to the dispatcher."""

    model_config = ConfigDict(frozen=True)

    report_kind: ReportKind
    name: str = Field(..., min_length=1)
    region: Optional[str] = None
    percentage: Optional[int] = Field(default=None, ge=0, le=100)


class FieldError(BaseModel):
    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    """Body returned when a report request is rejected."""

    detail: str = "VALIDATION_FAILED"
    errors: List[FieldError]


JobStatusEnum = Literal["queued", "processing", "done", "error"]


class JobAccepted(BaseModel):
    """Handle payload returned with 202 Accepted."""

    job_id: str
    status: JobStatusEnum = "queued"
    status_url: str


class JobStatus(BaseModel):
    """Current state of a scheduled report job."""

    job_id: str
    status: JobStatusEnum
    report_kind: ReportKind
    fingerprint: Optional[str] = None
    result: Optional[str] = None
    error: Optional[str] = None
    cache_hit: Optional[bool] = None
    created_at: float
    updated_at: float
