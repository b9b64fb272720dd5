from .reports import (
    FieldError,
    JobAccepted,
    JobStatus,
    ReportKind,
    ReportRequest,
    ValidationErrorResponse,
)
