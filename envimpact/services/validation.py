"""Parse and validate report query parameters."""

import re
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple

from ..schemas import FieldError, ReportKind, ReportRequest

_INTEGER = re.compile(r"-?[0-9]+")


@dataclass
class ValidationResult:
    errors: List[FieldError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add(self, field_name: str, message: str) -> None:
        self.errors.append(FieldError(field=field_name, message=message))


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def parse_report_query(
    kind: ReportKind, query: Mapping[str, Optional[str]]
) -> Tuple[Optional[ReportRequest], ValidationResult]:
    """Build a ``ReportRequest`` from raw query values.

    Absent and empty values are treated alike. ``name`` is required; a
    ``percentage`` must be an integer between 0 and 100. The request is only
    returned when validation passes.
    """

    result = ValidationResult()
    name = _clean(query.get("name"))
    region = _clean(query.get("region"))
    raw_percentage = _clean(query.get("percentage"))

    if not name:
        result.add("name", "'name' must not be empty.")

    percentage: Optional[int] = None
    if raw_percentage:
        if not _INTEGER.fullmatch(raw_percentage):
            result.add("percentage", "'percentage' must be an integer.")
        else:
            percentage = int(raw_percentage)
            if not 0 <= percentage <= 100:
                result.add("percentage", "'percentage' must be between 0 and 100.")

    if not result.is_valid:
        return None, result

    request = ReportRequest(
        report_kind=kind,
        name=name,
        region=region or None,
        percentage=percentage,
    )
    return request, result
