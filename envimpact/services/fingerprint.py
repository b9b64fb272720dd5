"""Cache key derivation for report requests."""

from ..schemas import ReportRequest


def _segment(value) -> str:
    return "" if value is None else str(value)


def build_key(request: ReportRequest) -> str:
    """Return the memoization key for ``request``.

    Fields are concatenated in fixed order (kind, name, region, percentage)
    without separators, so ``Species``/``Lion``/``Africa``/``10`` maps to
    ``SpeciesLionAfrica10``. Absent optional fields contribute an empty
    string: a missing region and ``region=""`` produce the same key.
    """

    return "".join(
        (
            request.report_kind.value,
            request.name,
            _segment(request.region),
            _segment(request.percentage),
        )
    )
