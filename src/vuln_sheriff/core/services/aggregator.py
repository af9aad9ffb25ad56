from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from ..domain.exceptions import PatrolWarning, join_warnings
from ..domain.models import Report


@dataclass
class ScanOutcome:
    """Result of one project scan task: a report and the error, if any."""
    report: Report
    error: Exception | None = None


class ReportAggregator:
    """Collects per-project outcomes into the final, ordered report list."""

    def aggregate(
        self,
        outcomes: Iterable[ScanOutcome],
        extra_warnings: Sequence[Exception] = (),
    ) -> tuple[list[Report], PatrolWarning | None]:
        """Concatenate, sort and join warnings.

        Error placeholders are kept. Reports are ordered by descending
        vulnerability count only; ties keep their collection order.
        """
        reports: list[Report] = []
        errors: list[Exception] = list(extra_warnings)
        for outcome in outcomes:
            reports.append(outcome.report)
            if outcome.error is not None:
                errors.append(outcome.error)

        reports.sort(key=lambda r: len(r.vulnerabilities), reverse=True)
        return reports, join_warnings("errors occurred when scanning projects", errors)
