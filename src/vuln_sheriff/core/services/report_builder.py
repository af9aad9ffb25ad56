from __future__ import annotations

from typing import Iterable

from ..domain.models import (
    Project,
    ProjectConfig,
    RawFinding,
    Report,
    SeverityScoreKind,
    Vulnerability,
)
from ..domain.severity import SeverityThresholds


class ReportBuilder:
    """Maps scanner findings into a Report.

    Classifies each finding against the threshold table, then merges the
    project's acknowledgements into the result.
    """

    def __init__(self, *, thresholds: SeverityThresholds) -> None:
        self._thresholds = thresholds

    def build(self, project: Project, config: ProjectConfig, findings: Iterable[RawFinding]) -> Report:
        vulnerabilities = [self._to_vulnerability(f) for f in findings]
        report = Report(
            project=project,
            config=config,
            vulnerabilities=vulnerabilities,
        )
        self.apply_acknowledgements(report, config)
        return report

    def _to_vulnerability(self, finding: RawFinding) -> Vulnerability:
        return Vulnerability(
            id=finding.id,
            package_name=finding.package_name,
            package_version=finding.package_version,
            package_ecosystem=finding.package_ecosystem,
            package_url=finding.package_url,
            source=finding.source,
            severity=finding.severity,
            severity_kind=self._thresholds.classify(finding.severity),
            summary=finding.summary,
            details=finding.details,
            fix_available=finding.fix_available,
        )

    @staticmethod
    def apply_acknowledgements(report: Report, config: ProjectConfig) -> None:
        """Mark acknowledged findings in place and recompute derived fields.

        Acknowledgement overrides score-based classification. Codes present
        in the config but absent from the scan end up in outdated_acks.
        """
        reasons = {ack.code: ack.reason for ack in config.acknowledged}

        found: set[str] = set()
        for vuln in report.vulnerabilities:
            if vuln.id in reasons:
                vuln.severity_kind = SeverityScoreKind.ACKNOWLEDGED
                vuln.ack_reason = reasons[vuln.id]
                found.add(vuln.id)

        report.is_vulnerable = any(
            v.severity_kind is not SeverityScoreKind.ACKNOWLEDGED for v in report.vulnerabilities
        )
        report.outdated_acks = [ack.code for ack in config.acknowledged if ack.code not in found]
