from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

from .exceptions import PatrolWarning


class Platform(str, Enum):
    """Source-hosting platform a project or scan location belongs to."""

    GITLAB = "gitlab"
    GITHUB = "github"


class ReportKind(str, Enum):
    SLACK = "slack"
    ISSUE = "issue"


class SeverityScoreKind(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"
    ACKNOWLEDGED = "ACKNOWLEDGED"


class IssueState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class ProjectLocation:
    """A scan target: group, sub-group, organization, user or explicit project."""
    platform: Platform
    path: str

    @property
    def url(self) -> str:
        return f"{self.platform.value}://{self.path}"


@dataclass(frozen=True)
class ReportTarget:
    kind: ReportKind
    name: str = ""


@dataclass(frozen=True)
class Project:
    """A project resolved from a scan location.

    Immutable once listed; identity is stable between the scan and
    publish phases of a patrol.
    """
    id: int | str
    name: str
    namespace: str
    path: str  # path with namespace, e.g. "group/subgroup/project"
    web_url: str
    repo_url: str
    platform: Platform

    @property
    def key(self) -> tuple[Platform, int | str]:
        return (self.platform, self.id)


@dataclass(frozen=True)
class AcknowledgedVuln:
    code: str
    reason: str = ""


@dataclass(frozen=True)
class ProjectConfig:
    """Per-project policy read from the project's own repository."""
    acknowledged: tuple[AcknowledgedVuln, ...] = ()
    report_to_slack_channel: str = ""


@dataclass(frozen=True)
class RawFinding:
    """Scanner-neutral finding, before classification."""
    id: str
    package_name: str
    package_version: str
    package_ecosystem: str
    source: str
    severity: str = ""
    summary: str = ""
    details: str = ""
    fix_available: bool = False
    package_url: str = ""


@dataclass
class Vulnerability:
    id: str
    package_name: str
    package_version: str
    package_ecosystem: str
    source: str
    severity: str
    severity_kind: SeverityScoreKind
    summary: str = ""
    details: str = ""
    fix_available: bool = False
    package_url: str = ""
    ack_reason: str = ""


@dataclass
class Report:
    """Outcome of scanning one project during one patrol."""
    project: Project
    config: ProjectConfig = field(default_factory=ProjectConfig)
    vulnerabilities: list[Vulnerability] = field(default_factory=list)
    is_vulnerable: bool = False
    issue_url: str = ""
    error: bool = False
    outdated_acks: list[str] = field(default_factory=list)

    @classmethod
    def failed(cls, project: Project) -> "Report":
        """Placeholder report for a project whose fetch or scan failed."""
        return cls(project=project, error=True)

    def count_by_kind(self) -> dict[SeverityScoreKind, int]:
        counts = {kind: 0 for kind in SeverityScoreKind}
        for v in self.vulnerabilities:
            counts[v.severity_kind] += 1
        return counts

    def max_severity_kind(self, order: Sequence[SeverityScoreKind]) -> SeverityScoreKind | None:
        """Highest live severity kind in display order, None if nothing is live."""
        present = {v.severity_kind for v in self.vulnerabilities}
        for kind in order:
            if kind is SeverityScoreKind.ACKNOWLEDGED:
                continue
            if kind in present:
                return kind
        return None


@dataclass(frozen=True)
class Issue:
    id: int
    title: str
    state: IssueState
    web_url: str = ""


@dataclass(frozen=True)
class ChatChannel:
    id: str
    name: str


@dataclass(frozen=True)
class ChatMessage:
    """Chat payload: plain-text fallback plus optional rich blocks."""
    text: str
    blocks: tuple[dict[str, Any], ...] = ()


@dataclass
class PatrolArgs:
    locations: list[ProjectLocation]
    report_targets: list[ReportTarget] = field(default_factory=list)
    enable_project_report_to: bool = True
    silent: bool = False
    verbose: bool = False

    @property
    def report_to_issue(self) -> bool:
        return any(t.kind is ReportKind.ISSUE for t in self.report_targets)

    @property
    def slack_channels(self) -> list[str]:
        return [t.name for t in self.report_targets if t.kind is ReportKind.SLACK]


@dataclass
class PatrolResult:
    reports: list[Report]
    warning: PatrolWarning | None = None
