from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

from .domain.models import (
    ChatChannel,
    ChatMessage,
    Issue,
    IssueState,
    Project,
    ProjectConfig,
    RawFinding,
)


class SourcePlatformPort(Protocol):
    """Port for one source-hosting platform (GitLab, GitHub).

    Listing, archive download and issue tracking all live on the same
    adapter; the adapter is selected by the platform tag of a Project or
    ProjectLocation.
    """

    def get_projects(self, path: str) -> list[Project]:
        """Resolve a group/organization/user/project path to its projects.

        Raises:
            Exception: Any failure; the caller records it as a warning.
        """
        ...

    def download(self, project: Project, dest: Path) -> None:
        """Materialize the project source tree into dest."""
        ...

    def find_tracked_issue(self, project: Project, title: str) -> Issue | None:
        """Return the issue with exactly this title (open or closed), if any."""
        ...

    def create_issue(self, project: Project, title: str, body: str) -> Issue:
        ...

    def update_issue(
        self,
        project: Project,
        issue_id: int,
        *,
        body: str | None = None,
        state: IssueState | None = None,
    ) -> Issue:
        ...


class SourceFetcherPort(Protocol):
    def fetch(self, project: Project, dest: Path) -> None:
        ...


class ScannerPort(Protocol):
    """Port for the external vulnerability scanner (opaque)."""

    def scan(self, directory: Path) -> Any:
        """Run the scanner against a directory and return its raw output."""
        ...

    def to_findings(self, project: Project, raw: Any) -> list[RawFinding]:
        ...


class ProjectConfigLoaderPort(Protocol):
    def load(self, project: Project, directory: Path) -> ProjectConfig:
        ...


class ChatPort(Protocol):
    """Port for the chat platform.

    Both methods may raise RateLimitedError carrying the wait required by
    the service.
    """

    def post_message(self, channel_id: str, message: ChatMessage, thread_ref: str | None = None) -> str:
        """Post a message and return its identifier (usable as thread_ref)."""
        ...

    def list_channels(self, cursor: str | None = None) -> tuple[list[ChatChannel], str | None]:
        ...


class ConsolePort(Protocol):
    def write(self, text: str) -> None:
        ...


class LoggerPort(Protocol):
    """Port for structured logging.

    Keyword arguments are attached to the record as structured fields.
    """

    def debug(self, message: str, **kwargs: Any) -> None:
        ...

    def info(self, message: str, **kwargs: Any) -> None:
        ...

    def warning(self, message: str, **kwargs: Any) -> None:
        ...

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        ...

    def exception(self, message: str, **kwargs: Any) -> None:
        ...
