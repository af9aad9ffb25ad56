from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date
from typing import Callable, Mapping, Sequence

from ..domain.exceptions import (
    ChannelNotFoundError,
    IssueReopenError,
    PatrolWarning,
    SheriffError,
    join_warnings,
)
from ..domain.models import (
    ChatChannel,
    ChatMessage,
    IssueState,
    PatrolArgs,
    Platform,
    Project,
    Report,
)
from ..domain.severity import SeverityThresholds
from ..ports import ChatPort, ConsolePort, LoggerPort, SourcePlatformPort
from .chunking import split_message
from .formatting import (
    format_console_report,
    format_issue_body,
    format_project_message,
    format_summary,
    format_thread_messages,
    format_thread_text,
)
from .pagination import PaginatedFetcher
from .retry import RetryExecutor


ISSUE_TITLE = "Sheriff - 🚨 Vulnerability report"


class IssuePublishError(SheriffError):
    def __init__(self, project: Project, cause: BaseException) -> None:
        self.project = project
        super().__init__(f"failed to publish issue for project {project.path}: {cause}")


class ChatDeliveryError(SheriffError):
    def __init__(self, channel: str, cause: BaseException, project: str | None = None) -> None:
        self.channel = channel
        self.project = project
        target = f"project {project} to channel {channel}" if project else f"channel {channel}"
        super().__init__(f"failed to post report of {target}: {cause}")


class SinkError(SheriffError):
    def __init__(self, sink: str, cause: BaseException) -> None:
        self.sink = sink
        super().__init__(f"{sink} sink failed: {cause}")


def _run_concurrently(
    tasks: Sequence[tuple[str, Callable[[], None]]],
    max_workers: int | None,
    on_error: Callable[[str, Exception], Exception],
) -> list[Exception]:
    """Run labelled tasks in a thread pool and collect wrapped failures."""
    if not tasks:
        return []

    errors: list[Exception] = []
    with ThreadPoolExecutor(max_workers=max_workers or len(tasks), thread_name_prefix="publish") as pool:
        futures = {pool.submit(fn): label for label, fn in tasks}
        for future in as_completed(futures):
            try:
                future.result()
            except Exception as e:
                errors.append(on_error(futures[future], e))
    return errors


class IssuePublisher:
    """Keeps one tracked issue per project in sync with its latest report.

    Transitions are idempotent: publishing the same report twice converges
    to the same tracker state.

        vulnerable, no issue          -> create
        vulnerable, issue (any state) -> update body, force open
        clean, open issue             -> close
        clean, closed or no issue     -> nothing
    """

    def __init__(
        self,
        *,
        platforms: Mapping[Platform, SourcePlatformPort],
        thresholds: SeverityThresholds,
        logger: LoggerPort,
        max_workers: int | None = None,
    ) -> None:
        self._platforms = platforms
        self._thresholds = thresholds
        self._logger = logger
        self._max_workers = max_workers

    def publish(self, reports: Sequence[Report]) -> PatrolWarning | None:
        # a failed scan says nothing about the project's state
        pending = [r for r in reports if not r.error]
        projects = {str(r.project.key): r.project for r in pending}

        def on_error(label: str, e: Exception) -> Exception:
            project = projects[label]
            self._logger.error("Failed to publish issue", project=project.path, error=str(e))
            err = IssuePublishError(project, e)
            err.__cause__ = e
            return err

        tasks = [(str(r.project.key), self._task(r)) for r in pending]
        errors = _run_concurrently(tasks, self._max_workers, on_error)
        return join_warnings("errors occurred when publishing issues", errors)

    def _task(self, report: Report) -> Callable[[], None]:
        return lambda: self.publish_report(report)

    def publish_report(self, report: Report) -> None:
        project = report.project
        platform = self._platforms.get(project.platform)
        if platform is None:
            raise SheriffError(f"no {project.platform.value} client configured")

        issue = platform.find_tracked_issue(project, ISSUE_TITLE)

        if report.is_vulnerable:
            body = format_issue_body(report, self._thresholds)
            if issue is None:
                self._logger.info("Creating issue", project=project.path)
                issue = platform.create_issue(project, ISSUE_TITLE, body)
            else:
                self._logger.info("Updating issue", project=project.path, issue=issue.id, state=issue.state.value)
                issue = platform.update_issue(project, issue.id, body=body, state=IssueState.OPEN)
                if issue.state is not IssueState.OPEN:
                    raise IssueReopenError(f"issue {issue.id} of project {project.path} could not be reopened")
            report.issue_url = issue.web_url
            return

        if issue is not None and issue.state is IssueState.OPEN:
            self._logger.info("Closing issue", project=project.path, issue=issue.id)
            platform.update_issue(project, issue.id, state=IssueState.CLOSED)


class ChannelResolver:
    """Chat channel name -> id lookup with a lock-guarded cache.

    A miss triggers a full, paginated channel listing (each page retried)
    that refreshes the cache. Names absent from a completed listing are
    remembered as missing and fail without listing again. The listing runs
    under the lock so concurrent misses share one listing.
    """

    def __init__(
        self,
        *,
        chat: ChatPort,
        retry: RetryExecutor,
        pager: PaginatedFetcher[ChatChannel] | None = None,
    ) -> None:
        self._chat = chat
        self._retry = retry
        self._pager = pager or PaginatedFetcher()
        self._cache: dict[str, str] = {}
        self._missing: set[str] = set()
        self._lock = threading.Lock()

    def resolve(self, name: str) -> str:
        name = name.lstrip("#")
        with self._lock:
            if name in self._cache:
                return self._cache[name]
            if name in self._missing:
                raise ChannelNotFoundError(name)

            channels = self._pager.fetch_all(self._fetch_page)
            self._cache.update({c.name: c.id for c in channels})

            if name not in self._cache:
                self._missing.add(name)
                raise ChannelNotFoundError(name)
            return self._cache[name]

    def _fetch_page(self, cursor: str | None) -> tuple[list[ChatChannel], str | None]:
        return self._retry.run(lambda: self._chat.list_channels(cursor))


class ChatPublisher:
    """Posts the run summary, its threaded detail and per-project messages."""

    def __init__(
        self,
        *,
        chat: ChatPort,
        resolver: ChannelResolver,
        retry: RetryExecutor,
        thresholds: SeverityThresholds,
        message_limit: int,
        logger: LoggerPort,
        max_workers: int | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._chat = chat
        self._resolver = resolver
        self._retry = retry
        self._thresholds = thresholds
        self._message_limit = message_limit
        self._logger = logger
        self._max_workers = max_workers
        self._today = today

    def publish(
        self,
        reports: Sequence[Report],
        *,
        channels: Sequence[str],
        targets: Sequence[str],
        project_messages: bool,
    ) -> PatrolWarning | None:
        """Deliver to every channel, and to project channels when enabled.

        Each channel and each project message fails independently.
        """
        tasks: list[tuple[str, Callable[[], None]]] = []
        labels: dict[str, tuple[str, str | None]] = {}

        for channel in dict.fromkeys(channels):
            label = f"channel:{channel}"
            labels[label] = (channel, None)
            tasks.append((label, self._channel_task(channel, reports, targets)))

        if project_messages:
            for report in reports:
                channel = report.config.report_to_slack_channel
                if report.error or not channel:
                    continue
                label = f"project:{report.project.key}"
                labels[label] = (channel, report.project.path)
                tasks.append((label, self._project_task(channel, report)))

        def on_error(label: str, e: Exception) -> Exception:
            channel, project = labels[label]
            self._logger.error("Failed to post chat message", channel=channel, project=project, error=str(e))
            err = ChatDeliveryError(channel, e, project=project)
            err.__cause__ = e
            return err

        errors = _run_concurrently(tasks, self._max_workers, on_error)
        return join_warnings("errors occurred when posting chat messages", errors)

    def _channel_task(self, channel: str, reports: Sequence[Report], targets: Sequence[str]) -> Callable[[], None]:
        return lambda: self.post_report(channel, reports, targets)

    def _project_task(self, channel: str, report: Report) -> Callable[[], None]:
        return lambda: self.post_project_report(channel, report)

    def _post(self, channel_id: str, message: ChatMessage, thread_ref: str | None = None) -> str:
        return self._retry.run(lambda: self._chat.post_message(channel_id, message, thread_ref))

    def post_report(self, channel: str, reports: Sequence[Report], targets: Sequence[str]) -> None:
        channel_id = self._resolver.resolve(channel)

        summary = format_summary(reports, targets, self._thresholds, today=self._today())
        self._logger.info("Posting summary", channel=channel)
        thread_ref = self._post(channel_id, summary)

        text = format_thread_text(reports, self._thresholds)
        if not text:
            return
        chunks = split_message(text, self._message_limit)
        self._logger.debug("Posting thread detail", channel=channel, chunks=len(chunks))
        for message in format_thread_messages(chunks):
            self._post(channel_id, message, thread_ref)

    def post_project_report(self, channel: str, report: Report) -> None:
        channel_id = self._resolver.resolve(channel)
        message = format_project_message(report, self._thresholds, today=self._today())
        self._logger.info("Posting project report", channel=channel, project=report.project.path)
        self._post(channel_id, message)


class ConsolePublisher:
    def __init__(self, *, console: ConsolePort, thresholds: SeverityThresholds) -> None:
        self._console = console
        self._thresholds = thresholds

    def publish(self, reports: Sequence[Report]) -> None:
        self._console.write(format_console_report(reports, self._thresholds))


class NotificationPublisher:
    """Delivers reports to the issue tracker, chat and console.

    Issues go first so chat messages can link them. A sink failure is
    recorded and never stops the remaining sinks.
    """

    def __init__(
        self,
        *,
        issues: IssuePublisher,
        chat: ChatPublisher | None,
        console: ConsolePublisher,
        logger: LoggerPort,
    ) -> None:
        self._issues = issues
        self._chat = chat
        self._console = console
        self._logger = logger

    def publish(self, reports: Sequence[Report], args: PatrolArgs) -> PatrolWarning | None:
        errors: list[Exception] = []

        if args.report_to_issue:
            errors.append(self._guard("issue", lambda: self._issues.publish(reports)))

        channels = args.slack_channels
        if channels or args.enable_project_report_to:
            errors.append(self._guard("chat", lambda: self._publish_chat(reports, args)))

        if not args.silent:
            errors.append(self._guard("console", lambda: self._console.publish(reports)))

        return join_warnings("errors occurred when publishing reports", errors)

    def _publish_chat(self, reports: Sequence[Report], args: PatrolArgs) -> PatrolWarning | None:
        if self._chat is None:
            if args.slack_channels:
                raise SheriffError("slack reporting requested but no slack token configured")
            if any(r.config.report_to_slack_channel for r in reports):
                self._logger.warning("Skipping project channel reports, no slack token configured")
            return None

        return self._chat.publish(
            reports,
            channels=args.slack_channels,
            targets=[loc.url for loc in args.locations],
            project_messages=args.enable_project_report_to,
        )

    def _guard(self, sink: str, fn: Callable[[], PatrolWarning | None]) -> Exception | None:
        try:
            return fn()
        except Exception as e:
            self._logger.error("Failed to publish reports", sink=sink, error=str(e))
            err = SinkError(sink, e)
            err.__cause__ = e
            return err
