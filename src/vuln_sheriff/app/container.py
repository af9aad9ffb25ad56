from __future__ import annotations

from typing import Callable

from dependency_injector import containers, providers

from .config import AppConfig
from ..core.domain.models import Platform
from ..core.domain.severity import SeverityThresholds
from ..core.services import (
    ChannelResolver,
    ChatPublisher,
    ConsolePublisher,
    IssuePublisher,
    NotificationPublisher,
    ProjectLister,
    ReportAggregator,
    ReportBuilder,
    RetryExecutor,
    ScanOrchestrator,
)
from ..core.usecases.patrol import PatrolUseCase
from ..infra.console import TyperConsole
from ..infra.fetchers import GitCloneFetcher, PlatformArchiveFetcher
from ..infra.github import GitHubPlatform
from ..infra.gitlab import GitLabPlatform
from ..infra.logging import PatrolLogger
from ..infra.osv_scanner import OsvScanner
from ..infra.project_config import TomlProjectConfigLoader
from ..infra.slack import SlackClient


def _optional_chat(token: str | None, publisher: Callable[[], ChatPublisher]) -> ChatPublisher | None:
    """Chat delivery exists only when a Slack token is configured."""
    return publisher() if token else None


class Container(containers.DeclarativeContainer):
    """Wires platform clients, scanner and publishers for one patrol run."""

    config = providers.Configuration(pydantic_settings=[AppConfig()])

    # handlers are detached in shutdown_resources()
    logger = providers.Resource(
        PatrolLogger,
        logs_dir=config.directories.logs_dir,
        logger_name=config.logging.logger_name,
        console_output=config.logging.console_output,
        json_file=config.logging.json_file,
        level=config.logging.level,
    )

    thresholds = providers.Singleton(SeverityThresholds.default)

    # Source platforms, keyed by the platform tag carried on projects and locations
    gitlab = providers.Singleton(
        GitLabPlatform,
        token=config.gitlab.token,
        url=config.gitlab.url,
        timeout=config.http.timeout,
    )

    github = providers.Singleton(
        GitHubPlatform,
        token=config.github.token,
        timeout=config.http.timeout,
    )

    platforms = providers.Dict({Platform.GITLAB: gitlab, Platform.GITHUB: github})

    fetcher = providers.Selector(
        config.scan.fetch_mode,
        archive=providers.Singleton(PlatformArchiveFetcher, platforms=platforms),
        clone=providers.Singleton(
            GitCloneFetcher,
            tokens=providers.Dict({Platform.GITLAB: config.gitlab.token, Platform.GITHUB: config.github.token}),
        ),
    )

    scanner = providers.Singleton(
        OsvScanner,
        binary=config.scan.scanner_binary,
        timeout=config.scan.scanner_timeout,
    )

    project_config_loader = providers.Singleton(TomlProjectConfigLoader)

    # Scan pipeline
    lister = providers.Factory(ProjectLister, platforms=platforms, logger=logger)

    builder = providers.Factory(ReportBuilder, thresholds=thresholds)

    aggregator = providers.Factory(ReportAggregator)

    scan_orchestrator = providers.Factory(
        ScanOrchestrator,
        lister=lister,
        fetcher=fetcher,
        scanner=scanner,
        config_loader=project_config_loader,
        builder=builder,
        aggregator=aggregator,
        logger=logger,
        scan_dir=config.directories.scan_dir,
        max_workers=config.scan.max_workers,
    )

    # Publishing
    slack_client = providers.Singleton(
        SlackClient,
        token=config.slack.token,
        timeout=config.http.timeout,
    )

    chat_retry = providers.Factory(
        RetryExecutor,
        max_attempts=config.slack.max_attempts,
        initial_backoff=config.slack.initial_backoff,
        logger=logger,
    )

    channel_resolver = providers.Singleton(ChannelResolver, chat=slack_client, retry=chat_retry)

    chat_publisher = providers.Factory(
        ChatPublisher,
        chat=slack_client,
        resolver=channel_resolver,
        retry=chat_retry,
        thresholds=thresholds,
        message_limit=config.slack.message_limit,
        logger=logger,
    )

    chat = providers.Callable(_optional_chat, token=config.slack.token, publisher=chat_publisher.provider)

    issue_publisher = providers.Factory(
        IssuePublisher,
        platforms=platforms,
        thresholds=thresholds,
        logger=logger,
    )

    console = providers.Singleton(TyperConsole)

    console_publisher = providers.Factory(ConsolePublisher, console=console, thresholds=thresholds)

    notification_publisher = providers.Factory(
        NotificationPublisher,
        issues=issue_publisher,
        chat=chat,
        console=console_publisher,
        logger=logger,
    )

    # Use cases
    patrol_uc = providers.Factory(
        PatrolUseCase,
        orchestrator=scan_orchestrator,
        publisher=notification_publisher,
        logger=logger,
    )
