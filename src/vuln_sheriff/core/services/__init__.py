from __future__ import annotations

from .aggregator import ReportAggregator, ScanOutcome
from .chunking import split_message
from .pagination import PaginatedFetcher
from .project_lister import LocationListingError, ProjectLister
from .publishers import (
    ISSUE_TITLE,
    ChannelResolver,
    ChatDeliveryError,
    ChatPublisher,
    ConsolePublisher,
    IssuePublishError,
    IssuePublisher,
    NotificationPublisher,
    SinkError,
)
from .report_builder import ReportBuilder
from .retry import RetryExecutor
from .scan_orchestrator import ProjectScanError, ScanOrchestrator

__all__ = [
    "ReportAggregator",
    "ScanOutcome",
    "split_message",
    "PaginatedFetcher",
    "LocationListingError",
    "ProjectLister",
    "ISSUE_TITLE",
    "ChannelResolver",
    "ChatDeliveryError",
    "ChatPublisher",
    "ConsolePublisher",
    "IssuePublishError",
    "IssuePublisher",
    "NotificationPublisher",
    "SinkError",
    "ReportBuilder",
    "RetryExecutor",
    "ProjectScanError",
    "ScanOrchestrator",
]
