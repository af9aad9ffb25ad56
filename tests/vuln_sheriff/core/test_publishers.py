import threading

import pytest

from vuln_sheriff.core.domain.exceptions import ChannelNotFoundError, IssueReopenError, RateLimitedError
from vuln_sheriff.core.domain.models import (
    ChatChannel,
    IssueState,
    PatrolArgs,
    Platform,
    ProjectConfig,
    ProjectLocation,
    Report,
    ReportKind,
    ReportTarget,
)
from vuln_sheriff.core.domain.severity import SeverityThresholds
from vuln_sheriff.core.services import (
    ISSUE_TITLE,
    ChannelResolver,
    ChatDeliveryError,
    ChatPublisher,
    ConsolePublisher,
    IssuePublishError,
    IssuePublisher,
    NotificationPublisher,
    ReportBuilder,
    RetryExecutor,
    SinkError,
)

from fakes import FakeChat, FakeConsole, FakeLogger, FakePlatform, make_finding, make_project

TABLE = SeverityThresholds.default()


def vulnerable_report(name="app", id=1, config=ProjectConfig()):
    return ReportBuilder(thresholds=TABLE).build(make_project(name, id=id), config, [make_finding("A", "9.5")])


def clean_report(name="app", id=1, config=ProjectConfig()):
    return ReportBuilder(thresholds=TABLE).build(make_project(name, id=id), config, [])


def issue_publisher(platform):
    return IssuePublisher(platforms={Platform.GITLAB: platform}, thresholds=TABLE, logger=FakeLogger())


def no_retry():
    return RetryExecutor(max_attempts=1, initial_backoff=0, sleep=lambda s: None)


# Issue tracker


def test_issue_lifecycle_is_idempotent():
    platform = FakePlatform()
    publisher = issue_publisher(platform)

    report = vulnerable_report()
    assert publisher.publish([report]) is None
    assert platform.count("create") == 1
    assert platform.count("update") == 0
    assert platform.count("close") == 0
    assert report.issue_url.endswith("/-/issues/1")

    platform.calls.clear()
    publisher.publish([vulnerable_report()])
    assert platform.count("create") == 0
    assert platform.count("update") == 1
    assert platform.issues[report.project.key].state is IssueState.OPEN

    platform.calls.clear()
    publisher.publish([clean_report()])
    assert platform.count("close") == 1
    assert platform.issues[report.project.key].state is IssueState.CLOSED

    platform.calls.clear()
    publisher.publish([clean_report()])
    assert platform.count("close") == 0
    assert platform.count("update") == 0


def test_closed_issue_is_reopened_when_vulnerable_again():
    platform = FakePlatform()
    publisher = issue_publisher(platform)
    publisher.publish([vulnerable_report()])
    publisher.publish([clean_report()])

    platform.calls.clear()
    publisher.publish([vulnerable_report()])

    assert platform.count("create") == 0
    assert platform.count("update") == 1
    assert platform.issues[make_project("app", id=1).key].state is IssueState.OPEN


def test_reopen_that_does_not_stick_is_an_error():
    platform = FakePlatform()
    publisher = issue_publisher(platform)
    publisher.publish([vulnerable_report()])
    publisher.publish([clean_report()])
    platform.sticky_closed = True

    warning = publisher.publish([vulnerable_report()])

    (err,) = warning.leaves()
    assert isinstance(err, IssuePublishError)
    assert isinstance(err.__cause__, IssueReopenError)


def test_clean_project_without_issue_is_noop():
    platform = FakePlatform()

    assert issue_publisher(platform).publish([clean_report()]) is None
    assert platform.calls == [("find", "group/app")]


def test_failed_scans_do_not_touch_issues():
    platform = FakePlatform()

    issue_publisher(platform).publish([Report.failed(make_project("app", id=1))])

    assert platform.calls == []


def test_issue_failures_are_isolated_per_project():
    platform = FakePlatform()

    def broken_find(project, title):
        if project.name == "bad":
            raise ConnectionError("tracker down")
        return None

    platform.find_tracked_issue = broken_find
    reports = [vulnerable_report("good", id=1), vulnerable_report("bad", id=2)]

    warning = issue_publisher(platform).publish(reports)

    (err,) = warning.leaves()
    assert err.project.name == "bad"
    assert reports[0].issue_url
    assert not reports[1].issue_url


def test_issue_title_is_fixed():
    platform = FakePlatform()
    issue_publisher(platform).publish([vulnerable_report()])

    assert platform.issues[make_project("app", id=1).key].title == ISSUE_TITLE


# Chat


CHANNELS = [ChatChannel(f"C{i}", f"chan-{i}") for i in range(5)]


def chat_publisher(chat, *, limit=3000, retry=None):
    retry = retry or no_retry()
    return ChatPublisher(
        chat=chat,
        resolver=ChannelResolver(chat=chat, retry=retry),
        retry=retry,
        thresholds=TABLE,
        message_limit=limit,
        logger=FakeLogger(),
    )


def test_resolver_paginates_and_caches():
    chat = FakeChat(CHANNELS, page_size=2)
    resolver = ChannelResolver(chat=chat, retry=no_retry())

    assert resolver.resolve("chan-4") == "C4"
    assert chat.list_calls == 3
    assert resolver.resolve("#chan-1") == "C1"
    assert chat.list_calls == 3


def test_resolver_unknown_channel():
    resolver = ChannelResolver(chat=FakeChat(CHANNELS), retry=no_retry())

    with pytest.raises(ChannelNotFoundError):
        resolver.resolve("nope")


def test_resolver_remembers_missing_channels():
    chat = FakeChat(CHANNELS, page_size=len(CHANNELS))
    resolver = ChannelResolver(chat=chat, retry=no_retry())

    for _ in range(5):
        with pytest.raises(ChannelNotFoundError):
            resolver.resolve("typo-channel")

    assert chat.list_calls == 1
    assert resolver.resolve("chan-2") == "C2"
    assert chat.list_calls == 1


def test_resolver_is_safe_under_concurrency():
    chat = FakeChat(CHANNELS, page_size=1)
    resolver = ChannelResolver(chat=chat, retry=no_retry())
    results = []

    threads = [threading.Thread(target=lambda: results.append(resolver.resolve("chan-3"))) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == ["C3"] * 8
    assert chat.list_calls == len(CHANNELS)


def test_summary_then_threaded_chunks():
    chat = FakeChat(CHANNELS)
    reports = [vulnerable_report(f"proj{i}", id=i) for i in range(30)]

    warning = chat_publisher(chat, limit=200).publish(
        reports, channels=["chan-0"], targets=["gitlab://group"], project_messages=False
    )

    assert warning is None
    posts = chat.posts_to("C0")
    summary, summary_ref = posts[0]
    assert summary_ref is None
    assert summary.blocks[0]["type"] == "header"
    thread = posts[1:]
    assert len(thread) > 1
    assert all(ref == "ts-1" for _, ref in thread)
    assert all(len(m.text) <= 200 for m, _ in thread)


def test_rate_limited_post_is_retried():
    chat = FakeChat(CHANNELS)
    chat.failures["C0"] = [RateLimitedError(3)]
    sleeps = []
    retry = RetryExecutor(max_attempts=3, initial_backoff=1, sleep=sleeps.append)

    warning = chat_publisher(chat, retry=retry).publish(
        [vulnerable_report()], channels=["chan-0"], targets=[], project_messages=False
    )

    assert warning is None
    assert sleeps == [3]
    assert len(chat.posts_to("C0")) == 2


def test_channel_failure_does_not_block_other_channels():
    chat = FakeChat(CHANNELS)

    warning = chat_publisher(chat).publish(
        [vulnerable_report()], channels=["missing", "chan-1"], targets=[], project_messages=False
    )

    (err,) = warning.leaves()
    assert isinstance(err, ChatDeliveryError)
    assert err.channel == "missing"
    assert chat.posts_to("C1")


def test_project_messages_go_to_configured_channels():
    chat = FakeChat(CHANNELS)
    routed = vulnerable_report("routed", id=1, config=ProjectConfig(report_to_slack_channel="chan-2"))
    plain = vulnerable_report("plain", id=2)

    chat_publisher(chat).publish([routed, plain], channels=[], targets=[], project_messages=True)

    (message, ref), = chat.posts_to("C2")
    assert ref is None
    assert "group/routed" in message.text
    assert len(chat.posts) == 1


def test_project_messages_disabled():
    chat = FakeChat(CHANNELS)
    routed = vulnerable_report("routed", config=ProjectConfig(report_to_slack_channel="chan-2"))

    chat_publisher(chat).publish([routed], channels=[], targets=[], project_messages=False)

    assert chat.posts == []


# Notification publisher


def args(**kwargs):
    defaults = dict(locations=[ProjectLocation(Platform.GITLAB, "group")])
    defaults.update(kwargs)
    return PatrolArgs(**defaults)


def test_console_sink_respects_silent():
    console = FakeConsole()
    publisher = NotificationPublisher(
        issues=issue_publisher(FakePlatform()),
        chat=None,
        console=ConsolePublisher(console=console, thresholds=TABLE),
        logger=FakeLogger(),
    )

    publisher.publish([vulnerable_report()], args(enable_project_report_to=False))
    publisher.publish([vulnerable_report()], args(silent=True, enable_project_report_to=False))

    assert len(console.output) == 1


def test_issue_sink_runs_before_chat_so_links_are_available():
    platform = FakePlatform()
    chat = FakeChat(CHANNELS)
    publisher = NotificationPublisher(
        issues=issue_publisher(platform),
        chat=chat_publisher(chat),
        console=ConsolePublisher(console=FakeConsole(), thresholds=TABLE),
        logger=FakeLogger(),
    )
    targets = [ReportTarget(ReportKind.ISSUE), ReportTarget(ReportKind.SLACK, "chan-0")]

    warning = publisher.publish([vulnerable_report()], args(report_targets=targets, silent=True))

    assert warning is None
    thread_text = "".join(m.text for m, ref in chat.posts_to("C0") if ref)
    assert "/-/issues/1|Full report>" in thread_text


def test_sink_failure_is_isolated():
    class BrokenIssues:
        def publish(self, reports):
            raise RuntimeError("tracker exploded")

    console = FakeConsole()
    publisher = NotificationPublisher(
        issues=BrokenIssues(),
        chat=None,
        console=ConsolePublisher(console=console, thresholds=TABLE),
        logger=FakeLogger(),
    )

    warning = publisher.publish(
        [vulnerable_report()], args(report_targets=[ReportTarget(ReportKind.ISSUE)], enable_project_report_to=False)
    )

    (err,) = warning.leaves()
    assert isinstance(err, SinkError)
    assert err.sink == "issue"
    assert console.output


def test_slack_requested_without_client_is_a_warning():
    publisher = NotificationPublisher(
        issues=issue_publisher(FakePlatform()),
        chat=None,
        console=ConsolePublisher(console=FakeConsole(), thresholds=TABLE),
        logger=FakeLogger(),
    )

    warning = publisher.publish(
        [vulnerable_report()], args(report_targets=[ReportTarget(ReportKind.SLACK, "x")], silent=True)
    )

    assert "no slack token" in str(warning.leaves()[0])
