from __future__ import annotations

from typing import Sequence

from .config import AppConfig
from .container import Container
from .patrol_file import PatrolFile
from .targets import TargetError, parse_location, parse_report_target
from ..core.domain.models import PatrolArgs, PatrolResult, ReportKind


def _create_container(config: AppConfig | None = None) -> Container:
    """Container wired from ``config`` (or the environment) with resources started."""
    container = Container()

    if config is None:
        config = AppConfig()

    container.config.from_pydantic(config)
    container.init_resources()

    return container


def with_overrides(
    config: AppConfig,
    *,
    gitlab_token: str | None = None,
    github_token: str | None = None,
    slack_token: str | None = None,
    verbose: bool = False,
) -> AppConfig:
    """Return a copy of config with runtime values applied on top."""
    update: dict[str, object] = {}
    if gitlab_token:
        update["gitlab"] = config.gitlab.model_copy(update={"token": gitlab_token})
    if github_token:
        update["github"] = config.github.model_copy(update={"token": github_token})
    if slack_token:
        update["slack"] = config.slack.model_copy(update={"token": slack_token})
    if verbose:
        update["logging"] = config.logging.model_copy(update={"level": "DEBUG"})
    return config.model_copy(update=update) if update else config


def build_args(
    urls: Sequence[str],
    report_to: Sequence[str] = (),
    *,
    enable_project_report_to: bool | None = None,
    silent: bool | None = None,
    verbose: bool | None = None,
    defaults: PatrolFile | None = None,
) -> PatrolArgs:
    """Resolve patrol arguments; explicit values win over file defaults.

    Raises:
        TargetError: A target is malformed or none was given.
    """
    defaults = defaults or PatrolFile()
    urls = list(urls) or defaults.url
    report_to = list(report_to) or defaults.report_to

    if not urls:
        raise TargetError("at least one scan target (--url) is required")

    def pick(value: bool | None, fallback: bool | None, default: bool) -> bool:
        if value is not None:
            return value
        return fallback if fallback is not None else default

    return PatrolArgs(
        locations=[parse_location(u) for u in urls],
        report_targets=[parse_report_target(r) for r in report_to],
        enable_project_report_to=pick(enable_project_report_to, defaults.enable_project_report_to, True),
        silent=pick(silent, defaults.silent, False),
        verbose=pick(verbose, defaults.verbose, False),
    )


def patrol(
    urls: Sequence[str],
    *,
    report_to: Sequence[str] = (),
    enable_project_report_to: bool = True,
    silent: bool = False,
    verbose: bool = False,
    gitlab_token: str | None = None,
    github_token: str | None = None,
    slack_token: str | None = None,
    config: AppConfig | None = None,
) -> PatrolResult:
    """Scan projects for vulnerabilities and publish the reports.

    Args:
        urls: Scan targets, e.g. ``gitlab://group/subgroup`` or ``github://org``
        report_to: Report targets, e.g. ``slack://channel`` or ``issue://``
        enable_project_report_to: Also post to channels named by project configs
        silent: Do not print the console report
        verbose: Debug logging
        gitlab_token: GitLab token override (otherwise from config/env)
        github_token: GitHub token override (otherwise from config/env)
        slack_token: Slack token override (otherwise from config/env)
        config: Explicit settings; the environment is read when omitted.

    Returns:
        Reports and the combined warning of non-fatal errors

    Raises:
        TargetError: A target is malformed
        PatrolError: The patrol could not run at all
    """
    args = build_args(
        urls,
        report_to,
        enable_project_report_to=enable_project_report_to,
        silent=silent,
        verbose=verbose,
    )
    config = with_overrides(
        config or AppConfig(),
        gitlab_token=gitlab_token,
        github_token=github_token,
        slack_token=slack_token,
        verbose=verbose,
    )
    if any(t.kind is ReportKind.SLACK for t in args.report_targets) and not config.slack.token:
        raise TargetError("slack reporting requires a slack token")

    container = _create_container(config)
    try:
        return container.patrol_uc().execute(args)
    finally:
        container.shutdown_resources()
