from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv

from .cli_formatter import format_patrol_summary, format_warnings
from .config import AppConfig
from .container import Container
from .main import build_args, with_overrides
from .patrol_file import PatrolFileError, load_patrol_file
from .targets import TargetError
from ..core.domain.exceptions import PatrolError
from ..core.domain.models import ReportKind

load_dotenv()

EXIT_OK = 0
EXIT_WARNINGS = 1
EXIT_FATAL = 2

app = typer.Typer(add_completion=False, no_args_is_help=True)


@app.callback()
def main() -> None:
    """Scan GitLab and GitHub projects for vulnerable dependencies."""


@app.command()
def patrol(
    url: Optional[List[str]] = typer.Option(
        None, "--url", help="Groups and projects to scan, e.g. gitlab://group/sub or github://org (repeatable)"
    ),
    report_to: Optional[List[str]] = typer.Option(
        None, "--report-to", help="Where to report: slack://channel or issue:// (repeatable)"
    ),
    enable_project_report_to: Optional[bool] = typer.Option(
        None,
        "--enable-project-report-to/--disable-project-report-to",
        help="Also post to the channel each project names in its own sheriff.toml",
    ),
    silent: bool = typer.Option(False, "--silent", help="Disable report output to stdout"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="TOML file with default arguments (default: ./sheriff.toml if present)"
    ),
    gitlab_token: Optional[str] = typer.Option(None, "--gitlab-token", envvar="GITLAB_TOKEN", help="GitLab API token"),
    github_token: Optional[str] = typer.Option(None, "--github-token", envvar="GITHUB_TOKEN", help="GitHub API token"),
    slack_token: Optional[str] = typer.Option(None, "--slack-token", envvar="SLACK_TOKEN", help="Slack API token"),
):
    """Scan every project of the given groups and publish the reports.

    Exit status: 0 on success, 1 when the patrol finished with warnings,
    2 on a fatal error or invalid arguments.
    """
    try:
        defaults = load_patrol_file(config_file)
        args = build_args(
            url or [],
            report_to or [],
            enable_project_report_to=enable_project_report_to,
            silent=silent or None,
            verbose=verbose or None,
            defaults=defaults,
        )
    except (PatrolFileError, TargetError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=EXIT_FATAL)

    config = with_overrides(
        AppConfig(),
        gitlab_token=gitlab_token,
        github_token=github_token,
        slack_token=slack_token,
        verbose=args.verbose,
    )

    if any(t.kind is ReportKind.SLACK for t in args.report_targets) and not config.slack.token:
        typer.echo("Error: Slack token required via --slack-token or SLACK_TOKEN", err=True)
        raise typer.Exit(code=EXIT_FATAL)

    container = Container()
    container.config.from_pydantic(config)
    container.init_resources()

    try:
        result = container.patrol_uc().execute(args)
    except PatrolError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=EXIT_FATAL)
    finally:
        # closes the JSONL log file
        container.shutdown_resources()

    typer.echo(format_patrol_summary(result), err=True)

    warnings = format_warnings(result)
    for line in warnings:
        typer.echo(line, err=True)
    if warnings:
        raise typer.Exit(code=EXIT_WARNINGS)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
