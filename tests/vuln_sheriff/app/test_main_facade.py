import pytest

from vuln_sheriff import patrol
from vuln_sheriff.app.config import AppConfig, DirectoryConfig, LoggingConfig
from vuln_sheriff.app.main import build_args, with_overrides
from vuln_sheriff.app.patrol_file import PatrolFile
from vuln_sheriff.app.targets import TargetError
from vuln_sheriff.core.domain.exceptions import PatrolError
from vuln_sheriff.core.domain.models import Platform, ReportKind


def test_build_args_explicit_values_win():
    defaults = PatrolFile(url=["gitlab://a"], report_to=["issue://"], silent=True, enable_project_report_to=False)

    args = build_args(["github://org"], silent=False, defaults=defaults)

    assert [(loc.platform, loc.path) for loc in args.locations] == [(Platform.GITHUB, "org")]
    assert [t.kind for t in args.report_targets] == [ReportKind.ISSUE]
    assert args.silent is False
    assert args.enable_project_report_to is False
    assert args.verbose is False


def test_build_args_requires_a_url():
    with pytest.raises(TargetError):
        build_args([])


def test_with_overrides_keeps_original_untouched(tmp_path):
    config = AppConfig(directories=DirectoryConfig(home=tmp_path))

    updated = with_overrides(config, gitlab_token="glpat", slack_token="xoxb", verbose=True)

    assert updated.gitlab.token == "glpat"
    assert updated.slack.token == "xoxb"
    assert updated.logging.level == "DEBUG"
    assert config.gitlab.token is None
    assert with_overrides(config) is config


def test_patrol_facade(mock_container, tmp_path):
    config = AppConfig(directories=DirectoryConfig(home=tmp_path), logging=LoggingConfig(console_output=False))

    result = patrol(["gitlab://group"], silent=True, config=config)

    assert [len(r.vulnerabilities) for r in result.reports] == [5, 3, 0]
    assert result.warning is None


def test_patrol_facade_fatal(mock_container, tmp_path):
    config = AppConfig(directories=DirectoryConfig(home=tmp_path), logging=LoggingConfig(console_output=False))

    with pytest.raises(PatrolError):
        patrol(["gitlab://missing"], config=config)


def test_patrol_facade_slack_without_token(mock_container):
    with pytest.raises(TargetError):
        patrol(["gitlab://group"], report_to=["slack://security"])
