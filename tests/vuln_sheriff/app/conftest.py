"""Shared fixtures for app-level tests."""
import os
from dataclasses import dataclass, field

import pytest
from dependency_injector import providers

from vuln_sheriff.app.container import Container
from vuln_sheriff.core.domain.models import ChatChannel, ProjectConfig, RawFinding

from fakes import FakeChat, FakeConfigLoader, FakeFetcher, FakePlatform, FakeScanner, make_finding, make_project


@dataclass
class Fakes:
    platform: FakePlatform
    fetcher: FakeFetcher = field(default_factory=FakeFetcher)
    scanner: FakeScanner = field(default_factory=FakeScanner)
    configs: dict[str, ProjectConfig] = field(default_factory=dict)
    chat: FakeChat = field(default_factory=lambda: FakeChat([ChatChannel("C1", "security"), ChatChannel("C2", "team-a")]))

    def container(self) -> Container:
        c = Container()
        c.gitlab.override(providers.Object(self.platform))
        c.github.override(providers.Object(self.platform))
        c.fetcher.override(providers.Object(self.fetcher))
        c.scanner.override(providers.Object(self.scanner))
        c.project_config_loader.override(providers.Object(FakeConfigLoader(self.configs)))
        c.slack_client.override(providers.Object(self.chat))
        return c


@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch):
    """Isolate tests from the developer's tokens, settings and sheriff.toml."""
    for var in list(os.environ):
        if var.startswith("VULN_SHERIFF_") or var in ("GITLAB_TOKEN", "GITHUB_TOKEN", "SLACK_TOKEN"):
            monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("VULN_SHERIFF_DIRECTORIES__HOME", str(tmp_path / "home"))
    monkeypatch.setenv("VULN_SHERIFF_LOGGING__CONSOLE_OUTPUT", "false")
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def fakes():
    findings: dict[str, list[RawFinding]] = {
        "three": [make_finding(f"T-{i}", "5.0") for i in range(3)],
        "five": [make_finding(f"F-{i}", "9.5") for i in range(5)],
    }
    projects = [make_project("zero", id=1), make_project("three", id=2), make_project("five", id=3)]
    return Fakes(platform=FakePlatform({"group": projects}), scanner=FakeScanner(findings))


@pytest.fixture
def mock_container(fakes, monkeypatch):
    """Patch Container in the cli and facade modules with a fake-backed one."""
    monkeypatch.setattr("vuln_sheriff.app.cli.Container", fakes.container)
    monkeypatch.setattr("vuln_sheriff.app.main.Container", fakes.container)
    return fakes
