import json
import subprocess

import pytest

from vuln_sheriff.core.domain.exceptions import ScannerError
from vuln_sheriff.infra.osv_scanner import OsvScanner

from fakes import make_project


def osv_output(directory):
    return {
        "results": [
            {
                "source": {"path": str(directory / "web" / "package-lock.json"), "type": "lockfile"},
                "packages": [
                    {
                        "package": {"name": "lodash", "version": "4.17.20", "ecosystem": "npm"},
                        "vulnerabilities": [
                            {
                                "id": "GHSA-35jh-r3h4-6jhm",
                                "summary": "Command injection in lodash",
                                "affected": [
                                    {
                                        "package": {"name": "lodash", "ecosystem": "npm", "purl": "pkg:npm/lodash"},
                                        "ranges": [{"type": "SEMVER", "events": [{"introduced": "0"}, {"fixed": "4.17.21"}]}],
                                    }
                                ],
                            },
                            {"id": "GHSA-no-fix", "affected": [{"ranges": [{"events": [{"introduced": "0"}]}]}]},
                        ],
                        "groups": [
                            {"ids": ["GHSA-35jh-r3h4-6jhm"], "max_severity": "7.2"},
                            {"ids": ["GHSA-no-fix"], "max_severity": ""},
                        ],
                    }
                ],
            }
        ]
    }


def fake_run(monkeypatch, *, returncode=0, stdout="", stderr=""):
    calls = []

    def run(cmd, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)

    monkeypatch.setattr(subprocess, "run", run)
    return calls


def test_scan_and_map_findings(monkeypatch, tmp_path):
    calls = fake_run(monkeypatch, returncode=1, stdout=json.dumps(osv_output(tmp_path)))
    scanner = OsvScanner(binary="osv")

    raw = scanner.scan(tmp_path)
    findings = scanner.to_findings(make_project("web"), raw)

    assert calls == [["osv", "--format", "json", "-r", str(tmp_path)]]
    fixed, unfixed = findings
    assert fixed.id == "GHSA-35jh-r3h4-6jhm"
    assert fixed.severity == "7.2"
    assert fixed.fix_available is True
    assert fixed.package_url == "pkg:npm/lodash"
    assert fixed.source == "web/package-lock.json"
    assert (fixed.package_name, fixed.package_version, fixed.package_ecosystem) == ("lodash", "4.17.20", "npm")
    assert unfixed.fix_available is False
    assert unfixed.severity == ""


def test_no_packages_is_empty_result(monkeypatch, tmp_path):
    fake_run(monkeypatch, returncode=128, stderr="No package sources found")

    raw = OsvScanner().scan(tmp_path)

    assert OsvScanner().to_findings(make_project("x"), raw) == []


def test_clean_scan(monkeypatch, tmp_path):
    fake_run(monkeypatch, returncode=0, stdout=json.dumps({"results": []}))

    assert OsvScanner().scan(tmp_path) == {"results": []}


def test_unexpected_exit_code(monkeypatch, tmp_path):
    fake_run(monkeypatch, returncode=127, stderr="boom")

    with pytest.raises(ScannerError, match="127"):
        OsvScanner().scan(tmp_path)


def test_invalid_json(monkeypatch, tmp_path):
    fake_run(monkeypatch, returncode=1, stdout="not json")

    with pytest.raises(ScannerError):
        OsvScanner().scan(tmp_path)


def test_missing_binary(tmp_path):
    with pytest.raises(ScannerError):
        OsvScanner(binary=str(tmp_path / "no-such-osv-scanner")).scan(tmp_path)


def test_timeout(monkeypatch, tmp_path):
    def run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(subprocess, "run", run)

    with pytest.raises(ScannerError, match="timed out"):
        OsvScanner(timeout=1).scan(tmp_path)
