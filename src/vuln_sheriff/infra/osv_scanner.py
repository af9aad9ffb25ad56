from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

from ..core.domain.exceptions import ScannerError
from ..core.domain.models import Project, RawFinding

logger = logging.getLogger(__name__)

# osv-scanner exit codes
_EXIT_CLEAN = 0
_EXIT_VULNERABLE = 1
_EXIT_NO_PACKAGES = 128


class OsvScanner:
    """Runs osv-scanner against a directory and maps its JSON output."""

    def __init__(self, *, binary: str = "osv-scanner", timeout: float | None = 600) -> None:
        self._binary = binary
        self._timeout = timeout

    def scan(self, directory: Path) -> dict[str, Any]:
        cmd = [self._binary, "--format", "json", "-r", str(directory)]
        logger.debug("Running osv-scanner", extra={"cmd": " ".join(cmd)})
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise ScannerError(f"osv-scanner timed out after {self._timeout}s") from e
        except OSError as e:
            raise ScannerError(f"failed to run {self._binary}: {e}") from e

        if proc.returncode == _EXIT_NO_PACKAGES:
            logger.debug("osv-scanner found no packages", extra={"dir": str(directory)})
            return {"results": []}
        if proc.returncode not in (_EXIT_CLEAN, _EXIT_VULNERABLE):
            raise ScannerError(
                f"osv-scanner exited with code {proc.returncode}: {proc.stderr.strip()[:500]}"
            )

        try:
            raw = json.loads(proc.stdout or "{}")
        except json.JSONDecodeError as e:
            raise ScannerError(f"could not parse osv-scanner output: {e}") from e

        # source paths point into the temporary checkout
        for result in raw.get("results") or []:
            src = result.get("source") or {}
            if src.get("path"):
                src["path"] = _relative_to(src["path"], directory)
        return raw

    def to_findings(self, project: Project, raw: dict[str, Any]) -> list[RawFinding]:
        findings: list[RawFinding] = []
        for result in raw.get("results") or []:
            source = (result.get("source") or {}).get("path", "")
            for pkg in result.get("packages") or []:
                info = pkg.get("package") or {}
                severities = _max_severity_by_id(pkg.get("groups") or [])
                for vuln in pkg.get("vulnerabilities") or []:
                    vuln_id = vuln.get("id", "")
                    findings.append(
                        RawFinding(
                            id=vuln_id,
                            package_name=info.get("name", ""),
                            package_version=info.get("version", ""),
                            package_ecosystem=info.get("ecosystem", ""),
                            package_url=_package_url(vuln),
                            source=source,
                            severity=severities.get(vuln_id, ""),
                            summary=vuln.get("summary", ""),
                            details=vuln.get("details", ""),
                            fix_available=_has_fix(vuln),
                        )
                    )
        return findings


def _max_severity_by_id(groups: list[dict[str, Any]]) -> dict[str, str]:
    out: dict[str, str] = {}
    for group in groups:
        severity = str(group.get("max_severity") or "")
        for vuln_id in group.get("ids") or []:
            out[vuln_id] = severity
    return out


def _has_fix(vuln: dict[str, Any]) -> bool:
    for affected in vuln.get("affected") or []:
        for rng in affected.get("ranges") or []:
            for event in rng.get("events") or []:
                if event.get("fixed"):
                    return True
    return False


def _package_url(vuln: dict[str, Any]) -> str:
    for affected in vuln.get("affected") or []:
        purl = (affected.get("package") or {}).get("purl")
        if purl:
            return purl
    return ""


def _relative_to(path: str, directory: Path) -> str:
    try:
        return Path(path).relative_to(directory).as_posix()
    except ValueError:
        return path
