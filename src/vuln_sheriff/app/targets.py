"""Parsing of ``platform://path`` scan and report targets."""

from __future__ import annotations

import re

from ..core.domain.models import Platform, ProjectLocation, ReportKind, ReportTarget

_PATH_REGEX = {
    Platform.GITLAB: re.compile(r"^[A-Za-z0-9_][\w.-]*(/[A-Za-z0-9_][\w.-]*)*$"),
    Platform.GITHUB: re.compile(r"^[A-Za-z0-9-]+(/[\w.-]+)?$"),
}

_REPORT_REGEX = {
    ReportKind.SLACK: re.compile(r"^#?[a-z0-9_-][a-z0-9_-]{0,79}$"),
    ReportKind.ISSUE: re.compile(r"^$"),
}


class TargetError(ValueError):
    pass


def _split(value: str) -> tuple[str, str]:
    scheme, sep, rest = value.partition(":")
    if not sep or not scheme:
        raise TargetError(f"target {value!r} is not in the format 'platform://path'")
    if rest.startswith("//"):
        rest = rest[2:]
    return scheme.lower(), rest.strip("/")


def parse_location(value: str) -> ProjectLocation:
    """Parse a scan target such as ``gitlab://group/subgroup`` or ``github://org``."""
    scheme, path = _split(value)
    try:
        platform = Platform(scheme)
    except ValueError:
        raise TargetError(f"unsupported repository platform: {scheme}") from None
    if not _PATH_REGEX[platform].match(path):
        raise TargetError(f"invalid {scheme} path: {path!r}")
    return ProjectLocation(platform=platform, path=path)


def parse_report_target(value: str) -> ReportTarget:
    """Parse a report target such as ``slack://channel`` or ``issue://``."""
    scheme, name = _split(value)
    try:
        kind = ReportKind(scheme)
    except ValueError:
        raise TargetError(f"unsupported report platform: {scheme}") from None
    if not _REPORT_REGEX[kind].match(name):
        raise TargetError(f"invalid {scheme} target name: {name!r}")
    return ReportTarget(kind=kind, name=name.lstrip("#"))
