"""CLI output formatting utilities for human-readable display."""

from __future__ import annotations

from ..core.domain.models import PatrolResult


def format_patrol_summary(result: PatrolResult) -> str:
    total = len(result.reports)
    vulnerable = sum(1 for r in result.reports if r.is_vulnerable)
    failed = sum(1 for r in result.reports if r.error)
    return f"Patrol finished: {total} projects scanned, {vulnerable} vulnerable, {failed} failed"


def format_warnings(result: PatrolResult) -> list[str]:
    """One line per individual non-fatal error of the patrol."""
    if result.warning is None:
        return []
    return [f"warning: {leaf}" for leaf in result.warning.leaves()]
