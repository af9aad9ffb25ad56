from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from .models import SeverityScoreKind


# Inferred from CVSS scores seen in the wild; each value is the inclusive
# lower bound of its kind. UNKNOWN and ACKNOWLEDGED carry sentinel values
# that only matter for display ordering.
DEFAULT_THRESHOLDS: Mapping[SeverityScoreKind, float] = {
    SeverityScoreKind.CRITICAL: 9.0,
    SeverityScoreKind.HIGH: 8.0,
    SeverityScoreKind.MODERATE: 3.0,
    SeverityScoreKind.LOW: 0.0,
    SeverityScoreKind.UNKNOWN: -1.0,
    SeverityScoreKind.ACKNOWLEDGED: -2.0,
}

_NON_SCORE_KINDS = frozenset({SeverityScoreKind.UNKNOWN, SeverityScoreKind.ACKNOWLEDGED})


def parse_score(score: str) -> float | None:
    try:
        return float(score)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class SeverityThresholds:
    """Immutable severity threshold table.

    Passed explicitly to classification and formatting so callers (and
    tests) can supply alternate tables.
    """
    entries: tuple[tuple[SeverityScoreKind, float], ...]

    @classmethod
    def from_mapping(cls, thresholds: Mapping[SeverityScoreKind, float]) -> "SeverityThresholds":
        ordered = sorted(thresholds.items(), key=lambda item: item[1], reverse=True)
        return cls(entries=tuple(ordered))

    @classmethod
    def default(cls) -> "SeverityThresholds":
        return cls.from_mapping(DEFAULT_THRESHOLDS)

    @property
    def display_order(self) -> tuple[SeverityScoreKind, ...]:
        """Kinds sorted by threshold, highest first."""
        return tuple(kind for kind, _ in self.entries)

    def classify(self, score: str) -> SeverityScoreKind:
        """Return the highest kind whose lower bound the score meets.

        Non-numeric scores, and scores below every score-based bound,
        classify as UNKNOWN. ACKNOWLEDGED is never assigned from a score.
        """
        value = parse_score(score)
        if value is None:
            return SeverityScoreKind.UNKNOWN
        for kind, bound in self.entries:
            if kind in _NON_SCORE_KINDS:
                continue
            if value >= bound:
                return kind
        return SeverityScoreKind.UNKNOWN
