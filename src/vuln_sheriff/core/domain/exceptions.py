"""Domain exceptions for vuln_sheriff."""

from __future__ import annotations

from typing import Iterable


class SheriffError(Exception):
    """Base class for all vuln_sheriff errors."""


class PatrolError(SheriffError):
    """Fatal patrol failure. The run is aborted and no reports are produced."""


class PatrolWarning(ExceptionGroup):
    """Combined non-fatal errors of a patrol.

    The patrol still returns usable reports; each leaf exception describes
    one failed project, sink or location.
    """

    def derive(self, excs):
        return PatrolWarning(self.message, excs)

    def leaves(self) -> list[BaseException]:
        """Flatten nested warnings into their individual errors."""
        out: list[BaseException] = []
        for exc in self.exceptions:
            if isinstance(exc, PatrolWarning):
                out.extend(exc.leaves())
            else:
                out.append(exc)
        return out


def join_warnings(message: str, errors: Iterable[BaseException | None]) -> PatrolWarning | None:
    """Join errors into one PatrolWarning, or None when there are none."""
    collected = [e for e in errors if e is not None]
    if not collected:
        return None
    return PatrolWarning(message, collected)


class RateLimitedError(SheriffError):
    """Service asked the caller to wait before trying again."""

    def __init__(self, retry_after: float, message: str | None = None) -> None:
        self.retry_after = retry_after
        if message is None:
            message = f"rate limited, retry after {retry_after}s"
        super().__init__(message)


class RetryExhaustedError(SheriffError):
    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"operation failed after {attempts} attempts: {last_error}")


class ChannelNotFoundError(SheriffError):
    def __init__(self, channel: str) -> None:
        self.channel = channel
        super().__init__(f"channel {channel} not found")


class IssueReopenError(SheriffError):
    """Issue tracker accepted the update but the issue did not end up open."""


class ProjectConfigError(SheriffError):
    pass


class ScannerError(SheriffError):
    pass


class ArchiveError(SheriffError):
    pass
