from __future__ import annotations

import time
from typing import Callable, TypeVar

from tenacity import RetryCallState, RetryError, Retrying, retry_if_exception_type, stop_after_attempt

from ..domain.exceptions import RateLimitedError, RetryExhaustedError
from ..ports import LoggerPort

T = TypeVar("T")


class RetryExecutor:
    """Runs a failable operation with bounded retries and exponential backoff.

    Attempts are strictly sequential. Before attempt n+1 the executor sleeps
    either the wait a RateLimitedError asked for, or
    ``initial_backoff * 2 ** (n - 1)`` seconds.
    """

    def __init__(
        self,
        *,
        max_attempts: int,
        initial_backoff: float,
        logger: LoggerPort | None = None,
        sleep: Callable[[float], None] = time.sleep,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
    ) -> None:
        self._max_attempts = max(max_attempts, 1)
        self._initial_backoff = initial_backoff
        self._logger = logger
        self._sleep = sleep
        self._retry_on = retry_on

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def backoff_for(self, attempt: int, error: BaseException | None) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        if isinstance(error, RateLimitedError) and error.retry_after > 0:
            return error.retry_after
        return self._initial_backoff * (2 ** (attempt - 1))

    def _wait(self, state: RetryCallState) -> float:
        return self.backoff_for(state.attempt_number, state.outcome.exception())

    def _before_sleep(self, state: RetryCallState) -> None:
        if self._logger is None:
            return
        error = state.outcome.exception()
        delay = state.next_action.sleep
        if isinstance(error, RateLimitedError):
            self._logger.warning(
                "Hit rate limit, backing off dynamically",
                attempt=state.attempt_number,
                retry_after=delay,
                error=str(error),
            )
        else:
            self._logger.warning(
                "Operation failed, retrying with exponential backoff",
                attempt=state.attempt_number,
                backoff=delay,
                error=str(error),
            )

    def run(self, operation: Callable[[], T]) -> T:
        """Run operation until it succeeds or attempts are exhausted.

        Exceptions outside ``retry_on`` propagate from the first attempt.

        Raises:
            RetryExhaustedError: After the last failed attempt; the last
                underlying error is chained as __cause__.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type(self._retry_on),
            before_sleep=self._before_sleep,
            sleep=self._sleep,
        )
        try:
            return retrying(operation)
        except RetryError as e:
            last = e.last_attempt.exception()
            raise RetryExhaustedError(self._max_attempts, last) from last
