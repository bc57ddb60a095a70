"""Bounded retry policy for idempotent publishing sub-steps."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial
from typing import TypeVar

import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from ..domain.errors import ErrorKind
from .error_classifier import classify

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry a failing call a fixed number of times with exponential back-off.

    Only failures whose classified kind is in ``retry_on`` (plus upstream 5xx
    responses when ``retry_server_errors`` is set) are retried. Used for media
    upload steps only; final publish calls are attempted once.
    """

    max_attempts: int = 1
    base_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 30.0
    retry_on: frozenset[ErrorKind] = frozenset({ErrorKind.TIMEOUT})
    retry_server_errors: bool = True

    def delay_for(self, attempt: int, retry_after: int | None = None) -> float:
        """Delay before the attempt following ``attempt`` (1-based)."""
        if retry_after is not None:
            return min(float(retry_after), self.max_delay)
        return min(self.base_delay * (self.backoff_factor ** (attempt - 1)), self.max_delay)

    def is_retryable(self, error: BaseException) -> bool:
        classified = classify(error)
        if classified.kind in self.retry_on:
            return True
        return self.retry_server_errors and classified.is_server_error

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        return attempt < self.max_attempts and self.is_retryable(error)

    async def run(self, operation: Callable[[], Awaitable[T]], *, description: str) -> T:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=retry_if_exception(self.is_retryable),
            before_sleep=partial(self._log_retry, description),
            sleep=asyncio.sleep,
            reraise=True,
        )
        return await retrying(operation)

    def _wait(self, retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception()
        return self.delay_for(retry_state.attempt_number, classify(error).retry_after)

    def _log_retry(self, description: str, retry_state: RetryCallState) -> None:
        logger.warning(
            "Retrying after failure",
            operation=description,
            attempt=retry_state.attempt_number,
            max_attempts=self.max_attempts,
            delay_seconds=retry_state.next_action.sleep,
            error=str(retry_state.outcome.exception()),
        )


NO_RETRY = RetryPolicy(max_attempts=1)
