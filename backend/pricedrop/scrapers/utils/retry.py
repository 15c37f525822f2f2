"""Retry policy with exponential backoff for product scrapes.

Adapters never retry on their own; the price check job wraps each scrape
in a ``ScrapeRetryPolicy`` so transient failures (timeouts, connection
resets, 429/5xx) get a bounded number of extra attempts while permanent
ones (404, unparseable page) fail immediately.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from pricedrop.config import settings
from pricedrop.core.exceptions import ScrapeError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def is_retryable_scrape_error(exc: BaseException) -> bool:
    """Only transient scrape failures are retried."""
    return isinstance(exc, ScrapeError) and exc.retryable


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "scrape_retry_scheduled",
        attempt=retry_state.attempt_number,
        wait_seconds=retry_state.next_action.sleep if retry_state.next_action else 0,
        url=getattr(exc, "url", None),
        error=str(exc),
    )


@dataclass(frozen=True)
class ScrapeRetryPolicy:
    """Bounded retry with exponential wait between attempts.

    Attributes:
        max_attempts: Total attempts including the first (1 disables retry)
        min_wait: Lower bound of the wait between attempts, in seconds
        max_wait: Upper bound of the wait between attempts, in seconds
    """

    max_attempts: int = 3
    min_wait: float = 2.0
    max_wait: float = 10.0

    @classmethod
    def from_settings(cls) -> "ScrapeRetryPolicy":
        return cls(
            max_attempts=settings.SCRAPE_MAX_ATTEMPTS,
            min_wait=settings.SCRAPE_RETRY_MIN_SECONDS,
            max_wait=settings.SCRAPE_RETRY_MAX_SECONDS,
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(max(1, self.max_attempts)),
            wait=wait_exponential(multiplier=1, min=self.min_wait, max=self.max_wait),
            retry=retry_if_exception(is_retryable_scrape_error),
            before_sleep=_log_retry,
            reraise=True,
        )

    def worst_case_seconds(self, attempt_timeout: float) -> float:
        """Longest a scrape can take under this policy when every attempt times out."""
        attempts = max(1, self.max_attempts)
        return attempts * attempt_timeout + (attempts - 1) * self.max_wait

    async def call(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Await ``fn(*args, **kwargs)`` under this policy.

        Raises:
            ScrapeError: The last failure once attempts are exhausted, or the
                first non-retryable failure
        """
        return await self._retrying()(fn, *args, **kwargs)
