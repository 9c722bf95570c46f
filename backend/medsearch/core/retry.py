"""
Retry-with-backoff for provider calls.

Every source adapter retries through this single helper so retry policy
lives at exactly one layer. The coordinator never retries.
"""
import time
from typing import Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.stop import stop_base
from tenacity.wait import wait_base

from medsearch.core.exceptions import is_transient
from medsearch.core.logging import get_logger

logger = get_logger(__name__)


class stop_at_deadline(stop_base):
    """Stop retrying once the monotonic clock passes the adapter's deadline."""

    def __init__(self, deadline: Optional[float]):
        self.deadline = deadline

    def __call__(self, retry_state: RetryCallState) -> bool:
        if self.deadline is None:
            return False
        return time.monotonic() >= self.deadline


class wait_retry_after(wait_base):
    """
    Honour a provider's Retry-After, else fall back to exponential backoff.

    The wait is capped at `max_wait` and never runs past the deadline.
    """

    def __init__(self, fallback: wait_base, deadline: Optional[float], max_wait: float):
        self.fallback = fallback
        self.deadline = deadline
        self.max_wait = max_wait

    def __call__(self, retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        retry_after = getattr(error, "retry_after", None)
        if retry_after:
            wait = min(float(retry_after), self.max_wait)
        else:
            wait = self.fallback(retry_state)
        if self.deadline is not None:
            wait = min(wait, max(self.deadline - time.monotonic(), 0.0))
        return wait


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    sleep = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        f"Attempt {retry_state.attempt_number} failed ({error}), retrying in {sleep:.2f}s"
    )


def retrying(
    max_retries: int,
    deadline: Optional[float] = None,
    backoff_base: float = 0.5,
    backoff_max: float = 4.0,
    retry_after_max: float = 10.0,
) -> AsyncRetrying:
    """
    Build an AsyncRetrying controller for one provider call.

    Args:
        max_retries: Retries after the first attempt (0 disables retrying)
        deadline: time.monotonic() value after which no new attempt starts
        backoff_base: Multiplier for the exponential wait
        backoff_max: Upper bound for a single exponential wait
        retry_after_max: Upper bound when the provider sends Retry-After

    Usage:
        async for attempt in retrying(2, deadline):
            with attempt:
                return await self._search(...)
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1) | stop_at_deadline(deadline),
        wait=wait_retry_after(
            wait_exponential(multiplier=backoff_base, max=backoff_max), deadline, retry_after_max
        ),
        retry=retry_if_exception(is_transient),
        before_sleep=_log_retry,
        reraise=True,
    )
