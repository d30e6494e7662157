from __future__ import annotations
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from genstudio.core.errors import GivenUpError, RequestTimeoutError
from .classifier import ClassifiedError, classify

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]
RetryHook = Callable[[int, ClassifiedError, float], Any]


class RetryPolicy:
    def __init__(self, max_retries: int = 5, base_delay: float = 3.0,
                 request_timeout: Optional[float] = 120.0):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.request_timeout = request_timeout

    def compute_backoff(self, attempt: int) -> float:
        """Wait before retrying after 0-based attempt `attempt` failed."""
        return self.base_delay * (2 ** attempt)

    def delay_for(self, attempt: int, classified: ClassifiedError) -> float:
        suggested = classified.suggested_delay
        if suggested is not None:
            return suggested
        return self.compute_backoff(attempt)


class RetryScheduler:
    """
    Runs one logical operation with bounded, sequential retries.
    Transient (quota/overload) failures back off; anything else surfaces at once.
    """

    def __init__(self, policy: Optional[RetryPolicy] = None, *, sleep: Sleep = asyncio.sleep,
                 on_retry: Optional[RetryHook] = None):
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self.on_retry = on_retry

    async def _attempt(self, operation: Callable[[], Awaitable[T]], policy: RetryPolicy) -> T:
        if policy.request_timeout is None:
            return await operation()
        try:
            return await asyncio.wait_for(operation(), timeout=policy.request_timeout)
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(
                f"Request did not complete within {policy.request_timeout:g}s"
            ) from e

    async def execute(self, operation: Callable[[], Awaitable[T]],
                      policy: Optional[RetryPolicy] = None) -> T:
        policy = policy or self.policy
        attempt = 0
        while True:
            try:
                return await self._attempt(operation, policy)
            except Exception as e:
                classified = classify(e)
                if not classified.transient:
                    raise
                if attempt >= policy.max_retries:
                    logger.warning("Giving up after %d attempts: %s", attempt + 1, e)
                    raise GivenUpError(classified.kind, attempt + 1) from e

                delay = policy.delay_for(attempt, classified)
                if classified.suggested_delay is not None:
                    logger.info("Server requested wait of %.2fs", delay)
                logger.warning(
                    "Gemini busy/quota (%s, attempt %d/%d). Waiting %.1fs...",
                    classified.kind.value, attempt + 1, policy.max_retries, delay,
                )
                if self.on_retry is not None:
                    self.on_retry(attempt, classified, delay)
                await self._sleep(delay)
                attempt += 1


async def execute_with_retry(operation: Callable[[], Awaitable[T]],
                             policy: Optional[RetryPolicy] = None, **kwargs) -> T:
    return await RetryScheduler(policy, **kwargs).execute(operation)


__all__ = ["RetryPolicy", "RetryScheduler", "execute_with_retry"]
