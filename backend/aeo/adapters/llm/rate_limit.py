"""
Provider Rate Limiting & Retry
Per-provider concurrency ceilings and exponential-backoff retry
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, TypeVar

from aeo.config import PROVIDER_CONCURRENCY, DEFAULT_PROVIDER_CONCURRENCY

logger = logging.getLogger(__name__)

T = TypeVar("T")

POLL_INTERVAL = 0.05  # seconds


class LLMProviderError(Exception):
    """Base exception for provider errors"""
    def __init__(self, message: str, provider: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(message)
        self.provider = provider
        self.details = details or {}


class RateLimitError(LLMProviderError):
    """HTTP 429 or a vendor rate-limit/quota signal. Retried."""
    pass


class APIError(LLMProviderError):
    """Vendor 5xx. Retried."""
    pass


class ProviderRateLimiter:
    """
    Caps concurrent in-flight calls per provider.

    Waiters poll the active counter every POLL_INTERVAL instead of parking on
    an asyncio.Semaphore: Celery tasks run each pipeline on a fresh event
    loop, and a process-wide semaphore would stay bound to the first one.
    """

    def __init__(
        self,
        limits: Optional[Dict[str, int]] = None,
        default_limit: int = DEFAULT_PROVIDER_CONCURRENCY,
        poll_interval: float = POLL_INTERVAL,
    ):
        self.limits = dict(PROVIDER_CONCURRENCY if limits is None else limits)
        self.default_limit = default_limit
        self.poll_interval = poll_interval
        self._active: Dict[str, int] = {}

    def limit_for(self, provider: str) -> int:
        return self.limits.get(provider, self.default_limit)

    def active(self, provider: str) -> int:
        return self._active.get(provider, 0)

    async def run(self, provider: str, fn: Callable[[], Awaitable[T]]) -> T:
        limit = self.limit_for(provider)
        while self.active(provider) >= limit:
            await asyncio.sleep(self.poll_interval)

        self._active[provider] = self.active(provider) + 1
        try:
            return await fn()
        finally:
            self._active[provider] = self.active(provider) - 1


rate_limiter = ProviderRateLimiter()


async def with_rate_limit(
    provider: str,
    fn: Callable[[], Awaitable[T]],
    limiter: Optional[ProviderRateLimiter] = None,
) -> T:
    """Run ``fn`` once a concurrency slot for ``provider`` is free"""
    return await (limiter or rate_limiter).run(provider, fn)


def backoff_delay(attempt: int, min_wait: float, max_wait: float) -> float:
    """Wait before the next attempt: min(min_wait * 2^(attempt-1), max_wait)"""
    return min(min_wait * (2 ** (attempt - 1)), max_wait)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 10.0,
) -> T:
    """
    Call ``fn`` up to ``max_attempts`` times.

    Only RateLimitError and APIError are retried; anything else propagates
    immediately. The last retryable error is re-raised once attempts run out.
    """
    last_error: Optional[BaseException] = None
    for attempt in range(1, max_attempts + 1):
        try:
            return await fn()
        except (RateLimitError, APIError) as e:
            last_error = e
            if attempt == max_attempts:
                break
            delay = backoff_delay(attempt, min_wait, max_wait)
            logger.warning(
                f"{type(e).__name__} from {e.provider or 'provider'} "
                f"(attempt {attempt}/{max_attempts}), retrying in {delay:.2f}s"
            )
            await asyncio.sleep(delay)

    raise last_error
