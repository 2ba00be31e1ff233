"""
Retry strategy for provider calls.

Retries a single provider with exponential backoff while it reports
transient failures (overload, rate limiting). Anything else stops the
loop at once so the manager can move on to the fallback provider.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from neuralpalette.errors import MaxRetriesExceededError, ProviderError

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


@dataclass
class RetryPolicy:
    """
    How many times to call a provider, and how long to wait in between.

    Attributes:
        max_attempts: Total calls, including the first one.
        backoff_base: Delay before retry ``n`` (0-indexed) is ``base ** n``
            seconds, so the defaults wait 1s then 2s.
        max_delay: Upper bound on a single delay.
    """

    max_attempts: int = 3
    backoff_base: float = 2.0
    max_delay: float = 30.0

    def delay(self, attempt: int) -> float:
        """
        Backoff before the next call, after failed attempt ``attempt``.

        Args:
            attempt: The failed attempt, 0-indexed.

        Returns:
            Seconds to sleep.
        """
        return min(self.max_delay, self.backoff_base**attempt)


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    sleep: SleepFn = asyncio.sleep,
    on_retry: Optional[Callable[[int, ProviderError], None]] = None,
) -> T:
    """
    Call ``fn`` until it succeeds, fails permanently, or attempts run out.

    Args:
        fn: Zero-argument coroutine factory performing one provider call.
        policy: Retry policy (default: 3 attempts, 1s/2s backoff).
        sleep: Awaitable sleep, injectable so tests skip real delays.
        on_retry: Called with (attempt_number, error) before each backoff.

    Returns:
        Whatever ``fn`` returns.

    Raises:
        ProviderError: Immediately, for a non-retryable failure.
        MaxRetriesExceededError: After the last retryable failure.
    """
    policy = policy or RetryPolicy()
    attempts = max(1, policy.max_attempts)

    for attempt in range(attempts):
        try:
            return await fn()
        except ProviderError as e:
            if not e.retryable:
                e.attempts = attempt + 1
                raise
            if attempt == attempts - 1:
                raise MaxRetriesExceededError(e, attempts=attempts) from e
            if on_retry is not None:
                on_retry(attempt + 1, e)
            await sleep(policy.delay(attempt))

    # Unreachable: the loop either returns or raises
    raise AssertionError("retry loop exited without a result")
