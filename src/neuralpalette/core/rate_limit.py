"""
Rolling request/token budget enforced before any provider call.

Each window counts requests and tokens since its start and resets once
more than its length has elapsed. The manager checks the budget before
dispatching and records usage after a successful response.
"""

import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, List, Optional

from neuralpalette.config import RateLimitSettings
from neuralpalette.errors import RateLimitExceededError

MINUTE = 60.0
DAY = 86400.0


@dataclass
class BudgetWindow:
    """
    Counters for one rolling window.

    Attributes:
        scope: Label used in errors ("minute" or "day").
        length: Window length in seconds.
        max_requests: Request ceiling for the window.
        max_tokens: Token ceiling for the window.
    """

    scope: str
    length: float
    max_requests: int
    max_tokens: int
    started_at: float = 0.0
    requests: int = 0
    tokens: int = 0

    def roll(self, now: float) -> None:
        if now - self.started_at > self.length:
            self.started_at = now
            self.requests = 0
            self.tokens = 0

    def check(self, now: float) -> None:
        retry_after = max(0.0, self.length - (now - self.started_at))
        if self.requests >= self.max_requests:
            raise RateLimitExceededError(
                self.scope, "requests", self.max_requests, self.requests, retry_after
            )
        if self.tokens >= self.max_tokens:
            raise RateLimitExceededError(
                self.scope, "tokens", self.max_tokens, self.tokens, retry_after
            )


class RateBudget:
    """
    Per-minute and per-day ceilings on requests and tokens.

    Thread-safe; each method holds the lock only for its own bookkeeping.
    Check and record are separate steps around an awaited provider call, so
    concurrent requests may overshoot a ceiling by the number in flight.

    Example:
        >>> budget = RateBudget(RateLimitSettings(requests_per_minute=2))
        >>> budget.check()
        >>> budget.record(tokens=120)
    """

    def __init__(
        self,
        settings: Optional[RateLimitSettings] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        settings = settings or RateLimitSettings()
        self._clock = clock
        self._lock = Lock()
        now = clock()
        self._windows: List[BudgetWindow] = [
            BudgetWindow(
                "minute",
                MINUTE,
                settings.requests_per_minute,
                settings.tokens_per_minute,
                started_at=now,
            ),
            BudgetWindow(
                "day",
                DAY,
                settings.requests_per_day,
                settings.tokens_per_day,
                started_at=now,
            ),
        ]

    def check(self) -> None:
        """
        Raise if any ceiling has been met.

        Raises:
            RateLimitExceededError: The request must not be sent.
        """
        with self._lock:
            now = self._clock()
            for window in self._windows:
                window.roll(now)
                window.check(now)

    def record(self, tokens: int) -> None:
        """Count one completed request and its tokens against every window."""
        with self._lock:
            now = self._clock()
            for window in self._windows:
                window.roll(now)
                window.requests += 1
                window.tokens += max(0, int(tokens))

    def reset(self) -> None:
        with self._lock:
            now = self._clock()
            for window in self._windows:
                window.started_at = now
                window.requests = 0
                window.tokens = 0

    def snapshot(self) -> Dict[str, Any]:
        """Current usage per window."""
        with self._lock:
            now = self._clock()
            result: Dict[str, Any] = {}
            for window in self._windows:
                window.roll(now)
                result[window.scope] = {
                    "requests": window.requests,
                    "tokens": window.tokens,
                    "max_requests": window.max_requests,
                    "max_tokens": window.max_tokens,
                    "resets_in": max(0.0, window.length - (now - window.started_at)),
                }
            return result
