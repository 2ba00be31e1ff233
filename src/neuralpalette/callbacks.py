"""
Lifecycle hooks for provider calls.

Optional callbacks invoked by the provider manager and the personalized
generation service, for monitoring or custom logging.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass
class Callbacks:
    """
    Lifecycle callbacks for AI operations.

    All callbacks are optional. If not provided, they are no-ops.

    Example:
        >>> def on_fallback(source, target, error):
        ...     alerts.send(f"{source} failed, using {target}: {error}")
        >>> manager = ProviderManager(config, callbacks=Callbacks(on_fallback=on_fallback))
    """

    on_request_start: Optional[Callable[[str], None]] = None
    """Called before the first call to a provider. Args: (provider)"""

    on_request_end: Optional[Callable[[Any, float], None]] = None
    """Called after a successful completion. Args: (response, duration_ms)"""

    on_retry: Optional[Callable[[str, int, str], None]] = None
    """Called before a backoff. Args: (provider, attempt_number, error_message)"""

    on_fallback: Optional[Callable[[str, str, str], None]] = None
    """Called when switching provider. Args: (from_provider, to_provider, reason)"""

    on_cache_hit: Optional[Callable[[str, str], None]] = None
    """Called on cache hit. Args: (purpose, label), label being an artist id or text preview"""

    def invoke_request_start(self, provider: str) -> None:
        if self.on_request_start:
            self.on_request_start(provider)

    def invoke_request_end(self, response: Any, duration_ms: float) -> None:
        if self.on_request_end:
            self.on_request_end(response, duration_ms)

    def invoke_retry(self, provider: str, attempt: int, error: str) -> None:
        if self.on_retry:
            self.on_retry(provider, attempt, error)

    def invoke_fallback(self, from_provider: str, to_provider: str, reason: str) -> None:
        if self.on_fallback:
            self.on_fallback(from_provider, to_provider, reason)

    def invoke_cache_hit(self, purpose: str, label: str) -> None:
        if self.on_cache_hit:
            self.on_cache_hit(purpose, label)
