"""
Provider manager - completion requests with retry, fallback and budgeting.

Each request goes through a small state machine:

    ATTEMPT_PRIMARY --ok--> DONE
        | retryable failure: backoff 2**n seconds, up to max attempts
        | exhausted, non-retryable, or primary not configured
        v
    ATTEMPT_FALLBACK --ok--> DONE
        | failure or not configured
        v
    FAILED (NoProviderAvailableError)

The local rate budget is checked before the first call and charged after
a successful one.
"""

import asyncio
import dataclasses
import time
from typing import Any, Dict, List, Optional

from neuralpalette.callbacks import Callbacks
from neuralpalette.config import PROVIDERS, Config
from neuralpalette.core.rate_limit import RateBudget
from neuralpalette.core.retry import RetryPolicy, SleepFn, call_with_retry
from neuralpalette.errors import (
    NoProviderAvailableError,
    ProviderError,
    RateLimitExceededError,
)
from neuralpalette.metrics import Metrics
from neuralpalette.providers.anthropic import AnthropicProvider
from neuralpalette.providers.base import BaseProvider, CompletionRequest, CompletionResponse
from neuralpalette.providers.openai import OpenAIProvider
from neuralpalette.utils.logger import log_fallback, log_retry
from neuralpalette.utils.logging_config import get_logger

logger = get_logger("manager")


def build_providers(config: Config) -> Dict[str, BaseProvider]:
    """Create one provider per configured backend."""
    models = config.models
    return {
        "openai": OpenAIProvider(
            config.openai,
            default_model=models.text_generation.primary,
            default_max_tokens=models.text_generation.max_tokens,
        ),
        "anthropic": AnthropicProvider(
            config.anthropic,
            default_model=models.fan_interaction.primary,
            default_max_tokens=models.fan_interaction.max_tokens,
        ),
    }


class ProviderManager:
    """
    Dispatches completion requests to a primary provider with fallback.

    Example:
        >>> async with ProviderManager(load_config()) as manager:
        ...     response = await manager.complete(
        ...         CompletionRequest(messages=[Message("user", "Hello")]),
        ...         preferred_provider="anthropic",
        ...     )
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        providers: Optional[Dict[str, BaseProvider]] = None,
        budget: Optional[RateBudget] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: SleepFn = asyncio.sleep,
        metrics: Optional[Metrics] = None,
        callbacks: Optional[Callbacks] = None,
    ) -> None:
        """
        Args:
            config: Configuration (default: a fresh Config).
            providers: Provider instances by name (default: built from config).
            budget: Rate budget (default: built from config.rate_limit).
            retry_policy: Overrides each provider's own max_retries.
            sleep: Backoff sleep, injectable for tests.
            metrics: Shared metrics instance.
            callbacks: Lifecycle hooks.
        """
        self.config = config or Config()
        self.providers = providers if providers is not None else build_providers(self.config)
        self.budget = budget or RateBudget(self.config.rate_limit)
        self.retry_policy = retry_policy
        self.metrics = metrics or Metrics()
        self.callbacks = callbacks or Callbacks()
        self._sleep = sleep
        self._use_rich_logging = self.config.debug and self.config.logger == "rich"

    async def __aenter__(self) -> "ProviderManager":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        for provider in self.providers.values():
            await provider.aclose()

    @property
    def available_providers(self) -> List[str]:
        return [name for name, p in self.providers.items() if p.is_available()]

    def usage(self) -> Dict[str, Any]:
        """Current rate-budget usage per window."""
        return self.budget.snapshot()

    async def complete(
        self,
        request: CompletionRequest,
        preferred_provider: Optional[str] = None,
    ) -> CompletionResponse:
        """
        Complete a request, falling back to the other provider if needed.

        Args:
            request: The provider-agnostic request.
            preferred_provider: "openai" or "anthropic" (default: config).

        Returns:
            The first successful, normalized response.

        Raises:
            RateLimitExceededError: The local budget is spent; nothing was sent.
            NoProviderAvailableError: No provider configured, or all failed.
            ValueError: Unknown provider name.
        """
        primary_name = preferred_provider or self.config.default_provider
        if primary_name not in PROVIDERS:
            raise ValueError(f"Invalid provider '{primary_name}'. Available: {list(PROVIDERS)}")
        fallback_name = next(name for name in PROVIDERS if name != primary_name)

        try:
            self.budget.check()
        except RateLimitExceededError as e:
            self.metrics.record_rate_limited()
            logger.warning("%s", e.message)
            raise

        start = time.perf_counter()
        errors: Dict[str, ProviderError] = {}

        primary = self.providers.get(primary_name)
        if primary is not None and primary.is_available():
            try:
                response = await self._attempt(primary, request)
                return self._succeed(response, start)
            except ProviderError as e:
                errors[primary_name] = e
                reason = e.message
                logger.warning("Primary provider (%s) failed: %s", primary_name, e.message)
        else:
            reason = f"{primary_name} is not configured"
            logger.debug("Primary provider (%s) unavailable", primary_name)

        fallback = self.providers.get(fallback_name)
        if fallback is not None and fallback.is_available():
            logger.info("Falling back to %s", fallback_name)
            self.metrics.record_fallback()
            self.callbacks.invoke_fallback(primary_name, fallback_name, reason)
            if self._use_rich_logging:
                log_fallback(primary_name, fallback_name, reason)

            # Model names are provider specific
            fallback_request = dataclasses.replace(request, model=None)
            try:
                response = await self._attempt(fallback, fallback_request)
                return self._succeed(response, start)
            except ProviderError as e:
                errors[fallback_name] = e
                logger.error("Fallback provider (%s) failed: %s", fallback_name, e.message)

        self.metrics.record_request(success=False, latency_ms=_elapsed_ms(start))
        raise NoProviderAvailableError(errors)

    async def _attempt(
        self, provider: BaseProvider, request: CompletionRequest
    ) -> CompletionResponse:
        def on_retry(attempt: int, error: ProviderError) -> None:
            self.metrics.record_retry()
            self.callbacks.invoke_retry(provider.name, attempt, error.message)
            logger.info(
                "Retrying %s after attempt %d/%d: %s",
                provider.name,
                attempt,
                policy.max_attempts,
                error.message,
            )
            if self._use_rich_logging:
                log_retry(provider.name, attempt, policy.max_attempts, error.message)

        policy = self.retry_policy or RetryPolicy(max_attempts=provider.settings.max_retries)
        self.callbacks.invoke_request_start(provider.name)
        return await call_with_retry(
            lambda: provider.complete(request),
            policy=policy,
            sleep=self._sleep,
            on_retry=on_retry,
        )

    def _succeed(self, response: CompletionResponse, start: float) -> CompletionResponse:
        latency_ms = _elapsed_ms(start)
        self.budget.record(response.tokens_used)
        self.metrics.record_tokens(response.provider, response.tokens_used)
        self.metrics.record_request(success=True, latency_ms=latency_ms)
        self.callbacks.invoke_request_end(response, latency_ms)
        logger.debug(
            "%s completion | model=%s | tokens=%d | %.0fms",
            response.provider,
            response.model,
            response.tokens_used,
            latency_ms,
        )
        return response


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
