"""
Exceptions raised by the Neural Palette AI layer.

The provider manager is the boundary that absorbs provider-specific error
shapes; everything above it only ever sees these types. Each error carries
enough context to render an actionable message.

Cache operations never raise and have no entry here.
"""

from typing import Dict, Optional


class NeuralPaletteError(Exception):
    """
    Base exception with diagnostic context.

    Attributes:
        message: Human-readable error description.
        suggestion: Actionable suggestion for fixing the issue.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = self._generate_suggestion()

    def _generate_suggestion(self) -> str:
        return ""

    def _details(self) -> list:
        return []

    def __str__(self) -> str:
        parts = [f"{type(self).__name__}: {self.message}"]
        parts.extend(f"  {line}" for line in self._details())
        if self.suggestion:
            parts.append(f"\n  Suggestion: {self.suggestion}")
        return "\n".join(parts)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r})"


class ConfigError(NeuralPaletteError):
    """Raised when configuration cannot be loaded or is invalid."""


class ProviderError(NeuralPaletteError):
    """
    A normalized failure from one AI provider.

    Attributes:
        provider: The provider name ("openai" or "anthropic").
        code: The provider's error code or type, or a local code such as
            "timeout" or "malformed_response".
        status: HTTP status, if a response was received.
        retryable: True for transient overload / rate limiting.
        attempts: How many calls were made before giving up.
    """

    # Error codes and their suggestions
    _SUGGESTIONS = {
        "invalid_api_key": "Check the provider API key in your environment or config file.",
        "authentication_error": "Check the provider API key in your environment or config file.",
        "rate_limit_exceeded": "The provider is throttling us. Lower AI_RPM/AI_TPM or retry later.",
        "rate_limit_error": "The provider is throttling us. Lower AI_RPM/AI_TPM or retry later.",
        "overloaded_error": "The provider is overloaded. The fallback provider will be tried.",
        "timeout": "Increase the provider timeout or try a smaller max_tokens.",
        "malformed_response": "The provider returned an unexpected payload. Check the base URL.",
        "not_configured": "Set the provider API key to enable it.",
    }

    def __init__(
        self,
        message: str,
        provider: str,
        code: str = "unknown_error",
        status: Optional[int] = None,
        retryable: bool = False,
        attempts: int = 1,
    ) -> None:
        self.provider = provider
        self.code = code
        self.status = status
        self.retryable = retryable
        self.attempts = attempts
        super().__init__(message)

    def _generate_suggestion(self) -> str:
        return self._SUGGESTIONS.get(self.code, "")

    def _details(self) -> list:
        lines = [f"Provider: {self.provider}", f"Code: {self.code}"]
        if self.status is not None:
            lines.append(f"HTTP status: {self.status}")
        if self.attempts > 1:
            lines.append(f"Attempts: {self.attempts}")
        lines.append(f"Retryable: {self.retryable}")
        return lines

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(provider={self.provider!r}, "
            f"code={self.code!r}, status={self.status}, "
            f"retryable={self.retryable}, attempts={self.attempts})"
        )


class MaxRetriesExceededError(ProviderError):
    """A provider kept returning retryable errors until attempts ran out."""

    def __init__(self, last_error: ProviderError, attempts: int) -> None:
        super().__init__(
            f"Max retries exceeded: {last_error.message}",
            provider=last_error.provider,
            code=last_error.code,
            status=last_error.status,
            retryable=True,
            attempts=attempts,
        )
        self.last_error = last_error


class RateLimitExceededError(NeuralPaletteError):
    """
    Our own rolling budget refused the request before any network call.

    Distinct from a provider 429, which surfaces as a retryable ProviderError.

    Attributes:
        scope: "minute" or "day".
        kind: "requests" or "tokens".
        limit: The configured ceiling.
        used: The amount already consumed in the current window.
        retry_after: Seconds until the window resets.
    """

    def __init__(
        self, scope: str, kind: str, limit: int, used: int, retry_after: float
    ) -> None:
        self.scope = scope
        self.kind = kind
        self.limit = limit
        self.used = used
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded: too many {kind} per {scope}")

    def _generate_suggestion(self) -> str:
        return f"Wait {self.retry_after:.0f}s or raise the {self.kind}-per-{self.scope} ceiling."

    def _details(self) -> list:
        return [f"Used: {self.used}/{self.limit}"]


class NoProviderAvailableError(NeuralPaletteError):
    """
    Neither provider is configured, or every configured provider failed.

    Attributes:
        errors: The failure of each provider that was attempted, by name.
    """

    def __init__(self, errors: Optional[Dict[str, ProviderError]] = None) -> None:
        self.errors = dict(errors or {})
        super().__init__("No AI providers available")

    def _generate_suggestion(self) -> str:
        if not self.errors:
            return "Set OPENAI_API_KEY and/or ANTHROPIC_API_KEY."
        return "Both providers failed; callers should apply their non-AI default."

    def _details(self) -> list:
        return [
            f"{name}: [{err.code}] {err.message}" for name, err in self.errors.items()
        ]
