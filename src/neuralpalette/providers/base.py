"""
Provider-agnostic request/response types and the provider base class.

Concrete providers translate a CompletionRequest into their own wire format,
make the HTTP call with httpx, and map the answer (or the error) back into
a CompletionResponse or a ProviderError.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from neuralpalette.config import ProviderSettings
from neuralpalette.errors import ProviderError

ROLES = ("system", "user", "assistant")

# Statuses that mean "try again later", besides every 5xx
RETRYABLE_STATUSES = {408, 429}


def retryable_status(status: int) -> bool:
    return status in RETRYABLE_STATUSES or status >= 500


@dataclass
class Message:
    role: str
    content: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Invalid role '{self.role}'. Available: {list(ROLES)}")

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "Message":
        return cls(role=data["role"], content=data["content"])


@dataclass
class CompletionRequest:
    """
    A chat-completion request, independent of provider.

    Attributes:
        messages: Ordered, role-tagged conversation.
        model: Model hint; providers use their configured default when None.
        temperature: Sampling temperature.
        max_tokens: Generation limit; providers fall back to their default.
        top_p: Nucleus sampling probability.
        frequency_penalty: Repetition penalty (ignored by Anthropic).
        presence_penalty: New-topic penalty (ignored by Anthropic).
        stop: Stop sequences.
    """

    messages: List[Message]
    model: Optional[str] = None
    temperature: float = 0.7
    max_tokens: Optional[int] = None
    top_p: float = 1.0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    stop: Optional[List[str]] = None


@dataclass
class CompletionResponse:
    """
    A normalized completion.

    Attributes:
        content: Generated text.
        model: Model that produced it, as reported by the provider.
        tokens_used: Prompt plus completion tokens.
        finish_reason: "stop", "length" or "error".
        provider: "openai" or "anthropic".
    """

    content: str
    model: str
    tokens_used: int
    finish_reason: str
    provider: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "model": self.model,
            "tokens_used": self.tokens_used,
            "finish_reason": self.finish_reason,
            "provider": self.provider,
        }


class BaseProvider(ABC):
    """
    Base class for chat-completion providers.

    Subclasses set ``name`` and ``DEFAULT_BASE_URL`` and implement the three
    translation hooks; transport, timeouts and error mapping live here.
    """

    name: str = ""
    DEFAULT_BASE_URL: str = ""

    def __init__(
        self,
        settings: Optional[ProviderSettings] = None,
        default_model: str = "",
        default_max_tokens: int = 2000,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Args:
            settings: API key, base URL and timeout for this provider.
            default_model: Used when the request carries no model.
            default_max_tokens: Used when the request carries no max_tokens.
            http_client: Pre-built client (tests inject a MockTransport).
        """
        self.settings = settings or ProviderSettings()
        self.default_model = default_model
        self.default_max_tokens = default_max_tokens
        self.base_url = (self.settings.base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._http_client = http_client
        self._owns_client = http_client is None

    def is_available(self) -> bool:
        """True when credentials are configured."""
        return self.settings.available

    @property
    def client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.settings.timeout)
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """
        Send one completion request.

        Raises:
            ProviderError: For any failure, classified as retryable or not.
        """
        if not self.is_available():
            raise ProviderError(
                f"{self.name} API key not configured",
                provider=self.name,
                code="not_configured",
            )

        url, payload, headers = self.build_request(request)
        try:
            response = await self.client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise ProviderError(
                f"Request timed out after {self.settings.timeout}s",
                provider=self.name,
                code="timeout",
                retryable=True,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"HTTP transport error: {e}",
                provider=self.name,
                code="transport_error",
            ) from e

        if response.status_code >= 400:
            raise self.map_error(response.status_code, _safe_json(response))

        data = _safe_json(response)
        try:
            return self.parse_response(data)
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            raise ProviderError(
                f"Invalid response: {e!r}",
                provider=self.name,
                code="malformed_response",
                status=response.status_code,
            ) from e

    @abstractmethod
    def build_request(
        self, request: CompletionRequest
    ) -> "tuple[str, Dict[str, Any], Dict[str, str]]":
        """Return (url, json_payload, headers) for a request."""

    @abstractmethod
    def parse_response(self, data: Any) -> CompletionResponse:
        """Map a successful response body to a CompletionResponse."""

    @abstractmethod
    def map_error(self, status: int, data: Any) -> ProviderError:
        """Map an error response body to a ProviderError."""

    def _error_fields(self, data: Any) -> "tuple[Optional[str], Optional[str], Optional[str]]":
        """Pull (type, code, message) out of an ``{"error": {...}}`` body."""
        error = data.get("error") if isinstance(data, dict) else None
        if not isinstance(error, dict):
            return None, None, None
        return error.get("type"), error.get("code"), error.get("message")


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"error": {"message": response.text[:500]}}
