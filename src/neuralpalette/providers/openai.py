"""OpenAI chat-completions provider."""

from typing import Any, Dict, Tuple

from neuralpalette.errors import ProviderError
from neuralpalette.providers.base import (
    BaseProvider,
    CompletionRequest,
    CompletionResponse,
    retryable_status,
)

_FINISH_REASONS = {"stop": "stop", "length": "length"}


class OpenAIProvider(BaseProvider):
    """
    Calls ``POST {base_url}/chat/completions``.

    The message list is sent as is, system message included. Token usage
    comes from ``usage.total_tokens``.
    """

    name = "openai"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"

    def build_request(
        self, request: CompletionRequest
    ) -> Tuple[str, Dict[str, Any], Dict[str, str]]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.api_key}",
        }
        if self.settings.organization:
            headers["OpenAI-Organization"] = self.settings.organization

        payload: Dict[str, Any] = {
            "model": request.model or self.default_model,
            "messages": [m.to_dict() for m in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens or self.default_max_tokens,
            "top_p": request.top_p,
            "frequency_penalty": request.frequency_penalty,
            "presence_penalty": request.presence_penalty,
        }
        if request.stop:
            payload["stop"] = list(request.stop)

        return f"{self.base_url}/chat/completions", payload, headers

    def parse_response(self, data: Any) -> CompletionResponse:
        choice = data["choices"][0]
        return CompletionResponse(
            content=choice["message"]["content"] or "",
            model=data.get("model") or self.default_model,
            tokens_used=int(data["usage"]["total_tokens"]),
            finish_reason=_FINISH_REASONS.get(choice.get("finish_reason"), "error"),
            provider=self.name,
        )

    def map_error(self, status: int, data: Any) -> ProviderError:
        error_type, code, message = self._error_fields(data)
        retryable = retryable_status(status) or error_type == "server_error"
        return ProviderError(
            message or f"HTTP {status}",
            provider=self.name,
            code=code or error_type or "unknown_error",
            status=status,
            retryable=retryable,
        )
