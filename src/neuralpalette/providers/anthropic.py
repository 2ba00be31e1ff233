"""Anthropic messages provider."""

from typing import Any, Dict, Tuple

from neuralpalette.errors import ProviderError
from neuralpalette.providers.base import (
    BaseProvider,
    CompletionRequest,
    CompletionResponse,
    retryable_status,
)

API_VERSION = "2023-06-01"

_STOP_REASONS = {"end_turn": "stop", "stop_sequence": "stop", "max_tokens": "length"}
_RETRYABLE_TYPES = {"overloaded_error", "api_error", "rate_limit_error"}


class AnthropicProvider(BaseProvider):
    """
    Calls ``POST {base_url}/messages``.

    Anthropic takes the system prompt as a separate field, so system
    messages are lifted out of the conversation. Frequency and presence
    penalties have no equivalent and are dropped. Token usage is
    ``input_tokens + output_tokens``.
    """

    name = "anthropic"
    DEFAULT_BASE_URL = "https://api.anthropic.com/v1"

    def build_request(
        self, request: CompletionRequest
    ) -> Tuple[str, Dict[str, Any], Dict[str, str]]:
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.settings.api_key,
            "anthropic-version": API_VERSION,
        }

        system_parts = [m.content for m in request.messages if m.role == "system"]
        payload: Dict[str, Any] = {
            "model": request.model or self.default_model,
            "messages": [m.to_dict() for m in request.messages if m.role != "system"],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens or self.default_max_tokens,
            "top_p": request.top_p,
        }
        if system_parts:
            payload["system"] = "\n\n".join(system_parts)
        if request.stop:
            payload["stop_sequences"] = list(request.stop)

        return f"{self.base_url}/messages", payload, headers

    def parse_response(self, data: Any) -> CompletionResponse:
        blocks = data["content"]
        if not isinstance(blocks, list) or not all(isinstance(b, dict) for b in blocks):
            raise ValueError("content must be a list of blocks")
        text = "".join(
            block.get("text", "") for block in blocks if block.get("type", "text") == "text"
        )
        usage = data["usage"]
        return CompletionResponse(
            content=text,
            model=data.get("model") or self.default_model,
            tokens_used=int(usage["input_tokens"]) + int(usage["output_tokens"]),
            finish_reason=_STOP_REASONS.get(data.get("stop_reason"), "error"),
            provider=self.name,
        )

    def map_error(self, status: int, data: Any) -> ProviderError:
        error_type, _, message = self._error_fields(data)
        retryable = retryable_status(status) or error_type in _RETRYABLE_TYPES
        return ProviderError(
            message or f"HTTP {status}",
            provider=self.name,
            code=error_type or "unknown_error",
            status=status,
            retryable=retryable,
        )
