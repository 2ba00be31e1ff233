"""Shared fixtures: a fake clock, a recording sleep and scripted providers."""

from typing import Any, List, Sequence

import pytest

from neuralpalette.config import ProviderSettings
from neuralpalette.errors import ProviderError
from neuralpalette.personalization.models import ArtistDNA
from neuralpalette.providers.base import BaseProvider, CompletionRequest, CompletionResponse


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class ScriptedProvider(BaseProvider):
    """
    Provider that plays back a script of responses and errors.

    The last outcome repeats once the script is exhausted.
    """

    def __init__(self, name: str, outcomes: Sequence[Any], available: bool = True) -> None:
        super().__init__(ProviderSettings(api_key="test-key" if available else ""))
        self.name = name
        self.outcomes = list(outcomes)
        self.requests: List[CompletionRequest] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def build_request(self, request):
        raise NotImplementedError

    def parse_response(self, data):
        raise NotImplementedError

    def map_error(self, status, data):
        raise NotImplementedError


def completion(
    content: str = "A" * 60,
    provider: str = "openai",
    tokens: int = 42,
    finish_reason: str = "stop",
    model: str = "test-model",
) -> CompletionResponse:
    return CompletionResponse(
        content=content,
        model=model,
        tokens_used=tokens,
        finish_reason=finish_reason,
        provider=provider,
    )


def overloaded(provider: str = "openai") -> ProviderError:
    return ProviderError(
        "Server overloaded", provider=provider, code="overloaded_error", status=529, retryable=True
    )


def unauthorized(provider: str = "openai") -> ProviderError:
    return ProviderError(
        "Invalid API key", provider=provider, code="invalid_api_key", status=401, retryable=False
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_provider():
    return ScriptedProvider


@pytest.fixture
def make_completion():
    return completion


@pytest.fixture
def retryable_error():
    return overloaded


@pytest.fixture
def fatal_error():
    return unauthorized


@pytest.fixture
def artist() -> ArtistDNA:
    return ArtistDNA.from_dict(
        {
            "id": "artist-1",
            "name": "Luna Vega",
            "bio": "Dream-pop songwriter from Lisbon",
            "creative_style": {
                "visual_themes": ["moonlight", "ocean"],
                "music_genres": ["dream pop", "shoegaze"],
                "writing_style": "poetic",
                "color_palette": ["#1B1F3B", "#C4B5FD"],
            },
            "communication_style": {
                "tone": "friendly",
                "emoji_usage": "low",
                "response_length": "brief",
            },
            "values": {
                "core_values": ["honesty", "community"],
                "artistic_vision": "Music as a late-night conversation",
                "fan_relationship_philosophy": "Every fan is a collaborator",
            },
        }
    )
