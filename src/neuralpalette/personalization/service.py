"""
Artist-personalized generation on top of the provider manager.
"""

import json
import math
from typing import Any, Dict, List, Optional, Sequence

from neuralpalette.callbacks import Callbacks
from neuralpalette.core.cache import PURPOSE_COMPLETION, PURPOSE_SENTIMENT, AIResponseCache
from neuralpalette.errors import NeuralPaletteError
from neuralpalette.manager import ProviderManager
from neuralpalette.metrics import Metrics
from neuralpalette.personalization.models import (
    ArtistDNA,
    CreativeType,
    GenerationParams,
    GenerationRequest,
    PersonalizedResponse,
    SentimentResult,
    SentimentType,
)
from neuralpalette.personalization.prompts import (
    SENTIMENT_SYSTEM_PROMPT,
    build_fan_response_prompt,
    build_system_prompt,
    enhance_prompt,
    extract_json_object,
    response_tokens,
)
from neuralpalette.providers.base import CompletionRequest, CompletionResponse, Message
from neuralpalette.utils.logger import log_cache_hit
from neuralpalette.utils.logging_config import get_logger

logger = get_logger("personalization")

# Creative sampling defaults
CREATIVE_TEMPERATURE = 0.8
CREATIVE_MAX_TOKENS = 2000
CREATIVE_TOP_P = 0.9
CREATIVE_PENALTY = 0.3

FAN_TEMPERATURE = 0.7
FAN_TOP_P = 0.9

SENTIMENT_TEMPERATURE = 0.1
SENTIMENT_MAX_TOKENS = 100

BASE_CONFIDENCE = 80


def calculate_confidence(response: CompletionResponse) -> int:
    """
    Heuristic confidence for a completion, 0-100.

    Starts at 80, loses 20 when the output was truncated and 10 when it is
    shorter than 50 characters.
    """
    confidence = BASE_CONFIDENCE
    if response.finish_reason == "length":
        confidence -= 20
    if len(response.content) < 50:
        confidence -= 10
    return max(0, min(100, confidence))


def params_to_request(
    messages: List[Message], params: Optional[GenerationParams] = None
) -> CompletionRequest:
    """Build a completion request, filling unset params with creative defaults."""
    params = params or GenerationParams()
    return CompletionRequest(
        messages=messages,
        temperature=_pick(params.temperature, CREATIVE_TEMPERATURE),
        max_tokens=_pick(params.max_tokens, CREATIVE_MAX_TOKENS),
        top_p=_pick(params.top_p, CREATIVE_TOP_P),
        frequency_penalty=_pick(params.frequency_penalty, CREATIVE_PENALTY),
        presence_penalty=_pick(params.presence_penalty, CREATIVE_PENALTY),
    )


def _pick(value: Any, default: Any) -> Any:
    return default if value is None else value


class PersonalizedAI:
    """
    Generates content in an artist's voice.

    Creative generations and sentiment analyses are cached; fan replies
    depend on conversation history and are always generated fresh.

    Example:
        >>> ai = PersonalizedAI(manager, cache=AIResponseCache())
        >>> result = await ai.generate_creative(
        ...     GenerationRequest(artist, "Write a chorus about rain", CreativeType.LYRICS)
        ... )
        >>> result.cached
        False
    """

    def __init__(
        self,
        manager: ProviderManager,
        cache: Optional[AIResponseCache] = None,
        metrics: Optional[Metrics] = None,
        callbacks: Optional[Callbacks] = None,
        debug: bool = False,
    ) -> None:
        self.manager = manager
        self.cache = cache
        self.metrics = metrics or manager.metrics
        self.callbacks = callbacks or manager.callbacks
        self.debug = debug

    async def generate_creative(self, request: GenerationRequest) -> PersonalizedResponse:
        """
        Generate creative content with the artist's DNA in the system prompt.

        Args:
            request: Artist, prompt, creative type, optional params and context.

        Returns:
            The generated content; ``cached`` is True on a cache hit.

        Raises:
            RateLimitExceededError: The local budget is spent.
            NoProviderAvailableError: Every provider failed.
        """
        messages = [
            Message("system", build_system_prompt(request.artist, request.type)),
            Message("user", enhance_prompt(request.prompt, request.artist, request.type)),
        ]
        if request.context:
            messages.append(Message("user", f"Additional Context: {request.context}"))
        completion_request = params_to_request(messages, request.params)

        if self.cache is not None:
            cached = self.cache.get_completion(completion_request, expected=CompletionResponse)
            if cached is not None:
                self._record_hit(PURPOSE_COMPLETION, request.artist.id)
                return self._to_personalized(cached, cached=True)
            self.metrics.record_cache_miss()

        response = await self.manager.complete(completion_request)
        if self.cache is not None:
            self.cache.cache_completion(completion_request, response, artist_id=request.artist.id)
        return self._to_personalized(response)

    async def generate_fan_response(
        self,
        artist: ArtistDNA,
        message: str,
        history: Optional[Sequence[Message]] = None,
        sentiment: Optional[SentimentType] = None,
    ) -> PersonalizedResponse:
        """
        Reply to a fan as the artist. Anthropic is preferred for conversation.

        Args:
            artist: The artist replying.
            message: The fan's message.
            history: Earlier turns, oldest first.
            sentiment: The fan's sentiment, if already known.
        """
        messages = [Message("system", build_fan_response_prompt(artist, sentiment))]
        messages.extend(history or [])
        messages.append(Message("user", message))

        request = CompletionRequest(
            messages=messages,
            temperature=FAN_TEMPERATURE,
            max_tokens=response_tokens(artist.communication_style.response_length),
            top_p=FAN_TOP_P,
        )
        response = await self.manager.complete(request, preferred_provider="anthropic")
        return self._to_personalized(response)

    async def analyze_sentiment(self, text: str) -> SentimentResult:
        """
        Classify the sentiment of a text.

        Never raises for provider, rate-limit or parse failures: those
        yield a neutral result with confidence 50, which is not cached.
        """
        if self.cache is not None:
            cached = self.cache.get_sentiment(text, expected=SentimentResult)
            if cached is not None:
                self._record_hit(PURPOSE_SENTIMENT, text[:40])
                return cached
            self.metrics.record_cache_miss()

        request = CompletionRequest(
            messages=[Message("system", SENTIMENT_SYSTEM_PROMPT), Message("user", text)],
            temperature=SENTIMENT_TEMPERATURE,
            max_tokens=SENTIMENT_MAX_TOKENS,
        )
        try:
            response = await self.manager.complete(request)
        except NeuralPaletteError as e:
            logger.warning("Sentiment analysis failed, defaulting to neutral: %s", e.message)
            return SentimentResult.default()

        try:
            result = parse_sentiment(response.content)
        except (ValueError, TypeError, OverflowError) as e:
            logger.warning("Could not parse sentiment output: %s", e)
            return SentimentResult.default()

        if self.cache is not None:
            self.cache.cache_sentiment(text, result)
        return result

    async def generate_variations(
        self, artist: ArtistDNA, content: str, count: int = 3
    ) -> List[str]:
        """Generate ``count`` variations, each at a higher temperature than the last."""
        variations = []
        for i in range(count):
            request = GenerationRequest(
                artist=artist,
                prompt=(
                    "Create a variation of this content while maintaining the same "
                    f"core message and artistic voice:\n\n{content}"
                ),
                type=CreativeType.CONCEPT,
                params=GenerationParams(temperature=round(0.8 + i * 0.1, 2)),
            )
            response = await self.generate_creative(request)
            variations.append(response.content)
        return variations

    def invalidate_artist(self, artist_id: str) -> int:
        """Forget cached generations for an artist, e.g. after a DNA update."""
        if self.cache is None:
            return 0
        return self.cache.invalidate_artist(artist_id)

    def _record_hit(self, purpose: str, label: str) -> None:
        self.metrics.record_cache_hit()
        self.callbacks.invoke_cache_hit(purpose, label)
        logger.debug("Cache hit (%s)", purpose)
        if self.debug:
            log_cache_hit(purpose, label)

    @staticmethod
    def _to_personalized(response: CompletionResponse, cached: bool = False) -> PersonalizedResponse:
        return PersonalizedResponse(
            content=response.content,
            model=response.model,
            tokens_used=response.tokens_used,
            confidence=calculate_confidence(response),
            provider=response.provider,
            cached=cached,
        )


def parse_sentiment(content: str) -> SentimentResult:
    """
    Parse a sentiment reply into a result.

    Raises:
        ValueError: The reply holds no JSON object or a non-finite confidence.
    """
    data: Dict[str, Any] = json.loads(extract_json_object(content))
    if not isinstance(data, dict):
        raise ValueError("Sentiment reply is not a JSON object")
    raw = float(data.get("confidence", 50))
    if not math.isfinite(raw):
        raise ValueError(f"Sentiment confidence is not finite: {raw}")
    confidence = int(round(raw))
    return SentimentResult(
        sentiment=SentimentType.parse(data.get("sentiment")),
        confidence=max(0, min(100, confidence)),
    )
