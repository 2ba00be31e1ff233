"""
Neural Palette AI - response caching and provider fallback for artist AI.

Wraps OpenAI and Anthropic chat completions behind one manager with retry,
fallback and a local rate budget, caches results in an LRU+TTL cache, and
personalizes generation with an artist's DNA.

Example:
    >>> from neuralpalette import AIRuntime, ArtistDNA, CreativeType, GenerationRequest
    >>>
    >>> artist = ArtistDNA.from_dict({"id": "a1", "name": "Mika", "bio": "Synth-pop"})
    >>> async with AIRuntime.from_config() as runtime:
    ...     result = await runtime.ai.generate_creative(
    ...         GenerationRequest(artist, "Three song titles", CreativeType.CONCEPT)
    ...     )
"""

from neuralpalette.batch import BatchProcessor, BatchResult
from neuralpalette.callbacks import Callbacks
from neuralpalette.config import Config, load_config
from neuralpalette.conversation import FanConversation
from neuralpalette.core.cache import AIResponseCache, CacheEntry, ResponseCache, make_cache_key
from neuralpalette.core.rate_limit import RateBudget
from neuralpalette.core.retry import RetryPolicy
from neuralpalette.core.sweeper import CacheSweeper
from neuralpalette.errors import (
    ConfigError,
    MaxRetriesExceededError,
    NeuralPaletteError,
    NoProviderAvailableError,
    ProviderError,
    RateLimitExceededError,
)
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
from neuralpalette.personalization.service import PersonalizedAI
from neuralpalette.providers.base import CompletionRequest, CompletionResponse, Message
from neuralpalette.runtime import AIRuntime

__version__ = "0.1.0"
__all__ = [
    "AIResponseCache",
    "AIRuntime",
    "ArtistDNA",
    "BatchProcessor",
    "BatchResult",
    "CacheEntry",
    "CacheSweeper",
    "Callbacks",
    "CompletionRequest",
    "CompletionResponse",
    "Config",
    "ConfigError",
    "CreativeType",
    "FanConversation",
    "GenerationParams",
    "GenerationRequest",
    "MaxRetriesExceededError",
    "Message",
    "Metrics",
    "NeuralPaletteError",
    "NoProviderAvailableError",
    "PersonalizedAI",
    "PersonalizedResponse",
    "ProviderError",
    "ProviderManager",
    "RateBudget",
    "RateLimitExceededError",
    "ResponseCache",
    "RetryPolicy",
    "SentimentResult",
    "SentimentType",
    "load_config",
    "make_cache_key",
    "__version__",
]
