"""
Artist DNA and generation types used to personalize AI output.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class CreativeType(str, Enum):
    LYRICS = "lyrics"
    MELODY = "melody"
    ARTWORK = "artwork"
    CONCEPT = "concept"
    STORY = "story"
    VIDEO_CONCEPT = "video_concept"
    SOCIAL_POST = "social_post"
    OTHER = "other"
    FAN_RESPONSE = "fan_response"


class SentimentType(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    EXCITED = "excited"
    CURIOUS = "curious"
    SUPPORTIVE = "supportive"
    CRITICAL = "critical"

    @classmethod
    def parse(cls, value: Any) -> "SentimentType":
        """Coerce a model-produced label; unknown labels become NEUTRAL."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.NEUTRAL


@dataclass
class CreativeStyle:
    visual_themes: List[str] = field(default_factory=list)
    music_genres: List[str] = field(default_factory=list)
    writing_style: str = ""
    color_palette: List[str] = field(default_factory=list)


@dataclass
class CommunicationStyle:
    """
    How the artist talks to fans.

    Attributes:
        tone: friendly, professional, casual or inspiring.
        emoji_usage: high/medium/low (also frequent/moderate/minimal/none).
        response_length: brief/moderate/detailed (also concise).
        language_preferences: Languages in order of preference.
    """

    tone: str = "friendly"
    emoji_usage: str = "medium"
    response_length: str = "moderate"
    language_preferences: List[str] = field(default_factory=list)


@dataclass
class ArtistValues:
    core_values: List[str] = field(default_factory=list)
    artistic_vision: str = ""
    fan_relationship_philosophy: str = ""


@dataclass
class ArtistDNA:
    """
    The profile every personalized prompt is built from.

    Example:
        >>> artist = ArtistDNA.from_dict({"id": "a1", "name": "Mika", "bio": "..."})
    """

    id: str
    name: str
    bio: str = ""
    creative_style: CreativeStyle = field(default_factory=CreativeStyle)
    communication_style: CommunicationStyle = field(default_factory=CommunicationStyle)
    values: ArtistValues = field(default_factory=ArtistValues)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArtistDNA":
        return cls(
            id=str(data["id"]),
            name=data["name"],
            bio=data.get("bio", ""),
            creative_style=CreativeStyle(**data.get("creative_style", {})),
            communication_style=CommunicationStyle(**data.get("communication_style", {})),
            values=ArtistValues(**data.get("values", {})),
        )


@dataclass
class GenerationParams:
    """Sampling parameters a caller may override; None keeps the default."""

    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None


@dataclass
class GenerationRequest:
    artist: ArtistDNA
    prompt: str
    type: CreativeType = CreativeType.CONCEPT
    params: GenerationParams = field(default_factory=GenerationParams)
    context: Optional[str] = None


@dataclass
class PersonalizedResponse:
    """
    A generation result with a heuristic confidence score.

    Attributes:
        confidence: 0-100; lowered for truncated or very short output.
        cached: True when served from the response cache.
    """

    content: str
    model: str
    tokens_used: int
    confidence: int
    provider: str
    cached: bool = False


@dataclass
class SentimentResult:
    sentiment: SentimentType
    confidence: int

    @classmethod
    def default(cls) -> "SentimentResult":
        """The answer used whenever analysis is impossible."""
        return cls(SentimentType.NEUTRAL, 50)
