"""
Prompt templates for artist-personalized generation.

System prompts are assembled from the artist's DNA plus task guidance
looked up by creative type. Guidance for new creative types can be
registered at runtime.
"""

import re
import threading
from typing import Dict, Optional

from neuralpalette.personalization.models import ArtistDNA, CreativeType, SentimentType

# Task guidance per creative type; {genres} and {themes} are filled from the DNA
CREATIVE_GUIDANCE: Dict[str, str] = {
    CreativeType.LYRICS.value: "Focus on lyrical composition that reflects the music genres: {genres}",
    CreativeType.MELODY.value: "Create melodic ideas that complement {genres}",
    CreativeType.ARTWORK.value: "Design artwork concepts incorporating visual themes: {themes}",
    CreativeType.CONCEPT.value: "Develop creative concepts aligned with core values",
    CreativeType.STORY.value: "Craft compelling storytelling with emotional resonance",
    CreativeType.VIDEO_CONCEPT.value: "Outline video concepts built around visual themes: {themes}",
    CreativeType.SOCIAL_POST.value: "Write a social media post in the artist's own voice",
    CreativeType.FAN_RESPONSE.value: "Respond authentically to fan interaction",
}

_BUILTIN_GUIDANCE = frozenset(CREATIVE_GUIDANCE.keys())
_guidance_lock = threading.Lock()

VISUAL_TYPES = frozenset({CreativeType.ARTWORK, CreativeType.CONCEPT, CreativeType.VIDEO_CONCEPT})

SENTIMENT_GUIDANCE = {
    SentimentType.EXCITED: "Match their positive energy with enthusiasm",
    SentimentType.POSITIVE: "Match their positive energy with enthusiasm",
    SentimentType.NEGATIVE: "Respond with empathy and understanding",
    SentimentType.CRITICAL: "Respond with empathy and understanding",
    SentimentType.SUPPORTIVE: "Express gratitude and appreciation",
    SentimentType.CURIOUS: "Provide thoughtful and informative responses",
}

EMOJI_GUIDANCE = {
    "frequent": "Use emojis frequently to add expressiveness",
    "high": "Use emojis frequently to add expressiveness",
    "moderate": "Use emojis occasionally where appropriate",
    "medium": "Use emojis occasionally where appropriate",
    "minimal": "Use emojis sparingly, only when they add value",
    "low": "Use emojis sparingly, only when they add value",
    "none": "Do not use emojis",
}

RESPONSE_TOKENS = {"concise": 300, "brief": 300, "moderate": 800, "detailed": 1500}

SENTIMENT_SYSTEM_PROMPT = (
    "You are a sentiment analysis expert. Analyze the sentiment of the following "
    "text and respond with ONLY a JSON object in this exact format:\n"
    "{\n"
    '  "sentiment": ' + " | ".join(f'"{s.value}"' for s in SentimentType) + ",\n"
    '  "confidence": <number between 0 and 100>\n'
    "}"
)


class GuidanceError(Exception):
    """Raised when creative guidance registration fails."""


def register_guidance(creative_type: str, guidance: str, allow_override: bool = False) -> None:
    """
    Register task guidance for a creative type.

    Args:
        creative_type: The type name, e.g. "podcast_script".
        guidance: Instruction text; may use {genres} and {themes}.
        allow_override: Allow replacing built-in guidance.

    Raises:
        GuidanceError: Empty arguments, or overriding a built-in without
            allow_override=True.
    """
    if not creative_type or not creative_type.strip():
        raise GuidanceError("Creative type cannot be empty")
    if not guidance or not guidance.strip():
        raise GuidanceError("Guidance cannot be empty")
    if creative_type in _BUILTIN_GUIDANCE and not allow_override:
        raise GuidanceError(
            f"Cannot override built-in guidance '{creative_type}'. "
            f"Use allow_override=True to override."
        )
    with _guidance_lock:
        CREATIVE_GUIDANCE[creative_type] = guidance.strip()


def get_guidance(creative_type: str, artist: ArtistDNA) -> str:
    """Task guidance for a creative type, filled in from the artist DNA."""
    key = creative_type.value if isinstance(creative_type, CreativeType) else creative_type
    with _guidance_lock:
        template = CREATIVE_GUIDANCE.get(key, "")
    return template.replace("{genres}", ", ".join(artist.creative_style.music_genres)).replace(
        "{themes}", ", ".join(artist.creative_style.visual_themes)
    )


def emoji_guidance(usage: str) -> str:
    return EMOJI_GUIDANCE.get(usage, "Use emojis moderately")


def response_tokens(preference: str) -> int:
    """Max tokens for a response-length preference."""
    return RESPONSE_TOKENS.get(preference, 800)


def build_system_prompt(artist: ArtistDNA, creative_type: CreativeType) -> str:
    """
    System prompt for creative generation.

    Example:
        >>> prompt = build_system_prompt(artist, CreativeType.LYRICS)
        >>> artist.name in prompt
        True
    """
    style = artist.creative_style
    comm = artist.communication_style
    return f"""You are a creative AI assistant for the artist "{artist.name}".

ARTIST PROFILE:
Bio: {artist.bio}
Artistic Vision: {artist.values.artistic_vision}
Writing Style: {style.writing_style}

CREATIVE IDENTITY:
Visual Themes: {", ".join(style.visual_themes)}
Music Genres: {", ".join(style.music_genres)}
Core Values: {", ".join(artist.values.core_values)}

COMMUNICATION STYLE:
- Tone: {comm.tone}
- Emoji Usage: {comm.emoji_usage}
- Response Length: {comm.response_length}

TASK: {get_guidance(creative_type, artist)}

IMPORTANT:
- Maintain the artist's unique voice and perspective
- Reflect their core values in all content
- Match their communication style (tone, emoji usage, length)
- Create authentic content that feels true to the artist's identity"""


def build_fan_response_prompt(
    artist: ArtistDNA, sentiment: Optional[SentimentType] = None
) -> str:
    """System prompt for replying to a fan, tuned to the fan's sentiment."""
    comm = artist.communication_style
    sentiment_block = ""
    if sentiment is not None:
        guidance = SENTIMENT_GUIDANCE.get(sentiment, "Respond warmly and authentically")
        sentiment_block = f"FAN SENTIMENT: {sentiment.value}\nGUIDANCE: {guidance}\n"

    return f"""You are responding to a fan on behalf of the artist "{artist.name}".

ARTIST PROFILE:
Fan Relationship Philosophy: {artist.values.fan_relationship_philosophy}
Core Values: {", ".join(artist.values.core_values)}

COMMUNICATION STYLE:
- Tone: {comm.tone}
- Emoji Usage: {comm.emoji_usage}
- Response Length: {comm.response_length}

{sentiment_block}
IMPORTANT:
- Be authentic and true to the artist's voice
- Build genuine connection with the fan
- Reflect the artist's values and philosophy
- {emoji_guidance(comm.emoji_usage)}
- Keep responses {comm.response_length}"""


def build_artist_context_prompt(artist: ArtistDNA, task: str) -> str:
    """General-purpose prompt that frames any task in the artist's voice."""
    comm = artist.communication_style
    return f"""You are an AI assistant representing the artist "{artist.name}".

Artist Bio: {artist.bio}

Artistic Vision: {artist.values.artistic_vision}

Communication Style:
- Tone: {comm.tone}
- Emoji Usage: {comm.emoji_usage}
- Response Length: {comm.response_length}

Core Values: {", ".join(artist.values.core_values)}
Visual Themes: {", ".join(artist.creative_style.visual_themes)}

Fan Relationship Philosophy: {artist.values.fan_relationship_philosophy}

Task: {task}

Please respond in a way that reflects this artist's unique voice and values."""


def enhance_prompt(prompt: str, artist: ArtistDNA, creative_type: CreativeType) -> str:
    """Append the colour palette to prompts for visual work."""
    palette = artist.creative_style.color_palette
    if creative_type in VISUAL_TYPES and palette:
        return f"{prompt}\n\nSuggested color palette: {', '.join(palette)}"
    return prompt


def extract_json_object(text: str) -> str:
    """
    Pull the first JSON object out of a model reply.

    Strips markdown fences and conversational prefixes, then returns the
    text from the first ``{`` to its matching ``}``. Returns the stripped
    input when no object is found, letting json.loads fail naturally.

    Example:
        >>> extract_json_object('Sure! ```json\\n{"sentiment": "happy"}\\n```')
        '{"sentiment": "happy"}'
    """
    text = re.sub(r"```(?:json)?", "", text).strip()
    start = text.find("{")
    if start == -1:
        return text

    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        char = text[i]
        if escape_next:
            escape_next = False
            continue
        if char == "\\" and in_string:
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return text[start:]
