#!/usr/bin/env python3
"""
Neural Palette AI Demo - personalized generation with caching and fallback.

Requirements:
    - OPENAI_API_KEY and/or ANTHROPIC_API_KEY in the environment
    - pip install neuralpalette-ai

Usage:
    python demo.py
"""

import asyncio

from neuralpalette import (
    AIRuntime,
    ArtistDNA,
    CreativeType,
    FanConversation,
    GenerationRequest,
    NeuralPaletteError,
    load_config,
)
from neuralpalette.utils.logger import print_cache_stats
from neuralpalette.utils.logging_config import configure_logging

ARTIST = ArtistDNA.from_dict(
    {
        "id": "demo-artist",
        "name": "Luna Vega",
        "bio": "Dream-pop songwriter writing about the sea at night.",
        "creative_style": {
            "visual_themes": ["moonlight", "ocean", "neon"],
            "music_genres": ["dream pop", "shoegaze"],
            "writing_style": "poetic, second person",
            "color_palette": ["#1B1F3B", "#C4B5FD", "#F472B6"],
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


async def demo_creative(runtime: AIRuntime) -> None:
    """
    Demo 1: Creative generation and the response cache.

    The second identical request is answered from the cache.
    """
    print("=" * 60)
    print("DEMO 1: Creative Generation")
    print("=" * 60)

    request = GenerationRequest(ARTIST, "Three titles for a winter EP", CreativeType.CONCEPT)
    first = await runtime.ai.generate_creative(request)
    print(first.content)
    print(f"[{first.provider} | {first.tokens_used} tokens | confidence {first.confidence}]")

    second = await runtime.ai.generate_creative(request)
    print(f"Second call cached: {second.cached}")
    print()


async def demo_fan_conversation(runtime: AIRuntime) -> None:
    """
    Demo 2: A short fan conversation with sentiment analysis.
    """
    print("=" * 60)
    print("DEMO 2: Fan Conversation")
    print("=" * 60)

    convo = FanConversation(runtime.ai, ARTIST)
    for message in ("Your show in Porto made me cry, thank you!", "Will you play Lisbon?"):
        reply = await convo.reply(message)
        print(f"Fan ({convo.last_sentiment.value}): {message}")
        print(f"{ARTIST.name}: {reply.content}")
        print()


async def main() -> None:
    """Run all demos."""
    configure_logging(level="INFO", rich=True)
    config = load_config()
    problems = config.validate()
    if problems:
        for problem in problems:
            print(f"Config: {problem}")
        return

    async with AIRuntime.from_config(config) as runtime:
        for demo in (demo_creative, demo_fan_conversation):
            try:
                await demo(runtime)
            except NeuralPaletteError as e:
                print(f"Demo failed:\n{e}")

        print_cache_stats(runtime.cache.stats())
        print(runtime.metrics.to_dict())


if __name__ == "__main__":
    asyncio.run(main())
