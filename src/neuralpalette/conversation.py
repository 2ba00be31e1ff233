"""
Fan conversation sessions.

Keeps the role-tagged history of one fan talking to one artist, so replies
can be generated in context, and persists it as JSON.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Union

from neuralpalette.personalization.models import ArtistDNA, PersonalizedResponse, SentimentType
from neuralpalette.personalization.service import PersonalizedAI
from neuralpalette.providers.base import Message


class FanConversation:
    """
    A conversation between a fan and an artist's AI voice.

    Example:
        >>> convo = FanConversation(runtime.ai, artist)
        >>> reply = await convo.reply("Loved the show last night!")
        >>> convo.last_sentiment
        <SentimentType.EXCITED: 'excited'>

        >>> convo.save("fan-42.json")
        >>> restored = FanConversation.load(runtime.ai, artist, "fan-42.json")
    """

    def __init__(
        self,
        service: PersonalizedAI,
        artist: ArtistDNA,
        max_history: int = 20,
        analyze_sentiment: bool = True,
    ) -> None:
        """
        Args:
            service: The personalized generation service.
            artist: The artist replying.
            max_history: Maximum messages to keep in history. Trimming drops
                whole exchanges, so an odd limit keeps one message fewer.
            analyze_sentiment: Classify each fan message before replying.

        Raises:
            ValueError: If max_history is negative.
        """
        if max_history < 0:
            raise ValueError("max_history must be >= 0")
        self.service = service
        self.artist = artist
        self.max_history = max_history
        self.analyze_sentiment = analyze_sentiment
        self.last_sentiment: Optional[SentimentType] = None
        self._history: List[Message] = []

    @property
    def history(self) -> List[Message]:
        """Get the conversation history."""
        return self._history.copy()

    async def reply(self, message: str) -> PersonalizedResponse:
        """
        Generate the artist's reply to a fan message.

        The message and the reply are appended to the history only after a
        successful generation.
        """
        sentiment = None
        if self.analyze_sentiment:
            sentiment = (await self.service.analyze_sentiment(message)).sentiment
            self.last_sentiment = sentiment

        response = await self.service.generate_fan_response(
            self.artist, message, history=self.history, sentiment=sentiment
        )
        self._history.append(Message("user", message))
        self._history.append(Message("assistant", response.content))
        self._trim_history()
        return response

    def _trim_history(self) -> None:
        # History must open with a user message
        keep = self.max_history - self.max_history % 2
        if len(self._history) > keep:
            self._history = self._history[len(self._history) - keep :]

    def clear(self) -> None:
        """Clear the conversation history."""
        self._history = []
        self.last_sentiment = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "artist_id": self.artist.id,
            "max_history": self.max_history,
            "last_sentiment": self.last_sentiment.value if self.last_sentiment else None,
            "history": [m.to_dict() for m in self._history],
        }

    def save(self, path: Union[str, Path]) -> None:
        """Save the conversation to a JSON file."""
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(
        cls, service: PersonalizedAI, artist: ArtistDNA, path: Union[str, Path]
    ) -> "FanConversation":
        """
        Load a conversation from a JSON file.

        Raises:
            ValueError: The file belongs to a different artist.
        """
        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        if data.get("artist_id", artist.id) != artist.id:
            raise ValueError(
                f"Conversation belongs to artist {data['artist_id']}, not {artist.id}"
            )
        convo = cls(service, artist, max_history=data.get("max_history", 20))
        convo._history = [Message.from_dict(m) for m in data.get("history", [])]
        convo._trim_history()
        if data.get("last_sentiment"):
            convo.last_sentiment = SentimentType.parse(data["last_sentiment"])
        return convo
