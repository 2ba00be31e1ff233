"""
Response caching for the AI layer.

Provides a thread-safe LRU cache with per-entry TTL, keyed by a SHA-256
fingerprint of the canonicalized request, plus a domain wrapper that keeps
completion and sentiment results apart.
"""

import dataclasses
import enum
import hashlib
import json
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Set

from neuralpalette.utils.logging_config import get_logger

logger = get_logger("cache")

PURPOSE_COMPLETION = "completion"
PURPOSE_SENTIMENT = "sentiment"
PURPOSE_GENERIC = "generic"


def _normalize_key(key: Any) -> str:
    if isinstance(key, enum.Enum):
        key = key.value
    if not isinstance(key, str):
        raise TypeError(f"Cache payload keys must be strings, got {type(key).__name__}: {key!r}")
    return key


def _normalize(value: Any) -> Any:
    """Turn dataclasses, enums and dates into plain JSON values."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _normalize(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, enum.Enum):
        return _normalize(value.value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {_normalize_key(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_normalize(v) for v in value)
    return value


def make_cache_key(payload: Any) -> str:
    """
    Generate a deterministic cache key from a request payload.

    Keys are sorted at every nesting level, so two payloads that differ only
    in dict insertion order hash the same.

    Args:
        payload: Any JSON-like structure; dataclasses and enums are allowed.

    Returns:
        A hex digest string suitable as a cache key.

    Raises:
        TypeError: If the payload contains values that cannot be serialized,
            or dict keys that are not strings.
    """
    canonical = json.dumps(
        _normalize(payload),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    """
    A single cached value.

    Attributes:
        key: The content hash addressing this entry.
        value: The cached payload.
        created_at: Clock reading at insertion.
        ttl: Time-to-live in seconds.
        hit_count: Successful reads so far.
        last_access: Clock reading at last read or write.
        purpose: Which kind of result this is.
        artist_id: Owner of the entry, if it is artist specific.
    """

    key: str
    value: Any
    created_at: float
    ttl: float
    hit_count: int = 0
    last_access: float = 0.0
    purpose: str = PURPOSE_GENERIC
    artist_id: Optional[str] = None

    def expired(self, now: float) -> bool:
        return now - self.created_at > self.ttl


class ResponseCache:
    """
    Thread-safe LRU cache with TTL for caching model responses.

    Recency is updated on every read, so eviction removes the entry that was
    least recently *accessed*, not the one inserted first.

    Attributes:
        max_size: Maximum number of entries to store.
        ttl: Default time-to-live in seconds.
        enabled: When False, ``set`` is a no-op and ``get`` always misses.

    Example:
        >>> cache = ResponseCache(max_size=1000, ttl=3600)
        >>> cache.set("key", "value")
        >>> cache.get("key")
        'value'
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl: float = 3600,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the cache.

        Args:
            max_size: Maximum entries to store (default: 1000).
            ttl: Default time-to-live in seconds (default: 3600).
            enabled: Whether caching is active (default: True).
            clock: Monotonic time source, injectable for tests.
        """
        self.max_size = max_size
        self.ttl = ttl
        self.enabled = enabled
        self._clock = clock
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._by_artist: Dict[str, Set[str]] = {}
        self._lock = Lock()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: object) -> bool:
        return key in self._cache

    def get(self, key: str) -> Optional[Any]:
        """
        Retrieve a value from the cache.

        Args:
            key: The cache key.

        Returns:
            The cached value, or None if not found, expired or disabled.
        """
        with self._lock:
            if not self.enabled:
                self._misses += 1
                return None

            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            now = self._clock()
            if entry.expired(now):
                self._remove(key)
                self._misses += 1
                return None

            # Move to end (most recently used)
            self._cache.move_to_end(key)
            entry.last_access = now
            entry.hit_count += 1
            self._hits += 1
            return entry.value

    def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
        purpose: str = PURPOSE_GENERIC,
        artist_id: Optional[str] = None,
    ) -> None:
        """
        Store a value in the cache.

        Args:
            key: The cache key.
            value: The value to store.
            ttl: Time-to-live for this entry (default: the cache ttl).
            purpose: Kind of result, kept on the entry.
            artist_id: Owner used by ``invalidate_artist``.
        """
        if not self.enabled:
            return

        with self._lock:
            now = self._clock()
            if key in self._cache:
                self._remove(key)
            else:
                # Evict least recently accessed if at capacity
                while self._cache and len(self._cache) >= self.max_size:
                    evicted, old = self._cache.popitem(last=False)
                    self._unindex(old)
                    logger.debug("Evicted %s", evicted[:12])

            self._cache[key] = CacheEntry(
                key=key,
                value=value,
                created_at=now,
                ttl=self.ttl if ttl is None else ttl,
                last_access=now,
                purpose=purpose,
                artist_id=artist_id,
            )
            if artist_id is not None:
                self._by_artist.setdefault(artist_id, set()).add(key)

    def delete(self, key: str) -> bool:
        """Remove an entry. Returns True if it existed."""
        with self._lock:
            if key not in self._cache:
                return False
            self._remove(key)
            return True

    def clear(self) -> None:
        """Clear all entries and reset the hit/miss counters."""
        with self._lock:
            self._cache.clear()
            self._by_artist.clear()
            self._hits = 0
            self._misses = 0

    def sweep_expired(self) -> int:
        """
        Remove every expired entry.

        Returns:
            The number of entries removed.
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._cache.items() if entry.expired(now)]
            for key in expired:
                self._remove(key)
            return len(expired)

    def invalidate_artist(self, artist_id: str) -> int:
        """
        Remove every entry stored for an artist.

        Returns:
            The number of entries removed.
        """
        with self._lock:
            keys = self._by_artist.pop(artist_id, set())
            removed = 0
            for key in keys:
                if self._cache.pop(key, None) is not None:
                    removed += 1
            return removed

    def top_entries(self, n: int = 10) -> List[Dict[str, Any]]:
        """The ``n`` most-read entries, with their age in seconds."""
        with self._lock:
            now = self._clock()
            ranked = sorted(self._cache.values(), key=lambda e: e.hit_count, reverse=True)
            return [
                {
                    "key": entry.key,
                    "hits": entry.hit_count,
                    "age": now - entry.created_at,
                    "purpose": entry.purpose,
                }
                for entry in ranked[:n]
            ]

    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with size, max_size, hits, misses, hit_rate, the ages of the
            oldest and newest entries (None when empty), and enabled.
        """
        with self._lock:
            now = self._clock()
            total = self._hits + self._misses
            created = [entry.created_at for entry in self._cache.values()]
            return {
                "size": len(self._cache),
                "max_size": self.max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / total if total > 0 else 0.0,
                "oldest_entry_age": now - min(created) if created else None,
                "newest_entry_age": now - max(created) if created else None,
                "enabled": self.enabled,
            }

    def _remove(self, key: str) -> None:
        # Caller holds the lock
        entry = self._cache.pop(key, None)
        if entry is not None:
            self._unindex(entry)

    def _unindex(self, entry: CacheEntry) -> None:
        if entry.artist_id is None:
            return
        keys = self._by_artist.get(entry.artist_id)
        if keys is not None:
            keys.discard(entry.key)
            if not keys:
                del self._by_artist[entry.artist_id]


class AIResponseCache:
    """
    Cache wrapper for AI results.

    Each purpose mixes its own discriminator into the hashed payload, so the
    same text cached as a completion and as a sentiment never collides.
    Values come back only if they have the expected type. None of these
    methods raise: a payload that cannot be hashed is treated as a miss.

    Example:
        >>> cache = AIResponseCache(ResponseCache())
        >>> cache.cache_sentiment("love it", result)
        >>> cache.get_sentiment("love it")
    """

    def __init__(self, cache: Optional[ResponseCache] = None) -> None:
        self.cache = cache if cache is not None else ResponseCache()

    def _key(self, purpose: str, **payload: Any) -> Optional[str]:
        try:
            return make_cache_key({"type": purpose, **payload})
        except (TypeError, ValueError) as e:
            logger.warning("Could not fingerprint %s payload: %s", purpose, e)
            return None

    def _lookup(self, key: Optional[str], expected: Optional[type]) -> Optional[Any]:
        if key is None:
            return None
        value = self.cache.get(key)
        if value is None or expected is None or isinstance(value, expected):
            return value
        return None

    def cache_completion(
        self,
        request: Any,
        response: Any,
        ttl: Optional[float] = None,
        artist_id: Optional[str] = None,
    ) -> None:
        """Cache a completion response for a request."""
        key = self._key(PURPOSE_COMPLETION, request=request)
        if key is not None:
            self.cache.set(key, response, ttl, purpose=PURPOSE_COMPLETION, artist_id=artist_id)

    def get_completion(self, request: Any, expected: Optional[type] = None) -> Optional[Any]:
        """Get a cached completion, or None."""
        return self._lookup(self._key(PURPOSE_COMPLETION, request=request), expected)

    def cache_sentiment(self, text: str, result: Any, ttl: Optional[float] = None) -> None:
        """Cache a sentiment result for a text."""
        key = self._key(PURPOSE_SENTIMENT, text=text)
        if key is not None:
            self.cache.set(key, result, ttl, purpose=PURPOSE_SENTIMENT)

    def get_sentiment(self, text: str, expected: Optional[type] = None) -> Optional[Any]:
        """Get a cached sentiment result, or None."""
        return self._lookup(self._key(PURPOSE_SENTIMENT, text=text), expected)

    def invalidate_artist(self, artist_id: str) -> int:
        """Drop every cached result personalized for an artist."""
        removed = self.cache.invalidate_artist(artist_id)
        if removed:
            logger.info("Invalidated %d cached entries for artist %s", removed, artist_id)
        return removed

    def stats(self) -> Dict[str, Any]:
        return self.cache.stats()

    def sweep_expired(self) -> int:
        return self.cache.sweep_expired()

    def clear(self) -> None:
        self.cache.clear()
