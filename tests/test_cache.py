"""Tests for response caching."""

import pytest

from neuralpalette.core.cache import (
    PURPOSE_COMPLETION,
    AIResponseCache,
    ResponseCache,
    make_cache_key,
)
from neuralpalette.personalization.models import SentimentResult, SentimentType
from neuralpalette.providers.base import CompletionRequest, CompletionResponse, Message


class TestMakeCacheKey:
    """Tests for deterministic key generation."""

    def test_key_ignores_dict_order_at_every_level(self):
        """Payloads differing only in key order hash the same."""
        a = {"type": "completion", "request": {"temperature": 0.7, "model": "x"}}
        b = {"request": {"model": "x", "temperature": 0.7}, "type": "completion"}
        assert make_cache_key(a) == make_cache_key(b)

    def test_different_payloads_differ(self):
        """Changing any value changes the key."""
        assert make_cache_key({"text": "hello"}) != make_cache_key({"text": "hello!"})

    def test_key_is_sha256_hex(self):
        """Keys are 64 hex characters."""
        key = make_cache_key({"a": 1})
        assert len(key) == 64
        int(key, 16)

    def test_dataclass_payloads_are_supported(self):
        """Equal requests produce equal keys."""
        r1 = CompletionRequest(messages=[Message("user", "hi")], temperature=0.5)
        r2 = CompletionRequest(messages=[Message("user", "hi")], temperature=0.5)
        r3 = CompletionRequest(messages=[Message("user", "hi")], temperature=0.6)
        assert make_cache_key(r1) == make_cache_key(r2)
        assert make_cache_key(r1) != make_cache_key(r3)

    def test_enum_values_are_normalized(self):
        """Enums hash like their values."""
        assert make_cache_key({"s": SentimentType.CURIOUS}) == make_cache_key({"s": "curious"})

    def test_non_string_dict_keys_rejected(self):
        """An int key cannot silently collide with its string form."""
        with pytest.raises(TypeError):
            make_cache_key({1: "a"})
        with pytest.raises(TypeError):
            make_cache_key({"outer": {("a", "b"): 1}})

    def test_enum_dict_keys_use_their_value(self):
        """String-valued enum keys hash like their values."""
        assert make_cache_key({SentimentType.CURIOUS: 1}) == make_cache_key({"curious": 1})

    def test_unserializable_payload_raises(self):
        """Arbitrary objects cannot be fingerprinted."""
        with pytest.raises(TypeError):
            make_cache_key({"x": object()})


class TestResponseCache:
    """Tests for the ResponseCache class."""

    def test_cache_stores_and_retrieves(self, clock):
        """Cache stores and retrieves values."""
        cache = ResponseCache(max_size=100, ttl=60, clock=clock)
        cache.set("key1", "value1")
        assert cache.get("key1") == "value1"
        assert "key1" in cache
        assert len(cache) == 1

    def test_cache_returns_none_for_missing(self, clock):
        """Cache returns None for missing keys."""
        cache = ResponseCache(clock=clock)
        assert cache.get("nonexistent") is None

    def test_entry_alive_at_exact_ttl(self, clock):
        """An entry is still served when exactly ttl seconds have passed."""
        cache = ResponseCache(ttl=10, clock=clock)
        cache.set("key1", "value1")
        clock.advance(10)
        assert cache.get("key1") == "value1"

    def test_entry_expires_after_ttl(self, clock):
        """Expired entries miss and are removed on read."""
        cache = ResponseCache(ttl=10, clock=clock)
        cache.set("key1", "value1")
        clock.advance(10.001)
        assert cache.get("key1") is None
        assert len(cache) == 0
        assert cache.stats()["misses"] == 1

    def test_per_entry_ttl_overrides_default(self, clock):
        """A ttl passed to set wins over the cache default."""
        cache = ResponseCache(ttl=3600, clock=clock)
        cache.set("short", "v", ttl=5)
        cache.set("long", "v")
        clock.advance(6)
        assert cache.get("short") is None
        assert cache.get("long") == "v"

    def test_eviction_is_by_access_not_insertion(self, clock):
        """Reading an entry protects it from eviction."""
        cache = ResponseCache(max_size=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)  # Evicts b, the least recently accessed
        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3

    def test_cache_respects_max_size(self, clock):
        """Cache never grows past max_size."""
        cache = ResponseCache(max_size=3, clock=clock)
        for i in range(10):
            cache.set(f"k{i}", i)
        assert len(cache) == 3
        assert cache.get("k0") is None
        assert cache.get("k9") == 9

    def test_overwrite_does_not_evict(self, clock):
        """Replacing an existing key at capacity keeps the other entries."""
        cache = ResponseCache(max_size=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)
        assert cache.get("a") == 10
        assert cache.get("b") == 2

    def test_overwrite_restarts_ttl(self, clock):
        """A re-set entry gets a fresh creation time."""
        cache = ResponseCache(ttl=10, clock=clock)
        cache.set("a", 1)
        clock.advance(8)
        cache.set("a", 2)
        clock.advance(8)
        assert cache.get("a") == 2

    def test_cache_stats(self, clock):
        """Cache tracks hit/miss statistics."""
        cache = ResponseCache(max_size=100, ttl=60, clock=clock)
        cache.set("key1", "value1")
        cache.get("key1")  # Hit
        cache.get("key1")  # Hit
        cache.get("missing")  # Miss
        stats = cache.stats()
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["hit_rate"] == pytest.approx(0.667, rel=0.01)
        assert stats["size"] == 1
        assert stats["max_size"] == 100
        assert stats["enabled"] is True

    def test_stats_entry_ages(self, clock):
        """Stats report the ages of the oldest and newest entries."""
        cache = ResponseCache(clock=clock)
        assert cache.stats()["oldest_entry_age"] is None
        assert cache.stats()["newest_entry_age"] is None
        cache.set("old", 1)
        clock.advance(30)
        cache.set("new", 2)
        clock.advance(5)
        stats = cache.stats()
        assert stats["oldest_entry_age"] == pytest.approx(35)
        assert stats["newest_entry_age"] == pytest.approx(5)

    def test_hit_rate_zero_without_lookups(self, clock):
        """Hit rate is 0.0 before any lookup."""
        assert ResponseCache(clock=clock).stats()["hit_rate"] == 0.0

    def test_sweep_expired_returns_count(self, clock):
        """Sweep removes only expired entries and reports how many."""
        cache = ResponseCache(ttl=100, clock=clock)
        cache.set("a", 1, ttl=5)
        cache.set("b", 2, ttl=5)
        cache.set("c", 3)
        clock.advance(10)
        assert cache.sweep_expired() == 2
        assert len(cache) == 1
        assert cache.sweep_expired() == 0

    def test_disabled_cache(self, clock):
        """A disabled cache stores nothing and counts misses."""
        cache = ResponseCache(enabled=False, clock=clock)
        cache.set("a", 1)
        assert cache.get("a") is None
        assert len(cache) == 0
        stats = cache.stats()
        assert stats["enabled"] is False
        assert stats["misses"] == 1
        assert stats["hits"] == 0

    def test_delete(self, clock):
        """Delete reports whether the key existed."""
        cache = ResponseCache(clock=clock)
        cache.set("a", 1)
        assert cache.delete("a") is True
        assert cache.delete("a") is False
        assert cache.get("a") is None

    def test_cache_clear(self, clock):
        """Clear drops entries and resets counters."""
        cache = ResponseCache(clock=clock)
        cache.set("key1", "value1")
        cache.get("key1")
        cache.get("nope")
        cache.clear()
        stats = cache.stats()
        assert stats["size"] == 0
        assert stats["hits"] == 0
        assert stats["misses"] == 0

    def test_invalidate_artist(self, clock):
        """Only the artist's entries are removed."""
        cache = ResponseCache(clock=clock)
        cache.set("k1", "v1", artist_id="a1")
        cache.set("k2", "v2", artist_id="a1")
        cache.set("k3", "v3", artist_id="a2")
        cache.set("k4", "v4")
        assert cache.invalidate_artist("a1") == 2
        assert cache.get("k1") is None
        assert cache.get("k3") == "v3"
        assert cache.get("k4") == "v4"
        assert cache.invalidate_artist("a1") == 0

    def test_evicted_entries_leave_artist_index(self, clock):
        """Eviction removes keys from the artist index."""
        cache = ResponseCache(max_size=1, clock=clock)
        cache.set("k1", "v1", artist_id="a1")
        cache.set("k2", "v2")
        assert cache.invalidate_artist("a1") == 0
        assert cache.get("k2") == "v2"

    def test_top_entries(self, clock):
        """Top entries are ranked by hit count."""
        cache = ResponseCache(clock=clock)
        cache.set("cold", 1)
        cache.set("hot", 2, purpose=PURPOSE_COMPLETION)
        for _ in range(3):
            cache.get("hot")
        top = cache.top_entries(1)
        assert len(top) == 1
        assert top[0]["key"] == "hot"
        assert top[0]["hits"] == 3
        assert top[0]["purpose"] == PURPOSE_COMPLETION


class TestAIResponseCache:
    """Tests for the purpose-aware wrapper."""

    def _request(self, text="Write a hook"):
        return CompletionRequest(messages=[Message("user", text)])

    def _response(self):
        return CompletionResponse("la la", "gpt", 10, "stop", "openai")

    def test_completion_round_trip(self, clock):
        """Completions are found again by an equal request."""
        cache = AIResponseCache(ResponseCache(clock=clock))
        cache.cache_completion(self._request(), self._response())
        assert cache.get_completion(self._request()) == self._response()
        assert cache.get_completion(self._request("Other")) is None

    def test_purposes_do_not_collide(self, clock):
        """The same text cached as a sentiment is not a completion."""
        cache = AIResponseCache(ResponseCache(clock=clock))
        result = SentimentResult(SentimentType.POSITIVE, 90)
        cache.cache_sentiment("great show", result)
        assert cache.get_sentiment("great show") == result
        assert cache.get_completion("great show") is None

    def test_unkeyable_request_is_not_cached(self, clock):
        """A payload with non-string keys is skipped instead of raising."""
        cache = AIResponseCache(ResponseCache(clock=clock))
        cache.cache_completion({1: "a"}, self._response())
        assert cache.get_completion({1: "a"}) is None
        assert len(cache.cache) == 0

    def test_expected_type_mismatch_is_a_miss(self, clock):
        """A value of the wrong type is not returned."""
        cache = AIResponseCache(ResponseCache(clock=clock))
        cache.cache_completion(self._request(), "not a response")
        assert cache.get_completion(self._request(), expected=CompletionResponse) is None
        assert cache.get_completion(self._request()) == "not a response"

    def test_unhashable_payload_never_raises(self, clock):
        """Payloads that cannot be fingerprinted are simply not cached."""
        cache = AIResponseCache(ResponseCache(clock=clock))
        cache.cache_completion({"x": object()}, self._response())
        assert cache.get_completion({"x": object()}) is None
        assert len(cache.cache) == 0

    def test_invalidate_artist(self, clock):
        """Completions stored under an artist can be dropped."""
        cache = AIResponseCache(ResponseCache(clock=clock))
        cache.cache_completion(self._request(), self._response(), artist_id="a1")
        assert cache.invalidate_artist("a1") == 1
        assert cache.get_completion(self._request()) is None

    def test_default_cache_is_created(self):
        """The wrapper builds its own cache when none is given."""
        cache = AIResponseCache()
        assert isinstance(cache.cache, ResponseCache)
        assert cache.stats()["size"] == 0
