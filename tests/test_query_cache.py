"""
Test Suite for QueryCache and MemoryCacheStore

Clocks are injected so expiry is tested without waiting.
"""

import hashlib
import json

import pytest
from unittest.mock import Mock

from news_chat.cache.cache_store import CacheStore, MemoryCacheStore
from news_chat.cache.query_cache import KEY_PREFIX, QueryCache, compute_fingerprint
from news_chat.errors import CacheError
from news_chat.models import Article, ConversationTurn


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def article(i: int = 1) -> Article:
    return Article(
        id=f"id-{i}",
        title=f"Title {i}",
        content="Content " * 20,
        url=f"https://example.com/{i}",
        published_at="2024-10-01",
        source="World Wire",
        tags={"economy", "analysis"},
    )


class TestFingerprint:
    """Test query fingerprints."""

    def test_matches_md5_of_query_and_context(self):
        history = [{'role': 'user', 'content': 'Hi'}]
        expected = hashlib.md5(
            ("What happened?" + json.dumps(history, sort_keys=True)).encode('utf-8')
        ).hexdigest()
        assert compute_fingerprint("What happened?", history) == expected

    def test_uses_only_last_three_turns(self):
        """Turns older than the window do not affect the fingerprint."""
        recent = [{'role': 'user', 'content': f'q{i}'} for i in range(3)]
        a = compute_fingerprint("Q", [{'role': 'user', 'content': 'old'}] + recent)
        b = compute_fingerprint("Q", [{'role': 'user', 'content': 'different old'}] + recent)
        assert a == b

    def test_context_change_changes_fingerprint(self):
        a = compute_fingerprint("Q", [{'role': 'user', 'content': 'a'}])
        b = compute_fingerprint("Q", [{'role': 'user', 'content': 'b'}])
        assert a != b

    def test_timestamps_ignored(self):
        """Only role and content take part."""
        a = compute_fingerprint("Q", [ConversationTurn('user', 'x', '2024-01-01')])
        b = compute_fingerprint("Q", [{'role': 'user', 'content': 'x', 'timestamp': 'later'}])
        assert a == b

    def test_no_history(self):
        assert compute_fingerprint("Q") == compute_fingerprint("Q", [])


class TestQueryCache:
    """Test lookup and store behaviour."""

    def test_miss_then_hit(self):
        clock = FakeClock()
        cache = QueryCache(MemoryCacheStore(clock=clock), ttl=1800, clock=clock)
        fp = cache.fingerprint("Q", [])

        assert cache.lookup(fp) is None
        assert cache.store_answer(fp, "Answer", [article(1)]) is True

        entry = cache.lookup(fp)
        assert entry.response_text == "Answer"
        assert [a.id for a in entry.sources] == ["id-1"]
        assert entry.sources[0].tags == {"economy", "analysis"}

    def test_expires_after_ttl(self):
        clock = FakeClock()
        cache = QueryCache(MemoryCacheStore(clock=clock), ttl=1800, clock=clock)
        cache.store_answer("fp", "Answer", [])

        clock.now += 1799
        assert cache.lookup("fp") is not None
        clock.now += 1
        assert cache.lookup("fp") is None

    def test_read_failure_is_a_miss(self):
        store = Mock(spec=CacheStore)
        store.get.side_effect = CacheError("backend down")
        assert QueryCache(store).lookup("fp") is None

    def test_write_failure_is_swallowed(self):
        store = Mock(spec=CacheStore)
        store.set.side_effect = CacheError("backend down")
        assert QueryCache(store).store_answer("fp", "Answer", []) is False

    def test_malformed_entry_is_a_miss(self):
        store = Mock(spec=CacheStore)
        store.get.return_value = {'garbage': True}
        assert QueryCache(store).lookup("fp") is None

    def test_keys_are_prefixed(self):
        store = Mock(spec=CacheStore)
        QueryCache(store, ttl=60).store_answer("abc", "Answer", [])
        key, value, ttl = store.set.call_args.args
        assert key == KEY_PREFIX + "abc"
        assert ttl == 60

    def test_clear(self):
        store = MemoryCacheStore()
        cache = QueryCache(store)
        cache.store_answer("fp", "Answer", [])
        cache.clear()
        assert cache.lookup("fp") is None


class TestMemoryCacheStore:
    """Test the in-process TTL store."""

    def test_get_missing(self):
        assert MemoryCacheStore().get("nope") is None

    def test_values_are_copied(self):
        """Mutating a returned value does not change the cached one."""
        store = MemoryCacheStore()
        store.set("k", {'list': [1, 2]})
        value = store.get("k")
        value['list'].append(3)
        assert store.get("k") == {'list': [1, 2]}

    def test_ttl_expiry(self):
        clock = FakeClock()
        store = MemoryCacheStore(clock=clock)
        store.set("k", "v", ttl=10)
        clock.now += 10
        assert store.get("k") is None

    def test_no_ttl_never_expires(self):
        clock = FakeClock()
        store = MemoryCacheStore(clock=clock)
        store.set("k", "v")
        clock.now += 10 ** 9
        assert store.get("k") == "v"

    def test_invalid_ttl(self):
        with pytest.raises(CacheError):
            MemoryCacheStore().set("k", "v", ttl=0)

    def test_evicts_oldest_when_full(self):
        store = MemoryCacheStore(max_entries=2)
        store.set("a", 1)
        store.set("b", 2)
        store.set("c", 3)
        assert store.get("a") is None
        assert store.get("b") == 2
        assert store.get("c") == 3
        assert len(store) == 2

    def test_evicts_expired_before_oldest(self):
        clock = FakeClock()
        store = MemoryCacheStore(max_entries=2, clock=clock)
        store.set("a", 1)
        store.set("b", 2, ttl=5)
        clock.now += 5
        store.set("c", 3)
        assert store.get("a") == 1
        assert store.get("c") == 3

    def test_delete_and_clear(self):
        store = MemoryCacheStore()
        store.set("a", 1)
        store.set("b", 2)
        store.delete("a")
        assert store.get("a") is None
        store.clear()
        assert len(store) == 0
