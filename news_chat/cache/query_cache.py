"""
Query Cache

Maps a fingerprint of (query text, recent conversation turns) to a previously
generated answer. Identical questions asked in an identical recent context
hit the cache; a changed context produces a different fingerprint.
"""

import json
import time
import hashlib
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from ..models import Article, ConversationTurn, QueryCacheEntry
from .cache_store import CacheStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "query_cache:"

HistoryItem = Union[ConversationTurn, Dict[str, Any]]


def _turn_fields(turn: HistoryItem) -> Dict[str, str]:
    if isinstance(turn, ConversationTurn):
        return {'role': turn.role, 'content': turn.content}
    return {'role': turn.get('role', ''), 'content': turn.get('content', '')}


def compute_fingerprint(
    query: str,
    history: Optional[Sequence[HistoryItem]] = None,
    history_turns: int = 3
) -> str:
    """
    Fingerprint a query with its trailing conversation context.

    Only role and content of the last `history_turns` turns take part, so
    timestamps and message ids do not defeat the cache.

    Returns:
        32-character hexadecimal MD5 digest
    """
    recent = list(history or [])[-history_turns:] if history_turns > 0 else []
    context = json.dumps([_turn_fields(t) for t in recent], sort_keys=True, ensure_ascii=False)
    return hashlib.md5((query + context).encode('utf-8')).hexdigest()


class QueryCache:
    """
    Query-level answer cache on top of a CacheStore.

    Store failures never propagate: a failed read is a miss and a failed write
    is logged and dropped.
    """

    def __init__(
        self,
        store: CacheStore,
        ttl: int = 1800,
        history_turns: int = 3,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize the query cache.

        Args:
            store: Backing key/value store
            ttl: Entry lifetime in seconds
            history_turns: Number of trailing turns included in the fingerprint
            clock: Time source for expiry timestamps
        """
        self.store = store
        self.ttl = ttl
        self.history_turns = history_turns
        self._clock = clock or time.time

    def fingerprint(self, query: str, history: Optional[Sequence[HistoryItem]] = None) -> str:
        return compute_fingerprint(query, history, self.history_turns)

    def lookup(self, fingerprint: str) -> Optional[QueryCacheEntry]:
        """
        Return the cached entry for a fingerprint, or None on miss or error.
        """
        try:
            data = self.store.get(KEY_PREFIX + fingerprint)
        except Exception as e:
            logger.warning(f"Cache read failed for {fingerprint[:8]}, treating as miss: {e}")
            return None

        if data is None:
            return None

        try:
            entry = QueryCacheEntry.from_dict(data)
        except (KeyError, TypeError) as e:
            logger.warning(f"Discarding malformed cache entry {fingerprint[:8]}: {e}")
            return None

        if entry.expires_at and self._clock() >= entry.expires_at:
            return None
        return entry

    def store_answer(
        self,
        fingerprint: str,
        response_text: str,
        sources: List[Article]
    ) -> bool:
        """
        Cache an answer under a fingerprint.

        Returns:
            True if the write succeeded
        """
        entry = QueryCacheEntry(
            fingerprint=fingerprint,
            response_text=response_text,
            sources=list(sources),
            expires_at=self._clock() + self.ttl,
        )
        try:
            self.store.set(KEY_PREFIX + fingerprint, entry.to_dict(), self.ttl)
            return True
        except Exception as e:
            logger.warning(f"Cache write failed for {fingerprint[:8]}: {e}")
            return False

    def clear(self) -> None:
        """Clear the backing store."""
        self.store.clear()
