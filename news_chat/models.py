"""
Data Models

Dataclasses shared by the ingestion and query pipelines.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import List, Dict, Optional, Any, Set

import numpy as np


@dataclass(frozen=True)
class NewsSource:
    """A configured RSS source."""
    name: str
    url: str
    category: str = "general"
    region: str = "Unknown"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NewsSource":
        return cls(
            name=data['name'],
            url=data['url'],
            category=data.get('category') or "general",
            region=data.get('region') or "Unknown",
        )

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class FeedItem:
    """A raw entry yielded by a feed, before normalization."""
    title: str = ""
    link: str = ""
    guid: str = ""
    pub_date: Optional[str] = None
    content: str = ""
    author: str = ""
    categories: List[str] = field(default_factory=list)


@dataclass
class Article:
    """
    A cleaned, length-bounded news article.

    The id is derived from the article's natural keys (link, guid or title),
    so ingesting the same article twice yields the same id.
    """
    id: str
    title: str
    content: str
    url: str
    published_at: str
    source: str
    category: str = "general"
    region: str = "Unknown"
    tags: Set[str] = field(default_factory=set)
    word_count: int = 0
    author: str = "Unknown"
    language: str = "unknown"
    summary: str = ""

    def to_payload(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly payload for the vector store and cache."""
        payload = asdict(self)
        payload['tags'] = sorted(self.tags)
        return payload

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Article":
        """Rebuild an article from a stored payload, ignoring unknown keys."""
        return cls(
            id=payload['id'],
            title=payload.get('title', ''),
            content=payload.get('content', ''),
            url=payload.get('url', ''),
            published_at=payload.get('published_at', ''),
            source=payload.get('source', ''),
            category=payload.get('category', 'general'),
            region=payload.get('region', 'Unknown'),
            tags=set(payload.get('tags') or []),
            word_count=payload.get('word_count', 0),
            author=payload.get('author', 'Unknown'),
            language=payload.get('language', 'unknown'),
            summary=payload.get('summary', ''),
        )


@dataclass
class EmbeddedArticle:
    """An article together with its embedding vector."""
    article: Article
    vector: np.ndarray


@dataclass
class RetrievedCandidate:
    """A search hit that passed the similarity gate."""
    article: Article
    similarity_score: float


@dataclass
class ConversationTurn:
    """A single message of an external conversation history."""
    role: str
    content: str
    timestamp: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationTurn":
        return cls(
            role=data.get('role', 'user'),
            content=data.get('content', ''),
            timestamp=data.get('timestamp'),
        )


@dataclass
class QueryCacheEntry:
    """A generated answer cached under a query fingerprint."""
    fingerprint: str
    response_text: str
    sources: List[Article]
    expires_at: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fingerprint': self.fingerprint,
            'response_text': self.response_text,
            'sources': [article.to_payload() for article in self.sources],
            'expires_at': self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueryCacheEntry":
        return cls(
            fingerprint=data['fingerprint'],
            response_text=data['response_text'],
            sources=[Article.from_payload(s) for s in data.get('sources', [])],
            expires_at=data.get('expires_at', 0.0),
        )


class VectorStoreState(Enum):
    """Availability of the vector store, probed once at startup."""
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class QueryStatus(Enum):
    """How a query result was produced."""
    ANSWERED = "answered"
    CACHED = "cached"
    NO_DATA = "no_data"
    DEGRADED = "degraded"
    GENERATION_FAILED = "generation_failed"
    EMBEDDING_FAILED = "embedding_failed"


@dataclass
class QueryResult:
    """Response returned by the retrieval pipeline."""
    response_text: str
    sources: List[Article]
    from_cache: bool
    candidate_count: int
    status: QueryStatus
    fingerprint: str = ""

    @property
    def is_grounded(self) -> bool:
        """True when the answer was generated from retrieved articles."""
        return self.status in (QueryStatus.ANSWERED, QueryStatus.CACHED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'response': self.response_text,
            'sources': [
                {
                    'title': a.title,
                    'url': a.url,
                    'source': a.source,
                    'published_at': a.published_at,
                }
                for a in self.sources
            ],
            'from_cache': self.from_cache,
            'candidate_count': self.candidate_count,
            'status': self.status.value,
            'fingerprint': self.fingerprint,
        }


@dataclass
class IngestionStats:
    """Aggregate statistics for one ingestion run."""
    total_collected: int = 0
    total_stored: int = 0
    sources_processed: int = 0
    sources_failed: int = 0
    items_discarded: int = 0
    duplicates_dropped: int = 0
    categories: Set[str] = field(default_factory=set)
    regions: Set[str] = field(default_factory=set)
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    duration: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['categories'] = sorted(self.categories)
        data['regions'] = sorted(self.regions)
        return data
