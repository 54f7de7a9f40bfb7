"""
Article Enrichment

Presentation metadata attached to articles at ingestion time: tags, a naive
language guess and a short summary. None of it affects retrieval.
"""

import re
from typing import List, Optional, Set

TAG_KEYWORDS = [
    'breaking', 'urgent', 'exclusive', 'analysis', 'opinion', 'interview',
    'covid', 'climate', 'election', 'economy', 'technology', 'ai', 'crypto',
    'sports', 'health', 'science', 'politics', 'business', 'entertainment',
]

ENGLISH_STOPWORDS = {'the', 'and', 'is', 'in', 'to', 'of', 'a', 'that', 'it', 'with'}

_SENTENCE_SPLIT = re.compile(r'[.!?]+')
_WORD = re.compile(r'\w+')


def extract_tags(
    title: str,
    snippet: str = "",
    categories: Optional[List[str]] = None
) -> Set[str]:
    """
    Collect tags from feed categories and a fixed keyword list.

    Keywords are matched as whole words in the title and snippet.
    """
    tags = {c.strip() for c in (categories or []) if c and c.strip()}
    words = set(_WORD.findall(f"{title} {snippet}".lower()))
    tags.update(keyword for keyword in TAG_KEYWORDS if keyword in words)
    return tags


def detect_language(content: str, sample_words: int = 50) -> str:
    """Guess 'en' when common English words make up >10% of the opening words."""
    if not content:
        return 'unknown'

    words = content.lower().split()[:sample_words]
    english_count = sum(1 for word in words if word in ENGLISH_STOPWORDS)
    return 'en' if english_count > len(words) * 0.1 else 'unknown'


def summarize(content: str, max_sentences: int = 3) -> str:
    """Take the first few substantial sentences as a summary."""
    if not content or len(content) < 200:
        return content

    sentences = [
        s.strip() for s in _SENTENCE_SPLIT.split(content)
        if len(s.strip()) > 20
    ]
    if not sentences:
        return content[:200]
    return '. '.join(sentences[:max_sentences]) + '.'


def count_words(content: str) -> int:
    return len(content.split())
