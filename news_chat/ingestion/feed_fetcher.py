"""
RSS Feed Fetcher

Downloads a source's feed with requests and parses it with feedparser into
FeedItem records.
"""

import logging
from typing import List, Optional

import feedparser
import requests

from ..errors import SourceFetchError
from ..models import FeedItem, NewsSource

logger = logging.getLogger(__name__)


class FeedFetcher:
    """Fetches and parses RSS/Atom feeds."""

    def __init__(
        self,
        timeout: int = 30,
        max_items: int = 15,
        session: Optional[requests.Session] = None,
        user_agent: Optional[str] = None
    ):
        """
        Initialize the feed fetcher.

        Args:
            timeout: Request timeout in seconds
            max_items: Maximum number of items returned per feed
            session: Optional requests session
            user_agent: Custom user agent string for requests
        """
        self.timeout = timeout
        self.max_items = max_items
        self.session = session or requests.Session()
        self.user_agent = user_agent or 'Mozilla/5.0 (compatible; NewsChatBot/1.0; RSS reader)'

    def fetch(self, source: NewsSource) -> List[FeedItem]:
        """
        Fetch the first `max_items` entries of a source's feed.

        Args:
            source: Source to fetch

        Returns:
            Feed items in feed order

        Raises:
            SourceFetchError: If the feed cannot be downloaded or parsed
        """
        try:
            response = self.session.get(
                source.url,
                timeout=self.timeout,
                headers={'User-Agent': self.user_agent}
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise SourceFetchError(source.name, str(e))

        feed = feedparser.parse(response.content)

        # bozo marks malformed XML; feedparser still recovers entries when it can
        if feed.bozo and not feed.entries:
            raise SourceFetchError(
                source.name,
                f"Unparseable feed: {feed.get('bozo_exception', 'unknown error')}"
            )

        items = []
        for entry in feed.entries[:self.max_items]:
            try:
                items.append(self._parse_entry(entry))
            except Exception as e:
                logger.warning(f"Failed to parse entry from {source.name}: {e}")

        logger.debug(f"Fetched {len(items)} items from {source.name}")
        return items

    def _parse_entry(self, entry) -> FeedItem:
        """Map a feedparser entry onto a FeedItem."""
        content = entry.get('summary', '')
        if not content and entry.get('content'):
            content = entry['content'][0].get('value', '')
        if not content:
            content = entry.get('description', '')

        categories = [
            tag.get('term') for tag in entry.get('tags', [])
            if tag.get('term')
        ]

        return FeedItem(
            title=(entry.get('title') or '').strip(),
            link=(entry.get('link') or '').strip(),
            guid=(entry.get('id') or '').strip(),
            pub_date=entry.get('published') or entry.get('updated'),
            content=content or '',
            author=entry.get('author') or '',
            categories=categories,
        )
