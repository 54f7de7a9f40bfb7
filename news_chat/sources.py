"""
News Source Configuration

Ordered list of RSS sources consumed by the ingestion orchestrator. Sources
can be overridden with a JSON file (a list of {name, url, category, region}
records) so new feeds are added without touching the pipeline.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional

from .models import NewsSource

logger = logging.getLogger(__name__)


DEFAULT_SOURCES: List[NewsSource] = [
    # World News & Politics
    NewsSource('BBC News', 'http://feeds.bbci.co.uk/news/rss.xml', 'world', 'UK'),
    NewsSource('The Guardian', 'https://www.theguardian.com/world/rss', 'world', 'UK'),
    NewsSource('NPR News', 'https://feeds.npr.org/1001/rss.xml', 'world', 'US'),
    NewsSource('Al Jazeera', 'https://www.aljazeera.com/xml/rss/all.xml', 'world', 'Qatar'),
    NewsSource('Deutsche Welle', 'https://rss.dw.com/xml/rss-en-all', 'world', 'Germany'),
    NewsSource('France24', 'https://www.france24.com/en/rss', 'world', 'France'),

    # Technology
    NewsSource('TechCrunch', 'https://techcrunch.com/feed/', 'technology', 'US'),
    NewsSource('Ars Technica', 'http://feeds.arstechnica.com/arstechnica/index', 'technology', 'US'),
    NewsSource('The Verge', 'https://www.theverge.com/rss/index.xml', 'technology', 'US'),
    NewsSource('Wired', 'https://www.wired.com/feed/rss', 'technology', 'US'),
    NewsSource('MIT Technology Review', 'https://www.technologyreview.com/feed/', 'technology', 'US'),

    # Business & Finance
    NewsSource('CNBC', 'https://www.cnbc.com/id/100003114/device/rss/rss.html', 'business', 'US'),
    NewsSource('Economic Times', 'https://economictimes.indiatimes.com/rssfeedstopstories.cms', 'business', 'India'),

    # Science & Health
    NewsSource('Scientific American', 'https://rss.sciam.com/ScientificAmerican-Global', 'science', 'US'),
    NewsSource('New Scientist', 'https://www.newscientist.com/feed/home/', 'science', 'UK'),

    # Sports
    NewsSource('ESPN', 'https://www.espn.com/espn/rss/news', 'sports', 'US'),
    NewsSource('BBC Sport', 'http://feeds.bbci.co.uk/sport/rss.xml', 'sports', 'UK'),

    # Entertainment
    NewsSource('Variety', 'https://variety.com/feed/', 'entertainment', 'US'),
]


def load_sources(path: Optional[str] = None) -> List[NewsSource]:
    """
    Load the configured source list.

    Args:
        path: Optional JSON file with a list of source records. When empty,
            the built-in default list is returned.

    Returns:
        Ordered list of sources

    Raises:
        ValueError: If the file is not a list of valid records or
            contains duplicate source names
    """
    if not path:
        return list(DEFAULT_SOURCES)

    with open(Path(path), 'r', encoding='utf-8') as f:
        raw = json.load(f)

    if not isinstance(raw, list):
        raise ValueError(f"Sources file must contain a JSON list: {path}")

    sources = []
    seen_names = set()
    for record in raw:
        try:
            source = NewsSource.from_dict(record)
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid source record {record!r}: missing {e}")
        if source.name in seen_names:
            raise ValueError(f"Duplicate source name: {source.name}")
        seen_names.add(source.name)
        sources.append(source)

    logger.info(f"Loaded {len(sources)} sources from {path}")
    return sources
