"""
Ingestion Orchestrator

Collects articles from the configured RSS sources, normalizes and
deduplicates them, embeds their content and upserts them into the vector
store.

Pipeline per run:
1. Fetch each source's feed in turn, throttled between sources
2. Build an Article from every item (page scrape when the feed text is thin)
3. Drop items whose id, title or URL was already accepted in this run
4. Embed and upsert accepted articles in fixed-size batches
"""

import time
import logging
from datetime import datetime
from typing import List, Dict, Optional, Any, Set

from tqdm import tqdm

from ..errors import ContentInsufficientError, EmbeddingError, SourceFetchError
from ..models import Article, EmbeddedArticle, FeedItem, IngestionStats, NewsSource
from .enrichment import count_words, detect_language, extract_tags, summarize
from .extractors import ArticleContentExtractor
from .feed_fetcher import FeedFetcher
from .identity import derive_id
from .normalizer import ContentNormalizer
from .throttle import NoDelay, ThrottlePolicy

logger = logging.getLogger(__name__)


class _RunState:
    """Dedup keys accepted so far in one run."""

    def __init__(self):
        self.ids: Set[str] = set()
        self.titles: Set[str] = set()
        self.urls: Set[str] = set()

    def is_duplicate(self, article: Article) -> bool:
        if article.id in self.ids:
            return True
        title_key = ContentNormalizer.title_key(article.title)
        if title_key and title_key in self.titles:
            return True
        return bool(article.url) and article.url in self.urls

    def accept(self, article: Article) -> None:
        self.ids.add(article.id)
        title_key = ContentNormalizer.title_key(article.title)
        if title_key:
            self.titles.add(title_key)
        if article.url:
            self.urls.add(article.url)


class IngestionOrchestrator:
    """
    Drives feed collection and storage.

    Every failure is isolated: a failing source is skipped, a failing item is
    skipped, and a failed upsert loses only its own batch.
    """

    def __init__(
        self,
        sources: List[NewsSource],
        feed_fetcher: FeedFetcher,
        embedding_service,
        vector_store,
        content_extractor: Optional[ArticleContentExtractor] = None,
        normalizer: Optional[ContentNormalizer] = None,
        source_throttle: Optional[ThrottlePolicy] = None,
        batch_throttle: Optional[ThrottlePolicy] = None,
        batch_size: int = 10,
        secondary_fetch_threshold: int = 200,
        show_progress: bool = False
    ):
        """
        Initialize the orchestrator.

        Args:
            sources: Configured news sources, processed in order
            feed_fetcher: Fetches feed items for one source
            embedding_service: Provider exposing embed(text)
            vector_store: Store exposing upsert(points), delete_all() and stats()
            content_extractor: Page extractor used when feed content is thin
                (None disables the secondary fetch)
            normalizer: Content cleaner and length bounds
            source_throttle: Policy applied between sources
            batch_throttle: Policy applied between embedding batches
            batch_size: Articles per embedding/upsert batch
            secondary_fetch_threshold: Feed content shorter than this triggers
                a page fetch
            show_progress: Show a tqdm progress bar while storing
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        self.sources = list(sources)
        self.feed_fetcher = feed_fetcher
        self.embedding_service = embedding_service
        self.vector_store = vector_store
        self.content_extractor = content_extractor
        self.normalizer = normalizer or ContentNormalizer()
        self.source_throttle = source_throttle or NoDelay()
        self.batch_throttle = batch_throttle or NoDelay()
        self.batch_size = batch_size
        self.secondary_fetch_threshold = secondary_fetch_threshold
        self.show_progress = show_progress

        self.last_ingestion: Optional[str] = None

    def available_sources(self) -> List[Dict[str, str]]:
        """List the configured sources."""
        return [source.to_dict() for source in self.sources]

    def process_item(self, item: FeedItem, source: NewsSource) -> Article:
        """
        Turn a feed item into an Article.

        Args:
            item: Raw feed item
            source: Source the item came from

        Returns:
            Article with cleaned, length-bounded content

        Raises:
            ContentInsufficientError: If the cleaned content is too short
            ValueError: If the item has no link, guid or title
        """
        content = self.normalizer.normalize(item.content)

        if (
            len(content) < self.secondary_fetch_threshold
            and item.link
            and self.content_extractor is not None
        ):
            scraped = self.content_extractor.fetch_and_extract(item.link)
            if scraped and len(scraped) > len(content):
                logger.debug(f"Using scraped content for {item.link} ({len(scraped)} chars)")
                content = scraped

        content = self.normalizer.require_acceptable(content, item.title)
        content = self.normalizer.truncate(content)

        article_id = derive_id([item.link, item.guid, item.title])
        title = self.normalizer.normalize(item.title) or item.title

        return Article(
            id=article_id,
            title=title,
            content=content,
            url=item.link,
            published_at=item.pub_date or datetime.now().isoformat(),
            source=source.name,
            category=source.category,
            region=source.region,
            tags=extract_tags(title, item.content[:500], item.categories),
            word_count=count_words(content),
            author=item.author or "Unknown",
            language=detect_language(content),
            summary=summarize(content),
        )

    def _collect_source(
        self,
        source: NewsSource,
        run: _RunState,
        stats: IngestionStats
    ) -> List[Article]:
        """Fetch one source and build its new, non-duplicate articles."""
        try:
            items = self.feed_fetcher.fetch(source)
        except SourceFetchError as e:
            logger.error(f"Skipping source {source.name}: {e}")
            stats.sources_failed += 1
            return []
        except Exception as e:
            logger.error(f"Unexpected error fetching {source.name}: {e}")
            stats.sources_failed += 1
            return []

        articles = []
        for item in items:
            try:
                article = self.process_item(item, source)
            except ContentInsufficientError as e:
                logger.debug(f"Discarding item from {source.name}: {e}")
                stats.items_discarded += 1
                continue
            except Exception as e:
                logger.warning(f"Error processing item '{item.title}' from {source.name}: {e}")
                stats.items_discarded += 1
                continue

            if run.is_duplicate(article):
                stats.duplicates_dropped += 1
                continue
            run.accept(article)
            articles.append(article)

        stats.sources_processed += 1
        if articles:
            stats.categories.add(source.category)
            stats.regions.add(source.region)
        logger.info(f"Collected {len(articles)} articles from {source.name}")
        return articles

    def collect(
        self,
        sources: Optional[List[NewsSource]] = None,
        stats: Optional[IngestionStats] = None
    ) -> List[Article]:
        """
        Collect articles from sources sequentially.

        Args:
            sources: Sources to process (default: all configured sources)
            stats: Statistics to update in place

        Returns:
            Accepted articles in collection order
        """
        sources = self.sources if sources is None else sources
        stats = stats or IngestionStats()
        run = _RunState()

        articles = []
        for i, source in enumerate(sources):
            if i > 0:
                self.source_throttle.wait()
            articles.extend(self._collect_source(source, run, stats))

        stats.total_collected = len(articles)
        return articles

    def store_articles(self, articles: List[Article]) -> int:
        """
        Embed and upsert articles in batches.

        Args:
            articles: Articles to store

        Returns:
            Number of articles written to the vector store
        """
        batches = [
            articles[i:i + self.batch_size]
            for i in range(0, len(articles), self.batch_size)
        ]
        iterator = tqdm(batches, desc="Storing articles") if self.show_progress else batches

        stored = 0
        for batch_number, batch in enumerate(iterator):
            if batch_number > 0:
                self.batch_throttle.wait()

            embedded = [entry for entry in (self._embed(article) for article in batch) if entry is not None]
            if not embedded:
                continue

            points = [(entry.article.id, entry.vector, entry.article.to_payload()) for entry in embedded]
            try:
                written = self.vector_store.upsert(points)
            except Exception as e:
                logger.error(f"Failed to store batch {batch_number + 1} ({len(points)} articles): {e}")
                continue
            stored += len(written)

        return stored

    def _embed(self, article: Article) -> Optional[EmbeddedArticle]:
        """Embed one article, or return None when its vector cannot be stored."""
        try:
            vector = self.embedding_service.embed(article.content)
            self.vector_store.check_vector(vector)
        except (EmbeddingError, ValueError) as e:
            logger.warning(f"Skipping article {article.id}: {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected error embedding article {article.id}: {e}")
            return None
        return EmbeddedArticle(article=article, vector=vector)

    def _run(self, sources: List[NewsSource]) -> IngestionStats:
        start_time = time.time()
        stats = IngestionStats()

        articles = self.collect(sources, stats)
        stats.total_stored = self.store_articles(articles)
        stats.duration = time.time() - start_time

        self.last_ingestion = datetime.now().isoformat()
        logger.info(
            f"Ingestion complete: {stats.total_stored}/{stats.total_collected} articles stored "
            f"from {stats.sources_processed} sources in {stats.duration:.2f}s"
        )
        return stats

    def run(self) -> IngestionStats:
        """
        Ingest every configured source.

        Returns:
            IngestionStats for the run
        """
        logger.info(f"Starting ingestion from {len(self.sources)} sources")
        return self._run(self.sources)

    def ingest_source(self, name: str) -> IngestionStats:
        """
        Ingest a single configured source.

        Raises:
            KeyError: If no source has this name
        """
        for source in self.sources:
            if source.name == name:
                return self._run([source])
        raise KeyError(f"Unknown source: {name}")

    def clear_all(self) -> None:
        """Delete every stored article."""
        self.vector_store.delete_all()
        logger.info("Cleared all stored articles")

    def get_stats(self) -> Dict[str, Any]:
        """
        Summarize the store and the configured sources.

        Returns:
            Dictionary with total_articles, sources, status and last_ingestion
        """
        store_stats = self.vector_store.stats()
        return {
            'total_articles': store_stats.get('count', 0),
            'sources': len(self.sources),
            'status': store_stats.get('status', 'unknown'),
            'last_ingestion': self.last_ingestion,
        }

    def test_extraction(self, url: str) -> Dict[str, Any]:
        """
        Run page extraction on one URL.

        Returns:
            Dictionary with url, success and either the first 500 characters
            of the content or an error message
        """
        if self.content_extractor is None:
            return {'url': url, 'success': False, 'error': 'No content extractor configured'}

        content = self.content_extractor.fetch_and_extract(url)
        if not content:
            return {'url': url, 'success': False, 'error': 'No content extracted'}

        return {
            'url': url,
            'success': True,
            'content_length': len(content),
            'content': content[:500],
        }
