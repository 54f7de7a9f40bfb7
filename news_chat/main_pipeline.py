"""
Main Pipeline System

Wires the ingestion and query pipelines from configuration into a single
facade used by the CLI.

This is the central integration point that coordinates:
- Feed ingestion and article storage
- Vector store availability and persistence
- Cache-aware question answering
- Conversation sessions
"""

import time
import logging
from typing import List, Dict, Optional, Any

from .cache.cache_store import CacheStore, MemoryCacheStore
from .cache.query_cache import QueryCache
from .config import Config, get_config
from .embeddings.ollama_service import OllamaEmbeddingService
from .errors import VectorStoreUnavailable
from .generation.ollama_generator import OllamaGenerationService
from .ingestion.extractors import ArticleContentExtractor, PageFetcher
from .ingestion.feed_fetcher import FeedFetcher
from .ingestion.normalizer import ContentNormalizer
from .ingestion.orchestrator import IngestionOrchestrator
from .ingestion.throttle import FixedDelay, ThrottlePolicy
from .models import IngestionStats, NewsSource, QueryResult, VectorStoreState
from .query.conversation_manager import ConversationManager
from .query.rag_service import RetrievalOrchestrator
from .sources import load_sources
from .storage.vector_store import VectorStore

logger = logging.getLogger(__name__)


class NewsChatSystem:
    """
    Main system that integrates all components.

    Provides high-level methods for:
    - Ingesting all sources or a single source
    - Asking questions, optionally within a conversation session
    - Store statistics, source listing and clearing
    - Probing article extraction on one URL
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        sources: Optional[List[NewsSource]] = None,
        embedding_service=None,
        vector_store: Optional[VectorStore] = None,
        generation_service=None,
        cache_store: Optional[CacheStore] = None,
        feed_fetcher: Optional[FeedFetcher] = None,
        content_extractor: Optional[ArticleContentExtractor] = None,
        source_throttle: Optional[ThrottlePolicy] = None,
        batch_throttle: Optional[ThrottlePolicy] = None,
        show_progress: bool = False
    ):
        """
        Initialize the news chat system.

        Components not passed in are built from the configuration.

        Args:
            config: Configuration (default: global config)
            sources: News sources (default: loaded from config)
            embedding_service: Embedding provider
            vector_store: Vector store
            generation_service: Generation provider
            cache_store: Backing store for the query cache
            feed_fetcher: Feed fetcher
            content_extractor: Article page extractor
            source_throttle: Policy applied between sources
            batch_throttle: Policy applied between embedding batches
            show_progress: Show ingestion progress bars
        """
        self.config = config or get_config()
        cfg = self.config

        self.sources = sources if sources is not None else load_sources(cfg.news_sources_file or None)

        self.embedding_service = embedding_service or OllamaEmbeddingService(
            model=cfg.embedding_model,
            base_url=cfg.ollama_base_url,
            dimension=cfg.embedding_dimension,
            timeout=cfg.ollama_timeout
        )
        self.vector_store = vector_store or VectorStore(
            index_path=cfg.faiss_index_path or None,
            dimension=cfg.embedding_dimension
        )
        self.generation_service = generation_service or OllamaGenerationService(
            model=cfg.llm_model,
            base_url=cfg.ollama_base_url,
            temperature=cfg.llm_temperature,
            max_tokens=cfg.llm_max_tokens,
            timeout=cfg.ollama_timeout
        )
        self.query_cache = QueryCache(
            cache_store or MemoryCacheStore(),
            ttl=cfg.query_cache_ttl,
            history_turns=cfg.fingerprint_history_turns
        )

        self.vector_store_state = self._connect_vector_store()

        normalizer = ContentNormalizer(
            min_content_length=cfg.min_content_length,
            max_content_length=cfg.max_content_length
        )
        self.ingestion = IngestionOrchestrator(
            sources=self.sources,
            feed_fetcher=feed_fetcher or FeedFetcher(
                timeout=cfg.feed_timeout,
                max_items=cfg.max_items_per_source
            ),
            embedding_service=self.embedding_service,
            vector_store=self.vector_store,
            content_extractor=content_extractor or ArticleContentExtractor(
                fetcher=PageFetcher(timeout=cfg.article_timeout),
                normalizer=normalizer,
                min_extracted_length=cfg.min_extracted_length,
                min_accept_length=cfg.secondary_fetch_threshold
            ),
            normalizer=normalizer,
            source_throttle=source_throttle or FixedDelay(cfg.source_delay),
            batch_throttle=batch_throttle or FixedDelay(cfg.batch_delay),
            batch_size=cfg.embedding_batch_size,
            secondary_fetch_threshold=cfg.secondary_fetch_threshold,
            show_progress=show_progress
        )
        self.retrieval = RetrievalOrchestrator(
            embedding_service=self.embedding_service,
            vector_store=self.vector_store,
            generation_service=self.generation_service,
            query_cache=self.query_cache,
            vector_store_state=self.vector_store_state,
            top_k=cfg.top_k,
            similarity_threshold=cfg.similarity_threshold,
            prompt_history_turns=cfg.prompt_history_turns
        )
        self.conversations = ConversationManager()

        logger.info(
            f"NewsChatSystem initialized with {len(self.sources)} sources "
            f"(vector store {self.vector_store_state.value})"
        )

    def _connect_vector_store(self) -> VectorStoreState:
        """Probe the vector store once; failure puts queries in degraded mode."""
        try:
            return self.vector_store.connect()
        except VectorStoreUnavailable as e:
            logger.warning(f"Vector store unavailable, answering in degraded mode: {e}")
            return VectorStoreState.UNAVAILABLE

    def _persist(self) -> None:
        """Save the index when a path is configured."""
        if not self.vector_store.index_path:
            return
        try:
            self.vector_store.save_index()
        except Exception as e:
            logger.error(f"Failed to save vector index: {e}")

    def ingest_all(self) -> IngestionStats:
        """Ingest every configured source and persist the index."""
        stats = self.ingestion.run()
        if stats.total_stored:
            self._persist()
        return stats

    def ingest_source(self, name: str) -> IngestionStats:
        """
        Ingest one source by name and persist the index.

        Raises:
            KeyError: If no source has this name
        """
        stats = self.ingestion.ingest_source(name)
        if stats.total_stored:
            self._persist()
        return stats

    def ask(self, question: str, session_id: Optional[str] = None) -> QueryResult:
        """
        Ask a question, optionally within a conversation session.

        Args:
            question: User's question
            session_id: Session whose history is used and extended

        Returns:
            QueryResult

        Raises:
            ValueError: If question is empty
        """
        start_time = time.time()
        history = self.conversations.get_turns(session_id) if session_id else []

        result = self.retrieval.answer(question, history)

        if session_id:
            self.conversations.add_turn(session_id, question, result.response_text)

        logger.debug(f"Question answered in {time.time() - start_time:.2f}s ({result.status.value})")
        return result

    def start_session(self) -> str:
        return self.conversations.create_session()

    def get_stats(self) -> Dict[str, Any]:
        """
        Get system statistics.

        Returns:
            Ingestion summary plus vector store details
        """
        stats = self.ingestion.get_stats()
        stats['vector_store'] = self.vector_store.stats()
        return stats

    def list_sources(self) -> List[Dict[str, str]]:
        return self.ingestion.available_sources()

    def clear_articles(self) -> None:
        """Delete every stored article and drop cached answers built from them."""
        self.ingestion.clear_all()
        self.query_cache.clear()
        self._persist()

    def test_extraction(self, url: str) -> Dict[str, Any]:
        return self.ingestion.test_extraction(url)
