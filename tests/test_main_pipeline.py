"""
Test Suite for the NewsChatSystem facade

Components are wired end to end: mocked feeds, embeddings and generation;
a real FAISS store persisted to a temporary directory.
"""

import hashlib
import os
import shutil
import tempfile

import numpy as np
import pytest
from unittest.mock import Mock

from news_chat.config import Config, reset_config
from news_chat.ingestion.feed_fetcher import FeedFetcher
from news_chat.ingestion.throttle import NoDelay
from news_chat.main_pipeline import NewsChatSystem
from news_chat.models import FeedItem, NewsSource, QueryStatus, VectorStoreState
from news_chat.query.rag_service import DEGRADED_RESPONSE
from news_chat.storage.vector_store import VectorStore

DIMENSION = 4

SOURCES = [
    NewsSource("World Wire", "https://world.example.com/rss", "world", "UK"),
    NewsSource("Tech Daily", "https://tech.example.com/rss", "technology", "US"),
]


def fake_embed(text):
    # Every text points the same way, so every stored article is a perfect match
    return np.ones(DIMENSION, dtype=np.float32)


def feed_items(prefix: str):
    return [
        FeedItem(
            title=f"{prefix} story {i}",
            link=f"https://example.com/{prefix}-{i}",
            guid=f"{prefix}-{i}",
            pub_date="2024-10-01",
            content=f"{prefix} story {i}. " + "A detailed account of the day's events and their impact. " * 4,
        )
        for i in range(3)
    ]


@pytest.fixture
def temp_dir():
    path = tempfile.mkdtemp()
    yield path
    shutil.rmtree(path)
    reset_config()


@pytest.fixture
def feed_fetcher():
    fetcher = Mock(spec=FeedFetcher)
    fetcher.fetch.side_effect = lambda source: feed_items(source.name.split()[0].lower())
    return fetcher


@pytest.fixture
def embedding_service():
    service = Mock()
    service.embed.side_effect = fake_embed
    return service


@pytest.fixture
def generation_service():
    service = Mock()
    service.generate.return_value = "Here is what the news says."
    return service


def make_system(temp_dir, feed_fetcher, embedding_service, generation_service, vector_store=None):
    index_path = os.path.join(temp_dir, 'news.index')
    return NewsChatSystem(
        config=Config(),
        sources=SOURCES,
        embedding_service=embedding_service,
        vector_store=vector_store or VectorStore(index_path=index_path, dimension=DIMENSION),
        generation_service=generation_service,
        feed_fetcher=feed_fetcher,
        content_extractor=Mock(),
        source_throttle=NoDelay(),
        batch_throttle=NoDelay(),
    )


class TestStartup:
    """Test vector store probing."""

    def test_available_store(self, temp_dir, feed_fetcher, embedding_service, generation_service):
        system = make_system(temp_dir, feed_fetcher, embedding_service, generation_service)
        assert system.vector_store_state is VectorStoreState.AVAILABLE
        assert system.retrieval.vector_store_state is VectorStoreState.AVAILABLE

    def test_unavailable_store_degrades_queries(self, temp_dir, feed_fetcher, embedding_service, generation_service):
        """Scenario: a corrupt index puts the system into degraded mode."""
        path = os.path.join(temp_dir, 'broken.index')
        with open(path, 'wb') as f:
            f.write(b"garbage")
        store = VectorStore(index_path=path, dimension=DIMENSION)

        system = make_system(temp_dir, feed_fetcher, embedding_service, generation_service, store)
        result = system.ask("Anything new?")

        assert system.vector_store_state is VectorStoreState.UNAVAILABLE
        assert result.status is QueryStatus.DEGRADED
        assert result.response_text == DEGRADED_RESPONSE
        embedding_service.embed.assert_not_called()


class TestIngestAndAsk:
    """Test the two pipelines together."""

    def test_ingest_then_ask(self, temp_dir, feed_fetcher, embedding_service, generation_service):
        """Scenario: fresh ingest followed by a grounded answer."""
        system = make_system(temp_dir, feed_fetcher, embedding_service, generation_service)

        stats = system.ingest_all()
        result = system.ask("What happened today?")

        assert stats.total_stored == 6
        assert stats.categories == {"world", "technology"}
        assert result.status is QueryStatus.ANSWERED
        assert len(result.sources) == 5
        assert result.response_text == "Here is what the news says."

    def test_ingest_persists_index(self, temp_dir, feed_fetcher, embedding_service, generation_service):
        system = make_system(temp_dir, feed_fetcher, embedding_service, generation_service)
        system.ingest_all()

        reloaded = VectorStore(index_path=os.path.join(temp_dir, 'news.index'), dimension=DIMENSION)
        reloaded.connect()
        assert reloaded.count() == 6

    def test_ingested_ids_are_content_addressed(self, temp_dir, feed_fetcher, embedding_service, generation_service):
        system = make_system(temp_dir, feed_fetcher, embedding_service, generation_service)
        system.ingest_all()

        expected = hashlib.md5(b"https://example.com/world-0").hexdigest()
        assert system.vector_store.get(expected) is not None

    def test_ingest_single_source(self, temp_dir, feed_fetcher, embedding_service, generation_service):
        system = make_system(temp_dir, feed_fetcher, embedding_service, generation_service)
        stats = system.ingest_source("Tech Daily")
        assert stats.total_stored == 3

    def test_ingest_unknown_source(self, temp_dir, feed_fetcher, embedding_service, generation_service):
        system = make_system(temp_dir, feed_fetcher, embedding_service, generation_service)
        with pytest.raises(KeyError):
            system.ingest_source("Unknown")

    def test_ask_empty_store_is_no_data(self, temp_dir, feed_fetcher, embedding_service, generation_service):
        system = make_system(temp_dir, feed_fetcher, embedding_service, generation_service)
        result = system.ask("What happened today?")
        assert result.status is QueryStatus.NO_DATA
        assert result.sources == []


class TestSessions:
    """Test conversation sessions through the facade."""

    def test_session_history_recorded(self, temp_dir, feed_fetcher, embedding_service, generation_service):
        system = make_system(temp_dir, feed_fetcher, embedding_service, generation_service)
        system.ingest_all()
        session_id = system.start_session()

        system.ask("First question?", session_id=session_id)
        system.ask("Second question?", session_id=session_id)

        turns = system.conversations.get_turns(session_id)
        assert [t.content for t in turns if t.role == 'user'] == ["First question?", "Second question?"]
        prompt = generation_service.generate.call_args.args[0]
        assert "First question?" in prompt

    def test_ask_without_session_keeps_no_history(self, temp_dir, feed_fetcher, embedding_service, generation_service):
        system = make_system(temp_dir, feed_fetcher, embedding_service, generation_service)
        system.ask("Question?")
        assert system.conversations.sessions == {}


class TestManagement:
    """Test stats, sources, clear and the extraction check."""

    def test_get_stats(self, temp_dir, feed_fetcher, embedding_service, generation_service):
        system = make_system(temp_dir, feed_fetcher, embedding_service, generation_service)
        system.ingest_all()

        stats = system.get_stats()

        assert stats['total_articles'] == 6
        assert stats['sources'] == 2
        assert stats['vector_store']['metric'] == 'cosine'

    def test_list_sources(self, temp_dir, feed_fetcher, embedding_service, generation_service):
        system = make_system(temp_dir, feed_fetcher, embedding_service, generation_service)
        assert [s['name'] for s in system.list_sources()] == ["World Wire", "Tech Daily"]

    def test_clear_articles_drops_cached_answers(self, temp_dir, feed_fetcher, embedding_service, generation_service):
        system = make_system(temp_dir, feed_fetcher, embedding_service, generation_service)
        system.ingest_all()
        system.ask("What happened today?")

        system.clear_articles()
        result = system.ask("What happened today?")

        assert system.vector_store.count() == 0
        assert result.from_cache is False
        assert result.status is QueryStatus.NO_DATA

    def test_test_extraction_delegates(self, temp_dir, feed_fetcher, embedding_service, generation_service):
        system = make_system(temp_dir, feed_fetcher, embedding_service, generation_service)
        system.ingestion.content_extractor.fetch_and_extract.return_value = "Body " * 200

        result = system.test_extraction("https://example.com/a")

        assert result['success'] is True
        assert result['content_length'] == len("Body " * 200)
