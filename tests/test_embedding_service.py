"""
Test Suite for OllamaEmbeddingService

The HTTP session is mocked; no running Ollama is needed.
"""

import numpy as np
import pytest
import requests
from unittest.mock import Mock

from news_chat.embeddings.ollama_service import OllamaEmbeddingService
from news_chat.errors import EmbeddingError


def response_with(payload) -> Mock:
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = payload
    return response


@pytest.fixture
def session():
    session = Mock()
    session.post.return_value = response_with({'embedding': [0.1, 0.2, 0.3, 0.4]})
    return session


@pytest.fixture
def service(session):
    return OllamaEmbeddingService(dimension=4, base_url="http://ollama:11434/", session=session)


class TestEmbed:
    """Test single-text embedding."""

    def test_returns_float32_vector(self, service):
        vector = service.embed("hello world")
        assert isinstance(vector, np.ndarray)
        assert vector.dtype == np.float32
        assert vector.shape == (4,)

    def test_request_format(self, service, session):
        """The Ollama embeddings endpoint is called with model and prompt."""
        service.embed("hello world")

        args, kwargs = session.post.call_args
        assert args[0] == "http://ollama:11434/api/embeddings"
        assert kwargs['json'] == {'model': 'nomic-embed-text', 'prompt': 'hello world'}
        assert kwargs['timeout'] == 30

    def test_empty_text_rejected(self, service, session):
        with pytest.raises(EmbeddingError):
            service.embed("   ")
        session.post.assert_not_called()

    def test_dimension_mismatch(self, service, session):
        """A vector of the wrong size is an error, never silently stored."""
        session.post.return_value = response_with({'embedding': [0.1, 0.2]})
        with pytest.raises(EmbeddingError):
            service.embed("hello")

    def test_malformed_response(self, service, session):
        session.post.return_value = response_with({'unexpected': []})
        with pytest.raises(EmbeddingError):
            service.embed("hello")

    def test_non_numeric_values(self, service, session):
        session.post.return_value = response_with({'embedding': [1, 'x', 2, 3]})
        with pytest.raises(EmbeddingError):
            service.embed("hello")

    @pytest.mark.parametrize("bad_value", [float('nan'), float('inf')])
    def test_non_finite_values(self, service, session, bad_value):
        session.post.return_value = response_with({'embedding': [0.1, bad_value, 0.3, 0.4]})
        with pytest.raises(EmbeddingError):
            service.embed("hello")

    def test_bad_vector_not_cached(self, service, session):
        session.post.return_value = response_with({'embedding': [1, 'x', 2, 3]})
        with pytest.raises(EmbeddingError):
            service.embed("hello")

        session.post.return_value = response_with({'embedding': [0.1, 0.2, 0.3, 0.4]})
        assert service.embed("hello").shape == (4,)


class TestTransportErrors:
    """Test translation of requests failures."""

    @pytest.mark.parametrize("error", [
        requests.exceptions.Timeout("slow"),
        requests.exceptions.ConnectionError("refused"),
        requests.exceptions.RequestException("other"),
    ])
    def test_request_errors_become_embedding_errors(self, service, session, error):
        session.post.side_effect = error
        with pytest.raises(EmbeddingError):
            service.embed("hello")

    def test_http_error(self, service, session):
        response = Mock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("500")
        session.post.return_value = response
        with pytest.raises(EmbeddingError):
            service.embed("hello")

    def test_verify_connection_failure(self, service, session):
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(EmbeddingError):
            service.verify_connection()

    def test_verify_connection_success(self, service, session):
        session.get.return_value = Mock()
        assert service.verify_connection() is True


class TestCaching:
    """Test the in-memory embedding cache."""

    def test_repeated_text_hits_cache(self, service, session):
        first = service.embed("same text")
        second = service.embed("same text")

        assert session.post.call_count == 1
        np.testing.assert_array_equal(first, second)
        stats = service.get_cache_stats()
        assert stats['hits'] == 1
        assert stats['misses'] == 1

    def test_cache_bypass(self, service, session):
        service.embed("same text")
        service.embed("same text", use_cache=False)
        assert session.post.call_count == 2

    def test_cache_eviction(self, session):
        service = OllamaEmbeddingService(dimension=4, max_cache_size=2, session=session)
        for text in ("one", "two", "three"):
            service.embed(text)
        assert service.get_cache_stats()['cache_size'] == 2

        service.embed("one")
        assert session.post.call_count == 4

    def test_clear_cache(self, service, session):
        service.embed("text")
        service.clear_cache()
        service.embed("text")
        assert session.post.call_count == 2

    def test_embed_batch(self, service):
        vectors = service.embed_batch(["a", "b"])
        assert len(vectors) == 2
