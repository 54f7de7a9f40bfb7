"""
Ollama Embedding Service

Generates text embeddings through Ollama's local embedding API.
Provides:
- Connection verification
- Dimension checking against the deployment's fixed vector size
- In-memory caching keyed by text hash
- Translation of transport errors into EmbeddingError
"""

import hashlib
import logging
import time
from dataclasses import dataclass, asdict
from typing import List, Dict, Optional

import numpy as np
import requests

from ..errors import EmbeddingError

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Statistics for cache performance tracking."""
    hits: int = 0
    misses: int = 0
    total_requests: int = 0
    cache_size: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        return self.hits / self.total_requests if self.total_requests > 0 else 0.0

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return {
            **asdict(self),
            'hit_rate': self.hit_rate
        }


class OllamaEmbeddingService:
    """
    Embedding provider backed by Ollama.

    embed() returns a float32 vector of exactly `dimension` values or raises
    EmbeddingError; every request carries a timeout.
    """

    def __init__(
        self,
        model: str = "nomic-embed-text",
        base_url: str = "http://localhost:11434",
        dimension: int = 768,
        timeout: int = 30,
        enable_cache: bool = True,
        max_cache_size: int = 10000,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the Ollama embedding service.

        Args:
            model: Ollama embedding model name
            base_url: Ollama base URL
            dimension: Expected embedding dimension
            timeout: Request timeout in seconds
            enable_cache: Cache embeddings in memory by text hash
            max_cache_size: Maximum number of cached embeddings
            session: Optional requests session
        """
        self.model = model
        self.base_url = base_url.rstrip('/')
        self.dimension = dimension
        self.timeout = timeout
        self.enable_cache = enable_cache
        self.max_cache_size = max_cache_size
        self.session = session or requests.Session()

        self._memory_cache: Dict[str, np.ndarray] = {}
        self._cache_stats = CacheStats()

        logger.info(f"Initialized OllamaEmbeddingService with model: {self.model}")

    def _compute_hash(self, text: str) -> str:
        """Compute SHA-256 hash of text for caching."""
        return hashlib.sha256(text.encode('utf-8')).hexdigest()

    def verify_connection(self) -> bool:
        """
        Verify connection to the Ollama service.

        Returns:
            True if connection successful

        Raises:
            EmbeddingError: If unable to connect
        """
        try:
            response = self.session.get(f"{self.base_url}/api/tags", timeout=self.timeout)
            response.raise_for_status()
            logger.info("Successfully connected to Ollama service")
            return True
        except requests.exceptions.Timeout:
            raise EmbeddingError(f"Connection to Ollama timed out after {self.timeout}s")
        except requests.exceptions.RequestException as e:
            raise EmbeddingError(
                f"Unable to connect to Ollama at {self.base_url}: {e}. "
                "Please ensure Ollama is running (try: ollama serve)"
            )

    def embed(self, text: str, use_cache: bool = True) -> np.ndarray:
        """
        Generate the embedding for a single text.

        Args:
            text: Input text
            use_cache: Whether to use the in-memory cache

        Returns:
            Embedding vector as float32 numpy array

        Raises:
            EmbeddingError: On empty input, transport failure, malformed
                response or dimension mismatch
        """
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text")

        self._cache_stats.total_requests += 1
        caching = use_cache and self.enable_cache

        text_hash = self._compute_hash(text)
        if caching and text_hash in self._memory_cache:
            self._cache_stats.hits += 1
            logger.debug(f"Cache hit for text hash: {text_hash[:8]}...")
            return self._memory_cache[text_hash]

        self._cache_stats.misses += 1

        try:
            response = self.session.post(
                f"{self.base_url}/api/embeddings",
                json={
                    "model": self.model,
                    "prompt": text
                },
                timeout=self.timeout
            )
            response.raise_for_status()
            embedding_list = response.json()['embedding']
        except requests.exceptions.Timeout:
            raise EmbeddingError(f"Embedding request timed out after {self.timeout}s")
        except requests.exceptions.ConnectionError:
            raise EmbeddingError(
                f"Unable to connect to Ollama at {self.base_url}. "
                "Please ensure Ollama is running."
            )
        except requests.exceptions.HTTPError as e:
            raise EmbeddingError(f"HTTP error from Ollama: {e}")
        except requests.exceptions.RequestException as e:
            raise EmbeddingError(f"Error generating embedding: {e}")
        except (KeyError, TypeError, ValueError) as e:
            raise EmbeddingError(f"Unexpected API response format: {e}")

        try:
            embedding = np.asarray(embedding_list, dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise EmbeddingError(f"Embedding contains non-numeric values: {e}")

        if embedding.ndim != 1 or len(embedding) != self.dimension:
            raise EmbeddingError(
                f"Expected {self.dimension} dimensions, got {embedding.shape}. "
                f"Check that EMBEDDING_MODEL matches EMBEDDING_DIMENSION."
            )
        if not np.all(np.isfinite(embedding)):
            raise EmbeddingError("Embedding contains non-finite values")

        if caching:
            if len(self._memory_cache) >= self.max_cache_size:
                # Evict the oldest entry (dicts keep insertion order)
                self._memory_cache.pop(next(iter(self._memory_cache)))
            self._memory_cache[text_hash] = embedding
            self._cache_stats.cache_size = len(self._memory_cache)

        return embedding

    def embed_batch(self, texts: List[str], use_cache: bool = True) -> List[np.ndarray]:
        """
        Embed several texts sequentially.

        Raises:
            EmbeddingError: On the first failing text
        """
        start_time = time.time()
        embeddings = [self.embed(text, use_cache=use_cache) for text in texts]
        elapsed = time.time() - start_time
        logger.debug(f"Embedded {len(texts)} texts in {elapsed:.2f}s")
        return embeddings

    def get_cache_stats(self) -> Dict:
        """Get cache performance statistics."""
        return self._cache_stats.to_dict()

    def clear_cache(self) -> None:
        """Clear the embedding cache."""
        self._memory_cache.clear()
        self._cache_stats = CacheStats()
        logger.info("Cleared embedding cache")
