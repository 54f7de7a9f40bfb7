"""
Centralized Configuration Module

Provides a single source of truth for all system configuration parameters.
Loads settings from environment variables with sensible defaults and validation.
"""

import os
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional
from urllib.parse import urlparse
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass
class Config:
    """
    Centralized configuration for the news chat pipelines.

    All configuration parameters are loaded from environment variables
    with sensible defaults. Validation is performed on initialization.
    """

    # Ollama Settings
    ollama_base_url: str = field(default="http://localhost:11434")
    ollama_timeout: int = field(default=30)
    embedding_model: str = field(default="nomic-embed-text")
    embedding_dimension: int = field(default=768)
    llm_model: str = field(default="llama3.1:latest")
    llm_temperature: float = field(default=0.7)
    llm_max_tokens: int = field(default=1024)

    # Retrieval Settings
    top_k: int = field(default=5)
    similarity_threshold: float = field(default=0.7)
    query_cache_ttl: int = field(default=1800)
    fingerprint_history_turns: int = field(default=3)
    prompt_history_turns: int = field(default=5)

    # Ingestion Settings
    feed_timeout: int = field(default=30)
    article_timeout: int = field(default=15)
    min_content_length: int = field(default=100)
    max_content_length: int = field(default=6000)
    secondary_fetch_threshold: int = field(default=200)
    min_extracted_length: int = field(default=300)
    max_items_per_source: int = field(default=15)
    embedding_batch_size: int = field(default=10)
    source_delay: float = field(default=1.5)
    batch_delay: float = field(default=1.0)

    # Storage Paths
    faiss_index_path: str = field(default="data/embeddings/news.index")
    news_sources_file: str = field(default="")

    def __post_init__(self):
        """Load configuration from environment and validate."""
        self._load_from_environment()
        self._validate()

    def _load_from_environment(self):
        """Load configuration from environment variables."""
        # Ollama Settings
        self.ollama_base_url = self._get_env_str('OLLAMA_BASE_URL', self.ollama_base_url)
        self.ollama_timeout = self._get_env_int('OLLAMA_TIMEOUT', self.ollama_timeout)
        self.embedding_model = self._get_env_str('EMBEDDING_MODEL', self.embedding_model)
        self.embedding_dimension = self._get_env_int('EMBEDDING_DIMENSION', self.embedding_dimension)
        self.llm_model = self._get_env_str('LLM_MODEL', self.llm_model)
        self.llm_temperature = self._get_env_float('LLM_TEMPERATURE', self.llm_temperature)
        self.llm_max_tokens = self._get_env_int('LLM_MAX_TOKENS', self.llm_max_tokens)

        # Retrieval Settings
        self.top_k = self._get_env_int('TOP_K', self.top_k)
        self.similarity_threshold = self._get_env_float('SIMILARITY_THRESHOLD', self.similarity_threshold)
        self.query_cache_ttl = self._get_env_int('QUERY_CACHE_TTL', self.query_cache_ttl)
        self.fingerprint_history_turns = self._get_env_int(
            'FINGERPRINT_HISTORY_TURNS', self.fingerprint_history_turns
        )
        self.prompt_history_turns = self._get_env_int('PROMPT_HISTORY_TURNS', self.prompt_history_turns)

        # Ingestion Settings
        self.feed_timeout = self._get_env_int('FEED_TIMEOUT', self.feed_timeout)
        self.article_timeout = self._get_env_int('ARTICLE_TIMEOUT', self.article_timeout)
        self.min_content_length = self._get_env_int('MIN_CONTENT_LENGTH', self.min_content_length)
        self.max_content_length = self._get_env_int('MAX_CONTENT_LENGTH', self.max_content_length)
        self.secondary_fetch_threshold = self._get_env_int(
            'SECONDARY_FETCH_THRESHOLD', self.secondary_fetch_threshold
        )
        self.min_extracted_length = self._get_env_int('MIN_EXTRACTED_LENGTH', self.min_extracted_length)
        self.max_items_per_source = self._get_env_int('MAX_ITEMS_PER_SOURCE', self.max_items_per_source)
        self.embedding_batch_size = self._get_env_int('EMBEDDING_BATCH_SIZE', self.embedding_batch_size)
        self.source_delay = self._get_env_float('SOURCE_DELAY', self.source_delay)
        self.batch_delay = self._get_env_float('BATCH_DELAY', self.batch_delay)

        # Storage Paths
        self.faiss_index_path = self._get_env_path('FAISS_INDEX_PATH', self.faiss_index_path)
        self.news_sources_file = self._get_env_path('NEWS_SOURCES_FILE', self.news_sources_file)

    def _get_env_str(self, key: str, default: str) -> str:
        """Get string value from environment."""
        value = os.getenv(key, default)
        if isinstance(value, str):
            value = value.strip()
        return value

    def _get_env_int(self, key: str, default: int) -> int:
        """Get integer value from environment."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            raise ConfigValidationError(
                f"Invalid integer value for {key}: '{value}'"
            )

    def _get_env_float(self, key: str, default: float) -> float:
        """Get float value from environment."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return float(value)
        except ValueError:
            raise ConfigValidationError(
                f"Invalid float value for {key}: '{value}'"
            )

    def _get_env_path(self, key: str, default: str) -> str:
        """Get path value from environment with expansion."""
        value = os.getenv(key, default)
        if isinstance(value, str):
            value = value.strip()
            if value:
                value = os.path.expanduser(value)
        return value

    def _validate(self):
        """Validate configuration parameters."""
        # Validate non-empty strings
        if not self.embedding_model:
            raise ConfigValidationError("embedding_model cannot be empty")
        if not self.llm_model:
            raise ConfigValidationError("llm_model cannot be empty")

        # Validate positive integers
        positive_int_fields = [
            ('embedding_dimension', self.embedding_dimension),
            ('llm_max_tokens', self.llm_max_tokens),
            ('top_k', self.top_k),
            ('query_cache_ttl', self.query_cache_ttl),
            ('min_content_length', self.min_content_length),
            ('max_content_length', self.max_content_length),
            ('max_items_per_source', self.max_items_per_source),
            ('embedding_batch_size', self.embedding_batch_size),
        ]

        for field_name, value in positive_int_fields:
            if value <= 0:
                raise ConfigValidationError(
                    f"{field_name} must be positive, got {value}"
                )

        # History windows may be zero (no context) but never negative
        for field_name, value in [
            ('fingerprint_history_turns', self.fingerprint_history_turns),
            ('prompt_history_turns', self.prompt_history_turns),
        ]:
            if value < 0:
                raise ConfigValidationError(
                    f"{field_name} must be non-negative, got {value}"
                )

        # Validate timeouts (at least 1 second)
        for field_name, value in [
            ('ollama_timeout', self.ollama_timeout),
            ('feed_timeout', self.feed_timeout),
            ('article_timeout', self.article_timeout),
        ]:
            if value < 1:
                raise ConfigValidationError(
                    f"{field_name} must be at least 1, got {value}"
                )

        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ConfigValidationError(
                f"similarity_threshold must be between 0 and 1, got {self.similarity_threshold}"
            )

        if not 0.0 <= self.llm_temperature <= 2.0:
            raise ConfigValidationError(
                f"llm_temperature must be between 0 and 2, got {self.llm_temperature}"
            )

        if self.min_content_length >= self.max_content_length:
            raise ConfigValidationError(
                "min_content_length must be less than max_content_length"
            )

        if self.source_delay < 0 or self.batch_delay < 0:
            raise ConfigValidationError("Delays cannot be negative")

        # Validate URL format
        parsed = urlparse(self.ollama_base_url)
        if not all([parsed.scheme, parsed.netloc]):
            raise ConfigValidationError(
                f"Invalid URL for ollama_base_url: {self.ollama_base_url}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def __repr__(self) -> str:
        """String representation of configuration."""
        items = []
        for key, value in self.to_dict().items():
            items.append(f"{key}={value!r}")
        return f"Config({', '.join(items)})"

    def update(self, **kwargs):
        """
        Update configuration values with validation.

        Args:
            **kwargs: Configuration parameters to update

        Raises:
            ConfigValidationError: If validation fails
        """
        # Store original values for rollback
        original_values = {}

        try:
            for key, value in kwargs.items():
                if not hasattr(self, key):
                    raise ConfigValidationError(f"Unknown configuration parameter: {key}")
                original_values[key] = getattr(self, key)
                setattr(self, key, value)

            self._validate()

        except Exception:
            # Rollback on validation failure
            for key, value in original_values.items():
                setattr(self, key, value)
            raise

    def get_retrieval_config(self) -> Dict[str, Any]:
        """Get retrieval-related configuration."""
        return {
            'top_k': self.top_k,
            'similarity_threshold': self.similarity_threshold,
            'query_cache_ttl': self.query_cache_ttl,
            'fingerprint_history_turns': self.fingerprint_history_turns,
            'prompt_history_turns': self.prompt_history_turns,
        }

    def get_ingestion_config(self) -> Dict[str, Any]:
        """Get ingestion-related configuration."""
        return {
            'min_content_length': self.min_content_length,
            'max_content_length': self.max_content_length,
            'secondary_fetch_threshold': self.secondary_fetch_threshold,
            'min_extracted_length': self.min_extracted_length,
            'max_items_per_source': self.max_items_per_source,
            'embedding_batch_size': self.embedding_batch_size,
            'source_delay': self.source_delay,
            'batch_delay': self.batch_delay,
        }


# Singleton instance
_config_instance: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance (singleton pattern).

    Returns:
        Config: Global configuration instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance


def reset_config():
    """Reset the global configuration instance."""
    global _config_instance
    _config_instance = None
