"""
Error Taxonomy

Exceptions raised by the ingestion and query pipelines. Failures local to one
item or one source are caught and skipped by the orchestrators; failures that
would prevent answering a query are converted into fallback responses.
"""


class NewsChatError(Exception):
    """Base class for all pipeline errors."""
    pass


class SourceFetchError(NewsChatError):
    """Raised when a feed is unreachable or cannot be parsed."""

    def __init__(self, source_name: str, message: str):
        self.source_name = source_name
        super().__init__(f"Failed to fetch source '{source_name}': {message}")


class ContentInsufficientError(NewsChatError):
    """Raised when an article has too little text to be worth storing."""

    def __init__(self, length: int, minimum: int, title: str = ""):
        self.length = length
        self.minimum = minimum
        self.title = title
        super().__init__(
            f"Insufficient content ({length} < {minimum} chars)"
            + (f" for '{title}'" if title else "")
        )


class EmbeddingError(NewsChatError):
    """Raised when the embedding provider fails or returns an unusable vector."""
    pass


class VectorStoreError(NewsChatError):
    """Raised when a vector store operation fails."""
    pass


class VectorStoreUnavailable(VectorStoreError):
    """Raised when the vector store cannot be reached or loaded at startup."""
    pass


class GenerationError(NewsChatError):
    """Raised when the generation provider fails."""
    pass


class CacheError(NewsChatError):
    """Raised by cache stores; callers treat it as a cache miss."""
    pass
