"""
Vector Store with FAISS Cosine Search

Article vectors are L2-normalized and stored in an inner-product index, so
search scores are cosine similarities in [-1, 1]. Points are keyed by the
article's content-addressed id: upserting an existing id replaces the vector
and payload instead of adding a duplicate.
"""

import os
import pickle
import hashlib
import logging
import threading
from typing import List, Dict, Tuple, Optional, Any, Sequence

import faiss
import numpy as np

from ..errors import VectorStoreError, VectorStoreUnavailable
from ..models import VectorStoreState

logger = logging.getLogger(__name__)

Point = Tuple[str, Sequence[float], Dict[str, Any]]


class VectorStore:
    """
    FAISS-backed article store.

    Features:
    - Cosine similarity search with a hard score threshold
    - Idempotent upsert by string id
    - Metadata payloads kept in sync with the index
    - Atomic save/load with integrity checks
    """

    def __init__(
        self,
        index_path: Optional[str] = None,
        dimension: int = 768
    ):
        """
        Initialize the vector store.

        Args:
            index_path: Path to save/load the FAISS index (None keeps it in memory)
            dimension: Dimension of embedding vectors
        """
        self.index_path = index_path
        self.dimension = dimension

        self._lock = threading.Lock()
        self._keys: Dict[str, int] = {}
        self._payloads: Dict[int, Dict[str, Any]] = {}
        self.state = VectorStoreState.UNAVAILABLE

        self.index = None
        self._initialize_index()

    def _initialize_index(self) -> None:
        """Initialize a new, empty index."""
        self.index = faiss.IndexIDMap2(faiss.IndexFlatIP(self.dimension))
        self._keys = {}
        self._payloads = {}

    @staticmethod
    def _to_key(point_id: str) -> int:
        """Map a string id onto a non-negative int64 FAISS id."""
        return int(hashlib.md5(point_id.encode('utf-8')).hexdigest()[:15], 16)

    def _prepare(self, vectors: Sequence[Sequence[float]]) -> np.ndarray:
        """Convert to a normalized float32 matrix, checking dimensions."""
        matrix = np.array(vectors, dtype=np.float32)
        if matrix.ndim != 2 or matrix.shape[1] != self.dimension:
            raise ValueError(
                f"Vector dimension ({matrix.shape[-1] if matrix.ndim else 0}) must match "
                f"index dimension ({self.dimension})"
            )
        if not np.all(np.isfinite(matrix)):
            raise ValueError("Vectors must contain only finite values")
        faiss.normalize_L2(matrix)
        return matrix

    def check_vector(self, vector: Sequence[float]) -> None:
        """
        Check that a single vector can be stored in this index.

        Raises:
            ValueError: If the vector has the wrong dimension or non-finite values
        """
        self._prepare([vector])

    def connect(self) -> VectorStoreState:
        """
        Open the store, loading a persisted index when one exists.

        Returns:
            VectorStoreState.AVAILABLE

        Raises:
            VectorStoreUnavailable: If a persisted index exists but cannot be loaded
        """
        if self.index_path and os.path.exists(self.index_path):
            try:
                self.load_index(self.index_path)
            except Exception as e:
                self.state = VectorStoreState.UNAVAILABLE
                raise VectorStoreUnavailable(
                    f"Failed to load vector index from {self.index_path}: {e}"
                )
            logger.info(f"Loaded vector index with {self.count()} articles from {self.index_path}")
        self.state = VectorStoreState.AVAILABLE
        return self.state

    def _require_available(self) -> None:
        if self.state is not VectorStoreState.AVAILABLE:
            raise VectorStoreUnavailable("Vector store is not connected")

    def upsert(self, points: List[Point]) -> List[str]:
        """
        Insert or replace points.

        Args:
            points: (id, vector, payload) tuples

        Returns:
            Ids that were written, in input order

        Raises:
            VectorStoreUnavailable: If the store is not connected
            ValueError: If a vector has the wrong dimension
        """
        self._require_available()
        if not points:
            return []

        # Last write wins within a single call
        latest: Dict[str, Tuple[Sequence[float], Dict[str, Any]]] = {}
        for point_id, vector, payload in points:
            if not point_id:
                raise ValueError("Point id cannot be empty")
            latest[point_id] = (vector, payload)

        ids = list(latest.keys())
        matrix = self._prepare([latest[i][0] for i in ids])
        keys = np.array([self._to_key(i) for i in ids], dtype=np.int64)

        with self._lock:
            existing = [k for k in keys.tolist() if k in self._payloads]
            if existing:
                self.index.remove_ids(np.array(existing, dtype=np.int64))

            self.index.add_with_ids(matrix, keys)
            for point_id, key in zip(ids, keys.tolist()):
                self._keys[point_id] = key
                self._payloads[key] = {'id': point_id, **dict(latest[point_id][1])}

            if self.index.ntotal != len(self._payloads):
                raise VectorStoreError("Payloads out of sync with index")

        logger.debug(f"Upserted {len(ids)} points ({len(existing)} replaced)")
        return ids

    def search(
        self,
        vector: Sequence[float],
        limit: int = 5,
        score_threshold: Optional[float] = None
    ) -> List[Dict[str, Any]]:
        """
        Find the nearest articles by cosine similarity.

        Args:
            vector: Query embedding
            limit: Maximum number of results
            score_threshold: Results scoring below this are excluded

        Returns:
            List of {id, score, payload} dicts in descending score order

        Raises:
            VectorStoreUnavailable: If the store is not connected
            ValueError: If limit is negative or the dimension is wrong
        """
        self._require_available()
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")

        query = self._prepare([vector])

        with self._lock:
            if limit == 0 or self.index.ntotal == 0:
                return []
            scores, keys = self.index.search(query, min(limit, self.index.ntotal))

            results = []
            for score, key in zip(scores[0].tolist(), keys[0].tolist()):
                if key < 0 or key not in self._payloads:
                    continue
                if score_threshold is not None and score < score_threshold:
                    continue
                payload = self._payloads[key]
                results.append({'id': payload['id'], 'score': float(score), 'payload': dict(payload)})

        results.sort(key=lambda r: r['score'], reverse=True)
        return results

    def get(self, point_id: str) -> Optional[Dict[str, Any]]:
        """Return the payload stored for an id, if any."""
        key = self._keys.get(point_id)
        if key is None:
            return None
        return dict(self._payloads[key])

    def delete(self, point_id: str) -> bool:
        """Delete one point. Returns False if it did not exist."""
        self._require_available()
        with self._lock:
            key = self._keys.pop(point_id, None)
            if key is None:
                return False
            self.index.remove_ids(np.array([key], dtype=np.int64))
            del self._payloads[key]
        return True

    def delete_all(self) -> None:
        """Remove every point."""
        self._require_available()
        with self._lock:
            self._initialize_index()
        logger.info("Cleared all vectors from the store")

    def count(self) -> int:
        """Get the total number of stored points."""
        return self.index.ntotal

    def stats(self) -> Dict[str, Any]:
        """Get store statistics: count, status and index details."""
        return {
            'count': self.count(),
            'status': self.state.value,
            'dimension': self.dimension,
            'index_type': 'IndexIDMap2(IndexFlatIP)',
            'metric': 'cosine',
            'index_path': self.index_path,
        }

    def save_index(self, path: Optional[str] = None) -> None:
        """
        Save the FAISS index and payloads to disk with atomic write.

        Args:
            path: Path to save index (default: self.index_path)
        """
        save_path = path or self.index_path
        if not save_path:
            raise ValueError("No index path configured")

        directory = os.path.dirname(save_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with self._lock:
            faiss.write_index(self.index, save_path)

            metadata_path = save_path + '.metadata'
            temp_metadata_path = metadata_path + '.tmp'
            try:
                with open(temp_metadata_path, 'wb') as f:
                    pickle.dump(
                        {'dimension': self.dimension, 'keys': self._keys, 'payloads': self._payloads},
                        f,
                        protocol=pickle.HIGHEST_PROTOCOL
                    )
                os.replace(temp_metadata_path, metadata_path)
            except Exception:
                if os.path.exists(temp_metadata_path):
                    os.remove(temp_metadata_path)
                raise

        logger.info(f"Saved vector index with {self.count()} articles to {save_path}")

    def load_index(self, path: Optional[str] = None) -> None:
        """
        Load the FAISS index and payloads from disk.

        Raises:
            VectorStoreError: If the files are missing, mismatched or out of sync
        """
        load_path = path or self.index_path
        if not load_path or not os.path.exists(load_path):
            raise VectorStoreError(f"Index file not found: {load_path}")

        loaded_index = faiss.read_index(load_path)
        if loaded_index.d != self.dimension:
            raise VectorStoreError(
                f"Index has dimension {loaded_index.d}, expected {self.dimension}"
            )

        metadata_path = load_path + '.metadata'
        if not os.path.exists(metadata_path):
            raise VectorStoreError(f"Metadata file not found: {metadata_path}")
        with open(metadata_path, 'rb') as f:
            metadata = pickle.load(f)

        payloads = metadata.get('payloads', {})
        if loaded_index.ntotal != len(payloads):
            raise VectorStoreError(
                f"Index has {loaded_index.ntotal} vectors but "
                f"metadata has {len(payloads)} entries"
            )

        with self._lock:
            self.index = loaded_index
            self._keys = metadata.get('keys', {})
            self._payloads = payloads

    def __repr__(self) -> str:
        return (
            f"VectorStore(points={self.count()}, "
            f"dimension={self.dimension}, "
            f"state={self.state.value})"
        )
