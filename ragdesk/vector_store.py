"""
In-process vector store with exact cosine search over numpy arrays.
"""
import itertools
import threading
from typing import Dict, List

import numpy as np

from .base import VectorStore
from .errors import VectorDimensionMismatch
from .models import Chunk, KnnHit


class InMemoryVectorStore(VectorStore):
    """Chunks plus a normalized copy of their vectors for brute-force k-NN."""

    def __init__(self, dimension: int):
        self._dimension = dimension
        self._chunks: Dict[int, Chunk] = {}
        self._unit_vectors: Dict[int, np.ndarray] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def dimension(self) -> int:
        return self._dimension

    def insert(self, chunk: Chunk) -> Chunk:
        if len(chunk.embedding) != self._dimension:
            raise VectorDimensionMismatch(self._dimension, len(chunk.embedding))

        vec = np.asarray(chunk.embedding, dtype=np.float64)
        norm = np.linalg.norm(vec)
        with self._lock:
            stored = chunk.model_copy(update={"id": next(self._ids)})
            self._chunks[stored.id] = stored
            # Zero vectors stay zero: cosine distance 1 to everything
            self._unit_vectors[stored.id] = vec / norm if norm > 0 else vec
        return stored

    def knn_search(self, query_vector: List[float], top_k: int) -> List[KnnHit]:
        if len(query_vector) != self._dimension:
            raise VectorDimensionMismatch(self._dimension, len(query_vector))
        if top_k <= 0:
            return []

        query = np.asarray(query_vector, dtype=np.float64)
        q_norm = np.linalg.norm(query)
        if q_norm > 0:
            query = query / q_norm

        with self._lock:
            ids = list(self._chunks)
            if not ids:
                return []
            matrix = np.stack([self._unit_vectors[i] for i in ids])
            chunks = [self._chunks[i] for i in ids]

        distances = 1.0 - matrix @ query
        # Stable sort keeps insertion order between equal distances
        order = np.argsort(distances, kind="stable")[:top_k]
        return [KnnHit(chunks[i], float(distances[i])) for i in order]

    def delete_by_document(self, document_id: int) -> int:
        with self._lock:
            doomed = [cid for cid, c in self._chunks.items() if c.document_id == document_id]
            for cid in doomed:
                del self._chunks[cid]
                del self._unit_vectors[cid]
        return len(doomed)

    def count_by_document(self, document_id: int) -> int:
        with self._lock:
            return sum(1 for c in self._chunks.values() if c.document_id == document_id)

    def list_by_document(self, document_id: int) -> List[Chunk]:
        with self._lock:
            rows = [c for c in self._chunks.values() if c.document_id == document_id]
        return sorted(rows, key=lambda c: c.chunk_index)
