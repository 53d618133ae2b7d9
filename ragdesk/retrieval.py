from time import perf_counter
from typing import List, Sequence

from .base import VectorStore
from .errors import InvalidInput, VectorDimensionMismatch
from .logging_config import logger
from .models import RetrievedChunk


class VectorRetrievalEngine:
    """Thresholded top-K cosine retrieval over a VectorStore."""

    def __init__(self, store: VectorStore):
        self.store = store

    def retrieve(
        self,
        query_vector: Sequence[float],
        top_k: int = 5,
        similarity_threshold: float = 0.7,
    ) -> List[RetrievedChunk]:
        """
        Search for the chunks most similar to a query vector.

        Parameters:
        query_vector: Embedding of the query; must match the store's dimensionality.
        top_k: Maximum number of chunks to return.
        similarity_threshold: Minimum cosine similarity (1 - cosine distance).

        Returns:
        List[RetrievedChunk]: Closest first. Empty when nothing clears the threshold.

        Raises:
        VectorDimensionMismatch: The query and stored vectors disagree in length.
        """
        if top_k < 1:
            raise InvalidInput("top_k must be at least 1", field="top_k")
        if len(query_vector) != self.store.dimension:
            raise VectorDimensionMismatch(self.store.dimension, len(query_vector))

        t = perf_counter()
        hits = self.store.knn_search(list(query_vector), top_k)

        results = []
        for hit in hits:
            score = 1.0 - hit.distance
            # Hits arrive closest first, so nothing after this one can clear the floor
            if score < similarity_threshold:
                break
            results.append(RetrievedChunk(hit.chunk, score))

        logger.info(
            "Search for similar chunks",
            elapsed_ms=round((perf_counter() - t) * 1000, 2),
            candidates=len(hits),
            returned=len(results),
            threshold=similarity_threshold,
        )
        return results[:top_k]
