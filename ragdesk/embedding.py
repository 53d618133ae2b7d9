"""
Embedding providers and the gateway that batches, validates and retries calls to them.
"""
import time
from typing import Callable, List, Optional, Sequence

import numpy as np
from tenacity import RetryCallState, Retrying, stop_after_attempt, wait_exponential

from .base import EmbeddingProvider
from .errors import ConfigurationError, EmbeddingFailure, InvalidInput
from .logging_config import logger
from .openai_client import get_client


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI embeddings endpoint (text-embedding-3-small is 1536-d)."""

    def __init__(self, api_key: Optional[str], model: str = "text-embedding-3-small", dimension: int = 1536):
        self.api_key = api_key
        self.model = model
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, texts: List[str]) -> List[List[float]]:
        response = get_client(self.api_key).embeddings.create(model=self.model, input=texts)
        # The API tags every vector with the position of its input
        data = sorted(response.data, key=lambda item: item.index)
        return [item.embedding for item in data]


class SentenceTransformerProvider(EmbeddingProvider):
    """Local sentence-transformers model; avoids extra API usage."""

    def __init__(self, model_name: str = "sentence-transformers/all-MiniLM-L6-v2", dimension: int = 384):
        self.model_name = model_name
        self._dimension = dimension
        self._model = None

    @property
    def dimension(self) -> int:
        return self._dimension

    def preload(self):
        """Load the model up front to avoid a first-request delay."""
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            logger.info("Loading embedding model", model=self.model_name)
            # Explicit tokenizer setting avoids a FutureWarning on load
            self._model = SentenceTransformer(
                self.model_name,
                tokenizer_kwargs={"clean_up_tokenization_spaces": False},
            )
            # Warm up with a test embedding
            self._model.encode(["test"], normalize_embeddings=True, show_progress_bar=False)
            logger.info("Embedding model loaded", model=self.model_name)
        return self._model

    def model_dimension(self) -> Optional[int]:
        """Vector size reported by the loaded model, which may differ from the configured one."""
        return self.preload().get_sentence_embedding_dimension()

    def embed(self, texts: List[str]) -> List[List[float]]:
        vecs = self.preload().encode(texts, normalize_embeddings=True, show_progress_bar=False)
        if isinstance(vecs, np.ndarray):
            return vecs.tolist()
        return [list(v) for v in vecs]


def build_provider(settings) -> EmbeddingProvider:
    if settings.embed_provider == "openai":
        return OpenAIEmbeddingProvider(settings.openai_api_key, settings.embed_model, settings.embedding_dimension)
    if settings.embed_provider == "local":
        return SentenceTransformerProvider(settings.embed_model, settings.embedding_dimension)
    raise ConfigurationError(f"Unknown embedding provider: {settings.embed_provider}")


def _is_blank(text: Optional[str]) -> bool:
    return text is None or not text.strip()


class EmbeddingGateway:
    """
    Batching, validation and retry around an EmbeddingProvider.

    Each provider call is retried up to `max_attempts` times with exponential
    backoff (backoff_seconds, then doubling). Malformed responses count as
    provider failures and are retried the same way.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        backoff_multiplier: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1")
        self.provider = provider
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.backoff_multiplier = backoff_multiplier
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings, provider: Optional[EmbeddingProvider] = None) -> "EmbeddingGateway":
        return cls(
            provider or build_provider(settings),
            max_attempts=settings.embed_max_attempts,
            backoff_seconds=settings.embed_backoff_seconds,
        )

    @property
    def dimension(self) -> int:
        return self.provider.dimension

    def embed_one(self, text: Optional[str]) -> List[float]:
        """Embed a single text. Blank input is rejected before the provider is called."""
        if _is_blank(text):
            raise InvalidInput("Text to embed must not be empty", field="text")
        return self._embed_with_retry([text])[0]

    def embed_batch(self, texts: Optional[Sequence[Optional[str]]]) -> List[List[float]]:
        """
        Embed many texts in one provider call.

        Blank entries are dropped first, so the result has one vector per
        non-blank input, in input order.
        """
        if not texts:
            return []

        valid = [t for t in texts if not _is_blank(t)]
        if len(valid) < len(texts):
            logger.warning("Dropped blank texts from embedding batch", dropped=len(texts) - len(valid))
        if not valid:
            return []

        vectors = self._embed_with_retry(valid)
        logger.info("Batch embeddings generated", count=len(vectors))
        return vectors

    def _embed_with_retry(self, texts: List[str]) -> List[List[float]]:
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds, exp_base=self.backoff_multiplier),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            return retrying(self._call_provider, texts)
        except Exception as e:
            logger.error("Embedding failed", texts=len(texts), attempts=self.max_attempts, error=str(e))
            raise EmbeddingFailure(
                f"Embedding failed after {self.max_attempts} attempt(s): {e}",
                {"texts": len(texts), "attempts": self.max_attempts},
            ) from e

    def _call_provider(self, texts: List[str]) -> List[List[float]]:
        vectors = self.provider.embed(texts)

        if vectors is None or len(vectors) == 0:
            raise EmbeddingFailure("Empty embedding response from provider")
        if len(vectors) != len(texts):
            raise EmbeddingFailure(
                "Provider returned a different number of vectors than inputs",
                {"expected": len(texts), "actual": len(vectors)},
            )

        expected = self.provider.dimension
        result = []
        for i, vec in enumerate(vectors):
            if vec is None or len(vec) == 0:
                raise EmbeddingFailure("Empty embedding vector", {"position": i})
            if len(vec) != expected:
                raise EmbeddingFailure(
                    "Embedding has unexpected dimension",
                    {"position": i, "expected": expected, "actual": len(vec)},
                )
            result.append([float(x) for x in vec])
        return result

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Embedding call failed, retrying",
            attempt=retry_state.attempt_number,
            wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
            error=str(exc),
        )
