"""
Shared test fixtures and fakes for the whole suite.

Provides: deterministic embedding provider, recording generator, inline worker pool,
in-memory container and FastAPI test client.
"""
from concurrent.futures import Future
from typing import Dict, List, Optional

import pytest

from ragdesk.base import EmbeddingProvider, Generator
from ragdesk.config import Settings
from ragdesk.container import build_container
from ragdesk.embedding import EmbeddingGateway
from ragdesk.services.model_service import ModelRegistry

DIMENSION = 4
OFF_TOPIC = [0.0, 0.0, 0.0, 1.0]


class KeywordEmbeddingProvider(EmbeddingProvider):
    """
    Maps a text to the vector of the first registered keyword it contains.
    Texts with no keyword land on an axis orthogonal to every keyword.
    """

    def __init__(self, keywords: Optional[Dict[str, List[float]]] = None, dimension: int = DIMENSION):
        self.keywords = dict(keywords or {})
        self._dimension = dimension
        self.calls: List[List[str]] = []

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        vectors = []
        for text in texts:
            lowered = text.lower()
            vector = next((v for k, v in self.keywords.items() if k in lowered), OFF_TOPIC)
            vectors.append(list(vector))
        return vectors


class RecordingGenerator(Generator):
    def __init__(self, reply: Optional[str] = "Vacation requests need two weeks notice."):
        self.reply = reply
        self.calls = []

    def complete(self, system_text: str, user_text: str) -> str:
        self.calls.append((system_text, user_text))
        return self.reply


class StubModelRegistry(ModelRegistry):
    """Real model resolution, but every model answers through one fake generator."""

    def __init__(self, generator: Generator):
        super().__init__(openai_api_key="test-key")
        self.generator = generator

    def generator_for(self, model_string=None) -> Generator:
        self.resolve_model(model_string)
        return self.generator


class InlinePool:
    """Runs submitted work immediately in the calling thread."""

    def __init__(self):
        self.submitted = 0
        self.closed = False

    def submit(self, fn, *args, **kwargs) -> Future:
        self.submitted += 1
        future: Future = Future()
        future.set_result(fn(*args, **kwargs))
        return future

    def shutdown(self) -> None:
        self.closed = True


@pytest.fixture
def settings() -> Settings:
    return Settings(embedding_dimension=DIMENSION, embed_provider="local", storage_backend="memory")


@pytest.fixture
def provider() -> KeywordEmbeddingProvider:
    return KeywordEmbeddingProvider(
        {
            "vacation": [1.0, 0.0, 0.0, 0.0],
            "expense": [0.0, 1.0, 0.0, 0.0],
        }
    )


@pytest.fixture
def gateway(provider) -> EmbeddingGateway:
    return EmbeddingGateway(provider, sleep=lambda seconds: None)


@pytest.fixture
def generator() -> RecordingGenerator:
    return RecordingGenerator()


@pytest.fixture
def pool() -> InlinePool:
    return InlinePool()


@pytest.fixture
def container(settings, gateway, generator, pool):
    return build_container(settings, gateway=gateway, models=StubModelRegistry(generator), pool=pool)


@pytest.fixture
def client(container):
    from fastapi.testclient import TestClient

    from ragdesk.main import create_app

    with TestClient(create_app(container)) as test_client:
        yield test_client
