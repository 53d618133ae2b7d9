"""Tests for service wiring and application startup checks."""

from unittest.mock import MagicMock, patch

import pytest

from ragdesk.config import Settings
from ragdesk.container import build_container
from ragdesk.embedding import EmbeddingGateway, SentenceTransformerProvider
from ragdesk.errors import VectorDimensionMismatch

from .conftest import InlinePool, StubModelRegistry


def _local_gateway(model_dimension: int, configured: int) -> EmbeddingGateway:
    provider = SentenceTransformerProvider("all-MiniLM-L6-v2", dimension=configured)
    model = MagicMock()
    model.get_sentence_embedding_dimension.return_value = model_dimension
    provider._model = model
    return EmbeddingGateway(provider, sleep=lambda _: None)


class TestStartup:
    def test_model_with_other_dimension_is_rejected(self, generator) -> None:
        """A 384-dimensional model cannot start against a 1536-dimensional setting."""
        settings = Settings(embed_provider="local", embedding_dimension=1536)
        container = build_container(
            settings,
            gateway=_local_gateway(384, 1536),
            models=StubModelRegistry(generator),
            pool=InlinePool(),
        )

        with pytest.raises(VectorDimensionMismatch) as excinfo:
            container.startup()

        assert excinfo.value.details == {"expected": 1536, "actual": 384}

    def test_mismatch_is_detected_before_migrations(self, generator) -> None:
        settings = Settings(embed_provider="local", embedding_dimension=1536)
        container = build_container(
            settings,
            gateway=_local_gateway(384, 1536),
            models=StubModelRegistry(generator),
            pool=InlinePool(),
        )
        container.engine = MagicMock()

        with patch("ragdesk.db.migrations.run_sql_migrations") as migrate:
            with pytest.raises(VectorDimensionMismatch):
                container.startup()

        migrate.assert_not_called()

    def test_matching_model_starts(self, generator) -> None:
        settings = Settings(embed_provider="local")
        container = build_container(
            settings,
            gateway=_local_gateway(384, settings.embedding_dimension),
            models=StubModelRegistry(generator),
            pool=InlinePool(),
        )

        container.startup()

        container.gateway.provider._model.get_sentence_embedding_dimension.assert_called_once()

    def test_memory_backend_has_no_engine(self, container) -> None:
        assert container.engine is None
        assert container.store.dimension == container.settings.embedding_dimension
