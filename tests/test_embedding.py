"""Tests for EmbeddingGateway batching, validation and retry."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from ragdesk.base import EmbeddingProvider
from ragdesk.config import Settings
from ragdesk.embedding import (
    EmbeddingGateway,
    OpenAIEmbeddingProvider,
    SentenceTransformerProvider,
    build_provider,
)
from ragdesk.errors import ConfigurationError, EmbeddingFailure, InvalidInput


def _provider(dimension: int = 3) -> MagicMock:
    provider = MagicMock(spec=EmbeddingProvider)
    provider.dimension = dimension
    provider.embed.side_effect = lambda texts: [[float(i + 1)] * dimension for i in range(len(texts))]
    return provider


@pytest.fixture
def sleeps() -> list:
    return []


def _gateway(provider, sleeps, **kwargs) -> EmbeddingGateway:
    return EmbeddingGateway(provider, sleep=sleeps.append, **kwargs)


class TestEmbedOne:
    def test_returns_single_vector(self, sleeps) -> None:
        provider = _provider()
        vector = _gateway(provider, sleeps).embed_one("What is the vacation policy?")

        assert vector == [1.0, 1.0, 1.0]
        provider.embed.assert_called_once_with(["What is the vacation policy?"])

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_blank_text_rejected_before_provider_call(self, text, sleeps) -> None:
        provider = _provider()
        with pytest.raises(InvalidInput):
            _gateway(provider, sleeps).embed_one(text)
        provider.embed.assert_not_called()


class TestEmbedBatch:
    def test_blank_entries_dropped_order_kept(self, sleeps) -> None:
        """One vector per valid string, same relative order, one provider call."""
        provider = _provider()
        vectors = _gateway(provider, sleeps).embed_batch(["first", "", None, "second", "  ", "third"])

        provider.embed.assert_called_once_with(["first", "second", "third"])
        assert vectors == [[1.0] * 3, [2.0] * 3, [3.0] * 3]

    @pytest.mark.parametrize("texts", [None, [], ["", "  ", None]])
    def test_nothing_valid_skips_provider(self, texts, sleeps) -> None:
        provider = _provider()
        assert _gateway(provider, sleeps).embed_batch(texts) == []
        provider.embed.assert_not_called()


class TestRetry:
    def test_transient_failures_are_retried_with_backoff(self, sleeps) -> None:
        provider = _provider()
        provider.embed.side_effect = [ConnectionError("reset"), TimeoutError("slow"), [[0.5, 0.5, 0.5]]]

        vector = _gateway(provider, sleeps).embed_one("hello")

        assert vector == [0.5, 0.5, 0.5]
        assert provider.embed.call_count == 3
        assert sleeps == [1.0, 2.0]

    def test_exhaustion_raises_embedding_failure_with_cause(self, sleeps) -> None:
        provider = _provider()
        cause = ConnectionError("provider down")
        provider.embed.side_effect = cause

        with pytest.raises(EmbeddingFailure) as excinfo:
            _gateway(provider, sleeps).embed_batch(["a", "b"])

        assert provider.embed.call_count == 3
        assert excinfo.value.__cause__ is cause
        assert sleeps == [1.0, 2.0]

    def test_wrong_result_count_is_a_provider_failure(self, sleeps) -> None:
        provider = _provider()
        provider.embed.side_effect = lambda texts: [[1.0, 1.0, 1.0]]

        with pytest.raises(EmbeddingFailure):
            _gateway(provider, sleeps).embed_batch(["a", "b"])
        assert provider.embed.call_count == 3

    def test_wrong_dimension_is_retried(self, sleeps) -> None:
        provider = _provider()
        provider.embed.side_effect = [[[1.0, 2.0]], [[1.0, 2.0, 3.0]]]

        assert _gateway(provider, sleeps).embed_one("x") == [1.0, 2.0, 3.0]
        assert sleeps == [1.0]

    @pytest.mark.parametrize("bad", [None, [], [[]]])
    def test_empty_responses_fail(self, bad, sleeps) -> None:
        provider = _provider()
        provider.embed.side_effect = lambda texts: bad

        with pytest.raises(EmbeddingFailure):
            _gateway(provider, sleeps).embed_one("x")

    def test_attempts_and_backoff_are_configurable(self, sleeps) -> None:
        provider = _provider()
        provider.embed.side_effect = RuntimeError("boom")

        with pytest.raises(EmbeddingFailure):
            _gateway(provider, sleeps, max_attempts=4, backoff_seconds=0.5).embed_one("x")

        assert provider.embed.call_count == 4
        assert sleeps == [0.5, 1.0, 2.0]

    def test_max_attempts_must_be_positive(self) -> None:
        with pytest.raises(ConfigurationError):
            EmbeddingGateway(_provider(), max_attempts=0)


class TestProviders:
    def test_openai_provider_restores_input_order(self) -> None:
        response = SimpleNamespace(
            data=[
                SimpleNamespace(index=1, embedding=[0.2, 0.2]),
                SimpleNamespace(index=0, embedding=[0.1, 0.1]),
            ]
        )
        client = MagicMock()
        client.embeddings.create.return_value = response

        with patch("ragdesk.embedding.get_client", return_value=client):
            vectors = OpenAIEmbeddingProvider("sk-test", dimension=2).embed(["a", "b"])

        assert vectors == [[0.1, 0.1], [0.2, 0.2]]
        client.embeddings.create.assert_called_once_with(model="text-embedding-3-small", input=["a", "b"])

    def test_openai_provider_requires_api_key(self) -> None:
        with pytest.raises(ConfigurationError):
            OpenAIEmbeddingProvider(None).embed(["a"])

    def test_build_provider_selects_by_setting(self) -> None:
        assert isinstance(build_provider(Settings(embed_provider="openai")), OpenAIEmbeddingProvider)
        local = build_provider(Settings(embed_provider="local"))
        assert isinstance(local, SentenceTransformerProvider)
        assert local.model_name == "sentence-transformers/all-MiniLM-L6-v2"
        assert local.dimension == 384

    def test_local_model_dimension_comes_from_the_loaded_model(self) -> None:
        model = MagicMock()
        model.get_sentence_embedding_dimension.return_value = 768

        with patch("sentence_transformers.SentenceTransformer", return_value=model) as factory:
            provider = SentenceTransformerProvider("all-mpnet-base-v2", dimension=384)
            assert provider.model_dimension() == 768
            assert provider.model_dimension() == 768

        factory.assert_called_once()
        assert provider.dimension == 384

    def test_gateway_from_settings(self) -> None:
        gateway = EmbeddingGateway.from_settings(
            Settings(embed_max_attempts=5, embed_backoff_seconds=0.25), provider=_provider(1536)
        )
        assert gateway.max_attempts == 5
        assert gateway.backoff_seconds == 0.25
        assert gateway.dimension == 1536
