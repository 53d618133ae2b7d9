"""Tests for environment-driven settings."""

import pytest

from ragdesk.config import DEFAULT_ALLOWED_MEDIA_TYPES, Settings
from ragdesk.errors import ConfigurationError


@pytest.fixture
def environ(monkeypatch):
    """Clear every recognized variable so host settings never leak in."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name.upper(), raising=False)

    def set_env(values: dict) -> None:
        for key, value in values.items():
            monkeypatch.setenv(key, value)

    return set_env


class TestSettingsFromEnv:
    def test_defaults(self, environ) -> None:
        settings = Settings.from_env(env_file=None)

        assert settings.chunk_size_tokens == 700
        assert settings.chunk_overlap_tokens == 150
        assert settings.chunk_min_tokens == 400
        assert settings.tokens_per_char == 4
        assert settings.retrieval_top_k == 5
        assert settings.similarity_threshold == 0.7
        assert settings.max_upload_size_mb == 50
        assert settings.max_upload_size_bytes == 50 * 1024 * 1024
        assert settings.allowed_media_types == DEFAULT_ALLOWED_MEDIA_TYPES
        assert settings.embed_model == "text-embedding-3-small"
        assert settings.embedding_dimension == 1536
        assert settings.embed_max_attempts == 3
        assert settings.storage_backend == "memory"
        assert settings.ingest_max_workers == 10
        assert settings.ingest_queue_capacity == 100
        assert settings.ingest_shutdown_grace_seconds == 30.0

    def test_values_are_parsed(self, environ) -> None:
        environ(
            {
                "CHUNK_SIZE_TOKENS": "500",
                "SIMILARITY_THRESHOLD": "0.55",
                "OLLAMA_MODELS": "qwen2.5:7b, llama3:8b",
                "ALLOWED_MEDIA_TYPES": "text/plain",
                "JSON_LOGS": "true",
                "EMBED_PROVIDER": "local",
            }
        )
        settings = Settings.from_env(env_file=None)

        assert settings.chunk_size_tokens == 500
        assert settings.similarity_threshold == 0.55
        assert settings.ollama_models == ["qwen2.5:7b", "llama3:8b"]
        assert settings.allowed_media_types == ["text/plain"]
        assert settings.json_logs is True
        assert settings.embed_provider == "local"

    def test_local_provider_gets_its_own_model_defaults(self, environ) -> None:
        """The local provider never inherits the OpenAI model name or vector size."""
        environ({"EMBED_PROVIDER": "local"})
        settings = Settings.from_env(env_file=None)

        assert settings.embed_model == "sentence-transformers/all-MiniLM-L6-v2"
        assert settings.embedding_dimension == 384

    def test_explicit_model_wins_over_provider_default(self, environ) -> None:
        environ({"EMBED_PROVIDER": "local", "EMBED_MODEL": "all-mpnet-base-v2", "EMBEDDING_DIMENSION": "768"})
        settings = Settings.from_env(env_file=None)

        assert settings.embed_model == "all-mpnet-base-v2"
        assert settings.embedding_dimension == 768

    def test_empty_values_fall_back_to_defaults(self, environ) -> None:
        environ({"RETRIEVAL_TOP_K": ""})
        assert Settings.from_env(env_file=None).retrieval_top_k == 5

    def test_env_file_is_read(self, environ, tmp_path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("RETRIEVAL_TOP_K=9\nUNRELATED_KEY=ignored\n", encoding="utf-8")

        assert Settings.from_env(env_file=str(env_file)).retrieval_top_k == 9

    def test_process_env_overrides_env_file(self, environ, tmp_path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("RETRIEVAL_TOP_K=9\n", encoding="utf-8")
        environ({"RETRIEVAL_TOP_K": "3"})

        assert Settings.from_env(env_file=str(env_file)).retrieval_top_k == 3

    @pytest.mark.parametrize(
        "values",
        [
            {"CHUNK_SIZE_TOKENS": "abc"},
            {"CHUNK_OVERLAP_TOKENS": "700"},
            {"EMBED_PROVIDER": "cohere"},
            {"STORAGE_BACKEND": "postgres"},
            {"RETRIEVAL_TOP_K": "0"},
        ],
    )
    def test_invalid_values_fail_fast(self, environ, values) -> None:
        environ(values)
        with pytest.raises(ConfigurationError):
            Settings.from_env(env_file=None)

    def test_postgres_with_url(self, environ) -> None:
        environ({"STORAGE_BACKEND": "postgres", "DATABASE_URL": "postgresql://u:p@db/rag"})
        settings = Settings.from_env(env_file=None)
        assert settings.database_url == "postgresql://u:p@db/rag"
