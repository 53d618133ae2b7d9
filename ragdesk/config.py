"""
Application settings.
Values come from environment variables; a local .env file is read in development.
"""
from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .errors import ConfigurationError

DEFAULT_ALLOWED_MEDIA_TYPES = [
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
]

# provider -> (model, vector size) used when EMBED_MODEL / EMBEDDING_DIMENSION are unset
EMBEDDING_DEFAULTS = {
    "openai": ("text-embedding-3-small", 1536),
    "local": ("sentence-transformers/all-MiniLM-L6-v2", 384),
}


class Settings(BaseSettings):
    """Every option the ingestion and retrieval core recognizes."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    # Chunking
    chunk_size_tokens: int = Field(700, gt=0)
    chunk_overlap_tokens: int = Field(150, ge=0)
    chunk_min_tokens: int = Field(400, ge=0)
    tokens_per_char: int = Field(4, gt=0)

    # Retrieval
    retrieval_top_k: int = Field(5, ge=1, le=50)
    similarity_threshold: float = Field(0.7, ge=-1.0, le=1.0)

    # Upload
    max_upload_size_mb: int = Field(50, gt=0)
    allowed_media_types: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_MEDIA_TYPES),
        description="Comma-separated in the environment",
    )

    # Embeddings
    embed_provider: str = Field("openai", pattern="^(openai|local)$")
    embed_model: Optional[str] = None
    embedding_dimension: Optional[int] = Field(None, gt=0)
    embed_max_attempts: int = Field(3, ge=1)
    embed_backoff_seconds: float = Field(1.0, ge=0.0)

    # Generation
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    ollama_url: str = "http://ollama:11434"
    ollama_models: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["qwen2.5:7b"])

    # Storage
    storage_backend: str = Field("memory", pattern="^(memory|postgres)$")
    database_url: Optional[str] = None

    # Ingestion worker pool
    ingest_max_workers: int = Field(10, ge=1)
    ingest_queue_capacity: int = Field(100, ge=0)
    ingest_shutdown_grace_seconds: float = Field(30.0, ge=0.0)

    # Logging
    log_level: str = Field("INFO", description="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    json_logs: bool = False

    @field_validator("allowed_media_types", "ollama_models", mode="before")
    @classmethod
    def _split_commas(cls, value):
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @model_validator(mode="after")
    def _check_consistency(self) -> "Settings":
        if self.chunk_overlap_tokens >= self.chunk_size_tokens:
            raise ValueError("CHUNK_OVERLAP_TOKENS must be smaller than CHUNK_SIZE_TOKENS")
        if self.storage_backend == "postgres" and not self.database_url:
            raise ValueError("DATABASE_URL is required when STORAGE_BACKEND=postgres")

        model, dimension = EMBEDDING_DEFAULTS[self.embed_provider]
        if self.embed_model is None:
            self.embed_model = model
        if self.embedding_dimension is None:
            self.embedding_dimension = dimension
        return self

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @classmethod
    def from_env(cls, env_file: Optional[str] = ".env") -> "Settings":
        """
        Build settings from environment variables and an optional .env file.

        Raises:
            ConfigurationError: If any value is invalid
        """
        try:
            return cls(_env_file=env_file)
        except ValidationError as e:
            raise ConfigurationError("Invalid configuration", {"errors": e.errors(include_url=False)}) from e


@lru_cache
def get_settings() -> Settings:
    """Settings singleton, read once per process."""
    return Settings.from_env()
