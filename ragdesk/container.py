"""
Builds every service from Settings for the configured storage backend.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from .base import DocumentRepository, VectorStore
from .chunking import ChunkingEngine
from .config import Settings
from .embedding import EmbeddingGateway, SentenceTransformerProvider
from .errors import VectorDimensionMismatch
from .logging_config import logger
from .retrieval import VectorRetrievalEngine
from .services.conversation_service import ConversationService
from .services.ingestion_service import IngestionPipeline
from .services.model_service import ModelRegistry
from .services.rag_service import RagOrchestrator
from .text_extraction import FileTextExtractor
from .workers import BoundedWorkerPool


@dataclass
class Container:
    settings: Settings
    documents: DocumentRepository
    store: VectorStore
    gateway: EmbeddingGateway
    pool: BoundedWorkerPool
    models: ModelRegistry
    conversations: ConversationService
    ingestion: IngestionPipeline
    rag: RagOrchestrator
    engine: Optional[Engine] = None

    def startup(self) -> None:
        """
        Run migrations (postgres) and preload the local embedding model.

        Raises:
            VectorDimensionMismatch: The loaded model does not produce EMBEDDING_DIMENSION vectors
        """
        provider = self.gateway.provider
        if isinstance(provider, SentenceTransformerProvider):
            provider.preload()
            actual = provider.model_dimension()
            if actual is not None and actual != self.settings.embedding_dimension:
                raise VectorDimensionMismatch(self.settings.embedding_dimension, actual)

        # The vector column size comes from the setting checked above
        if self.engine is not None:
            from .db.migrations import run_sql_migrations

            run_sql_migrations(self.engine, self.settings.embedding_dimension)

    def shutdown(self) -> None:
        self.pool.shutdown()
        if self.engine is not None:
            self.engine.dispose()


def build_container(
    settings: Settings,
    gateway: Optional[EmbeddingGateway] = None,
    models: Optional[ModelRegistry] = None,
    pool: Optional[BoundedWorkerPool] = None,
) -> Container:
    """
    Wire repositories, vector store and services together.

    `gateway`, `models` and `pool` can be passed in to replace the external
    collaborators, e.g. with fakes in tests.
    """
    gateway = gateway or EmbeddingGateway.from_settings(settings)

    engine = None
    if settings.storage_backend == "postgres":
        from .db import create_db_engine
        from .db.repositories import SqlConversationRepository, SqlDocumentRepository, SqlMessageRepository
        from .db.vector_store import PgVectorStore

        engine = create_db_engine(settings.database_url)
        documents = SqlDocumentRepository(engine)
        conversation_repo = SqlConversationRepository(engine)
        message_repo = SqlMessageRepository(engine)
        store = PgVectorStore(engine, settings.embedding_dimension)
    else:
        from .repositories import InMemoryConversationRepository, InMemoryDocumentRepository, InMemoryMessageRepository
        from .vector_store import InMemoryVectorStore

        documents = InMemoryDocumentRepository()
        conversation_repo = InMemoryConversationRepository()
        message_repo = InMemoryMessageRepository()
        store = InMemoryVectorStore(settings.embedding_dimension)

    pool = pool or BoundedWorkerPool.from_settings(settings)
    models = models or ModelRegistry.from_settings(settings)
    conversations = ConversationService(conversation_repo, message_repo)

    ingestion = IngestionPipeline(
        documents=documents,
        store=store,
        chunker=ChunkingEngine.from_settings(settings),
        gateway=gateway,
        extractor=FileTextExtractor(),
        pool=pool,
        max_upload_bytes=settings.max_upload_size_bytes,
        allowed_media_types=settings.allowed_media_types,
    )
    rag = RagOrchestrator(
        conversations=conversations,
        gateway=gateway,
        retriever=VectorRetrievalEngine(store),
        documents=documents,
        models=models,
        top_k=settings.retrieval_top_k,
        similarity_threshold=settings.similarity_threshold,
    )

    logger.info(
        "Services configured",
        storage_backend=settings.storage_backend,
        embed_provider=settings.embed_provider,
        embedding_dimension=settings.embedding_dimension,
    )
    return Container(
        settings=settings,
        documents=documents,
        store=store,
        gateway=gateway,
        pool=pool,
        models=models,
        conversations=conversations,
        ingestion=ingestion,
        rag=rag,
        engine=engine,
    )
