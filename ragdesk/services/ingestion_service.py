"""
Document ingestion service.
Handles upload validation, the asynchronous chunk → embed → persist run, and document management.

Lifecycle: PROCESSING → COMPLETED, or PROCESSING → FAILED. Both end states are terminal.
"""
from time import perf_counter
from typing import List, Optional

from structlog.contextvars import bound_contextvars

from ..base import DocumentRepository, TextExtractor, VectorStore
from ..chunking import ChunkingEngine, ChunkMetadata
from ..embedding import EmbeddingGateway
from ..errors import DataIntegrityError, ExtractionFailure, InvalidInput, NotFound, OwnershipViolation
from ..logging_config import logger
from ..models import Chunk, ChunkDetails, Document, DocumentStatus
from ..workers import BoundedWorkerPool

MAX_ERROR_MESSAGE_CHARS = 2000
DOCUMENT_TYPES = {"pdf": "PDF", "docx": "DOCX", "txt": "TXT"}


def _describe(exc: BaseException) -> str:
    message = f"{type(exc).__name__}: {exc}"
    return message[:MAX_ERROR_MESSAGE_CHARS]


class IngestionPipeline:
    """Turns uploaded files into embedded, searchable chunks."""

    def __init__(
        self,
        documents: DocumentRepository,
        store: VectorStore,
        chunker: ChunkingEngine,
        gateway: EmbeddingGateway,
        extractor: TextExtractor,
        pool: BoundedWorkerPool,
        max_upload_bytes: int = 50 * 1024 * 1024,
        allowed_media_types: Optional[List[str]] = None,
    ):
        self.documents = documents
        self.store = store
        self.chunker = chunker
        self.gateway = gateway
        self.extractor = extractor
        self.pool = pool
        self.max_upload_bytes = max_upload_bytes
        self.allowed_media_types = list(allowed_media_types or [])

    # ==================== Upload ====================

    def upload(self, owner_id: int, filename: str, data: bytes, media_type: Optional[str]) -> Document:
        """
        Validate and extract an uploaded file, persist it as PROCESSING and
        dispatch the heavy work to the worker pool.

        Returns:
            The persisted Document, still PROCESSING with total_chunks == 0

        Raises:
            InvalidInput: Empty file, file too large, or media type not allowed
            ExtractionFailure: The file could not be read or holds no text
        """
        self._validate_file(filename, data, media_type)

        extracted = self.extractor.extract(data, media_type or "", filename)
        if not extracted.text.strip():
            logger.warning("Empty document", filename=filename)
            raise ExtractionFailure("No text could be extracted from the file", filename=filename)

        document = self.documents.add(
            Document(
                owner_id=owner_id,
                filename=filename,
                size_bytes=len(data),
                media_type=media_type or "",
                status=DocumentStatus.PROCESSING,
                total_chunks=0,
            )
        )
        logger.info("Document saved with status PROCESSING", document_id=document.id, filename=filename)

        self.pool.submit(self.process, document.id, extracted.text, DOCUMENT_TYPES.get(extracted.kind, "TXT"))
        return document

    def _validate_file(self, filename: str, data: bytes, media_type: Optional[str]) -> None:
        if not data:
            raise InvalidInput("File is empty", field="file")

        if len(data) > self.max_upload_bytes:
            raise InvalidInput(
                f"File '{filename}' is too large. Max size is {self.max_upload_bytes // (1024 * 1024)} MB.",
                field="file",
                details={"size_bytes": len(data)},
            )

        if self.allowed_media_types and media_type not in self.allowed_media_types:
            raise InvalidInput(
                f"File type not allowed: {media_type or 'unknown'}",
                field="media_type",
                details={"allowed": self.allowed_media_types},
            )

        logger.debug("File validated", filename=filename, size_bytes=len(data), media_type=media_type)

    # ==================== Background processing ====================

    def process(self, document_id: int, text: str, document_type: str = "TXT") -> DocumentStatus:
        """
        Chunk, embed and persist one document, driving its status to a terminal state.

        Never raises: every failure ends with the document FAILED and is logged.
        """
        with bound_contextvars(document_id=document_id):
            t = perf_counter()
            try:
                status = self._run(document_id, text, document_type)
            except Exception as e:
                logger.error("Error processing document", exc_info=e)
                self._discard_chunks(document_id)
                self._fail(document_id, _describe(e))
                return DocumentStatus.FAILED
            logger.info("Processing finished", status=status.value, elapsed_ms=round((perf_counter() - t) * 1000, 2))
            return status

    def _run(self, document_id: int, text: str, document_type: str) -> DocumentStatus:
        logger.info("Starting document processing")

        # 1. Chunking
        pieces = self.chunker.chunk(text)
        logger.info("Document split into chunks", chunk_count=len(pieces))
        if not pieces:
            self._fail(document_id, "No chunks generated from document text")
            return DocumentStatus.FAILED

        # 2. Embeddings, one batch call
        vectors = self.gateway.embed_batch([p.content for p in pieces])
        if len(vectors) != len(pieces):
            raise DataIntegrityError(
                "Number of embeddings does not match number of chunks",
                document_id=document_id,
                details={"chunks": len(pieces), "embeddings": len(vectors)},
            )

        # 3. Persist chunks
        for piece, vector in zip(pieces, vectors):
            self.store.insert(self._to_chunk(document_id, piece, vector, document_type))

        # 4. Done; if this write fails the stored chunks are discarded too
        self.documents.update_status(document_id, DocumentStatus.COMPLETED, total_chunks=len(pieces))
        logger.info("Document processed successfully", total_chunks=len(pieces))
        return DocumentStatus.COMPLETED

    @staticmethod
    def _to_chunk(document_id: int, piece: ChunkMetadata, vector: List[float], document_type: str) -> Chunk:
        return Chunk(
            document_id=document_id,
            content=piece.content,
            embedding=vector,
            chunk_index=piece.chunk_index,
            metadata=ChunkDetails(
                start_char=piece.start_char,
                end_char=piece.end_char,
                document_type=document_type,
                has_code_block="```" in piece.content,
            ),
        )

    def _discard_chunks(self, document_id: int) -> None:
        try:
            removed = self.store.delete_by_document(document_id)
        except Exception as e:
            logger.error("Could not remove stored chunks", exc_info=e)
            return
        if removed:
            logger.warning("Removed partially stored chunks", removed=removed)

    def _fail(self, document_id: int, reason: str) -> None:
        try:
            self.documents.update_status(document_id, DocumentStatus.FAILED, error_message=reason)
        except Exception as e:
            # Last resort: nothing above us is waiting for this run
            logger.error("Could not mark document as FAILED", reason=reason, exc_info=e)
            return
        logger.error("Document marked as FAILED", reason=reason)

    # ==================== Management ====================

    def get_document(self, owner_id: int, document_id: int) -> Document:
        document = self.documents.get(document_id)
        if document is None:
            raise NotFound("Document", document_id)
        if document.owner_id != owner_id:
            raise OwnershipViolation("Document", document_id, owner_id)
        return document

    def list_documents(self, owner_id: int) -> List[Document]:
        documents = self.documents.list_by_owner(owner_id)
        logger.info("Listed documents", owner_id=owner_id, count=len(documents))
        return documents

    def delete_document(self, owner_id: int, document_id: int) -> None:
        """Delete a document and all its chunks."""
        document = self.get_document(owner_id, document_id)
        if document.status == DocumentStatus.PROCESSING:
            raise InvalidInput("Document is still processing", field="document_id")

        removed = self.store.delete_by_document(document_id)
        self.documents.delete(document_id)
        logger.info("Document deleted", document_id=document_id, chunks_removed=removed)
