"""
Plain data records for documents, chunks, conversations and citations.
Relations are explicit integer foreign keys; nothing is lazily loaded.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStatus(str, Enum):
    """Ingestion lifecycle. PROCESSING is initial; the other two are terminal."""

    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class MessageRole(str, Enum):
    USER = "USER"
    ASSISTANT = "ASSISTANT"


class Document(BaseModel):
    id: Optional[int] = None
    owner_id: int
    filename: str
    size_bytes: int
    media_type: str
    status: DocumentStatus = DocumentStatus.PROCESSING
    total_chunks: int = 0
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class ChunkDetails(BaseModel):
    """Flat metadata stored with every chunk (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    page: Optional[int] = None
    section: Optional[str] = None
    start_char: int = Field(alias="startChar")
    end_char: int = Field(alias="endChar")
    document_type: Optional[str] = Field(default=None, alias="documentType")
    language: Optional[str] = None
    has_code_block: Optional[bool] = Field(default=None, alias="hasCodeBlock")


class Chunk(BaseModel):
    """A persisted slice of a document with its embedding. Write-once."""

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    document_id: int
    content: str
    embedding: List[float]
    chunk_index: int
    metadata: ChunkDetails
    created_at: datetime = Field(default_factory=utcnow)


class RetrievedChunk(NamedTuple):
    chunk: Chunk
    score: float


class KnnHit(NamedTuple):
    """Raw nearest-neighbour row as returned by a vector store."""

    chunk: Chunk
    distance: float


class CitationMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    document_id: int = Field(alias="documentId")
    document_name: Optional[str] = Field(default=None, alias="documentName")
    page: Optional[int] = None
    section: Optional[str] = None


class Citation(BaseModel):
    """Point-in-time snapshot of a chunk. Never a live reference."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    chunk_id: int = Field(alias="chunkId")
    content: str
    similarity_score: float = Field(alias="similarityScore")
    metadata: CitationMetadata

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


class Conversation(BaseModel):
    id: Optional[int] = None
    owner_id: int
    title: str = "New Conversation"
    created_at: datetime = Field(default_factory=utcnow)


class Message(BaseModel):
    id: Optional[int] = None
    conversation_id: int
    role: MessageRole
    content: str
    citations: List[Citation] = Field(default_factory=list)
    model_provider: Optional[str] = None
    model_name: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class ChatAnswer(BaseModel):
    """What RagOrchestrator.answer hands back to its caller."""

    assistant_text: str
    conversation_id: int
    citations: List[Citation] = Field(default_factory=list)
    grounded: bool = False
    timestamp: datetime
