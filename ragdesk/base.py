"""Abstract interfaces for the collaborators the RAG core depends on."""

from abc import ABC, abstractmethod
from typing import List, NamedTuple, Optional

from .models import Chunk, Conversation, Document, DocumentStatus, KnnHit, Message


class ExtractedText(NamedTuple):
    text: str
    kind: str  # "pdf", "docx" or "txt"


class TextExtractor(ABC):
    """Turns an uploaded binary into plain text."""

    @abstractmethod
    def extract(self, data: bytes, media_type: str, filename: str) -> ExtractedText:
        """Raises ExtractionFailure on unparsable input."""


class EmbeddingProvider(ABC):
    """External model that maps texts to vectors, order-preserving."""

    @abstractmethod
    def embed(self, texts: List[str]) -> List[List[float]]:
        pass

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Dimensionality the provider is expected to return."""


class Generator(ABC):
    """Language model call: system instruction + user text in, free text out."""

    @abstractmethod
    def complete(self, system_text: str, user_text: str) -> str:
        pass


class VectorStore(ABC):
    """Chunk storage with cosine nearest-neighbour search."""

    @property
    @abstractmethod
    def dimension(self) -> int:
        pass

    @abstractmethod
    def insert(self, chunk: Chunk) -> Chunk:
        """Persist a chunk and return it with its id assigned."""

    @abstractmethod
    def knn_search(self, query_vector: List[float], top_k: int) -> List[KnnHit]:
        """Nearest chunks first, by cosine distance."""

    @abstractmethod
    def delete_by_document(self, document_id: int) -> int:
        """Delete every chunk of a document, returning how many were removed."""

    @abstractmethod
    def count_by_document(self, document_id: int) -> int:
        pass

    @abstractmethod
    def list_by_document(self, document_id: int) -> List[Chunk]:
        """Chunks of a document ordered by chunk_index."""


class DocumentRepository(ABC):
    @abstractmethod
    def add(self, document: Document) -> Document:
        pass

    @abstractmethod
    def get(self, document_id: int) -> Optional[Document]:
        pass

    @abstractmethod
    def list_by_owner(self, owner_id: int) -> List[Document]:
        """Newest first."""

    @abstractmethod
    def update_status(
        self,
        document_id: int,
        status: DocumentStatus,
        total_chunks: Optional[int] = None,
        error_message: Optional[str] = None,
    ) -> Document:
        """Raises NotFound when the document does not exist."""

    @abstractmethod
    def delete(self, document_id: int) -> bool:
        pass


class ConversationRepository(ABC):
    @abstractmethod
    def add(self, conversation: Conversation) -> Conversation:
        pass

    @abstractmethod
    def get(self, conversation_id: int) -> Optional[Conversation]:
        pass

    @abstractmethod
    def list_by_owner(self, owner_id: int) -> List[Conversation]:
        pass

    @abstractmethod
    def delete(self, conversation_id: int) -> bool:
        pass


class MessageRepository(ABC):
    @abstractmethod
    def add(self, message: Message) -> Message:
        pass

    @abstractmethod
    def list_by_conversation(self, conversation_id: int) -> List[Message]:
        """Chronological order."""

    @abstractmethod
    def delete_by_conversation(self, conversation_id: int) -> int:
        pass
