"""
In-memory repositories keyed by integer id.
Records are copied on the way in and out so callers never share mutable state with the store.
"""
import itertools
import threading
from typing import Dict, List, Optional

from .base import ConversationRepository, DocumentRepository, MessageRepository
from .errors import NotFound
from .models import Conversation, Document, DocumentStatus, Message


class InMemoryDocumentRepository(DocumentRepository):
    def __init__(self):
        self._rows: Dict[int, Document] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add(self, document: Document) -> Document:
        with self._lock:
            stored = document.model_copy(update={"id": next(self._ids)})
            self._rows[stored.id] = stored
            return stored.model_copy()

    def get(self, document_id: int) -> Optional[Document]:
        with self._lock:
            row = self._rows.get(document_id)
            return row.model_copy() if row else None

    def list_by_owner(self, owner_id: int) -> List[Document]:
        with self._lock:
            rows = [d.model_copy() for d in self._rows.values() if d.owner_id == owner_id]
        return sorted(rows, key=lambda d: (d.created_at, d.id), reverse=True)

    def update_status(
        self,
        document_id: int,
        status: DocumentStatus,
        total_chunks: Optional[int] = None,
        error_message: Optional[str] = None,
    ) -> Document:
        with self._lock:
            row = self._rows.get(document_id)
            if row is None:
                raise NotFound("Document", document_id)
            update = {"status": status, "error_message": error_message}
            if total_chunks is not None:
                update["total_chunks"] = total_chunks
            row = row.model_copy(update=update)
            self._rows[document_id] = row
            return row.model_copy()

    def delete(self, document_id: int) -> bool:
        with self._lock:
            return self._rows.pop(document_id, None) is not None


class InMemoryConversationRepository(ConversationRepository):
    def __init__(self):
        self._rows: Dict[int, Conversation] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add(self, conversation: Conversation) -> Conversation:
        with self._lock:
            stored = conversation.model_copy(update={"id": next(self._ids)})
            self._rows[stored.id] = stored
            return stored.model_copy()

    def get(self, conversation_id: int) -> Optional[Conversation]:
        with self._lock:
            row = self._rows.get(conversation_id)
            return row.model_copy() if row else None

    def list_by_owner(self, owner_id: int) -> List[Conversation]:
        with self._lock:
            rows = [c.model_copy() for c in self._rows.values() if c.owner_id == owner_id]
        return sorted(rows, key=lambda c: (c.created_at, c.id), reverse=True)

    def delete(self, conversation_id: int) -> bool:
        with self._lock:
            return self._rows.pop(conversation_id, None) is not None


class InMemoryMessageRepository(MessageRepository):
    def __init__(self):
        self._rows: Dict[int, Message] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add(self, message: Message) -> Message:
        with self._lock:
            stored = message.model_copy(update={"id": next(self._ids)})
            self._rows[stored.id] = stored
            return stored.model_copy()

    def list_by_conversation(self, conversation_id: int) -> List[Message]:
        with self._lock:
            rows = [m.model_copy() for m in self._rows.values() if m.conversation_id == conversation_id]
        # ids are allocated in insertion order
        return sorted(rows, key=lambda m: m.id)

    def delete_by_conversation(self, conversation_id: int) -> int:
        with self._lock:
            doomed = [mid for mid, m in self._rows.items() if m.conversation_id == conversation_id]
            for mid in doomed:
                del self._rows[mid]
            return len(doomed)
