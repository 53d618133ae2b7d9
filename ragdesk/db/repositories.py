"""
Raw-SQL repositories for the postgres backend.
"""
import json
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from ..base import ConversationRepository, DocumentRepository, MessageRepository
from ..errors import NotFound
from ..logging_config import logger
from ..models import Citation, Conversation, Document, Message

_DOCUMENT_COLUMNS = "id, owner_id, filename, media_type, size_bytes, status, total_chunks, error_message, created_at"
_MESSAGE_COLUMNS = "id, conversation_id, role, content, citations, model_provider, model_name, created_at"


def _to_document(row) -> Document:
    return Document(
        id=row["id"],
        owner_id=row["owner_id"],
        filename=row["filename"],
        size_bytes=row["size_bytes"] or 0,
        media_type=row["media_type"] or "",
        status=row["status"],
        total_chunks=row["total_chunks"],
        error_message=row["error_message"],
        created_at=row["created_at"],
    )


def _parse_citations(raw) -> List[Citation]:
    if not raw:
        return []
    # psycopg2 decodes JSONB already; plain text columns come back as str
    records = json.loads(raw) if isinstance(raw, str) else raw
    return [Citation.model_validate(r) for r in records]


def _to_message(row) -> Message:
    return Message(
        id=row["id"],
        conversation_id=row["conversation_id"],
        role=row["role"],
        content=row["content"],
        citations=_parse_citations(row["citations"]),
        model_provider=row["model_provider"],
        model_name=row["model_name"],
        created_at=row["created_at"],
    )


class SqlDocumentRepository(DocumentRepository):
    def __init__(self, engine: Engine):
        self.engine = engine

    def add(self, document: Document) -> Document:
        with self.engine.begin() as conn:
            row = conn.execute(
                text(f"""
                    INSERT INTO documents (owner_id, filename, media_type, size_bytes, status, total_chunks)
                    VALUES (:owner, :fn, :mt, :sz, :status, :total)
                    RETURNING {_DOCUMENT_COLUMNS}
                """),
                {
                    "owner": document.owner_id,
                    "fn": document.filename,
                    "mt": document.media_type,
                    "sz": document.size_bytes,
                    "status": document.status.value,
                    "total": document.total_chunks,
                },
            ).mappings().one()
        return _to_document(row)

    def get(self, document_id: int) -> Optional[Document]:
        with self.engine.begin() as conn:
            row = conn.execute(
                text(f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = :id"),
                {"id": document_id},
            ).mappings().first()
        return _to_document(row) if row else None

    def list_by_owner(self, owner_id: int) -> List[Document]:
        with self.engine.begin() as conn:
            rows = conn.execute(
                text(f"""
                    SELECT {_DOCUMENT_COLUMNS}
                    FROM documents
                    WHERE owner_id = :owner
                    ORDER BY created_at DESC, id DESC
                """),
                {"owner": owner_id},
            ).mappings().all()
        return [_to_document(r) for r in rows]

    def update_status(self, document_id, status, total_chunks=None, error_message=None) -> Document:
        with self.engine.begin() as conn:
            row = conn.execute(
                text(f"""
                    UPDATE documents
                    SET status = :status,
                        total_chunks = COALESCE(:total, total_chunks),
                        error_message = :err
                    WHERE id = :id
                    RETURNING {_DOCUMENT_COLUMNS}
                """),
                {"id": document_id, "status": status.value, "total": total_chunks, "err": error_message},
            ).mappings().first()
        if row is None:
            raise NotFound("Document", document_id)
        logger.debug("Document status updated", document_id=document_id, status=status.value)
        return _to_document(row)

    def delete(self, document_id: int) -> bool:
        # chunks cascade
        with self.engine.begin() as conn:
            result = conn.execute(text("DELETE FROM documents WHERE id = :id"), {"id": document_id})
        return result.rowcount > 0


class SqlConversationRepository(ConversationRepository):
    def __init__(self, engine: Engine):
        self.engine = engine

    def add(self, conversation: Conversation) -> Conversation:
        with self.engine.begin() as conn:
            row = conn.execute(
                text("""
                    INSERT INTO conversations (owner_id, title)
                    VALUES (:owner, :title)
                    RETURNING id, owner_id, title, created_at
                """),
                {"owner": conversation.owner_id, "title": conversation.title},
            ).mappings().one()
        return Conversation(**row)

    def get(self, conversation_id: int) -> Optional[Conversation]:
        with self.engine.begin() as conn:
            row = conn.execute(
                text("SELECT id, owner_id, title, created_at FROM conversations WHERE id = :cid"),
                {"cid": conversation_id},
            ).mappings().first()
        return Conversation(**row) if row else None

    def list_by_owner(self, owner_id: int) -> List[Conversation]:
        with self.engine.begin() as conn:
            rows = conn.execute(
                text("""
                    SELECT id, owner_id, title, created_at
                    FROM conversations
                    WHERE owner_id = :owner
                    ORDER BY created_at DESC, id DESC
                """),
                {"owner": owner_id},
            ).mappings().all()
        return [Conversation(**r) for r in rows]

    def delete(self, conversation_id: int) -> bool:
        # messages cascade
        with self.engine.begin() as conn:
            result = conn.execute(text("DELETE FROM conversations WHERE id = :cid"), {"cid": conversation_id})
        return result.rowcount > 0


class SqlMessageRepository(MessageRepository):
    def __init__(self, engine: Engine):
        self.engine = engine

    def add(self, message: Message) -> Message:
        citations_json = json.dumps([c.to_record() for c in message.citations])
        with self.engine.begin() as conn:
            row = conn.execute(
                text(f"""
                    INSERT INTO messages
                    (conversation_id, role, content, citations, model_provider, model_name)
                    VALUES (:cid, :role, :content, CAST(:citations AS JSONB), :provider, :model)
                    RETURNING {_MESSAGE_COLUMNS}
                """),
                {
                    "cid": message.conversation_id,
                    "role": message.role.value,
                    "content": message.content,
                    "citations": citations_json,
                    "provider": message.model_provider,
                    "model": message.model_name,
                },
            ).mappings().one()
        return _to_message(row)

    def list_by_conversation(self, conversation_id: int) -> List[Message]:
        with self.engine.begin() as conn:
            rows = conn.execute(
                text(f"""
                    SELECT {_MESSAGE_COLUMNS}
                    FROM messages
                    WHERE conversation_id = :cid
                    ORDER BY created_at ASC, id ASC
                """),
                {"cid": conversation_id},
            ).mappings().all()
        return [_to_message(r) for r in rows]

    def delete_by_conversation(self, conversation_id: int) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(text("DELETE FROM messages WHERE conversation_id = :cid"), {"cid": conversation_id})
        return result.rowcount
