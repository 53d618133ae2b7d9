"""
Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .models import ChatAnswer, Conversation, Document


class ChatBody(BaseModel):
    """Request body for a chat message."""
    message: str = Field(..., min_length=1, description="The question to ask")
    conversation_id: Optional[int] = Field(None, description="Existing conversation ID or None for new conversation")
    model: Optional[str] = Field(None, description="Model identifier: 'openai:gpt-4o-mini' or 'ollama:qwen2.5:7b'")


class ChatReply(BaseModel):
    response: str
    conversation_id: int
    grounded: bool
    citations: List[Dict[str, Any]]
    timestamp: datetime

    @classmethod
    def from_answer(cls, answer: ChatAnswer) -> "ChatReply":
        return cls(
            response=answer.assistant_text,
            conversation_id=answer.conversation_id,
            grounded=answer.grounded,
            citations=[c.to_record() for c in answer.citations],
            timestamp=answer.timestamp,
        )


class DocumentOut(BaseModel):
    """Document as shown to its owner."""
    id: int
    filename: str
    size_bytes: int
    media_type: str
    status: str
    total_chunks: int
    error_message: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_document(cls, doc: Document) -> "DocumentOut":
        return cls(
            id=doc.id,
            filename=doc.filename,
            size_bytes=doc.size_bytes,
            media_type=doc.media_type,
            status=doc.status.value,
            total_chunks=doc.total_chunks,
            error_message=doc.error_message,
            created_at=doc.created_at,
        )


class ConversationOut(BaseModel):
    id: int
    title: str
    created_at: datetime

    @classmethod
    def from_conversation(cls, conv: Conversation) -> "ConversationOut":
        return cls(id=conv.id, title=conv.title, created_at=conv.created_at)


class ModelCatalog(BaseModel):
    """Models a chat request may name, and the one used when it names none."""
    models: Dict[str, List[str]]
    default: str = Field(..., description="provider:model used when a chat request omits 'model'")
