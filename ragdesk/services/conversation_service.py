"""
Conversation management service.
Handles CRUD operations for conversations and messages, scoped to their owner.
"""
from typing import Any, Dict, List, Optional

from ..base import ConversationRepository, MessageRepository
from ..errors import NotFound, OwnershipViolation
from ..logging_config import logger
from ..models import Citation, Conversation, Message, MessageRole


class ConversationService:
    def __init__(self, conversations: ConversationRepository, messages: MessageRepository):
        self.conversations = conversations
        self.messages = messages

    def create_conversation(self, owner_id: int) -> Conversation:
        """
        Create a new conversation.

        Returns:
            The persisted Conversation with its id assigned
        """
        conversation = self.conversations.add(Conversation(owner_id=owner_id))
        logger.info("Created new conversation", conversation_id=conversation.id, owner_id=owner_id)
        return conversation

    def resolve_conversation(self, owner_id: int, conversation_id: Optional[int]) -> Conversation:
        """Load an existing conversation owned by the caller, or start a new one when no id is given."""
        if conversation_id is None:
            return self.create_conversation(owner_id)

        conversation = self.conversations.get(conversation_id)
        if conversation is None:
            raise NotFound("Conversation", conversation_id)
        if conversation.owner_id != owner_id:
            raise OwnershipViolation("Conversation", conversation_id, owner_id)
        return conversation

    def store_message(
        self,
        conversation_id: int,
        role: MessageRole,
        content: str,
        citations: Optional[List[Citation]] = None,
        model_provider: Optional[str] = None,
        model_name: Optional[str] = None,
    ) -> Message:
        """
        Store a message in the conversation.

        Args:
            conversation_id: The conversation ID
            role: USER or ASSISTANT
            content: The message content, stored verbatim
            citations: Snapshots of the chunks an assistant answer used
            model_provider: Optional provider name (e.g., "openai", "ollama")
            model_name: Optional model name (e.g., "gpt-4o-mini")
        """
        message = self.messages.add(
            Message(
                conversation_id=conversation_id,
                role=role,
                content=content,
                citations=list(citations or []),
                model_provider=model_provider,
                model_name=model_name,
            )
        )
        logger.debug("Stored message", conversation_id=conversation_id, role=role.value)
        return message

    def get_conversation(self, owner_id: int, conversation_id: int) -> Dict[str, Any]:
        """
        Retrieve a conversation with all its messages in chronological order.

        Raises:
            NotFound: If the conversation does not exist
            OwnershipViolation: If it belongs to another user
        """
        conversation = self.resolve_conversation(owner_id, conversation_id)
        messages = self.messages.list_by_conversation(conversation_id)

        serializable_messages = []
        for msg in messages:
            serializable_messages.append(
                {
                    "id": msg.id,
                    "role": msg.role.value,
                    "content": msg.content,
                    "created_at": msg.created_at.isoformat(),
                    "model_provider": msg.model_provider,
                    "model_name": msg.model_name,
                    "citations": [c.to_record() for c in msg.citations] if msg.role == MessageRole.ASSISTANT else None,
                }
            )

        return {
            "conversation_id": conversation.id,
            "title": conversation.title,
            "created_at": conversation.created_at.isoformat(),
            "messages": serializable_messages,
        }

    def list_conversations(self, owner_id: int) -> List[Conversation]:
        return self.conversations.list_by_owner(owner_id)

    def delete_conversation(self, owner_id: int, conversation_id: int) -> None:
        """Delete a conversation and all its messages."""
        self.resolve_conversation(owner_id, conversation_id)
        removed = self.messages.delete_by_conversation(conversation_id)
        self.conversations.delete(conversation_id)
        logger.info("Deleted conversation", conversation_id=conversation_id, messages_removed=removed)
