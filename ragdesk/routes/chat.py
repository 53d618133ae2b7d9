"""
Chat-related API routes.
Handles question answering and conversation management.
"""
from fastapi import APIRouter, Depends, HTTPException
from starlette.concurrency import run_in_threadpool

from ..container import Container
from ..dependencies import current_user_id, get_container
from ..errors import RagDeskError
from ..logging_config import logger
from ..schemas import ChatBody, ChatReply, ConversationOut
from .errors import http_error

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/chat", response_model=ChatReply)
async def chat(
    payload: ChatBody,
    user_id: int = Depends(current_user_id),
    container: Container = Depends(get_container),
):
    """
    Answer a question from the caller's documents.

    A new conversation is started when `conversation_id` is omitted.
    """
    try:
        answer = await run_in_threadpool(
            container.rag.answer, user_id, payload.message, payload.conversation_id, payload.model
        )
    except RagDeskError as e:
        raise http_error(e)
    except Exception as e:
        logger.error("Error in chat", exc_info=e)
        raise HTTPException(status_code=500, detail="Error processing query")
    return ChatReply.from_answer(answer)


@router.get("/conversations")
def list_conversations(user_id: int = Depends(current_user_id), container: Container = Depends(get_container)):
    conversations = container.conversations.list_conversations(user_id)
    return [ConversationOut.from_conversation(c) for c in conversations]


@router.get("/conversations/{conversation_id}")
def get_conversation(
    conversation_id: int,
    user_id: int = Depends(current_user_id),
    container: Container = Depends(get_container),
):
    """
    Retrieve all messages from a conversation.
    Returns messages in chronological order.
    """
    try:
        return container.conversations.get_conversation(user_id, conversation_id)
    except RagDeskError as e:
        raise http_error(e)


@router.delete("/conversations/{conversation_id}")
def delete_conversation(
    conversation_id: int,
    user_id: int = Depends(current_user_id),
    container: Container = Depends(get_container),
):
    """Delete a conversation and all its messages."""
    try:
        container.conversations.delete_conversation(user_id, conversation_id)
    except RagDeskError as e:
        raise http_error(e)
    return {"ok": True}
