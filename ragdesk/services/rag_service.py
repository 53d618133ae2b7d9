"""
RAG (Retrieval-Augmented Generation) service.
Handles the per-question flow: conversation, retrieval, prompt building, generation and citations.
"""
from time import perf_counter
from typing import Dict, List, Optional

from ..base import DocumentRepository
from ..embedding import EmbeddingGateway
from ..errors import ChatFailure, GenerationFailure
from ..logging_config import logger
from ..models import ChatAnswer, Citation, CitationMetadata, MessageRole, RetrievedChunk
from ..retrieval import VectorRetrievalEngine
from ..utils.helpers import truncate_content
from .conversation_service import ConversationService
from .model_service import ModelRegistry

SYSTEM_PROMPT = (
    "You are a helpful and knowledgeable assistant. Your job is to answer questions\n"
    "based exclusively on the documents provided as context.\n\n"
    "IMPORTANT RULES:\n"
    "- Always base your answers on the provided documents\n"
    "- If the information is not in the documents, say that you do not have that information\n"
    "- Cite the sources when possible (e.g. \"According to the document...\")\n"
    "- Be clear, concise and direct\n"
    "- Use professional but accessible language"
)

FALLBACK_MESSAGE = (
    "Sorry, I couldn't find relevant information in the available documents "
    "to answer your question."
)


def build_context_prompt(chunks: List[RetrievedChunk], question: str) -> str:
    """
    Build the grounded user prompt from retrieved chunks.

    Each chunk is listed with its rank and relevance score, followed by the question verbatim.
    """
    parts = ["RELEVANT DOCUMENTS:\n\n"]
    for i, hit in enumerate(chunks, start=1):
        parts.append(f"[DOCUMENT {i}] (Relevance: {hit.score:.2f})\n")
        parts.append(hit.chunk.content)
        parts.append("\n\n")

    parts.append("USER QUESTION:\n")
    parts.append(question)
    return "".join(parts)


def build_citations(chunks: List[RetrievedChunk], document_names: Dict[int, Optional[str]]) -> List[Citation]:
    citations = []
    for hit in chunks:
        chunk = hit.chunk
        citations.append(
            Citation(
                chunk_id=chunk.id,
                content=truncate_content(chunk.content),
                similarity_score=hit.score,
                metadata=CitationMetadata(
                    document_id=chunk.document_id,
                    document_name=document_names.get(chunk.document_id),
                    page=chunk.metadata.page,
                    section=chunk.metadata.section,
                ),
            )
        )
    return citations


class RagOrchestrator:
    def __init__(
        self,
        conversations: ConversationService,
        gateway: EmbeddingGateway,
        retriever: VectorRetrievalEngine,
        documents: DocumentRepository,
        models: ModelRegistry,
        top_k: int = 5,
        similarity_threshold: float = 0.7,
    ):
        self.conversations = conversations
        self.gateway = gateway
        self.retriever = retriever
        self.documents = documents
        self.models = models
        self.top_k = top_k
        self.similarity_threshold = similarity_threshold

    def answer(
        self,
        owner_id: int,
        user_text: str,
        conversation_id: Optional[int] = None,
        model: Optional[str] = None,
    ) -> ChatAnswer:
        """
        Answer one chat message from the caller's documents.

        Workflow:
        1. Resolve or create the conversation
        2. Store the user message
        3. Embed the question and retrieve relevant chunks
        4. No chunks: store and return the fallback message
        5. Build context, call the model, store the answer with citations

        Raises:
            ChatFailure: Wrapping whatever went wrong; the original error is `.cause`
        """
        try:
            return self._answer(owner_id, user_text, conversation_id, model)
        except Exception as e:
            logger.error("Error processing chat message", exc_info=e, owner_id=owner_id)
            raise ChatFailure("Error processing chat message", e) from e

    def _answer(self, owner_id: int, user_text: str, conversation_id: Optional[int], model: Optional[str]) -> ChatAnswer:
        start_time = perf_counter()

        # 1. Ensure conversation exists
        conversation = self.conversations.resolve_conversation(owner_id, conversation_id)
        logger.info("Processing chat", owner_id=owner_id, conversation_id=conversation.id)

        # 2. Store user message
        self.conversations.store_message(conversation.id, MessageRole.USER, user_text)

        # 3. Search for relevant document chunks
        query_vector = self.gateway.embed_one(user_text)
        chunks = self.retriever.retrieve(query_vector, self.top_k, self.similarity_threshold)

        # 4. Nothing relevant: fixed answer, model never called
        if not chunks:
            logger.warning("No relevant chunks found for query")
            message = self.conversations.store_message(conversation.id, MessageRole.ASSISTANT, FALLBACK_MESSAGE)
            return ChatAnswer(
                assistant_text=FALLBACK_MESSAGE,
                conversation_id=conversation.id,
                citations=[],
                grounded=False,
                timestamp=message.created_at,
            )

        logger.info("Found relevant chunks", count=len(chunks))

        # 5. Generate
        provider, model_name = self.models.resolve_model(model)
        generator = self.models.generator_for(model)
        prompt = build_context_prompt(chunks, user_text)
        logger.debug("Calling model", provider=provider, model=model_name, prompt_chars=len(prompt))

        reply = generator.complete(SYSTEM_PROMPT, prompt)
        if reply is None or not reply.strip():
            raise GenerationFailure("Empty response from model", {"provider": provider, "model": model_name})

        citations = build_citations(chunks, self._document_names(chunks))
        message = self.conversations.store_message(
            conversation.id,
            MessageRole.ASSISTANT,
            reply,
            citations=citations,
            model_provider=provider,
            model_name=model_name,
        )

        logger.info(
            "Chat answered",
            conversation_id=conversation.id,
            citations=len(citations),
            time_ms=round((perf_counter() - start_time) * 1000, 2),
        )
        return ChatAnswer(
            assistant_text=reply,
            conversation_id=conversation.id,
            citations=citations,
            grounded=True,
            timestamp=message.created_at,
        )

    def _document_names(self, chunks: List[RetrievedChunk]) -> Dict[int, Optional[str]]:
        names: Dict[int, Optional[str]] = {}
        for hit in chunks:
            doc_id = hit.chunk.document_id
            if doc_id not in names:
                document = self.documents.get(doc_id)
                names[doc_id] = document.filename if document else None
        return names
