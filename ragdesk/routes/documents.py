"""
Document management API routes.
Handles document upload, listing, lookup and deletion.
"""
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from starlette.concurrency import run_in_threadpool

from ..container import Container
from ..dependencies import current_user_id, get_container
from ..errors import RagDeskError
from ..logging_config import logger
from ..schemas import DocumentOut
from .errors import http_error

router = APIRouter(prefix="/api", tags=["documents"])


# ==================== Document Upload ====================

@router.post("/documents/upload", status_code=202, response_model=DocumentOut)
async def upload_document(
    file: UploadFile = File(...),
    user_id: int = Depends(current_user_id),
    container: Container = Depends(get_container),
):
    """
    Upload a document for indexing.

    Supported formats: PDF, DOCX, TXT

    The file is validated and its text extracted right away; chunking and
    embedding continue in the background. The returned document stays
    PROCESSING until that finishes.
    """
    logger.info("Processing file", filename=file.filename, content_type=file.content_type)
    data = await file.read()

    try:
        document = await run_in_threadpool(
            container.ingestion.upload, user_id, file.filename or "upload", data, file.content_type
        )
    except RagDeskError as e:
        logger.warning("Upload rejected", filename=file.filename, error=str(e))
        raise http_error(e)
    except Exception as e:
        logger.error("Error uploading document", exc_info=e, filename=file.filename)
        raise HTTPException(status_code=500, detail="Internal server error")

    return DocumentOut.from_document(document)


# ==================== Document Listing ====================

@router.get("/documents", response_model=List[DocumentOut])
def list_documents(user_id: int = Depends(current_user_id), container: Container = Depends(get_container)):
    """Returns the caller's documents, newest first."""
    return [DocumentOut.from_document(d) for d in container.ingestion.list_documents(user_id)]


@router.get("/documents/{document_id}", response_model=DocumentOut)
def get_document(
    document_id: int,
    user_id: int = Depends(current_user_id),
    container: Container = Depends(get_container),
):
    try:
        return DocumentOut.from_document(container.ingestion.get_document(user_id, document_id))
    except RagDeskError as e:
        raise http_error(e)


# ==================== Document Deletion ====================

@router.delete("/documents/{document_id}")
def delete_document(
    document_id: int,
    user_id: int = Depends(current_user_id),
    container: Container = Depends(get_container),
):
    """Deletes a document and all its chunks."""
    try:
        container.ingestion.delete_document(user_id, document_id)
    except RagDeskError as e:
        logger.warning("Document not deleted", document_id=document_id, error=str(e))
        raise http_error(e)
    return {"ok": True, "deleted": document_id}
