# api/endpoints.py
import logging
from pathlib import Path
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile

from config import settings
from api.schemas import (
    AnswerContextRequest, DeleteResponse, ExamContextResponse, LoadDocumentRequest,
    LoadDocumentResponse, LoadProgressResponse, RetrieveRequest, RetrieveResponse,
    StatusResponse, SummaryResponse
)
from core.domain import DocumentProcessingError, ErrorCode, LoadProgress, ProcessingStatus
from infrastructure.progress_store import progress_store
from services.async_processor import async_processor
from services.document_session import DocumentSession
from services.exam_context import ExamContextBuilder
from services.factory import build_context_builder
from utils.common import check_upload_size, clean_text, validate_uploaded_file

logger = logging.getLogger(settings.LOGGER_NAME)

router = APIRouter()

# Dependency injection
def get_document_session(request: Request) -> DocumentSession:
    return request.app.state.document_session

def get_context_builder(
    session: DocumentSession = Depends(get_document_session)
) -> ExamContextBuilder:
    return build_context_builder(session)


# Utility functions
def _error_status(code: ErrorCode) -> int:
    return {
        ErrorCode.NO_TEXT_FOUND: 422,
        ErrorCode.FILE_TOO_LARGE: 413,
        ErrorCode.INVALID_FORMAT: 400,
    }.get(code, 500)

def _http_error(error: DocumentProcessingError) -> HTTPException:
    return HTTPException(
        status_code=_error_status(error.error_code),
        detail={"error": error.message, "error_code": error.error_code.value}
    )

def _resolve_top_k(top_k: Optional[int]) -> int:
    if top_k is None:
        return settings.DEFAULT_TOP_K
    if not 1 <= top_k <= settings.MAX_TOP_K:
        raise HTTPException(
            status_code=422,
            detail=f"top_k must be between 1 and {settings.MAX_TOP_K}"
        )
    return top_k

def _require_document(session: DocumentSession) -> None:
    if not session.is_loaded():
        raise HTTPException(status_code=400, detail="Please load a document first")


async def _run_load(session: DocumentSession, document_id: str, text: str, title: str) -> None:
    """Background load: feeds progress into the progress store."""
    def on_progress(progress: LoadProgress) -> None:
        progress_store.update(document_id, progress.current, progress.total, progress.status)

    progress_store.set_stage(document_id, ProcessingStatus.CHUNKING, "Chunking document")
    try:
        chunks = await session.load(text, title, on_progress=on_progress, document_id=document_id)
    except DocumentProcessingError as e:
        logger.error(f"Document load failed: {e}")
        progress_store.fail(document_id, e.message, e.error_code)
        return
    except Exception as e:
        logger.exception(f"Unexpected failure loading '{title}': {e}")
        progress_store.fail(document_id, str(e), ErrorCode.PROCESSING_FAILED)
        return

    if session.document_id != document_id:
        progress_store.supersede(document_id, chunks)
    else:
        progress_store.complete(document_id, chunks)
        logger.info(f"Indexed {chunks} chunks for '{title}'")


def _start_load(session: DocumentSession, text: str, title: str) -> LoadDocumentResponse:
    # Reject bad input before the resident document is touched
    try:
        session.validate_text(text)
    except DocumentProcessingError as e:
        raise _http_error(e)

    document_id = str(uuid4())
    progress_store.start(document_id, title)
    async_processor.submit_task(_run_load(session, document_id, text, title))

    return LoadDocumentResponse(
        status=ProcessingStatus.PENDING,
        document_id=document_id,
        title=title,
        message="Document accepted, indexing in background"
    )


# API Endpoints
@router.post("/documents", response_model=LoadDocumentResponse, status_code=202)
async def load_document(
    request: LoadDocumentRequest,
    session: DocumentSession = Depends(get_document_session)
) -> LoadDocumentResponse:
    return _start_load(session, request.text, request.title)

@router.post("/documents/upload", response_model=LoadDocumentResponse, status_code=202)
async def upload_document(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    session: DocumentSession = Depends(get_document_session)
) -> LoadDocumentResponse:
    try:
        validate_uploaded_file(file)
        content = await file.read()
        # Declared size may be missing; check what actually arrived
        check_upload_size(len(content))
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError:
            raise DocumentProcessingError("File is not valid UTF-8 text", ErrorCode.INVALID_FORMAT)
    except DocumentProcessingError as e:
        raise _http_error(e)

    doc_title = (title or "").strip() or Path(file.filename).stem or file.filename
    return _start_load(session, clean_text(text), doc_title)

@router.get("/documents/{document_id}/progress", response_model=LoadProgressResponse)
async def get_load_progress(document_id: str) -> LoadProgressResponse:
    progress = progress_store.get(document_id)
    if progress is None:
        raise HTTPException(status_code=404, detail="Unknown document")
    return LoadProgressResponse(document_id=document_id, **progress)

@router.delete("/documents", response_model=DeleteResponse)
async def unload_document(
    session: DocumentSession = Depends(get_document_session)
) -> DeleteResponse:
    session.unload()
    return DeleteResponse(status="success", message="Document unloaded")

@router.get("/status", response_model=StatusResponse)
async def get_status(
    session: DocumentSession = Depends(get_document_session)
) -> StatusResponse:
    return StatusResponse(**session.status())

@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    max_chunks: int = Query(settings.SUMMARY_MAX_CHUNKS, ge=1, le=50),
    session: DocumentSession = Depends(get_document_session)
) -> SummaryResponse:
    _require_document(session)
    return SummaryResponse(
        title=session.get_title(),
        summary=session.get_summary(max_chunks),
        max_chunks=max_chunks
    )

@router.post("/retrieve", response_model=RetrieveResponse)
async def retrieve_context(
    request: RetrieveRequest,
    session: DocumentSession = Depends(get_document_session)
) -> RetrieveResponse:
    if not 1 <= len(request.query.strip()) <= settings.MAX_QUERY_CHARS:
        raise HTTPException(
            status_code=422,
            detail=f"Query must be between 1 and {settings.MAX_QUERY_CHARS} characters"
        )
    top_k = _resolve_top_k(request.top_k)
    context = await session.retrieve_context(request.query, top_k)
    return RetrieveResponse(query=request.query, context=context, top_k=top_k)

@router.get("/context/opening", response_model=ExamContextResponse)
async def opening_context(
    session: DocumentSession = Depends(get_document_session),
    builder: ExamContextBuilder = Depends(get_context_builder)
) -> ExamContextResponse:
    _require_document(session)
    result = builder.opening_context()
    return ExamContextResponse(title=result.title, context=result.context, source=result.source)

@router.post("/context/answer", response_model=ExamContextResponse)
async def answer_context(
    request: AnswerContextRequest,
    session: DocumentSession = Depends(get_document_session),
    builder: ExamContextBuilder = Depends(get_context_builder)
) -> ExamContextResponse:
    _require_document(session)
    if len(request.last_question) + len(request.answer) > settings.MAX_QUERY_CHARS:
        raise HTTPException(
            status_code=422,
            detail=f"Question and answer together must not exceed {settings.MAX_QUERY_CHARS} characters"
        )
    result = await builder.answer_context(
        request.last_question, request.answer, _resolve_top_k(request.top_k)
    )
    return ExamContextResponse(title=result.title, context=result.context, source=result.source)

@router.get("/health")
async def health_check(session: DocumentSession = Depends(get_document_session)):
    return {
        "status": "ok",
        "version": settings.APP_VERSION,
        "embedding_provider": settings.EMBEDDING_PROVIDER,
        "document_loaded": session.is_loaded(),
        "background_tasks": async_processor.pending,
    }
