# api/schemas.py
from pydantic import BaseModel, Field, field_validator
from typing import Optional

from core.domain import ContextSource, ErrorCode, ProcessingStatus

class LoadDocumentRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    text: str

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

class LoadDocumentResponse(BaseModel):
    status: ProcessingStatus
    document_id: str
    title: str
    message: Optional[str] = None

class RetrieveRequest(BaseModel):
    query: str
    top_k: Optional[int] = None

class RetrieveResponse(BaseModel):
    query: str
    context: str
    top_k: int

class AnswerContextRequest(BaseModel):
    last_question: str
    answer: str
    top_k: Optional[int] = None

class ExamContextResponse(BaseModel):
    title: str
    context: str
    source: ContextSource

class SummaryResponse(BaseModel):
    title: str
    summary: str
    max_chunks: int

class StatusResponse(BaseModel):
    document_loaded: Optional[str] = None
    document_id: Optional[str] = None
    chunks_available: int = 0
    chunks_embedded: int = 0
    ready_for_queries: bool = False

class DeleteResponse(BaseModel):
    status: str
    message: str

class LoadProgressResponse(BaseModel):
    document_id: str
    title: str
    status: ProcessingStatus
    current: int
    total: int
    progress_percent: int  # 0-100
    current_step: str
    chunks: int = 0
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
