# core/domain.py
"""Shared enumerations, domain models and errors used across the application."""
from enum import Enum

from dataclasses import dataclass, field
from typing import List, Dict, Any

# ============= Enums =============

class ErrorCode(str, Enum):
    """Error codes for user-facing error messages."""
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_FORMAT = "INVALID_FORMAT"
    NO_TEXT_FOUND = "NO_TEXT_FOUND"
    PROCESSING_FAILED = "PROCESSING_FAILED"


class ProcessingStatus(str, Enum):
    """Document loading pipeline stages."""
    PENDING = "pending"
    CHUNKING = "chunking"
    GENERATING_EMBEDDINGS = "generating_embeddings"
    COMPLETED = "completed"
    SUPERSEDED = "superseded"
    FAILED = "failed"


class ContextSource(str, Enum):
    """Where an examiner context string came from."""
    SUMMARY = "summary"
    RETRIEVAL = "retrieval"
    DOCUMENT_HEAD = "document_head"


# ============= Errors =============

class DocumentProcessingError(Exception):
    """Raised when a document cannot be loaded, with a specific error code"""

    def __init__(self, message: str, error_code: ErrorCode):
        self.message = message
        self.error_code = error_code
        super().__init__(message)

    def __str__(self):
        # Format used for logging and progress store
        return f"[{self.error_code.value}] {self.message}"


# ============= Domain Models =============

@dataclass(frozen=True)
class TextSegment:
    """A chunker output: trimmed text and its position in the document"""
    text: str
    index: int


@dataclass
class DocumentChunk:
    """
    A stored chunk.

    Starts text-only (empty embedding) and may later receive exactly one
    embedding; readers must handle both states.
    """
    index: int
    text: str
    embedding: List[float] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_embedding(self) -> bool:
        return len(self.embedding) > 0


@dataclass
class ChunkSearchResult:
    """Domain model for ranked chunks"""
    chunk: DocumentChunk
    score: float


@dataclass
class LoadProgress:
    """Progress report emitted once per chunk during a document load"""
    current: int
    total: int
    status: str


@dataclass
class ExamContext:
    """Context handed to the examiner language model"""
    title: str
    context: str
    source: ContextSource
