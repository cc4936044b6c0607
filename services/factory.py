# services/factory.py
from typing import Optional

from config import settings
from core.interfaces import IChunker, IEmbeddingService, IVectorStore
from infrastructure.embedding_services import GeminiEmbeddingService
from infrastructure.text_chunker import ParagraphChunker
from infrastructure.vector_stores import InMemoryVectorStore
from services.document_session import DocumentSession
from services.exam_context import ExamContextBuilder
from services.retrieval_service import RetrievalEngine

# Provider functions for each component
def get_vector_store() -> IVectorStore:
    """Create an empty in-memory vector store."""
    return InMemoryVectorStore()

def get_chunker() -> IChunker:
    """Create chunker based on configuration."""
    return ParagraphChunker(
        chunk_size=settings.CHUNK_SIZE,
        chunk_overlap=settings.CHUNK_OVERLAP,
        min_chunks=settings.CHUNK_MIN_COUNT,
        sentence_fallback_chars=settings.SENTENCE_FALLBACK_MIN_CHARS,
    )

def get_embedding_service() -> IEmbeddingService:
    """Create embedding service based on configuration."""
    if settings.EMBEDDING_PROVIDER == "gemini":
        return GeminiEmbeddingService(
            api_key=settings.GEMINI_API_KEY,
            model=settings.EMBEDDING_MODEL_NAME,
            base_url=settings.EMBEDDING_API_BASE_URL,
            document_timeout=settings.EMBEDDING_TIMEOUT_SEC,
            query_timeout=settings.QUERY_EMBEDDING_TIMEOUT_SEC,
            max_retries=settings.EMBEDDING_MAX_RETRIES,
            query_retries=settings.QUERY_EMBEDDING_RETRIES,
            backoff_base=settings.EMBEDDING_BACKOFF_BASE_SEC,
        )
    if settings.EMBEDDING_PROVIDER == "local":
        # Imported here so the torch stack only loads when asked for
        from infrastructure.local_embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(
            model_name=settings.LOCAL_EMBEDDING_MODEL_NAME,
            document_timeout=settings.EMBEDDING_TIMEOUT_SEC,
            query_timeout=settings.QUERY_EMBEDDING_TIMEOUT_SEC,
        )
    raise ValueError(f"Unknown embedding provider: {settings.EMBEDDING_PROVIDER}")

def build_document_session(
    vector_store: Optional[IVectorStore] = None,
    chunker: Optional[IChunker] = None,
    embedding_service: Optional[IEmbeddingService] = None,
) -> DocumentSession:
    """
    Wire a document session around its own store.

    Every component can be overridden, which is how tests swap in fakes.
    """
    vector_store = vector_store or get_vector_store()
    embedding_service = embedding_service or get_embedding_service()
    engine = RetrievalEngine(
        vector_store,
        embedding_service,
        query_deadline=settings.QUERY_EMBEDDING_TIMEOUT_SEC,
        separator=settings.CONTEXT_SEPARATOR,
        summary_separator=settings.SUMMARY_SEPARATOR,
    )
    return DocumentSession(
        vector_store=vector_store,
        chunker=chunker or get_chunker(),
        embedding_service=embedding_service,
        retrieval_engine=engine,
        min_document_chars=settings.MIN_DOCUMENT_CHARS,
        ingest_pause=settings.INGEST_PAUSE_SEC,
    )

def build_context_builder(session: DocumentSession) -> ExamContextBuilder:
    """Create the examiner context builder for a session."""
    return ExamContextBuilder(
        session,
        opening_chunks=settings.OPENING_SUMMARY_CHUNKS,
        opening_min_chars=settings.OPENING_CONTEXT_MIN_CHARS,
        opening_fallback_chars=settings.OPENING_FALLBACK_CHARS,
        answer_min_chars=settings.ANSWER_CONTEXT_MIN_CHARS,
        answer_fallback_chars=settings.ANSWER_FALLBACK_CHARS,
        top_k=settings.DEFAULT_TOP_K,
    )
