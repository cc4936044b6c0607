# services/document_session.py
"""Lifecycle of the currently loaded document"""
import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from config import settings
from core.domain import DocumentProcessingError, ErrorCode, LoadProgress
from core.interfaces import IChunker, IEmbeddingService, IVectorStore
from services.retrieval_service import RetrievalEngine

logger = logging.getLogger(settings.LOGGER_NAME)

ProgressCallback = Callable[[LoadProgress], None]


class DocumentSession:
    """
    Owns one vector store and the document resident in it.

    load() clears the store (starting a new generation) before ingesting,
    then feeds chunks in one at a time: the text-only chunk is stored first,
    its embedding attached afterwards if the provider delivers one. A load
    that finds the generation moved on stops writing.
    """

    def __init__(
        self,
        vector_store: IVectorStore,
        chunker: IChunker,
        embedding_service: IEmbeddingService,
        retrieval_engine: Optional[RetrievalEngine] = None,
        min_document_chars: int = settings.MIN_DOCUMENT_CHARS,
        ingest_pause: float = settings.INGEST_PAUSE_SEC,
    ):
        self.vector_store = vector_store
        self.chunker = chunker
        self.embedding_service = embedding_service
        self.retrieval_engine = retrieval_engine or RetrievalEngine(vector_store, embedding_service)
        self.min_document_chars = min_document_chars
        self.ingest_pause = ingest_pause
        self._document_text: str = ""
        self._document_id: Optional[str] = None

    @property
    def document_text(self) -> str:
        """Raw text of the resident document"""
        return self._document_text

    @property
    def document_id(self) -> Optional[str]:
        return self._document_id

    def validate_text(self, text: str) -> None:
        """Raise DocumentProcessingError when text is unusable as a document."""
        if not text or len(text.strip()) < self.min_document_chars:
            raise DocumentProcessingError(
                f"Document text is empty or shorter than {self.min_document_chars} characters",
                ErrorCode.NO_TEXT_FOUND,
            )

    async def load(
        self,
        text: str,
        title: str,
        on_progress: Optional[ProgressCallback] = None,
        document_id: Optional[str] = None,
    ) -> int:
        """
        Replace the resident document and index the new one.

        Returns the number of chunks stored. Embedding failures never fail the
        load; chunks without an embedding are still served positionally.

        Raises:
            DocumentProcessingError: text is empty or too short (store untouched)
        """
        self.validate_text(text)

        logger.info(
            f"Clearing previous store (had {self.vector_store.count()} chunks) "
            f"for new document '{title}'"
        )
        generation = self.vector_store.clear(title)
        self._document_text = text
        self._document_id = document_id

        segments = self.chunker.chunk(text)
        total = len(segments)
        logger.info(f"Created {total} chunks from '{title}'")

        stored = 0
        embedded = 0
        for segment in segments:
            chunk = self.vector_store.add(
                segment.text,
                metadata={"index": segment.index, "title": title, "document_id": document_id},
                generation=generation,
            )
            if chunk is None:
                logger.warning(f"Load of '{title}' superseded after {stored}/{total} chunks")
                return stored
            stored += 1

            embedding = await self.embedding_service.generate_document_embedding(segment.text)
            if self.vector_store.generation != generation:
                logger.warning(f"Load of '{title}' superseded after {stored}/{total} chunks")
                return stored
            if embedding and self.vector_store.attach_embedding(chunk.index, embedding, generation):
                embedded += 1

            if on_progress:
                on_progress(LoadProgress(
                    current=stored,
                    total=total,
                    status=f"Processing chunk {stored}/{total}...",
                ))

            # Stay under the provider's rate limit
            await asyncio.sleep(self.ingest_pause)

        if self.vector_store.generation != generation:
            logger.warning(f"Load of '{title}' superseded after {stored}/{total} chunks")
            return stored

        logger.info(f"Vector store: {stored} chunks, {embedded} with embeddings")
        return stored

    async def load_document(
        self, text: str, title: str, on_progress: Optional[ProgressCallback] = None
    ) -> int:
        return await self.load(text, title, on_progress=on_progress)

    def unload(self) -> None:
        """Drop the resident document."""
        self.vector_store.clear()
        self._document_text = ""
        self._document_id = None

    def is_loaded(self) -> bool:
        return self.vector_store.count() > 0

    def get_title(self) -> str:
        return self.vector_store.title

    def get_summary(self, max_chunks: int = settings.SUMMARY_MAX_CHUNKS) -> str:
        if not self.is_loaded():
            return ""
        return self.retrieval_engine.summary(max_chunks)

    async def retrieve_context(self, query: str, top_k: int = settings.DEFAULT_TOP_K) -> str:
        return await self.retrieval_engine.retrieve(query, top_k)

    def status(self) -> Dict[str, Any]:
        chunk_count = self.vector_store.count()
        return {
            "document_loaded": self.get_title() or None,
            "document_id": self._document_id,
            "chunks_available": chunk_count,
            "chunks_embedded": self.vector_store.embedded_count(),
            "ready_for_queries": chunk_count > 0,
        }
