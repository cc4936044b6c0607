# core/interfaces.py
"""Core interfaces for the retrieval engine"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from core.domain import ChunkSearchResult, DocumentChunk, TextSegment

# ============= Chunker Interface =============
class IChunker(ABC):
    """Splits raw document text into ordered, overlapping segments"""

    @abstractmethod
    def chunk(self, text: str) -> List[TextSegment]:
        """Split text into segments indexed from 0 in document order"""
        pass

# ============= Embedding Service Interface =============
class IEmbeddingService(ABC):
    """
    Interface for embedding generation.

    Implementations never raise for timeouts, rate limits or malformed
    responses: every expected failure collapses to None ("no embedding").
    """

    @abstractmethod
    async def generate_document_embedding(self, text: str) -> Optional[List[float]]:
        """Embed a document chunk using the background (bulk) deadline"""
        pass

    @abstractmethod
    async def generate_query_embedding(self, query: str) -> Optional[List[float]]:
        """Embed a search query using the interactive deadline"""
        pass

# ============= Vector Store Interface =============
class IVectorStore(ABC):
    """
    Interface for the in-memory chunk store.

    Holds one document at a time. Every clear() starts a new generation;
    writes tagged with an older generation are rejected.
    """

    @property
    @abstractmethod
    def generation(self) -> int:
        """Current generation counter"""
        pass

    @property
    @abstractmethod
    def title(self) -> str:
        """Title of the resident document"""
        pass

    @abstractmethod
    def clear(self, title: str = "") -> int:
        """Discard all chunks, set title, and return the new generation"""
        pass

    @abstractmethod
    def add(
        self,
        text: str,
        embedding: Optional[List[float]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        generation: Optional[int] = None,
    ) -> Optional[DocumentChunk]:
        """Append a chunk; returns None when the generation is stale"""
        pass

    @abstractmethod
    def attach_embedding(
        self, index: int, embedding: List[float], generation: Optional[int] = None
    ) -> bool:
        """Attach an embedding to a text-only chunk"""
        pass

    @abstractmethod
    def similar_set(
        self, query_embedding: Optional[List[float]], top_k: int
    ) -> List[ChunkSearchResult]:
        """Rank chunks against a query vector, or positional fallback"""
        pass

    @abstractmethod
    def head(self, n: int) -> List[DocumentChunk]:
        """First n chunks in insertion order"""
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of resident chunks"""
        pass

    @abstractmethod
    def embedded_count(self) -> int:
        """Number of resident chunks that carry an embedding"""
        pass
