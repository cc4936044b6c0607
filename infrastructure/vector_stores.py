# infrastructure/vector_stores.py
"""In-memory vector store for the currently loaded document"""
import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from config import settings
from core.domain import ChunkSearchResult, DocumentChunk
from core.interfaces import IVectorStore

logger = logging.getLogger(settings.LOGGER_NAME)


def cosine_similarity(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    """
    Cosine similarity in [-1, 1].

    Empty vectors, mismatched lengths and zero vectors all score exactly 0.
    """
    if a is None or b is None or len(a) == 0 or len(a) != len(b):
        return 0.0

    va = np.asarray(a, dtype="float64")
    vb = np.asarray(b, dtype="float64")
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))


class InMemoryVectorStore(IVectorStore):
    """
    Ordered chunk list with cosine ranking.

    All mutations are synchronous: under a single event loop no reader can
    interleave with clear(), so two documents are never visible together.
    """

    def __init__(self):
        self._chunks: List[DocumentChunk] = []
        self._title: str = ""
        self._generation: int = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def title(self) -> str:
        return self._title

    @property
    def chunks(self) -> List[DocumentChunk]:
        """Snapshot of resident chunks in document order"""
        return list(self._chunks)

    def _is_stale(self, generation: Optional[int]) -> bool:
        return generation is not None and generation != self._generation

    def clear(self, title: str = "") -> int:
        previous = len(self._chunks)
        self._chunks = []
        self._title = title
        self._generation += 1
        logger.info(
            f"Vector store cleared ({previous} chunks dropped), generation {self._generation}"
        )
        return self._generation

    def add(
        self,
        text: str,
        embedding: Optional[List[float]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        generation: Optional[int] = None,
    ) -> Optional[DocumentChunk]:
        if self._is_stale(generation):
            logger.warning(
                f"Rejected chunk from stale generation {generation} "
                f"(current {self._generation})"
            )
            return None

        vector = list(embedding) if embedding else []
        meta = dict(metadata or {})
        meta["has_embedding"] = bool(vector)

        chunk = DocumentChunk(
            index=len(self._chunks),
            text=text,
            embedding=vector,
            metadata=meta,
        )
        self._chunks.append(chunk)
        return chunk

    def attach_embedding(
        self, index: int, embedding: List[float], generation: Optional[int] = None
    ) -> bool:
        if self._is_stale(generation):
            logger.warning(
                f"Discarded embedding for chunk {index} from stale generation {generation}"
            )
            return False
        if not embedding or not 0 <= index < len(self._chunks):
            return False

        chunk = self._chunks[index]
        if chunk.has_embedding:
            # Embeddings are attached once
            return False

        chunk.embedding = list(embedding)
        chunk.metadata["has_embedding"] = True
        return True

    def similar_set(
        self, query_embedding: Optional[List[float]], top_k: int
    ) -> List[ChunkSearchResult]:
        if top_k <= 0 or not self._chunks:
            return []

        if not query_embedding:
            return [ChunkSearchResult(chunk=c, score=0.0) for c in self._chunks[:top_k]]

        scored = [
            ChunkSearchResult(
                chunk=c,
                score=cosine_similarity(query_embedding, c.embedding) if c.has_embedding else 0.0,
            )
            for c in self._chunks
        ]
        # sorted() is stable: ties keep document order
        scored = sorted(scored, key=lambda r: r.score, reverse=True)
        return scored[:top_k]

    def head(self, n: int) -> List[DocumentChunk]:
        if n <= 0:
            return []
        return self._chunks[:n]

    def count(self) -> int:
        return len(self._chunks)

    def embedded_count(self) -> int:
        return sum(1 for c in self._chunks if c.has_embedding)
