"""
Shared test fixtures.

Provides: a keyword-count fake embedding service, an empty vector store,
a small-sized chunker, and a document session wired to all three.
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from core.interfaces import IEmbeddingService
from infrastructure.text_chunker import ParagraphChunker
from infrastructure.vector_stores import InMemoryVectorStore
from services.document_session import DocumentSession
from services.retrieval_service import RetrievalEngine

VOCABULARY = ["neural", "network", "protein", "folding", "climate", "ocean", "exam", "theorem"]


def keyword_vector(text: str) -> List[float]:
    """Count vocabulary words; texts about the same topic point the same way."""
    words = [w.strip(".,;:!?").lower() for w in text.split()]
    return [float(words.count(term)) for term in VOCABULARY]


class FakeEmbeddingService(IEmbeddingService):
    """
    Deterministic embedding provider for tests.

    - `fail=True` makes every call return None
    - `delay` sleeps before answering (query and document calls alike)
    - `gates` maps a marker substring to an asyncio.Event the call waits on
    """

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.fail = fail
        self.delay = delay
        self.gates: Dict[str, asyncio.Event] = {}
        self.document_calls: List[str] = []
        self.query_calls: List[str] = []
        self.cancelled = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def _embed(self, text: str) -> Optional[List[float]]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            for marker, gate in self.gates.items():
                if marker in text:
                    await gate.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.in_flight -= 1

        if self.fail:
            return None
        vector = keyword_vector(text)
        return vector if any(vector) else [0.0] * (len(VOCABULARY) - 1) + [0.01]

    async def generate_document_embedding(self, text: str) -> Optional[List[float]]:
        self.document_calls.append(text)
        return await self._embed(text)

    async def generate_query_embedding(self, query: str) -> Optional[List[float]]:
        self.query_calls.append(query)
        return await self._embed(query)


def make_document(*paragraphs: str) -> str:
    return "\n\n".join(paragraphs)


def alpha_document() -> str:
    """Three single-chunk paragraphs tagged ALPHA (a gate marker in stale-load tests)."""
    return make_document(
        "ALPHA opening paragraph about neural network training with enough words to matter here, so that it fills most of one chunk.",
        "ALPHA second paragraph about protein folding with enough words to fill the chunk well, keeping it apart from its neighbours.",
        "ALPHA third paragraph about the climate and the ocean, again with plenty of filler words to push it past the halfway mark.",
    )


def beta_document() -> str:
    return make_document(
        "BETA first paragraph covering the final exam and the theorem students must prove there, written out at considerable length.",
        "BETA second paragraph covering the exam marking scheme and each theorem in the syllabus, also written out at considerable length.",
        "BETA third paragraph covering revision strategy before the exam, with more filler text so it stands as its own chunk.",
    )


@pytest.fixture
def fake_embeddings() -> FakeEmbeddingService:
    return FakeEmbeddingService()


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def small_chunker() -> ParagraphChunker:
    """One paragraph per chunk for the ~150 character paragraphs used in tests."""
    return ParagraphChunker(chunk_size=200, chunk_overlap=0, min_chunks=3, sentence_fallback_chars=10_000)


@pytest.fixture
def retrieval_engine(vector_store, fake_embeddings) -> RetrievalEngine:
    return RetrievalEngine(vector_store, fake_embeddings, query_deadline=0.5)


@pytest.fixture
def document_session(vector_store, small_chunker, fake_embeddings, retrieval_engine) -> DocumentSession:
    return DocumentSession(
        vector_store=vector_store,
        chunker=small_chunker,
        embedding_service=fake_embeddings,
        retrieval_engine=retrieval_engine,
        min_document_chars=100,
        ingest_pause=0.0,
    )


@pytest.fixture
def topic_document() -> str:
    """Four paragraphs, each clearly about one vocabulary topic."""
    return make_document(
        "Neural network training adjusts the weights of a neural network by gradient descent "
        "until the network reproduces the labelled examples well enough.",
        "Protein folding is the physical process by which a protein chain acquires its native "
        "three dimensional structure; misfolding causes disease.",
        "Climate models couple the ocean and the atmosphere; the ocean stores most of the heat "
        "that the climate system absorbs over long periods.",
        "The final exam asks students to prove a theorem from first principles and to explain "
        "why each step of the theorem holds in the exam setting.",
    )
