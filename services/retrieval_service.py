# services/retrieval_service.py
import asyncio
import logging
from typing import List, Optional

from config import settings
from core.interfaces import IEmbeddingService, IVectorStore

logger = logging.getLogger(settings.LOGGER_NAME)


class RetrievalEngine:
    """
    Turns a query into context text for the examiner.

    The query embedding is raced against `query_deadline`; when it loses (or
    fails) the store falls back to positional retrieval. The losing call is
    cancelled by wait_for and its result never reaches the caller.
    """

    def __init__(
        self,
        vector_store: IVectorStore,
        embedding_service: IEmbeddingService,
        query_deadline: float = settings.QUERY_EMBEDDING_TIMEOUT_SEC,
        separator: str = settings.CONTEXT_SEPARATOR,
        summary_separator: str = settings.SUMMARY_SEPARATOR,
    ):
        self.vector_store = vector_store
        self.embedding_service = embedding_service
        self.query_deadline = query_deadline
        self.separator = separator
        self.summary_separator = summary_separator

    async def _query_embedding(self, query: str) -> Optional[List[float]]:
        try:
            return await asyncio.wait_for(
                self.embedding_service.generate_query_embedding(query),
                timeout=self.query_deadline,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Query embedding missed the {self.query_deadline}s deadline, "
                f"falling back to positional retrieval"
            )
        except Exception as e:
            logger.warning(f"Query embedding failed ({e}), falling back to positional retrieval")
        return None

    async def retrieve(self, query: str, top_k: int = settings.DEFAULT_TOP_K) -> str:
        """Return up to top_k chunk texts joined by the context separator."""
        if self.vector_store.count() == 0:
            logger.warning("Vector store is empty")
            return ""

        query_embedding = await self._query_embedding(query)
        results = self.vector_store.similar_set(query_embedding, top_k)

        mode = "semantic" if query_embedding else "positional"
        logger.info(f"Retrieved {len(results)} chunks for query ({mode})")
        return self.separator.join(r.chunk.text for r in results)

    def summary(self, max_chunks: int = settings.SUMMARY_MAX_CHUNKS) -> str:
        """Opening chunks of the document, unranked and without any embedding call."""
        return self.summary_separator.join(c.text for c in self.vector_store.head(max_chunks))
