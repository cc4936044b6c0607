# infrastructure/local_embeddings.py
"""Local embedding generation with L2 normalization for consistent similarity scoring"""
import asyncio
import logging
import numpy as np
from typing import List, Optional
from sentence_transformers import SentenceTransformer

from core.interfaces import IEmbeddingService
from config import settings

logger = logging.getLogger(settings.LOGGER_NAME)

class SentenceTransformerEmbedding(IEmbeddingService):
    """
    Sentence transformer with L2 normalization (unit vectors).

    No network and no rate limits, but the same deadline contract as the
    HTTP provider: an encode call that overruns its deadline yields None.
    """

    _model: Optional[SentenceTransformer] = None  # Singleton cache

    def __init__(
        self,
        model_name: str = settings.LOCAL_EMBEDDING_MODEL_NAME,
        document_timeout: float = settings.EMBEDDING_TIMEOUT_SEC,
        query_timeout: float = settings.QUERY_EMBEDDING_TIMEOUT_SEC,
    ):
        """Initializes the service, loading the heavy model only once."""
        self.document_timeout = document_timeout
        self.query_timeout = query_timeout
        # At most one encode thread per instance, even after a missed deadline
        self._lock = asyncio.Lock()

        if SentenceTransformerEmbedding._model is None:
            try:
                logger.info(f"Attempting to load model {model_name} from local cache...")
                SentenceTransformerEmbedding._model = SentenceTransformer(
                    model_name,
                    local_files_only=True
                )
                logger.info(f"Successfully loaded {model_name} from local cache.")

            except Exception as e:
                logger.warning(
                    f"Model {model_name} not found in cache. Attempting online download. "
                    f"This may take a few minutes. Error: {e}"
                )
                SentenceTransformerEmbedding._model = SentenceTransformer(model_name)
                logger.info(f"Successfully downloaded and loaded {model_name}.")

        self.model = SentenceTransformerEmbedding._model

    @staticmethod
    def _l2_normalize(vector: np.ndarray) -> np.ndarray:
        norm = np.linalg.norm(vector)
        if norm == 0:
            return vector
        return vector / norm

    async def _encode_serialised(self, text: str) -> np.ndarray:
        """
        Run model.encode in a worker thread, one call at a time.

        A caller that gives up (deadline) cannot stop the thread, so the lock
        is released when the thread finishes, not when the caller leaves.
        """
        await self._lock.acquire()
        future = asyncio.ensure_future(
            asyncio.to_thread(self.model.encode, text, convert_to_tensor=False)
        )
        future.add_done_callback(self._release_after_encode)
        return await asyncio.shield(future)

    def _release_after_encode(self, future: asyncio.Future) -> None:
        self._lock.release()
        if not future.cancelled() and future.exception() is not None:
            logger.debug(f"Local encode thread raised: {future.exception()}")

    async def _encode(self, text: str, timeout: float) -> Optional[List[float]]:
        if not text or not text.strip():
            return None
        try:
            raw = await asyncio.wait_for(self._encode_serialised(text), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Local embedding exceeded {timeout}s deadline")
            return None
        except Exception as e:
            logger.error(f"Local embedding failed: {e}")
            return None

        normalized = self._l2_normalize(np.asarray(raw, dtype="float32").reshape(-1))
        return normalized.tolist()

    async def generate_document_embedding(self, text: str) -> Optional[List[float]]:
        return await self._encode(text, self.document_timeout)

    async def generate_query_embedding(self, query: str) -> Optional[List[float]]:
        return await self._encode(query, self.query_timeout)
