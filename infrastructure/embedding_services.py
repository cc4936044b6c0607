# infrastructure/embedding_services.py
"""Embedding generation over the Gemini embedContent HTTP API"""
import asyncio
import logging
from typing import Any, List, Optional

import requests
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from core.interfaces import IEmbeddingService
from config import settings

logger = logging.getLogger(settings.LOGGER_NAME)

TASK_DOCUMENT = "RETRIEVAL_DOCUMENT"
TASK_QUERY = "RETRIEVAL_QUERY"


def _is_rate_limited(response: Optional[requests.Response]) -> bool:
    return response is not None and response.status_code == 429


def _log_backoff(retry_state: RetryCallState) -> None:
    logger.warning(
        f"Embedding rate limited. Retry {retry_state.attempt_number} "
        f"in {retry_state.next_action.sleep:.1f}s..."
    )


def _give_up(retry_state: RetryCallState) -> None:
    logger.warning(
        f"Embedding rate limited {retry_state.attempt_number} time(s); "
        f"continuing without embedding"
    )
    return None


class GeminiEmbeddingService(IEmbeddingService):
    """
    Calls `models/{model}:embedContent` once per text.

    Failure policy:
    - HTTP 429: back off `backoff_base * 2**attempt` seconds and retry,
      up to the retry budget; then give up with None
    - Timeout, transport error, any other status, malformed body: None at once

    The blocking request runs in a worker thread so the event loop keeps
    serving while a slow provider answers.
    """

    def __init__(
        self,
        api_key: str,
        model: str = settings.EMBEDDING_MODEL_NAME,
        base_url: str = settings.EMBEDDING_API_BASE_URL,
        document_timeout: float = settings.EMBEDDING_TIMEOUT_SEC,
        query_timeout: float = settings.QUERY_EMBEDDING_TIMEOUT_SEC,
        max_retries: int = settings.EMBEDDING_MAX_RETRIES,
        query_retries: int = settings.QUERY_EMBEDDING_RETRIES,
        backoff_base: float = settings.EMBEDDING_BACKOFF_BASE_SEC,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.document_timeout = document_timeout
        self.query_timeout = query_timeout
        self.max_retries = max_retries
        self.query_retries = query_retries
        self.backoff_base = backoff_base

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:embedContent"

    async def generate_document_embedding(self, text: str) -> Optional[List[float]]:
        return await self._embed_with_retry(
            text, TASK_DOCUMENT, self.document_timeout, self.max_retries
        )

    async def generate_query_embedding(self, query: str) -> Optional[List[float]]:
        return await self._embed_with_retry(
            query, TASK_QUERY, self.query_timeout, self.query_retries
        )

    async def _embed_with_retry(
        self, text: str, task_type: str, timeout: float, retries: int
    ) -> Optional[List[float]]:
        if not text or not text.strip():
            return None
        if not self.api_key:
            logger.warning("No embedding API key configured; skipping embedding")
            return None

        # Only 429 is retried; an exception outcome is re-raised on the first attempt
        retrying = AsyncRetrying(
            retry=retry_if_result(_is_rate_limited),
            stop=stop_after_attempt(retries + 1),
            wait=wait_exponential(multiplier=self.backoff_base),
            before_sleep=_log_backoff,
            retry_error_callback=_give_up,
            sleep=asyncio.sleep,
        )
        try:
            response = await retrying(asyncio.to_thread, self._post, text, task_type, timeout)
        except requests.exceptions.Timeout:
            logger.warning(f"Embedding request timed out after {timeout}s")
            return None
        except requests.exceptions.RequestException as e:
            logger.error(f"Embedding request failed: {e}")
            return None

        if response is None:
            return None
        if not response.ok:
            logger.error(
                f"Embedding service returned an error: {response.status_code} {response.text[:200]}"
            )
            return None

        return self._parse(response)

    def _post(self, text: str, task_type: str, timeout: float) -> requests.Response:
        return requests.post(
            self.endpoint,
            params={"key": self.api_key},
            json={
                "model": f"models/{self.model}",
                "content": {"parts": [{"text": text}]},
                "taskType": task_type,
            },
            timeout=timeout,
        )

    @staticmethod
    def _parse(response: requests.Response) -> Optional[List[float]]:
        try:
            data: Any = response.json()
        except ValueError:
            logger.error("Embedding response was not valid JSON")
            return None

        values = (data.get("embedding") or {}).get("values") if isinstance(data, dict) else None
        if not isinstance(values, list) or not values:
            logger.error("Embedding response was empty or malformed")
            return None
        try:
            return [float(v) for v in values]
        except (TypeError, ValueError):
            logger.error("Embedding response contained non-numeric values")
            return None
