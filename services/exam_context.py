# services/exam_context.py
"""Context assembly for the examiner's opening question and answer evaluation"""
import logging
from typing import Optional

from config import settings
from core.domain import ContextSource, ExamContext
from services.document_session import DocumentSession
from utils.common import truncate

logger = logging.getLogger(settings.LOGGER_NAME)


class ExamContextBuilder:
    """
    Picks the text the examiner model sees.

    Opening question: the document's first chunks, no embedding call.
    Answer evaluation: chunks retrieved for "<last question> <answer>".
    Either falls back to the head of the raw document when it comes back
    too short.
    """

    def __init__(
        self,
        session: DocumentSession,
        opening_chunks: int = settings.OPENING_SUMMARY_CHUNKS,
        opening_min_chars: int = settings.OPENING_CONTEXT_MIN_CHARS,
        opening_fallback_chars: int = settings.OPENING_FALLBACK_CHARS,
        answer_min_chars: int = settings.ANSWER_CONTEXT_MIN_CHARS,
        answer_fallback_chars: int = settings.ANSWER_FALLBACK_CHARS,
        top_k: int = settings.DEFAULT_TOP_K,
    ):
        self.session = session
        self.opening_chunks = opening_chunks
        self.opening_min_chars = opening_min_chars
        self.opening_fallback_chars = opening_fallback_chars
        self.answer_min_chars = answer_min_chars
        self.answer_fallback_chars = answer_fallback_chars
        self.top_k = top_k

    def _document_head(self, length: int) -> ExamContext:
        return ExamContext(
            title=self.session.get_title(),
            context=truncate(self.session.document_text, length),
            source=ContextSource.DOCUMENT_HEAD,
        )

    def opening_context(self) -> ExamContext:
        context = self.session.get_summary(self.opening_chunks)
        if len(context) < self.opening_min_chars:
            logger.info("Summary too short for the opening question, using document head")
            return self._document_head(self.opening_fallback_chars)
        return ExamContext(
            title=self.session.get_title(),
            context=context,
            source=ContextSource.SUMMARY,
        )

    async def answer_context(
        self, last_question: str, answer: str, top_k: Optional[int] = None
    ) -> ExamContext:
        query = f"{last_question} {answer}".strip()
        try:
            context = await self.session.retrieve_context(query, top_k or self.top_k)
        except Exception as e:
            logger.error(f"Context retrieval failed: {e}", exc_info=True)
            context = ""

        if len(context) < self.answer_min_chars:
            logger.info("Retrieved context too short, using document head")
            return self._document_head(self.answer_fallback_chars)
        return ExamContext(
            title=self.session.get_title(),
            context=context,
            source=ContextSource.RETRIEVAL,
        )
