# infrastructure/text_chunker.py
"""Paragraph-first chunking with sentence fallback for documents lacking blank lines"""
import logging
import re
from typing import List

from config import settings
from core.domain import TextSegment
from core.interfaces import IChunker

logger = logging.getLogger(settings.LOGGER_NAME)

PARAGRAPH_BREAK = re.compile(r'\n\n+')
SENTENCE_BREAK = re.compile(r'(?<=[.!?])\s+')

# Overlap is configured in characters; seeding works on whole words.
CHARS_PER_WORD = 10


class ParagraphChunker(IChunker):
    """
    Accumulates paragraphs into chunks of roughly `chunk_size` characters.

    - A paragraph that would overflow a non-empty buffer closes the buffer;
      the next buffer starts with the trailing overlap words of the closed one
    - A paragraph larger than `chunk_size` is kept whole (never cut mid-sentence)
    - Fewer than `min_chunks` chunks for a text longer than
      `sentence_fallback_chars` means the text has few blank lines:
      re-split on sentence boundaries without overlap
    """

    def __init__(
        self,
        chunk_size: int = settings.CHUNK_SIZE,
        chunk_overlap: int = settings.CHUNK_OVERLAP,
        min_chunks: int = settings.CHUNK_MIN_COUNT,
        sentence_fallback_chars: int = settings.SENTENCE_FALLBACK_MIN_CHARS,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0:
            raise ValueError("chunk_overlap must not be negative")
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.min_chunks = min_chunks
        self.sentence_fallback_chars = sentence_fallback_chars

    @property
    def overlap_words(self) -> int:
        if self.chunk_overlap == 0:
            return 0
        return max(1, self.chunk_overlap // CHARS_PER_WORD)

    def chunk(self, text: str) -> List[TextSegment]:
        if not text or not text.strip():
            return []

        pieces = self._split_paragraphs(text)

        if len(pieces) < self.min_chunks and len(text) > self.sentence_fallback_chars:
            logger.debug(
                f"Paragraph split produced {len(pieces)} chunk(s) for {len(text)} chars; "
                f"re-splitting on sentences"
            )
            pieces = self._split_sentences(text)

        return [TextSegment(text=piece, index=i) for i, piece in enumerate(pieces)]

    def _split_paragraphs(self, text: str) -> List[str]:
        pieces: List[str] = []
        buffer = ""

        for para in PARAGRAPH_BREAK.split(text):
            para = para.strip()
            if not para:
                continue

            if buffer and len(buffer) + len(para) > self.chunk_size:
                pieces.append(buffer.strip())
                buffer = self._seed(buffer, para)
            else:
                buffer = f"{buffer}\n\n{para}" if buffer else para

        if buffer.strip():
            pieces.append(buffer.strip())
        return pieces

    def _seed(self, flushed: str, para: str) -> str:
        """Start a new buffer with the tail of the flushed one."""
        if self.overlap_words == 0:
            return para
        tail = flushed.split()[-self.overlap_words:]
        return " ".join(tail) + " " + para

    def _split_sentences(self, text: str) -> List[str]:
        pieces: List[str] = []
        buffer = ""

        for sentence in SENTENCE_BREAK.split(text):
            sentence = sentence.strip()
            if not sentence:
                continue

            if buffer and len(buffer) + len(sentence) > self.chunk_size:
                pieces.append(buffer.strip())
                buffer = sentence
            else:
                buffer = f"{buffer} {sentence}" if buffer else sentence

        if buffer.strip():
            pieces.append(buffer.strip())
        return pieces
