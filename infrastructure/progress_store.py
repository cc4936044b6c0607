# infrastructure/progress_store.py
"""Per-load progress for the polling endpoint"""
from typing import Any, Dict, Optional
from datetime import datetime, timezone
from core.domain import ProcessingStatus, ErrorCode


class ProgressStore:
    """
    Progress of background document loads, keyed by document id.

    Lifecycle: start() → set_stage(CHUNKING) → update() per chunk → one of
    complete(), supersede() or fail(). Entries live in memory only; past
    MAX_ENTRIES the oldest are dropped so that KEEP_ENTRIES remain.
    """
    MAX_ENTRIES = 500
    KEEP_ENTRIES = 250

    def __init__(self):
        self._entries: Dict[str, Dict[str, Any]] = {}

    def _evict_oldest(self) -> None:
        if len(self._entries) < self.MAX_ENTRIES:
            return
        by_age = sorted(self._entries, key=lambda doc_id: self._entries[doc_id]["_created"])
        for doc_id in by_age[:len(self._entries) - self.KEEP_ENTRIES]:
            del self._entries[doc_id]

    def _set(self, document_id: str, **fields: Any) -> None:
        # Late reports for evicted or removed loads are dropped
        entry = self._entries.get(document_id)
        if entry is not None:
            entry.update(fields)

    def start(self, document_id: str, title: str) -> None:
        self._evict_oldest()
        self._entries[document_id] = {
            "title": title,
            "status": ProcessingStatus.PENDING,
            "current": 0,
            "total": 0,
            "progress_percent": 0,
            "current_step": "Queued",
            "chunks": 0,
            "error": None,
            "error_code": None,
            "_created": datetime.now(timezone.utc),
        }

    def set_stage(self, document_id: str, status: ProcessingStatus, step: str) -> None:
        """Move a load into a stage that has no chunk counts yet (e.g. chunking)."""
        self._set(document_id, status=status, current_step=step)

    def update(self, document_id: str, current: int, total: int, step: str) -> None:
        """Chunk `current` of `total` has been stored; 100% is reserved for complete()."""
        percent = current * 100 // total if total else 0
        self._set(
            document_id,
            status=ProcessingStatus.GENERATING_EMBEDDINGS,
            current=current,
            total=total,
            progress_percent=min(percent, 99),
            current_step=step,
        )

    def fail(self, document_id: str, error: str, error_code: ErrorCode) -> None:
        self._set(document_id, status=ProcessingStatus.FAILED, error=error, error_code=error_code)

    def supersede(self, document_id: str, chunks: int) -> None:
        """A newer document replaced this one before indexing finished."""
        self._set(
            document_id,
            status=ProcessingStatus.SUPERSEDED,
            chunks=chunks,
            current_step="Replaced by a newer document",
        )

    def complete(self, document_id: str, chunks: int) -> None:
        self._set(
            document_id,
            status=ProcessingStatus.COMPLETED,
            progress_percent=100,
            chunks=chunks,
            current_step="Ready for questions",
        )

    def get(self, document_id: str) -> Optional[Dict[str, Any]]:
        """Public view of an entry (internal keys stripped), or None."""
        entry = self._entries.get(document_id)
        if entry is None:
            return None
        return {key: value for key, value in entry.items() if not key.startswith("_")}

    def remove(self, document_id: str) -> None:
        self._entries.pop(document_id, None)

    def __len__(self) -> int:
        return len(self._entries)


progress_store = ProgressStore()
