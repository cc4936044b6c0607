# services/async_processor.py
"""Background document loads scheduled on the running event loop"""
import asyncio
import logging
from typing import Coroutine, Set

from config import settings

logger = logging.getLogger(settings.LOGGER_NAME)

class AsyncDocumentProcessor:
    """
    Fire-and-forget task submission on the service's own event loop.

    Loads share the loop with request handlers (cooperative scheduling), so
    the document session is never touched from another thread.
    Call shutdown() on app exit.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit_task(self, coro: Coroutine) -> asyncio.Task:
        """Schedule a coroutine in the background (fire-and-forget)."""
        task = asyncio.get_running_loop().create_task(coro)
        # Keep a strong reference until the task finishes
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background task failed: {exc}", exc_info=exc)

    async def shutdown(self) -> None:
        """Cancel outstanding loads and wait for them to unwind."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"Background processor stopped ({len(tasks)} task(s) cancelled)")

# Global instance
async_processor = AsyncDocumentProcessor()
