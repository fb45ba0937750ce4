import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PdfPool:
    """Runs synchronous generation jobs on a bounded set of worker threads.

    Each job owns its document for its whole run. Callers beyond
    ``max_pending`` wait for a slot before their job is queued.
    """

    def __init__(self, workers: int = 4, max_pending: int = 32):
        self.workers = max(1, workers)
        self.max_pending = max(self.workers, max_pending)
        self._executor = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="pdfsnap")
        self._slots: Optional[asyncio.Semaphore] = None
        logger.info(f"[POOL] Started {self.workers} worker(s), {self.max_pending} pending max")

    def _semaphore(self) -> asyncio.Semaphore:
        # Created lazily so it binds to the running loop
        if self._slots is None:
            self._slots = asyncio.Semaphore(self.max_pending)
        return self._slots

    async def render(self, job: Callable[[], T]) -> T:
        """Run ``job`` on a worker and return its result, re-raising its error."""
        async with self._semaphore():
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(self._executor, job)

    def shutdown(self):
        self._executor.shutdown(wait=True)
        logger.info("[POOL] Stopped")
