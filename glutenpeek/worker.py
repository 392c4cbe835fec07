"""Background queue that runs staleness checks off the scan path."""

from __future__ import annotations

import asyncio
import logging
from collections import deque

from .staleness import ReclassificationResult, StalenessClassifier

logger = logging.getLogger(__name__)


class ReclassificationWorker:
    """Consumes barcodes from an asyncio.Queue and reclassifies them.

    ``submit`` never blocks and never raises into the caller. A barcode
    that is already waiting in the queue is not queued a second time.
    """

    def __init__(
        self,
        classifier: StalenessClassifier,
        *,
        queue_size: int = 100,
        workers: int = 1,
        history_size: int = 100,
    ) -> None:
        self._classifier = classifier
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self._workers = max(1, workers)
        self._tasks: list[asyncio.Task] = []
        self._pending: set[str] = set()
        # most recent results only
        self.results: deque[ReclassificationResult] = deque(maxlen=history_size)

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def start(self) -> None:
        """Start consumer tasks on the running event loop."""
        if self._tasks:
            return
        for i in range(self._workers):
            self._tasks.append(
                asyncio.create_task(self._run(), name=f"reclassify-{i}")
            )
        logger.debug("Started %d reclassification worker(s)", self._workers)

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    def submit(self, barcode: str) -> bool:
        """Queue a barcode for a staleness check. Returns False if dropped."""
        if barcode in self._pending:
            return False
        try:
            self._queue.put_nowait(barcode)
        except asyncio.QueueFull:
            logger.warning("Reclassification queue full; dropping %s", barcode)
            return False
        self._pending.add(barcode)
        return True

    async def drain(self) -> None:
        """Wait until every queued barcode has been processed."""
        if not self._tasks and not self._queue.empty():
            self.start()
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            barcode = await self._queue.get()
            self._pending.discard(barcode)
            try:
                result = await self._classifier.check(barcode)
                self.results.append(result)
            except Exception:
                logger.exception("Reclassification of %s failed", barcode)
            finally:
                self._queue.task_done()
