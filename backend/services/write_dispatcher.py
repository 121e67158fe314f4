"""
Bounded dispatcher for annotation writes

The ingestion loop hands each keyphrase annotation to submit() and moves on
without waiting for the write. At most max_in_flight writes run at once;
when the cap is reached submit() waits for a slot, which back-pressures the
consumer loop instead of piling up tasks while Neo4j is slow.

Each write is independent: a failure is logged and counted, never retried,
and never affects other writes of the same suggestion.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Set

from models.annotation import Annotation
from services.ingestion_stats import IngestionOutcome, IngestionStats

logger = logging.getLogger(__name__)

WriteFn = Callable[[str, Annotation], Awaitable[None]]


class WriteDispatcher:
    def __init__(
        self,
        write_fn: WriteFn,
        max_in_flight: int = 64,
        stats: IngestionStats = None,
        name: str = "keyphrase-writer"
    ):
        if max_in_flight < 1:
            raise ValueError(f"max_in_flight must be at least 1, got {max_in_flight}")
        self.write_fn = write_fn
        self.max_in_flight = max_in_flight
        self.stats = stats or IngestionStats()
        self.name = name
        self._slots = asyncio.Semaphore(max_in_flight)
        self._tasks: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def submit(self, content_uuid: str, annotation: Annotation) -> asyncio.Task:
        """Start a write once a slot is free; returns without awaiting the write"""
        await self._slots.acquire()
        task = asyncio.create_task(self._run(content_uuid, annotation))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        self._slots.release()

    async def _run(self, content_uuid: str, annotation: Annotation):
        try:
            await self.write_fn(content_uuid, annotation)
            self.stats.record(IngestionOutcome.WRITTEN)
        except asyncio.CancelledError:
            self.stats.record(IngestionOutcome.WRITE_CANCELLED)
            logger.warning(f"[{self.name}] Write for {content_uuid} cancelled")
            raise
        except Exception as e:
            self.stats.record(IngestionOutcome.WRITE_FAILED, error=e)
            logger.error(
                f"[{self.name}] Write of {annotation.concept.id} for {content_uuid} failed: {e}",
                exc_info=True
            )

    async def drain(self, timeout: float = None) -> bool:
        """
        Wait for in-flight writes.

        Returns:
            True when nothing is left in flight
        """
        if not self._tasks:
            return True
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        return not pending

    async def close(self, timeout: float = None):
        """Drain for up to timeout seconds, then cancel whatever is left"""
        if await self.drain(timeout):
            return

        leftover = set(self._tasks)
        logger.warning(f"[{self.name}] Cancelling {len(leftover)} in-flight write(s)")
        for task in leftover:
            task.cancel()
        await asyncio.gather(*leftover, return_exceptions=True)
