"""Background re-indexing of a group's stored history."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from chatrecall.search.ingestion import MessageIngestor
from chatrecall.storage.base import MessageStorage

logger = logging.getLogger(__name__)


@dataclass
class BackfillResult:
    """Outcome of a finished backfill."""

    group_id: int
    indexed: int
    total: int
    cancelled: bool = False
    error: str | None = None

    @property
    def success(self) -> bool:
        return not self.cancelled and self.error is None


CompletionCallback = Callable[[BackfillResult], Awaitable[None]]


class BackfillTask:
    """Handle for a running backfill.

    The caller can poll progress, await the result or cancel it. The completion
    callback, when given, runs once with the final result, including after
    cancellation or failure.
    """

    def __init__(
        self,
        group_id: int,
        storage: MessageStorage,
        ingestor: MessageIngestor,
        limit: int = 1000,
        batch_size: int = 100,
        on_complete: CompletionCallback | None = None,
    ) -> None:
        self.group_id = group_id
        self.storage = storage
        self.ingestor = ingestor
        self.limit = limit
        self.batch_size = batch_size
        self.on_complete = on_complete
        self.indexed = 0
        self.total = 0
        self._task: asyncio.Task[BackfillResult] | None = None

    def start(self) -> "BackfillTask":
        if self._task is not None:
            raise RuntimeError(f"Backfill for group {self.group_id} already started")
        self._task = asyncio.create_task(self._run(), name=f"backfill:{self.group_id}")
        return self

    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()

    async def wait(self) -> BackfillResult:
        if self._task is None:
            raise RuntimeError("Backfill was not started")
        return await self._task

    async def _run(self) -> BackfillResult:
        result = BackfillResult(group_id=self.group_id, indexed=0, total=0)
        try:
            messages = await asyncio.to_thread(self.storage.recent_messages, self.group_id, self.limit)
            # Oldest first so the index fills in chat order.
            messages.reverse()
            self.total = result.total = len(messages)
            logger.info(f"Backfilling {self.total} stored messages for group {self.group_id}")

            for start in range(0, len(messages), self.batch_size):
                batch = messages[start : start + self.batch_size]
                self.indexed += await self.ingestor.ingest_many(batch, batch_size=self.batch_size)
                result.indexed = self.indexed
        except asyncio.CancelledError:
            logger.info(f"Backfill for group {self.group_id} cancelled after {self.indexed} messages")
            result.cancelled = True
            await self._notify(result)
            raise
        except Exception as e:
            logger.error(f"Backfill for group {self.group_id} failed: {e}")
            result.error = str(e)
        else:
            logger.info(f"Backfill for group {self.group_id} indexed {self.indexed} messages")

        await self._notify(result)
        return result

    async def _notify(self, result: BackfillResult) -> None:
        if self.on_complete is None:
            return
        try:
            await self.on_complete(result)
        except Exception as e:
            logger.error(f"Backfill completion callback failed: {e}")
