"""Per-group index lifecycle: lazy creation and idempotent configuration."""

import asyncio
import logging
from typing import Any

from chatrecall.errors import IndexEngineError
from chatrecall.search.client import MeiliClient
from chatrecall.search.executor import ResilientExecutor
from chatrecall.search.models import IndexHandle

logger = logging.getLogger(__name__)

PRIMARY_KEY = "uid"

INDEX_SETTINGS: dict[str, Any] = {
    "searchableAttributes": ["text", "author_handle"],
    "filterableAttributes": ["group_id", "author_id", "message_id", "created_at"],
    "sortableAttributes": ["created_at"],
    "rankingRules": ["words", "typo", "proximity", "attribute", "sort", "exactness"],
    "typoTolerance": {
        "enabled": True,
        "minWordSizeForTypos": {"oneTypo": 2, "twoTypos": 4},
    },
    "pagination": {"maxTotalHits": 100},
}


class IndexManager:
    """Owns one search index per chat group.

    The first reference to a group creates and configures its index. Configuration of a
    single group is serialized by a per-group lock so concurrent first touches are safe;
    other groups are never blocked.
    """

    def __init__(
        self,
        client: MeiliClient,
        executor: ResilientExecutor,
        index_prefix: str = "messages",
    ) -> None:
        self.client = client
        self.executor = executor
        self.index_prefix = index_prefix
        self._configured: set[int] = set()
        self._locks: dict[int, asyncio.Lock] = {}

    def index_uid(self, group_id: int) -> str:
        # Index uids only allow alphanumerics, "-" and "_".
        suffix = f"m{abs(group_id)}" if group_id < 0 else str(group_id)
        return f"{self.index_prefix}_{suffix}"

    def handle(self, group_id: int) -> IndexHandle:
        return IndexHandle(group_id=group_id, uid=self.index_uid(group_id))

    async def index_for(self, group_id: int, create: bool = True) -> IndexHandle | None:
        """Return the configured index for a group.

        Args:
            group_id: Chat group id
            create: Create the index when missing; when False a missing index yields None

        Returns:
            IndexHandle, or None if the index does not exist and ``create`` is False
        """
        handle = self.handle(group_id)
        if group_id in self._configured:
            return handle

        lock = self._locks.setdefault(group_id, asyncio.Lock())
        async with lock:
            if group_id in self._configured:
                return handle

            if create:
                await self._create(handle)
            else:
                info = await self.executor.execute(
                    f"get_index:{handle.uid}",
                    lambda: self.client.get_index(handle.uid),
                )
                if info is None:
                    return None

            await self.configure(handle)
            self._configured.add(group_id)
            return handle

    async def _create(self, handle: IndexHandle) -> None:
        async def create_and_wait() -> None:
            try:
                task = await self.client.create_index(handle.uid, PRIMARY_KEY)
                await self.client.wait_for_task(task["taskUid"])
            except IndexEngineError as e:
                if e.code == "index_already_exists":
                    logger.debug(f"Index {handle.uid} already exists")
                    return
                raise
            logger.info(f"Created index {handle.uid} for group {handle.group_id}")

        await self.executor.execute(f"create_index:{handle.uid}", create_and_wait)

    async def configure(self, handle: IndexHandle) -> None:
        """Apply index settings. Safe to repeat; documents are untouched."""

        async def apply() -> None:
            task = await self.client.update_settings(handle.uid, INDEX_SETTINGS)
            await self.client.wait_for_task(task["taskUid"])

        await self.executor.execute(f"configure_index:{handle.uid}", apply)
        logger.info(f"Configured index {handle.uid}")
