"""Strategy execution against group indexes and time-windowed context expansion."""

import asyncio
import logging
from collections.abc import Iterable
from datetime import timedelta
from typing import Any

from pydantic import ValidationError

from chatrecall.ids import group_ids_to_probe
from chatrecall.models import ChatMessage, SearchStrategy
from chatrecall.search.client import MeiliClient
from chatrecall.search.executor import ResilientExecutor
from chatrecall.search.index_manager import IndexManager
from chatrecall.search.models import IndexedMessage, IndexHandle, SearchRequest, SortOrder

logger = logging.getLogger(__name__)


def sort_messages(messages: Iterable[ChatMessage], order: SortOrder = SortOrder.ASC) -> list[ChatMessage]:
    """Stable sort by creation time, ties broken by message id."""
    return sorted(
        messages,
        key=lambda m: (m.created_at, m.message_id),
        reverse=order == SortOrder.DESC,
    )


def decode_hits(hits: list[Any]) -> list[ChatMessage]:
    """Decode engine hits, dropping any hit that does not match the document schema."""
    messages = []
    for hit in hits:
        try:
            messages.append(IndexedMessage.model_validate(hit).to_message())
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            uid = hit.get("uid") if isinstance(hit, dict) else None
            logger.warning(f"Dropping malformed hit {uid!r}: invalid fields {fields}")
    return messages


class MessageRetriever:
    """Runs search strategies and expands hits into their surrounding conversation."""

    def __init__(
        self,
        client: MeiliClient,
        index_manager: IndexManager,
        executor: ResilientExecutor,
        search_limit: int = 50,
        context_window: timedelta = timedelta(minutes=2),
        context_limit: int = 10,
        context_concurrency: int = 4,
    ) -> None:
        self.client = client
        self.index_manager = index_manager
        self.executor = executor
        self.search_limit = search_limit
        self.context_window = context_window
        self.context_limit = context_limit
        self.context_concurrency = context_concurrency

    async def retrieve(
        self,
        group_id: int,
        strategy: SearchStrategy,
        order: SortOrder = SortOrder.DESC,
    ) -> list[ChatMessage]:
        """Execute a strategy against the group's index.

        Each query of the strategy is its own search and a message matching any of
        them is a hit. For a supergroup the index of its pre-migration basic group is
        searched too; results are merged by identity key.

        Args:
            group_id: Chat group id
            strategy: Search strategy from the planner
            order: Timestamp ordering of the result

        Returns:
            Matching messages, de-duplicated and ordered by timestamp
        """
        queries = strategy.search_queries()
        if not queries:
            logger.info("Strategy has no terms, nothing to search")
            return []

        logger.info(f"Searching group {group_id} with queries: {queries}")
        requests = [
            SearchRequest(
                q=query,
                limit=self.search_limit,
                matching_strategy="all",
                attributes_to_search_on=["text"],
                sort=[f"created_at:{order.value}"],
            )
            for query in queries
        ]

        merged: dict[tuple[int, int], ChatMessage] = {}
        for probe_id in group_ids_to_probe(group_id):
            # Only the current id gets an index created on demand.
            handle = await self.index_manager.index_for(probe_id, create=probe_id == group_id)
            if handle is None:
                continue
            for request in requests:
                for message in await self._search(handle, request):
                    merged.setdefault(message.identity_key, message)

        logger.info(f"Found {len(merged)} matching messages")
        return sort_messages(merged.values(), order)

    async def search_text(self, group_id: int, query: str, limit: int = 20) -> list[ChatMessage]:
        """Plain keyword search, newest first."""
        strategy = SearchStrategy(search_query=query)
        messages = await self.retrieve(group_id, strategy, order=SortOrder.DESC)
        return messages[:limit]

    async def fetch_context(self, hits: list[ChatMessage]) -> list[ChatMessage]:
        """Expand hits with the messages posted around them.

        Each hit triggers a filtered search over ``[t - W, t + W]`` in its own group.
        Sub-searches run with bounded concurrency; a failed sub-search is logged and
        leaves that hit unexpanded.

        Returns:
            Hits plus context, de-duplicated and sorted ascending by timestamp
        """
        merged: dict[tuple[int, int], ChatMessage] = {m.identity_key: m for m in hits}
        if not hits:
            return []

        semaphore = asyncio.Semaphore(self.context_concurrency)
        window = int(self.context_window.total_seconds())

        async def around(hit: ChatMessage) -> list[ChatMessage]:
            async with semaphore:
                handle = await self.index_manager.index_for(hit.group_id, create=False)
                if handle is None:
                    logger.warning(f"No index for group {hit.group_id}, {hit.search_uid} left unexpanded")
                    return []
                request = SearchRequest(
                    q="",
                    filter=[
                        f"group_id = {hit.group_id}",
                        f"created_at >= {hit.created_at_unix - window}",
                        f"created_at <= {hit.created_at_unix + window}",
                    ],
                    sort=["created_at:asc"],
                    limit=self.context_limit,
                )
                return await self._search(handle, request)

        results = await asyncio.gather(*(around(hit) for hit in hits), return_exceptions=True)

        # Merge happens after gather on the event loop, so no locking is needed.
        for hit, result in zip(hits, results):
            if isinstance(result, BaseException):
                logger.warning(f"Context fetch failed for {hit.search_uid}: {result}")
                continue
            for message in result:
                merged.setdefault(message.identity_key, message)

        logger.info(f"Expanded {len(hits)} hits into {len(merged)} messages")
        return sort_messages(merged.values(), SortOrder.ASC)

    async def _search(self, handle: IndexHandle, request: SearchRequest) -> list[ChatMessage]:
        payload = request.to_payload()
        response = await self.executor.execute(
            f"search:{handle.uid}",
            lambda: self.client.search(handle.uid, payload),
        )
        return decode_hits(response.get("hits", []))
