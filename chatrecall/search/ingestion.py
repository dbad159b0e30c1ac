"""Idempotent ingestion of chat messages into their group index."""

import logging
from collections import defaultdict
from collections.abc import Iterable

from pydantic import ValidationError

from chatrecall.models import ChatMessage
from chatrecall.search.client import MeiliClient
from chatrecall.search.executor import ResilientExecutor
from chatrecall.search.index_manager import PRIMARY_KEY, IndexManager
from chatrecall.search.models import IndexHandle, IndexedMessage

logger = logging.getLogger(__name__)


class MessageIngestor:
    """Upserts message documents keyed by ``"{group_id}-{message_id}"``.

    Re-ingesting a message replaces the stored document, so duplicate delivery and
    text edits leave exactly one document per message.
    """

    def __init__(
        self,
        client: MeiliClient,
        index_manager: IndexManager,
        executor: ResilientExecutor,
    ) -> None:
        self.client = client
        self.index_manager = index_manager
        self.executor = executor

    async def ingest(self, message: ChatMessage) -> bool:
        """Index a single message.

        Returns:
            True if the message was written, False if it was skipped for having no text
        """
        if not message.has_text:
            logger.debug(f"Skipping message {message.search_uid} without text")
            return False

        handle = await self.index_manager.index_for(message.group_id)
        await self._upsert(handle, [IndexedMessage.from_message(message)])
        logger.info(f"Indexed message {message.search_uid}")
        return True

    async def ingest_many(self, messages: Iterable[ChatMessage], batch_size: int = 100) -> int:
        """Index many messages, one engine task per batch and group.

        Returns:
            Number of messages written
        """
        by_group: dict[int, list[IndexedMessage]] = defaultdict(list)
        for message in messages:
            if message.has_text:
                by_group[message.group_id].append(IndexedMessage.from_message(message))

        written = 0
        for group_id, documents in by_group.items():
            handle = await self.index_manager.index_for(group_id)
            for start in range(0, len(documents), batch_size):
                batch = documents[start : start + batch_size]
                await self._upsert(handle, batch)
                written += len(batch)
        return written

    async def fetch(self, group_id: int, message_id: int) -> ChatMessage | None:
        """Read a message document back from its group index."""
        handle = await self.index_manager.index_for(group_id, create=False)
        if handle is None:
            return None

        uid = f"{group_id}-{message_id}"
        document = await self.executor.execute(
            f"get_document:{handle.uid}",
            lambda: self.client.get_document(handle.uid, uid),
        )
        if document is None:
            return None
        try:
            return IndexedMessage.model_validate(document).to_message()
        except ValidationError as e:
            logger.warning(f"Stored document {uid} does not decode: {e}")
            return None

    async def _upsert(self, handle: IndexHandle, documents: list[IndexedMessage]) -> None:
        payload = [document.model_dump() for document in documents]

        async def write() -> None:
            task = await self.client.add_documents(handle.uid, payload, primary_key=PRIMARY_KEY)
            await self.client.wait_for_task(task["taskUid"])

        await self.executor.execute(f"add_documents:{handle.uid}", write)
