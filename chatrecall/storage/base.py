"""Storage port for persisted chat messages."""

from datetime import datetime
from typing import Protocol

from chatrecall.models import ChatMessage


class MessageStorage(Protocol):
    """Keyed message persistence used for history backfill."""

    def store(self, message: ChatMessage) -> None:
        """Insert or replace a message by (group_id, message_id)."""
        ...

    def get_message(self, group_id: int, message_id: int) -> ChatMessage | None:
        ...

    def messages_in_range(self, group_id: int, start: datetime, end: datetime) -> list[ChatMessage]:
        """Messages with ``start <= created_at <= end``, oldest first."""
        ...

    def recent_messages(self, group_id: int, limit: int) -> list[ChatMessage]:
        """Up to ``limit`` messages, newest first."""
        ...
