"""Index document and request models for the text index engine."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from chatrecall.models import ChatMessage


class SortOrder(str, Enum):
    """Timestamp ordering of retrieved messages."""

    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class IndexHandle:
    """A configured per-group index."""

    group_id: int
    uid: str


class IndexedMessage(BaseModel):
    """A message document as stored in a group index.

    Engine hits are validated against this model; a hit whose fields do not match is
    rejected with a ``ValidationError`` naming the offending fields.
    """

    model_config = ConfigDict(extra="ignore")

    uid: str
    message_id: int
    group_id: int
    author_id: int = 0
    author_handle: str = ""
    text: str
    created_at: int

    @classmethod
    def from_message(cls, message: ChatMessage) -> "IndexedMessage":
        return cls(
            uid=message.search_uid,
            message_id=message.message_id,
            group_id=message.group_id,
            author_id=message.author_id,
            author_handle=message.author_handle,
            text=message.text,
            created_at=message.created_at_unix,
        )

    def to_message(self) -> ChatMessage:
        return ChatMessage(
            group_id=self.group_id,
            message_id=self.message_id,
            author_id=self.author_id,
            author_handle=self.author_handle,
            text=self.text,
            created_at=datetime.fromtimestamp(self.created_at, tz=timezone.utc),
        )


class SearchRequest(BaseModel):
    """Body of a search call, serialized with the engine's camelCase names."""

    model_config = ConfigDict(populate_by_name=True)

    q: str = ""
    filter: list[str] | None = None
    sort: list[str] | None = None
    limit: int = 20
    matching_strategy: str | None = Field(default=None, alias="matchingStrategy")
    attributes_to_search_on: list[str] | None = Field(default=None, alias="attributesToSearchOn")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
