"""Domain models shared by ingestion, retrieval and the transport adapter."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator


class ChatMessage(BaseModel):
    """A single chat utterance."""

    group_id: int
    message_id: int
    author_id: int = 0
    author_handle: str = ""
    text: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("created_at")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @property
    def identity_key(self) -> tuple[int, int]:
        """Identity of the message across stores and indexes."""
        return (self.group_id, self.message_id)

    @property
    def search_uid(self) -> str:
        """Primary key of the message document in the text index."""
        return f"{self.group_id}-{self.message_id}"

    @property
    def created_at_unix(self) -> int:
        return int(self.created_at.timestamp())

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())


class Question(BaseModel):
    """A question asked in a group about its history."""

    group_id: int
    text: str
    reply_chat_id: int
    is_admin: bool = True


class SearchStrategy(BaseModel):
    """Structured interpretation of a free-text question."""

    key_terms: list[str] = Field(default_factory=list)
    relevance_criteria: str = ""
    search_query: str | None = None

    @field_validator("key_terms")
    @classmethod
    def _clean_terms(cls, value: list[str]) -> list[str]:
        cleaned: list[str] = []
        for term in value:
            term = " ".join(term.split())
            if term and term not in cleaned:
                cleaned.append(term)
        return cleaned

    def search_queries(self) -> list[str]:
        """Build one engine query per alternative.

        The engine has no boolean operators, so the terms are OR-ed by running one
        search per query and taking the union of the hits. A multi-word term also
        gets an exact-phrase query placed before it.
        """
        terms = self.key_terms
        if not terms and self.search_query and self.search_query.strip():
            terms = [" ".join(self.search_query.split())]

        queries: list[str] = []
        for term in terms:
            if " " in term:
                queries.append(f'"{term}"')
            queries.append(term)
        return queries
