"""Answer models produced by the query pipeline."""

from enum import Enum

from pydantic import BaseModel, Field


class AnswerStatus(str, Enum):
    """Outcome of answering a question."""

    OK = "ok"
    NO_RESULTS = "no_results"
    MISSING_CAPABILITY = "missing_capability"
    FAILED = "failed"


class LinkSpan(BaseModel):
    """A region of the answer text that links to a chat message.

    ``offset`` and ``length`` count UTF-8 bytes. The ``utf16_*`` pair counts UTF-16
    code units, the unit Telegram uses for message entities.
    """

    offset: int
    length: int
    url: str
    utf16_offset: int
    utf16_length: int


class Answer(BaseModel):
    """Rendered answer text plus its message links."""

    text: str
    links: list[LinkSpan] = Field(default_factory=list)
    status: AnswerStatus = AnswerStatus.OK
    conversation_count: int = 0

    def span_text(self, span: LinkSpan) -> str:
        """Return the text a link span covers."""
        data = self.text.encode("utf-8")
        return data[span.offset : span.offset + span.length].decode("utf-8")

    def to_entities(self) -> list[dict]:
        """Telegram ``text_link`` entities for the links."""
        return [
            {
                "type": "text_link",
                "offset": span.utf16_offset,
                "length": span.utf16_length,
                "url": span.url,
            }
            for span in self.links
        ]
