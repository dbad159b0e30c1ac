"""Rendering of conversations into a linked answer."""

from chatrecall.ids import message_link
from chatrecall.models import ChatMessage
from chatrecall.query.models import Answer, AnswerStatus, LinkSpan

DISCUSSIONS_HEADER = "\n\nHere are the relevant discussions:\n\n"
TIP_FOOTER = "\nTip: Tap any message to jump to that part of the chat history."
ELLIPSIS = "…"

NO_RESULTS_MESSAGE = (
    "I couldn't find any relevant discussions about this topic in our chat history. "
    "You might be the first one to bring this up!"
)
MISSING_CAPABILITY_MESSAGE = (
    "⚠️ I need to be an administrator to access message history.\n"
    "Please make me an administrator with these permissions:\n"
    "- Read Messages\n"
    "- Send Messages"
)
FAILURE_MESSAGE = "Sorry, an error occurred while processing your question. Please try again later."


def _utf16_len(text: str) -> int:
    return len(text.encode("utf-16-le")) // 2


class _TextBuilder:
    """Accumulates text while tracking its length in both offset units."""

    def __init__(self) -> None:
        self.parts: list[str] = []
        self.byte_pos = 0
        self.utf16_pos = 0

    def write(self, text: str) -> None:
        self.parts.append(text)
        self.byte_pos += len(text.encode("utf-8"))
        self.utf16_pos += _utf16_len(text)

    def text(self) -> str:
        return "".join(self.parts)


class ResponseRenderer:
    """Renders numbered conversations with a deep link per message line."""

    def __init__(self, deep_link_host: str = "t.me", max_length: int | None = 4096) -> None:
        """Initialize the renderer.

        Args:
            deep_link_host: Host of the message permalinks
            max_length: Message length limit in UTF-16 units. Conversations that would
                push the answer past it are left out. The first one is always kept,
                cut after its last line that fits.
        """
        self.deep_link_host = deep_link_host
        self.max_length = max_length

    def render(self, conversations: list[list[ChatMessage]], explanation: str) -> Answer:
        conversations = [c for c in conversations if c]
        if not conversations:
            return self.no_results()

        builder = _TextBuilder()
        builder.write(explanation.strip())
        builder.write(DISCUSSIONS_HEADER)

        links: list[LinkSpan] = []
        rendered = 0
        for number, conversation in enumerate(conversations, 1):
            if number > 1 and self._exceeds_limit(builder, number, conversation):
                break
            rendered = number
            if number > 1:
                builder.write("\n")
            for position, message in enumerate(conversation):
                line = format_message_line(message)
                if position == 0:
                    builder.write(f"{number}. ")
                    line = self._fit_line(builder, line)
                elif not self._fits(builder, line):
                    # Only the first conversation can overflow; it is cut at a line boundary.
                    break
                links.append(
                    LinkSpan(
                        offset=builder.byte_pos,
                        length=len(line.encode("utf-8")),
                        url=message_link(self.deep_link_host, message.group_id, message.message_id),
                        utf16_offset=builder.utf16_pos,
                        utf16_length=_utf16_len(line),
                    )
                )
                builder.write(line)
                builder.write("\n")

        builder.write(TIP_FOOTER)
        return Answer(
            text=builder.text(),
            links=links,
            status=AnswerStatus.OK,
            conversation_count=rendered,
        )

    def _exceeds_limit(self, builder: _TextBuilder, number: int, conversation: list[ChatMessage]) -> bool:
        if self.max_length is None:
            return False
        block = f"\n{number}. " + "".join(f"{format_message_line(m)}\n" for m in conversation)
        return builder.utf16_pos + _utf16_len(block) + _utf16_len(TIP_FOOTER) > self.max_length

    def _fits(self, builder: _TextBuilder, line: str) -> bool:
        if self.max_length is None:
            return True
        return builder.utf16_pos + _utf16_len(line) + 1 + _utf16_len(TIP_FOOTER) <= self.max_length

    def _fit_line(self, builder: _TextBuilder, line: str) -> str:
        """Shorten a line that cannot fit on its own, ending it with an ellipsis."""
        if self._fits(builder, line):
            return line
        budget = self.max_length - builder.utf16_pos - 1 - _utf16_len(TIP_FOOTER) - _utf16_len(ELLIPSIS)
        kept: list[str] = []
        used = 0
        for char in line:
            used += _utf16_len(char)
            if used > budget:
                break
            kept.append(char)
        return "".join(kept) + ELLIPSIS

    def no_results(self) -> Answer:
        return Answer(text=NO_RESULTS_MESSAGE, status=AnswerStatus.NO_RESULTS)

    def missing_capability(self) -> Answer:
        return Answer(text=MISSING_CAPABILITY_MESSAGE, status=AnswerStatus.MISSING_CAPABILITY)

    def failure(self) -> Answer:
        return Answer(text=FAILURE_MESSAGE, status=AnswerStatus.FAILED)


def format_message_line(message: ChatMessage) -> str:
    handle = message.author_handle or "unknown"
    return f"@{handle}: {message.text}"
