"""Clustering of retrieved messages into conversation threads."""

from datetime import timedelta

from chatrecall.models import ChatMessage
from chatrecall.query.vocabulary import Vocabulary
from chatrecall.search.models import SortOrder
from chatrecall.search.retriever import sort_messages

Conversation = list[ChatMessage]

SHORT_REPLY_WORDS = 5


class ConversationGrouper:
    """Groups time-ordered messages in a single left-to-right pass.

    Two adjacent messages belong to the same conversation when they are close in time,
    when the later one looks like a short answer to a question, or when they share a
    significant term.
    """

    def __init__(self, vocabulary: Vocabulary, timeout: timedelta = timedelta(minutes=2)) -> None:
        self.vocabulary = vocabulary
        self.timeout = timeout

    def group(self, messages: list[ChatMessage]) -> list[Conversation]:
        ordered = sort_messages(messages, SortOrder.ASC)
        if not ordered:
            return []

        conversations: list[Conversation] = []
        current: Conversation = [ordered[0]]
        for previous, message in zip(ordered, ordered[1:]):
            if self.related(previous, message):
                current.append(message)
            else:
                conversations.append(current)
                current = [message]
        conversations.append(current)
        return conversations

    def related(self, earlier: ChatMessage, later: ChatMessage) -> bool:
        if later.created_at - earlier.created_at < self.timeout:
            return True
        if is_direct_reply(earlier.text, later.text):
            return True
        return self.vocabulary.share_terms(
            self.vocabulary.significant_terms(earlier.text),
            self.vocabulary.significant_terms(later.text),
        )


def is_direct_reply(previous_text: str, text: str) -> bool:
    """A short message right after a question is treated as its answer."""
    return previous_text.strip().endswith("?") and len(text.split()) < SHORT_REPLY_WORDS
