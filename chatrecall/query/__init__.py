"""Question planning, grouping, rendering and the answering pipeline."""

from .grouper import Conversation, ConversationGrouper
from .models import Answer, AnswerStatus, LinkSpan
from .planner import QueryPlanner
from .processor import QuestionAnswerer
from .renderer import ResponseRenderer
from .vocabulary import Vocabulary, load_vocabulary

__all__ = [
    "Answer",
    "AnswerStatus",
    "Conversation",
    "ConversationGrouper",
    "LinkSpan",
    "QueryPlanner",
    "QuestionAnswerer",
    "ResponseRenderer",
    "Vocabulary",
    "load_vocabulary",
]
