"""Question answering pipeline over a group's indexed history."""

import asyncio
import logging
import re
import time

from chatrecall.errors import ChatRecallError
from chatrecall.models import Question
from chatrecall.query.grouper import ConversationGrouper
from chatrecall.query.models import Answer
from chatrecall.query.planner import FALLBACK_CRITERIA, QueryPlanner
from chatrecall.query.renderer import ResponseRenderer
from chatrecall.search.models import SortOrder
from chatrecall.search.retriever import MessageRetriever

logger = logging.getLogger(__name__)


class QuestionAnswerer:
    """Runs plan, retrieve, expand, group and render for one question."""

    def __init__(
        self,
        planner: QueryPlanner,
        retriever: MessageRetriever,
        grouper: ConversationGrouper,
        renderer: ResponseRenderer,
        timeout: float | None = 60.0,
    ) -> None:
        """Initialize the pipeline.

        Args:
            planner: Builds the search strategy
            retriever: Executes strategies and expands context
            grouper: Clusters messages into conversations
            renderer: Renders the final answer
            timeout: Deadline in seconds for the whole question, or None
        """
        self.planner = planner
        self.retriever = retriever
        self.grouper = grouper
        self.renderer = renderer
        self.timeout = timeout

    def preprocess_question(self, text: str) -> str:
        """Clean a raw question.

        Args:
            text: Raw question text, possibly still carrying the command

        Returns:
            Cleaned question string
        """
        text = re.sub(r"^/\w+(@\w+)?", "", text.strip())  # Remove the command itself
        text = re.sub(r"https?://\S+", " ", text)  # Remove links
        text = re.sub(r"@\w+", " ", text)  # Remove mentions
        return re.sub(r"\s+", " ", text).strip()

    async def answer(self, question: Question) -> Answer:
        """Answer a question about a group's history.

        Never raises for engine or model failures: those produce an answer with status
        ``failed``. Cancellation propagates to the caller.
        """
        if not question.is_admin:
            return self.renderer.missing_capability()

        text = self.preprocess_question(question.text)
        start_time = time.time()
        logger.info(f"Processing question for group {question.group_id}: {text}")

        try:
            if self.timeout is not None:
                answer = await asyncio.wait_for(self._run(question.group_id, text), self.timeout)
            else:
                answer = await self._run(question.group_id, text)
        except asyncio.TimeoutError:
            logger.error(f"Question timed out after {self.timeout}s: {text}")
            return self.renderer.failure()
        except ChatRecallError as e:
            logger.error(f"Question failed: {e}")
            return self.renderer.failure()

        logger.info(
            f"Question answered in {time.time() - start_time:.2f}s "
            f"with {answer.conversation_count} conversations ({answer.status.value})"
        )
        return answer

    async def _run(self, group_id: int, text: str) -> Answer:
        strategy = await self.planner.plan(text)

        # Newest first so the search limit drops the oldest matches; the pool is re-sorted below.
        hits = await self.retriever.retrieve(group_id, strategy, order=SortOrder.DESC)
        if not hits:
            return self.renderer.no_results()

        pool = await self.retriever.fetch_context(hits)
        conversations = self.grouper.group(pool)
        logger.info(f"Grouped {len(pool)} messages into {len(conversations)} conversations")

        explanation = strategy.relevance_criteria or FALLBACK_CRITERIA
        return self.renderer.render(conversations, explanation)
