"""Question to search strategy planning with a completion model."""

import logging

from chatrecall.errors import StrategyParseError
from chatrecall.llm.base import LLMProvider
from chatrecall.models import SearchStrategy
from chatrecall.query.parsing import parse_strategy
from chatrecall.query.vocabulary import Vocabulary
from chatrecall.search.executor import ResilientExecutor

logger = logging.getLogger(__name__)

FALLBACK_CRITERIA = "Found some messages that might be relevant to your question."

PLANNER_PROMPT = """You are a search planner for a group chat history search engine.
A user asked: '{question}'

Work out what the user is looking for, including synonyms, related concepts and specific
products or tools that the chat might mention instead of the words in the question.
For example, "local cloud testing" should also look for LocalStack, and "collecting
website data" should also look for web scraping.

Respond with ONLY a single raw JSON object and nothing else. Do not use markdown, code
fences, code blocks, backticks, or any text before or after the object.
The object must have these fields:
- "key_terms": array of short search terms, most important first
- "relevance_criteria": one sentence describing which messages would answer the question
- "search_query": optional single query string combining the terms

Example: {{"key_terms":["localstack","aws"],"relevance_criteria":"Messages about testing AWS services locally","search_query":"localstack aws"}}"""


class QueryPlanner:
    """Converts a free-text question into a SearchStrategy.

    The model output is validated by ``parse_strategy``. When the model fails or its
    output cannot be parsed, a keyword strategy is built from the question instead, so
    planning itself never fails.
    """

    def __init__(
        self,
        llm_provider: LLMProvider,
        vocabulary: Vocabulary,
        executor: ResilientExecutor | None = None,
    ) -> None:
        self.llm_provider = llm_provider
        self.vocabulary = vocabulary
        self.executor = executor

    def build_prompt(self, question: str) -> str:
        return PLANNER_PROMPT.format(question=question)

    async def plan(self, question: str) -> SearchStrategy:
        """Produce a search strategy for a question."""
        prompt = self.build_prompt(question)
        try:
            output = await self._complete(prompt)
        except Exception as e:
            logger.warning(f"Completion model unavailable, using keyword fallback: {e}")
            return self.fallback_strategy(question)

        try:
            strategy = parse_strategy(output)
        except StrategyParseError as e:
            logger.warning(f"Failed to parse search strategy: {e}")
            logger.debug(f"Raw model output: {e.raw_output}")
            return self.fallback_strategy(question)

        logger.info(f"Planned strategy: {strategy.key_terms}")
        return strategy

    def fallback_strategy(self, question: str) -> SearchStrategy:
        """Keyword strategy from the question's non-stop-words."""
        terms = self.vocabulary.keywords(question)
        logger.info(f"Fallback strategy terms: {terms}")
        return SearchStrategy(key_terms=terms, relevance_criteria=FALLBACK_CRITERIA)

    async def _complete(self, prompt: str) -> str:
        async def call() -> str:
            result = await self.llm_provider.complete(prompt)
            return result.content

        if self.executor is None:
            return await call()
        return await self.executor.execute("plan_strategy", call)
