"""Wiring of the pipeline components from settings."""

import logging
from dataclasses import dataclass
from datetime import timedelta

from chatrecall.config import Settings, get_settings
from chatrecall.llm import LLMProvider, create_llm_provider
from chatrecall.query import (
    ConversationGrouper,
    QueryPlanner,
    QuestionAnswerer,
    ResponseRenderer,
    Vocabulary,
    load_vocabulary,
)
from chatrecall.search import (
    IndexManager,
    MeiliClient,
    MessageIngestor,
    MessageRetriever,
    ResilientExecutor,
)
from chatrecall.storage import SQLiteMessageStorage

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything the transport needs to ingest messages and answer questions."""

    settings: Settings
    client: MeiliClient
    llm_provider: LLMProvider
    storage: SQLiteMessageStorage
    vocabulary: Vocabulary
    index_manager: IndexManager
    ingestor: MessageIngestor
    retriever: MessageRetriever
    answerer: QuestionAnswerer

    @classmethod
    def build(
        cls,
        settings: Settings | None = None,
        llm_provider: LLMProvider | None = None,
        client: MeiliClient | None = None,
    ) -> "AppContext":
        """Create all components from settings.

        Args:
            settings: Application settings, defaults to the global settings
            llm_provider: Completion provider override
            client: Index engine client override

        Returns:
            A ready-to-use context
        """
        settings = settings or get_settings()

        client = client or MeiliClient(
            host=settings.meili_host,
            api_key=settings.meili_api_key,
            timeout=settings.engine_timeout_seconds,
            task_timeout=settings.engine_task_timeout_seconds,
        )
        engine_executor = ResilientExecutor(
            attempts=settings.retry_attempts,
            base_delay=settings.retry_base_delay_seconds,
            timeout=settings.engine_timeout_seconds + settings.engine_task_timeout_seconds,
        )
        completion_executor = ResilientExecutor(
            attempts=settings.retry_attempts,
            base_delay=settings.retry_base_delay_seconds,
            timeout=settings.completion_timeout_seconds,
        )

        storage = SQLiteMessageStorage(settings.sqlite_path)
        storage.init_db()

        vocabulary = load_vocabulary(settings.vocabulary_path)
        llm_provider = llm_provider or create_llm_provider(settings=settings)

        index_manager = IndexManager(client, engine_executor, index_prefix=settings.index_prefix)
        ingestor = MessageIngestor(client, index_manager, engine_executor)
        retriever = MessageRetriever(
            client,
            index_manager,
            engine_executor,
            search_limit=settings.search_limit,
            context_window=timedelta(seconds=settings.context_window_seconds),
            context_limit=settings.context_limit,
            context_concurrency=settings.context_concurrency,
        )
        answerer = QuestionAnswerer(
            planner=QueryPlanner(llm_provider, vocabulary, executor=completion_executor),
            retriever=retriever,
            grouper=ConversationGrouper(
                vocabulary,
                timeout=timedelta(seconds=settings.conversation_timeout_seconds),
            ),
            renderer=ResponseRenderer(deep_link_host=settings.deep_link_host),
            timeout=settings.question_timeout_seconds,
        )

        logger.info(
            f"Pipeline ready: engine={settings.meili_host}, provider={settings.llm_provider.value}, "
            f"store={settings.sqlite_path}"
        )
        return cls(
            settings=settings,
            client=client,
            llm_provider=llm_provider,
            storage=storage,
            vocabulary=vocabulary,
            index_manager=index_manager,
            ingestor=ingestor,
            retriever=retriever,
            answerer=answerer,
        )

    async def health_check(self) -> dict[str, bool]:
        return {
            "index_engine": await self.client.health_check(),
            "llm": await self.llm_provider.health_check(),
        }

    async def aclose(self) -> None:
        await self.client.aclose()
        await self.llm_provider.aclose()
