"""End-to-end tests for the question answering pipeline."""

import asyncio
import json

import pytest
from conftest import FakeLLMProvider, make_message

from chatrecall.errors import IndexEngineError
from chatrecall.models import Question
from chatrecall.query import (
    AnswerStatus,
    ConversationGrouper,
    QueryPlanner,
    QuestionAnswerer,
    ResponseRenderer,
)
from chatrecall.query.renderer import FAILURE_MESSAGE, MISSING_CAPABILITY_MESSAGE
from chatrecall.search import MessageRetriever

GROUP = -1001234567890

STRATEGY = json.dumps(
    {
        "key_terms": ["localstack", "aws"],
        "relevance_criteria": "Messages about running AWS services locally",
        "search_query": "localstack aws",
    }
)


def build_answerer(retriever, vocabulary, outputs, timeout=5.0) -> QuestionAnswerer:
    return QuestionAnswerer(
        planner=QueryPlanner(FakeLLMProvider(outputs), vocabulary),
        retriever=retriever,
        grouper=ConversationGrouper(vocabulary),
        renderer=ResponseRenderer(),
        timeout=timeout,
    )


class TestQuestionAnswerer:
    def test_preprocess_question(self, retriever, vocabulary):
        answerer = build_answerer(retriever, vocabulary, [])

        cleaned = answerer.preprocess_question("/ask@recall_bot  how do I test https://aws.amazon.com @bob locally?")

        assert cleaned == "how do I test locally?"

    @pytest.mark.asyncio
    async def test_answers_with_linked_conversation(self, retriever, vocabulary, ingestor):
        await ingestor.ingest_many(
            [
                make_message(100, "Has anyone used LocalStack?", seconds=0),
                make_message(101, "Yes, works great for S3 and SQS", seconds=15, author="bob"),
                make_message(200, "Who is up for lunch?", seconds=5000, author="carol"),
            ]
        )
        answerer = build_answerer(retriever, vocabulary, [f"```json\n{STRATEGY}\n```"])

        answer = await answerer.answer(
            Question(group_id=GROUP, text="How can I test AWS locally?", reply_chat_id=GROUP)
        )

        assert answer.status == AnswerStatus.OK
        assert answer.conversation_count == 1
        assert answer.text.startswith("Messages about running AWS services locally")
        assert [answer.span_text(span) for span in answer.links] == [
            "@alice: Has anyone used LocalStack?",
            "@bob: Yes, works great for S3 and SQS",
        ]
        assert answer.links[0].url == "https://t.me/c/1234567890/100"
        assert "lunch" not in answer.text

    @pytest.mark.asyncio
    async def test_localstack_discussion_is_found(self, retriever, vocabulary, ingestor):
        await ingestor.ingest_many(
            [
                make_message(100, "localstack helps test AWS locally", seconds=0),
                make_message(101, "yes I used it for S3 mocking", seconds=15, author="bob"),
            ]
        )
        answerer = build_answerer(retriever, vocabulary, [])

        answer = await answerer.answer(
            Question(group_id=GROUP, text="has anyone tested AWS locally", reply_chat_id=GROUP)
        )

        assert answer.status == AnswerStatus.OK
        assert answer.conversation_count == 1
        assert [answer.span_text(span) for span in answer.links] == [
            "@alice: localstack helps test AWS locally",
            "@bob: yes I used it for S3 mocking",
        ]
        assert [span.url for span in answer.links] == [
            "https://t.me/c/1234567890/100",
            "https://t.me/c/1234567890/101",
        ]

    @pytest.mark.asyncio
    async def test_recent_discussions_survive_the_search_limit(
        self, fake_client, index_manager, executor, vocabulary, ingestor
    ):
        retriever = MessageRetriever(fake_client, index_manager, executor, search_limit=2)
        await ingestor.ingest_many(
            [make_message(i, f"docker question number {i}", seconds=i * 3600) for i in range(1, 6)]
        )
        answerer = build_answerer(retriever, vocabulary, ["not json"])

        answer = await answerer.answer(Question(group_id=GROUP, text="docker", reply_chat_id=GROUP))

        assert answer.status == AnswerStatus.OK
        assert [span.url for span in answer.links] == [
            "https://t.me/c/1234567890/4",
            "https://t.me/c/1234567890/5",
        ]

    @pytest.mark.asyncio
    async def test_planner_failure_uses_keywords(self, retriever, vocabulary, ingestor):
        await ingestor.ingest(make_message(1, "Docker compose keeps restarting"))
        answerer = build_answerer(retriever, vocabulary, ["not json at all"])

        answer = await answerer.answer(Question(group_id=GROUP, text="docker", reply_chat_id=GROUP))

        assert answer.status == AnswerStatus.OK
        assert answer.text.startswith("Found some messages that might be relevant")

    @pytest.mark.asyncio
    async def test_no_results(self, retriever, vocabulary, ingestor):
        await ingestor.ingest(make_message(1, "unrelated chatter"))
        answerer = build_answerer(retriever, vocabulary, [STRATEGY])

        answer = await answerer.answer(Question(group_id=GROUP, text="localstack?", reply_chat_id=GROUP))

        assert answer.status == AnswerStatus.NO_RESULTS
        assert answer.links == []

    @pytest.mark.asyncio
    async def test_missing_capability_short_circuits(self, retriever, vocabulary, fake_client):
        answerer = build_answerer(retriever, vocabulary, [STRATEGY])

        answer = await answerer.answer(
            Question(group_id=GROUP, text="localstack?", reply_chat_id=GROUP, is_admin=False)
        )

        assert answer.status == AnswerStatus.MISSING_CAPABILITY
        assert answer.text == MISSING_CAPABILITY_MESSAGE
        assert answerer.planner.llm_provider.prompts == []
        assert fake_client.search_calls == []

    @pytest.mark.asyncio
    async def test_engine_failure_becomes_failed_answer(self, retriever, vocabulary, ingestor, fake_client):
        await ingestor.ingest(make_message(1, "localstack"))
        fake_client.failing_indexes.add("test_m1001234567890")
        answerer = build_answerer(retriever, vocabulary, [STRATEGY])

        answer = await answerer.answer(Question(group_id=GROUP, text="localstack?", reply_chat_id=GROUP))

        assert answer.status == AnswerStatus.FAILED
        assert answer.text == FAILURE_MESSAGE

    @pytest.mark.asyncio
    async def test_deadline_becomes_failed_answer(self, retriever, vocabulary):
        answerer = build_answerer(retriever, vocabulary, [STRATEGY], timeout=0.01)

        async def slow_plan(question: str):
            await asyncio.sleep(1)

        answerer.planner.plan = slow_plan

        answer = await answerer.answer(Question(group_id=GROUP, text="localstack?", reply_chat_id=GROUP))

        assert answer.status == AnswerStatus.FAILED

    @pytest.mark.asyncio
    async def test_retrieval_error_is_contained(self, retriever, vocabulary):
        answerer = build_answerer(retriever, vocabulary, [STRATEGY])

        async def broken_retrieve(*args, **kwargs):
            raise IndexEngineError("boom")

        answerer.retriever.retrieve = broken_retrieve

        answer = await answerer.answer(Question(group_id=GROUP, text="localstack?", reply_chat_id=GROUP))

        assert answer.status == AnswerStatus.FAILED
