"""Shared fixtures: an in-memory index engine and a scripted completion provider."""

import copy
import re
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from chatrecall.errors import CompletionError, IndexEngineError, IndexTaskFailedError
from chatrecall.llm.base import CompletionResult, LLMProvider
from chatrecall.models import ChatMessage
from chatrecall.query.vocabulary import load_vocabulary
from chatrecall.search import IndexManager, MessageIngestor, MessageRetriever, ResilientExecutor

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
_PHRASE_RE = re.compile(r'"([^"]+)"')


class FakeMeiliClient:
    """In-memory stand-in for MeiliClient.

    Supports the subset of engine behaviour the pipeline relies on: add-or-replace by
    primary key, ``field op value`` filters, sorting on ``created_at`` and queries
    where every word and every quoted phrase must occur in the text. Like the real
    engine it has no boolean operators.
    """

    def __init__(self) -> None:
        self.indexes: dict[str, dict[str, dict[str, Any]]] = {}
        self.settings: dict[str, dict[str, Any]] = {}
        self.tasks: dict[int, dict[str, Any]] = {}
        self.search_calls: list[tuple[str, dict[str, Any]]] = []
        self.create_calls: list[str] = []
        self.failing_indexes: set[str] = set()
        self.raw_hits: dict[str, list[Any]] = {}

    def _task(self, status: str = "succeeded", error: dict[str, str] | None = None) -> dict[str, Any]:
        task_uid = len(self.tasks) + 1
        self.tasks[task_uid] = {"taskUid": task_uid, "status": status, "error": error}
        return {"taskUid": task_uid, "status": "enqueued"}

    async def get_index(self, uid: str) -> dict[str, Any] | None:
        if uid not in self.indexes:
            return None
        return {"uid": uid, "primaryKey": "uid"}

    async def create_index(self, uid: str, primary_key: str) -> dict[str, Any]:
        self.create_calls.append(uid)
        if uid in self.indexes:
            return self._task(
                "failed",
                {"code": "index_already_exists", "message": f"Index `{uid}` already exists."},
            )
        self.indexes[uid] = {}
        return self._task()

    async def update_settings(self, uid: str, settings: dict[str, Any]) -> dict[str, Any]:
        self.settings[uid] = settings
        self.indexes.setdefault(uid, {})
        return self._task()

    async def add_documents(
        self,
        uid: str,
        documents: list[dict[str, Any]],
        primary_key: str | None = None,
    ) -> dict[str, Any]:
        index = self.indexes.setdefault(uid, {})
        for document in documents:
            index[document[primary_key or "uid"]] = copy.deepcopy(document)
        return self._task()

    async def get_document(self, uid: str, document_id: str) -> dict[str, Any] | None:
        return copy.deepcopy(self.indexes.get(uid, {}).get(document_id))

    async def search(self, uid: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.search_calls.append((uid, payload))
        if uid in self.failing_indexes:
            raise IndexEngineError(f"search on {uid} failed", status_code=500)
        if uid not in self.indexes:
            raise IndexEngineError(f"Index `{uid}` not found.", status_code=404, code="index_not_found")

        documents = list(self.indexes[uid].values())
        documents = [d for d in documents if _matches_query(d, payload.get("q", ""))]
        for clause in payload.get("filter") or []:
            documents = [d for d in documents if _matches_filter(d, clause)]
        for sort in payload.get("sort") or []:
            field, _, direction = sort.partition(":")
            documents.sort(key=lambda d: d[field], reverse=direction == "desc")

        hits = documents[: payload.get("limit", 20)] + self.raw_hits.get(uid, [])
        return {"hits": copy.deepcopy(hits)}

    async def get_task(self, task_uid: int) -> dict[str, Any]:
        return self.tasks[task_uid]

    async def wait_for_task(self, task_uid: int, raise_on_failure: bool = True) -> dict[str, Any]:
        task = self.tasks[task_uid]
        if task["status"] != "succeeded" and raise_on_failure:
            error = task["error"] or {}
            raise IndexTaskFailedError(task_uid, task["status"], code=error.get("code"), message=error.get("message", ""))
        return task

    async def health_check(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None


def _matches_query(document: dict[str, Any], query: str) -> bool:
    # matchingStrategy "all": every quoted phrase and every bare word must occur.
    if not query.strip():
        return True
    text = document.get("text", "").lower()
    phrases = _PHRASE_RE.findall(query.lower())
    words = _PHRASE_RE.sub(" ", query.lower()).split()
    return all(phrase in text for phrase in phrases) and all(word in text for word in words)


def _matches_filter(document: dict[str, Any], clause: str) -> bool:
    field, op, raw = clause.split()
    value = int(raw)
    actual = document[field]
    return {
        "=": actual == value,
        ">=": actual >= value,
        "<=": actual <= value,
        ">": actual > value,
        "<": actual < value,
    }[op]


class FakeLLMProvider(LLMProvider):
    """Returns scripted outputs in order; an Exception entry is raised instead."""

    def __init__(self, outputs: list[Any] | None = None) -> None:
        self.outputs = list(outputs or [])
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> CompletionResult:
        self.prompts.append(prompt)
        if not self.outputs:
            raise CompletionError("no scripted output left")
        output = self.outputs.pop(0)
        if isinstance(output, Exception):
            raise output
        return CompletionResult(content=output, model="fake")

    async def health_check(self) -> bool:
        return True


def make_message(
    message_id: int,
    text: str,
    seconds: int = 0,
    group_id: int = -1001234567890,
    author: str = "alice",
) -> ChatMessage:
    """Build a message posted ``seconds`` after BASE_TIME."""
    return ChatMessage(
        group_id=group_id,
        message_id=message_id,
        author_id=sum(map(ord, author)),
        author_handle=author,
        text=text,
        created_at=BASE_TIME + timedelta(seconds=seconds),
    )


@pytest.fixture
def fake_client():
    return FakeMeiliClient()


@pytest.fixture
def executor():
    """Executor that retries without waiting."""

    async def no_sleep(delay: float) -> None:
        return None

    return ResilientExecutor(attempts=2, base_delay=0.5, sleep=no_sleep)


@pytest.fixture
def index_manager(fake_client, executor):
    return IndexManager(fake_client, executor, index_prefix="test")


@pytest.fixture
def ingestor(fake_client, index_manager, executor):
    return MessageIngestor(fake_client, index_manager, executor)


@pytest.fixture
def retriever(fake_client, index_manager, executor):
    return MessageRetriever(fake_client, index_manager, executor, search_limit=50)


@pytest.fixture
def vocabulary():
    return load_vocabulary()
