"""Tests for background history backfill."""

import asyncio

import pytest
from conftest import make_message

from chatrecall.errors import IndexEngineError
from chatrecall.search import BackfillResult, BackfillTask

GROUP = -1001234567890
INDEX = "test_m1001234567890"


class FakeStorage:
    """In-memory MessageStorage."""

    def __init__(self, messages=None):
        self.messages = {m.identity_key: m for m in messages or []}

    def store(self, message):
        self.messages[message.identity_key] = message

    def get_message(self, group_id, message_id):
        return self.messages.get((group_id, message_id))

    def messages_in_range(self, group_id, start, end):
        return sorted(
            (m for m in self.messages.values() if m.group_id == group_id and start <= m.created_at <= end),
            key=lambda m: m.created_at,
        )

    def recent_messages(self, group_id, limit):
        newest = sorted(
            (m for m in self.messages.values() if m.group_id == group_id),
            key=lambda m: m.created_at,
            reverse=True,
        )
        return newest[:limit]


class TestBackfillTask:
    @pytest.mark.asyncio
    async def test_indexes_stored_history(self, ingestor, fake_client):
        storage = FakeStorage([make_message(i, f"message {i}", seconds=i) for i in range(1, 8)])
        results: list[BackfillResult] = []

        async def on_complete(result: BackfillResult) -> None:
            results.append(result)

        task = BackfillTask(GROUP, storage, ingestor, batch_size=3, on_complete=on_complete).start()
        result = await task.wait()

        assert result.success
        assert result.indexed == 7
        assert result.total == 7
        assert task.done()
        assert task.indexed == 7
        assert results == [result]
        assert len(fake_client.indexes[INDEX]) == 7

    @pytest.mark.asyncio
    async def test_limit_keeps_newest(self, ingestor, fake_client):
        storage = FakeStorage([make_message(i, f"message {i}", seconds=i) for i in range(1, 8)])

        result = await BackfillTask(GROUP, storage, ingestor, limit=3).start().wait()

        assert result.indexed == 3
        assert sorted(fake_client.indexes[INDEX]) == [f"{GROUP}-5", f"{GROUP}-6", f"{GROUP}-7"]

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, ingestor, fake_client):
        storage = FakeStorage([make_message(i, f"message {i}", seconds=i) for i in range(1, 4)])

        await BackfillTask(GROUP, storage, ingestor).start().wait()
        await BackfillTask(GROUP, storage, ingestor).start().wait()

        assert len(fake_client.indexes[INDEX]) == 3

    @pytest.mark.asyncio
    async def test_failure_is_reported(self, ingestor, fake_client):
        async def broken_add(*args, **kwargs):
            raise IndexEngineError("engine down")

        fake_client.add_documents = broken_add
        storage = FakeStorage([make_message(1, "hello")])
        results: list[BackfillResult] = []

        async def on_complete(result: BackfillResult) -> None:
            results.append(result)

        result = await BackfillTask(GROUP, storage, ingestor, on_complete=on_complete).start().wait()

        assert not result.success
        assert "engine down" in result.error
        assert results == [result]

    @pytest.mark.asyncio
    async def test_cancel_notifies_and_stops(self, ingestor):
        started = asyncio.Event()
        results: list[BackfillResult] = []

        class SlowStorage(FakeStorage):
            def recent_messages(self, group_id, limit):
                return [make_message(1, "hello")]

        original_ingest_many = ingestor.ingest_many

        async def slow_ingest_many(*args, **kwargs):
            started.set()
            await asyncio.sleep(10)
            return await original_ingest_many(*args, **kwargs)

        ingestor.ingest_many = slow_ingest_many

        async def on_complete(result: BackfillResult) -> None:
            results.append(result)

        task = BackfillTask(GROUP, SlowStorage(), ingestor, on_complete=on_complete).start()
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task.wait()
        assert results[0].cancelled
        assert not results[0].success

    def test_wait_requires_start(self, ingestor):
        task = BackfillTask(GROUP, FakeStorage(), ingestor)
        assert not task.done()
        with pytest.raises(RuntimeError):
            asyncio.run(task.wait())

    @pytest.mark.asyncio
    async def test_cannot_start_twice(self, ingestor):
        task = BackfillTask(GROUP, FakeStorage(), ingestor).start()
        with pytest.raises(RuntimeError):
            task.start()
        await task.wait()
