"""Tests for the SQLite message store."""

from datetime import timedelta

import pytest
from conftest import BASE_TIME, make_message

from chatrecall.storage import SQLiteMessageStorage

GROUP = -1001234567890


@pytest.fixture
def storage(tmp_path):
    store = SQLiteMessageStorage(tmp_path / "nested" / "messages.db")
    store.init_db()
    return store


def test_store_and_get(storage):
    message = make_message(1, "Has anyone used LocalStack?")
    storage.store(message)

    assert storage.get_message(GROUP, 1) == message
    assert storage.get_message(GROUP, 2) is None


def test_store_replaces_on_edit(storage):
    storage.store(make_message(1, "first"))
    storage.store(make_message(1, "edited"))

    assert storage.get_message(GROUP, 1).text == "edited"
    assert len(storage.recent_messages(GROUP, 10)) == 1


def test_messages_in_range_is_inclusive_and_ascending(storage):
    for i, seconds in enumerate([0, 30, 60, 90, 300], start=1):
        storage.store(make_message(i, f"m{i}", seconds=seconds))
    storage.store(make_message(99, "other group", group_id=-42, seconds=30))

    messages = storage.messages_in_range(GROUP, BASE_TIME + timedelta(seconds=30), BASE_TIME + timedelta(seconds=90))

    assert [m.message_id for m in messages] == [2, 3, 4]


def test_recent_messages_newest_first(storage):
    for i in range(1, 6):
        storage.store(make_message(i, f"m{i}", seconds=i))

    assert [m.message_id for m in storage.recent_messages(GROUP, 3)] == [5, 4, 3]


def test_init_db_is_idempotent(storage):
    storage.store(make_message(1, "kept"))
    storage.init_db()

    assert storage.get_message(GROUP, 1).text == "kept"
