"""SQLite storage adapter.

Implements the MessageStorage port with a single table keyed by
``(group_id, message_id)``.
"""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from chatrecall.models import ChatMessage


class SQLiteMessageStorage:
    """Thin SQLite wrapper that satisfies the MessageStorage contract."""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = str(db_path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create the messages table if it does not exist."""
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    group_id INTEGER NOT NULL,
                    message_id INTEGER NOT NULL,
                    author_id INTEGER NOT NULL,
                    author_handle TEXT NOT NULL,
                    text TEXT NOT NULL,
                    created_at INTEGER NOT NULL,
                    PRIMARY KEY (group_id, message_id)
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_messages_group_time ON messages (group_id, created_at)"
            )

    def store(self, message: ChatMessage) -> None:
        """Upsert a message; an edit replaces author and text."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO messages (group_id, message_id, author_id, author_handle, text, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(group_id, message_id) DO UPDATE SET
                    author_id = excluded.author_id,
                    author_handle = excluded.author_handle,
                    text = excluded.text,
                    created_at = excluded.created_at
                """,
                (
                    message.group_id,
                    message.message_id,
                    message.author_id,
                    message.author_handle,
                    message.text,
                    message.created_at_unix,
                ),
            )

    def get_message(self, group_id: int, message_id: int) -> ChatMessage | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM messages WHERE group_id = ? AND message_id = ?",
                (group_id, message_id),
            ).fetchone()
        return _row_to_message(row) if row else None

    def messages_in_range(self, group_id: int, start: datetime, end: datetime) -> list[ChatMessage]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM messages
                WHERE group_id = ? AND created_at >= ? AND created_at <= ?
                ORDER BY created_at ASC, message_id ASC
                """,
                (group_id, int(start.timestamp()), int(end.timestamp())),
            ).fetchall()
        return [_row_to_message(row) for row in rows]

    def recent_messages(self, group_id: int, limit: int) -> list[ChatMessage]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM messages
                WHERE group_id = ?
                ORDER BY created_at DESC, message_id DESC
                LIMIT ?
                """,
                (group_id, limit),
            ).fetchall()
        return [_row_to_message(row) for row in rows]


def _row_to_message(row: sqlite3.Row) -> ChatMessage:
    return ChatMessage(
        group_id=row["group_id"],
        message_id=row["message_id"],
        author_id=row["author_id"],
        author_handle=row["author_handle"],
        text=row["text"],
        created_at=datetime.fromtimestamp(row["created_at"], tz=timezone.utc),
    )
