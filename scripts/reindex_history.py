"""Rebuild a group's search index from the local message store.

Usage:
    python scripts/reindex_history.py -1001234567890 --limit 5000
"""

import argparse
import asyncio
import logging

from dotenv import load_dotenv
from tqdm.asyncio import tqdm

from chatrecall.config import get_settings
from chatrecall.search import IndexManager, MeiliClient, MessageIngestor, ResilientExecutor
from chatrecall.storage import SQLiteMessageStorage

# Set up logging - silence httpx spam but keep our logs
logging.basicConfig(level=logging.INFO)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


async def reindex(group_id: int, limit: int, batch_size: int) -> int:
    settings = get_settings()
    client = MeiliClient(
        host=settings.meili_host,
        api_key=settings.meili_api_key,
        timeout=settings.engine_timeout_seconds,
        task_timeout=settings.engine_task_timeout_seconds,
    )
    executor = ResilientExecutor(
        attempts=settings.retry_attempts,
        base_delay=settings.retry_base_delay_seconds,
    )
    ingestor = MessageIngestor(client, IndexManager(client, executor, settings.index_prefix), executor)

    storage = SQLiteMessageStorage(settings.sqlite_path)
    storage.init_db()
    messages = storage.recent_messages(group_id, limit)
    messages.reverse()
    print(f"📥 Loaded {len(messages)} stored messages for group {group_id}")

    indexed = 0
    progress = tqdm(total=len(messages), desc="📦 Indexing messages", unit="msg", ncols=100)
    try:
        for start in range(0, len(messages), batch_size):
            batch = messages[start : start + batch_size]
            indexed += await ingestor.ingest_many(batch, batch_size=batch_size)
            progress.update(len(batch))
    finally:
        progress.close()
        await client.aclose()
    return indexed


def main() -> None:
    load_dotenv()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("group_id", type=int, help="Chat id of the group to re-index")
    parser.add_argument("--limit", type=int, default=1000, help="Newest stored messages to index")
    parser.add_argument("--batch-size", type=int, default=100, help="Documents per engine write")
    args = parser.parse_args()

    indexed = asyncio.run(reindex(args.group_id, args.limit, args.batch_size))
    print(f"✅ Indexed {indexed} messages")


if __name__ == "__main__":
    main()
