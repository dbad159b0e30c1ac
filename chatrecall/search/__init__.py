"""Text index access: lifecycle, ingestion, retrieval and backfill."""

from .backfill import BackfillResult, BackfillTask
from .client import MeiliClient
from .executor import ResilientExecutor
from .index_manager import INDEX_SETTINGS, IndexManager
from .ingestion import MessageIngestor
from .models import IndexedMessage, IndexHandle, SearchRequest, SortOrder
from .retriever import MessageRetriever, sort_messages

__all__ = [
    "BackfillResult",
    "BackfillTask",
    "INDEX_SETTINGS",
    "IndexHandle",
    "IndexManager",
    "IndexedMessage",
    "MeiliClient",
    "MessageIngestor",
    "MessageRetriever",
    "ResilientExecutor",
    "SearchRequest",
    "SortOrder",
    "sort_messages",
]
