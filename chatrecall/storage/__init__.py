"""Message persistence."""

from .base import MessageStorage
from .sqlite import SQLiteMessageStorage

__all__ = ["MessageStorage", "SQLiteMessageStorage"]
