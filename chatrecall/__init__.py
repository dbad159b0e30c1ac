"""Chat history search and question answering for group chats."""

__version__ = "0.1.0"
