"""Telegram transport: Bot API client and the search bot."""

from .api import TelegramAPI, TelegramAPIError
from .bot import SearchBot

__all__ = ["SearchBot", "TelegramAPI", "TelegramAPIError"]
