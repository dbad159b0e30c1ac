"""Telegram bot: message ingestion and history questions over long polling."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from chatrecall.errors import ChatRecallError
from chatrecall.models import ChatMessage, Question
from chatrecall.query.models import Answer
from chatrecall.search.backfill import BackfillResult, BackfillTask
from chatrecall.telegram.api import TelegramAPI, TelegramAPIError

if TYPE_CHECKING:
    from chatrecall.context import AppContext

logger = logging.getLogger(__name__)

GROUP_CHAT_TYPES = {"group", "supergroup"}
ADMIN_STATUSES = {"administrator", "creator"}
ALLOWED_UPDATES = ["message", "edited_message", "my_chat_member"]
MAX_MESSAGE_CHARS = 4096

HELP_TEXT = (
    "Available commands:\n"
    "/search <query> - Search for messages\n"
    "/ask <question> - Ask a question about past messages\n"
    "/status - Check bot permissions and status\n"
    "/reindex - Rebuild the search index from stored history (admins)\n"
    "/help - Show this help message"
)
WELCOME_TEXT = (
    "Thanks for adding me! I'll index new messages from now on.\n\n"
    "Required permissions:\n"
    "- Read Messages\n"
    "- Send Messages\n\n"
    "Use /help to see available commands."
)


def message_from_update(message: dict[str, Any]) -> ChatMessage | None:
    """Map a Bot API message object to a ChatMessage, or None for non-group chats."""
    chat = message.get("chat") or {}
    if chat.get("type") not in GROUP_CHAT_TYPES:
        return None

    sender = message.get("from") or {}
    return ChatMessage(
        group_id=chat["id"],
        message_id=message["message_id"],
        author_id=sender.get("id", 0),
        author_handle=sender.get("username") or sender.get("first_name") or "",
        text=message.get("text") or "",
        created_at=datetime.fromtimestamp(message["date"], tz=timezone.utc),
    )


def split_command(text: str) -> tuple[str, str]:
    """Split ``/cmd@bot args`` into ``("cmd", "args")``."""
    head, _, args = text.strip().partition(" ")
    command = head[1:].split("@", 1)[0].lower()
    return command, args.strip()


class SearchBot:
    """Chat history search bot.

    Updates are handled one at a time. Only history backfills run in the background,
    as BackfillTask handles that report back with a follow-up message.
    """

    def __init__(self, context: "AppContext", api: TelegramAPI | None = None):
        self.context = context
        self.settings = context.settings
        self.api = api or TelegramAPI(
            token=self.settings.telegram_bot_token,
            base_url=self.settings.telegram_api_base,
        )
        self.backfills: dict[int, BackfillTask] = {}
        self.bot_id: int | None = None
        self._running = False

        self._commands = {
            "start": self._handle_start_command,
            "help": self._handle_help_command,
            "status": self._handle_status_command,
            "search": self._handle_search_command,
            "ask": self._handle_ask_command,
            "reindex": self._handle_reindex_command,
        }

    async def start(self) -> None:
        """Identify the bot and consume updates until stopped."""
        me = await self.api.get_me()
        self.bot_id = me["id"]
        logger.info(f"Authorized as @{me.get('username')}")

        self._running = True
        offset: int | None = None
        while self._running:
            try:
                offset = await self.poll_once(offset)
            except TelegramAPIError as e:
                logger.error(f"Polling failed: {e}")
                await asyncio.sleep(self.settings.retry_base_delay_seconds or 1.0)

    async def stop(self) -> None:
        """Stop polling and cancel running backfills."""
        logger.info("Stopping search bot...")
        self._running = False
        for task in self.backfills.values():
            task.cancel()
        await self.api.aclose()

    async def poll_once(self, offset: int | None) -> int | None:
        """Fetch one batch of updates and handle them in order.

        Returns:
            Offset for the next poll
        """
        updates = await self.api.get_updates(offset, self.settings.telegram_poll_timeout, ALLOWED_UPDATES)
        for update in updates:
            offset = update["update_id"] + 1
            try:
                await self.handle_update(update)
            except Exception as e:
                logger.error(f"Error handling update {update.get('update_id')}: {e}")
        return offset

    async def handle_update(self, update: dict[str, Any]) -> None:
        if "my_chat_member" in update:
            await self._handle_chat_member_update(update["my_chat_member"])
            return

        message = update.get("message") or update.get("edited_message")
        if not message:
            return

        text = message.get("text") or ""
        if text.startswith("/"):
            # Edited commands are neither re-run nor indexed.
            if "message" in update:
                await self._handle_command(message)
            return

        chat_message = message_from_update(message)
        if chat_message is not None:
            await self.store_message(chat_message)

    async def store_message(self, message: ChatMessage) -> None:
        """Persist and index a group message; media-only messages are skipped."""
        if not message.has_text:
            return
        await asyncio.to_thread(self.context.storage.store, message)
        await self.context.ingestor.ingest(message)

    async def _handle_command(self, message: dict[str, Any]) -> None:
        command, args = split_command(message.get("text", ""))
        handler = self._commands.get(command)
        chat_id = message["chat"]["id"]
        if handler is None:
            await self.send_text(chat_id, "Unknown command. Use /help to see available commands.")
            return

        logger.info(f"Command /{command} in chat {chat_id}")
        await handler(message, args)

    async def _handle_start_command(self, message: dict[str, Any], args: str) -> None:
        await self.send_text(
            message["chat"]["id"],
            "Hello! I'm a search bot. I can help you find messages in this group. "
            "Use /help to see available commands.",
        )

    async def _handle_help_command(self, message: dict[str, Any], args: str) -> None:
        await self.send_text(message["chat"]["id"], HELP_TEXT)

    async def _handle_status_command(self, message: dict[str, Any], args: str) -> None:
        chat = message["chat"]
        if chat.get("type") not in GROUP_CHAT_TYPES:
            await self.send_text(chat["id"], "This command only works in groups.")
            return

        try:
            member = await self.api.get_chat_member(chat["id"], self.bot_id)
        except TelegramAPIError as e:
            logger.error(f"Error getting bot member info: {e}")
            await self.send_text(chat["id"], "Error checking bot status.")
            return

        status = member.get("status", "unknown")
        text = f"Bot Status in this group:\nRole: {status}\n"
        if status in ADMIN_STATUSES:
            text += "✅ Bot is properly configured with admin access.\n"
        else:
            text += (
                "❌ Bot needs to be an administrator to access messages.\n"
                "Please make me an administrator with these permissions:\n"
                "- Read Messages\n"
                "- Send Messages"
            )
        await self.send_text(chat["id"], text)

    async def _handle_search_command(self, message: dict[str, Any], args: str) -> None:
        chat_id = message["chat"]["id"]
        if not args:
            await self.send_text(chat_id, "Please provide a search query. Example: /search golang")
            return

        try:
            results = await self.context.retriever.search_text(chat_id, args)
        except ChatRecallError as e:
            logger.error(f"Search error: {e}")
            await self.send_text(chat_id, "Sorry, an error occurred while searching.")
            return

        if not results:
            await self.send_text(chat_id, "No messages found matching your query.")
            return

        text = "Found messages:\n\n"
        for result in results:
            entry = f"From @{result.author_handle or 'unknown'}:\n{result.text}\n\n"
            if len(text) + len(entry) > MAX_MESSAGE_CHARS:
                break
            text += entry
        await self.send_text(chat_id, text.rstrip())

    async def _handle_ask_command(self, message: dict[str, Any], args: str) -> None:
        chat_id = message["chat"]["id"]
        if not args:
            await self.send_text(chat_id, "Please provide a question after /ask")
            return

        question = Question(
            group_id=chat_id,
            text=args,
            reply_chat_id=chat_id,
            is_admin=await self._bot_is_admin(chat_id),
        )
        answer = await self.context.answerer.answer(question)
        await self.send_answer(question.reply_chat_id, answer)

    async def _handle_reindex_command(self, message: dict[str, Any], args: str) -> None:
        chat_id = message["chat"]["id"]
        if not await self._bot_is_admin(chat_id):
            await self.send_text(chat_id, "I need to be an administrator to rebuild the index.")
            return
        if self.start_backfill(chat_id) is None:
            await self.send_text(chat_id, "A re-index is already running for this group.")
            return
        await self.send_text(chat_id, "🔄 Re-indexing stored messages... I'll report back when done.")

    async def _handle_chat_member_update(self, update: dict[str, Any]) -> None:
        new_member = update.get("new_chat_member") or {}
        if (new_member.get("user") or {}).get("id") != self.bot_id:
            return

        status = new_member.get("status")
        chat_id = update["chat"]["id"]
        if status not in {"member", "administrator"}:
            return

        await self.send_text(chat_id, WELCOME_TEXT)
        if status == "administrator":
            self.start_backfill(chat_id)

    def start_backfill(self, group_id: int) -> BackfillTask | None:
        """Start a backfill unless one is already running for the group."""
        running = self.backfills.get(group_id)
        if running is not None and not running.done():
            return None

        task = BackfillTask(
            group_id=group_id,
            storage=self.context.storage,
            ingestor=self.context.ingestor,
            batch_size=self.settings.backfill_batch_size,
            on_complete=self._report_backfill,
        )
        self.backfills[group_id] = task.start()
        return task

    async def _report_backfill(self, result: BackfillResult) -> None:
        if result.cancelled:
            return
        if result.success:
            text = f"✅ Successfully indexed {result.indexed} text messages from the chat history."
        else:
            text = "❌ Failed to index the chat history. Please make sure I have the correct permissions."
        await self.send_text(result.group_id, text)

    async def _bot_is_admin(self, chat_id: int) -> bool:
        try:
            member = await self.api.get_chat_member(chat_id, self.bot_id)
        except TelegramAPIError as e:
            logger.error(f"Failed to check bot permissions: {e}")
            return False
        return member.get("status") in ADMIN_STATUSES

    async def send_answer(self, chat_id: int, answer: Answer) -> None:
        """Send an answer with message links, falling back to plain text."""
        if answer.links:
            try:
                await self.api.send_message(chat_id, answer.text, entities=answer.to_entities())
                return
            except TelegramAPIError as e:
                logger.warning(f"Sending answer with links failed, retrying as plain text: {e}")
        await self.send_text(chat_id, answer.text)

    async def send_text(self, chat_id: int, text: str) -> None:
        try:
            await self.api.send_message(chat_id, text)
        except TelegramAPIError as e:
            logger.error(f"Error sending message to {chat_id}: {e}")
