"""Minimal async Telegram Bot API client."""

import logging
from typing import Any

import httpx

from chatrecall.errors import ChatRecallError

logger = logging.getLogger(__name__)


class TelegramAPIError(ChatRecallError):
    """The Bot API returned ``ok: false`` or could not be reached."""

    def __init__(self, message: str, error_code: int | None = None):
        super().__init__(message)
        self.error_code = error_code


class TelegramAPI:
    """Calls Bot API methods over HTTPS with JSON bodies."""

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.telegram.org",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            base_url=f"{base_url}/bot{token}",
            timeout=timeout,
            transport=transport,
        )

    async def call(self, method: str, payload: dict[str, Any] | None = None, timeout: float | None = None) -> Any:
        """Invoke a Bot API method and return its ``result``."""
        try:
            response = await self.client.post(f"/{method}", json=payload or {}, timeout=timeout or self.timeout)
        except httpx.RequestError as e:
            raise TelegramAPIError(f"{method} request failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise TelegramAPIError(f"{method} returned non-JSON response ({response.status_code})") from e

        if not data.get("ok"):
            raise TelegramAPIError(
                f"{method} failed: {data.get('description', 'unknown error')}",
                error_code=data.get("error_code"),
            )
        return data.get("result")

    async def get_me(self) -> dict[str, Any]:
        return await self.call("getMe")

    async def get_updates(self, offset: int | None, timeout: int, allowed_updates: list[str]) -> list[dict[str, Any]]:
        payload: dict[str, Any] = {"timeout": timeout, "allowed_updates": allowed_updates}
        if offset is not None:
            payload["offset"] = offset
        # The HTTP timeout must outlast the long poll.
        return await self.call("getUpdates", payload, timeout=timeout + self.timeout)

    async def send_message(
        self,
        chat_id: int,
        text: str,
        entities: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
            "disable_web_page_preview": True,
        }
        if entities:
            payload["entities"] = entities
        return await self.call("sendMessage", payload)

    async def get_chat_member(self, chat_id: int, user_id: int) -> dict[str, Any]:
        return await self.call("getChatMember", {"chat_id": chat_id, "user_id": user_id})

    async def aclose(self) -> None:
        await self.client.aclose()
