"""Async Meilisearch REST client.

Only the calls used by the pipeline are implemented. Engine writes are asynchronous:
each returns a task summary and callers must wait for the task before the change is
visible to search.
"""

import asyncio
import logging
from typing import Any

import httpx

from chatrecall.errors import IndexEngineError, IndexTaskFailedError

logger = logging.getLogger(__name__)

TERMINAL_TASK_STATUSES = {"succeeded", "failed", "canceled"}


class MeiliClient:
    """Thin wrapper around the Meilisearch HTTP API."""

    def __init__(
        self,
        host: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        task_timeout: float = 30.0,
        task_poll_interval: float = 0.1,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            host: Meilisearch base URL
            api_key: Master or API key, if the instance is protected
            timeout: Timeout per HTTP request in seconds
            task_timeout: Maximum time to wait for an engine task
            task_poll_interval: Delay between task status polls
            transport: Optional httpx transport (used by tests)
        """
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self.host = host
        self.task_timeout = task_timeout
        self.task_poll_interval = task_poll_interval
        self.client = httpx.AsyncClient(
            base_url=host,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise IndexEngineError(f"Meilisearch {method} {path} timed out: {e}") from e
        except httpx.RequestError as e:
            raise IndexEngineError(f"Meilisearch {method} {path} failed: {e}") from e

        if response.status_code >= 400:
            code = None
            message = response.text
            try:
                body = response.json()
                code = body.get("code")
                message = body.get("message", message)
            except ValueError:
                pass
            raise IndexEngineError(
                f"Meilisearch {method} {path} returned {response.status_code}: {message}",
                status_code=response.status_code,
                code=code,
            )

        if not response.content:
            return None
        return response.json()

    async def get_index(self, uid: str) -> dict[str, Any] | None:
        """Return index metadata, or None when the index does not exist."""
        try:
            return await self._request("GET", f"/indexes/{uid}")
        except IndexEngineError as e:
            if e.status_code == 404:
                return None
            raise

    async def create_index(self, uid: str, primary_key: str) -> dict[str, Any]:
        return await self._request("POST", "/indexes", json={"uid": uid, "primaryKey": primary_key})

    async def update_settings(self, uid: str, settings: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PATCH", f"/indexes/{uid}/settings", json=settings)

    async def add_documents(
        self,
        uid: str,
        documents: list[dict[str, Any]],
        primary_key: str | None = None,
    ) -> dict[str, Any]:
        """Add or replace documents by primary key."""
        params = {"primaryKey": primary_key} if primary_key else None
        return await self._request("POST", f"/indexes/{uid}/documents", json=documents, params=params)

    async def get_document(self, uid: str, document_id: str) -> dict[str, Any] | None:
        try:
            return await self._request("GET", f"/indexes/{uid}/documents/{document_id}")
        except IndexEngineError as e:
            if e.status_code == 404:
                return None
            raise

    async def search(self, uid: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"/indexes/{uid}/search", json=payload)

    async def get_task(self, task_uid: int) -> dict[str, Any]:
        return await self._request("GET", f"/tasks/{task_uid}")

    async def wait_for_task(self, task_uid: int, raise_on_failure: bool = True) -> dict[str, Any]:
        """Poll a task until it reaches a terminal status.

        Raises:
            IndexEngineError: If the task is not finished within ``task_timeout``
            IndexTaskFailedError: If the task failed and ``raise_on_failure`` is set
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.task_timeout
        while True:
            task = await self.get_task(task_uid)
            status = task.get("status")
            if status in TERMINAL_TASK_STATUSES:
                break
            if loop.time() >= deadline:
                raise IndexEngineError(f"Timed out waiting for engine task {task_uid} ({status})")
            await asyncio.sleep(self.task_poll_interval)

        if status != "succeeded" and raise_on_failure:
            error = task.get("error") or {}
            raise IndexTaskFailedError(
                task_uid,
                status,
                code=error.get("code"),
                message=error.get("message", ""),
            )
        return task

    async def health_check(self) -> bool:
        """Check if Meilisearch is reachable and available."""
        try:
            data = await self._request("GET", "/health")
            return bool(data) and data.get("status") == "available"
        except IndexEngineError as e:
            logger.warning(f"Meilisearch health check failed: {e}")
            return False

    async def aclose(self) -> None:
        await self.client.aclose()
