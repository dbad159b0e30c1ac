"""Ollama completion provider for self-hosted models."""

import logging
from typing import Any

import httpx
from pydantic import BaseModel

from chatrecall.errors import CompletionError
from chatrecall.llm.base import CompletionResult, LLMProvider

logger = logging.getLogger(__name__)


class OllamaConfig(BaseModel):
    """Configuration for Ollama provider."""

    host: str = "http://localhost:11434"
    model: str = "llama3.2"
    timeout: int = 60


class OllamaProvider(LLMProvider):
    """Ollama completion provider."""

    def __init__(self, config: OllamaConfig | None = None, **kwargs: Any) -> None:
        self.config = config or OllamaConfig(**kwargs)
        self.client = httpx.AsyncClient(
            base_url=self.config.host,
            timeout=self.config.timeout,
        )

    async def complete(self, prompt: str) -> CompletionResult:
        """Generate text with the configured local model."""
        logger.debug(f"Sending request to Ollama with model: {self.config.model}")
        try:
            response = await self.client.post(
                "/api/generate",
                json={
                    "model": self.config.model,
                    "prompt": prompt,
                    "stream": False,
                    # Ask the server to constrain the output to JSON where supported.
                    "format": "json",
                },
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"Ollama request timed out: {e}")
            raise CompletionError(f"Ollama request timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Ollama HTTP error {e.response.status_code}: {e.response.text}")
            raise CompletionError(f"Ollama API error: {e}") from e
        except httpx.RequestError as e:
            logger.error(f"Ollama request failed: {e} (host: {self.config.host})")
            raise CompletionError(f"Failed to generate response: {e}") from e

        return CompletionResult(
            content=data.get("response", ""),
            model=self.config.model,
            token_count=data.get("eval_count"),
            finish_reason=data.get("done_reason"),
        )

    async def health_check(self) -> bool:
        """Check if Ollama service is healthy."""
        try:
            response = await self.client.get("/api/tags")
            return response.status_code == 200
        except Exception as e:
            logger.warning(f"Ollama health check failed: {e}")
            return False

    async def aclose(self) -> None:
        await self.client.aclose()
