"""Anthropic Claude completion provider."""

import logging
from typing import Any

import anthropic
from pydantic import BaseModel

from chatrecall.errors import CompletionError
from chatrecall.llm.base import CompletionResult, LLMProvider

logger = logging.getLogger(__name__)


class AnthropicConfig(BaseModel):
    """Configuration for Anthropic provider."""

    api_key: str
    model: str = "claude-3-5-haiku-20241022"
    max_tokens: int = 1000
    temperature: float = 0.2
    timeout: int = 30


class AnthropicProvider(LLMProvider):
    """Anthropic Claude completion provider."""

    def __init__(self, config: AnthropicConfig | None = None, **kwargs: Any) -> None:
        self.config = config or AnthropicConfig(**kwargs)
        self.client = anthropic.AsyncAnthropic(
            api_key=self.config.api_key,
            timeout=self.config.timeout,
            max_retries=0,
        )

    async def complete(self, prompt: str) -> CompletionResult:
        """Generate text with the configured Claude model."""
        try:
            response = await self.client.messages.create(
                model=self.config.model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.AnthropicError as e:
            logger.error(f"Anthropic completion request failed: {e}")
            raise CompletionError(f"Failed to generate response: {e}") from e

        # Anthropic returns content as a list of blocks
        content = "".join(block.text for block in response.content if block.type == "text")

        return CompletionResult(
            content=content,
            model=self.config.model,
            token_count=response.usage.output_tokens + response.usage.input_tokens,
            finish_reason=response.stop_reason,
        )

    async def health_check(self) -> bool:
        """Check if Anthropic service is accessible."""
        try:
            await self.client.messages.create(
                model=self.config.model,
                max_tokens=1,
                messages=[{"role": "user", "content": "ping"}],
            )
            return True
        except Exception as e:
            logger.warning(f"Anthropic health check failed: {e}")
            return False

    async def aclose(self) -> None:
        await self.client.close()
