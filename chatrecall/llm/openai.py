"""OpenAI completion provider."""

import logging
from typing import Any

import openai
from pydantic import BaseModel

from chatrecall.errors import CompletionError
from chatrecall.llm.base import CompletionResult, LLMProvider

logger = logging.getLogger(__name__)


class OpenAIConfig(BaseModel):
    """Configuration for OpenAI provider."""

    api_key: str
    model: str = "gpt-4o-mini"
    max_tokens: int = 1000
    temperature: float = 0.2
    timeout: int = 30


class OpenAIProvider(LLMProvider):
    """OpenAI chat completion provider."""

    def __init__(self, config: OpenAIConfig | None = None, **kwargs: Any) -> None:
        self.config = config or OpenAIConfig(**kwargs)
        # Retries are owned by the pipeline executor.
        self.client = openai.AsyncOpenAI(
            api_key=self.config.api_key,
            timeout=self.config.timeout,
            max_retries=0,
        )

    async def complete(self, prompt: str) -> CompletionResult:
        """Generate text with the configured chat model."""
        try:
            response = await self.client.chat.completions.create(
                model=self.config.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
            )
        except openai.OpenAIError as e:
            logger.error(f"OpenAI completion request failed: {e}")
            raise CompletionError(f"Failed to generate response: {e}") from e

        choice = response.choices[0]
        return CompletionResult(
            content=choice.message.content or "",
            model=self.config.model,
            token_count=response.usage.total_tokens if response.usage else None,
            finish_reason=choice.finish_reason,
        )

    async def health_check(self) -> bool:
        """Check that the configured model is reachable."""
        try:
            await self.client.models.retrieve(self.config.model)
            return True
        except Exception as e:
            logger.warning(f"OpenAI health check failed: {e}")
            return False

    async def aclose(self) -> None:
        await self.client.close()
