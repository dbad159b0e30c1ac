"""Google Gemini completion provider."""

import logging
from typing import Any

import google.generativeai as genai
from pydantic import BaseModel

from chatrecall.errors import CompletionError
from chatrecall.llm.base import CompletionResult, LLMProvider

logger = logging.getLogger(__name__)


class GeminiConfig(BaseModel):
    """Configuration for Gemini provider."""

    api_key: str
    model: str = "gemini-1.5-flash"
    max_tokens: int = 1000
    # Planner output is parsed, so keep sampling conservative.
    temperature: float = 0.2


class GeminiProvider(LLMProvider):
    """Google Gemini completion provider."""

    def __init__(self, config: GeminiConfig | None = None, **kwargs: Any) -> None:
        self.config = config or GeminiConfig(**kwargs)
        genai.configure(api_key=self.config.api_key)
        self.model = genai.GenerativeModel(self.config.model)

    async def complete(self, prompt: str) -> CompletionResult:
        """Generate text with the configured Gemini model."""
        try:
            response = await self.model.generate_content_async(
                prompt,
                generation_config=genai.types.GenerationConfig(
                    max_output_tokens=self.config.max_tokens,
                    temperature=self.config.temperature,
                ),
            )
        except Exception as e:
            logger.error(f"Gemini completion request failed: {e}")
            raise CompletionError(f"Failed to generate content: {e}") from e

        if not response.candidates:
            raise CompletionError("Gemini returned no candidates")

        return CompletionResult(
            content=response.text,
            model=self.config.model,
            token_count=response.usage_metadata.total_token_count
            if response.usage_metadata
            else None,
            finish_reason=response.candidates[0].finish_reason.name,
        )

    async def health_check(self) -> bool:
        """Check that the configured model is visible to this API key."""
        try:
            genai.get_model(f"models/{self.config.model}")
            return True
        except Exception as e:
            logger.warning(f"Gemini health check failed: {e}")
            return False
