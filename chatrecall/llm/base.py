"""Base completion provider interface and factory pattern."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class CompletionResult(BaseModel):
    """Result from a completion request."""

    content: str
    model: str
    token_count: int | None = None
    finish_reason: str | None = None
    success: bool = True
    error: str | None = None


class LLMProvider(ABC):
    """Abstract base class for completion model providers.

    Providers give no structural guarantee about what they return; callers that need
    structured output must validate it themselves.
    """

    @abstractmethod
    async def complete(self, prompt: str) -> CompletionResult:
        """Send a prompt and return the raw model text.

        Args:
            prompt: Full prompt text

        Returns:
            CompletionResult with the generated text and metadata

        Raises:
            CompletionError: If the provider could not produce a response
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the provider is healthy and accessible.

        Returns:
            True if healthy, False otherwise
        """
        pass

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
        return None


class LLMProviderFactory:
    """Factory for creating completion providers."""

    _providers: dict[str, type[LLMProvider]] = {}

    @classmethod
    def register(cls, name: str, provider_class: type[LLMProvider]) -> None:
        """Register a provider class.

        Args:
            name: Provider name (e.g., "gemini", "ollama")
            provider_class: Provider class to register
        """
        cls._providers[name] = provider_class

    @classmethod
    def create(cls, name: str, **kwargs: Any) -> LLMProvider:
        """Create a provider instance.

        Args:
            name: Provider name
            **kwargs: Provider-specific configuration

        Returns:
            LLMProvider instance

        Raises:
            ValueError: If provider name is not registered
        """
        if name not in cls._providers:
            available = ", ".join(cls._providers.keys())
            raise ValueError(f"Unknown provider '{name}'. Available: {available}")

        return cls._providers[name](**kwargs)

    @classmethod
    def list_providers(cls) -> list[str]:
        """List all registered provider names."""
        return list(cls._providers.keys())
