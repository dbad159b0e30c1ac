"""Completion model providers."""

from chatrecall.llm.anthropic import AnthropicConfig, AnthropicProvider
from chatrecall.llm.base import CompletionResult, LLMProvider, LLMProviderFactory
from chatrecall.llm.factory import create_llm_provider
from chatrecall.llm.gemini import GeminiConfig, GeminiProvider
from chatrecall.llm.ollama import OllamaConfig, OllamaProvider
from chatrecall.llm.openai import OpenAIConfig, OpenAIProvider

# Register all providers
LLMProviderFactory.register("gemini", GeminiProvider)
LLMProviderFactory.register("openai", OpenAIProvider)
LLMProviderFactory.register("anthropic", AnthropicProvider)
LLMProviderFactory.register("ollama", OllamaProvider)

__all__ = [
    "AnthropicConfig",
    "AnthropicProvider",
    "CompletionResult",
    "GeminiConfig",
    "GeminiProvider",
    "LLMProvider",
    "LLMProviderFactory",
    "OllamaConfig",
    "OllamaProvider",
    "OpenAIConfig",
    "OpenAIProvider",
    "create_llm_provider",
]
