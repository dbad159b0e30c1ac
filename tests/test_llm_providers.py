"""Tests for completion providers."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from chatrecall.errors import CompletionError
from chatrecall.llm.base import CompletionResult
from chatrecall.llm.ollama import OllamaConfig, OllamaProvider


class TestOllamaProvider:
    """Test Ollama provider."""

    @pytest.fixture
    def ollama_provider(self):
        """Create Ollama provider for testing."""
        config = OllamaConfig(host="http://test:11434")
        return OllamaProvider(config=config)

    @pytest.mark.asyncio
    async def test_complete_success(self, ollama_provider):
        """Test successful completion."""
        mock_response = MagicMock()
        mock_response.json.return_value = {
            "response": '{"key_terms": ["docker"]}',
            "eval_count": 12,
            "done_reason": "stop",
        }
        mock_response.raise_for_status.return_value = None

        with patch.object(ollama_provider.client, "post", AsyncMock(return_value=mock_response)) as post:
            result = await ollama_provider.complete("plan this")

        assert isinstance(result, CompletionResult)
        assert result.content == '{"key_terms": ["docker"]}'
        assert result.model == "llama3.2"
        assert result.token_count == 12
        body = post.call_args.kwargs["json"]
        assert body["prompt"] == "plan this"
        assert body["stream"] is False

    @pytest.mark.asyncio
    async def test_complete_timeout(self, ollama_provider):
        """Test that timeouts surface as CompletionError."""
        with patch.object(
            ollama_provider.client,
            "post",
            AsyncMock(side_effect=httpx.ReadTimeout("timed out")),
        ):
            with pytest.raises(CompletionError, match="timed out"):
                await ollama_provider.complete("plan this")

    @pytest.mark.asyncio
    async def test_complete_connection_error(self, ollama_provider):
        """Test that connection failures surface as CompletionError."""
        with patch.object(
            ollama_provider.client,
            "post",
            AsyncMock(side_effect=httpx.ConnectError("refused")),
        ):
            with pytest.raises(CompletionError):
                await ollama_provider.complete("plan this")

    @pytest.mark.asyncio
    async def test_health_check(self, ollama_provider):
        """Test health check against the tags endpoint."""
        mock_response = MagicMock(status_code=200)

        with patch.object(ollama_provider.client, "get", AsyncMock(return_value=mock_response)):
            assert await ollama_provider.health_check() is True

        with patch.object(ollama_provider.client, "get", AsyncMock(side_effect=httpx.ConnectError("down"))):
            assert await ollama_provider.health_check() is False
