"""Configuration management using pydantic-settings."""

from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_VOCABULARY_PATH = Path(__file__).parent / "data" / "vocabulary.json"


class LLMProvider(str, Enum):
    """Supported completion model providers."""

    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"


class Environment(str, Enum):
    """Application environments."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Telegram Configuration
    telegram_bot_token: str = Field(..., description="Telegram Bot API token")
    telegram_api_base: str = Field(
        default="https://api.telegram.org",
        description="Telegram Bot API base URL",
    )
    telegram_poll_timeout: int = Field(
        default=30,
        description="Long polling timeout for getUpdates in seconds",
    )
    deep_link_host: str = Field(
        default="t.me",
        description="Host used when building message deep links",
    )

    # LLM Provider Configuration
    llm_provider: LLMProvider = Field(
        default=LLMProvider.GEMINI,
        description="Completion model provider used by the query planner",
    )
    gemini_api_key: str | None = Field(default=None, description="Google Gemini API key")
    gemini_model: str = Field(default="gemini-1.5-flash", description="Google Gemini model to use")
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model to use")
    anthropic_api_key: str | None = Field(default=None, description="Anthropic API key")
    anthropic_model: str = Field(
        default="claude-3-5-haiku-20241022",
        description="Anthropic model to use",
    )
    ollama_host: str = Field(default="http://localhost:11434", description="Ollama API host URL")
    ollama_model: str = Field(default="llama3.2", description="Ollama model to use")

    # Meilisearch Configuration
    meili_host: str = Field(default="http://localhost:7700", description="Meilisearch host URL")
    meili_api_key: str | None = Field(default=None, description="Meilisearch API key")
    index_prefix: str = Field(default="messages", description="Prefix for per-group index uids")

    # Resilience
    retry_attempts: int = Field(default=3, ge=1, description="Attempts per external call")
    retry_base_delay_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Linear backoff base delay between attempts",
    )
    engine_timeout_seconds: float = Field(default=10.0, description="Timeout per index engine call")
    engine_task_timeout_seconds: float = Field(
        default=30.0,
        description="Maximum time to wait for an asynchronous engine task",
    )
    completion_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout per completion model call",
    )
    question_timeout_seconds: float = Field(
        default=60.0,
        description="Deadline for answering a whole question",
    )

    # Retrieval and grouping
    search_limit: int = Field(default=50, description="Maximum hits per strategy search")
    context_window_seconds: int = Field(
        default=120,
        description="Seconds before and after a hit fetched as context",
    )
    context_limit: int = Field(default=10, description="Maximum context messages per hit")
    context_concurrency: int = Field(default=4, ge=1, description="Parallel context sub-searches")
    conversation_timeout_seconds: int = Field(
        default=120,
        description="Maximum gap between adjacent messages of one conversation",
    )
    vocabulary_path: Path = Field(
        default=DEFAULT_VOCABULARY_PATH,
        description="JSON file with stop-words and topic affinity groups",
    )

    # Storage
    sqlite_path: Path = Field(
        default=Path("./data/messages.db"),
        description="Path to the SQLite message store",
    )
    backfill_batch_size: int = Field(default=100, description="Documents per backfill batch")

    # Application Configuration
    health_port: int = Field(default=3000, description="Port for the health endpoint")
    log_level: str = Field(default="INFO", description="Logging level")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )

    def validate_provider_config(self) -> None:
        """Validate that required API keys are set for the selected provider."""
        if self.llm_provider == LLMProvider.GEMINI and not self.gemini_api_key:
            raise ValueError("Gemini API key is required when using Gemini provider")
        elif self.llm_provider == LLMProvider.OPENAI and not self.openai_api_key:
            raise ValueError("OpenAI API key is required when using OpenAI provider")
        elif self.llm_provider == LLMProvider.ANTHROPIC and not self.anthropic_api_key:
            raise ValueError("Anthropic API key is required when using Anthropic provider")


# Global settings instance - lazy loaded
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
