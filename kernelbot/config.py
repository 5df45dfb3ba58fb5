"""Configuration management using pydantic-settings."""

from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMProvider(str, Enum):
    """Supported upstream completion providers."""

    GROQ = "groq"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
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

    # Upstream Provider Configuration
    llm_provider: LLMProvider = Field(
        default=LLMProvider.GROQ,
        description="Upstream completion provider",
    )

    # Groq Configuration
    groq_api_key: str | None = Field(default=None, description="Groq API key")
    groq_model: str = Field(
        default="llama-3.3-70b-versatile",
        description="Groq model to use",
    )
    groq_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        description="Groq OpenAI-compatible endpoint",
    )

    # OpenAI Configuration
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model to use")

    # Anthropic Configuration
    anthropic_api_key: str | None = Field(default=None, description="Anthropic API key")
    anthropic_model: str = Field(
        default="claude-3-5-haiku-20241022",
        description="Anthropic model to use",
    )

    # Google Gemini Configuration
    gemini_api_key: str | None = Field(default=None, description="Google Gemini API key")
    gemini_model: str = Field(default="gemini-1.5-flash", description="Google Gemini model to use")

    # Ollama Configuration
    ollama_host: str = Field(
        default="http://localhost:11434",
        description="Ollama API host URL",
    )
    ollama_model: str = Field(default="llama3.2", description="Ollama model to use")

    # Generation parameters
    llm_temperature: float = Field(default=0.5, description="Sampling temperature")
    llm_max_tokens: int = Field(default=400, description="Maximum tokens per response")

    # Dispatcher Configuration
    max_concurrency: int = Field(default=5, ge=1, description="Upstream calls allowed in flight")
    max_retries: int = Field(default=3, ge=0, description="Retries for retryable upstream failures")
    upstream_timeout: float = Field(default=30.0, gt=0, description="Seconds before an upstream call times out")
    retry_backoff_base: float = Field(default=1.0, ge=0, description="First retry delay in seconds")
    retry_backoff_max: float = Field(default=8.0, ge=0, description="Upper bound for retry delay in seconds")
    shutdown_timeout: float = Field(default=30.0, ge=0, description="Seconds to wait for in-flight work at shutdown")

    # Admission Configuration
    cooldown_seconds: float = Field(default=5.0, ge=0, description="Minimum gap between two requests of one user")
    rate_window_seconds: float = Field(default=60.0, gt=0, description="Sliding rate-limit window")
    rate_max_per_window: int = Field(default=10, ge=1, description="Requests allowed per user per window")
    rate_max_tracked_users: int = Field(default=1000, ge=1, description="Tracked users before eviction starts")
    rate_evict_batch: int = Field(default=50, ge=1, description="Records evicted per eviction pass")

    # Conversation Cache Configuration
    conversation_max_messages: int = Field(default=10, ge=1, description="Messages kept per conversation")
    conversation_history_window: int = Field(default=6, ge=0, description="Messages sent upstream as history")
    conversation_ttl_seconds: float = Field(default=1800.0, gt=0, description="Idle time before a conversation expires")
    conversation_sweep_interval: float = Field(default=300.0, gt=0, description="Seconds between expiry sweeps")

    # Persistence Configuration
    data_dir: Path = Field(default=Path("./data"), description="Directory for state snapshots")
    snapshot_interval: float = Field(default=30.0, gt=0, description="Seconds between periodic snapshots")
    snapshot_debounce: float = Field(default=1.0, ge=0, description="Delay before a queue change is written")

    # Event Data
    event_data_path: Path = Field(
        default=Path(__file__).parent / "data" / "event_data.json",
        description="Path to the static event document",
    )

    # Web Server Configuration
    web_host: str = Field(default="0.0.0.0", description="HTTP adapter bind address")
    web_port: int = Field(default=3000, description="HTTP adapter port")

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )

    @property
    def queue_snapshot_path(self) -> Path:
        """Get the queue snapshot file path."""
        return self.data_dir / "queue_snapshot.json"

    @property
    def cache_snapshot_path(self) -> Path:
        """Get the conversation cache snapshot file path."""
        return self.data_dir / "conversation_cache.json"

    def validate_provider_config(self) -> None:
        """Validate that required API keys are set for the selected provider."""
        if self.llm_provider == LLMProvider.GROQ and not self.groq_api_key:
            raise ValueError("Groq API key is required when using Groq provider")
        elif self.llm_provider == LLMProvider.OPENAI and not self.openai_api_key:
            raise ValueError("OpenAI API key is required when using OpenAI provider")
        elif self.llm_provider == LLMProvider.GEMINI and not self.gemini_api_key:
            raise ValueError("Gemini API key is required when using Gemini provider")
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
