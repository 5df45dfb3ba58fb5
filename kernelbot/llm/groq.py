"""Groq provider, served through Groq's OpenAI-compatible endpoint."""

from kernelbot.llm.openai import OpenAIConfig, OpenAIProvider


class GroqConfig(OpenAIConfig):
    """Configuration for Groq provider."""

    model: str = "llama-3.3-70b-versatile"
    base_url: str | None = "https://api.groq.com/openai/v1"


class GroqProvider(OpenAIProvider):
    """Groq chat completion provider."""

    def __init__(self, config: GroqConfig | None = None, **kwargs) -> None:
        super().__init__(config or GroqConfig(**kwargs))
