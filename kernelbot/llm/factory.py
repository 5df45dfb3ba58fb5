"""Factory for creating upstream providers from configuration."""

from kernelbot.config import LLMProvider as LLMProviderEnum
from kernelbot.config import get_settings
from kernelbot.llm.base import LLMProvider, LLMProviderFactory


def create_llm_provider(provider_name: str | None = None) -> LLMProvider:
    """Create upstream provider from configuration.

    Args:
        provider_name: Override provider name, defaults to settings.llm_provider

    Returns:
        Configured provider instance

    Raises:
        ValueError: If provider configuration is invalid
    """
    settings = get_settings()
    provider_name = provider_name or settings.llm_provider
    generation = {
        "max_tokens": settings.llm_max_tokens,
        "temperature": settings.llm_temperature,
    }

    # Build provider-specific config
    if provider_name == LLMProviderEnum.GROQ:
        from kernelbot.llm.groq import GroqConfig

        if not settings.groq_api_key:
            raise ValueError("Groq API key is required")

        config = GroqConfig(
            api_key=settings.groq_api_key,
            model=settings.groq_model,
            base_url=settings.groq_base_url,
            timeout=settings.upstream_timeout,
            **generation,
        )
        return LLMProviderFactory.create("groq", config=config)

    elif provider_name == LLMProviderEnum.OPENAI:
        from kernelbot.llm.openai import OpenAIConfig

        if not settings.openai_api_key:
            raise ValueError("OpenAI API key is required")

        config = OpenAIConfig(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout=settings.upstream_timeout,
            **generation,
        )
        return LLMProviderFactory.create("openai", config=config)

    elif provider_name == LLMProviderEnum.ANTHROPIC:
        from kernelbot.llm.anthropic import AnthropicConfig

        if not settings.anthropic_api_key:
            raise ValueError("Anthropic API key is required")

        config = AnthropicConfig(
            api_key=settings.anthropic_api_key,
            model=settings.anthropic_model,
            timeout=settings.upstream_timeout,
            **generation,
        )
        return LLMProviderFactory.create("anthropic", config=config)

    elif provider_name == LLMProviderEnum.GEMINI:
        from kernelbot.llm.gemini import GeminiConfig

        if not settings.gemini_api_key:
            raise ValueError("Gemini API key is required")

        config = GeminiConfig(api_key=settings.gemini_api_key, model=settings.gemini_model, **generation)
        return LLMProviderFactory.create("gemini", config=config)

    elif provider_name == LLMProviderEnum.OLLAMA:
        from kernelbot.llm.ollama import OllamaConfig

        config = OllamaConfig(
            host=settings.ollama_host,
            model=settings.ollama_model,
            timeout=settings.upstream_timeout,
            **generation,
        )
        return LLMProviderFactory.create("ollama", config=config)

    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")
