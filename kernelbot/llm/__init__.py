"""Upstream completion providers module."""

from kernelbot.llm.anthropic import AnthropicConfig, AnthropicProvider
from kernelbot.llm.base import LLMProvider, LLMProviderFactory, ResponseResult
from kernelbot.llm.factory import create_llm_provider
from kernelbot.llm.gemini import GeminiConfig, GeminiProvider
from kernelbot.llm.groq import GroqConfig, GroqProvider
from kernelbot.llm.ollama import OllamaConfig, OllamaProvider
from kernelbot.llm.openai import OpenAIConfig, OpenAIProvider

# Register all providers
LLMProviderFactory.register("groq", GroqProvider)
LLMProviderFactory.register("openai", OpenAIProvider)
LLMProviderFactory.register("anthropic", AnthropicProvider)
LLMProviderFactory.register("gemini", GeminiProvider)
LLMProviderFactory.register("ollama", OllamaProvider)

__all__ = [
    "AnthropicConfig",
    "AnthropicProvider",
    "GeminiConfig",
    "GeminiProvider",
    "GroqConfig",
    "GroqProvider",
    "LLMProvider",
    "LLMProviderFactory",
    "OllamaConfig",
    "OllamaProvider",
    "OpenAIConfig",
    "OpenAIProvider",
    "ResponseResult",
    "create_llm_provider",
]
