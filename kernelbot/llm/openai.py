"""OpenAI-compatible chat completion provider."""

import logging
from typing import Any

import openai
from pydantic import BaseModel

from kernelbot.llm.base import LLMProvider, ResponseResult

logger = logging.getLogger(__name__)


class OpenAIConfig(BaseModel):
    """Configuration for OpenAI provider."""

    api_key: str
    model: str = "gpt-4o-mini"
    base_url: str | None = None
    max_tokens: int = 400
    temperature: float = 0.5
    timeout: float = 30
    # Retries belong to the dispatcher
    max_retries: int = 0


class OpenAIProvider(LLMProvider):
    """OpenAI chat completion provider."""

    def __init__(self, config: OpenAIConfig | None = None, **kwargs: Any) -> None:
        """Initialize OpenAI provider.

        Args:
            config: OpenAI configuration
            **kwargs: Additional configuration options
        """
        self.config = config or OpenAIConfig(**kwargs)
        self.client = openai.AsyncOpenAI(
            api_key=self.config.api_key,
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            max_retries=self.config.max_retries,
        )

    def build_messages(
        self,
        prompt: str,
        context: str | None = None,
        history: list[dict[str, str]] | None = None,
    ) -> list[dict[str, str]]:
        messages = []
        if context:
            messages.append({"role": "system", "content": context})
        messages.extend(history or [])
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate_response(
        self,
        prompt: str,
        context: str | None = None,
        history: list[dict[str, str]] | None = None,
    ) -> ResponseResult:
        """Generate response using the chat completions endpoint.

        Args:
            prompt: User question
            context: Optional system context
            history: Optional earlier messages

        Returns:
            ResponseResult with generated response
        """
        messages = self.build_messages(prompt, context, history)

        try:
            response = await self.client.chat.completions.create(
                model=self.config.model,
                messages=messages,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
            )
        except openai.OpenAIError as e:
            logger.error(f"{type(self).__name__} response request failed: {e}")
            raise

        choice = response.choices[0] if response.choices else None

        return ResponseResult(
            content=(choice.message.content if choice else None) or "",
            model=self.config.model,
            token_count=response.usage.total_tokens if response.usage else None,
            finish_reason=choice.finish_reason if choice else None,
        )

    async def health_check(self) -> bool:
        """Check if the service is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            await self.client.chat.completions.create(
                model=self.config.model,
                messages=[{"role": "user", "content": "test"}],
                max_tokens=1,
            )
            return True
        except Exception as e:
            logger.warning(f"{type(self).__name__} health check failed: {e}")
            return False

    async def aclose(self) -> None:
        await self.client.close()
