"""Google Gemini provider implementation."""

import logging
from typing import Any

import google.generativeai as genai
from pydantic import BaseModel

from kernelbot.llm.base import LLMProvider, ResponseResult

logger = logging.getLogger(__name__)


class GeminiConfig(BaseModel):
    """Configuration for Gemini provider."""

    api_key: str
    model: str = "gemini-1.5-flash"
    max_tokens: int = 400
    temperature: float = 0.5


class GeminiProvider(LLMProvider):
    """Google Gemini provider implementation."""

    def __init__(self, config: GeminiConfig | None = None, **kwargs: Any) -> None:
        """Initialize Gemini provider.

        Args:
            config: Gemini configuration
            **kwargs: Additional configuration options
        """
        self.config = config or GeminiConfig(**kwargs)
        genai.configure(api_key=self.config.api_key)
        self.model = genai.GenerativeModel(self.config.model)

    def build_prompt(
        self,
        prompt: str,
        context: str | None = None,
        history: list[dict[str, str]] | None = None,
    ) -> str:
        parts = []
        if context:
            parts.append(context)
        if history:
            lines = [f"{m['role'].capitalize()}: {m['content']}" for m in history]
            parts.append("CONVERSATION SO FAR:\n" + "\n".join(lines))
        parts.append(f"Question: {prompt}")
        return "\n\n".join(parts)

    async def generate_response(
        self,
        prompt: str,
        context: str | None = None,
        history: list[dict[str, str]] | None = None,
    ) -> ResponseResult:
        """Generate response using Gemini's chat model.

        Args:
            prompt: User question
            context: Optional system context
            history: Optional earlier messages

        Returns:
            ResponseResult with generated response
        """
        full_prompt = self.build_prompt(prompt, context, history)

        try:
            response = await self.model.generate_content_async(
                full_prompt,
                generation_config=genai.types.GenerationConfig(
                    max_output_tokens=self.config.max_tokens,
                    temperature=self.config.temperature,
                ),
            )
        except Exception as e:
            logger.error(f"Gemini response request failed: {e}")
            raise

        # response.text raises when the candidate was blocked or empty
        content = ""
        if response.candidates and response.candidates[0].content.parts:
            content = "".join(part.text for part in response.candidates[0].content.parts)

        return ResponseResult(
            content=content,
            model=self.config.model,
            token_count=response.usage_metadata.total_token_count
            if response.usage_metadata
            else None,
            finish_reason=response.candidates[0].finish_reason.name
            if response.candidates
            else None,
        )

    async def health_check(self) -> bool:
        """Check if Gemini service is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            await self.model.generate_content_async(
                "health check",
                generation_config=genai.types.GenerationConfig(max_output_tokens=1),
            )
            return True
        except Exception as e:
            logger.warning(f"Gemini health check failed: {e}")
            return False
