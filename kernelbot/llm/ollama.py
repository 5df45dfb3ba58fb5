"""Ollama provider implementation."""

import logging
from typing import Any

import httpx
from pydantic import BaseModel

from kernelbot.llm.base import LLMProvider, ResponseResult

logger = logging.getLogger(__name__)


class OllamaConfig(BaseModel):
    """Configuration for Ollama provider."""

    host: str = "http://localhost:11434"
    model: str = "llama3.2"
    temperature: float = 0.5
    max_tokens: int = 400
    timeout: float = 30


class OllamaProvider(LLMProvider):
    """Ollama provider implementation."""

    def __init__(self, config: OllamaConfig | None = None, **kwargs: Any) -> None:
        """Initialize Ollama provider.

        Args:
            config: Ollama configuration
            **kwargs: Additional configuration options
        """
        self.config = config or OllamaConfig(**kwargs)
        self.client = httpx.AsyncClient(
            base_url=self.config.host,
            timeout=self.config.timeout,
        )

    async def generate_response(
        self,
        prompt: str,
        context: str | None = None,
        history: list[dict[str, str]] | None = None,
    ) -> ResponseResult:
        """Generate response using Ollama's chat endpoint.

        Args:
            prompt: User question
            context: Optional system context
            history: Optional earlier messages

        Returns:
            ResponseResult with generated response
        """
        messages = []
        if context:
            messages.append({"role": "system", "content": context})
        messages.extend(history or [])
        messages.append({"role": "user", "content": prompt})

        try:
            logger.debug(f"Sending request to Ollama with model: {self.config.model}")
            response = await self.client.post(
                "/api/chat",
                json={
                    "model": self.config.model,
                    "messages": messages,
                    "stream": False,
                    "options": {
                        "temperature": self.config.temperature,
                        "num_predict": self.config.max_tokens,
                    },
                },
            )
            response.raise_for_status()
            data = response.json()

        except httpx.TimeoutException as e:
            logger.error(f"Ollama request timed out: {e}")
            raise
        except httpx.HTTPStatusError as e:
            logger.error(f"Ollama response HTTP error: {e}")
            logger.error(f"Status: {e.response.status_code}, Model: {self.config.model}")
            raise
        except httpx.RequestError as e:
            logger.error(f"Ollama response request failed: {e}")
            logger.error(f"Model: {self.config.model}, Host: {self.config.host}")
            raise

        return ResponseResult(
            content=(data.get("message") or {}).get("content", ""),
            model=self.config.model,
            token_count=data.get("eval_count"),
            finish_reason=data.get("done_reason"),
        )

    async def health_check(self) -> bool:
        """Check if Ollama service is healthy.

        Returns:
            True if healthy, False otherwise
        """
        try:
            response = await self.client.get("/api/tags")
            return response.status_code == 200
        except Exception as e:
            logger.warning(f"Ollama health check failed: {e}")
            return False

    async def aclose(self) -> None:
        await self.client.aclose()
