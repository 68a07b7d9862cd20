"""
Ollama Provider Implementation.

Connects to a local Ollama server. Useful for development without GPU.
"""
import time
import logging
from typing import List, Optional

import httpx

from interview_core.providers.llm.base import (
    BaseLLMProvider,
    Message,
    GenerationConfig,
    LLMResponse,
)

logger = logging.getLogger(__name__)


class OllamaProvider(BaseLLMProvider):
    """
    Ollama provider for local LLM inference.
    """

    def __init__(
        self,
        model: str,
        api_url: str = "http://localhost:11434",
        timeout: float = 120.0,
        **kwargs
    ):
        """
        Initialize Ollama provider.

        Args:
            model: Model name (e.g., "qwen2.5:3b", "llama3.1:8b")
            api_url: Ollama server URL (default: localhost:11434)
            timeout: Transport timeout in seconds. The reasoning service
                applies its own, shorter, per-operation deadline on top.
        """
        super().__init__(model, **kwargs)
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
        )

    def _build_payload(self, messages: List[Message], config: GenerationConfig) -> dict:
        payload = {
            "model": self.model,
            "messages": [msg.to_dict() for msg in messages],
            "stream": False,
            "options": {
                "num_predict": config.max_tokens,
                "temperature": config.temperature,
                "top_p": config.top_p,
            },
        }
        if config.json_mode:
            payload["format"] = "json"
        return payload

    async def generate(
        self,
        messages: List[Message],
        config: Optional[GenerationConfig] = None,
    ) -> LLMResponse:
        """
        Generate a response using Ollama's chat API.
        """
        config = config or GenerationConfig()
        start_time = time.time()

        try:
            response = await self._client.post(
                f"{self.api_url}/api/chat",
                json=self._build_payload(messages, config),
            )
            response.raise_for_status()
            data = response.json()

            latency_ms = (time.time() - start_time) * 1000
            prompt_tokens = data.get("prompt_eval_count", 0)
            completion_tokens = data.get("eval_count", 0)

            return LLMResponse(
                content=(data.get("message") or {}).get("content", ""),
                model=data.get("model", self.model),
                finish_reason="stop" if data.get("done") else None,
                usage={
                    "prompt_tokens": prompt_tokens,
                    "completion_tokens": completion_tokens,
                    "total_tokens": prompt_tokens + completion_tokens,
                },
                latency_ms=latency_ms,
            )

        except httpx.HTTPStatusError as e:
            logger.error(f"Ollama API error: {e.response.status_code} - {e.response.text}")
            raise
        except httpx.RequestError as e:
            logger.error(f"Ollama connection error: {e}")
            raise

    async def health_check(self) -> bool:
        """Check if Ollama server is running."""
        try:
            response = await self._client.get(f"{self.api_url}/api/tags")
            return response.status_code == 200
        except Exception:
            return False

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()
