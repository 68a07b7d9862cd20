"""
vLLM Provider Implementation.

Talks to a vLLM server (or any OpenAI-compatible endpoint) through the
chat completions API.
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


class VLLMProvider(BaseLLMProvider):
    """
    vLLM provider using OpenAI-compatible API.
    """

    def __init__(
        self,
        model: str,
        api_url: str = "http://localhost:8001/v1",
        api_key: Optional[str] = None,
        timeout: float = 120.0,
        **kwargs
    ):
        """
        Initialize vLLM provider.

        Args:
            model: Model name (e.g., "Qwen/Qwen2.5-7B-Instruct")
            api_url: Server URL including the /v1 prefix
            api_key: Optional API key for authentication
            timeout: Transport timeout in seconds
        """
        super().__init__(model, **kwargs)
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

        # HTTP client with connection pooling
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers=self._build_headers(),
        )

    def _build_headers(self) -> dict:
        """Build request headers."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def generate(
        self,
        messages: List[Message],
        config: Optional[GenerationConfig] = None,
    ) -> LLMResponse:
        """
        Generate a response using the chat completions API.
        """
        config = config or GenerationConfig()
        start_time = time.time()

        payload = {
            "model": self.model,
            "messages": [msg.to_dict() for msg in messages],
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
            "top_p": config.top_p,
            "stream": False,
        }
        if config.json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.post(
                f"{self.api_url}/chat/completions",
                json=payload,
            )
            response.raise_for_status()
            data = response.json()

            latency_ms = (time.time() - start_time) * 1000

            choices = data.get("choices") or [{}]
            choice = choices[0]
            return LLMResponse(
                content=(choice.get("message") or {}).get("content") or "",
                model=data.get("model", self.model),
                finish_reason=choice.get("finish_reason"),
                usage=data.get("usage"),
                latency_ms=latency_ms,
            )

        except httpx.HTTPStatusError as e:
            logger.error(f"vLLM API error: {e.response.status_code} - {e.response.text}")
            raise
        except httpx.RequestError as e:
            logger.error(f"vLLM connection error: {e}")
            raise

    async def health_check(self) -> bool:
        """Check if the server is healthy."""
        try:
            response = await self._client.get(f"{self.api_url}/models")
            return response.status_code == 200
        except Exception:
            return False

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()
