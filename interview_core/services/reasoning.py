"""
Reasoning Service Port.

The single seam between the interview core and the external text-generation
backend: one prompt in, one string out, under a per-operation deadline.
Retries are deliberately absent; a failed call fails the request and the
client decides whether to try again.
"""
import asyncio
import logging
from typing import Optional

import httpx

from interview_core.core.config import get_llm_config
from interview_core.core.errors import UpstreamUnavailable
from interview_core.providers.llm import (
    BaseLLMProvider,
    GenerationConfig,
    get_llm_provider_sync,
    system_message,
    user_message,
)

logger = logging.getLogger(__name__)


class ReasoningService:
    """
    Thin async wrapper around an LLM provider.

    Timeouts and transport failures surface as ``UpstreamUnavailable``;
    missing provider configuration surfaces as ``ConfigurationError`` from
    the provider factory on first use.
    """

    def __init__(self, llm_provider: Optional[BaseLLMProvider] = None):
        """
        Args:
            llm_provider: LLM provider instance. If None, uses default from factory.
        """
        self._llm = llm_provider

    @property
    def llm(self) -> BaseLLMProvider:
        if self._llm is None:
            self._llm = get_llm_provider_sync()
        return self._llm

    @staticmethod
    def generation_config(operation: str) -> GenerationConfig:
        """Generation parameters for ``operation`` from config/models.yaml."""
        llm_config = get_llm_config()
        return GenerationConfig.from_dict(llm_config.get("generation", {}).get(operation))

    async def complete(
        self,
        prompt: str,
        *,
        system_prompt: Optional[str] = None,
        timeout: float,
        config: Optional[GenerationConfig] = None,
    ) -> str:
        """
        Run one completion and return the raw text.

        Raises:
            UpstreamUnavailable: deadline exceeded or backend unreachable/erroring
            ConfigurationError: no provider configured
        """
        messages = []
        if system_prompt:
            messages.append(system_message(system_prompt))
        messages.append(user_message(prompt))

        llm = self.llm
        try:
            response = await asyncio.wait_for(llm.generate(messages, config), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Reasoning call timed out after {timeout}s")
            raise UpstreamUnavailable(
                f"Reasoning service timed out after {timeout:g}s",
                detail={"timeout_seconds": timeout},
            )
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(
                f"Reasoning service returned HTTP {e.response.status_code}",
                detail={"status_code": e.response.status_code},
            )
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Reasoning service unreachable: {e}")

        if response.latency_ms is not None:
            logger.debug(
                f"Reasoning call finished in {response.latency_ms:.0f}ms "
                f"({response.tokens_used} tokens)"
            )
        return response.content or ""


# Global service instance (lazy loaded)
_reasoning_service: Optional[ReasoningService] = None


def get_reasoning_service() -> ReasoningService:
    """Get or create the global reasoning service."""
    global _reasoning_service
    if _reasoning_service is None:
        _reasoning_service = ReasoningService()
    return _reasoning_service
