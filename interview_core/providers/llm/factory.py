"""
LLM Provider Factory.

Creates the appropriate LLM provider based on configuration.
"""
import logging
from typing import Optional

from interview_core.core.config import load_model_config, get_settings
from interview_core.core.errors import ConfigurationError
from interview_core.providers.llm.base import BaseLLMProvider, LLMProvider
from interview_core.providers.llm.vllm_provider import VLLMProvider
from interview_core.providers.llm.ollama_provider import OllamaProvider

logger = logging.getLogger(__name__)


class LLMProviderFactory:
    """
    Factory for creating LLM provider instances from configuration.
    """

    @staticmethod
    def create(
        provider_type: Optional[str] = None,
        model: Optional[str] = None,
        **kwargs
    ) -> BaseLLMProvider:
        """
        Create an LLM provider instance.

        Args:
            provider_type: Provider type (vllm, ollama, openai-compatible).
                If None, reads from config.
            model: Model name. If None, reads from config.
            **kwargs: Additional provider-specific arguments.

        Raises:
            ConfigurationError: provider type or model missing/unsupported.
        """
        config = load_model_config()
        settings = get_settings()
        llm_config = config.get("providers", {}).get("llm", {})

        provider_type = provider_type or llm_config.get("provider")
        model = model or llm_config.get("model")

        if not provider_type or not model:
            raise ConfigurationError("Reasoning service is not configured (provider/model missing).")

        logger.info(f"Creating LLM provider: {provider_type} with model: {model}")

        if provider_type in (LLMProvider.VLLM.value, LLMProvider.OPENAI_COMPATIBLE.value):
            return VLLMProvider(
                model=model,
                api_url=kwargs.get("api_url", settings.vllm_api_url),
                api_key=kwargs.get("api_key", settings.vllm_api_key),
                **{k: v for k, v in kwargs.items() if k not in ["api_url", "api_key"]}
            )

        if provider_type == LLMProvider.OLLAMA.value:
            return OllamaProvider(
                model=model,
                api_url=kwargs.get("api_url", settings.ollama_api_url),
                **{k: v for k, v in kwargs.items() if k not in ["api_url"]}
            )

        raise ConfigurationError(f"Unsupported LLM provider: {provider_type}")


# Global provider instance (lazy loaded)
_llm_provider: Optional[BaseLLMProvider] = None


def get_llm_provider_sync() -> BaseLLMProvider:
    """
    Get or create the global LLM provider (no health check).
    """
    global _llm_provider
    if _llm_provider is None:
        _llm_provider = LLMProviderFactory.create()
    return _llm_provider


async def close_llm_provider() -> None:
    """Close and forget the global provider."""
    global _llm_provider
    if _llm_provider is not None:
        await _llm_provider.close()
        _llm_provider = None
