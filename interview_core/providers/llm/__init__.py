"""
LLM Providers Package.

Provides plug-and-play LLM backends for the reasoning service.
"""
from interview_core.providers.llm.base import (
    BaseLLMProvider,
    LLMProvider,
    Message,
    GenerationConfig,
    LLMResponse,
    system_message,
    user_message,
)
from interview_core.providers.llm.vllm_provider import VLLMProvider
from interview_core.providers.llm.ollama_provider import OllamaProvider
from interview_core.providers.llm.factory import (
    LLMProviderFactory,
    get_llm_provider_sync,
    close_llm_provider,
)

__all__ = [
    # Base classes
    "BaseLLMProvider",
    "LLMProvider",
    "Message",
    "GenerationConfig",
    "LLMResponse",
    # Message helpers
    "system_message",
    "user_message",
    # Providers
    "VLLMProvider",
    "OllamaProvider",
    # Factory
    "LLMProviderFactory",
    "get_llm_provider_sync",
    "close_llm_provider",
]
