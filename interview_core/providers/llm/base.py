"""
LLM Provider Interface and Base Classes.

Defines the abstract interface the reasoning service talks to, so the
backend (vLLM, Ollama, any OpenAI-compatible server) can be swapped by
configuration alone.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Dict, Any, Optional
from enum import Enum


class LLMProvider(str, Enum):
    """Supported LLM provider backends."""
    VLLM = "vllm"
    OLLAMA = "ollama"
    OPENAI_COMPATIBLE = "openai-compatible"


@dataclass
class Message:
    """Chat message structure."""
    role: str  # "system", "user", "assistant"
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class GenerationConfig:
    """Configuration for text generation."""
    max_tokens: int = 1024
    temperature: float = 0.3
    top_p: float = 0.9
    # Ask the backend to constrain output to a JSON object
    json_mode: bool = True

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GenerationConfig":
        data = data or {}
        return cls(
            max_tokens=int(data.get("max_tokens", cls.max_tokens)),
            temperature=float(data.get("temperature", cls.temperature)),
            top_p=float(data.get("top_p", cls.top_p)),
            json_mode=bool(data.get("json_mode", cls.json_mode)),
        )


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    content: str
    model: str
    finish_reason: Optional[str] = None
    usage: Optional[Dict[str, int]] = None  # prompt_tokens, completion_tokens, total_tokens
    latency_ms: Optional[float] = None

    @property
    def tokens_used(self) -> int:
        """Total tokens used (prompt + completion)."""
        return self.usage.get("total_tokens", 0) if self.usage else 0


class BaseLLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    All LLM backends must implement this interface to be swappable.
    """

    def __init__(self, model: str, **kwargs):
        self.model = model
        self.config = kwargs

    @abstractmethod
    async def generate(
        self,
        messages: List[Message],
        config: Optional[GenerationConfig] = None,
    ) -> LLMResponse:
        """
        Generate a response from the LLM.

        Args:
            messages: List of chat messages
            config: Generation configuration (temperature, max_tokens, etc.)

        Returns:
            LLMResponse with generated content and metadata

        Raises:
            httpx.HTTPError: on transport failures or non-2xx responses
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the LLM provider is healthy and responding."""
        pass

    async def close(self):
        """Release any underlying resources."""
        return None


# Convenience functions for creating messages
def system_message(content: str) -> Message:
    """Create a system message."""
    return Message(role="system", content=content)


def user_message(content: str) -> Message:
    """Create a user message."""
    return Message(role="user", content=content)
