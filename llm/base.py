"""
Base LLM Provider - Abstract base class for fallback providers
==============================================================

The conversation handler only talks to a language model when no intent
matched. Providers implement the small interface below.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
import time

from core.config import LLMConfig


@dataclass
class LLMResponse:
    """
    Response from an LLM provider.

    Attributes:
        content (str): Generated text content
        model (str): Model that generated the response
        provider (str): Provider name
        tokens_used (int): Total tokens used (prompt + completion)
        latency_ms (int): Response latency in milliseconds
        finish_reason (str): Reason for completion
        timestamp (datetime): When the response was generated
        metadata (dict): Additional provider-specific metadata
    """
    content: str
    model: str
    provider: str
    tokens_used: int = 0
    latency_ms: int = 0
    finish_reason: str = "stop"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        """Check if response completed normally."""
        return self.finish_reason == "stop"


@dataclass
class Message:
    """
    Chat message structure.

    Attributes:
        role (str): Message role (system, user, or assistant)
        content (str): Message content
    """
    role: str  # system, user, assistant
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}


class BaseLLMProvider(ABC):
    """
    Abstract base class for LLM fallback providers.

    Subclasses must implement:
    - chat(): Generate a reply from a conversation
    - is_available(): Check if the provider can be reached

    ``generate()`` wraps a single prompt into a one-message chat.
    """

    PROVIDER_NAME = "base"

    def __init__(self, config: LLMConfig):
        """
        Initialize the provider.

        Args:
            config: LLM section of the application config
        """
        self.config = config
        self.config.validate()

    @abstractmethod
    def chat(
        self,
        messages: List[Message],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Generate response from a conversation.

        Raises:
            LLMError: If the provider fails
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider is available."""
        pass

    def generate(self, prompt: str, **kwargs) -> LLMResponse:
        """Generate text from a single prompt."""
        return self.chat([Message(role="user", content=prompt)], **kwargs)

    def _get_generation_params(
        self,
        temperature: Optional[float],
        max_tokens: Optional[int],
        **kwargs
    ) -> Dict[str, Any]:
        """Combine config defaults with per-call overrides."""
        params = {
            "temperature": temperature if temperature is not None else self.config.temperature,
            "max_tokens": max_tokens if max_tokens is not None else self.config.max_tokens,
        }
        params.update(kwargs)
        return params

    @staticmethod
    def _measure_latency(start_time: float) -> int:
        """Milliseconds elapsed since ``start_time`` (from time.time())."""
        return int((time.time() - start_time) * 1000)
