"""
LLM Module - Fallback language-model providers
==============================================

Used by the conversation handler only when no intent rule matches.
"""

from .base import BaseLLMProvider, LLMResponse, Message
from .gemini import GeminiProvider
from .factory import create_llm_provider

__all__ = [
    "BaseLLMProvider",
    "LLMResponse",
    "Message",
    "GeminiProvider",
    "create_llm_provider",
]
