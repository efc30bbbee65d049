"""
Services Module - Chat services for Travel Buddy
================================================

This module provides:
- Conversation Handler: intent-first replies with LLM fallback
- Prompt History: recent prompts per user
"""

from .conversation import ConversationHandler, ChatReply, PromptHistory

__all__ = [
    "ConversationHandler",
    "ChatReply",
    "PromptHistory",
]
