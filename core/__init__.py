"""
Core Module - Foundation components for Travel Buddy
====================================================

This module provides the foundational components including:
- Configuration management
- Logging setup
- Exception handling
"""

from .config import Config, load_config, save_config
from .exceptions import (
    TravelBuddyError,
    ConfigError,
    LLMError,
    ChatError,
)
from .logging import setup_logging, get_logger

__all__ = [
    "Config",
    "load_config",
    "save_config",
    "TravelBuddyError",
    "ConfigError",
    "LLMError",
    "ChatError",
    "setup_logging",
    "get_logger",
]
