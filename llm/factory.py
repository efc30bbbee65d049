"""
LLM Factory - Creates the configured fallback provider
======================================================
"""

from typing import Optional, Type, Dict

from .base import BaseLLMProvider
from .gemini import GeminiProvider
from core.config import Config
from core.exceptions import ConfigError, LLMError
from core.logging import get_logger

logger = get_logger("llm.factory")


PROVIDERS: Dict[str, Type[BaseLLMProvider]] = {
    "gemini": GeminiProvider,
}


def create_llm_provider(config: Config) -> Optional[BaseLLMProvider]:
    """
    Create the fallback provider described by ``config.llm``.

    Returns None when the fallback is disabled or no API key is set;
    the conversation handler then answers unmatched messages with its
    canned "AI unavailable" reply.

    Raises:
        ConfigError: If the provider name is unknown
    """
    llm_config = config.llm

    if not llm_config.fallback_enabled:
        logger.info("LLM fallback disabled")
        return None

    provider_class = PROVIDERS.get(llm_config.provider.lower())
    if provider_class is None:
        raise ConfigError(
            f"Unknown LLM provider: {llm_config.provider}",
            details={"available_providers": ", ".join(PROVIDERS)}
        )

    if not llm_config.api_key:
        logger.warning(f"No API key for {llm_config.provider}; LLM fallback unavailable")
        return None

    try:
        return provider_class(llm_config)
    except LLMError as e:
        logger.warning(f"Failed to initialize LLM provider: {e}")
        return None
