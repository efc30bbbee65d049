"""
Exception Definitions - Custom exceptions for Travel Buddy
==========================================================

This module defines the custom exceptions used throughout the application.
Failing to match an utterance is not an error: the matcher simply
returns None for that case.
"""


class TravelBuddyError(Exception):
    """
    Base exception for all Travel Buddy errors.

    All custom exceptions in this application inherit from this base class,
    allowing for easy catching of all application-specific errors.

    Attributes:
        message (str): Human-readable error description
        details (dict): Additional error details for debugging
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            details: Optional dictionary with additional error context
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return formatted error message with details if present."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigError(TravelBuddyError):
    """
    Configuration-related errors.

    Raised when there are issues with:
    - Missing intents file (fatal at startup)
    - Invalid configuration values
    - Configuration parsing errors
    """
    pass


class LLMError(TravelBuddyError):
    """
    LLM fallback provider errors.

    Raised when there are issues with:
    - API connection failures
    - Authentication or quota errors
    - Unknown models
    - Invalid responses
    """
    pass


class ChatError(TravelBuddyError):
    """
    Chat request errors.

    Raised when an incoming chat message cannot be handled,
    e.g. an empty message. The message is already localized.

    Attributes:
        lang (str): Language the message was localized to
    """

    def __init__(self, message: str, lang: str = "en", details: dict = None):
        self.lang = lang
        super().__init__(message, details)
