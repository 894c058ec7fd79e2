"""Typed exception hierarchy for machine-translation errors.

The sync engine absorbs every TranslationError per text value: the target
prop is left empty and the node is flagged for review. The CLI maps them
to the network/translation exit code when they escape a command.
"""

from typing import Optional

from src.node_store.errors import PageSyncError


class TranslationError(PageSyncError):
    """Base exception for all machine-translation errors."""
    pass


class TranslationUnavailableError(TranslationError):
    """Raised when the translation service cannot be reached or refuses work."""

    def __init__(self, endpoint: str, reason: Optional[str] = None):
        message = f"Translation service is not available at {endpoint}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.endpoint = endpoint
        self.reason = reason


class InvalidCredentialsError(TranslationError):
    """Raised when the translation API key is missing or rejected."""

    def __init__(self, endpoint: str):
        super().__init__(f"Translation API key is missing or invalid (endpoint: {endpoint})")
        self.endpoint = endpoint


class TranslationAPIError(TranslationError):
    """Raised when the translation API fails after retries or returns bad data."""

    def __init__(self, message: str = "Translation API failure (after 3 retries)"):
        super().__init__(message)
