"""Machine-translation client.

This package provides the DeepL-backed implementation of the
translate(text, source_locale, target_locale) capability used by the sync
engine, together with credential loading and rate-limit retries.
"""

from .auth import Authenticator, Credentials, DEFAULT_API_URL
from .deepl_client import DeepLTranslator
from .errors import (
    TranslationError,
    TranslationUnavailableError,
    InvalidCredentialsError,
    TranslationAPIError,
)
from .retry_logic import RetryPolicy, retry_on_rate_limit

__all__ = [
    'Authenticator',
    'Credentials',
    'DEFAULT_API_URL',
    'DeepLTranslator',
    'TranslationError',
    'TranslationUnavailableError',
    'InvalidCredentialsError',
    'TranslationAPIError',
    'RetryPolicy',
    'retry_on_rate_limit',
]
