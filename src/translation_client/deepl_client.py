"""DeepL client implementing the engine's translate(text, from, to) capability.

This module wraps the DeepL v2 translate endpoint with requests and
translates HTTP failures into the typed TranslationError hierarchy. Rate
limits (HTTP 429) are retried with exponential backoff.
"""

import logging
from typing import Dict, List, Optional

import requests
from requests.exceptions import ConnectionError, Timeout

from .auth import Authenticator, Credentials
from .errors import (
    InvalidCredentialsError,
    TranslationAPIError,
    TranslationUnavailableError,
)
from .retry_logic import as_decorator

logger = logging.getLogger(__name__)

# DeepL rejects bare EN/PT as target languages
TARGET_LANGUAGE_OVERRIDES: Dict[str, str] = {
    "en": "EN-GB",
    "pt": "PT-PT",
}

# DeepL answers 456 when the account's character quota is used up
QUOTA_EXCEEDED_STATUS = 456


class DeepLTranslator:
    """Machine translation through the DeepL HTTP API.

    Instances are callable with the (text, source_locale, target_locale)
    signature the sync engine expects.

    Example:
        >>> translator = DeepLTranslator(Authenticator())
        >>> translator("Hello", "en", "fi")
        'Hei'
    """

    def __init__(
        self,
        authenticator: Authenticator,
        timeout: int = 30,
        api_url: Optional[str] = None,
    ):
        """Initialize the client.

        Args:
            authenticator: Source of the API key and default endpoint
            timeout: Request timeout in seconds
            api_url: Endpoint override (takes precedence over DEEPL_API_URL)
        """
        self._authenticator = authenticator
        self._timeout = timeout
        self._api_url = api_url
        self._credentials: Optional[Credentials] = None

    def __call__(self, text: str, source_locale: str, target_locale: str) -> str:
        return self.translate(text, source_locale, target_locale)

    def translate(self, text: str, source_locale: str, target_locale: str) -> str:
        """Translate a single text value.

        Raises:
            InvalidCredentialsError: If the API key is missing or rejected
            TranslationUnavailableError: If the service cannot be reached
            TranslationAPIError: On other API failures
        """
        return self.translate_batch([text], source_locale, target_locale)[0]

    def translate_batch(
        self, texts: List[str], source_locale: str, target_locale: str
    ) -> List[str]:
        """Translate several text values in one request, preserving order."""
        if not texts:
            return []

        creds = self._get_credentials()
        data = {
            "text": list(texts),
            "target_lang": self._target_code(target_locale),
            "source_lang": source_locale.upper(),
        }
        logger.debug(
            f"Translating {len(texts)} text(s) {source_locale} -> {target_locale}"
        )

        try:
            response = self._post(creds, data)
        except (Timeout, ConnectionError) as e:
            raise TranslationUnavailableError(creds.api_url, type(e).__name__) from e
        except requests.HTTPError as e:
            raise self._translate_error(e, creds) from e
        except requests.RequestException as e:
            logger.error(f"Translation request to {creds.api_url} failed: {e}")
            raise TranslationUnavailableError(creds.api_url, type(e).__name__) from e

        try:
            translations = [item["text"] for item in response.json()["translations"]]
        except (ValueError, KeyError, TypeError) as e:
            raise TranslationAPIError(f"Malformed response from {creds.api_url}") from e

        if len(translations) != len(texts):
            raise TranslationAPIError(
                f"Expected {len(texts)} translation(s), got {len(translations)}"
            )
        return translations

    @as_decorator
    def _post(self, creds: Credentials, data: Dict) -> requests.Response:
        response = requests.post(
            self._api_url or creds.api_url,
            data=data,
            headers={"Authorization": f"DeepL-Auth-Key {creds.api_key}"},
            timeout=self._timeout,
        )
        response.raise_for_status()
        return response

    def _get_credentials(self) -> Credentials:
        if self._credentials is None:
            self._credentials = self._authenticator.get_credentials()
        return self._credentials

    def _target_code(self, locale: str) -> str:
        return TARGET_LANGUAGE_OVERRIDES.get(locale.lower(), locale.upper())

    def _translate_error(self, exception: requests.HTTPError, creds: Credentials) -> Exception:
        """Translate an HTTP error into a typed translation exception."""
        status_code = exception.response.status_code if exception.response is not None else None
        endpoint = self._api_url or creds.api_url

        if status_code in (401, 403):
            return InvalidCredentialsError(endpoint=endpoint)
        if status_code == QUOTA_EXCEEDED_STATUS:
            return TranslationUnavailableError(endpoint, "quota exceeded")
        if status_code is not None and status_code >= 500:
            return TranslationUnavailableError(endpoint, f"HTTP {status_code}")

        logger.error(f"Translation request failed with HTTP {status_code}")
        return TranslationAPIError(f"Translation API failure (HTTP {status_code})")
