"""Authentication module for loading translation API credentials.

This module loads the DeepL API key from environment variables using
python-dotenv. The key is never written to configuration files or logs.
"""

import os
from typing import NamedTuple

from dotenv import load_dotenv

from .errors import InvalidCredentialsError

DEFAULT_API_URL = "https://api-free.deepl.com/v2/translate"


class Credentials(NamedTuple):
    """Translation API credentials."""
    api_key: str
    api_url: str


class Authenticator:
    """Loads and validates translation credentials from environment variables.

    Required environment variables:
        DEEPL_API_KEY: DeepL authentication key

    Optional environment variables:
        DEEPL_API_URL: Translate endpoint (defaults to the free tier)

    Example:
        >>> auth = Authenticator()
        >>> creds = auth.get_credentials()
        >>> print(f"Translating via {creds.api_url}")
    """

    def __init__(self):
        """Initialize the authenticator by loading environment variables from .env file."""
        load_dotenv()

    def is_configured(self) -> bool:
        return bool(os.getenv('DEEPL_API_KEY'))

    def get_credentials(self) -> Credentials:
        """Get translation credentials from environment variables.

        Returns:
            Credentials: A named tuple containing api_key and api_url

        Raises:
            InvalidCredentialsError: If DEEPL_API_KEY is missing
        """
        api_key = os.getenv('DEEPL_API_KEY')
        api_url = os.getenv('DEEPL_API_URL') or DEFAULT_API_URL

        if not api_key:
            raise InvalidCredentialsError(endpoint=api_url)

        return Credentials(api_key=api_key, api_url=api_url)
