"""Unit tests for translation_client.deepl_client module."""

import pytest
from unittest.mock import Mock, patch
from requests.exceptions import (
    ChunkedEncodingError,
    ConnectionError,
    HTTPError,
    MissingSchema,
    Timeout,
    TooManyRedirects,
)

from src.translation_client.auth import Credentials
from src.translation_client.deepl_client import DeepLTranslator
from src.translation_client.errors import (
    InvalidCredentialsError,
    TranslationAPIError,
    TranslationUnavailableError,
)
from src.sync_engine.sync_engine import SyncEngine
from src.tree_differ.tree_differ import TreeDiffer
from tests.fixtures.page_trees import add_node, tree, wire_node

API_URL = "https://api.deepl.test/v2/translate"


def create_mock_auth():
    """Create a mock authenticator with standard credentials."""
    mock_auth = Mock()
    mock_auth.get_credentials.return_value = Credentials(api_key="key-123", api_url=API_URL)
    return mock_auth


def create_response(translations=None, status_code=200):
    """Create a mock requests response."""
    response = Mock()
    response.status_code = status_code
    response.json.return_value = {
        "translations": [{"detected_source_language": "EN", "text": t} for t in translations or []]
    }
    if status_code >= 400:
        response.raise_for_status.side_effect = HTTPError(
            f"{status_code} Error", response=response
        )
    return response


class TestTranslate:
    """Test cases for DeepLTranslator.translate()."""

    @patch('src.translation_client.deepl_client.requests.post')
    def test_translate_success(self, mock_post):
        """translate should return the translated text."""
        mock_post.return_value = create_response(["Tervetuloa"])

        translator = DeepLTranslator(create_mock_auth(), timeout=10)
        result = translator.translate("Welcome", "en", "fi")

        assert result == "Tervetuloa"
        mock_post.assert_called_once_with(
            API_URL,
            data={"text": ["Welcome"], "target_lang": "FI", "source_lang": "EN"},
            headers={"Authorization": "DeepL-Auth-Key key-123"},
            timeout=10,
        )

    @patch('src.translation_client.deepl_client.requests.post')
    def test_translator_is_callable(self, mock_post):
        """Instances should work as the engine's translate callable."""
        mock_post.return_value = create_response(["Hej"])

        translator = DeepLTranslator(create_mock_auth())

        assert translator("Hello", "en", "sv") == "Hej"

    @pytest.mark.parametrize("locale,expected", [
        ("en", "EN-GB"),
        ("pt", "PT-PT"),
        ("de", "DE"),
        ("pt-BR", "PT-BR"),
    ])
    @patch('src.translation_client.deepl_client.requests.post')
    def test_target_language_codes(self, mock_post, locale, expected):
        """Bare EN and PT targets should be mapped to regional variants."""
        mock_post.return_value = create_response(["x"])

        DeepLTranslator(create_mock_auth()).translate("Hei", "fi", locale)

        assert mock_post.call_args.kwargs["data"]["target_lang"] == expected

    @patch('src.translation_client.deepl_client.requests.post')
    def test_api_url_override(self, mock_post):
        """An explicit api_url should take precedence over the credentials."""
        mock_post.return_value = create_response(["Hei"])

        translator = DeepLTranslator(create_mock_auth(), api_url="https://api.deepl.com/v2/translate")
        translator.translate("Hi", "en", "fi")

        assert mock_post.call_args.args[0] == "https://api.deepl.com/v2/translate"

    @patch('src.translation_client.deepl_client.requests.post')
    def test_credentials_loaded_once(self, mock_post):
        """Credentials should be read lazily and cached."""
        mock_post.return_value = create_response(["Hei"])
        mock_auth = create_mock_auth()

        translator = DeepLTranslator(mock_auth)
        mock_auth.get_credentials.assert_not_called()
        translator.translate("Hi", "en", "fi")
        translator.translate("Hi", "en", "fi")

        mock_auth.get_credentials.assert_called_once()


class TestTranslateBatch:
    """Test cases for DeepLTranslator.translate_batch()."""

    @patch('src.translation_client.deepl_client.requests.post')
    def test_batch_preserves_order(self, mock_post):
        """translate_batch should return translations in request order."""
        mock_post.return_value = create_response(["Yksi", "Kaksi"])

        result = DeepLTranslator(create_mock_auth()).translate_batch(["One", "Two"], "en", "fi")

        assert result == ["Yksi", "Kaksi"]

    @patch('src.translation_client.deepl_client.requests.post')
    def test_empty_batch_makes_no_request(self, mock_post):
        """translate_batch should not call the API for an empty list."""
        assert DeepLTranslator(create_mock_auth()).translate_batch([], "en", "fi") == []
        mock_post.assert_not_called()

    @patch('src.translation_client.deepl_client.requests.post')
    def test_count_mismatch_raises_api_error(self, mock_post):
        """translate_batch should reject a response with the wrong number of texts."""
        mock_post.return_value = create_response(["Yksi"])

        with pytest.raises(TranslationAPIError, match="Expected 2"):
            DeepLTranslator(create_mock_auth()).translate_batch(["One", "Two"], "en", "fi")


class TestErrorMapping:
    """Test cases for HTTP and network error handling."""

    @pytest.mark.parametrize("status_code", [401, 403])
    @patch('src.translation_client.deepl_client.requests.post')
    def test_auth_errors(self, mock_post, status_code):
        """401 and 403 should raise InvalidCredentialsError."""
        mock_post.return_value = create_response(status_code=status_code)

        with pytest.raises(InvalidCredentialsError) as exc_info:
            DeepLTranslator(create_mock_auth()).translate("Hi", "en", "fi")

        assert exc_info.value.endpoint == API_URL

    @patch('src.translation_client.deepl_client.requests.post')
    def test_quota_exceeded(self, mock_post):
        """456 should raise TranslationUnavailableError."""
        mock_post.return_value = create_response(status_code=456)

        with pytest.raises(TranslationUnavailableError, match="quota exceeded"):
            DeepLTranslator(create_mock_auth()).translate("Hi", "en", "fi")

    @patch('src.translation_client.deepl_client.requests.post')
    def test_server_error(self, mock_post):
        """5xx should raise TranslationUnavailableError without retrying."""
        mock_post.return_value = create_response(status_code=503)

        with pytest.raises(TranslationUnavailableError, match="HTTP 503"):
            DeepLTranslator(create_mock_auth()).translate("Hi", "en", "fi")

        assert mock_post.call_count == 1

    @patch('src.translation_client.deepl_client.requests.post')
    def test_other_client_error(self, mock_post):
        """Other 4xx should raise TranslationAPIError."""
        mock_post.return_value = create_response(status_code=400)

        with pytest.raises(TranslationAPIError, match="HTTP 400"):
            DeepLTranslator(create_mock_auth()).translate("Hi", "en", "fi")

    @pytest.mark.parametrize("exception", [Timeout("timed out"), ConnectionError("refused")])
    @patch('src.translation_client.deepl_client.requests.post')
    def test_network_errors(self, mock_post, exception):
        """Timeouts and connection errors should raise TranslationUnavailableError."""
        mock_post.side_effect = exception

        with pytest.raises(TranslationUnavailableError) as exc_info:
            DeepLTranslator(create_mock_auth()).translate("Hi", "en", "fi")

        assert exc_info.value.reason == type(exception).__name__

    @pytest.mark.parametrize("exception", [
        ChunkedEncodingError("connection broken"),
        TooManyRedirects("exceeded 30 redirects"),
        MissingSchema("no scheme supplied"),
    ])
    @patch('src.translation_client.deepl_client.requests.post')
    def test_other_request_errors(self, mock_post, exception):
        """Any other requests failure should also be TranslationUnavailableError."""
        mock_post.side_effect = exception

        with pytest.raises(TranslationUnavailableError) as exc_info:
            DeepLTranslator(create_mock_auth()).translate("Hi", "en", "fi")

        assert exc_info.value.reason == type(exception).__name__
        mock_post.assert_called_once()

    @patch('src.translation_client.deepl_client.requests.post')
    def test_broken_transfer_does_not_abort_sync(self, mock_post, en_wire, en_tree, fi_tree):
        """The sync engine leaves the text empty and flags the node instead."""
        mock_post.side_effect = ChunkedEncodingError("connection broken")
        en_wire = add_node(en_wire, "T2", wire_node("Text", {"text": "Contact"}, "S1"))
        edited = tree(en_wire)
        diff = TreeDiffer().diff(en_tree, edited)

        result = SyncEngine().propagate(
            diff, "en", edited, {"fi": fi_tree}, DeepLTranslator(create_mock_auth()), {}
        )

        assert result.trees["fi"]["T2"].props["text"] == ""
        assert "fi" in result.metas["T2"].translation_failed

    @patch('src.translation_client.deepl_client.requests.post')
    def test_malformed_response(self, mock_post):
        """A response without translations should raise TranslationAPIError."""
        response = create_response()
        response.json.return_value = {"message": "unexpected"}
        mock_post.return_value = response

        with pytest.raises(TranslationAPIError, match="Malformed response"):
            DeepLTranslator(create_mock_auth()).translate("Hi", "en", "fi")

    @patch('time.sleep')
    @patch('src.translation_client.deepl_client.requests.post')
    def test_rate_limit_is_retried(self, mock_post, mock_sleep):
        """429 should be retried with backoff before succeeding."""
        mock_post.side_effect = [
            create_response(status_code=429),
            create_response(["Hei"]),
        ]

        result = DeepLTranslator(create_mock_auth()).translate("Hi", "en", "fi")

        assert result == "Hei"
        assert mock_post.call_count == 2
        mock_sleep.assert_called_once_with(1)

    @patch('time.sleep')
    @patch('src.translation_client.deepl_client.requests.post')
    def test_persistent_rate_limit(self, mock_post, mock_sleep):
        """429 on every attempt should raise TranslationAPIError after 3 retries."""
        mock_post.return_value = create_response(status_code=429)

        with pytest.raises(TranslationAPIError, match="after 3 retries"):
            DeepLTranslator(create_mock_auth()).translate("Hi", "en", "fi")

        assert mock_post.call_count == 4
        assert mock_sleep.call_count == 3
