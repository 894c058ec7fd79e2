"""Unit tests for translation_client.retry_logic module."""

import pytest
from unittest.mock import MagicMock, patch

from src.translation_client.errors import TranslationAPIError
from src.translation_client.retry_logic import (
    RetryPolicy,
    _is_rate_limit_error,
    as_decorator,
    retry_on_rate_limit,
)


def create_rate_limit_error(message="429 Too Many Requests", status_code=429):
    """Create an exception carrying a response with the given status."""
    error = Exception(message)
    error.response = MagicMock(status_code=status_code, headers={})
    return error


class TestIsRateLimitError:
    """Test cases for _is_rate_limit_error function."""

    @pytest.mark.parametrize("error", [
        Exception("429 Client Error: Too Many Requests"),
        ValueError("order 429 not found"),
        create_rate_limit_error("rate limited", status_code=None),
    ])
    def test_message_alone_is_not_a_rate_limit(self, error):
        """_is_rate_limit_error should ignore messages without a 429 status."""
        assert _is_rate_limit_error(error) is False

    def test_detects_status_code_on_exception(self):
        """_is_rate_limit_error should accept a status_code attribute on the error."""
        error = Exception("Too Many Requests")
        error.status_code = 429
        assert _is_rate_limit_error(error) is True

    def test_detects_response_status_code_attribute(self):
        """_is_rate_limit_error should detect response.status_code=429."""
        error = Exception("API error")
        error.response = MagicMock()
        error.response.status_code = 429
        assert _is_rate_limit_error(error) is True

    def test_returns_false_for_quota_error(self):
        """_is_rate_limit_error should not treat quota exhaustion as a rate limit."""
        error = Exception("456 Client Error")
        error.response = MagicMock()
        error.response.status_code = 456
        assert _is_rate_limit_error(error) is False


class TestRetryOnRateLimit:
    """Test cases for retry_on_rate_limit function."""

    def test_success_on_first_attempt(self):
        """retry_on_rate_limit should return result on first successful attempt."""
        mock_func = MagicMock(return_value=["Hei"])

        assert retry_on_rate_limit(mock_func, ["Hi"], target="fi") == ["Hei"]
        mock_func.assert_called_once_with(["Hi"], target="fi")

    @patch('time.sleep')
    def test_exponential_backoff_timing(self, mock_sleep):
        """retry_on_rate_limit should wait 1s, 2s, 4s between attempts."""
        rate_limit_error = create_rate_limit_error()
        mock_func = MagicMock(side_effect=[rate_limit_error] * 3 + ["success"])

        assert retry_on_rate_limit(mock_func) == "success"
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1, 2, 4]

    @patch('time.sleep')
    def test_gives_up_after_max_retries(self, mock_sleep):
        """retry_on_rate_limit should raise TranslationAPIError after 3 retries."""
        mock_func = MagicMock(side_effect=create_rate_limit_error())

        with pytest.raises(TranslationAPIError) as exc_info:
            retry_on_rate_limit(mock_func)

        assert mock_func.call_count == 4
        assert isinstance(exc_info.value.__cause__, Exception)

    @patch('time.sleep')
    def test_other_errors_are_not_retried(self, mock_sleep):
        """retry_on_rate_limit should re-raise non rate-limit errors immediately."""
        mock_func = MagicMock(side_effect=ValueError("bad input"))

        with pytest.raises(ValueError):
            retry_on_rate_limit(mock_func)

        mock_func.assert_called_once()
        mock_sleep.assert_not_called()

    @patch('time.sleep')
    def test_retry_after_header_is_honored(self, mock_sleep):
        """A Retry-After header replaces the computed backoff, capped at max_delay."""
        error = Exception("429 Too Many Requests")
        error.response = MagicMock(status_code=429, headers={"Retry-After": "120"})
        mock_func = MagicMock(side_effect=[error, "ok"])

        assert retry_on_rate_limit(mock_func, policy=RetryPolicy(max_delay=10)) == "ok"
        mock_sleep.assert_called_once_with(10)

    @patch('time.sleep')
    def test_custom_policy(self, mock_sleep):
        """RetryPolicy controls the number of retries and the base delay."""
        mock_func = MagicMock(side_effect=create_rate_limit_error())

        with pytest.raises(TranslationAPIError, match="after 1 retries"):
            retry_on_rate_limit(mock_func, policy=RetryPolicy(max_retries=1, base_delay=0.5))

        assert mock_func.call_count == 2
        mock_sleep.assert_called_once_with(0.5)


class TestAsDecorator:
    """Test cases for as_decorator function."""

    @patch('time.sleep')
    def test_decorated_function_is_retried(self, mock_sleep):
        """as_decorator should wrap a function with retry behavior."""
        calls = []

        @as_decorator
        def post_batch(texts):
            calls.append(texts)
            if len(calls) == 1:
                raise create_rate_limit_error()
            return [t.upper() for t in texts]

        assert post_batch(["hi"]) == ["HI"]
        assert len(calls) == 2
        assert post_batch.__name__ == "post_batch"
