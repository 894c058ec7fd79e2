"""Backoff for translation requests that hit the provider's rate limit.

Only rate limiting (HTTP 429) is retried. Quota exhaustion (456), auth
failures and server errors are raised on the first attempt, since the
sync engine absorbs them per node anyway and waiting would only slow a
save down.
"""

import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from .errors import TranslationAPIError

logger = logging.getLogger(__name__)

T = TypeVar('T')

RATE_LIMIT_STATUS = 429


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how long to wait on rate limits.

    Attributes:
        max_retries: Retries after the first attempt
        base_delay: Wait before the first retry; doubled for each further one
        max_delay: Upper bound for any single wait, including Retry-After
    """
    max_retries: int = 3
    base_delay: float = 1
    max_delay: float = 30

    def delay(self, retry_num: int, retry_after: Optional[float] = None) -> float:
        if retry_after is not None:
            return min(retry_after, self.max_delay)
        return min(self.base_delay * 2 ** retry_num, self.max_delay)


DEFAULT_POLICY = RetryPolicy()


def retry_on_rate_limit(
    func: Callable[..., T], *args, policy: RetryPolicy = DEFAULT_POLICY, **kwargs
) -> T:
    """Call func, retrying with exponential backoff while it is rate limited.

    A Retry-After header on the 429 response takes precedence over the
    computed backoff.

    Raises:
        TranslationAPIError: If the rate limit persists after all retries
        Other exceptions: Passed through immediately without retry
    """
    retry_num = 0
    while True:
        try:
            return func(*args, **kwargs)
        except Exception as e:
            if not _is_rate_limit_error(e):
                raise
            if retry_num >= policy.max_retries:
                logger.error(
                    f"Translation rate limit persisted after {policy.max_retries} retries"
                )
                raise TranslationAPIError(
                    f"Translation API failure (after {policy.max_retries} retries)"
                ) from e

            wait_time = policy.delay(retry_num, _retry_after(e))
            retry_num += 1
            logger.info(
                f"Translation rate limited, waiting {wait_time}s "
                f"(retry {retry_num}/{policy.max_retries})"
            )
            time.sleep(wait_time)


def as_decorator(func: Callable[..., T]) -> Callable[..., T]:
    """Wrap func so every call goes through retry_on_rate_limit."""
    @wraps(func)
    def wrapper(*args, **kwargs) -> T:
        return retry_on_rate_limit(func, *args, **kwargs)

    return wrapper


def _status_code(exception: Exception) -> Any:
    response = getattr(exception, 'response', None)
    if response is not None:
        return getattr(response, 'status_code', None)
    return getattr(exception, 'status_code', None)


def _is_rate_limit_error(exception: Exception) -> bool:
    """True only for errors that carry an HTTP 429 status code."""
    return _status_code(exception) == RATE_LIMIT_STATUS


def _retry_after(exception: Exception) -> Optional[float]:
    """Seconds from the response's Retry-After header, if it sent one."""
    response = getattr(exception, 'response', None)
    headers = getattr(response, 'headers', None)
    if headers is None:
        return None
    value = headers.get('Retry-After')
    if not isinstance(value, str):
        return None
    try:
        seconds = float(value)
    except ValueError:
        # HTTP-date form; fall back to backoff
        return None
    return max(seconds, 0.0)
