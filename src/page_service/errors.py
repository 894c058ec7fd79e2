"""Exceptions raised by the page service and the publish pipeline."""

from typing import Sequence

from src.node_store.errors import PageSyncError


class PublishError(PageSyncError):
    """Raised when a publish state transition is not possible."""

    def __init__(self, page_id: str, reason: str):
        super().__init__(f"Cannot change publication of page {page_id}: {reason}")
        self.page_id = page_id
        self.reason = reason


class UnknownLocaleError(PageSyncError):
    """Raised when an operation names a locale the site is not configured for."""

    def __init__(self, locale: str, locales: Sequence[str]):
        super().__init__(
            f"Locale '{locale}' is not configured (available: {', '.join(locales)})"
        )
        self.locale = locale
        self.locales = list(locales)
