"""Typed exception hierarchy for persistence errors.

ConflictError is the retryable condition of optimistic concurrency: the
caller must re-read the page and retry against the fresh baseline. Every
other error means nothing was written.
"""

from typing import Optional

from src.node_store.errors import PageSyncError


class PersistenceError(PageSyncError):
    """Base exception for all persistence errors."""
    pass


class ConflictError(PersistenceError):
    """Raised when a write carries a stale version token."""

    def __init__(self, page_id: str, expected_version: str, actual_version: str):
        super().__init__(
            f"Page {page_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
        self.page_id = page_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class PersistenceFailure(PersistenceError):
    """Raised when a storage operation fails; the write is rolled back."""

    def __init__(self, page_id: str, operation: str, reason: Optional[str] = None):
        message = f"Persistence operation '{operation}' failed for page {page_id}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.page_id = page_id
        self.operation = operation
        self.reason = reason


class PageNotFoundError(PersistenceError):
    """Raised when a requested page does not exist."""

    def __init__(self, page_ref: str):
        super().__init__(f"Page {page_ref} not found")
        self.page_ref = page_ref


class SlugExistsError(PersistenceError):
    """Raised when creating a page with a slug that is already taken."""

    def __init__(self, slug: str):
        super().__init__(f"Page with slug '{slug}' already exists")
        self.slug = slug


class LocaleContentNotFoundError(PersistenceError):
    """Raised when a page has no content for the requested locale."""

    def __init__(self, page_id: str, locale: str):
        super().__init__(f"Page {page_id} has no content for locale '{locale}'")
        self.page_id = page_id
        self.locale = locale
