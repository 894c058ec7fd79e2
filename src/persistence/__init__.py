"""Persistence gateway for pages and their per-locale trees.

This package stores the page row, one tree per (page, locale) and the
page's translation metadata, with optimistic concurrency and atomic
multi-locale writes.
"""

from .errors import (
    PersistenceError,
    ConflictError,
    PersistenceFailure,
    PageNotFoundError,
    SlugExistsError,
    LocaleContentNotFoundError,
)
from .file_store import FileGateway
from .gateway import PersistenceGateway, format_version, parse_version
from .memory_store import InMemoryGateway
from .models import (
    Page,
    PageStatus,
    LocaleContent,
    SeoFields,
    PageSnapshot,
    LiveSnapshot,
)

__all__ = [
    'PersistenceError',
    'ConflictError',
    'PersistenceFailure',
    'PageNotFoundError',
    'SlugExistsError',
    'LocaleContentNotFoundError',
    'FileGateway',
    'PersistenceGateway',
    'format_version',
    'parse_version',
    'InMemoryGateway',
    'Page',
    'PageStatus',
    'LocaleContent',
    'SeoFields',
    'PageSnapshot',
    'LiveSnapshot',
]
