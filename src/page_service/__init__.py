"""Page service.

This package exposes the operations the surrounding CMS calls: create and
edit pages, save with cross-locale sync, publish, and query translation
status.
"""

from .errors import PublishError, UnknownLocaleError
from .models import EditorState, SaveResult
from .page_service import PageService
from .publisher import Publisher

__all__ = [
    'PublishError',
    'UnknownLocaleError',
    'EditorState',
    'SaveResult',
    'PageService',
    'Publisher',
]
