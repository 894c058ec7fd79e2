"""Cross-locale synchronization of page structure.

This package replays structural diffs against sibling locales, seeds
locales that have no content yet, and fills missing translations.
"""

from .models import PropagationResult, SyncStrategy, TranslationFailure, Translator
from .sync_engine import SyncEngine

__all__ = [
    'PropagationResult',
    'SyncStrategy',
    'TranslationFailure',
    'Translator',
    'SyncEngine',
]
