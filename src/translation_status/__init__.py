"""Translation status tracking.

This package records, per block and per locale, whether text was authored,
filled automatically or reviewed by a human, and reports translation
coverage for whole pages.
"""

from .errors import ReviewStateError
from .models import (
    BlockTranslationMeta,
    MetaMap,
    LocaleStatus,
    TranslationCoverage,
    NodeTranslationStatus,
    TranslationReport,
)
from .tracker import TranslationStatusTracker

__all__ = [
    'ReviewStateError',
    'BlockTranslationMeta',
    'MetaMap',
    'LocaleStatus',
    'TranslationCoverage',
    'NodeTranslationStatus',
    'TranslationReport',
    'TranslationStatusTracker',
]
