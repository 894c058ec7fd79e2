"""Data models for cross-locale propagation."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List

from src.node_store.models import ValidatedTree
from src.translation_status.models import MetaMap

# translate(text, source_locale, target_locale) -> translated text
Translator = Callable[[str, str, str], str]


class SyncStrategy(Enum):
    """How an edit in one locale is carried to the others.

    STRUCTURE_ONLY replays the structural diff and keeps every locale's
    authored text. FULL_OVERRIDE replaces the target trees with a copy of
    the source tree, text included (translated when a translator is set).
    """

    STRUCTURE_ONLY = "structure-only"
    FULL_OVERRIDE = "full-override"


@dataclass
class TranslationFailure:
    """A text value that could not be translated and was left empty."""
    locale: str
    node_id: str
    prop_name: str
    reason: str


@dataclass
class PropagationResult:
    """Outcome of propagating a change to sibling locales.

    Attributes:
        trees: New validated tree per target locale that was processed
        metas: Updated translation metadata for the whole page
        applied: Number of operations applied per locale
        skipped: Number of operations skipped per locale (node missing)
        failures: Text values left empty because translation failed
        seeded_locales: Locales that had no tree and were built from scratch
    """
    trees: Dict[str, ValidatedTree] = field(default_factory=dict)
    metas: MetaMap = field(default_factory=dict)
    applied: Dict[str, int] = field(default_factory=dict)
    skipped: Dict[str, int] = field(default_factory=dict)
    failures: List[TranslationFailure] = field(default_factory=list)
    seeded_locales: List[str] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)
