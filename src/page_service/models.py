"""Data models returned by the page service."""

from dataclasses import dataclass, field
from typing import Dict, List

from src.node_store.models import ValidatedTree
from src.persistence.models import Page
from src.sync_engine.models import PropagationResult, SyncStrategy, TranslationFailure
from src.tree_differ.models import StructuralDiff


@dataclass
class EditorState:
    """What the editor needs to start editing one locale of a page.

    Attributes:
        page: Page row
        locale: Locale being edited
        tree: Current tree (an empty tree if the locale has no content yet)
        version: Token the editor must send back with its save
        exists: Whether the locale already has stored content
        needs_review: Nodes auto-translated into this locale, not yet reviewed
    """
    page: Page
    locale: str
    tree: ValidatedTree
    version: str
    exists: bool = True
    needs_review: List[str] = field(default_factory=list)


@dataclass
class SaveResult:
    """Outcome of a save or an explicit sync.

    Attributes:
        page_id: Page that was written
        locale: Source locale of the change
        version: New version token
        strategy: How the change reached the other locales
        diff: Structural operations computed in the source locale
        propagation: Per-locale results of the sync engine
    """
    page_id: str
    locale: str
    version: str
    strategy: SyncStrategy
    diff: StructuralDiff = field(default_factory=StructuralDiff)
    propagation: PropagationResult = field(default_factory=PropagationResult)

    @property
    def applied(self) -> Dict[str, int]:
        return self.propagation.applied

    @property
    def failures(self) -> List[TranslationFailure]:
        return self.propagation.failures

    @property
    def seeded_locales(self) -> List[str]:
        return self.propagation.seeded_locales
