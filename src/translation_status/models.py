"""Data models for per-block translation provenance and page status reports.

Timestamps are ISO 8601 strings, matching what is persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set


class LocaleStatus(Enum):
    """Status of one node in one locale, as shown to editors."""

    SOURCE = "source"        # the locale the node was authored in
    REVIEWED = "reviewed"    # a human vetted the text
    AUTO = "auto"            # filled automatically, awaiting review
    AVAILABLE = "available"  # present, no provenance recorded
    MISSING = "missing"      # node absent from the locale's tree


@dataclass
class BlockTranslationMeta:
    """Translation provenance of one node across the locales of a page.

    Attributes:
        node_id: Node the record belongs to
        default_locale: Locale the node was first authored in
        auto_translated: Locales whose text was filled automatically
        manually_reviewed: Locales whose text a human has vetted
        translation_failed: Locales whose last automatic pass failed; the
            text was left empty and the locale also counts as auto-translated
        last_translated_at: Time of the last automatic pass
        last_modified_at: Time of the last change to this record

    Example:
        >>> meta = BlockTranslationMeta("T1", "en", auto_translated={"fi"})
        >>> meta.needs_review("fi")
        True
    """
    node_id: str
    default_locale: str
    auto_translated: Set[str] = field(default_factory=set)
    manually_reviewed: Set[str] = field(default_factory=set)
    translation_failed: Set[str] = field(default_factory=set)
    last_translated_at: Optional[str] = None
    last_modified_at: Optional[str] = None

    def needs_review(self, locale: str) -> bool:
        return locale in self.auto_translated and locale not in self.manually_reviewed

    def copy(self) -> "BlockTranslationMeta":
        return BlockTranslationMeta(
            node_id=self.node_id,
            default_locale=self.default_locale,
            auto_translated=set(self.auto_translated),
            manually_reviewed=set(self.manually_reviewed),
            translation_failed=set(self.translation_failed),
            last_translated_at=self.last_translated_at,
            last_modified_at=self.last_modified_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'node_id': self.node_id,
            'default_locale': self.default_locale,
            'auto_translated': sorted(self.auto_translated),
            'manually_reviewed': sorted(self.manually_reviewed),
            'translation_failed': sorted(self.translation_failed),
            'last_translated_at': self.last_translated_at,
            'last_modified_at': self.last_modified_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlockTranslationMeta":
        return cls(
            node_id=data['node_id'],
            default_locale=data['default_locale'],
            auto_translated=set(data.get('auto_translated') or []),
            manually_reviewed=set(data.get('manually_reviewed') or []),
            translation_failed=set(data.get('translation_failed') or []),
            last_translated_at=data.get('last_translated_at'),
            last_modified_at=data.get('last_modified_at'),
        )


# node_id -> BlockTranslationMeta for one page
MetaMap = Dict[str, BlockTranslationMeta]


@dataclass
class TranslationCoverage:
    """How much of the source locale's text exists in a target locale.

    Counted per node: a node is translated when every translatable prop
    that has text in the source also has text in the target.
    """
    locale: str
    total: int = 0
    translated: int = 0
    missing: int = 0
    percentage: int = 100


@dataclass
class NodeTranslationStatus:
    """Per-locale status of one node."""
    node_id: str
    component_type: str
    statuses: Dict[str, LocaleStatus] = field(default_factory=dict)


@dataclass
class TranslationReport:
    """Translation status of a whole page across all configured locales.

    Attributes:
        page_id: Page the report describes
        default_locale: Locale used as reference for coverage
        missing_locales: Configured locales with no content at all
        coverage: Coverage per locale other than the default
        needs_review: Node ids awaiting review, per locale
        nodes: Per-node, per-locale status in tree order
    """
    page_id: str
    default_locale: str
    missing_locales: Set[str] = field(default_factory=set)
    coverage: Dict[str, TranslationCoverage] = field(default_factory=dict)
    needs_review: Dict[str, List[str]] = field(default_factory=dict)
    nodes: List[NodeTranslationStatus] = field(default_factory=list)
