"""Translation status tracking for page blocks.

This module provides the TranslationStatusTracker class. Its static
methods update a page's BlockTranslationMeta map in place and are used by
the sync engine while it propagates a diff; its instance methods answer
page-level queries ("which locales are missing", "what needs review") and
record reviews through the persistence gateway.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Set

from src.node_store.models import ValidatedTree
from src.prop_classifier.prop_classifier import PropClassifier

from .errors import ReviewStateError
from .models import (
    BlockTranslationMeta,
    LocaleStatus,
    MetaMap,
    NodeTranslationStatus,
    TranslationCoverage,
    TranslationReport,
)

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TranslationStatusTracker:
    """Tracks which locales of each block are source, automatic or reviewed.

    Args:
        gateway: Persistence gateway holding the pages
        locales: Locales configured for the site
        classifier: Prop classifier used to find translatable text

    Example:
        >>> tracker = TranslationStatusTracker(gateway, ["en", "fi"])
        >>> tracker.needs_review(page_id, "fi")
        ['T1']
        >>> tracker.mark_reviewed(page_id, "T1", "fi")
    """

    def __init__(
        self,
        gateway,
        locales: Sequence[str],
        classifier: Optional[PropClassifier] = None,
    ):
        self.gateway = gateway
        self.locales = list(locales)
        self.classifier = classifier or PropClassifier()

    # Meta map mutations (used during propagation)

    @staticmethod
    def record_auto_translation(
        metas: MetaMap,
        node_id: str,
        locale: str,
        default_locale: str,
        timestamp: Optional[str] = None,
    ) -> BlockTranslationMeta:
        """Record that a node's text in locale was filled automatically.

        A new automatic pass supersedes an earlier review: the locale moves
        back from manually_reviewed to auto_translated.
        """
        timestamp = timestamp or _now()
        meta = metas.get(node_id)
        if meta is None:
            meta = BlockTranslationMeta(node_id=node_id, default_locale=default_locale)
            metas[node_id] = meta
        meta.auto_translated.add(locale)
        meta.manually_reviewed.discard(locale)
        meta.translation_failed.discard(locale)
        meta.last_translated_at = timestamp
        meta.last_modified_at = timestamp
        return meta

    @staticmethod
    def record_failure(
        metas: MetaMap,
        node_id: str,
        locale: str,
        default_locale: str,
        timestamp: Optional[str] = None,
    ) -> BlockTranslationMeta:
        """Record that automatic translation failed for a node in locale.

        The node immediately needs review in that locale.
        """
        meta = TranslationStatusTracker.record_auto_translation(
            metas, node_id, locale, default_locale, timestamp
        )
        meta.translation_failed.add(locale)
        return meta

    @staticmethod
    def forget_nodes(metas: MetaMap, node_ids: Iterable[str]) -> None:
        """Drop the records of deleted nodes."""
        for node_id in node_ids:
            if metas.pop(node_id, None) is not None:
                logger.debug(f"Removed translation meta of deleted node '{node_id}'")

    @staticmethod
    def forget_locale(metas: MetaMap, locale: str) -> None:
        """Remove a locale from every record (the locale's content is gone)."""
        for meta in metas.values():
            meta.auto_translated.discard(locale)
            meta.manually_reviewed.discard(locale)
            meta.translation_failed.discard(locale)

    @staticmethod
    def apply_review(metas: MetaMap, node_id: str, locale: str) -> BlockTranslationMeta:
        """Move locale from auto_translated to manually_reviewed for a node.

        Raises:
            ReviewStateError: If the locale is not currently auto-translated
        """
        meta = metas.get(node_id)
        if meta is None:
            raise ReviewStateError(node_id, locale, "node has no translation record")
        if locale not in meta.auto_translated:
            raise ReviewStateError(node_id, locale, "locale is not auto-translated")

        meta.auto_translated.discard(locale)
        meta.manually_reviewed.add(locale)
        meta.translation_failed.discard(locale)
        meta.last_modified_at = _now()
        return meta

    @staticmethod
    def node_status(
        meta: Optional[BlockTranslationMeta],
        locale: str,
        present: bool,
        default_locale: str,
    ) -> LocaleStatus:
        """Status of a node in one locale, for display."""
        source_locale = meta.default_locale if meta is not None else default_locale
        if not present:
            return LocaleStatus.MISSING
        if locale == source_locale:
            return LocaleStatus.SOURCE
        if meta is not None and locale in meta.manually_reviewed:
            return LocaleStatus.REVIEWED
        if meta is not None and locale in meta.auto_translated:
            return LocaleStatus.AUTO
        return LocaleStatus.AVAILABLE

    # Page queries

    def missing_locales(self, page_id: str) -> Set[str]:
        """Configured locales for which the page has no content at all."""
        snapshot = self.gateway.read_snapshot(page_id)
        return {locale for locale in self.locales if locale not in snapshot.contents}

    def needs_review(self, page_id: str, locale: str) -> List[str]:
        """Ids of nodes auto-translated into locale and not yet reviewed.

        Returned in pre-order of the locale's tree.
        """
        snapshot = self.gateway.read_snapshot(page_id)
        tree = snapshot.tree(locale)
        pending = {
            node_id for node_id, meta in snapshot.metas.items() if meta.needs_review(locale)
        }
        if tree is None:
            return sorted(pending)
        return [node.node_id for node in tree.walk() if node.node_id in pending]

    def mark_reviewed(
        self,
        page_id: str,
        node_id: str,
        locale: str,
        version_token: Optional[str] = None,
    ) -> str:
        """Record that a human reviewed node_id's text in locale.

        Args:
            page_id: Page containing the node
            node_id: Reviewed node
            locale: Reviewed locale
            version_token: Version the reviewer saw; defaults to the current one

        Returns:
            The new version token

        Raises:
            ReviewStateError: If the locale is not currently auto-translated
            ConflictError: If version_token is stale
        """
        snapshot = self.gateway.read_snapshot(page_id)
        metas = snapshot.metas
        self.apply_review(metas, node_id, locale)
        version = self.gateway.write_all(
            page_id, {}, metas, version_token or snapshot.version
        )
        logger.info(f"Marked '{node_id}' reviewed in '{locale}' on page {page_id}")
        return version

    def coverage(
        self,
        source_tree: ValidatedTree,
        target_tree: Optional[ValidatedTree],
        locale: str,
    ) -> TranslationCoverage:
        """Count source nodes whose text is fully present in the target.

        A node counts when it has at least one non-blank translatable text
        in the source; it is translated when every such prop has non-blank
        text in the target.
        """
        total = 0
        translated = 0
        for node in source_tree.walk():
            text_props = [
                name
                for name, value in node.props.items()
                if self._has_text(node.component_type, name, value)
            ]
            if not text_props:
                continue
            total += 1

            target_node = target_tree.get(node.node_id) if target_tree is not None else None
            if target_node is None:
                continue
            if all(
                self._has_text(
                    target_node.component_type, name, target_node.props.get(name)
                )
                for name in text_props
            ):
                translated += 1

        percentage = 100 if total == 0 else round(translated / total * 100)
        return TranslationCoverage(
            locale=locale,
            total=total,
            translated=translated,
            missing=total - translated,
            percentage=percentage,
        )

    def page_report(self, page_id: str) -> TranslationReport:
        """Per-locale, per-node translation status of a page."""
        snapshot = self.gateway.read_snapshot(page_id)
        default_locale = snapshot.page.default_locale
        reference = snapshot.tree(default_locale)
        if reference is None and snapshot.contents:
            reference = snapshot.contents[snapshot.locales[0]].tree

        locales = list(self.locales)
        for locale in snapshot.locales:
            if locale not in locales:
                locales.append(locale)

        report = TranslationReport(
            page_id=page_id,
            default_locale=default_locale,
            missing_locales={
                locale for locale in locales if locale not in snapshot.contents
            },
        )

        for locale in locales:
            if locale != default_locale and reference is not None:
                report.coverage[locale] = self.coverage(
                    reference, snapshot.tree(locale), locale
                )
            pending = [
                node_id for node_id, meta in snapshot.metas.items()
                if meta.needs_review(locale)
            ]
            if pending:
                report.needs_review[locale] = sorted(pending)

        if reference is not None:
            for node in reference.walk():
                meta = snapshot.metas.get(node.node_id)
                status = NodeTranslationStatus(
                    node_id=node.node_id, component_type=node.component_type
                )
                for locale in locales:
                    tree = snapshot.tree(locale)
                    present = tree is not None and node.node_id in tree
                    status.statuses[locale] = self.node_status(
                        meta, locale, present, default_locale
                    )
                report.nodes.append(status)

        return report

    def _has_text(self, component_type: str, prop_name: str, value) -> bool:
        return any(
            text.strip()
            for text in self.classifier.translatable_text(component_type, prop_name, value)
        )
