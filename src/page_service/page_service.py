"""Page service: the interface the CMS uses to edit, sync and publish pages.

This module provides the PageService class which ties the engine together.
A save runs as one transaction:

    validate -> (unknown-prop check) -> diff against the baseline
    -> propagate to sibling locales -> validate all -> write all locales

Either every locale tree and the translation metadata are written under
the new version, or nothing is. The version token read by the editor must
be sent back; a stale token raises ConflictError and nothing is merged.
"""

import logging
from typing import Any, Mapping, Optional, Sequence, Union

from src.node_store.models import ValidatedTree
from src.node_store.node_store import NodeStore
from src.persistence.errors import ConflictError, LocaleContentNotFoundError
from src.persistence.gateway import PersistenceGateway
from src.persistence.models import LiveSnapshot, Page, PageSnapshot, SeoFields
from src.prop_classifier.prop_classifier import PropClassifier
from src.sync_engine.models import PropagationResult, SyncStrategy, Translator
from src.sync_engine.sync_engine import SyncEngine
from src.translation_status.models import TranslationReport
from src.translation_status.tracker import TranslationStatusTracker
from src.tree_differ.tree_differ import TreeDiffer

from .errors import UnknownLocaleError
from .models import EditorState, SaveResult
from .publisher import Publisher

logger = logging.getLogger(__name__)

TreeInput = Union[ValidatedTree, str, bytes, Mapping[str, Any]]


class PageService:
    """Edits, synchronizes and publishes multi-locale pages.

    Args:
        gateway: Where pages are stored
        locales: Locales configured for the site
        default_locale: Locale new pages are created in
        translator: translate(text, from, to) capability; None copies
            source text verbatim into new nodes
        classifier: Prop classifier (carries the unknown-prop policy)

    Example:
        >>> service = PageService(InMemoryGateway(), ["en", "fi"], "en", translator)
        >>> page = service.create_page("about", "About us").page
        >>> state = service.get_editor_state(page.page_id, "en")
        >>> result = service.save_edit(page.page_id, "en", edited, state.version)
        >>> service.publish(page.page_id)
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        locales: Sequence[str],
        default_locale: str,
        translator: Optional[Translator] = None,
        classifier: Optional[PropClassifier] = None,
    ):
        if default_locale not in locales:
            raise UnknownLocaleError(default_locale, locales)
        self.gateway = gateway
        self.locales = list(locales)
        self.default_locale = default_locale
        self.translator = translator
        self.classifier = classifier or PropClassifier()
        self.node_store = NodeStore()
        self.differ = TreeDiffer(self.classifier)
        self.engine = SyncEngine(self.classifier, self.node_store, self.differ)
        self.tracker = TranslationStatusTracker(gateway, self.locales, self.classifier)
        self.publisher = Publisher(gateway, self.node_store)

    # Pages

    def create_page(self, slug: str, title: str, locale: Optional[str] = None) -> PageSnapshot:
        """Create a page with an empty tree in its first locale.

        Raises:
            SlugExistsError: If the slug is taken
        """
        locale = locale or self.default_locale
        self._check_locale(locale)
        snapshot = self.gateway.create_page(slug, title, locale, self.node_store.empty_tree())
        logger.info(f"Created page '{slug}' ({snapshot.page.page_id}) in '{locale}'")
        return snapshot

    def list_pages(self):
        return self.gateway.list_pages()

    def get_page(self, page_id: str) -> Page:
        return self.gateway.get_page(page_id)

    def delete_page(self, page_id: str) -> None:
        self.gateway.delete_page(page_id)
        logger.info(f"Deleted page {page_id}")

    def delete_locale(self, page_id: str, locale: str, version_token: str) -> str:
        """Delete one locale's content. The last locale of a page cannot be deleted.

        Returns:
            The new version token
        """
        snapshot = self.gateway.read_snapshot(page_id)
        self._check_version(snapshot, version_token)
        if locale not in snapshot.contents:
            raise LocaleContentNotFoundError(page_id, locale)

        metas = snapshot.metas
        TranslationStatusTracker.forget_locale(metas, locale)
        remaining = [
            content.tree for name, content in snapshot.contents.items() if name != locale
        ]
        SyncEngine.prune_metas(metas, remaining)

        version = self.gateway.delete_locale(page_id, locale, metas, version_token)
        logger.info(f"Deleted '{locale}' content of page {page_id}")
        return version

    # Editing

    def get_editor_state(self, page_id: str, locale: str) -> EditorState:
        """Tree and version token for editing one locale."""
        self._check_locale(locale)
        snapshot = self.gateway.read_snapshot(page_id)
        tree = snapshot.tree(locale)
        pending = [
            node_id for node_id, meta in snapshot.metas.items() if meta.needs_review(locale)
        ]
        return EditorState(
            page=snapshot.page,
            locale=locale,
            tree=tree if tree is not None else self.node_store.empty_tree(),
            version=snapshot.version,
            exists=tree is not None,
            needs_review=sorted(pending),
        )

    def save_edit(
        self,
        page_id: str,
        locale: str,
        edited_tree: TreeInput,
        version_token: str,
        sync_strategy: SyncStrategy = SyncStrategy.STRUCTURE_ONLY,
        seo: Optional[SeoFields] = None,
    ) -> SaveResult:
        """Save an edit made in one locale and carry it to all other locales.

        Args:
            page_id: Page being edited
            locale: Locale the edit was made in
            edited_tree: Edited tree, as a ValidatedTree or in wire format
            version_token: Version returned by get_editor_state()
            sync_strategy: STRUCTURE_ONLY keeps other locales' text,
                FULL_OVERRIDE replaces it with (translated) source text
            seo: SEO fields of the edited locale to update

        Returns:
            SaveResult with the new version token

        Raises:
            IntegrityError: If the edited tree is invalid (or, under the
                reject policy, uses unknown props); nothing is written
            ConflictError: If version_token is stale; nothing is written
            PersistenceFailure: If the write fails; nothing is written
        """
        self._check_locale(locale)
        edited = self._load_tree(edited_tree)
        self.classifier.check_tree(edited)

        snapshot = self.gateway.read_snapshot(page_id)
        self._check_version(snapshot, version_token)

        baseline = snapshot.tree(locale)
        if baseline is None:
            baseline = self.node_store.empty_tree()
        diff = self.differ.diff(baseline, edited)
        targets = {
            target: snapshot.tree(target) for target in self.locales if target != locale
        }

        if sync_strategy == SyncStrategy.FULL_OVERRIDE:
            propagation = self.engine.full_override(
                locale, edited, targets, self.translator, snapshot.metas
            )
        else:
            propagation = self.engine.propagate(
                diff, locale, edited, targets, self.translator, snapshot.metas
            )

        version = self._write(
            snapshot, locale, edited, propagation, version_token,
            seo={locale: seo} if seo is not None else None,
        )
        logger.info(
            f"Saved page {page_id} from '{locale}' ({len(diff)} structural change(s), "
            f"{sync_strategy.value}) as {version}"
        )
        return SaveResult(
            page_id=page_id,
            locale=locale,
            version=version,
            strategy=sync_strategy,
            diff=diff,
            propagation=propagation,
        )

    def sync_language(
        self,
        page_id: str,
        from_locale: str,
        to_locale: str,
        version_token: str,
        preserve_text: bool = True,
    ) -> SaveResult:
        """Resynchronize one locale's structure from another.

        Raises:
            LocaleContentNotFoundError: If from_locale has no content
            ConflictError: If version_token is stale
        """
        self._check_locale(from_locale)
        self._check_locale(to_locale)
        snapshot = self.gateway.read_snapshot(page_id)
        self._check_version(snapshot, version_token)
        source = self._require_tree(snapshot, from_locale)

        propagation = self.engine.sync_language(
            from_locale, source, to_locale, snapshot.tree(to_locale),
            self.translator, snapshot.metas, preserve_text=preserve_text,
        )
        version = self._write(snapshot, from_locale, None, propagation, version_token)
        strategy = SyncStrategy.STRUCTURE_ONLY if preserve_text else SyncStrategy.FULL_OVERRIDE
        logger.info(
            f"Synced '{to_locale}' from '{from_locale}' on page {page_id} "
            f"({strategy.value}) as {version}"
        )
        return SaveResult(
            page_id=page_id,
            locale=from_locale,
            version=version,
            strategy=strategy,
            propagation=propagation,
        )

    def translate_missing(
        self, page_id: str, from_locale: str, to_locale: str, version_token: str
    ) -> SaveResult:
        """Fill empty text in to_locale with translations from from_locale."""
        self._check_locale(from_locale)
        self._check_locale(to_locale)
        snapshot = self.gateway.read_snapshot(page_id)
        self._check_version(snapshot, version_token)
        source = self._require_tree(snapshot, from_locale)

        propagation = self.engine.translate_missing(
            from_locale, source, to_locale, snapshot.tree(to_locale),
            self.translator, snapshot.metas,
        )
        version = self._write(snapshot, from_locale, None, propagation, version_token)
        return SaveResult(
            page_id=page_id,
            locale=from_locale,
            version=version,
            strategy=SyncStrategy.STRUCTURE_ONLY,
            propagation=propagation,
        )

    # Publishing

    def publish(self, page_id: str) -> LiveSnapshot:
        return self.publisher.publish(page_id)

    def unpublish(self, page_id: str) -> Page:
        return self.publisher.unpublish(page_id)

    def get_published_tree(self, slug: str, locale: str) -> ValidatedTree:
        return self.publisher.get_published_tree(slug, locale)

    # Translation status

    def get_translation_status(self, page_id: str) -> TranslationReport:
        return self.tracker.page_report(page_id)

    def mark_reviewed(
        self, page_id: str, node_id: str, locale: str, version_token: Optional[str] = None
    ) -> str:
        self._check_locale(locale)
        return self.tracker.mark_reviewed(page_id, node_id, locale, version_token)

    # Helpers

    def _write(
        self,
        snapshot: PageSnapshot,
        source_locale: str,
        source_tree: Optional[ValidatedTree],
        propagation: PropagationResult,
        version_token: str,
        seo: Optional[Mapping[str, SeoFields]] = None,
    ) -> str:
        """Write the source tree and every changed target tree in one version."""
        trees = {
            locale: tree
            for locale, tree in propagation.trees.items()
            if snapshot.tree(locale) != tree
        }
        if source_tree is not None:
            trees[source_locale] = source_tree

        final_trees = snapshot.trees()
        final_trees.update(trees)
        metas = propagation.metas
        SyncEngine.prune_metas(metas, final_trees.values())

        return self.gateway.write_all(
            snapshot.page.page_id, trees, metas, version_token, seo=seo
        )

    def _load_tree(self, tree: TreeInput) -> ValidatedTree:
        if isinstance(tree, ValidatedTree):
            # Re-check: the snapshot may come from another node store
            return self.node_store.validate(tree.to_node_map())
        return self.node_store.deserialize(tree)

    def _require_tree(self, snapshot: PageSnapshot, locale: str) -> ValidatedTree:
        tree = snapshot.tree(locale)
        if tree is None:
            raise LocaleContentNotFoundError(snapshot.page.page_id, locale)
        return tree

    def _check_locale(self, locale: str) -> None:
        if locale not in self.locales:
            raise UnknownLocaleError(locale, self.locales)

    def _check_version(self, snapshot: PageSnapshot, version_token: str) -> None:
        # Fail before any translation work; the gateway checks again on write
        if version_token != snapshot.version:
            raise ConflictError(snapshot.page.page_id, version_token, snapshot.version)
