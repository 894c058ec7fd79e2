"""Cross-locale propagation of structural page edits.

This module provides the SyncEngine class which replays a structural diff,
computed in one locale, against the trees of every other locale. Structure
(component choice, nesting, order, layout and styling props, shared media)
follows the source locale; translatable text stays whatever each locale's
authors wrote. New nodes get machine-translated text.

Trees are immutable snapshots: the engine works on copies and only returns
new trees once every one of them passed validation, so a rejected
propagation leaves the caller's trees exactly as they were.
"""

import copy
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from src.node_store.errors import IntegrityError
from src.node_store.models import Node, NodeMap, ValidatedTree
from src.node_store.node_store import NodeStore
from src.prop_classifier.models import PropKind
from src.prop_classifier.prop_classifier import PropClassifier
from src.translation_client.errors import TranslationError
from src.translation_status.models import MetaMap
from src.translation_status.tracker import TranslationStatusTracker
from src.tree_differ.models import OperationType, StructuralDiff, StructuralOperation
from src.tree_differ.tree_differ import TreeDiffer

from .models import PropagationResult, TranslationFailure, Translator

logger = logging.getLogger(__name__)


def _copy_metas(metas: Optional[MetaMap]) -> MetaMap:
    return {node_id: meta.copy() for node_id, meta in (metas or {}).items()}


def _reordered_parents(diff: StructuralDiff) -> List[str]:
    """Parents whose child order an insert or move may have changed."""
    parents: List[str] = []
    for op in diff:
        if op.op_type in (OperationType.INSERT, OperationType.MOVE):
            if op.parent_id is not None and op.parent_id not in parents:
                parents.append(op.parent_id)
    return parents


class SyncEngine:
    """Propagates structural changes between the locales of a page.

    Args:
        classifier: Decides which props are text and which are structure
        node_store: Validates every produced tree
        differ: Used by sync_language() to diff one locale against another

    Example:
        >>> engine = SyncEngine()
        >>> diff = TreeDiffer().diff(baseline_en, edited_en)
        >>> result = engine.propagate(
        ...     diff, "en", edited_en, {"fi": tree_fi}, translator, metas
        ... )
        >>> result.trees["fi"]
    """

    def __init__(
        self,
        classifier: Optional[PropClassifier] = None,
        node_store: Optional[NodeStore] = None,
        differ: Optional[TreeDiffer] = None,
    ):
        self.classifier = classifier or PropClassifier()
        self.node_store = node_store or NodeStore()
        self.differ = differ or TreeDiffer(self.classifier)

    def propagate(
        self,
        diff: StructuralDiff,
        source_locale: str,
        source_tree: ValidatedTree,
        target_trees: Mapping[str, Optional[ValidatedTree]],
        translate: Optional[Translator] = None,
        metas: Optional[MetaMap] = None,
    ) -> PropagationResult:
        """Apply a structural diff to every target locale.

        Args:
            diff: Ordered operations computed in the source locale
            source_locale: Locale the edit was made in
            source_tree: Edited source tree (read for the text of new nodes)
            target_trees: Current tree per target locale; None for a locale
                with no content yet, which is then built from the source
            translate: translate(text, from, to) capability; None copies the
                source text verbatim
            metas: Current translation metadata of the page

        Returns:
            PropagationResult with a new tree per target locale

        Raises:
            IntegrityError: If any resulting tree is invalid; no tree is
                returned in that case
        """
        result = PropagationResult(metas=_copy_metas(metas))
        TranslationStatusTracker.forget_nodes(result.metas, diff.deleted_ids)

        for locale, tree in target_trees.items():
            if locale == source_locale:
                continue

            if tree is None:
                result.trees[locale] = self._copy_tree(
                    source_tree, source_locale, locale, translate, result
                )
                result.seeded_locales.append(locale)
                result.applied[locale] = len(source_tree)
                logger.info(
                    f"Created '{locale}' content from '{source_locale}' "
                    f"({len(source_tree)} node(s))"
                )
                continue

            node_map = tree.to_node_map()
            applied = 0
            skipped = 0
            for op in diff:
                if self._apply(op, node_map, diff, source_tree, source_locale, locale,
                               translate, result):
                    applied += 1
                else:
                    skipped += 1
            for parent_id in _reordered_parents(diff):
                self._align_children(node_map, parent_id, source_tree)

            result.trees[locale] = self._validate(locale, node_map)
            result.applied[locale] = applied
            result.skipped[locale] = skipped
            logger.debug(f"Applied {applied} operation(s) to '{locale}', skipped {skipped}")

        logger.info(
            f"Propagated {len(diff)} operation(s) from '{source_locale}' to "
            f"{len(result.trees)} locale(s)"
        )
        return result

    def full_override(
        self,
        source_locale: str,
        source_tree: ValidatedTree,
        target_locales: Iterable[str],
        translate: Optional[Translator] = None,
        metas: Optional[MetaMap] = None,
    ) -> PropagationResult:
        """Replace every target tree with a (translated) copy of the source.

        Authored text in the targets is discarded.
        """
        result = PropagationResult(metas=_copy_metas(metas))
        for locale in target_locales:
            if locale == source_locale:
                continue
            logger.warning(
                f"Overriding '{locale}' with a copy of '{source_locale}', "
                f"authored text in '{locale}' is replaced"
            )
            result.trees[locale] = self._copy_tree(
                source_tree, source_locale, locale, translate, result
            )
            result.applied[locale] = len(source_tree)
        return result

    def sync_language(
        self,
        source_locale: str,
        source_tree: ValidatedTree,
        target_locale: str,
        target_tree: Optional[ValidatedTree],
        translate: Optional[Translator] = None,
        metas: Optional[MetaMap] = None,
        preserve_text: bool = True,
    ) -> PropagationResult:
        """Bring one locale's structure in line with another's.

        With preserve_text the target is diffed against the source and the
        diff replayed, so existing text survives. Without it the target is
        overridden by a copy of the source.
        """
        if not preserve_text:
            return self.full_override(
                source_locale, source_tree, [target_locale], translate, metas
            )
        if target_tree is None:
            return self.propagate(
                StructuralDiff(), source_locale, source_tree, {target_locale: None},
                translate, metas,
            )

        diff = self.differ.diff(target_tree, source_tree)
        return self.propagate(
            diff, source_locale, source_tree, {target_locale: target_tree}, translate, metas
        )

    def translate_missing(
        self,
        source_locale: str,
        source_tree: ValidatedTree,
        target_locale: str,
        target_tree: Optional[ValidatedTree],
        translate: Optional[Translator] = None,
        metas: Optional[MetaMap] = None,
    ) -> PropagationResult:
        """Fill only the empty translatable props of the target locale.

        Nodes are matched by id and must have the same component type in
        both trees. Props that already have text in the target are kept,
        structure is not touched. A target with no tree is built from the
        source.
        """
        if target_tree is None:
            return self.propagate(
                StructuralDiff(), source_locale, source_tree, {target_locale: None},
                translate, metas,
            )

        result = PropagationResult(metas=_copy_metas(metas))
        node_map = target_tree.to_node_map()
        filled_count = 0

        for source_node in source_tree.walk():
            target_node = node_map.get(source_node.node_id)
            if target_node is None or target_node.component_type != source_node.component_type:
                continue

            missing = {
                name
                for name, value in source_node.props.items()
                if self._has_text(source_node.component_type, name, value)
                and not self._has_text(
                    target_node.component_type, name, target_node.props.get(name)
                )
            }
            if not missing:
                continue

            filled = self._fill_text(
                source_node, source_locale, target_locale, translate, result, missing
            )
            props = dict(target_node.props)
            props.update(filled)
            node_map[target_node.node_id] = target_node.with_props(props)
            filled_count += len(filled)

        result.trees[target_locale] = self._validate(target_locale, node_map)
        result.applied[target_locale] = filled_count
        logger.info(
            f"Filled {filled_count} empty prop(s) in '{target_locale}' from '{source_locale}'"
        )
        return result

    @staticmethod
    def prune_metas(metas: MetaMap, trees: Iterable[ValidatedTree]) -> None:
        """Drop metadata of nodes that no longer exist in any locale."""
        present: Set[str] = set()
        for tree in trees:
            present.update(tree)
        TranslationStatusTracker.forget_nodes(
            metas, [node_id for node_id in metas if node_id not in present]
        )

    # Operations

    def _apply(
        self,
        op: StructuralOperation,
        node_map: NodeMap,
        diff: StructuralDiff,
        source_tree: ValidatedTree,
        source_locale: str,
        locale: str,
        translate: Optional[Translator],
        result: PropagationResult,
    ) -> bool:
        """Apply one operation to a mutable node map; False if skipped."""
        if op.op_type == OperationType.DELETE:
            if op.node_id not in node_map:
                logger.debug(f"'{op.node_id}' already absent from '{locale}'")
                return False
            self._remove_subtree(node_map, op.node_id, keep=diff.moved_ids)
            return True

        if op.op_type == OperationType.INSERT:
            return self._apply_insert(
                op, node_map, source_tree, source_locale, locale, translate, result
            )

        node = node_map.get(op.node_id)
        if node is None:
            logger.warning(
                f"Skipping {op.op_type.value} of '{op.node_id}': not present in '{locale}'"
            )
            return False

        if op.op_type == OperationType.MOVE:
            parent = node_map.get(op.parent_id)
            if parent is None or not parent.is_canvas:
                logger.warning(
                    f"Skipping move of '{op.node_id}' in '{locale}': "
                    f"parent '{op.parent_id}' missing or not a canvas"
                )
                return False
            if self._is_within(node_map, op.parent_id, op.node_id):
                logger.warning(
                    f"Skipping move of '{op.node_id}' in '{locale}': "
                    f"'{op.parent_id}' is inside it"
                )
                return False
            self._detach(node_map, op.node_id)
            self._attach(node_map, op.node_id, op.parent_id, op.position)
            return True

        props = dict(node.props)
        props.update(copy.deepcopy(op.props))
        for name in op.removed_props:
            props.pop(name, None)
        node_map[op.node_id] = node.with_props(props)
        return True

    def _apply_insert(
        self,
        op: StructuralOperation,
        node_map: NodeMap,
        source_tree: ValidatedTree,
        source_locale: str,
        locale: str,
        translate: Optional[Translator],
        result: PropagationResult,
    ) -> bool:
        if op.parent_id is not None:
            parent = node_map.get(op.parent_id)
            if parent is None or not parent.is_canvas:
                logger.warning(
                    f"Skipping insert of '{op.node_id}' in '{locale}': "
                    f"parent '{op.parent_id}' missing or not a canvas"
                )
                return False

        existing = node_map.get(op.node_id)
        child_ids = ()
        if existing is not None and existing.component_type == op.component_type:
            # Replayed insert: take the new structure, keep this locale's text
            _, text_props = self.classifier.split_props(existing)
            if op.is_canvas:
                child_ids = existing.child_ids
            else:
                for child_id in existing.child_ids:
                    self._remove_subtree(node_map, child_id, keep=set())
            self._detach(node_map, op.node_id)
        else:
            if existing is not None:
                self._remove_subtree(node_map, op.node_id, keep=set())
            source_node = source_tree.get(op.node_id)
            text_props = {}
            if source_node is not None:
                text_props = self._fill_text(
                    source_node, source_locale, locale, translate, result
                )

        props = copy.deepcopy(op.props)
        props.update(text_props)
        node_map[op.node_id] = Node(
            node_id=op.node_id,
            component_type=op.component_type,
            props=props,
            parent_id=None,
            child_ids=tuple(child_ids),
            is_canvas=op.is_canvas,
        )
        if op.parent_id is not None:
            self._attach(node_map, op.node_id, op.parent_id, op.position)
        return True

    # Tree helpers

    def _detach(self, node_map: NodeMap, node_id: str) -> None:
        node = node_map[node_id]
        parent = node_map.get(node.parent_id) if node.parent_id is not None else None
        if parent is not None:
            node_map[parent.node_id] = parent.with_children(
                c for c in parent.child_ids if c != node_id
            )
        node_map[node_id] = node.with_parent(None)

    def _attach(
        self, node_map: NodeMap, node_id: str, parent_id: str, position: Optional[int]
    ) -> None:
        parent = node_map[parent_id]
        children = list(parent.child_ids)
        index = min(max(position or 0, 0), len(children))
        children.insert(index, node_id)
        node_map[parent_id] = parent.with_children(children)
        node_map[node_id] = node_map[node_id].with_parent(parent_id)

    def _align_children(
        self, node_map: NodeMap, parent_id: str, source_tree: ValidatedTree
    ) -> None:
        """Order a parent's children like the source; target-only children go last.

        Moves are replayed one at a time against positions in the final
        order, so siblings that were not moved can end up shifted.
        """
        parent = node_map.get(parent_id)
        source_parent = source_tree.get(parent_id)
        if parent is None or source_parent is None:
            return
        current = parent.child_ids
        ordered = [c for c in source_parent.child_ids if c in current]
        ordered.extend(c for c in current if c not in ordered)
        if tuple(ordered) != tuple(current):
            node_map[parent_id] = parent.with_children(ordered)

    def _remove_subtree(self, node_map: NodeMap, node_id: str, keep: Set[str]) -> List[str]:
        """Remove a node and its descendants from the map.

        Descendants listed in keep are detached instead, together with
        their own subtrees, so a later move can re-attach them.
        """
        self._detach(node_map, node_id)
        removed = []
        stack = [node_id]
        while stack:
            current = node_map.pop(stack.pop())
            removed.append(current.node_id)
            for child_id in current.child_ids:
                if child_id not in node_map:
                    continue
                if child_id in keep:
                    node_map[child_id] = node_map[child_id].with_parent(None)
                else:
                    stack.append(child_id)
        return removed

    def _is_within(self, node_map: NodeMap, node_id: str, ancestor_id: str) -> bool:
        """True if node_id is ancestor_id or one of its descendants."""
        seen = set()
        current = node_id
        while current is not None and current not in seen:
            if current == ancestor_id:
                return True
            seen.add(current)
            node = node_map.get(current)
            current = node.parent_id if node is not None else None
        return False

    def _validate(self, locale: str, node_map: NodeMap) -> ValidatedTree:
        try:
            return self.node_store.validate(node_map)
        except IntegrityError as e:
            logger.error(f"Propagation rejected, '{locale}' tree would be invalid: {e}")
            raise

    # Text

    def _copy_tree(
        self,
        source_tree: ValidatedTree,
        source_locale: str,
        locale: str,
        translate: Optional[Translator],
        result: PropagationResult,
    ) -> ValidatedTree:
        """Copy the source tree into locale with its text translated."""
        node_map: NodeMap = {}
        for node in source_tree.walk():
            props = copy.deepcopy(node.props)
            props.update(self._fill_text(node, source_locale, locale, translate, result))
            node_map[node.node_id] = node.with_props(props)
        return self._validate(locale, node_map)

    def _fill_text(
        self,
        source_node: Node,
        source_locale: str,
        locale: str,
        translate: Optional[Translator],
        result: PropagationResult,
        only: Optional[Set[str]] = None,
    ) -> Dict[str, Any]:
        """Translate the translatable props of a source node into locale.

        Each text leaf is translated on its own; blank text is never sent.
        A failing leaf becomes an empty string and the node is flagged for
        review in locale. Nodes with translatable props get their meta
        updated; purely structural nodes get none.
        """
        filled: Dict[str, Any] = {}
        errors: List[str] = []

        for name, value in source_node.props.items():
            if only is not None and name not in only:
                continue
            if self.classifier.classify(source_node.component_type, name) != PropKind.TRANSLATABLE:
                continue

            def translate_leaf(text: str) -> str:
                if not text.strip() or translate is None:
                    return text
                try:
                    return translate(text, source_locale, locale)
                except TranslationError as e:
                    errors.append(str(e))
                    result.failures.append(
                        TranslationFailure(locale, source_node.node_id, name, str(e))
                    )
                    logger.warning(
                        f"Translation of '{source_node.node_id}.{name}' into "
                        f"'{locale}' failed, leaving it empty: {e}"
                    )
                    return ""

            filled[name] = self.classifier.map_text(
                source_node.component_type, name, value, translate_leaf
            )

        if filled:
            if errors:
                TranslationStatusTracker.record_failure(
                    result.metas, source_node.node_id, locale, source_locale
                )
            else:
                TranslationStatusTracker.record_auto_translation(
                    result.metas, source_node.node_id, locale, source_locale
                )
        return filled

    def _has_text(self, component_type: str, prop_name: str, value: Any) -> bool:
        return any(
            text.strip()
            for text in self.classifier.translatable_text(component_type, prop_name, value)
        )
