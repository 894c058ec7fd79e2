"""Structural diff between two versions of a page tree.

This module provides the TreeDiffer class which compares a baseline tree
(the last version the editor read) with an edited tree of the same locale
and produces the structural operations needed to bring any sibling locale
in line. Nodes are matched by id. Translatable prop changes are ignored:
they belong to the locale they were authored in and are never propagated.
"""

import logging
from typing import Dict, List, Optional, Set

from src.node_store.models import ValidatedTree
from src.prop_classifier.prop_classifier import PropClassifier

from .models import OperationType, StructuralDiff, StructuralOperation

logger = logging.getLogger(__name__)

_MISSING = object()


class TreeDiffer:
    """Computes structural diffs between a baseline and an edited tree.

    A node whose component type or canvas flag changed under the same id is
    treated as removed and re-created (Delete followed by Insert). Its
    surviving children are always re-attached with an explicit Move.

    Example:
        >>> differ = TreeDiffer(PropClassifier())
        >>> diff = differ.diff(baseline, edited)
        >>> [op.describe() for op in diff]
        ["insert Text 'T2' under 'S1' at 1"]
    """

    def __init__(self, classifier: Optional[PropClassifier] = None):
        self.classifier = classifier or PropClassifier()

    def diff(self, baseline: ValidatedTree, edited: ValidatedTree) -> StructuralDiff:
        """Compute the ordered structural diff from baseline to edited.

        Args:
            baseline: Tree as last read by the editor
            edited: Tree as submitted by the editor

        Returns:
            StructuralDiff with deletes (post-order of baseline), inserts
            (pre-order of edited), moves (pre-order of edited) and
            structural prop updates (pre-order of edited)
        """
        replaced = {
            node_id
            for node_id in baseline
            if node_id in edited
            and (
                baseline[node_id].component_type != edited[node_id].component_type
                or baseline[node_id].is_canvas != edited[node_id].is_canvas
            )
        }
        removed = {node_id for node_id in baseline if node_id not in edited} | replaced
        added = {node_id for node_id in edited if node_id not in baseline} | replaced
        kept = {node_id for node_id in edited if node_id not in added}

        operations: List[StructuralOperation] = []

        # Deletes: reversed pre-order visits children before their parents
        for node in reversed(list(baseline.walk())):
            if node.node_id in removed:
                operations.append(
                    StructuralOperation(op_type=OperationType.DELETE, node_id=node.node_id)
                )

        edited_order = list(edited.walk())

        for node in edited_order:
            if node.node_id not in added:
                continue
            shared, _ = self.classifier.split_props(node)
            operations.append(
                StructuralOperation(
                    op_type=OperationType.INSERT,
                    node_id=node.node_id,
                    component_type=node.component_type,
                    parent_id=node.parent_id,
                    position=edited.position_of(node.node_id),
                    props=shared,
                    is_canvas=node.is_canvas,
                )
            )

        for node in edited_order:
            if node.node_id not in kept or node.is_root:
                continue
            if self._has_moved(node.node_id, baseline, edited, kept, replaced):
                operations.append(
                    StructuralOperation(
                        op_type=OperationType.MOVE,
                        node_id=node.node_id,
                        parent_id=node.parent_id,
                        position=edited.position_of(node.node_id),
                    )
                )

        for node in edited_order:
            if node.node_id not in kept:
                continue
            update = self._prop_update(baseline, edited, node.node_id)
            if update is not None:
                operations.append(update)

        result = StructuralDiff(operations)
        logger.debug(
            f"Diff: {len(result.deletes)} delete(s), {len(result.inserts)} insert(s), "
            f"{len(result.moves)} move(s), {len(result.updates)} update(s)"
        )
        for op in result:
            logger.debug(f"  {op.describe()}")
        return result

    def has_structural_changes(self, baseline: ValidatedTree, edited: ValidatedTree) -> bool:
        """True if syncing edited against baseline would change anything."""
        return not self.diff(baseline, edited).is_empty

    def _has_moved(
        self,
        node_id: str,
        baseline: ValidatedTree,
        edited: ValidatedTree,
        kept: Set[str],
        replaced: Set[str],
    ) -> bool:
        """Check whether a kept node changed parent or relative position.

        Position is compared among siblings kept under the same parent in
        both trees, so inserting or deleting a neighbour does not count as
        moving a node.
        """
        old_parent = baseline[node_id].parent_id
        new_parent = edited[node_id].parent_id
        if old_parent != new_parent or new_parent in replaced:
            return True

        old_siblings = baseline[old_parent].child_ids
        new_siblings = edited[new_parent].child_ids
        stable = set(old_siblings) & set(new_siblings) & kept
        old_order = [c for c in old_siblings if c in stable]
        new_order = [c for c in new_siblings if c in stable]
        return old_order.index(node_id) != new_order.index(node_id)

    def _prop_update(
        self, baseline: ValidatedTree, edited: ValidatedTree, node_id: str
    ) -> Optional[StructuralOperation]:
        old_shared, _ = self.classifier.split_props(baseline[node_id])
        new_shared, _ = self.classifier.split_props(edited[node_id])

        changed: Dict[str, object] = {
            name: value
            for name, value in new_shared.items()
            if old_shared.get(name, _MISSING) != value
        }
        removed = tuple(name for name in old_shared if name not in new_shared)

        if not changed and not removed:
            return None
        return StructuralOperation(
            op_type=OperationType.UPDATE_STRUCTURAL_PROPS,
            node_id=node_id,
            props=changed,
            removed_props=removed,
        )
