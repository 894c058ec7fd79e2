"""Validation and wire codec for page component trees.

This module provides the NodeStore class, the only producer of
ValidatedTree snapshots. It checks the structural invariants of a tree and
converts between the in-memory representation and the JSON wire format
exchanged with the editor and the renderer:

    {
      "ROOT": {"type": "Container", "props": {...}, "parent": null,
               "nodes": ["S1"], "isCanvas": true},
      "S1":   {"type": "Section", "props": {...}, "parent": "ROOT",
               "nodes": [], "isCanvas": true}
    }

Deserialization fails closed: an invalid tree raises IntegrityError and no
partially built tree is ever returned.
"""

import copy
import json
import logging
from typing import Any, Dict, List, Mapping, Union

from .errors import IntegrityError
from .models import ROOT_COMPONENT_TYPE, ROOT_ID, Node, NodeMap, ValidatedTree

logger = logging.getLogger(__name__)

WireTree = Dict[str, Dict[str, Any]]


class NodeStore:
    """Validates component trees and converts them to and from the wire format.

    Validation checks, in order, and reports the first violation found:
    1. The tree is non-empty and every key matches its node's id
    2. Exactly one node has no parent (the root)
    3. Non-canvas nodes have no children
    4. Every child reference exists, is listed once and points back
    5. Every parent reference exists and lists the node as a child
    6. Every node is reachable from the root (no orphans, no cycles)

    Example:
        >>> store = NodeStore()
        >>> tree = store.deserialize(payload)
        >>> payload == store.serialize(tree)
    """

    def validate(self, node_map: Mapping[str, Node]) -> ValidatedTree:
        """Check every tree invariant and return an immutable snapshot.

        Args:
            node_map: Mapping from node id to Node

        Returns:
            ValidatedTree wrapping a copy of the mapping

        Raises:
            IntegrityError: On the first violated invariant, tagged with
                the offending node id when there is one
        """
        if not node_map:
            raise IntegrityError("tree is empty")

        roots: List[str] = []
        for key, node in node_map.items():
            if not isinstance(node, Node):
                raise IntegrityError(
                    f"entry is a {type(node).__name__}, not a Node", key
                )
            if not key or not isinstance(key, str):
                raise IntegrityError("node id must be a non-empty string", str(key))
            if key != node.node_id:
                raise IntegrityError(
                    f"node keyed as '{key}' carries id '{node.node_id}'", key
                )
            if not isinstance(node.component_type, str) or not node.component_type:
                raise IntegrityError("component type must be a non-empty string", key)
            if not isinstance(node.props, dict):
                raise IntegrityError("props must be a mapping", key)
            if node.parent_id is None:
                roots.append(key)

        if not roots:
            raise IntegrityError("tree has no root node")
        if len(roots) > 1:
            raise IntegrityError(
                f"tree has {len(roots)} root nodes ({', '.join(roots)})", roots[1]
            )

        for key, node in node_map.items():
            if not node.is_canvas and node.child_ids:
                raise IntegrityError("non-canvas node has children", key)

            seen = set()
            for child_id in node.child_ids:
                if child_id in seen:
                    raise IntegrityError(f"child '{child_id}' is listed twice", key)
                seen.add(child_id)

                child = node_map.get(child_id)
                if child is None:
                    raise IntegrityError(f"child '{child_id}' does not exist", key)
                if child.parent_id != key:
                    raise IntegrityError(
                        f"listed as child of '{key}' but its parent is "
                        f"'{child.parent_id}'",
                        child_id,
                    )

            if node.parent_id is not None:
                parent = node_map.get(node.parent_id)
                if parent is None:
                    raise IntegrityError(
                        f"parent '{node.parent_id}' does not exist", key
                    )
                if key not in parent.child_ids:
                    raise IntegrityError(
                        f"not listed among the children of '{node.parent_id}'", key
                    )

        root_id = roots[0]
        reachable = set()
        stack = [root_id]
        while stack:
            node_id = stack.pop()
            reachable.add(node_id)
            stack.extend(node_map[node_id].child_ids)

        for key in node_map:
            if key not in reachable:
                raise IntegrityError(
                    "node is not reachable from the root (orphaned or part of a cycle)",
                    key,
                )

        return ValidatedTree(dict(node_map), root_id)

    def to_wire(self, tree: ValidatedTree) -> WireTree:
        """Convert a validated tree to the JSON-compatible wire mapping.

        Nodes are emitted in pre-order so that serialized output is stable.
        """
        wire: WireTree = {}
        for node in tree.walk():
            wire[node.node_id] = {
                "type": node.component_type,
                "props": copy.deepcopy(node.props),
                "parent": node.parent_id,
                "nodes": list(node.child_ids),
                "isCanvas": node.is_canvas,
            }
        return wire

    def from_wire(self, wire: Mapping[str, Any]) -> ValidatedTree:
        """Build and validate a tree from a parsed wire mapping.

        Args:
            wire: Flat mapping of node id to wire node entry

        Returns:
            ValidatedTree built from the mapping

        Raises:
            IntegrityError: If the mapping is malformed or the tree is invalid
        """
        if not isinstance(wire, Mapping):
            raise IntegrityError(
                f"tree must be a JSON object, got {type(wire).__name__}"
            )
        if ROOT_ID not in wire:
            raise IntegrityError(f"tree is missing the '{ROOT_ID}' entry")

        node_map: NodeMap = {}
        for node_id, entry in wire.items():
            node_map[node_id] = self._parse_entry(node_id, entry)

        tree = self.validate(node_map)
        if tree.root_id != ROOT_ID:
            raise IntegrityError(f"'{ROOT_ID}' must be the tree root", ROOT_ID)

        logger.debug(f"Deserialized tree with {len(tree)} node(s)")
        return tree

    def serialize(self, tree: ValidatedTree, indent: Union[int, None] = None) -> str:
        """Serialize a validated tree to JSON text.

        Component types are always written as plain strings, so a tree read
        from the editor's {"resolvedName": ...} form comes back normalized.
        """
        return json.dumps(self.to_wire(tree), ensure_ascii=False, indent=indent)

    def deserialize(self, payload: Union[str, bytes, Mapping[str, Any]]) -> ValidatedTree:
        """Parse JSON text (or an already decoded mapping) into a validated tree.

        Raises:
            IntegrityError: If the payload is not valid JSON or the tree is invalid
        """
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise IntegrityError(f"malformed JSON: {e}") from e
        return self.from_wire(payload)

    def empty_tree(self) -> ValidatedTree:
        """Build the minimal valid tree: a canvas root with no children."""
        root = Node(
            node_id=ROOT_ID,
            component_type=ROOT_COMPONENT_TYPE,
            props={},
            parent_id=None,
            child_ids=(),
            is_canvas=True,
        )
        return self.validate({ROOT_ID: root})

    def _parse_entry(self, node_id: str, entry: Any) -> Node:
        """Parse a single wire entry into a Node.

        The editor may send the component type either as a plain string or
        as an object carrying a "resolvedName"; both normalize to a string.
        """
        if not isinstance(entry, Mapping):
            raise IntegrityError(
                f"node entry must be an object, got {type(entry).__name__}", node_id
            )

        raw_type = entry.get("type")
        if isinstance(raw_type, Mapping):
            raw_type = raw_type.get("resolvedName")
        if not isinstance(raw_type, str) or not raw_type:
            raise IntegrityError("missing or invalid 'type'", node_id)

        props = entry.get("props", {})
        if props is None:
            props = {}
        if not isinstance(props, Mapping):
            raise IntegrityError("'props' must be an object", node_id)

        parent_id = entry.get("parent")
        if parent_id is not None and not isinstance(parent_id, str):
            raise IntegrityError("'parent' must be a string or null", node_id)

        child_ids = entry.get("nodes", [])
        if child_ids is None:
            child_ids = []
        if not isinstance(child_ids, list) or not all(isinstance(c, str) for c in child_ids):
            raise IntegrityError("'nodes' must be a list of node ids", node_id)

        is_canvas = entry.get("isCanvas", False)
        if not isinstance(is_canvas, bool):
            raise IntegrityError("'isCanvas' must be a boolean", node_id)

        return Node(
            node_id=node_id,
            component_type=raw_type,
            props=copy.deepcopy(dict(props)),
            parent_id=parent_id,
            child_ids=tuple(child_ids),
            is_canvas=is_canvas,
        )
