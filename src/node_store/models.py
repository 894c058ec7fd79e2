"""Data models for page component trees.

This module defines the node and tree structures shared by the whole engine.
Nodes are frozen dataclasses and trees are read-only snapshots: every stage
(differ, sync engine, persistence) produces new values instead of mutating
the ones it was given, so a rejected propagation can simply be discarded.
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

# Id of the tree root in the wire format
ROOT_ID = "ROOT"

# Component used for the root of a freshly created page
ROOT_COMPONENT_TYPE = "Container"


@dataclass(frozen=True)
class Node:
    """One component instance in a page tree.

    Attributes:
        node_id: Stable id, unique within the tree and shared across locales
        component_type: Registered component name (e.g. "Text", "Section")
        props: Component properties, keyed by prop name
        parent_id: Parent node id (None only for the root)
        child_ids: Ordered ids of child nodes
        is_canvas: Whether the node may contain children

    Example:
        >>> node = Node("T1", "Text", {"text": "Hello"}, parent_id="S1")
    """
    node_id: str
    component_type: str
    props: Dict[str, Any] = field(default_factory=dict)
    parent_id: Optional[str] = None
    child_ids: Tuple[str, ...] = ()
    is_canvas: bool = False

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def with_props(self, props: Dict[str, Any]) -> "Node":
        """Return a copy of this node with a new props dict."""
        return replace(self, props=dict(props))

    def with_children(self, child_ids) -> "Node":
        """Return a copy of this node with a new child order."""
        return replace(self, child_ids=tuple(child_ids))

    def with_parent(self, parent_id: Optional[str]) -> "Node":
        """Return a copy of this node attached to another parent."""
        return replace(self, parent_id=parent_id)


# Mutable id -> Node mapping used while building a new snapshot
NodeMap = Dict[str, Node]


class ValidatedTree:
    """Read-only snapshot of a component tree that passed validation.

    Instances are produced by NodeStore.validate() only, so holding a
    ValidatedTree means every invariant (single root, no orphans, no
    cycles, canvas rule, bidirectional parent/child links) holds.

    Example:
        >>> tree = NodeStore().validate(node_map)
        >>> [n.node_id for n in tree.walk()]
        ['ROOT', 'S1', 'T1']
    """

    def __init__(self, nodes: NodeMap, root_id: str):
        self._nodes = MappingProxyType(dict(nodes))
        self._root_id = root_id

    @property
    def root_id(self) -> str:
        return self._root_id

    @property
    def root(self) -> Node:
        return self._nodes[self._root_id]

    @property
    def nodes(self) -> Mapping[str, Node]:
        return self._nodes

    def __getitem__(self, node_id: str) -> Node:
        return self._nodes[node_id]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidatedTree):
            return NotImplemented
        return self._root_id == other._root_id and dict(self._nodes) == dict(other._nodes)

    def __repr__(self) -> str:
        return f"ValidatedTree(root={self._root_id!r}, nodes={len(self._nodes)})"

    def get(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def position_of(self, node_id: str) -> int:
        """Index of a node among its parent's children (0 for the root)."""
        node = self._nodes[node_id]
        if node.parent_id is None:
            return 0
        return self._nodes[node.parent_id].child_ids.index(node_id)

    def walk(self, start_id: Optional[str] = None) -> Iterator[Node]:
        """Yield nodes in pre-order (parent first, children left to right)."""
        stack = [start_id or self._root_id]
        while stack:
            node = self._nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.child_ids))

    def subtree_ids(self, node_id: str) -> List[str]:
        """Ids of a node and all of its descendants, pre-order."""
        return [node.node_id for node in self.walk(node_id)]

    def to_node_map(self) -> NodeMap:
        """Return a mutable copy of the id -> Node mapping."""
        return dict(self._nodes)
