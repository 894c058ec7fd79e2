"""Data models for structural diffs between page trees."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple


class OperationType(Enum):
    """Types of structural operations a diff can contain."""

    INSERT = "insert"
    DELETE = "delete"
    MOVE = "move"
    UPDATE_STRUCTURAL_PROPS = "update_structural_props"


@dataclass
class StructuralOperation:
    """Describes a single structural change to replay against a locale tree.

    Which fields are meaningful depends on op_type:
        INSERT: component_type, parent_id, position, props (structural and
            opaque props only), is_canvas
        DELETE: node_id only
        MOVE: parent_id (new parent) and position (final index)
        UPDATE_STRUCTURAL_PROPS: props (changed values) and removed_props

    Attributes:
        op_type: Type of operation
        node_id: Id of the node the operation targets
        component_type: Component of an inserted node
        parent_id: Parent for inserts and moves
        position: Final index among the parent's children
        props: Structural props to set
        removed_props: Structural props to remove
        is_canvas: Canvas flag of an inserted node
    """

    op_type: OperationType
    node_id: str
    component_type: Optional[str] = None
    parent_id: Optional[str] = None
    position: Optional[int] = None
    props: Dict[str, Any] = field(default_factory=dict)
    removed_props: Tuple[str, ...] = ()
    is_canvas: bool = False

    def describe(self) -> str:
        """One-line human readable description used in logs and CLI output."""
        if self.op_type == OperationType.INSERT:
            return (
                f"insert {self.component_type} '{self.node_id}' under "
                f"'{self.parent_id}' at {self.position}"
            )
        if self.op_type == OperationType.DELETE:
            return f"delete '{self.node_id}'"
        if self.op_type == OperationType.MOVE:
            return f"move '{self.node_id}' to '{self.parent_id}' at {self.position}"
        changed = sorted(self.props) + [f"-{name}" for name in self.removed_props]
        return f"update '{self.node_id}' ({', '.join(changed)})"


@dataclass
class StructuralDiff:
    """Ordered list of structural operations.

    Operations are ordered so that replaying them never references a node
    that does not exist yet: deletes (children before parents), then
    inserts (parents before children), then moves, then prop updates.
    """

    operations: List[StructuralOperation] = field(default_factory=list)

    def __iter__(self) -> Iterator[StructuralOperation]:
        return iter(self.operations)

    def __len__(self) -> int:
        return len(self.operations)

    @property
    def is_empty(self) -> bool:
        return not self.operations

    def of_type(self, op_type: OperationType) -> List[StructuralOperation]:
        return [op for op in self.operations if op.op_type == op_type]

    @property
    def inserts(self) -> List[StructuralOperation]:
        return self.of_type(OperationType.INSERT)

    @property
    def deletes(self) -> List[StructuralOperation]:
        return self.of_type(OperationType.DELETE)

    @property
    def moves(self) -> List[StructuralOperation]:
        return self.of_type(OperationType.MOVE)

    @property
    def updates(self) -> List[StructuralOperation]:
        return self.of_type(OperationType.UPDATE_STRUCTURAL_PROPS)

    @property
    def inserted_ids(self) -> Set[str]:
        return {op.node_id for op in self.inserts}

    @property
    def deleted_ids(self) -> Set[str]:
        return {op.node_id for op in self.deletes}

    @property
    def moved_ids(self) -> Set[str]:
        return {op.node_id for op in self.moves}

    @property
    def touched_ids(self) -> Set[str]:
        """Ids of every node targeted by at least one operation."""
        return {op.node_id for op in self.operations}
