"""Structural diffing of page trees.

This package compares two versions of one locale's tree and emits the
ordered insert/delete/move/update operations the sync engine replays
against every other locale.
"""

from .models import OperationType, StructuralDiff, StructuralOperation
from .tree_differ import TreeDiffer

__all__ = [
    'OperationType',
    'StructuralDiff',
    'StructuralOperation',
    'TreeDiffer',
]
