"""Node store for page component trees.

This package provides the in-memory representation of one locale's page
tree, its integrity checks, and the JSON wire codec shared with the editor
and the renderer.
"""

from .errors import PageSyncError, IntegrityError
from .models import Node, NodeMap, ValidatedTree, ROOT_ID, ROOT_COMPONENT_TYPE
from .node_store import NodeStore

__all__ = [
    'PageSyncError',
    'IntegrityError',
    'Node',
    'NodeMap',
    'ValidatedTree',
    'ROOT_ID',
    'ROOT_COMPONENT_TYPE',
    'NodeStore',
]
