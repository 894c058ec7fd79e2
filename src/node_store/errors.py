"""Typed exception hierarchy for page tree errors.

This module defines the root exception of the page-sync engine and the
integrity error raised whenever a component tree breaks one of its
structural invariants. All exceptions include descriptive messages with
context to help with debugging.
"""

from typing import Optional


class PageSyncError(Exception):
    """Base exception for all page-sync errors.

    Use this to catch any application-level error from the engine.
    """
    pass


class IntegrityError(PageSyncError):
    """Raised when a component tree is malformed.

    Attributes:
        node_id: Offending node id (None for tree-level faults)
        reason: Human-readable description of the violated invariant
    """

    def __init__(self, reason: str, node_id: Optional[str] = None):
        if node_id is not None:
            message = f"Integrity error at node '{node_id}': {reason}"
        else:
            message = f"Integrity error: {reason}"
        super().__init__(message)
        self.node_id = node_id
        self.reason = reason
