"""Exceptions raised by the translation status tracker."""

from src.node_store.errors import PageSyncError


class ReviewStateError(PageSyncError):
    """Raised when a node cannot be marked reviewed for a locale.

    Reviewing only makes sense after an automatic pass, so the locale must
    currently be in the node's auto-translated set.
    """

    def __init__(self, node_id: str, locale: str, reason: str):
        super().__init__(
            f"Cannot mark node '{node_id}' reviewed for '{locale}': {reason}"
        )
        self.node_id = node_id
        self.locale = locale
        self.reason = reason
