"""Exceptions raised by the prop classifier."""

from typing import Optional

from src.node_store.errors import IntegrityError


class UnknownPropError(IntegrityError):
    """Raised when a tree uses a component type or prop the registry does not know.

    Only raised when the classifier runs with UnknownPropPolicy.REJECT.
    """

    def __init__(
        self,
        component_type: str,
        prop_name: Optional[str] = None,
        node_id: Optional[str] = None,
    ):
        if prop_name is None:
            reason = f"unknown component type '{component_type}'"
        else:
            reason = f"unknown prop '{prop_name}' on component '{component_type}'"
        super().__init__(reason, node_id)
        self.component_type = component_type
        self.prop_name = prop_name
