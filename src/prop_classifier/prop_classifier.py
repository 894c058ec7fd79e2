"""Prop classification for page components.

This module provides the PropClassifier class which decides, per component
type and prop name, whether a prop is structural (shared verbatim across
locales), translatable (authored per locale) or opaque (a shared resource
such as an image URL). It also knows how to reach the text inside
composite translatable props such as FAQ entries or table cells.
"""

import copy
import logging
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple

from src.node_store.models import Node, ValidatedTree

from .errors import UnknownPropError
from .models import ComponentSpec, PropKind, PropValue, UnknownPropPolicy
from .registry import COMPONENT_REGISTRY

logger = logging.getLogger(__name__)


class PropClassifier:
    """Classifies component props using the static component registry.

    Unknown component types and prop names are classified as structural:
    they are copied across locales verbatim and never dropped. With
    UnknownPropPolicy.REJECT, check_tree() refuses any tree that uses them.

    Example:
        >>> classifier = PropClassifier()
        >>> classifier.classify("Text", "text")
        <PropKind.TRANSLATABLE: 'translatable'>
        >>> classifier.classify("Section", "padding")
        <PropKind.STRUCTURAL: 'structural'>
    """

    def __init__(
        self,
        registry: Optional[Mapping[str, ComponentSpec]] = None,
        unknown_prop_policy: UnknownPropPolicy = UnknownPropPolicy.STRUCTURAL,
    ):
        self.registry = dict(COMPONENT_REGISTRY if registry is None else registry)
        self.unknown_prop_policy = unknown_prop_policy

    def is_registered(self, component_type: str) -> bool:
        return component_type in self.registry

    def spec_for(self, component_type: str) -> Optional[ComponentSpec]:
        return self.registry.get(component_type)

    def classify(self, component_type: str, prop_name: str) -> PropKind:
        """Classify one prop of a component type.

        Args:
            component_type: Component name (e.g. "Text")
            prop_name: Prop name (e.g. "fontSize")

        Returns:
            PropKind for the prop, STRUCTURAL when the component type or
            prop name is not in the registry
        """
        spec = self.registry.get(component_type)
        if spec is None:
            return PropKind.STRUCTURAL
        if prop_name in spec.translatable:
            return PropKind.TRANSLATABLE
        if prop_name in spec.opaque:
            return PropKind.OPAQUE
        return PropKind.STRUCTURAL

    def classify_props(self, node: Node) -> Dict[str, PropValue]:
        """Classify every prop of a node."""
        return {
            name: PropValue(kind=self.classify(node.component_type, name), value=value)
            for name, value in node.props.items()
        }

    def split_props(self, node: Node) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """Split a node's props into shared and translatable parts.

        Returns:
            Tuple of (structural and opaque props, translatable props)
        """
        shared: Dict[str, Any] = {}
        translatable: Dict[str, Any] = {}
        for name, value in node.props.items():
            if self.classify(node.component_type, name) == PropKind.TRANSLATABLE:
                translatable[name] = value
            else:
                shared[name] = value
        return shared, translatable

    def translatable_text(
        self, component_type: str, prop_name: str, value: Any
    ) -> Iterator[str]:
        """Yield every text leaf of a translatable prop value.

        Non-translatable props yield nothing. For composite props only the
        item fields declared in the registry are visited.
        """
        if self.classify(component_type, prop_name) != PropKind.TRANSLATABLE:
            return iter(())
        fields = self._item_fields(component_type, prop_name)
        return _iter_text(value, fields)

    def map_text(
        self,
        component_type: str,
        prop_name: str,
        value: Any,
        fn: Callable[[str], str],
    ) -> Any:
        """Rebuild a prop value with every text leaf replaced by fn(leaf).

        Non-text parts of the value (ids, URLs, numbers) are deep-copied
        unchanged, as is the whole value of a non-translatable prop.

        Example:
            >>> classifier.map_text(
            ...     "List", "items", [{"id": "1", "text": "Hi"}], str.upper
            ... )
            [{'id': '1', 'text': 'HI'}]
        """
        if self.classify(component_type, prop_name) != PropKind.TRANSLATABLE:
            return copy.deepcopy(value)
        fields = self._item_fields(component_type, prop_name)
        return _map_text(value, fields, fn)

    def check_tree(self, tree: ValidatedTree) -> None:
        """Enforce the unknown-prop policy on a whole tree.

        Does nothing under UnknownPropPolicy.STRUCTURAL beyond logging.

        Raises:
            UnknownPropError: Under UnknownPropPolicy.REJECT, for the first
                unregistered component type or prop found (pre-order)
        """
        for node in tree.walk():
            spec = self.registry.get(node.component_type)
            if spec is None:
                if self.unknown_prop_policy == UnknownPropPolicy.REJECT:
                    raise UnknownPropError(node.component_type, node_id=node.node_id)
                logger.debug(
                    f"Unregistered component '{node.component_type}' at "
                    f"'{node.node_id}', treating all props as structural"
                )
                continue

            for prop_name in node.props:
                if prop_name in spec.known_props:
                    continue
                if self.unknown_prop_policy == UnknownPropPolicy.REJECT:
                    raise UnknownPropError(
                        node.component_type, prop_name, node_id=node.node_id
                    )
                logger.debug(
                    f"Unregistered prop '{prop_name}' on '{node.component_type}' "
                    f"at '{node.node_id}', treating as structural"
                )

    def _item_fields(self, component_type: str, prop_name: str) -> Optional[Tuple[str, ...]]:
        spec = self.registry.get(component_type)
        if spec is None:
            return None
        return spec.item_fields.get(prop_name)


def _iter_text(value: Any, fields: Optional[Tuple[str, ...]]) -> Iterator[str]:
    """Yield text leaves; inside objects only keys in fields are visited."""
    if isinstance(value, str):
        yield value
    elif isinstance(value, list):
        for item in value:
            yield from _iter_text(item, fields)
    elif isinstance(value, dict):
        for key, item in value.items():
            if fields is None or key in fields:
                yield from _iter_text(item, None)


def _map_text(value: Any, fields: Optional[Tuple[str, ...]], fn: Callable[[str], str]) -> Any:
    if isinstance(value, str):
        return fn(value)
    if isinstance(value, list):
        return [_map_text(item, fields, fn) for item in value]
    if isinstance(value, dict):
        return {
            key: _map_text(item, None, fn)
            if fields is None or key in fields
            else copy.deepcopy(item)
            for key, item in value.items()
        }
    return copy.deepcopy(value)
