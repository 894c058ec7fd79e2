"""Data models for prop classification."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Tuple


class PropKind(Enum):
    """How a prop behaves across locales."""

    STRUCTURAL = "structural"      # layout and styling, shared verbatim
    TRANSLATABLE = "translatable"  # human-readable text, authored per locale
    OPAQUE = "opaque"              # shared resources such as media URLs


class UnknownPropPolicy(Enum):
    """What to do with component types or props missing from the registry."""

    STRUCTURAL = "structural"
    REJECT = "reject"


@dataclass(frozen=True)
class PropValue:
    """A prop value together with its classification."""

    kind: PropKind
    value: Any


@dataclass(frozen=True)
class ComponentSpec:
    """Registry entry describing the props of one component type.

    Attributes:
        component_type: Component name as it appears in the wire format
        translatable: Props holding human-readable text
        opaque: Props holding shared resources (image URLs, ids)
        structural: Remaining known props (layout, styling, links)
        item_fields: For composite translatable props (lists of items or
            nested objects), the keys whose values hold text. Other keys
            inside those values are copied verbatim. Translatable props
            without an entry here treat every string leaf as text.
        is_canvas: Whether the component accepts children

    Example:
        >>> spec = ComponentSpec(
        ...     "List",
        ...     translatable=frozenset({"items"}),
        ...     structural=frozenset({"ordered"}),
        ...     item_fields={"items": ("text",)},
        ... )
    """

    component_type: str
    translatable: FrozenSet[str] = frozenset()
    opaque: FrozenSet[str] = frozenset()
    structural: FrozenSet[str] = frozenset()
    item_fields: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    is_canvas: bool = False

    @property
    def known_props(self) -> FrozenSet[str]:
        return self.translatable | self.opaque | self.structural
