"""Prop classification for page components.

This package holds the component registry and the classifier that tells the
differ and the sync engine which props are shared across locales and which
hold per-locale text.
"""

from .errors import UnknownPropError
from .models import ComponentSpec, PropKind, PropValue, UnknownPropPolicy
from .prop_classifier import PropClassifier
from .registry import COMPONENT_REGISTRY

__all__ = [
    'UnknownPropError',
    'ComponentSpec',
    'PropKind',
    'PropValue',
    'UnknownPropPolicy',
    'PropClassifier',
    'COMPONENT_REGISTRY',
]
