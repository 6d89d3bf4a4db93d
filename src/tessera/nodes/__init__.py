"""Tessera AST nodes.

The parser produces a tuple of these; the compiler consumes them.
"""

from tessera.nodes.base import Node
from tessera.nodes.markup import Attribute, Element, Other, Text

__all__ = [
    "Attribute",
    "Element",
    "Node",
    "Other",
    "Text",
]
