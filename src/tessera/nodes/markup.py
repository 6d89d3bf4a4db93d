"""Markup nodes: elements, attributes, text, and everything else."""

from __future__ import annotations

from dataclasses import dataclass

from tessera.nodes.base import Node


@dataclass(frozen=True, slots=True)
class Attribute(Node):
    """A single attribute as written: ``name``, ``name=value`` or ``name="value"``.

    ``value`` is None when the attribute has no ``=``. ``value_lineno`` and
    ``value_col`` locate the first character of the value (inside the
    quotes), so embedded expressions can be reported at their own column.
    """

    name: str
    value: str | None = None
    value_lineno: int = 0
    value_col: int = 0


@dataclass(frozen=True, slots=True)
class Element(Node):
    """An element with ordered (possibly duplicated) attributes.

    Void elements (self-closed, or a name in the void set) never have
    children.
    """

    tag_name: str
    attributes: tuple[Attribute, ...] = ()
    children: tuple[Node, ...] = ()
    is_void: bool = False


@dataclass(frozen=True, slots=True)
class Text(Node):
    """Literal character data, possibly containing ``{{ }}`` interpolations."""

    text_content: str


@dataclass(frozen=True, slots=True)
class Other(Node):
    """Comment, declaration (``!``-prefixed) or processing instruction (``?``-prefixed)."""

    text_content: str
