"""Base node class for Tessera AST."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Node:
    """Base class for all AST nodes.

    All nodes track where they start in the template source (1-based line
    and column) so the compiler can point errors at the original text.
    Nodes are immutable once the parser returns them.

    """

    lineno: int
    col: int
