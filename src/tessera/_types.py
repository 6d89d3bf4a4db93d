"""Small shared value types for Tessera."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Position:
    """Scanner cursor position.

    Attributes:
        index: 0-based offset into the source string
        line: 1-based line number
        col: 1-based column number
    """

    index: int
    line: int
    col: int


@dataclass(frozen=True, slots=True)
class OpenTag:
    """An element whose closing tag the parser is still waiting for."""

    tag: str
    line: int
    col: int
