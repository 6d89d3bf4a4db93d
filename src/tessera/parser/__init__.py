"""Tessera parser: template source to an immutable node tuple."""

from __future__ import annotations

from tessera.nodes import Node
from tessera.parser.core import VOID_ELEMENTS, Parser
from tessera.parser.errors import ParseError
from tessera.parser.scanner import Scanner

__all__ = ["VOID_ELEMENTS", "ParseError", "Parser", "Scanner", "parse"]


def parse(source: str, name: str | None = None) -> tuple[Node, ...]:
    """Parse template markup into top-level nodes.

    Raises:
        ParseError: On any structural problem, located at line and column.
    """
    return Parser(Scanner(source, name)).parse_document()
