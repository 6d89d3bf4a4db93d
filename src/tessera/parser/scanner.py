"""Character cursor over template source.

The Scanner owns the read position and the 1-based line/column counters.
It knows nothing about markup; the parser builds on its primitives.

Line counting:
    ``\\n`` starts a new line. ``\\r\\n`` counts once (the ``\\r`` is
    skipped by the counter). A lone ``\\r`` also starts a new line.

"""

from __future__ import annotations

from collections.abc import Callable
from typing import NoReturn

from tessera._types import Position
from tessera.environment.exceptions import ErrorCode
from tessera.parser.errors import ParseError

WHITESPACE = frozenset(" \t\n\r\f")


class Scanner:
    """Character cursor with line/column tracking.

    Attributes:
        source: Full template text
        name: Template name used in error messages
        line: Current 1-based line
        col: Current 1-based column

    """

    __slots__ = ("_pos", "col", "line", "name", "source")

    def __init__(self, source: str, name: str | None = None):
        self.source = source
        self.name = name
        self._pos = 0
        self.line = 1
        self.col = 1

    def eof(self) -> bool:
        return self._pos >= len(self.source)

    def peek(self, offset: int = 0) -> str | None:
        """Return the character ``offset`` positions ahead, or None past the end."""
        i = self._pos + offset
        if i < 0 or i >= len(self.source):
            return None
        return self.source[i]

    def next(self) -> str | None:
        """Consume one character, updating line and column."""
        if self.eof():
            return None
        ch = self.source[self._pos]
        self._pos += 1
        if ch == "\n":
            self.line += 1
            self.col = 1
        elif ch == "\r":
            # CRLF is counted by the \n
            if self.peek() != "\n":
                self.line += 1
                self.col = 1
        else:
            self.col += 1
        return ch

    def starts_with(self, seq: str) -> bool:
        return self.source.startswith(seq, self._pos)

    def consume_expected(self, seq: str) -> None:
        """Consume ``seq`` or fail with ``Expected "seq"``."""
        if not self.starts_with(seq):
            self.throw_error(f'Expected "{seq}"', code=ErrorCode.UNEXPECTED_INPUT)
        for _ in seq:
            self.next()

    def read_until_char(
        self, char: str, on_eof: Callable[[], NoReturn] | None = None
    ) -> str:
        """Read up to (not including) ``char``.

        Calls ``on_eof`` when the input ends before ``char`` is found.
        """
        start = self._pos
        while not self.eof() and self.source[self._pos] != char:
            self.next()
        if self.eof() and on_eof is not None:
            on_eof()
        return self.source[start:self._pos]

    def read_until_sequence(
        self, seq: str, on_eof: Callable[[], NoReturn] | None = None
    ) -> str:
        """Read up to (not including) ``seq``.

        Calls ``on_eof`` when the input ends before ``seq`` is found.
        """
        start = self._pos
        while not self.eof() and not self.starts_with(seq):
            self.next()
        if self.eof() and on_eof is not None:
            on_eof()
        return self.source[start:self._pos]

    def skip_whitespace(self) -> None:
        while not self.eof() and self.source[self._pos] in WHITESPACE:
            self.next()

    def position(self) -> Position:
        return Position(self._pos, self.line, self.col)

    def throw_error(
        self,
        message: str,
        line: int | None = None,
        col: int | None = None,
        *,
        code: ErrorCode | None = None,
    ) -> NoReturn:
        """Raise a ParseError located at ``line``/``col`` (default: the cursor)."""
        raise ParseError(
            message,
            self.line if line is None else line,
            self.col if col is None else col,
            name=self.name,
            source=self.source,
            code=code,
        )
