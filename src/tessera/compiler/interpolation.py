"""Text interpolation: splitting ``{{ expr }}`` spans out of literal text.

Rules:
    - A span runs from ``{{`` to the first ``}}`` after it (non-nesting).
    - ``\\{{`` is a literal ``{{`` and does not open a span.
    - A ``{{`` with no closing ``}}`` is left as literal text.
    - An empty span (``{{ }}``) is a compile-time error.

Every expression is returned with the 1-based line and column of its first
non-blank character, computed from the position of the enclosing text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from tessera.environment.exceptions import ErrorCode, TemplateSyntaxError

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True, slots=True)
class Interpolation:
    """One ``{{ }}`` span: the stripped expression text and where it starts."""

    expression: str
    lineno: int
    col: int


def position_at(text: str, offset: int, lineno: int, col: int) -> tuple[int, int]:
    """Line and column of ``text[offset]``, given where ``text`` itself starts."""
    last_end = None
    breaks = 0
    for m in _LINE_BREAK.finditer(text, 0, offset):
        breaks += 1
        last_end = m.end()
    if last_end is None:
        return lineno, col + offset
    return lineno + breaks, offset - last_end + 1


def split_interpolations(
    text: str,
    lineno: int,
    col: int,
    *,
    name: str | None = None,
    source: str | None = None,
) -> list[str | Interpolation]:
    """Split ``text`` into literal strings and Interpolation parts, in order.

    Adjacent literal pieces are merged, so literals and interpolations
    alternate (either may come first).

    Raises:
        TemplateSyntaxError: For an empty ``{{ }}`` span.
    """
    parts: list[str | Interpolation] = []
    literal: list[str] = []
    i = 0
    while True:
        start = text.find("{{", i)
        if start == -1:
            literal.append(text[i:])
            break
        if start > 0 and text[start - 1] == "\\":
            literal.append(text[i:start - 1])
            literal.append("{{")
            i = start + 2
            continue
        end = text.find("}}", start + 2)
        if end == -1:
            literal.append(text[i:])
            break

        literal.append(text[i:start])
        raw = text[start + 2:end]
        expression = raw.strip()
        if not expression:
            line, c = position_at(text, start, lineno, col)
            raise TemplateSyntaxError(
                "Empty interpolation {{ }}",
                line,
                c,
                name=name,
                source=source,
                code=ErrorCode.EMPTY_INTERPOLATION,
            )
        if any(literal):
            parts.append("".join(literal))
        literal = []
        lead = len(raw) - len(raw.lstrip())
        line, c = position_at(text, start + 2 + lead, lineno, col)
        parts.append(Interpolation(expression, line, c))
        i = end + 2

    if any(literal):
        parts.append("".join(literal))
    return parts
