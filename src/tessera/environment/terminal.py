"""ANSI styling for Tessera diagnostics.

Error messages highlight a handful of roles: the error code, the
template location, line numbers in snippets and listings, the failing
line and its caret, and "Did you mean?" suggestions. Each role maps to
a fixed set of SGR codes; everything goes through ``colorize`` so one
switch (``_USE_COLORS``) turns styling off.

Colour is decided once at import:
    FORCE_COLOR set         ->  on
    NO_COLOR set            ->  off (https://no-color.org/)
    otherwise               ->  on iff stderr is a TTY

"""

from __future__ import annotations

import os
import re
import sys
from typing import Literal

ColorName = Literal[
    "reset", "bold", "dim",
    "red", "green", "yellow", "cyan",
    "bright_red", "bright_green",
]

_SGR: dict[str, int] = {
    "reset": 0,
    "bold": 1,
    "dim": 2,
    "red": 31,
    "green": 32,
    "yellow": 33,
    "cyan": 36,
    "bright_red": 91,
    "bright_green": 92,
}

# CSI sequences plus the two-byte Fe escapes
_ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


def _should_use_colors() -> bool:
    if os.environ.get("FORCE_COLOR"):
        return True
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stderr.isatty()


_USE_COLORS = _should_use_colors()


def supports_color() -> bool:
    return _USE_COLORS


def colorize(text: str, *colors: ColorName) -> str:
    """Wrap ``text`` in the SGR codes for ``colors``; unknown names are ignored.

    Example:
        >>> colorize("Error", "red", "bold")
        '\033[31m\033[1mError\033[0m'  # with colours on
    """
    if not _USE_COLORS:
        return text
    prefix = "".join(f"\033[{_SGR[c]}m" for c in colors if c in _SGR)
    if not prefix:
        return text
    return f"{prefix}{text}\033[0m"


def strip_colors(text: str) -> str:
    return _ANSI_ESCAPE.sub("", text)


# Roles


def error_code(text: str) -> str:
    return colorize(text, "bright_red", "bold")


def location(text: str) -> str:
    return colorize(text, "cyan")


def line_number(text: str) -> str:
    return colorize(text, "yellow")


def error_line(text: str) -> str:
    """Failing template or generated line, and the caret under it."""
    return colorize(text, "bright_red")


def suggestion(text: str) -> str:
    return colorize(text, "bright_green", "bold")


def dim_text(text: str) -> str:
    return colorize(text, "dim")


def format_error_header(code: str | None, message: str) -> str:
    """``"T-RUN-001: message"``, or just ``message`` when there is no code."""
    return f"{error_code(code)}: {message}" if code else message


def format_source_line(
    lineno: int,
    content: str,
    is_error: bool = False,
    show_marker: bool = True,
) -> str:
    """One numbered line of a snippet or listing.

    The gutter is four characters wide: a ``>`` marker on the failing line
    (space otherwise) and the right-aligned line number.

    Example:
        >>> format_source_line(42, "<p>{{ user }}</p>", is_error=True)
        '> 42 | <p>{{ user }}</p>'
    """
    marker = ">" if is_error and show_marker else " "
    body = error_line(content) if is_error else dim_text(content)
    return f"{line_number(f'{marker}{lineno:>3}')} | {body}"
