"""Exceptions for the Tessera template system.

Exception Hierarchy:
TemplateError (base)
├── TemplateNotFoundError     # Template not found by loader
├── TemplateSyntaxError       # Parse-time or compile-time error, located
│   └── ParseError            # Scanner/parser error (tessera.parser.errors)
├── TemplateBuildError        # Generated code failed to build
├── TemplateRuntimeError      # Render-time error with template location
├── UndefinedError            # Name missing from the scope
└── ScopeNotDefinedError      # render() called with no scope bound

Error Messages:
Every error foregrounds the smallest unit a template author can act on:
the original statement, its 1-based line and column, and the template
line it came from. The generated Python is only shown as a listing
appended after that context.

Example:
    ```
    T-RUN-001: ZeroDivisionError: division by zero
      Statement: total / count
      Location: cart.html:3:9
         |
      >  3 |   <b>{{ total / count }}</b>
         |          ^^^^^^^^^^^^^
         |
    ```

"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from tessera.environment import terminal

# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------


class ErrorCode(Enum):
    """Searchable error codes for Tessera template errors.

    Format: T-{CATEGORY}-{NUMBER}
    Categories: PAR (parser), CMP (compiler), BLD (build),
    RUN (runtime), TPL (template loading and binding)
    """

    # Parser errors (T-PAR-xxx)
    UNEXPECTED_CLOSING_TAG = "T-PAR-001"
    MISMATCHED_CLOSING_TAG = "T-PAR-002"
    UNCLOSED_TAG = "T-PAR-003"
    UNTERMINATED = "T-PAR-004"
    INVALID_NAME = "T-PAR-005"
    UNEXPECTED_INPUT = "T-PAR-006"

    # Compiler errors (T-CMP-xxx)
    UNKNOWN_DIRECTIVE = "T-CMP-001"
    INVALID_FOR = "T-CMP-002"
    INVALID_EXPRESSION = "T-CMP-003"
    EMPTY_INTERPOLATION = "T-CMP-004"

    # Build errors (T-BLD-xxx)
    BUILD_FAILED = "T-BLD-001"

    # Runtime errors (T-RUN-xxx)
    RUNTIME_ERROR = "T-RUN-001"
    UNDEFINED_VARIABLE = "T-RUN-002"

    # Template loading/binding errors (T-TPL-xxx)
    TEMPLATE_NOT_FOUND = "T-TPL-001"
    SCOPE_NOT_DEFINED = "T-TPL-002"
    TEMPLATE_NOT_BOUND = "T-TPL-003"

    @property
    def category(self) -> str:
        """Error category (e.g., 'parser', 'compiler', 'runtime')."""
        prefix = self.value.split("-")[1]
        return {
            "PAR": "parser",
            "CMP": "compiler",
            "BLD": "build",
            "RUN": "runtime",
            "TPL": "template",
        }.get(prefix, "unknown")


# ---------------------------------------------------------------------------
# Source snippets
# ---------------------------------------------------------------------------

# Gutter aligned with the "|" of format_source_line (marker + 3-digit number)
_GUTTER = "     |"

# Same line breaks the scanner counts: CRLF once, lone CR, LF
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def split_source_lines(source: str) -> list[str]:
    """Split template source into lines the way the scanner numbers them."""
    return _LINE_BREAK.split(source)


@dataclass(frozen=True, slots=True)
class SourceSnippet:
    """Numbered template lines shown under an error message.

    Attributes:
        lines: ``(lineno, text)`` pairs, the failing line plus any context.
        error_line: 1-based number of the failing line.
        column: Optional 1-based column for the caret pointer.
        width: Number of carets drawn from ``column`` (at least one).
    """

    lines: tuple[tuple[int, str], ...]
    error_line: int
    column: int | None = None
    width: int = 1

    def format(self) -> str:
        """Gutter-framed lines with a caret under the failing column, when known."""
        parts: list[str] = [terminal.dim_text(_GUTTER)]
        for lineno, content in self.lines:
            is_error = lineno == self.error_line
            parts.append(terminal.format_source_line(lineno, content, is_error=is_error))
            if is_error and self.column is not None:
                caret = " " * (self.column - 1) + "^" * max(1, self.width)
                parts.append(f"{terminal.dim_text(_GUTTER)} {terminal.error_line(caret)}")
        parts.append(terminal.dim_text(_GUTTER))
        return "\n".join(parts)


def build_source_snippet(
    source: str,
    error_line: int,
    *,
    context_lines: int = 0,
    column: int | None = None,
    width: int = 1,
) -> SourceSnippet:
    """Cut ``error_line`` and ``context_lines`` neighbours on each side out of ``source``.

    ``column`` and ``width`` place the caret; ``width`` is usually the
    length of the failing expression. Out-of-range lines are clipped.
    """
    all_lines = split_source_lines(source)
    start = max(0, error_line - 1 - context_lines)
    end = min(len(all_lines), error_line + context_lines)
    lines = tuple((i + 1, all_lines[i]) for i in range(start, end))
    return SourceSnippet(lines=lines, error_line=error_line, column=column, width=width)


def _location(name: str | None, lineno: int | None, col: int | None = None) -> str:
    loc = name or "<template>"
    if lineno is not None:
        loc += f":{lineno}"
        if col is not None:
            loc += f":{col}"
    return loc


class TemplateError(Exception):
    """Root of every error Tessera raises on purpose.

    Catch it to handle parse, compile and runtime failures in one place:

        >>> try:
        ...     env.from_string(markup, scope).render()
        ... except TemplateError as exc:
        ...     print(exc.format_compact())

    ``code`` is an ErrorCode when the failure has a stable identifier.
    """

    code: ErrorCode | None = None

    def __init__(self, *args: Any, code: ErrorCode | None = None):
        super().__init__(*args)
        if code is not None:
            self.code = code

    def format_compact(self) -> str:
        """Message prefixed with the error code, for printing instead of a traceback."""
        header = str(self)
        if self.code and self.code.value not in header:
            header = terminal.format_error_header(self.code.value, header)
        return header


class TemplateNotFoundError(TemplateError):
    """Template not found by the configured loader.

    Example:
            >>> env.get_template("missing.html")
        TemplateNotFoundError: Template 'missing.html' not found in: templates/
    """

    code: ErrorCode | None = ErrorCode.TEMPLATE_NOT_FOUND


class TemplateSyntaxError(TemplateError):
    """Located error raised while parsing or compiling template source.

    Covers structural problems found by the parser (unterminated comments,
    mismatched tags) and semantic problems found by the compiler (unknown
    directives, malformed ``*for`` values, invalid embedded Python).

    When ``source`` and ``lineno`` are provided, the message includes the
    offending line, and ``col`` places a caret under the exact column.
    """

    code: ErrorCode | None = ErrorCode.INVALID_EXPRESSION

    def __init__(
        self,
        message: str,
        lineno: int | None = None,
        col: int | None = None,
        *,
        name: str | None = None,
        source: str | None = None,
        code: ErrorCode | None = None,
    ):
        self.message = message
        self.lineno = lineno
        self.col = col
        self.name = name
        self.source = source
        if code is not None:
            self.code = code
        super().__init__(self._format_message())

    @property
    def source_line(self) -> str | None:
        """The template line the error points at, if the source is known."""
        if self.source is None or not self.lineno:
            return None
        lines = split_source_lines(self.source)
        if 0 < self.lineno <= len(lines):
            return lines[self.lineno - 1]
        return None

    def _snippet(self) -> SourceSnippet | None:
        if self.source_line is None or self.lineno is None:
            return None
        return build_source_snippet(self.source or "", self.lineno, column=self.col)

    def _format_message(self) -> str:
        header = self.message
        if self.lineno is not None:
            header += f" at line {self.lineno}, col {self.col}"
        parts = [header, f"  --> {_location(self.name, self.lineno, self.col)}"]
        snippet = self._snippet()
        if snippet is not None:
            parts.append(snippet.format())
        return "\n".join(parts)

    def format_compact(self) -> str:
        """Coloured header, location arrow and snippet."""
        parts = [
            terminal.format_error_header(self.code.value if self.code else None, self.message),
            f"  --> {terminal.location(_location(self.name, self.lineno, self.col))}",
        ]
        snippet = self._snippet()
        if snippet is not None:
            parts.append(snippet.format())
        return "\n".join(parts)


class TemplateBuildError(TemplateError):
    """Generated Python failed to build.

    This signals a compiler defect or an expression the parser could not
    vet in isolation. The location is always the placeholder ``0:0`` and
    the full generated listing is attached so the failure can be read
    against the code that was actually compiled.
    """

    code: ErrorCode | None = ErrorCode.BUILD_FAILED

    def __init__(
        self,
        message: str,
        *,
        listing: str,
        name: str | None = None,
        original: BaseException | None = None,
    ):
        self.message = message
        self.listing = listing
        self.name = name
        self.original = original
        self.lineno = 0
        self.col = 0
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        return (
            f"Failed to build template function: {self.message}\n"
            f"  Location: {_location(self.name, self.lineno, self.col)}\n"
            f"  Generated code:\n{self.listing}"
        )


class TemplateRuntimeError(TemplateError):
    """Render-time error carrying the failing template statement.

    Output Format:
            ```
            T-RUN-001: TypeError: unsupported operand type(s) ...
              Statement: count + label
              Location: counter.html:4:12
                 |
              >  4 |   <span>{{ count + label }}</span>
                 |            ^^^^^^^^^^^^^
                 |
            ```

    Attributes:
        message: Error description (``"Type: detail"`` of the root cause)
        statement: Original template statement that failed
        template_name: Name of the template
        lineno: 1-based line in the template source
        col: 1-based column in the template source
        source_snippet: Caret-annotated template line
        listing: Generated code listing with the failing line marked
        original: The exception raised by the statement itself
    """

    code: ErrorCode | None = ErrorCode.RUNTIME_ERROR

    def __init__(
        self,
        message: str,
        *,
        statement: str | None = None,
        template_name: str | None = None,
        lineno: int | None = None,
        col: int | None = None,
        source_snippet: SourceSnippet | None = None,
        listing: str | None = None,
        original: BaseException | None = None,
    ):
        self.message = message
        self.statement = statement
        self.template_name = template_name
        self.lineno = lineno
        self.col = col
        self.source_snippet = source_snippet
        self.listing = listing
        self.original = original
        super().__init__(self._format_message())

    def _context_lines(self) -> list[str]:
        parts: list[str] = []
        if self.statement:
            parts.append(f"  Statement: {self.statement}")
        if self.template_name or self.lineno:
            loc = _location(self.template_name, self.lineno, self.col)
            parts.append(f"  Location: {terminal.location(loc)}")
        if self.source_snippet:
            parts.append(self.source_snippet.format())
        return parts

    def _format_message(self) -> str:
        parts = [f"Runtime Error: {self.message}", *self._context_lines()]
        if self.listing:
            parts.append("  Generated code:")
            parts.append(self.listing)
        return "\n".join(parts)

    def format_compact(self) -> str:
        """Format runtime error without the generated listing."""
        parts = [
            terminal.format_error_header(self.code.value if self.code else None, self.message),
            *self._context_lines(),
        ]
        return "\n".join(parts)


class UndefinedError(TemplateError):
    """Raised when an expression names something missing from the scope.

    Lookups are strict: a name that is neither a scope key nor a Python
    builtin raises instead of evaluating to None. If ``available_names``
    is provided, a "Did you mean?" suggestion is included when a close
    match is found (using ``difflib.get_close_matches``).

    Example:
            >>> define_scope({"title": "x"}, template="<p>{{ titel }}</p>").template.render()
        UndefinedError: Undefined variable 'titel'. Did you mean 'title'?
    """

    code: ErrorCode | None = ErrorCode.UNDEFINED_VARIABLE

    def __init__(self, name: str, available_names: frozenset[str] | None = None):
        self.name = name
        self._available_names = available_names
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"Undefined variable '{self.name}'"
        if self._available_names:
            from difflib import get_close_matches

            matches = get_close_matches(self.name, self._available_names, n=1, cutoff=0.6)
            if matches:
                msg += f". Did you mean '{terminal.suggestion(matches[0])}'?"
        return msg


class ScopeNotDefinedError(TemplateError):
    """A template was rendered before any scope was bound to it."""

    code: ErrorCode | None = ErrorCode.SCOPE_NOT_DEFINED

    def __init__(self, name: str | None = None):
        self.name = name
        super().__init__(f"Scope is not defined for template {name or '<template>'}")
