"""Parser error handling for Tessera.

Provides ParseError, raised by the scanner and parser with the 1-based
line and column of the problem and the offending source line.
"""

from __future__ import annotations

from tessera.environment.exceptions import ErrorCode, TemplateSyntaxError


class ParseError(TemplateSyntaxError):
    """Structural error found while reading template markup.

    Displays errors with the source line and a caret under the column,
    matching the format used by compile-time errors.

    Example:
        ```
        Mismatched closing tag: expected </span>, found </div> (opened at line 1, col 6) at line 1, col 12
          --> <template>:1:12
             |
          >  1 | <div><span></div>
             |            ^
             |
        ```
    """

    code: ErrorCode | None = ErrorCode.UNEXPECTED_INPUT
