"""Runtime error mapping for compiled templates.

``catch_error`` is the guard the generated code calls around every
embedded expression and statement block when diagnostics are enabled:

    _catch(_env, lambda: count + 1, True, ('count + 1', 3, 12))

On failure it:
1. Recovers the failing line/column of the generated code from the traceback
2. Takes the template line/column from the guard's label and slices that
   line from the *original* template text
3. Builds a TemplateRuntimeError with the statement, the caret-annotated
   template line and the generated listing with the failing line marked
4. Re-raises (``rethrow=True``) or logs a warning and returns a
   substitute value so rendering continues (``*do``, ``*log``, ``*catch``)

"""

from __future__ import annotations

import logging
import traceback
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from tessera.environment import terminal
from tessera.environment.exceptions import TemplateRuntimeError, build_source_snippet

if TYPE_CHECKING:
    from tessera.compiler.core import RenderFunction
    from tessera.runtime.env import RuntimeEnv

logger = logging.getLogger(__name__)


def locate_failure(error: BaseException, filename: str | None) -> tuple[int, int | None] | None:
    """Innermost ``(line, col)`` of the traceback inside generated code.

    ``col`` is 1-based, or None when the interpreter did not record it.
    """
    if filename is None or error.__traceback__ is None:
        return None
    found = None
    for frame in traceback.extract_tb(error.__traceback__):
        if frame.filename == filename and frame.lineno is not None:
            col = frame.colno + 1 if frame.colno is not None else None
            found = (frame.lineno, col)
    return found


def format_listing(code: str, mark_line: int | None = None) -> str:
    """Numbered listing of ``code`` with ``>`` marking ``mark_line``."""
    return "\n".join(
        terminal.format_source_line(i, line, is_error=i == mark_line)
        for i, line in enumerate(code.splitlines(), start=1)
    )


def describe(error: BaseException) -> str:
    """``"TypeName: message"`` for the root cause of ``error``."""
    if isinstance(error, TemplateRuntimeError) and error.original is not None:
        error = error.original
    detail = str(error).strip()
    if not detail:
        return type(error).__name__
    return f"{type(error).__name__}: {detail}"


def build_runtime_error(
    env: RuntimeEnv,
    error: BaseException,
    label: tuple[str, int, int] | None = None,
) -> TemplateRuntimeError:
    """TemplateRuntimeError for ``error`` raised by the statement ``label``."""
    generated = locate_failure(error, env.code_filename)
    listing = None
    if env.original_code:
        listing = format_listing(env.original_code, generated[0] if generated else None)

    statement = lineno = col = None
    snippet = None
    if label is not None:
        statement, lineno, col = label
        if env.original_template and lineno:
            first_line = statement.splitlines()[0] if statement else ""
            snippet = build_source_snippet(
                env.original_template, lineno, column=col, width=len(first_line)
            )

    return TemplateRuntimeError(
        describe(error),
        statement=statement,
        template_name=env.template_name,
        lineno=lineno,
        col=col,
        source_snippet=snippet,
        listing=listing,
        original=error,
    )


def catch_error(
    env: RuntimeEnv,
    thunk: Callable[[], Any],
    rethrow: bool = False,
    label: tuple[str, int, int] | None = None,
) -> Any:
    """Evaluate ``thunk``; map a failure to the template statement that raised it.

    Returns:
        The thunk's value, or (when ``rethrow`` is False and it failed)
        the ``"TypeName: message"`` description of the root error.

    Raises:
        TemplateRuntimeError: When ``rethrow`` is True. An error already
            mapped by an inner guard is re-raised unchanged.
    """
    try:
        return thunk()
    except TemplateRuntimeError as e:
        if rethrow:
            raise
        error = e
    except Exception as e:
        error = build_runtime_error(env, e, label)
        if rethrow:
            raise error from e

    logger.warning("Caught template error while rendering:\n%s", error.format_compact())
    return describe(error)


def map_render_error(
    error: Exception,
    render_function: RenderFunction,
    template_name: str | None = None,
) -> TemplateRuntimeError:
    """Map an error that escaped every guard to the generated line it came from.

    Used for failures inside host primitives and other code no guard wraps.
    """
    generated = locate_failure(error, render_function.filename)
    line = generated[0] if generated else None
    statement = None
    lines = render_function.source.splitlines()
    if line is not None and 0 < line <= len(lines):
        statement = lines[line - 1].strip()
    return TemplateRuntimeError(
        describe(error),
        statement=statement,
        template_name=template_name,
        listing=format_listing(render_function.source, line),
        original=error,
    )
