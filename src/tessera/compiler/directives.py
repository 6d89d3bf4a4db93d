"""Structural directive compilation (``*if``, ``*for``, ``*do``, ``*log``, ``*catch``).

Structural directives are collected from an element's attributes in
source order. Each becomes a WrapOp; the first one declared is the
outermost wrap, so

    <li *for="t of todos" *if="not t.done">{{ t.title }}</li>

filters per item (the conditional is inside the loop body), while the
reverse order gates the whole loop.

Every wrap compiles to a Python expression around the next inner one.
The innermost is the element's own fragment. Helper functions are
emitted into the enclosing Frame:

    *if    ->  _env.conditional(test, _if_N, _empty)
    *for   ->  _env.repeat(items, _key_N | None, _for_N)
    *do    ->  _do_N()        # runs the statements, returns inner
    *log   ->  _log_N()       # _env.log(value), returns inner
    *catch ->  _catch(_env, _catch_N, False, label)

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

import ast
import html
import io
import re
import tokenize
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tessera.compiler.expressions import target_names
from tessera.compiler.interpolation import position_at
from tessera.compiler.utils import Frame, FragmentBuffer, attr, call, const, function_def, name
from tessera.environment.exceptions import ErrorCode, TemplateSyntaxError

if TYPE_CHECKING:
    from tessera.nodes import Element

FOR_PATTERN = re.compile(r"^(.*?)\s+(in|of)\s+(.*)$", re.DOTALL)

_OPENERS = frozenset("([{")
_CLOSERS = frozenset(")]}")

STRUCTURAL_DIRECTIVES = frozenset({"*if", "*for", "*do", "*log", "*catch"})


def key_separator(text: str) -> int | None:
    """Offset of the first ``;`` in ``text`` outside brackets and string literals."""
    starts = [0]
    for line in text.splitlines(keepends=True):
        starts.append(starts[-1] + len(line))
    depth = 0
    try:
        for tok in tokenize.generate_tokens(io.StringIO(text).readline):
            if tok.type != tokenize.OP:
                continue
            if tok.string in _OPENERS:
                depth += 1
            elif tok.string in _CLOSERS:
                depth -= 1
            elif tok.string == ";" and depth == 0:
                row, column = tok.start
                return starts[row - 1] + column
    except (tokenize.TokenError, SyntaxError):
        # Unbalanced source; the expression parser reports it
        return None
    return None


@dataclass(frozen=True, slots=True)
class WrapOp:
    """One resolved structural directive on an element."""

    directive: str
    expression: str | None
    lineno: int
    col: int


@dataclass(frozen=True, slots=True)
class ForClause:
    """Parsed ``*for`` value: ``target (in|of) source [; key]``."""

    target: str
    mode: str
    source: str
    source_pos: tuple[int, int]
    key: str | None
    key_pos: tuple[int, int] | None


class StructuralDirectiveMixin:
    """Mixin resolving and compiling ``*``-prefixed attributes.

    Host attributes and cross-mixin dependencies are declared via inline
    TYPE_CHECKING blocks.
    """

    if TYPE_CHECKING:
        _name: str | None
        _source: str | None
        _diagnostics: bool

        def _unique(self, prefix: str) -> str: ...
        def _syntax_error(
            self, message: str, lineno: int, col: int, code: ErrorCode = ...
        ) -> TemplateSyntaxError: ...
        def _label(self, text: str, lineno: int, col: int) -> ast.expr: ...
        def _parse_expression(self, text: str, lineno: int, col: int, frame: Frame) -> ast.expr: ...
        def _compile_expression(
            self, text: str, lineno: int, col: int, frame: Frame, rethrow: bool = True
        ) -> ast.expr: ...
        def _compile_statement_block(
            self, text: str, lineno: int, col: int, frame: Frame, *, rethrow: bool
        ) -> list[ast.stmt]: ...
        def _guard(
            self, expr: ast.expr, text: str, lineno: int, col: int, rethrow: bool = True
        ) -> ast.expr: ...
        def _emit_element(self, element: Element, buf: FragmentBuffer, frame: Frame) -> None: ...

    def _collect_wraps(self, element: Element) -> list[WrapOp]:
        """Structural directives of ``element``, in declaration order."""
        ops: list[WrapOp] = []
        for attribute in element.attributes:
            if not attribute.name.startswith("*"):
                continue
            if attribute.name not in STRUCTURAL_DIRECTIVES:
                raise self._syntax_error(
                    f"Unknown attribute {attribute.name} in element <{element.tag_name}>",
                    attribute.lineno,
                    attribute.col,
                    ErrorCode.UNKNOWN_DIRECTIVE,
                )
            value = None if attribute.value is None else html.unescape(attribute.value)
            if attribute.value is None:
                lineno, col = attribute.lineno, attribute.col
            else:
                lineno, col = attribute.value_lineno, attribute.value_col
            ops.append(WrapOp(attribute.name, value, lineno, col))
        return ops

    def _compile_wraps(
        self, element: Element, ops: list[WrapOp], index: int, frame: Frame
    ) -> ast.expr:
        """Expression for ``ops[index:]`` applied around the element."""
        if index == len(ops):
            buf = FragmentBuffer()
            self._emit_element(element, buf, frame)
            return buf.build()

        op = ops[index]
        if op.directive != "*catch" and not (op.expression or "").strip():
            raise self._syntax_error(
                f"Directive {op.directive} requires a value in element <{element.tag_name}>",
                op.lineno,
                op.col,
                ErrorCode.INVALID_EXPRESSION,
            )
        handler = {
            "*if": self._wrap_if,
            "*for": self._wrap_for,
            "*do": self._wrap_do,
            "*log": self._wrap_log,
            "*catch": self._wrap_catch,
        }[op.directive]
        return handler(element, ops, index, frame)

    def _inner_function(
        self,
        prefix: str,
        params: tuple[str, ...],
        element: Element,
        ops: list[WrapOp],
        index: int,
        frame: Frame,
        prelude: list[ast.stmt] | None = None,
        extra_locals: frozenset[str] = frozenset(),
    ) -> str:
        """Emit ``def prefix_N(params): <prelude>; return <inner>`` into ``frame``."""
        inner = frame.child(extra_locals)
        inner.body.extend(prelude or [])
        result = self._compile_wraps(element, ops, index + 1, inner)
        func_name = self._unique(prefix)
        frame.body.append(function_def(func_name, params, [*inner.body, ast.Return(value=result)]))
        return func_name

    # ─────────────────────────────────────────────────────────────────────
    # *if
    # ─────────────────────────────────────────────────────────────────────

    def _wrap_if(self, element: Element, ops: list[WrapOp], index: int, frame: Frame) -> ast.expr:
        op = ops[index]
        test = self._compile_expression(op.expression or "", op.lineno, op.col, frame)
        on_true = self._inner_function("_if", (), element, ops, index, frame)
        return call(attr("_env", "conditional"), test, name(on_true), name("_empty"))

    # ─────────────────────────────────────────────────────────────────────
    # *for
    # ─────────────────────────────────────────────────────────────────────

    def _parse_for(self, op: WrapOp) -> ForClause:
        value = (op.expression or "").strip()
        m = FOR_PATTERN.match(value)
        if m is None:
            raise self._syntax_error(
                f"Invalid *for attribute value: {value!r}",
                op.lineno,
                op.col,
                ErrorCode.INVALID_FOR,
            )
        # Offsets are relative to the stripped value
        lead = len(op.expression or "") - len((op.expression or "").lstrip())
        raw = op.expression or ""
        source = m.group(3)
        key: str | None = None
        key_pos: tuple[int, int] | None = None
        split = key_separator(source)
        if split is not None:
            key_text = source[split + 1 :]
            source = source[:split]
            key = key_text.strip() or None
            if key:
                key_offset = lead + m.start(3) + split + 1 + len(key_text) - len(key_text.lstrip())
                key_pos = position_at(raw, key_offset, op.lineno, op.col)
        return ForClause(
            target=m.group(1).strip(),
            mode=m.group(2),
            source=source.strip(),
            source_pos=position_at(raw, lead + m.start(3), op.lineno, op.col),
            key=key,
            key_pos=key_pos,
        )

    def _for_target(self, clause: ForClause, op: WrapOp) -> ast.expr:
        try:
            target = ast.parse(clause.target, mode="eval").body
        except SyntaxError:
            target = None
        valid = target is not None and all(
            isinstance(n, (ast.Name, ast.Tuple, ast.List, ast.Load)) for n in ast.walk(target)
        )
        if not valid or any(
            n.startswith("_") and n != "_" for n in target_names(target)  # type: ignore[arg-type]
        ):
            raise self._syntax_error(
                f"Invalid *for attribute value: {op.expression!r} "
                f"(loop target must be a name or a tuple of names not starting with '_')",
                op.lineno,
                op.col,
                ErrorCode.INVALID_FOR,
            )
        return target  # type: ignore[return-value]

    def _wrap_for(self, element: Element, ops: list[WrapOp], index: int, frame: Frame) -> ast.expr:
        op = ops[index]
        clause = self._parse_for(op)
        target = self._for_target(clause, op)
        bound = frozenset(target_names(target))
        index_name = "_index" if "index" in bound else "index"

        if isinstance(target, ast.Name):
            item_param = target.id
            unpack: list[ast.stmt] = []
        else:
            item_param = "_item"
            store_target = _as_store(target)
            unpack = [ast.Assign(targets=[store_target], value=name("_item"))]

        # items: _iter_values(source) / _iter_keys(source), materialized
        # inside the guard so iteration errors point at the *for value
        line, col = clause.source_pos
        source_expr = self._parse_expression(clause.source, line, col, frame)
        iterate = "_iter_values" if clause.mode == "of" else "_iter_keys"
        items = self._guard(call(iterate, source_expr), clause.source, line, col)

        key_fn: ast.expr = const(None)
        if clause.key and clause.key_pos:
            key_line, key_col = clause.key_pos
            key_frame = frame.child(bound)
            key_frame.body.extend(unpack)
            key_expr = self._compile_expression(clause.key, key_line, key_col, key_frame)
            key_name = self._unique("_key")
            frame.body.append(
                function_def(key_name, (item_param,), [*key_frame.body, ast.Return(value=key_expr)])
            )
            key_fn = name(key_name)

        extra = bound | ({"index"} if index_name == "index" else set())
        renderer = self._inner_function(
            "_for",
            (item_param, index_name),
            element,
            ops,
            index,
            frame,
            prelude=list(unpack),
            extra_locals=frozenset(extra),
        )
        return call(attr("_env", "repeat"), items, key_fn, name(renderer))

    # ─────────────────────────────────────────────────────────────────────
    # *do / *log / *catch
    # ─────────────────────────────────────────────────────────────────────

    def _wrap_do(self, element: Element, ops: list[WrapOp], index: int, frame: Frame) -> ast.expr:
        op = ops[index]
        prelude = self._compile_statement_block(
            op.expression or "", op.lineno, op.col, frame, rethrow=False
        )
        return call(self._inner_function("_do", (), element, ops, index, frame, prelude=prelude))

    def _wrap_log(self, element: Element, ops: list[WrapOp], index: int, frame: Frame) -> ast.expr:
        op = ops[index]
        text = op.expression or ""
        value = self._parse_expression(text, op.lineno, op.col, frame)
        log_call = self._guard(call(attr("_env", "log"), value), text, op.lineno, op.col, rethrow=False)
        prelude: list[ast.stmt] = [ast.Expr(value=log_call)]
        return call(self._inner_function("_log", (), element, ops, index, frame, prelude=prelude))

    def _wrap_catch(self, element: Element, ops: list[WrapOp], index: int, frame: Frame) -> ast.expr:
        op = ops[index]
        label = (op.expression or "").strip() or f"<{element.tag_name}>"
        inner = self._inner_function("_catch", (), element, ops, index, frame)
        return call(
            "_catch", name("_env"), name(inner), const(False), self._label(label, op.lineno, op.col)
        )


def _as_store(target: ast.expr) -> ast.expr:
    """Copy of a Name/Tuple/List target with Store context throughout."""
    if isinstance(target, ast.Name):
        return ast.Name(id=target.id, ctx=ast.Store())
    if isinstance(target, ast.Tuple):
        return ast.Tuple(elts=[_as_store(e) for e in target.elts], ctx=ast.Store())
    return ast.List(elts=[_as_store(e) for e in target.elts], ctx=ast.Store())  # type: ignore[attr-defined]
