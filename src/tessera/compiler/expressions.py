"""Embedded Python expression and statement compilation.

Template expressions are ordinary Python. They are parsed with ``ast`` and
rewritten so every free name becomes an ambient lookup in the scope:

    count + 1           ->  _lookup(_scope, 'count') + 1
    count += 1          ->  _scope['count'] = _lookup(_scope, 'count') + 1
    [t.id for t in ts]  ->  [t.id for t in _lookup(_scope, 'ts')]

Names bound by the template itself (``*for`` targets, ``index``, ``event``,
``el``) and names bound inside the expression (lambda parameters,
comprehension targets, ``except ... as`` names) stay Python locals.

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

import ast
from typing import TYPE_CHECKING

from tessera.compiler.utils import Frame, call, const, function_def, name, thunk
from tessera.environment.exceptions import ErrorCode, TemplateSyntaxError

_FORBIDDEN: dict[type, str] = {
    ast.NamedExpr: "assignment expressions (:=)",
    ast.FunctionDef: "function definitions",
    ast.AsyncFunctionDef: "function definitions",
    ast.ClassDef: "class definitions",
    ast.Import: "import statements",
    ast.ImportFrom: "import statements",
    ast.Global: "global declarations",
    ast.Nonlocal: "nonlocal declarations",
    ast.Return: "return statements",
    ast.Yield: "yield expressions",
    ast.YieldFrom: "yield expressions",
    ast.Await: "await expressions",
    ast.Match: "match statements",
}


class UnsupportedSyntax(Exception):
    """Raised by ScopeRewriter; converted to a located TemplateSyntaxError."""

    def __init__(self, what: str, node: ast.AST):
        super().__init__(what)
        self.what = what
        self.node = node


def target_names(target: ast.expr) -> set[str]:
    """Names bound by an assignment target (``x``, ``k, v``, ``(a, (b, c))``)."""
    return {n.id for n in ast.walk(target) if isinstance(n, ast.Name)}


class ScopeRewriter(ast.NodeTransformer):
    """Rewrite free names into scope lookups and scope assignments.

    Attributes:
        stored_locals: Frame locals the code assigns to. The generated
            helper must declare these ``nonlocal``.
    """

    def __init__(self, frame_locals: frozenset[str]):
        self._scopes: list[frozenset[str]] = [frame_locals]
        self.stored_locals: set[str] = set()

    def _resolve(self, ident: str) -> int | None:
        """Index of the innermost local scope binding ``ident``, if any."""
        for depth in range(len(self._scopes) - 1, -1, -1):
            if ident in self._scopes[depth]:
                return depth
        return None

    def generic_visit(self, node: ast.AST) -> ast.AST:
        what = _FORBIDDEN.get(type(node))
        if what is not None:
            raise UnsupportedSyntax(what, node)
        return super().generic_visit(node)

    def visit_Name(self, node: ast.Name) -> ast.expr:
        depth = self._resolve(node.id)
        if depth is not None:
            if depth == 0 and not isinstance(node.ctx, ast.Load):
                self.stored_locals.add(node.id)
            return node
        if isinstance(node.ctx, ast.Load):
            return ast.copy_location(call("_lookup", name("_scope"), const(node.id)), node)
        return ast.copy_location(
            ast.Subscript(value=name("_scope"), slice=const(node.id), ctx=node.ctx), node
        )

    def visit_AugAssign(self, node: ast.AugAssign) -> ast.stmt:
        target = node.target
        if isinstance(target, ast.Name) and self._resolve(target.id) is None:
            # _scope['x'] = _lookup(_scope, 'x') <op> value, so a missing
            # name is reported as undefined rather than as a KeyError
            value = ast.BinOp(
                left=call("_lookup", name("_scope"), const(target.id)),
                op=node.op,
                right=self.visit(node.value),
            )
            store = ast.Subscript(value=name("_scope"), slice=const(target.id), ctx=ast.Store())
            return ast.copy_location(ast.Assign(targets=[store], value=value), node)
        return self.generic_visit(node)

    def visit_Lambda(self, node: ast.Lambda) -> ast.expr:
        args = node.args
        args.defaults = [self.visit(d) for d in args.defaults]
        args.kw_defaults = [self.visit(d) if d is not None else None for d in args.kw_defaults]
        params = {a.arg for a in (*args.posonlyargs, *args.args, *args.kwonlyargs)}
        if args.vararg:
            params.add(args.vararg.arg)
        if args.kwarg:
            params.add(args.kwarg.arg)
        self._scopes.append(frozenset(params))
        node.body = self.visit(node.body)
        self._scopes.pop()
        return node

    def _visit_comprehension(self, node: ast.AST) -> ast.AST:
        generators: list[ast.comprehension] = node.generators  # type: ignore[attr-defined]
        # The first iterable is evaluated in the enclosing scope
        generators[0].iter = self.visit(generators[0].iter)
        bound: set[str] = set()
        for gen in generators:
            bound |= target_names(gen.target)
        self._scopes.append(frozenset(bound))
        for i, gen in enumerate(generators):
            if i:
                gen.iter = self.visit(gen.iter)
            gen.ifs = [self.visit(cond) for cond in gen.ifs]
        if isinstance(node, ast.DictComp):
            node.key = self.visit(node.key)
            node.value = self.visit(node.value)
        else:
            node.elt = self.visit(node.elt)  # type: ignore[attr-defined]
        self._scopes.pop()
        return node

    visit_ListComp = _visit_comprehension
    visit_SetComp = _visit_comprehension
    visit_GeneratorExp = _visit_comprehension
    visit_DictComp = _visit_comprehension

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> ast.AST:
        if node.type is not None:
            node.type = self.visit(node.type)
        if node.name:
            self._scopes.append(frozenset({node.name}))
        node.body = [self.visit(stmt) for stmt in node.body]
        if node.name:
            self._scopes.pop()
        return node


def _dedent(lines: list[str]) -> tuple[list[str], int]:
    """Strip the common indentation of the non-blank ``lines``; also return its width."""
    margin = min((len(line) - len(line.lstrip()) for line in lines if line.strip()), default=0)
    return [line[margin:] if line.strip() else "" for line in lines], margin


def _block_layouts(source: str, col: int = 1) -> list[tuple[str, int, tuple[int, int]]]:
    """Candidate module sources for an attribute's statement text, most literal first.

    The first line sits after the opening quote, so its indentation is the
    template column. Later lines carry the markup's indentation, which need
    not line up with that column; the fallbacks align the first line with
    them, or nest them under a first line ending in ``:``.

    Each layout is ``(code, line_shift, (head_margin, margin))``: template
    line = attribute line + shift + (code line - 1), and template column =
    code column + head_margin on the first code line, + margin after it.
    """
    lines = source.split("\n")
    if not lines[0].strip():
        skip = next((i for i, line in enumerate(lines) if line.strip()), len(lines))
        body, margin = _dedent(lines[skip:])
        return [("\n".join(body).rstrip(), skip, (margin, margin))]
    head = lines[0].strip()
    pad = col - 1 + len(lines[0]) - len(lines[0].lstrip())
    rest = lines[1:]
    if not any(line.strip() for line in rest):
        return [(head, 0, (pad, pad))]
    body, margin = _dedent([" " * pad + head, *rest])
    nested, rest_margin = _dedent(rest)
    layouts = [
        ("\n".join(body).rstrip(), 0, (margin, margin)),
        ("\n".join([head, *nested]).rstrip(), 0, (pad, rest_margin)),
    ]
    if head.endswith(":"):
        indented = [f"    {line}" if line else "" for line in nested]
        layouts.append(("\n".join([head, *indented]).rstrip(), 0, (pad, rest_margin - 4)))
    return layouts


class ExpressionCompilationMixin:
    """Mixin compiling embedded expressions and statement blocks.

    Host attributes and cross-mixin dependencies are declared via inline
    TYPE_CHECKING blocks.
    """

    if TYPE_CHECKING:
        _name: str | None
        _source: str | None
        _diagnostics: bool

        def _unique(self, prefix: str) -> str: ...

    def _syntax_error(
        self, message: str, lineno: int, col: int, code: ErrorCode = ErrorCode.INVALID_EXPRESSION
    ) -> TemplateSyntaxError:
        return TemplateSyntaxError(
            message, lineno, col, name=self._name, source=self._source, code=code
        )

    def _rewrite(
        self, tree: ast.AST, frame: Frame, text: str, lineno: int, col: int, line_shift: int
    ) -> ScopeRewriter:
        rewriter = ScopeRewriter(frame.locals)
        try:
            rewriter.visit(tree)
        except UnsupportedSyntax as e:
            node_line = getattr(e.node, "lineno", 1) - 1 + line_shift
            raise self._syntax_error(
                f"{e.what.capitalize()} are not allowed in templates: {text!r}",
                lineno + node_line,
                col if node_line == 0 else 1,
            ) from None
        return rewriter

    def _parse_expression(self, text: str, lineno: int, col: int, frame: Frame) -> ast.expr:
        """Parse and rewrite one embedded expression."""
        try:
            # Parenthesized on its own line so multi-line expressions parse
            # and error offsets on the first line stay exact
            tree = ast.parse(f"(\n{text}\n)", mode="eval")
        except SyntaxError as e:
            err_line = (e.lineno or 2) - 2
            err_col = (col + (e.offset or 1) - 1) if err_line == 0 else (e.offset or 1)
            raise self._syntax_error(
                f"Invalid expression {text!r}: {e.msg}",
                lineno + max(err_line, 0),
                err_col,
            ) from None
        self._rewrite(tree, frame, text, lineno, col, -1)
        return tree.body

    def _parse_statements(
        self, text: str, lineno: int, col: int, frame: Frame
    ) -> tuple[list[ast.stmt], set[str]]:
        """Parse and rewrite a statement block; also return stored frame locals.

        Layouts are tried in order. When none parses, the error reported is
        the one found furthest into the block.
        """
        failure: tuple[tuple[int, int], SyntaxError, int, tuple[int, int]] | None = None
        for code, shift, margins in _block_layouts(text, col):
            try:
                tree = ast.parse(code, mode="exec")
                break
            except SyntaxError as e:
                reached = ((e.lineno or 1) + shift, e.offset or 1)
                if failure is None or reached > failure[0]:
                    failure = (reached, e, shift, margins)
        else:
            assert failure is not None
            _, error, shift, (head_margin, margin) = failure
            err_line = (error.lineno or 1) - 1
            raise self._syntax_error(
                f"Invalid statement {text!r}: {error.msg}",
                lineno + err_line + shift,
                (error.offset or 1) + (head_margin if err_line == 0 else margin),
            ) from None
        rewriter = self._rewrite(tree, frame, text, lineno, col, shift)
        return tree.body, rewriter.stored_locals

    def _label(self, text: str, lineno: int, col: int) -> ast.expr:
        return ast.Tuple(elts=[const(text), const(lineno), const(col)], ctx=ast.Load())

    def _guard(self, expr: ast.expr, text: str, lineno: int, col: int, rethrow: bool = True) -> ast.expr:
        """Wrap ``expr`` in the diagnostics guard when diagnostics are enabled."""
        if not self._diagnostics:
            return expr
        return call(
            "_catch", name("_env"), thunk(expr), const(rethrow), self._label(text, lineno, col)
        )

    def _compile_expression(
        self, text: str, lineno: int, col: int, frame: Frame, rethrow: bool = True
    ) -> ast.expr:
        """Embedded expression to a (guarded) Python expression."""
        return self._guard(self._parse_expression(text, lineno, col, frame), text, lineno, col, rethrow)

    def _compile_statement_block(
        self, text: str, lineno: int, col: int, frame: Frame, *, rethrow: bool
    ) -> list[ast.stmt]:
        """Statements that run ``text`` from inside the current function.

        The block always becomes a nested ``_stmt_N`` helper so assignments
        to template locals can be declared ``nonlocal``. With diagnostics,
        the helper is called through the guard.
        """
        body, stored = self._parse_statements(text, lineno, col, frame)
        if stored:
            body.insert(0, ast.Nonlocal(names=sorted(stored)))
        helper = self._unique("_stmt")
        if self._diagnostics:
            run: ast.expr = call(
                "_catch", name("_env"), name(helper), const(rethrow), self._label(text, lineno, col)
            )
        else:
            run = call(helper)
        return [function_def(helper, (), body), ast.Expr(value=run)]
