"""Shared compiler state and Python AST construction helpers."""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class Frame:
    """Compile-time context for one generated function body.

    Threaded explicitly through element and directive compilation.
    Helper functions needed by an expression are appended to ``body``
    ahead of the statement that uses them.

    Attributes:
        locals: Template-visible names bound as Python locals (loop
            targets, ``index``, ``event``, ``el``). Every other name in an
            embedded expression resolves against the scope.
        body: Statements of the function being generated.
    """

    locals: frozenset[str] = frozenset()
    body: list[ast.stmt] = field(default_factory=list)

    def child(self, extra: frozenset[str] | set[str] = frozenset()) -> Frame:
        """Frame for a nested helper function that also sees ``extra`` locals."""
        return Frame(self.locals | frozenset(extra))


class FragmentBuffer:
    """Accumulates static markup and dynamic values for one fragment.

    ``build()`` produces ``_html((s0, s1, ..., sN), (v0, ..., vN-1))``:
    there is always exactly one more string than there are values.
    """

    __slots__ = ("_current", "_strings", "_values")

    def __init__(self) -> None:
        self._strings: list[str] = []
        self._values: list[ast.expr] = []
        self._current: list[str] = []

    def text(self, value: str) -> None:
        self._current.append(value)

    def value(self, expr: ast.expr) -> None:
        self._strings.append("".join(self._current))
        self._current = []
        self._values.append(expr)

    def build(self) -> ast.expr:
        strings = [*self._strings, "".join(self._current)]
        return call(
            "_html",
            ast.Tuple(elts=[const(s) for s in strings], ctx=ast.Load()),
            ast.Tuple(elts=list(self._values), ctx=ast.Load()),
        )


def name(id: str, store: bool = False) -> ast.Name:
    return ast.Name(id=id, ctx=ast.Store() if store else ast.Load())


def const(value: Any) -> ast.Constant:
    return ast.Constant(value=value)


def attr(value: ast.expr | str, attribute: str) -> ast.Attribute:
    if isinstance(value, str):
        value = name(value)
    return ast.Attribute(value=value, attr=attribute, ctx=ast.Load())


def call(func: ast.expr | str, *args: ast.expr) -> ast.Call:
    if isinstance(func, str):
        func = name(func)
    return ast.Call(func=func, args=list(args), keywords=[])


def arguments(*names: str) -> ast.arguments:
    return ast.arguments(
        posonlyargs=[],
        args=[ast.arg(arg=n) for n in names],
        vararg=None,
        kwonlyargs=[],
        kw_defaults=[],
        kwarg=None,
        defaults=[],
    )


def function_def(func_name: str, params: tuple[str, ...], body: list[ast.stmt]) -> ast.FunctionDef:
    return ast.FunctionDef(
        name=func_name,
        args=arguments(*params),
        body=body or [ast.Pass()],
        decorator_list=[],
        returns=None,
        type_params=[],
    )


def thunk(body: ast.expr) -> ast.Lambda:
    """``lambda: body``"""
    return ast.Lambda(args=arguments(), body=body)
