"""Attribute binding and text interpolation compilation.

Prefix semantics (checked in this order, after ``*`` directives are
removed by the directive resolver):

    @name="stmts"   EventBinding(name, _on_N)     handler(event) runs stmts
    ?name="expr"    BooleanAttribute(name, value) present iff truthy
    .name="expr"    PropertyBinding(name, value)  live property, not serialized
    ~style="expr"   style="{_env.style_map(value)}"
    ~class="expr"   class="{_env.class_map(value)}"
    $ref="stmts"    _env.ref(_ref_N)               callback(el) runs stmts
    anything else   plain attribute; value interpolated, literals re-escaped

Every value is entity-decoded before it is interpreted.

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

import ast
import html
from typing import TYPE_CHECKING

from tessera.compiler.interpolation import Interpolation, split_interpolations
from tessera.compiler.utils import Frame, FragmentBuffer, attr, call, const, function_def, name
from tessera.environment.exceptions import ErrorCode, TemplateSyntaxError

if TYPE_CHECKING:
    from tessera.nodes import Attribute, Element, Text

_MAP_DIRECTIVES = {
    "~style": ("style", "style_map"),
    "~class": ("class", "class_map"),
}


class AttributeCompilationMixin:
    """Mixin compiling non-structural attributes and text nodes.

    Host attributes and cross-mixin dependencies are declared via inline
    TYPE_CHECKING blocks.
    """

    if TYPE_CHECKING:
        _name: str | None
        _source: str | None

        def _unique(self, prefix: str) -> str: ...
        def _syntax_error(
            self, message: str, lineno: int, col: int, code: ErrorCode = ...
        ) -> TemplateSyntaxError: ...
        def _parse_expression(self, text: str, lineno: int, col: int, frame: Frame) -> ast.expr: ...
        def _guard(
            self, expr: ast.expr, text: str, lineno: int, col: int, rethrow: bool = True
        ) -> ast.expr: ...
        def _compile_expression(
            self, text: str, lineno: int, col: int, frame: Frame, rethrow: bool = True
        ) -> ast.expr: ...
        def _compile_statement_block(
            self, text: str, lineno: int, col: int, frame: Frame, *, rethrow: bool
        ) -> list[ast.stmt]: ...

    def _emit_attributes(self, element: Element, buf: FragmentBuffer, frame: Frame) -> None:
        for attribute in element.attributes:
            prefix = attribute.name[0]
            if prefix == "*":
                continue
            value = None if attribute.value is None else html.unescape(attribute.value)
            if prefix == "@":
                self._emit_event(attribute, value, buf, frame)
            elif prefix == "?":
                expr = self._binding_value(attribute, value, element, frame)
                buf.value(call("_BooleanAttribute", const(attribute.name[1:]), expr))
            elif prefix == ".":
                expr = self._binding_value(attribute, value, element, frame)
                buf.value(call("_PropertyBinding", const(attribute.name[1:]), expr))
            elif prefix == "~":
                self._emit_map(attribute, value, element, buf, frame)
            elif attribute.name == "$ref":
                self._emit_ref(attribute, value, buf, frame)
            else:
                self._emit_plain(attribute, value, buf, frame)

    def _binding_value(
        self, attribute: Attribute, value: str | None, element: Element, frame: Frame
    ) -> ast.expr:
        if value is None or not value.strip():
            raise self._syntax_error(
                f"Binding {attribute.name} requires an expression in element <{element.tag_name}>",
                attribute.lineno,
                attribute.col,
            )
        return self._compile_expression(value, attribute.value_lineno, attribute.value_col, frame)

    def _statement_function(
        self, prefix: str, param: str, attribute: Attribute, value: str | None, frame: Frame
    ) -> str:
        """Emit ``def prefix_N(param): <statements>`` into ``frame``; return its name."""
        body: list[ast.stmt] = []
        if value is not None and value.strip():
            inner = frame.child({param})
            body = self._compile_statement_block(
                value, attribute.value_lineno, attribute.value_col, inner, rethrow=True
            )
        func_name = self._unique(prefix)
        frame.body.append(function_def(func_name, (param,), body))
        return func_name

    def _emit_event(
        self, attribute: Attribute, value: str | None, buf: FragmentBuffer, frame: Frame
    ) -> None:
        handler = self._statement_function("_on", "event", attribute, value, frame)
        buf.value(call("_EventBinding", const(attribute.name[1:]), name(handler)))

    def _emit_ref(
        self, attribute: Attribute, value: str | None, buf: FragmentBuffer, frame: Frame
    ) -> None:
        callback = self._statement_function("_ref", "el", attribute, value, frame)
        buf.value(call(attr("_env", "ref"), name(callback)))

    def _emit_map(
        self,
        attribute: Attribute,
        value: str | None,
        element: Element,
        buf: FragmentBuffer,
        frame: Frame,
    ) -> None:
        target = _MAP_DIRECTIVES.get(attribute.name)
        if target is None:
            raise self._syntax_error(
                f"Unknown directive {attribute.name} in element <{element.tag_name}>",
                attribute.lineno,
                attribute.col,
                ErrorCode.UNKNOWN_DIRECTIVE,
            )
        attr_name, primitive = target
        if value is None or not value.strip():
            raise self._syntax_error(
                f"Binding {attribute.name} requires an expression in element <{element.tag_name}>",
                attribute.lineno,
                attribute.col,
            )
        line, col = attribute.value_lineno, attribute.value_col
        mapping = self._parse_expression(value, line, col, frame)
        buf.text(f' {attr_name}="')
        buf.value(self._guard(call(attr("_env", primitive), mapping), value, line, col))
        buf.text('"')

    def _emit_plain(
        self, attribute: Attribute, value: str | None, buf: FragmentBuffer, frame: Frame
    ) -> None:
        buf.text(f" {attribute.name}")
        if value is None:
            return
        buf.text('="')
        parts = split_interpolations(
            value,
            attribute.value_lineno,
            attribute.value_col,
            name=self._name,
            source=self._source,
        )
        for part in parts:
            if isinstance(part, Interpolation):
                buf.value(self._compile_expression(part.expression, part.lineno, part.col, frame))
            else:
                buf.text(html.escape(part, quote=True))
        buf.text('"')

    def _emit_text(self, node: Text, buf: FragmentBuffer, frame: Frame) -> None:
        parts = split_interpolations(
            node.text_content, node.lineno, node.col, name=self._name, source=self._source
        )
        for part in parts:
            if isinstance(part, Interpolation):
                buf.value(self._compile_expression(part.expression, part.lineno, part.col, frame))
            else:
                buf.text(part)
