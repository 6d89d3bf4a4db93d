"""Tessera Compiler Core: the assembler.

The Compiler turns parsed template nodes into one Python function,
``render(_scope, _env)``, that returns a single fragment. Uses a
mixin-based design: expressions, structural directives and attribute
bindings each live in their own mixin.

Design Principles:
1. **AST-built**: Generate an ``ast.Module``; never splice user text into source
2. **One listing**: The module is unparsed once and that text is what gets
   compiled, so traceback line numbers index the listing shown in errors
3. **Ambient scope**: Free names in embedded expressions resolve against the
   scope through ``_lookup``; assignments write into the scope
4. **Explicit frames**: Wrap composition threads a Frame through the calls;
   no generated function reads state left behind by a sibling

Generated shape:
    ```python
    def render(_scope, _env):
        _html = _env.html
        _catch = _env.catch_error or _default_catch

        def _empty():
            return _html(('',), ())

        def _for_1(t, index):
            return _html(('<li>', '</li>'), (_catch(_env, lambda: t, True, ('t', 1, 30)),))
        return _html(('<ul>', '</ul>'), (_env.repeat(..., None, _for_1),))
    ```

"""

from __future__ import annotations

import ast
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from tessera.compiler.attributes import AttributeCompilationMixin
from tessera.compiler.directives import StructuralDirectiveMixin
from tessera.compiler.expressions import ExpressionCompilationMixin
from tessera.compiler.utils import Frame, FragmentBuffer, arguments, attr, name
from tessera.environment.exceptions import TemplateBuildError
from tessera.nodes import Element, Node, Other, Text
from tessera.runtime.diagnostics import format_listing
from tessera.template.helpers import STATIC_NAMESPACE

if TYPE_CHECKING:
    from tessera.runtime.fragments import Fragment

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RenderFunction:
    """A compiled template: ``(scope, env) -> Fragment``.

    Attributes:
        func: The generated ``render`` function
        source: Full generated Python listing (what was compiled)
        filename: Code filename used in tracebacks (``<tessera:name>``)
        name: Template name, if any
        diagnostics: Whether expressions were compiled with error guards
    """

    func: Callable[[Any, Any], Fragment]
    source: str
    filename: str
    name: str | None
    diagnostics: bool

    def __call__(self, scope: Any, env: Any) -> Fragment:
        return self.func(scope, env)


class Compiler(
    ExpressionCompilationMixin,
    StructuralDirectiveMixin,
    AttributeCompilationMixin,
):
    """Compile Tessera nodes to a RenderFunction.

    Attributes:
        _name: Template name for error messages and the code filename
        _source: Template source, for located compile errors
        _diagnostics: Wrap embedded code in ``_catch`` guards
        _counter: Counter for unique helper names

    Node Dispatch:
        Uses O(1) dict lookup for node type → handler:
            ```python
            dispatch = {
                "Element": self._compile_element,
                "Text": self._emit_text,
                "Other": self._compile_other,
            }
            ```

    Example:
            >>> from tessera.parser import parse
            >>> fn = Compiler().build_function(parse("<p>{{ a }}</p>"))
            >>> render_to_string(fn({"a": 1}, default_runtime()))
            '<p>1</p>'

    """

    __slots__ = ("_counter", "_diagnostics", "_name", "_node_dispatch", "_source")

    def __init__(
        self,
        *,
        name: str | None = None,
        source: str | None = None,
        diagnostics: bool = True,
    ):
        self._name = name
        self._source = source
        self._diagnostics = diagnostics
        self._counter = 0
        self._node_dispatch: dict[str, Callable[[Any, FragmentBuffer, Frame], None]] = {
            "Element": self._compile_element,
            "Text": self._emit_text,
            "Other": self._compile_other,
        }

    def _unique(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}_{self._counter}"

    # ─────────────────────────────────────────────────────────────────────
    # Nodes
    # ─────────────────────────────────────────────────────────────────────

    def _compile_node(self, node: Node, buf: FragmentBuffer, frame: Frame) -> None:
        self._node_dispatch[type(node).__name__](node, buf, frame)

    def _compile_element(self, element: Element, buf: FragmentBuffer, frame: Frame) -> None:
        ops = self._collect_wraps(element)
        if not ops:
            self._emit_element(element, buf, frame)
            return
        buf.value(self._compile_wraps(element, ops, 0, frame))

    def _emit_element(self, element: Element, buf: FragmentBuffer, frame: Frame) -> None:
        buf.text(f"<{element.tag_name}")
        self._emit_attributes(element, buf, frame)
        buf.text(">")
        for child in element.children:
            self._compile_node(child, buf, frame)
        if not element.is_void:
            buf.text(f"</{element.tag_name}>")

    def _compile_other(self, node: Other, buf: FragmentBuffer, frame: Frame) -> None:
        # Comments, declarations and processing instructions are not rendered
        return

    # ─────────────────────────────────────────────────────────────────────
    # Assembly
    # ─────────────────────────────────────────────────────────────────────

    def _make_render_function(self, nodes: Sequence[Node]) -> ast.FunctionDef:
        self._counter = 0
        frame = Frame()
        buf = FragmentBuffer()
        for node in nodes:
            self._compile_node(node, buf, frame)

        prelude: list[ast.stmt] = [
            # _html = _env.html
            ast.Assign(targets=[name("_html", store=True)], value=attr("_env", "html")),
            # _catch = _env.catch_error or _default_catch
            ast.Assign(
                targets=[name("_catch", store=True)],
                value=ast.BoolOp(
                    op=ast.Or(),
                    values=[attr("_env", "catch_error"), name("_default_catch")],
                ),
            ),
            # def _empty(): return _html(('',), ())
            ast.FunctionDef(
                name="_empty",
                args=arguments(),
                body=[ast.Return(value=FragmentBuffer().build())],
                decorator_list=[],
                returns=None,
                type_params=[],
            ),
        ]
        return ast.FunctionDef(
            name="render",
            args=arguments("_scope", "_env"),
            body=[*prelude, *frame.body, ast.Return(value=buf.build())],
            decorator_list=[],
            returns=None,
            type_params=[],
        )

    def build_function_body(self, nodes: Sequence[Node]) -> str:
        """Python source of the ``render(_scope, _env)`` function for ``nodes``.

        Raises:
            TemplateSyntaxError: Unknown directive, malformed ``*for``,
                invalid embedded Python, empty interpolation.
        """
        module = ast.Module(body=[self._make_render_function(nodes)], type_ignores=[])
        ast.fix_missing_locations(module)
        return ast.unparse(module) + "\n"

    def build_function(self, nodes: Sequence[Node]) -> RenderFunction:
        """Compile ``nodes`` into a RenderFunction.

        Raises:
            TemplateSyntaxError: See ``build_function_body``.
            TemplateBuildError: The generated code did not compile or define
                ``render``. Carries the full listing; location is 0:0.
        """
        source = self.build_function_body(nodes)
        filename = f"<tessera:{self._name or 'template'}>"
        namespace: dict[str, Any] = dict(STATIC_NAMESPACE)
        try:
            code = compile(source, filename, "exec")
            exec(code, namespace)
            func = namespace["render"]
        except Exception as e:
            raise TemplateBuildError(
                f"{type(e).__name__}: {e}",
                listing=format_listing(source, getattr(e, "lineno", None)),
                name=self._name,
                original=e,
            ) from e

        logger.debug(
            "Built render function for %s (%d generated lines)",
            self._name or "<template>",
            source.count("\n"),
        )
        return RenderFunction(func, source, filename, self._name, self._diagnostics)


def compile_template(
    source: str,
    *,
    name: str | None = None,
    diagnostics: bool = True,
) -> RenderFunction:
    """Parse and build ``source`` in one step.

    Raises:
        ParseError: The markup is malformed.
        TemplateSyntaxError: A directive or embedded expression is invalid.
        TemplateBuildError: The generated code failed to build.
    """
    from tessera.parser import parse

    nodes = parse(source, name)
    return Compiler(name=name, source=source, diagnostics=diagnostics).build_function(nodes)
