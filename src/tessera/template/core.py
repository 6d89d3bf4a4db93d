"""Tessera CompiledTemplate: template text bound to a scope, compiled on demand.

Lifecycle:
    ```
    CompiledTemplate(source)          Uncompiled
      └── render()  (first)           parse → compile → cache → Compiled
      └── render()  (again)           re-invoke the cached function
    ```

There is no transition back to Uncompiled: ``template_string`` is
read-only, and mutating the scope only changes what the next render sees.

Error Handling:
- Rendering with no scope raises ScopeNotDefinedError before anything is
  parsed or compiled
- Parse and compile errors propagate from the first render unchanged
- With diagnostics on, a failure that escapes every guard is mapped to
  the generated line it came from (TemplateRuntimeError)
- With diagnostics off, the original exception propagates untouched

"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from tessera.environment.exceptions import ScopeNotDefinedError, TemplateError
from tessera.runtime.diagnostics import map_render_error
from tessera.runtime.fragments import render_to_string

if TYPE_CHECKING:
    from tessera.compiler.core import RenderFunction
    from tessera.environment.core import Environment
    from tessera.runtime.env import RuntimeEnv
    from tessera.runtime.fragments import Fragment

logger = logging.getLogger(__name__)


class CompiledTemplate:
    """Template source plus a lazily built, cached render function.

    The scope is referenced, not owned: the same mapping can be shared
    with application code, which mutates it between renders.

    Attributes:
        template_string: The template source (read-only)
        name: Template name used in diagnostics
        scope: Mutable mapping the template renders from

    Example:
            >>> scope = {"todos": ["a", "b"]}
            >>> t = CompiledTemplate('<ul><li *for="t of todos">{{ t }}</li></ul>', scope)
            >>> t.render_to_string()
            '<ul><li>a</li><li>b</li></ul>'
            >>> scope["todos"].append("c")
            >>> t.render_to_string()
            '<ul><li>a</li><li>b</li><li>c</li></ul>'

    """

    __slots__ = ("_environment", "_fn", "_name", "_scope", "_template_string")

    def __init__(
        self,
        template_string: str,
        scope: MutableMapping[str, Any] | None = None,
        *,
        name: str | None = None,
        environment: Environment | None = None,
    ):
        self._template_string = template_string
        self._name = name
        self._environment = environment
        self._fn: RenderFunction | None = None
        self._scope: MutableMapping[str, Any] | None = None
        if scope is not None:
            self.scope = scope

    @property
    def template_string(self) -> str:
        return self._template_string

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def environment(self) -> Environment:
        if self._environment is None:
            from tessera.environment.core import default_environment

            self._environment = default_environment()
        return self._environment

    @property
    def scope(self) -> MutableMapping[str, Any] | None:
        return self._scope

    @scope.setter
    def scope(self, scope: MutableMapping[str, Any] | None) -> None:
        from tessera.template.scope import Scope

        self._scope = scope
        if isinstance(scope, Scope):
            scope.bind(self)

    @property
    def is_compiled(self) -> bool:
        return self._fn is not None

    @property
    def generated_source(self) -> str:
        """Generated Python listing (compiles the template if needed)."""
        return self._get_compiled().source

    def _get_compiled(self) -> RenderFunction:
        if self._fn is None:
            logger.debug("Compiling template %s on first render", self._name or "<template>")
            self._fn = self.environment.compile(self._template_string, self._name)
        return self._fn

    def render(self, runtime: RuntimeEnv | None = None) -> Fragment:
        """Render against the bound scope.

        Args:
            runtime: Host capabilities; defaults to the environment's runtime

        Returns:
            Whatever the runtime's ``html`` primitive builds (a Fragment by default)

        Raises:
            ScopeNotDefinedError: No scope is bound (checked before compiling)
            TemplateSyntaxError: The template failed to parse or compile
            TemplateRuntimeError: An embedded expression failed (diagnostics on)
        """
        scope = self._scope
        if scope is None:
            raise ScopeNotDefinedError(self._name)

        fn = self._get_compiled()
        base = runtime if runtime is not None else self.environment.make_runtime()
        env = replace(
            base,
            original_code=fn.source,
            original_template=self._template_string,
            code_filename=fn.filename,
            template_name=self._name,
        )
        if not fn.diagnostics:
            return fn(scope, env)
        try:
            return fn(scope, env)
        except TemplateError:
            raise
        except Exception as e:
            raise map_render_error(e, fn, self._name) from e

    def render_to_string(self, runtime: RuntimeEnv | None = None) -> str:
        """Render and serialize with the default string host."""
        return render_to_string(self.render(runtime))

    def __repr__(self) -> str:
        state = "compiled" if self.is_compiled else "uncompiled"
        return f"<CompiledTemplate {self._name or '(inline)'} {state}>"
