"""Tessera Environment: configuration, loaders and the compile cache.

The Environment is the one place template-wide settings live:

- ``diagnostics``: compile embedded expressions with error guards that
  map failures back to template lines (on by default)
- ``runtime_factory``: builds the RuntimeEnv a render uses when the
  caller does not pass one
- ``cache_size``: bound on the compiled-function cache

Compiled functions are cached by ``(name, source)``. Two templates with
the same text share one render function; each CompiledTemplate still
owns its own scope.

Thread-Safety:
The compile cache is guarded by a lock. Compilation itself happens
outside the lock; two threads racing on a cold key both compile and the
second result wins (compilation is deterministic).

"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Callable, MutableMapping
from typing import TYPE_CHECKING, Any, Protocol

from tessera.compiler.core import Compiler, RenderFunction
from tessera.environment.exceptions import TemplateNotFoundError
from tessera.parser import parse
from tessera.runtime.env import RuntimeEnv, default_runtime
from tessera.template.core import CompiledTemplate

if TYPE_CHECKING:
    from tessera.nodes import Node

logger = logging.getLogger(__name__)


class Loader(Protocol):
    def get_source(self, name: str) -> tuple[str, str | None]: ...

    def list_templates(self) -> list[str]: ...


class Environment:
    """Central configuration for compiling and rendering templates.

    Example:
            >>> env = Environment()
            >>> t = env.from_string("<p>{{ greeting }}</p>", {"greeting": "hi"})
            >>> t.render_to_string()
            '<p>hi</p>'

            >>> env = Environment(loader=FileSystemLoader("components/"))
            >>> t = env.get_template("todo_list.html", scope)
    """

    __slots__ = (
        "_cache",
        "_cache_lock",
        "cache_size",
        "diagnostics",
        "loader",
        "runtime_factory",
    )

    def __init__(
        self,
        loader: Loader | None = None,
        *,
        diagnostics: bool = True,
        runtime_factory: Callable[[], RuntimeEnv] = default_runtime,
        cache_size: int = 256,
    ):
        self.loader = loader
        self.diagnostics = diagnostics
        self.runtime_factory = runtime_factory
        self.cache_size = cache_size
        self._cache: OrderedDict[tuple[str | None, str], RenderFunction] = OrderedDict()
        self._cache_lock = threading.Lock()

    def parse(self, source: str, name: str | None = None) -> tuple[Node, ...]:
        """Parse template markup without compiling it."""
        return parse(source, name)

    def compile(self, source: str, name: str | None = None) -> RenderFunction:
        """Parse and build ``source``, reusing a cached function when possible.

        Raises:
            ParseError: The markup is malformed
            TemplateSyntaxError: A directive or embedded expression is invalid
            TemplateBuildError: The generated code failed to build
        """
        key = (name, source)
        with self._cache_lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
                return cached

        nodes = parse(source, name)
        fn = Compiler(name=name, source=source, diagnostics=self.diagnostics).build_function(
            nodes
        )

        with self._cache_lock:
            self._cache[key] = fn
            self._cache.move_to_end(key)
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)
        return fn

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    def cache_info(self) -> dict[str, int]:
        with self._cache_lock:
            return {"size": len(self._cache), "max_size": self.cache_size}

    def make_runtime(self) -> RuntimeEnv:
        return self.runtime_factory()

    def from_string(
        self,
        source: str,
        scope: MutableMapping[str, Any] | None = None,
        *,
        name: str | None = None,
    ) -> CompiledTemplate:
        """Wrap template text; it compiles on first render."""
        return CompiledTemplate(source, scope, name=name, environment=self)

    def get_template(
        self,
        name: str,
        scope: MutableMapping[str, Any] | None = None,
    ) -> CompiledTemplate:
        """Load a template by name through the configured loader.

        Raises:
            TemplateNotFoundError: No loader is configured, or it has no such template
        """
        if self.loader is None:
            raise TemplateNotFoundError(f"Template '{name}' not found: no loader configured")
        source, filename = self.loader.get_source(name)
        logger.debug("Loaded template %s from %s", name, filename or "<memory>")
        return CompiledTemplate(source, scope, name=name, environment=self)

    def list_templates(self) -> list[str]:
        if self.loader is None:
            return []
        return self.loader.list_templates()


_default: Environment | None = None
_default_lock = threading.Lock()


def default_environment() -> Environment:
    """Shared Environment for templates created without one."""
    global _default
    with _default_lock:
        if _default is None:
            _default = Environment()
        return _default
