"""Tessera: HTML templates with embedded Python, compiled to render functions.

Templates are ordinary HTML. Directive attributes (``*if``, ``*for``,
``*do``, ``*log``, ``*catch``), binding attributes (``@event``,
``?bool``, ``.prop``, ``~style``, ``~class``, ``$ref``) and ``{{ }}``
interpolations carry Python expressions that run against a mutable
scope. Each template compiles once, lazily, into one Python function
that returns a structured fragment; re-rendering after a scope change
re-invokes that function.

Quickstart:
    >>> from tessera import define_scope
    >>> scope = define_scope(
    ...     {"todos": ["write docs", "ship"]},
    ...     template='<ul><li *for="t of todos">{{ index }}: {{ t }}</li></ul>',
    ... )
    >>> scope.template.render_to_string()
    '<ul><li>0: write docs</li><li>1: ship</li></ul>'

Architecture:
Template Source → Scanner → Parser → Nodes → Compiler → Python AST → unparse → exec()

Pipeline stages:
1. **Scanner/Parser**: Builds immutable element/text/other nodes, located by line and column
2. **Compiler**: Resolves directives and bindings into one ``render(_scope, _env)``
3. **CompiledTemplate**: Binds a scope, compiles on first render, caches the function
4. **RuntimeEnv**: Host capabilities the generated code calls (``html``, ``repeat``, ...)

Diagnostics (default on):
Every embedded expression is guarded. A failure is reported with the
original statement, its template line and column, and the generated
listing with the failing line marked:

    >>> define_scope({}, template="<p>{{ 1 / 0 }}</p>").template.render()
    TemplateRuntimeError: Runtime Error: ZeroDivisionError: division by zero
      Statement: 1 / 0
      Location: <template>:1:7

Strict Mode:
Names missing from both the scope and Python's builtins raise
``UndefinedError`` with a "Did you mean?" suggestion. With diagnostics
on it arrives as the ``original`` of a TemplateRuntimeError.

"""

from tessera.environment import (
    DictLoader,
    Environment,
    ErrorCode,
    FileSystemLoader,
    FunctionLoader,
    ScopeNotDefinedError,
    SourceSnippet,
    TemplateBuildError,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateSyntaxError,
    UndefinedError,
    build_source_snippet,
)
from tessera.compiler import Compiler, RenderFunction, compile_template
from tessera.parser import ParseError, parse
from tessera.runtime import (
    Fragment,
    Repeat,
    RuntimeEnv,
    catch_error,
    default_runtime,
    iter_bindings,
    render_to_string,
)
from tessera.template import CompiledTemplate, Scope, define_scope

__version__ = "0.1.0"

__all__ = [
    "CompiledTemplate",
    "Compiler",
    "DictLoader",
    "Environment",
    "ErrorCode",
    "FileSystemLoader",
    "Fragment",
    "FunctionLoader",
    "ParseError",
    "RenderFunction",
    "Repeat",
    "RuntimeEnv",
    "Scope",
    "ScopeNotDefinedError",
    "SourceSnippet",
    "TemplateBuildError",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateSyntaxError",
    "UndefinedError",
    "__version__",
    "build_source_snippet",
    "catch_error",
    "compile_template",
    "default_runtime",
    "define_scope",
    "iter_bindings",
    "parse",
    "render_to_string",
]
