"""Tessera environment: configuration, loaders, errors and terminal output.

Modules:
    exceptions: Error hierarchy, error codes and source snippets
    terminal: ANSI colour helpers for error output
    loaders: FileSystemLoader, DictLoader, FunctionLoader
    core: Environment and its compile cache

"""

from tessera.environment import terminal
from tessera.environment.exceptions import (
    ErrorCode,
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
from tessera.environment.loaders import DictLoader, FileSystemLoader, FunctionLoader
from tessera.environment.core import Environment, Loader, default_environment

__all__ = [
    "DictLoader",
    "Environment",
    "ErrorCode",
    "FileSystemLoader",
    "FunctionLoader",
    "Loader",
    "ScopeNotDefinedError",
    "SourceSnippet",
    "TemplateBuildError",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateSyntaxError",
    "UndefinedError",
    "build_source_snippet",
    "default_environment",
    "terminal",
]
