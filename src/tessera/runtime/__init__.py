"""Runtime side of Tessera: the RuntimeEnv contract, default fragments, diagnostics."""

from tessera.runtime.diagnostics import catch_error, format_listing, map_render_error
from tessera.runtime.env import RuntimeEnv, default_runtime
from tessera.runtime.fragments import (
    BooleanAttribute,
    ClassMap,
    EventBinding,
    Fragment,
    PropertyBinding,
    RefBinding,
    Repeat,
    StyleMap,
    iter_bindings,
    render_to_string,
)

__all__ = [
    "BooleanAttribute",
    "ClassMap",
    "EventBinding",
    "Fragment",
    "PropertyBinding",
    "RefBinding",
    "Repeat",
    "RuntimeEnv",
    "StyleMap",
    "catch_error",
    "default_runtime",
    "format_listing",
    "iter_bindings",
    "map_render_error",
    "render_to_string",
]
