"""Compiled templates and the observable scope they render from."""

from tessera.template.core import CompiledTemplate
from tessera.template.helpers import STATIC_NAMESPACE, iter_keys, iter_values, lookup
from tessera.template.scope import Scope, define_scope

__all__ = [
    "STATIC_NAMESPACE",
    "CompiledTemplate",
    "Scope",
    "define_scope",
    "iter_keys",
    "iter_values",
    "lookup",
]
